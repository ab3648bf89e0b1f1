"""Unit tests for the quality gate rules."""

import pytest

from packforge.validators.quality_gates import (
    count_scenario_tokens,
    extract_verbs,
    has_concreteness_marker,
    has_formal_marker,
    multi_slot_rate,
    requires_natural_en,
    run_quality_gates,
)

PASSING_TEXTS = [
    "Ich brauche einen Termin für die Anmeldung am Montag.",
    "Brauchen Sie das Formular für den Termin um 9:30?",
    "Wir bringen die Unterlagen für den Termin mit.",
]


@pytest.fixture
def passing_prompts(make_prompt):
    return [make_prompt(i, text) for i, text in enumerate(PASSING_TEXTS, start=1)]


def _rules_of(result, attr="failures"):
    return [issue.rule for issue in getattr(result, attr)]


class TestPredicates:
    def test_count_scenario_tokens_is_case_insensitive_and_distinct(self):
        tokens = ["termin", "Termin", "anmeldung", "pass"]
        assert count_scenario_tokens("Der TERMIN für die Anmeldung.", tokens) == 2

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("Ich komme um 9:30.", True),
            ("Das kostet 5 Euro.", True),
            ("Das kostet €.", True),
            ("Wir treffen uns am Freitag.", True),
            ("Ich brauche einen Termin.", False),
        ],
    )
    def test_concreteness(self, text, expected, rules):
        assert has_concreteness_marker(text, rules.weekday_tokens) is expected

    def test_formal_marker_is_case_sensitive_whole_word(self):
        assert has_formal_marker("Können Sie mir helfen?")
        assert has_formal_marker("Ich danke Ihnen.")
        assert not has_formal_marker("sie kommt morgen.")
        assert not has_formal_marker("Siegfried kommt.")

    def test_extract_verbs_statements_and_questions(self):
        verbs = extract_verbs(["Ich brauche Hilfe.", "Haben Sie Zeit?", "Termin."])
        assert verbs == {"brauche", "haben"}

    def test_multi_slot_rate(self):
        assert multi_slot_rate([]) == 0.0
        assert multi_slot_rate([["a", "b"], ["a"], None, ["a", "b", "c"]]) == 0.5

    def test_requires_natural_en(self):
        assert requires_natural_en("government_office", "A1")
        assert requires_natural_en("work", "b1")
        assert not requires_natural_en("work", "A1")


class TestRunQualityGates:
    def test_passing_pack(self, passing_prompts, make_pack, rules):
        result = run_quality_gates(make_pack(passing_prompts), rules)
        assert result.passed
        assert result.failures == []
        assert result.warnings == []

    def test_empty_pack_short_circuits(self, make_pack, rules):
        result = run_quality_gates(make_pack([]), rules)
        assert not result.passed
        assert _rules_of(result) == ["prompt_count"]

    def test_banned_phrase(self, passing_prompts, make_prompt, make_pack, rules):
        prompts = passing_prompts + [
            make_prompt(4, "Let's practice: ich brauche einen Termin am Montag.")
        ]
        result = run_quality_gates(make_pack(prompts), rules)
        banned = [f for f in result.failures if f.rule == "banned_phrases"]
        assert len(banned) == 1
        assert banned[0].prompt_id == "prompt-004"
        assert "let's practice" in banned[0].reason

    def test_banned_phrase_inside_sentence(self, passing_prompts, make_prompt, make_pack, rules):
        prompts = passing_prompts + [
            make_prompt(4, "Wir brauchen in today's lesson einen Termin für die Anmeldung.")
        ]
        result = run_quality_gates(make_pack(prompts), rules)
        banned = [f for f in result.failures if f.rule == "banned_phrases"]
        assert [f.prompt_id for f in banned] == ["prompt-004"]
        assert "in today's lesson" in banned[0].reason

    def test_scenario_tokens(self, passing_prompts, make_prompt, make_pack, rules):
        prompts = passing_prompts + [make_prompt(4, "Ich habe heute keine Zeit.")]
        result = run_quality_gates(make_pack(prompts), rules)
        assert ("scenario_tokens", "prompt-004") in [
            (f.rule, f.prompt_id) for f in result.failures
        ]

    def test_unknown_scenario_skips_token_rule(self, passing_prompts, make_pack, rules):
        result = run_quality_gates(make_pack(passing_prompts, scenario="space_station"), rules)
        assert "scenario_tokens" not in _rules_of(result)

    def test_prompt_length(self, passing_prompts, make_prompt, make_pack, rules):
        long_text = "Ich brauche einen Termin für die Anmeldung " + "x" * 140
        prompts = passing_prompts + [
            make_prompt(4, "Termin Amt."),
            make_prompt(5, long_text),
        ]
        result = run_quality_gates(make_pack(prompts), rules)
        length_ids = [f.prompt_id for f in result.failures if f.rule == "prompt_length"]
        assert length_ids == ["prompt-004", "prompt-005"]

    def test_natural_en_required_for_government_office(
        self, passing_prompts, make_prompt, make_pack, rules
    ):
        prompts = passing_prompts + [
            make_prompt(4, "Ich brauche einen Termin beim Amt.", natural_en=None)
        ]
        result = run_quality_gates(make_pack(prompts, level="A1"), rules)
        assert "natural_en_required" in _rules_of(result)

    def test_natural_en_optional_for_a1_elsewhere(self, make_prompt, make_pack, rules):
        prompts = [
            make_prompt(1, "Ich habe ein Meeting im Büro am Montag.", natural_en="  "),
            make_prompt(2, "Wir planen das Projekt im Büro um 9:00.", natural_en=None),
        ]
        result = run_quality_gates(
            make_pack(prompts, scenario="work", level="A1", register="neutral"), rules
        )
        assert "natural_en_required" not in _rules_of(result)
        assert result.passed

    def test_multi_slot_variation(self, passing_prompts, make_pack, rules):
        for prompt in passing_prompts:
            prompt.slots_changed = ["object"]
        result = run_quality_gates(make_pack(passing_prompts), rules)
        failure = next(f for f in result.failures if f.rule == "multi_slot_variation")
        assert failure.prompt_id is None
        assert "0.0%" in failure.reason

    def test_register_consistency(self, make_prompt, make_pack, rules):
        prompts = [
            make_prompt(1, "Ich brauche einen Termin für die Anmeldung am Montag."),
            make_prompt(2, "Wir bringen die Unterlagen zum Termin um 9:30."),
        ]
        assert "register_consistency" in _rules_of(run_quality_gates(make_pack(prompts), rules))
        neutral = run_quality_gates(make_pack(prompts, register="neutral"), rules)
        assert "register_consistency" not in _rules_of(neutral)

    def test_concreteness_counts_weekdays(self, make_prompt, make_pack, rules):
        prompts = [
            make_prompt(1, "Brauchen Sie einen Termin für die Anmeldung am Montag?"),
            make_prompt(2, "Wir bringen die Unterlagen zum Termin."),
        ]
        result = run_quality_gates(make_pack(prompts), rules)
        failure = next(f for f in result.failures if f.rule == "concreteness_markers")
        assert "Only 1 prompt(s)" in failure.reason

    def test_verb_variation_is_a_warning(self, make_prompt, make_pack, rules):
        prompts = [
            make_prompt(1, "Ich brauche einen Termin für die Anmeldung am Montag."),
            make_prompt(2, "Sie brauche das Formular für den Termin um 9:30."),
        ]
        result = run_quality_gates(make_pack(prompts), rules)
        assert result.passed
        assert _rules_of(result, "warnings") == ["verb_variation"]

    def test_gates_are_idempotent_and_do_not_modify_pack(
        self, passing_prompts, make_prompt, make_pack, rules
    ):
        pack = make_pack(passing_prompts + [make_prompt(4, "Zu kurz.")])
        before = pack.model_dump()
        first = run_quality_gates(pack, rules)
        second = run_quality_gates(pack, rules)
        assert first == second
        assert pack.model_dump() == before
