"""Unit tests for draft prompt synthesis."""

import pytest

from packforge.errors import GenerationExhaustedError
from packforge.extractors.signal_extractor import extract_all_signals
from packforge.generators.draft_prompt_generator import (
    Err,
    Ok,
    SentenceCandidate,
    _changed_slots,
    _pad_slots_changed,
    generate_draft_prompts,
    sample_until_valid,
)
from packforge.generators.draft_pack_builder import build_draft_pack
from packforge.generators.pack_planner import plan_packs
from packforge.models.ingest import IngestionMetadata, InputSource, PlannedPack
from packforge.models.scenario_template import ScenarioTemplate, StepBlueprint
from packforge.parsers.segmenter import segment
from packforge.parsers.template_loader import load_scenario_template
from packforge.validators.quality_gates import (
    count_scenario_tokens,
    find_banned_phrase,
    has_concreteness_marker,
    has_formal_marker,
    multi_slot_rate,
    run_quality_gates,
)

SCENARIO_FIXTURES = {
    "government_office": "buergeramt.txt",
    "work": "arbeit.txt",
    "restaurant": "restaurant.txt",
    "shopping": "einkaufen.txt",
}


def _first_pack(fixtures_dir, scenario, level="A2"):
    text = (fixtures_dir / SCENARIO_FIXTURES[scenario]).read_text(encoding="utf-8")
    signals = extract_all_signals(segment(text), scenario)
    packs = plan_packs(signals, scenario, level)
    return packs[0], signals


def _tiny_template(objects, prompt_count=1, register="neutral", subjects=("Ich",)):
    return ScenarioTemplate(
        scenario_id="work",
        default_register=register,
        primary_structure="Verb + Objekt",
        variation_slots=["subject", "verb", "object"],
        slot_banks={"subjects": list(subjects), "verbs": ["brauche"], "objects": objects},
        required_tokens=["termin", "büro"],
        step_blueprint=[StepBlueprint(id="step-1", title="Test", prompt_count=prompt_count)],
    )


def _tiny_pack(register="neutral"):
    return PlannedPack(
        pack_id="work_inform_A2_00000000",
        title="Work - Information (A2)",
        primary_structure="Verb + Objekt",
        variation_slots=["subject", "verb", "object"],
        register=register,
        intent_category="inform",
    )


class TestSampleUntilValid:
    """Bounded candidate search."""

    def test_returns_first_valid_candidate(self):
        result = sample_until_valid(
            lambda attempt: attempt,
            lambda value: None if value == 3 else f"{value} is not 3",
        )
        assert isinstance(result, Ok)
        assert result.value == 3
        assert result.attempts == 4

    def test_exhaustion_reports_last_reason(self):
        calls = []

        def candidate(attempt):
            calls.append(attempt)
            return attempt

        result = sample_until_valid(candidate, lambda value: f"rejected {value}", max_attempts=5)
        assert isinstance(result, Err)
        assert result.attempts == 5
        assert result.last_reason == "rejected 4"
        assert calls == [0, 1, 2, 3, 4]


class TestSentenceCandidate:
    """Rendering with agreement and word order."""

    def test_statement_with_plural_subject(self):
        candidate = SentenceCandidate(
            slots={"subject": "Wir", "verb": "brauche", "object": "einen Termin beim Bürgeramt"},
            slot_order=["subject", "verb", "object"],
        )
        assert candidate.render() == "Wir brauchen einen Termin beim Bürgeramt."

    def test_question_puts_verb_first(self):
        candidate = SentenceCandidate(
            slots={"subject": "Mein Mann", "verb": "habe", "object": "den Pass"},
            slot_order=["subject", "verb", "object"],
            mood="question",
        )
        assert candidate.render() == "Hat mein Mann den Pass?"

    def test_formal_question_keeps_sie_capitalized(self):
        candidate = SentenceCandidate(
            slots={"subject": "Sie", "verb": "brauche", "object": "einen Termin"},
            slot_order=["subject", "verb", "object"],
            mood="question",
        )
        assert candidate.render() == "Brauchen Sie einen Termin?"

    def test_suffix_is_appended_before_punctuation(self):
        candidate = SentenceCandidate(
            slots={"subject": "Ich", "verb": "brauche", "object": "einen Termin"},
            slot_order=["subject", "verb", "object"],
            suffix=" um 9:30",
        )
        assert candidate.render() == "Ich brauche einen Termin um 9:30."


class TestSlotsChanged:
    """slotsChanged tracking and quota padding."""

    def test_first_prompt_reports_first_two_slots(self):
        assert _changed_slots(["subject", "verb", "object"], {}, None) == ["subject", "verb"]

    def test_diff_against_previous(self):
        previous = {"subject": "Ich", "verb": "brauche", "object": "einen Termin"}
        current = {"subject": "Ich", "verb": "habe", "object": "einen Termin"}
        assert _changed_slots(["subject", "verb", "object"], current, previous) == ["verb"]

    def test_pads_when_below_target(self):
        changed, padded = _pad_slots_changed(
            ["object"], ["subject", "verb", "object"], ["subject", "verb"], 0, 3
        )
        assert changed == ["object", "subject"]
        assert padded == ["subject"]

    def test_no_padding_when_rate_is_met(self):
        changed, padded = _pad_slots_changed(
            ["object"], ["subject", "verb", "object"], ["subject"], 2, 3
        )
        assert changed == ["object"]
        assert padded == []


class TestGenerateDraftPrompts:
    """Generated prompts satisfy every prompt-level constraint."""

    @pytest.mark.parametrize("scenario", sorted(SCENARIO_FIXTURES))
    def test_prompt_constraints(self, scenario, fixtures_dir, rules):
        pack, signals = _first_pack(fixtures_dir, scenario)
        template = load_scenario_template(scenario)
        prompts = generate_draft_prompts(pack, signals, scenario, "A2", rules=rules)

        assert len(prompts) == template.total_prompt_count
        assert [p.id for p in prompts] == [f"prompt-{i:03d}" for i in range(1, len(prompts) + 1)]
        assert len({p.text for p in prompts}) == len(prompts)

        for prompt in prompts:
            assert 12 <= len(prompt.text) <= 140
            assert find_banned_phrase(prompt.text, rules.banned_phrases) is None
            assert count_scenario_tokens(prompt.text, rules.tokens_for(scenario)) >= 2
            assert prompt.gloss_en
            assert prompt.natural_en
            assert prompt.literal_en == f"[Literal: {prompt.text}]"
            assert prompt.audio_url == f"/v1/audio/{pack.pack_id}/{prompt.id}.mp3"

        assert multi_slot_rate([p.slots_changed for p in prompts]) >= 0.3
        concrete = [p for p in prompts if has_concreteness_marker(p.text, rules.weekday_tokens)]
        assert len(concrete) >= 2

    def test_multi_slot_rate_holds_after_every_prompt(self, fixtures_dir, rules):
        pack, signals = _first_pack(fixtures_dir, "work")
        prompts = generate_draft_prompts(pack, signals, "work", "A2", rules=rules)
        for n in range(1, len(prompts) + 1):
            assert multi_slot_rate([p.slots_changed for p in prompts[:n]]) >= 0.3

    def test_padded_slots_are_subset_of_slots_changed(self, fixtures_dir, rules):
        pack, signals = _first_pack(fixtures_dir, "restaurant")
        prompts = generate_draft_prompts(pack, signals, "restaurant", "A2", rules=rules)
        for prompt in prompts:
            assert set(prompt.slots_padded or []) <= set(prompt.slots_changed)

    def test_formal_pack_has_formal_address(self, fixtures_dir, rules):
        pack, signals = _first_pack(fixtures_dir, "government_office")
        prompts = generate_draft_prompts(pack, signals, "government_office", "A2", rules=rules)
        assert any(has_formal_marker(p.text) for p in prompts)

    def test_question_steps_end_with_question_mark(self, fixtures_dir, rules):
        pack, signals = _first_pack(fixtures_dir, "government_office")
        template = load_scenario_template("government_office")
        prompts = generate_draft_prompts(pack, signals, "government_office", "A2", rules=rules)
        last_step = template.step_blueprint[-1]
        assert last_step.rules.mood == "question"
        assert all(p.text.endswith("?") for p in prompts[-last_step.prompt_count:])

    def test_slots_metadata_folds_time_and_location(self, fixtures_dir, rules):
        pack, signals = _first_pack(fixtures_dir, "government_office")
        prompts = generate_draft_prompts(pack, signals, "government_office", "A2", rules=rules)
        for prompt in prompts:
            assert set(prompt.slots) <= {"subject", "verb", "object", "modifier", "complement"}

    def test_generation_is_deterministic(self, fixtures_dir, rules):
        pack, signals = _first_pack(fixtures_dir, "government_office")
        first = generate_draft_prompts(pack, signals, "government_office", "A2", rules=rules)
        second = generate_draft_prompts(pack, signals, "government_office", "A2", rules=rules)
        assert [p.model_dump() for p in first] == [p.model_dump() for p in second]


class TestGenerationFailures:
    """Exhausting the attempt budget is fatal for the pack."""

    def test_too_long_candidates_exhaust(self, rules):
        template = _tiny_template(["den Termin " + "sehr " * 30 + "im Büro"])
        with pytest.raises(GenerationExhaustedError) as exc_info:
            generate_draft_prompts(_tiny_pack(), [], "work", "A2", template=template, rules=rules)

        error = exc_info.value
        assert error.pack_id == "work_inform_A2_00000000"
        assert error.step_id == "step-1"
        assert error.attempts == 100
        assert "length" in error.last_reason

    def test_exhausted_bank_exhausts_on_duplicates(self, rules):
        template = _tiny_template(["den Termin im Büro"], prompt_count=2)
        with pytest.raises(GenerationExhaustedError) as exc_info:
            generate_draft_prompts(_tiny_pack(), [], "work", "A2", template=template, rules=rules)
        assert "duplicate" in exc_info.value.last_reason

    def test_single_prompt_from_tiny_bank(self, rules):
        template = _tiny_template(["den Termin im Büro"])
        prompts = generate_draft_prompts(
            _tiny_pack(), [], "work", "A2", template=template, rules=rules
        )
        assert prompts[0].text.startswith("Ich brauche den Termin im Büro")


class TestFormalRegister:
    """Formal templates end up with formal address even without a "Sie" subject."""

    OBJECTS = [
        "den Termin im Büro",
        "morgen einen Termin im Büro am Markt",
        "für das Büro einen neuen Termin",
        "im Büro sofort einen Termin beim Amt",
    ]

    def test_fixup_satisfies_register_and_concreteness_gates(self, rules):
        template = _tiny_template(
            self.OBJECTS, prompt_count=3, register="formal", subjects=["Ich", "Wir", "Mein Mann"]
        )
        planned = _tiny_pack(register="formal")
        prompts = generate_draft_prompts(planned, [], "work", "A2", template=template, rules=rules)

        assert any("Sie" in p.text.split() for p in prompts)

        pack = build_draft_pack(
            planned, prompts, template, "work", "A2", IngestionMetadata(source=InputSource.TEXT)
        )
        failed = {f.rule for f in run_quality_gates(pack, rules).failures}
        assert "register_consistency" not in failed
        assert "concreteness_markers" not in failed

    def test_neutral_template_keeps_sampled_subjects(self, rules):
        template = _tiny_template(self.OBJECTS, prompt_count=3, subjects=["Ich", "Wir", "Mein Mann"])
        prompts = generate_draft_prompts(
            _tiny_pack(), [], "work", "A2", template=template, rules=rules
        )
        assert not any("Sie" in p.text.split() for p in prompts)


class TestShortInput:
    """A two-sentence input still yields a usable pack."""

    TEXT = "Ich brauche einen Termin beim Bürgeramt. Das Formular ist wichtig."

    def test_plans_and_generates_on_topic_prompts(self, rules):
        signals = extract_all_signals(segment(self.TEXT), "government_office")
        packs = plan_packs(signals, "government_office", "A2")
        assert len(packs) >= 1

        tokens = rules.tokens_for("government_office")
        for pack in packs:
            prompts = generate_draft_prompts(pack, signals, "government_office", "A2", rules=rules)
            for prompt in prompts:
                assert count_scenario_tokens(prompt.text, tokens) >= 2
