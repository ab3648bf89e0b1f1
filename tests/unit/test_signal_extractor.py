"""Unit tests for rule-based signal extraction."""

from packforge.extractors.signal_extractor import (
    detect_action_verbs,
    detect_entities,
    detect_intents,
    detect_question_patterns,
    extract_all_signals,
    extract_signals,
    tokenize,
)
from packforge.parsers.segmenter import segment


def _chunk(text):
    return segment(text)[0]


class TestTokenize:
    """Tokenization and frequency ranking."""

    def test_lowercases_and_strips_punctuation(self):
        assert tokenize("Ich brauche einen Termin, bitte!") == [
            "ich", "brauche", "einen", "termin", "bitte",
        ]

    def test_drops_tokens_of_two_characters_or_less(self):
        assert tokenize("Da ist er am Amt.") == ["ist", "amt"]

    def test_top_tokens_by_frequency_then_first_occurrence(self):
        signal = extract_signals(
            _chunk("Termin Termin Formular Termin Formular Pass"), "government_office"
        )
        assert signal.top_tokens == ["termin", "formular", "pass"]
        assert signal.evidence[0].token == "termin"
        assert signal.evidence[0].count == 3

    def test_top_tokens_capped_at_fifteen(self):
        words = [f"wort{i:02d}" for i in range(25)]
        signal = extract_signals(_chunk(" ".join(words)), "work")
        assert len(signal.top_tokens) == 15
        assert len(signal.evidence) == 20
        assert signal.top_tokens == words[:15]


class TestIntents:
    """Scenario and generic intent rules."""

    def test_scenario_intent_takes_precedence(self):
        intents = detect_intents("Ich brauche einen Termin für die Anmeldung.", "government_office")
        assert intents == ["request_appointment", "request", "schedule", "register"]

    def test_scenario_intent_precedes_generic_match(self):
        text = "Ich brauche einen Termin für die Anmeldung."
        assert detect_intents(text, "government_office")[0] == "request_appointment"
        assert detect_intents(text, "work")[0] == "request"

    def test_work_meeting_intent(self):
        intents = detect_intents("Wir planen die Besprechung für Freitag.", "work")
        assert intents[0] == "schedule_meeting"

    def test_shopping_price_intent(self):
        assert detect_intents("Was kostet die Jacke?", "shopping")[0] == "ask_price"

    def test_defaults_to_inform(self):
        assert detect_intents("Das Wetter ist heute schön.", "work") == ["inform"]

    def test_unknown_scenario_uses_generic_rules(self):
        assert detect_intents("Ich möchte bezahlen.", "unknown")[0] == "request"


class TestEntities:
    """Date, time, money, address and capitalized spans."""

    def test_date_time_and_money(self):
        entities = detect_entities("Der Termin ist am 12.03.2025 um 14:30 und kostet 50 €.")
        by_type = {e.type: e.value for e in entities}
        assert by_type["date"] == "12.03.2025"
        assert by_type["time"] == "14:30"
        assert by_type["money"] == "50 €"

    def test_address(self):
        entities = detect_entities("Wir wohnen in der Hauptstraße 5.")
        addresses = [e.value for e in entities if e.type == "address"]
        assert addresses == ["Hauptstraße 5"]

    def test_sentence_initial_capitals_are_skipped(self):
        entities = detect_entities("Termin beim Amt. Danach zum Jobcenter.")
        capitalized = [e.value for e in entities if e.type == "capitalized"]
        assert capitalized == ["Amt", "Jobcenter"]

    def test_positions_refer_to_text(self):
        text = "Bitte kommen Sie um 9:30 ins Bürgeramt."
        for entity in detect_entities(text):
            assert text[entity.position:].startswith(entity.value)


class TestVerbsAndQuestions:
    """Action verbs with inflection and question detection."""

    def test_scenario_and_common_verbs(self):
        verbs = detect_action_verbs("Wir beantragen einen Pass und bezahlen.", "government_office")
        assert "beantragen" in verbs
        assert "bezahlen" in verbs

    def test_inflected_forms_match(self):
        assert "bestellen" in detect_action_verbs("Sie bestellt einen Kaffee.", "restaurant")

    def test_question_mark(self):
        assert detect_question_patterns("Geht das?")

    def test_question_word(self):
        assert detect_question_patterns("Wo ist das Amt")

    def test_statement(self):
        assert not detect_question_patterns("Ich gehe jetzt.")


class TestExtractSignals:
    """Whole-chunk extraction."""

    def test_signal_carries_chunk_id(self, buergeramt_text):
        chunks = segment(buergeramt_text)
        signals = extract_all_signals(chunks, "government_office")
        assert [s.chunk_id for s in signals] == [c.chunk_id for c in chunks]

    def test_extraction_is_pure(self, buergeramt_text):
        chunks = segment(buergeramt_text)
        first = extract_all_signals(chunks, "government_office")
        second = extract_all_signals(chunks, "government_office")
        assert [s.model_dump() for s in first] == [s.model_dump() for s in second]

    def test_question_flag_set(self):
        signal = extract_signals(_chunk("Wo ist das Ausländeramt?"), "government_office")
        assert signal.question_patterns is True
