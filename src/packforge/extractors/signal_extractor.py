"""Rule-based lexical signal extraction for a single text chunk.

Every signal is derived from the chunk's normalized text only. The function is
pure: the same chunk and scenario always produce the same ExtractedSignal.
"""

import logging
import re
from collections import Counter
from typing import Dict, List, Pattern, Tuple

from packforge.models.ingest import Entity, ExtractedSignal, TextChunk, TokenEvidence

logger = logging.getLogger(__name__)

MAX_TOP_TOKENS = 15
MAX_EVIDENCE = 20
MIN_TOKEN_LENGTH = 3

_PUNCTUATION_RE = re.compile(r"[.,!?;:()\[\]\"'„“”‚‘’«»…]")

GERMAN_QUESTION_WORDS = [
    "wer", "was", "wo", "wohin", "woher", "wann", "wie", "warum", "weshalb",
    "wieso", "welche", "welcher", "welches", "welchen", "welchem",
]

COMMON_ACTION_VERBS = [
    "brauche", "benötige", "möchte", "kann", "muss", "soll", "will",
    "vereinbare", "hole", "bringen", "zeigen", "geben", "nehmen",
    "bestellen", "kaufen", "bezahlen", "fragen", "antworten", "sagen",
    "machen", "tun", "gehen", "kommen", "sein", "haben",
]

SCENARIO_ACTION_VERBS: Dict[str, List[str]] = {
    "government_office": ["anmelden", "beantragen", "vorlegen", "abholen", "einreichen"],
    "work": ["besprechen", "organisieren", "planen", "erledigen", "abschließen"],
    "restaurant": ["bestellen", "reservieren", "empfehlen", "bezahlen"],
    "shopping": ["kaufen", "bezahlen", "umtauschen", "zurückgeben"],
    "doctor": ["untersuchen", "verschreiben", "behandeln", "messen"],
    "housing": ["mieten", "kündigen", "renovieren", "reparieren"],
}

_VERB_SUFFIXES = "(?:e|en|n|st|est|t|et)?"

# Generic intent rules, checked in order
INTENT_PATTERNS: List[Tuple[str, Pattern]] = [
    ("request", re.compile(r"\b(möchte|brauche|benötige|hätte|kann|könnte|würde)\b", re.I)),
    ("ask", re.compile(r"\?|\b(kann|könnte|darf|sollte|muss|können|dürfen|sollen|müssen)\b", re.I)),
    ("schedule", re.compile(r"\b(termin|vereinbare|appointment|um \d|am \w+tag)\b", re.I)),
    ("submit_documents", re.compile(r"\b(formular|unterlagen|dokument|pass|ausweis|bescheinigung)\b", re.I)),
    ("register", re.compile(r"\b(anmeldung|anmelden|registrieren)\b", re.I)),
    ("request_information", re.compile(r"\b(information|auskunft|fragen|wissen)\b", re.I)),
]

# Scenario rules take precedence over the generic ones
SCENARIO_INTENT_PATTERNS: Dict[str, List[Tuple[str, Pattern]]] = {
    "government_office": [
        ("request_appointment", re.compile(r"\b(termin|appointment)\b", re.I)),
        ("submit_documents", re.compile(r"\b(formular|unterlagen)\b", re.I)),
    ],
    "work": [
        ("schedule_meeting", re.compile(r"\b(meeting|besprechung)\b", re.I)),
    ],
    "restaurant": [
        ("order", re.compile(r"\b(bestellen|bestelle|order)\b", re.I)),
        ("make_reservation", re.compile(r"\b(reservieren|reservierung|reservation)\b", re.I)),
    ],
    "shopping": [
        ("ask_price", re.compile(r"\b(kosten|kostet|preis)\b|[€$]", re.I)),
    ],
}

DEFAULT_INTENT = "inform"

DATE_RE = re.compile(r"\b(\d{1,2}[./-]\d{1,2}[./-]\d{2,4})\b")
TIME_RE = re.compile(r"\b(\d{1,2}:\d{2}|\d{1,2}\s*uhr)\b", re.I)
MONEY_RE = re.compile(
    r"([€$]\s?\d+(?:[.,]\d{1,2})?|\d+(?:[.,]\d{1,2})?\s?(?:€|\$|(?:eur|usd|euro)\b))",
    re.I,
)
ADDRESS_RE = re.compile(
    r"(\b\d{5}\s+[A-ZÄÖÜ][a-zäöüß]+"
    r"|\b[A-ZÄÖÜ][a-zäöüß-]*(?:straße|strasse|str\.|weg|platz|allee)(?:\s+\d+[a-z]?)?"
    r"|\b[A-ZÄÖÜ][a-zäöüß]+\s+(?:Straße|Weg|Platz|Allee)(?:\s+\d+[a-z]?)?)"
)
CAPITALIZED_RE = re.compile(r"\b([A-ZÄÖÜ][a-zäöüß]+(?:\s+[A-ZÄÖÜ][a-zäöüß]+)*)\b")
_SENTENCE_BOUNDARY_CHARS = ".!?:"


def tokenize(text: str) -> List[str]:
    """Lowercase, strip punctuation, keep tokens longer than two characters."""
    tokens = []
    for word in text.lower().split():
        token = _PUNCTUATION_RE.sub("", word)
        if len(token) >= MIN_TOKEN_LENGTH:
            tokens.append(token)
    return tokens


def _is_sentence_initial(text: str, position: int) -> bool:
    preceding = text[:position].rstrip()
    return not preceding or preceding[-1] in _SENTENCE_BOUNDARY_CHARS


def detect_entities(text: str) -> List[Entity]:
    """Run the date, time, money, address and capitalized-span passes.

    Each pass is independent, so one span may be reported by more than one
    pass (a street name is also a capitalized span).
    """
    entities: List[Entity] = []
    passes = [("date", DATE_RE), ("time", TIME_RE), ("money", MONEY_RE), ("address", ADDRESS_RE)]
    for entity_type, pattern in passes:
        for match in pattern.finditer(text):
            entities.append(
                Entity(type=entity_type, value=match.group(1), position=match.start(1))
            )

    for match in CAPITALIZED_RE.finditer(text):
        if _is_sentence_initial(text, match.start(1)):
            continue
        entities.append(
            Entity(type="capitalized", value=match.group(1), position=match.start(1))
        )
    return entities


def _verb_pattern(verb: str) -> Pattern:
    stem = re.sub(r"(en|e)$", "", verb)
    return re.compile(rf"\b{re.escape(stem)}{_VERB_SUFFIXES}\b", re.I)


def detect_action_verbs(text: str, scenario: str) -> List[str]:
    """Return verbs from the common and scenario lists found in any inflected form."""
    found: List[str] = []
    for verb in COMMON_ACTION_VERBS + SCENARIO_ACTION_VERBS.get(scenario, []):
        if verb not in found and _verb_pattern(verb).search(text):
            found.append(verb)
    return found


def tokenize_words(text: str) -> List[str]:
    """Lowercased word list without the length filter."""
    return re.findall(r"\w+", text.lower())


def detect_question_patterns(text: str) -> bool:
    if "?" in text:
        return True
    words = set(tokenize_words(text))
    return any(q in words for q in GERMAN_QUESTION_WORDS)


def detect_intents(text: str, scenario: str) -> List[str]:
    """Return intent tags in precedence order, falling back to 'inform'."""
    intents: List[str] = []
    for intent, pattern in SCENARIO_INTENT_PATTERNS.get(scenario, []) + INTENT_PATTERNS:
        if intent not in intents and pattern.search(text):
            intents.append(intent)
    return intents or [DEFAULT_INTENT]


def extract_signals(chunk: TextChunk, scenario: str) -> ExtractedSignal:
    """Derive lexical signals from one chunk.

    Args:
        chunk: Segmented text chunk
        scenario: Scenario id, selects scenario-specific verbs and intents

    Returns:
        ExtractedSignal for the chunk (top tokens by frequency, ties by first
        occurrence)
    """
    text = chunk.normalized_text
    counts = Counter(tokenize(text))
    ranked = counts.most_common()

    signal = ExtractedSignal(
        chunk_id=chunk.chunk_id,
        top_tokens=[token for token, _ in ranked[:MAX_TOP_TOKENS]],
        detected_intents=detect_intents(text, scenario),
        evidence=[TokenEvidence(token=t, count=c) for t, c in ranked[:MAX_EVIDENCE]],
        entities=detect_entities(text),
        action_verbs=detect_action_verbs(text, scenario),
        question_patterns=detect_question_patterns(text),
    )

    logger.debug(
        f"Chunk {chunk.chunk_id}: {len(signal.top_tokens)} tokens, "
        f"intents={signal.detected_intents}, {len(signal.entities)} entities"
    )
    return signal


def extract_all_signals(chunks: List[TextChunk], scenario: str) -> List[ExtractedSignal]:
    """Extract one signal per chunk, preserving chunk order."""
    return [extract_signals(chunk, scenario) for chunk in chunks]
