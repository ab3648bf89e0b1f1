"""Rule-based prompt metadata: intent, English gloss, paraphrase and notes.

Glosses come from small per-scenario lookup tables keyed by a lowercase
substring of the German prompt; the first matching entry wins. When nothing
matches, a generic gloss for the prompt intent is used.
"""

import re
from typing import Dict, List, Optional, Pattern, Tuple

from packforge.config import MAX_NOTES_LITE_LENGTH
from packforge.models.ingest import PromptIntent

# Checked in order; the first match decides the intent
INTENT_RULES: List[Tuple[PromptIntent, Pattern]] = [
    (PromptIntent.REQUEST, re.compile(r"\b(hätte|möchte|brauche|benötige|kann|könnte|würde)\b", re.I)),
    (PromptIntent.SCHEDULE, re.compile(r"\b(termin|vereinbare|appointment|um \d|am \w+tag)\b", re.I)),
    (PromptIntent.ORDER, re.compile(r"\b(bestelle|nehme|kaufe|order)\b", re.I)),
    (PromptIntent.ASK_PRICE, re.compile(r"\b(kostet|preis)\b|[€$]", re.I)),
    (PromptIntent.THANK, re.compile(r"\b(danke|vielen dank|thank)\b", re.I)),
    (PromptIntent.GREET, re.compile(r"\b(hallo|guten tag|guten morgen|hello)\b", re.I)),
    (PromptIntent.GOODBYE, re.compile(r"\b(auf wiedersehen|tschüss|goodbye)\b", re.I)),
    (PromptIntent.CONFIRM, re.compile(r"\b(ja|genau|richtig|yes|correct)\b", re.I)),
    (PromptIntent.APOLOGIZE, re.compile(r"\b(entschuldigung|sorry|tut mir leid)\b", re.I)),
]

_MODAL_RE = re.compile(r"\b(kann|könnte|darf|sollte|muss|können|dürfen|sollen|müssen)\b", re.I)

# scenario -> [(substring, gloss_en, natural_en)]
SCENARIO_GLOSSES: Dict[str, List[Tuple[str, str, str]]] = {
    "government_office": [
        ("termin", "I need to make an appointment.", "I'd like to schedule an appointment."),
        ("formular", "I need the form.", "Could I get the form, please?"),
        ("anmeldung", "I need to register my address.", "I need to register my address."),
        ("unterlagen", "I need the documents.", "I need those documents."),
        ("bescheinigung", "I need a certificate.", "Could you issue me a certificate?"),
        ("ausweis", "I need my ID card.", "I'm here about my ID card."),
        ("pass", "I need to pick up my passport.", "I'm here to collect my passport."),
    ],
    "work": [
        ("besprechung", "The meeting starts at the scheduled time.", "The meeting is at the scheduled time."),
        ("meeting", "The meeting starts at the scheduled time.", "The meeting is at the scheduled time."),
        ("projekt", "I am working on the project.", "I'm working on that project."),
        ("aufgabe", "I am finishing the task.", "I'm wrapping up that task."),
        ("bericht", "I am writing the report.", "I'm putting the report together."),
    ],
    "restaurant": [
        ("tisch", "I would like a table.", "I'd like a table, please."),
        ("speisekarte", "I would like to see the menu.", "Could I see the menu?"),
        ("rechnung", "I would like the bill.", "Could we get the check, please?"),
        ("reservierung", "I have a reservation.", "We've got a reservation."),
    ],
    "shopping": [
        ("kosten", "How much does this cost?", "What does this cost?"),
        ("preis", "What is the price?", "How much is it?"),
        ("rabatt", "Is there a discount?", "Do you have any discounts?"),
        ("quittung", "I need the receipt.", "Could I have the receipt?"),
        ("kasse", "I am paying at the checkout.", "I'll pay at the register."),
    ],
    "doctor": [
        ("termin", "I need an appointment with the doctor.", "I'd like to see the doctor."),
        ("rezept", "I need a prescription.", "Could you write me a prescription?"),
        ("schmerzen", "I have pain.", "It hurts."),
        ("untersuchung", "I need an examination.", "I'd like a check-up."),
    ],
    "housing": [
        ("miete", "I am paying the rent.", "I'm paying the rent."),
        ("kaution", "I need the deposit back.", "I'd like my deposit back."),
        ("vermieter", "I am calling the landlord.", "I'm getting in touch with the landlord."),
        ("wohnung", "I am looking for an apartment.", "I'm looking for a flat."),
        ("heizung", "The heating is broken.", "The heating isn't working."),
    ],
}

GENERIC_GLOSSES: Dict[str, Tuple[str, str]] = {
    PromptIntent.REQUEST.value: ("I would like to request something.", "I'd like to request that."),
    PromptIntent.ASK.value: ("Can you help me?", "Could you help me with this?"),
    PromptIntent.INFORM.value: ("I am providing information.", "Here's the information."),
    PromptIntent.SCHEDULE.value: ("I need to schedule something.", "I need to schedule that."),
    PromptIntent.ORDER.value: ("I would like to order.", "I'll have that, please."),
    PromptIntent.ASK_PRICE.value: ("How much is it?", "What's the price?"),
    PromptIntent.THANK.value: ("Thank you.", "Thanks a lot."),
    PromptIntent.GREET.value: ("Hello.", "Hi there."),
    PromptIntent.GOODBYE.value: ("Goodbye.", "See you."),
    PromptIntent.CONFIRM.value: ("Yes, that is correct.", "Yes, exactly."),
    PromptIntent.APOLOGIZE.value: ("Excuse me.", "Sorry about that."),
}

FALLBACK_GLOSS = "This is a practice sentence for learning German."


def determine_intent(text: str, scenario: str) -> PromptIntent:
    """Classify a German prompt into a PromptIntent (default: inform)."""
    if "?" in text and _MODAL_RE.search(text):
        return PromptIntent.ASK
    for intent, pattern in INTENT_RULES:
        if pattern.search(text):
            return intent
    if "?" in text:
        return PromptIntent.ASK
    return PromptIntent.INFORM


def _lookup(text: str, scenario: str) -> Optional[Tuple[str, str, str]]:
    lower = text.lower()
    for entry in SCENARIO_GLOSSES.get(scenario, []):
        if entry[0] in lower:
            return entry
    return None


def generate_gloss_en(text: str, scenario: str, intent: str) -> str:
    entry = _lookup(text, scenario)
    if entry:
        return entry[1]
    generic = GENERIC_GLOSSES.get(str(getattr(intent, "value", intent)))
    return generic[0] if generic else FALLBACK_GLOSS


def generate_natural_en(text: str, scenario: str, intent: str, gloss_en: str) -> str:
    """Colloquial English paraphrase. Always returns a non-empty string."""
    entry = _lookup(text, scenario)
    if entry:
        return entry[2]
    generic = GENERIC_GLOSSES.get(str(getattr(intent, "value", intent)))
    if generic:
        return generic[1]
    return re.sub(r"\.$", "", re.sub(r"^I ", "I'd ", gloss_en)) or gloss_en


def generate_literal_en(text: str) -> str:
    # Placeholder until a word-by-word translation source is wired in
    return f"[Literal: {text}]"


def generate_notes_lite(text: str) -> Optional[str]:
    """Short learner note for known agreement pitfalls, or None."""
    note = None
    if "Der " in text and "möchte" in text:
        note = 'Note: "Der" requires verb conjugation'
    elif re.search(r"\bSie\b", text) and not text.startswith("Sie"):
        note = 'Note: formal "Sie" takes the plural verb form'

    if note and len(note) <= MAX_NOTES_LITE_LENGTH:
        return note
    return None
