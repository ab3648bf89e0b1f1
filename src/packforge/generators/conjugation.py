"""German present-tense subject-verb agreement for template sentences.

Slot banks store verbs in their first-person singular form ("brauche",
"vereinbare"). `conjugate_verb` derives the form required by the sampled
subject. Modal and auxiliary forms that are already conjugated are passed
through untouched.
"""

import re

# Already-conjugated modal/auxiliary forms. Their singular form is shared by
# ich and er/sie/es, so the suffix rules never apply to them.
PASS_THROUGH_FORMS = {
    "möchte", "kann", "muss", "soll", "will", "darf", "könnte", "würde",
    "hätte", "hat", "ist", "war", "wird",
}

MODAL_PLURAL = {
    "möchte": "möchten", "kann": "können", "muss": "müssen", "soll": "sollen",
    "will": "wollen", "darf": "dürfen", "könnte": "könnten", "würde": "würden",
    "hätte": "hätten", "hat": "haben", "ist": "sind", "war": "waren", "wird": "werden",
}

MODAL_SECOND_PERSON = {
    "möchte": "möchtest", "kann": "kannst", "muss": "musst", "soll": "sollst",
    "will": "willst", "darf": "darfst", "könnte": "könntest", "würde": "würdest",
    "hätte": "hättest", "hat": "hast", "ist": "bist", "war": "warst", "wird": "wirst",
}

PLURAL_IRREGULAR = {
    "habe": "haben",
    "bin": "sind",
    "ist": "sind",
    "weiß": "wissen",
}

THIRD_PERSON_IRREGULAR = {
    "habe": "hat",
    "bin": "ist",
    "ist": "ist",
    "weiß": "weiß",
    "nehme": "nimmt",
    "gebe": "gibt",
    "spreche": "spricht",
    "helfe": "hilft",
    "sehe": "sieht",
    "lese": "liest",
    "fahre": "fährt",
    "trage": "trägt",
    "empfehle": "empfiehlt",
    "esse": "isst",
}

SECOND_PERSON_IRREGULAR = {
    "habe": "hast",
    "bin": "bist",
    "ist": "bist",
    "weiß": "weißt",
    "nehme": "nimmst",
    "gebe": "gibst",
    "spreche": "sprichst",
    "helfe": "hilfst",
    "sehe": "siehst",
    "lese": "liest",
    "fahre": "fährst",
    "trage": "trägst",
    "empfehle": "empfiehlst",
    "esse": "isst",
}

THIRD_PERSON_PREFIXES = ("der ", "die ", "das ", "mein ", "meine ", "ihr ", "ihre ", "unser ", "unsere ")
THIRD_PERSON_PRONOUNS = {"er", "es", "man", "der", "die", "das"}

# m/n stems take an epenthetic -e- ("atmet", "öffnet") unless the nasal
# follows a vowel, l, r, h, m or n ("lernt", "wohnt", "kommt")
_EPENTHETIC_NASAL_RE = re.compile(r"[^aeiouäöülrhmn][mn]$")


def _match_case(original: str, form: str) -> str:
    if original[:1].isupper():
        return form[:1].upper() + form[1:]
    return form


def _stem(verb: str) -> str:
    if verb.endswith("en"):
        return verb[:-2]
    if verb.endswith("e"):
        return verb[:-1]
    return verb


def _needs_epenthesis(stem: str) -> bool:
    if stem.endswith(("t", "d", "chn", "chm")):
        return True
    return bool(_EPENTHETIC_NASAL_RE.search(stem))


def person_of(subject: str) -> str:
    """Classify a subject phrase.

    Returns one of '1sg', '2sg', '3sg', '1pl', 'formal', '2pl' or 'other'.
    Formal "Sie" is told apart from "sie" by its capital letter, so a
    sentence-initial lowercase "sie" must not be capitalized before this call.
    """
    stripped = subject.strip()
    lower = stripped.lower()
    if lower == "ich":
        return "1sg"
    if lower == "du":
        return "2sg"
    if lower == "wir":
        return "1pl"
    if lower == "ihr":
        return "2pl"
    if stripped == "Sie":
        return "formal"
    if lower == "sie" or lower in THIRD_PERSON_PRONOUNS or lower.startswith(THIRD_PERSON_PREFIXES):
        return "3sg"
    # Proper names and other noun phrases
    if stripped[:1].isupper():
        return "3sg"
    return "other"


def _plural(verb: str) -> str:
    lower = verb.lower()
    if lower in PLURAL_IRREGULAR:
        return PLURAL_IRREGULAR[lower]
    if lower.endswith("en"):
        return verb
    if lower.endswith("e"):
        return verb + "n"
    return verb + "en"


def _third_person(verb: str) -> str:
    lower = verb.lower()
    if lower in THIRD_PERSON_IRREGULAR:
        return THIRD_PERSON_IRREGULAR[lower]
    stem = _stem(verb)
    if _needs_epenthesis(stem):
        return stem + "et"
    return stem + "t"


def _second_person(verb: str) -> str:
    lower = verb.lower()
    if lower in SECOND_PERSON_IRREGULAR:
        return SECOND_PERSON_IRREGULAR[lower]
    stem = _stem(verb)
    if _needs_epenthesis(stem):
        return stem + "est"
    if stem.endswith(("s", "ß", "z", "x")):
        return stem + "t"
    return stem + "st"


def _second_person_plural(verb: str) -> str:
    lower = verb.lower()
    if lower in ("bin", "ist"):
        return "seid"
    if lower == "habe":
        return "habt"
    stem = _stem(verb)
    return stem + ("et" if _needs_epenthesis(stem) else "t")


def conjugate_verb(verb: str, subject: str) -> str:
    """Conjugate a first-person-singular verb form for the given subject.

    Args:
        verb: Verb as stored in the slot bank (1st person singular, e.g. "brauche")
        subject: Subject phrase ("Ich", "Wir", "Sie", "Der Kollege", ...)

    Returns:
        Agreeing verb form; unknown subjects leave the verb unchanged

    Examples:
        >>> conjugate_verb("brauche", "Wir")
        'brauchen'
        >>> conjugate_verb("arbeite", "Die Kollegin")
        'arbeitet'
        >>> conjugate_verb("möchte", "Er")
        'möchte'
    """
    if not verb or not subject:
        return verb

    person = person_of(subject)
    if person in ("1sg", "other"):
        return verb

    lower = verb.lower()
    if lower in PASS_THROUGH_FORMS:
        if person in ("1pl", "formal"):
            return _match_case(verb, MODAL_PLURAL[lower])
        if person == "2sg":
            return _match_case(verb, MODAL_SECOND_PERSON[lower])
        return verb
    if person in ("1pl", "formal"):
        form = _plural(verb)
    elif person == "3sg":
        form = _third_person(verb)
    elif person == "2sg":
        form = _second_person(verb)
    else:
        form = _second_person_plural(verb)
    return _match_case(verb, form)
