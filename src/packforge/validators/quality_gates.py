"""Quality gate rules for draft packs.

Each rule contributes failures or warnings independently; `passed` is true
iff there are no failures. Evaluation is pure: no I/O, no randomness, and the
pack is never modified, so re-running on the same pack gives the same result.

Rules:
    prompt_count            pack has no prompts (short-circuits the rest)
    scenario_tokens         prompt has fewer than 2 scenario tokens
    banned_phrases          prompt contains a denylisted filler phrase
    prompt_length           prompt text outside 12-140 characters
    natural_en_required     natural_en missing for government_office or A2+
    multi_slot_variation    fewer than 30% of prompts change 2+ slots
    register_consistency    formal pack without "Sie"/"Ihnen"
    concreteness_markers    fewer than 2 prompts with digit, currency, time or weekday
    verb_variation          fewer than 2 distinct verbs (warning only)
"""

import logging
import re
from typing import List, Optional, Sequence, Set

from packforge.config import (
    MAX_PROMPT_LENGTH,
    MIN_CONCRETE_PROMPTS,
    MIN_PROMPT_LENGTH,
    MULTI_SLOT_TARGET,
    NATURAL_EN_LEVELS,
    NATURAL_EN_SCENARIOS,
    load_quality_rules,
)
from packforge.models.ingest import DraftPack, GateIssue, QualityGateResult
from packforge.models.quality_rules import QualityRules

logger = logging.getLogger(__name__)

_DIGIT_RE = re.compile(r"\d")
_CURRENCY_RE = re.compile(r"[€$£]")
_CLOCK_RE = re.compile(r"\b\d{1,2}:\d{2}\b")
_WORD_STRIP = ".,!?;:\"'()"

SUBJECT_PRONOUNS = {"ich", "du", "er", "sie", "es", "wir", "ihr"}


# ============================================================================
# Text predicates (shared with the prompt generator)
# ============================================================================


def count_scenario_tokens(text: str, tokens: Sequence[str]) -> int:
    """Number of distinct tokens occurring in text (case-insensitive substring)."""
    lower = text.lower()
    return sum(1 for token in dict.fromkeys(t.lower() for t in tokens) if token in lower)


def find_banned_phrase(text: str, banned_phrases: Sequence[str]) -> Optional[str]:
    """Return the first denylisted phrase found in text, or None."""
    lower = text.lower()
    for phrase in banned_phrases:
        if phrase.lower() in lower:
            return phrase
    return None


def has_concreteness_marker(text: str, weekday_tokens: Sequence[str] = ()) -> bool:
    """True if text has a digit, currency symbol, HH:MM time or weekday name."""
    if _DIGIT_RE.search(text) or _CURRENCY_RE.search(text) or _CLOCK_RE.search(text):
        return True
    lower = text.lower()
    return any(day in lower for day in weekday_tokens)


def has_formal_marker(text: str, markers: Sequence[str] = ("Sie", "Ihnen")) -> bool:
    """True if text contains a formal-address marker as a whole, case-sensitive word."""
    return any(re.search(rf"\b{re.escape(marker)}\b", text) for marker in markers)


def extract_verbs(texts: Sequence[str]) -> Set[str]:
    """Heuristic verb detection: the word next to a subject pronoun.

    Handles statements ("Ich brauche ...") and verb-first questions
    ("Brauchen Sie ...").
    """
    verbs: Set[str] = set()
    for text in texts:
        words = [w.strip(_WORD_STRIP) for w in text.split()]
        if len(words) < 2:
            continue
        first, second = words[0].lower(), words[1].lower()
        if first in SUBJECT_PRONOUNS:
            verbs.add(second)
        elif second in SUBJECT_PRONOUNS:
            verbs.add(first)
    return verbs


def requires_natural_en(scenario: str, level: str) -> bool:
    return scenario in NATURAL_EN_SCENARIOS or level.upper() in NATURAL_EN_LEVELS


def multi_slot_rate(slots_changed: Sequence[Optional[Sequence[str]]]) -> float:
    """Fraction of prompts whose slotsChanged lists 2 or more slots."""
    if not slots_changed:
        return 0.0
    multi = sum(1 for changed in slots_changed if changed and len(changed) >= 2)
    return multi / len(slots_changed)


# ============================================================================
# Gate
# ============================================================================


def run_quality_gates(pack: DraftPack, rules: Optional[QualityRules] = None) -> QualityGateResult:
    """Run every gate rule over a draft pack.

    Args:
        pack: Draft pack to evaluate (not modified)
        rules: Quality rule data (default: packforge.config.load_quality_rules())

    Returns:
        QualityGateResult with itemized failures and warnings
    """
    rules = rules or load_quality_rules()
    failures: List[GateIssue] = []
    warnings: List[GateIssue] = []

    if not pack.prompts:
        failures.append(
            GateIssue(pack_id=pack.id, rule="prompt_count", reason="Pack has no prompts")
        )
        return QualityGateResult(passed=False, failures=failures, warnings=warnings)

    scenario_tokens = rules.tokens_for(pack.scenario)
    natural_required = requires_natural_en(pack.scenario, pack.level)

    for prompt in pack.prompts:
        if scenario_tokens:
            token_count = count_scenario_tokens(prompt.text, scenario_tokens)
            if token_count < rules.min_scenario_tokens:
                failures.append(
                    GateIssue(
                        prompt_id=prompt.id,
                        pack_id=pack.id,
                        rule="scenario_tokens",
                        reason=(
                            f"Prompt contains only {token_count} scenario token(s), "
                            f"requires at least {rules.min_scenario_tokens}"
                        ),
                    )
                )

        phrase = find_banned_phrase(prompt.text, rules.banned_phrases)
        if phrase:
            failures.append(
                GateIssue(
                    prompt_id=prompt.id,
                    pack_id=pack.id,
                    rule="banned_phrases",
                    reason=f"Prompt contains banned phrase '{phrase}'",
                )
            )

        length = len(prompt.text)
        if length < MIN_PROMPT_LENGTH or length > MAX_PROMPT_LENGTH:
            failures.append(
                GateIssue(
                    prompt_id=prompt.id,
                    pack_id=pack.id,
                    rule="prompt_length",
                    reason=(
                        f"Prompt length {length} is outside valid range "
                        f"({MIN_PROMPT_LENGTH}-{MAX_PROMPT_LENGTH})"
                    ),
                )
            )

        if natural_required and not (prompt.natural_en or "").strip():
            failures.append(
                GateIssue(
                    prompt_id=prompt.id,
                    pack_id=pack.id,
                    rule="natural_en_required",
                    reason="natural_en is required for government_office scenario or A2+ level",
                )
            )

    rate = multi_slot_rate([p.slots_changed for p in pack.prompts])
    if rate < MULTI_SLOT_TARGET:
        failures.append(
            GateIssue(
                pack_id=pack.id,
                rule="multi_slot_variation",
                reason=(
                    f"Only {rate * 100:.1f}% of prompts have 2+ slotsChanged, "
                    f"requires at least {MULTI_SLOT_TARGET * 100:.0f}%"
                ),
            )
        )

    if pack.speech_register == "formal" and not any(
        has_formal_marker(p.text, rules.formal_markers) for p in pack.prompts
    ):
        failures.append(
            GateIssue(
                pack_id=pack.id,
                rule="register_consistency",
                reason='Formal register requires at least one prompt with "Sie" or "Ihnen"',
            )
        )

    concrete = sum(
        1 for p in pack.prompts if has_concreteness_marker(p.text, rules.weekday_tokens)
    )
    if concrete < MIN_CONCRETE_PROMPTS:
        failures.append(
            GateIssue(
                pack_id=pack.id,
                rule="concreteness_markers",
                reason=(
                    f"Only {concrete} prompt(s) have concreteness markers, "
                    f"requires at least {MIN_CONCRETE_PROMPTS}"
                ),
            )
        )

    verbs = extract_verbs([p.text for p in pack.prompts])
    if len(verbs) < 2:
        warnings.append(
            GateIssue(
                pack_id=pack.id,
                rule="verb_variation",
                reason=f"Only {len(verbs)} distinct verb(s) found, recommend at least 2",
            )
        )

    result = QualityGateResult(passed=not failures, failures=failures, warnings=warnings)
    logger.debug(
        f"Quality gates for {pack.id}: passed={result.passed}, "
        f"{len(failures)} failures, {len(warnings)} warnings"
    )
    return result
