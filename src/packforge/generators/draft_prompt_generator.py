"""Draft prompt synthesis by slot-template substitution.

For each step of the scenario template's blueprint, slot values are sampled
from the template banks (preferring entries that contain tokens from the
pack's signals), the verb is conjugated for the subject and the sentence is
rendered in canonical slot order. Candidates are searched with a bounded
`sample_until_valid` loop; exhausting the budget is fatal for the pack.

All sampling uses a `random.Random` seeded from the pack id and the pack's
signal tokens, so generation is a deterministic function of its inputs.
"""

import logging
import random
from typing import Any, Callable, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from packforge.config import (
    MAX_PROMPT_LENGTH,
    MAX_SAMPLING_ATTEMPTS,
    MIN_CONCRETE_PROMPTS,
    MIN_PROMPT_LENGTH,
    MULTI_SLOT_TARGET,
    NEAR_DUPLICATE_THRESHOLD,
    load_quality_rules,
)
from packforge.errors import GenerationExhaustedError
from packforge.generators.conjugation import conjugate_verb
from packforge.generators.glosses import (
    determine_intent,
    generate_gloss_en,
    generate_literal_en,
    generate_natural_en,
    generate_notes_lite,
)
from packforge.generators.pack_planner import jaccard_similarity
from packforge.models.ingest import DraftPrompt, ExtractedSignal, PlannedPack
from packforge.models.quality_rules import QualityRules
from packforge.models.scenario_template import ScenarioTemplate, StepBlueprint
from packforge.parsers.template_loader import load_scenario_template
from packforge.utils.hashing import seed_from_text
from packforge.validators.quality_gates import (
    count_scenario_tokens,
    find_banned_phrase,
    has_concreteness_marker,
    has_formal_marker,
)

logger = logging.getLogger(__name__)

SIGNAL_PREFERENCE = 0.6
CLOCK_TIMES = ["9:00", "9:30", "10:00", "10:30", "11:00", "11:30"]
FORMAL_SUBJECT = "Sie"

# Slots recorded in prompt metadata; time and location fold into modifier
METADATA_SLOTS = ["subject", "verb", "object", "modifier", "complement"]
FOLDED_SLOTS = ["time", "location"]

# Subject words lowercased when the subject follows the verb
_LOWERCASE_AFTER_VERB = {
    "ich", "du", "er", "es", "wir", "ihr", "der", "die", "das",
    "mein", "meine", "unser", "unsere", "ein", "eine",
}


# ============================================================================
# Bounded search
# ============================================================================


class Ok(BaseModel):
    """Successful search result."""

    value: Any
    attempts: int

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)


class Err(BaseModel):
    """Exhausted search: no candidate passed the validator."""

    attempts: int
    last_reason: Optional[str] = None

    model_config = ConfigDict(frozen=True)


SampleResult = Union[Ok, Err]


def sample_until_valid(
    candidate_fn: Callable[[int], Any],
    validator: Callable[[Any], Optional[str]],
    max_attempts: int = MAX_SAMPLING_ATTEMPTS,
) -> SampleResult:
    """Draw candidates until one passes validation or the budget runs out.

    Args:
        candidate_fn: Called with the attempt number, returns a candidate
        validator: Returns None for a valid candidate, else a rejection reason
        max_attempts: Attempt budget

    Returns:
        Ok(value, attempts) or Err(attempts, last_reason)
    """
    last_reason = None
    for attempt in range(max_attempts):
        candidate = candidate_fn(attempt)
        reason = validator(candidate)
        if reason is None:
            return Ok(value=candidate, attempts=attempt + 1)
        last_reason = reason
    return Err(attempts=max_attempts, last_reason=last_reason)


# ============================================================================
# Candidate sentences
# ============================================================================


def _subject_after_verb(subject: str) -> str:
    first = subject.split()[0] if subject.split() else ""
    if subject != FORMAL_SUBJECT and first.lower() in _LOWERCASE_AFTER_VERB:
        return subject[:1].lower() + subject[1:]
    return subject


class SentenceCandidate(BaseModel):
    """Slot assignment for one prompt; `render()` produces the sentence.

    Slot values are stored unconjugated so a fixup can change the subject
    and re-render with correct agreement.
    """

    slots: Dict[str, str]
    slot_order: List[str]
    mood: Literal["statement", "question"] = "statement"
    suffix: str = ""

    def conjugated_slots(self) -> Dict[str, str]:
        slots = dict(self.slots)
        if slots.get("subject") and slots.get("verb"):
            slots["verb"] = conjugate_verb(slots["verb"], slots["subject"])
        return slots

    def render(self) -> str:
        slots = self.conjugated_slots()
        order = list(self.slot_order)
        if self.mood == "question" and "verb" in order and "subject" in order:
            order.remove("verb")
            order.insert(0, "verb")
            slots["subject"] = _subject_after_verb(slots["subject"])

        words = " ".join(slots[s] for s in order if slots.get(s))
        body = " ".join((words + self.suffix).split()).rstrip(".?!")
        if not body:
            return ""
        body = body[0].upper() + body[1:]
        return body + ("?" if self.mood == "question" else ".")

    def with_updates(self, **update) -> "SentenceCandidate":
        return self.model_copy(update=update)


class _GenerationContext(BaseModel):
    """Everything a pack's sampling needs, resolved once."""

    pack: PlannedPack
    scenario: str
    level: str
    template: ScenarioTemplate
    rules: QualityRules
    signal_tokens: List[str]
    rng: Any = Field(exclude=True)

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @property
    def required_token_count(self) -> int:
        return max(1, self.template.constraints.required_tokens_per_prompt)


def _relevant_signal_tokens(pack: PlannedPack, signals: List[ExtractedSignal]) -> List[str]:
    targets = set(pack.target_chunks)
    tokens: List[str] = []
    for signal in signals:
        if signal.chunk_id in targets:
            tokens.extend(signal.top_tokens)
    return list(dict.fromkeys(tokens or pack.top_tokens))


def _sample_value(ctx: _GenerationContext, bank: List[str]) -> str:
    preferred = [
        value for value in bank
        if any(token in value.lower() for token in ctx.signal_tokens)
    ]
    if preferred and ctx.rng.random() < SIGNAL_PREFERENCE:
        return ctx.rng.choice(preferred)
    return ctx.rng.choice(bank)


def _inject_token(ctx: _GenerationContext, candidate: SentenceCandidate) -> SentenceCandidate:
    """Append one missing required token to the object (else modifier) slot."""
    text = candidate.render().lower()
    missing = sorted(t for t in ctx.template.required_tokens if t.lower() not in text)
    if not missing:
        return candidate

    token = ctx.rng.choice(missing)
    word = token[:1].upper() + token[1:]
    slots = dict(candidate.slots)
    for slot in ("object", "modifier"):
        if slots.get(slot):
            slots[slot] = f"{slots[slot]} {word}"
            return candidate.with_updates(slots=slots)
    return candidate.with_updates(suffix=f"{candidate.suffix} {word}")


def _build_candidate(
    ctx: _GenerationContext, step: StepBlueprint, slot_order: List[str]
) -> SentenceCandidate:
    slots = {}
    for slot in slot_order:
        bank = ctx.template.bank_for(slot)
        if bank:
            slots[slot] = _sample_value(ctx, bank)

    mood = step.rules.mood if step.rules else "statement"
    candidate = SentenceCandidate(slots=slots, slot_order=slot_order, mood=mood)

    if count_scenario_tokens(candidate.render(), ctx.template.required_tokens) < ctx.required_token_count:
        candidate = _inject_token(ctx, candidate)
    return candidate


def _rejection_reason(
    ctx: _GenerationContext,
    candidate: SentenceCandidate,
    previous_texts: List[str],
) -> Optional[str]:
    """Return why a candidate is unusable, or None if it is valid."""
    text = candidate.render()
    if not MIN_PROMPT_LENGTH <= len(text) <= MAX_PROMPT_LENGTH:
        return f"length {len(text)} outside {MIN_PROMPT_LENGTH}-{MAX_PROMPT_LENGTH}"

    phrase = find_banned_phrase(text, ctx.rules.banned_phrases)
    if phrase:
        return f"banned phrase '{phrase}'"

    token_count = count_scenario_tokens(text, ctx.template.required_tokens)
    if token_count < ctx.required_token_count:
        return f"only {token_count} required token(s), needs {ctx.required_token_count}"

    if text in previous_texts:
        return "duplicate of an earlier prompt"

    if previous_texts:
        similarity = jaccard_similarity(text.lower().split(), previous_texts[-1].lower().split())
        if similarity >= NEAR_DUPLICATE_THRESHOLD:
            return f"near-duplicate of previous prompt (jaccard {similarity:.2f})"
    return None


# ============================================================================
# slotsChanged tracking
# ============================================================================


def _changed_slots(
    slot_order: List[str],
    slots: Dict[str, str],
    previous: Optional[Dict[str, str]],
) -> List[str]:
    if previous is None:
        return slot_order[:2]
    return [s for s in slot_order if previous.get(s) != slots.get(s)]


def _pad_slots_changed(
    changed: List[str],
    slot_order: List[str],
    variation_slots: List[str],
    multi_count: int,
    prompt_count: int,
) -> Tuple[List[str], List[str]]:
    """Pad slotsChanged to two entries when the pack would fall below the target.

    The rate is checked as if the current prompt were single-slot, so the
    pack's multi-slot rate never drops below MULTI_SLOT_TARGET after any
    prompt. Returns (slots_changed, padded_slots).
    """
    if len(changed) >= 2 or multi_count / (prompt_count + 1) >= MULTI_SLOT_TARGET:
        return changed, []

    padded: List[str] = []
    for slot in list(dict.fromkeys(slot_order + variation_slots)):
        if len(changed) + len(padded) >= 2:
            break
        if slot not in changed:
            padded.append(slot)
    return changed + padded, padded


# ============================================================================
# Prompt assembly
# ============================================================================


def _slot_metadata(candidate: SentenceCandidate) -> Optional[Dict[str, List[str]]]:
    slots = candidate.conjugated_slots()
    metadata: Dict[str, List[str]] = {}
    for slot in candidate.slot_order:
        value = slots.get(slot)
        if not value:
            continue
        if slot in METADATA_SLOTS:
            metadata[slot] = [value]
        elif slot in FOLDED_SLOTS:
            metadata.setdefault("modifier", []).append(value)
    return metadata or None


def _to_prompt(
    ctx: _GenerationContext,
    prompt_id: str,
    candidate: SentenceCandidate,
    slots_changed: List[str],
    slots_padded: List[str],
) -> DraftPrompt:
    text = candidate.render()
    intent = determine_intent(text, ctx.scenario)
    gloss_en = generate_gloss_en(text, ctx.scenario, intent)
    return DraftPrompt(
        id=prompt_id,
        text=text,
        intent=intent,
        gloss_en=gloss_en,
        natural_en=generate_natural_en(text, ctx.scenario, intent, gloss_en),
        literal_en=generate_literal_en(text),
        notes_lite=generate_notes_lite(text),
        audio_url=f"/v1/audio/{ctx.pack.pack_id}/{prompt_id}.mp3",
        slots_changed=slots_changed or None,
        slots_padded=slots_padded or None,
        slots=_slot_metadata(candidate),
    )


def _ensure_concreteness(
    ctx: _GenerationContext,
    prompts: List[DraftPrompt],
    candidates: List[SentenceCandidate],
) -> None:
    """Append a clock time to the first prompts lacking a concreteness marker."""
    weekdays = ctx.rules.weekday_tokens
    concrete = sum(1 for p in prompts if has_concreteness_marker(p.text, weekdays))

    for i, prompt in enumerate(prompts):
        if concrete >= MIN_CONCRETE_PROMPTS:
            break
        if has_concreteness_marker(prompt.text, weekdays):
            continue

        clock = ctx.rng.choice(CLOCK_TIMES)
        updated = candidates[i].with_updates(suffix=f"{candidates[i].suffix} um {clock}")
        if len(updated.render()) > MAX_PROMPT_LENGTH:
            continue

        candidates[i] = updated
        prompts[i] = _to_prompt(
            ctx, prompt.id, updated, prompt.slots_changed or [], prompt.slots_padded or []
        )
        concrete += 1

    if concrete < MIN_CONCRETE_PROMPTS:
        logger.warning(
            f"Pack {ctx.pack.pack_id}: only {concrete} prompt(s) could be made concrete"
        )


def _ensure_formal_register(
    ctx: _GenerationContext,
    prompts: List[DraftPrompt],
    candidates: List[SentenceCandidate],
) -> None:
    """Re-render the first workable prompt with subject "Sie" if none is formal."""
    markers = ctx.rules.formal_markers
    if any(has_formal_marker(p.text, markers) for p in prompts):
        return

    previous_texts = [p.text for p in prompts]
    for i, prompt in enumerate(prompts):
        candidate = candidates[i]
        slot_order = candidate.slot_order
        if "subject" not in slot_order:
            slot_order = ["subject"] + slot_order
        updated = candidate.with_updates(
            slots={**candidate.slots, "subject": FORMAL_SUBJECT}, slot_order=slot_order
        )
        others = previous_texts[:i] + previous_texts[i + 1:]
        if _rejection_reason(ctx, updated, []) is not None or updated.render() in others:
            continue

        candidates[i] = updated
        prompts[i] = _to_prompt(
            ctx, prompt.id, updated, prompt.slots_changed or [], prompt.slots_padded or []
        )
        logger.debug(f"Pack {ctx.pack.pack_id}: switched {prompt.id} to formal address")
        return

    logger.warning(f"Pack {ctx.pack.pack_id}: no prompt could be switched to formal address")


def generate_draft_prompts(
    pack: PlannedPack,
    signals: List[ExtractedSignal],
    scenario: str,
    level: str,
    template: Optional[ScenarioTemplate] = None,
    rules: Optional[QualityRules] = None,
) -> List[DraftPrompt]:
    """Generate the prompts of one planned pack.

    Args:
        pack: Planned pack
        signals: All signals of the run (only the pack's target chunks are used)
        scenario: Scenario id
        level: CEFR level
        template: Scenario template (loaded by scenario when omitted)
        rules: Quality rule data (default: load_quality_rules())

    Returns:
        Prompts with sequential ids prompt-001, prompt-002, ...

    Raises:
        TemplateNotFoundError: If template is omitted and none exists
        GenerationExhaustedError: If a step's prompt cannot be produced within
            MAX_SAMPLING_ATTEMPTS attempts
    """
    template = template or load_scenario_template(scenario)
    rules = rules or load_quality_rules()

    signal_tokens = _relevant_signal_tokens(pack, signals)
    seed = seed_from_text("|".join([pack.pack_id, level, *signal_tokens]))
    ctx = _GenerationContext(
        pack=pack,
        scenario=scenario,
        level=level,
        template=template,
        rules=rules,
        signal_tokens=signal_tokens,
        rng=random.Random(seed),
    )

    prompts: List[DraftPrompt] = []
    candidates: List[SentenceCandidate] = []
    previous_slots: Optional[Dict[str, str]] = None
    multi_count = 0

    for step in template.step_blueprint:
        slot_order = template.slots_for_step(step)

        for _ in range(step.prompt_count):
            previous_texts = [p.text for p in prompts]
            result = sample_until_valid(
                lambda attempt: _build_candidate(ctx, step, slot_order),
                lambda candidate: _rejection_reason(ctx, candidate, previous_texts),
            )
            if isinstance(result, Err):
                logger.error(
                    f"Generation exhausted for pack {pack.pack_id}, step {step.id}",
                    extra={
                        "pack_id": pack.pack_id,
                        "step_id": step.id,
                        "attempts": result.attempts,
                        "last_reason": result.last_reason,
                    },
                )
                raise GenerationExhaustedError(
                    pack.pack_id, step.id, result.attempts, result.last_reason
                )

            candidate: SentenceCandidate = result.value
            changed = _changed_slots(slot_order, candidate.slots, previous_slots)
            changed, padded = _pad_slots_changed(
                changed, slot_order, pack.variation_slots, multi_count, len(prompts)
            )
            if len(changed) >= 2:
                multi_count += 1

            prompt_id = f"prompt-{len(prompts) + 1:03d}"
            prompts.append(_to_prompt(ctx, prompt_id, candidate, changed, padded))
            candidates.append(candidate)
            previous_slots = candidate.slots

    _ensure_concreteness(ctx, prompts, candidates)
    if template.default_register == "formal":
        _ensure_formal_register(ctx, prompts, candidates)

    logger.info(
        f"Generated {len(prompts)} prompts for pack {pack.pack_id}",
        extra={"pack_id": pack.pack_id, "prompt_count": len(prompts)},
    )
    return prompts
