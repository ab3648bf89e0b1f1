"""Pack planning: decide which packs to generate from extracted signals.

Planning runs in five passes:

1. group signals by primary intent (first detected intent)
2. build one pack per group from the group's aggregated top tokens
3. top up to `min_packs` by clustering unused signals on token similarity
4. merge similar packs while above `max_packs`
5. drop packs whose token overlap with an earlier pack reaches the threshold

No randomness is involved; identical signal lists give identical plans.
"""

import hashlib
import logging
import re
from collections import Counter
from typing import Dict, Iterable, List, Optional, Sequence

from packforge.config import (
    MAX_PACKS,
    MIN_PACKS,
    OVERLAP_THRESHOLD,
    SPLIT_SIMILARITY_THRESHOLD,
)
from packforge.models.ingest import ExtractedSignal, PlannedPack
from packforge.models.scenario_template import ScenarioTemplate
from packforge.parsers.template_loader import load_scenario_template

logger = logging.getLogger(__name__)

MAX_PACK_TOKENS = 15
PACK_ID_TOKEN_COUNT = 5
DEFAULT_INTENT = "inform"

INTENT_LABELS = {
    "request_appointment": "Termin vereinbaren",
    "submit_documents": "Unterlagen einreichen",
    "register": "Anmeldung",
    "request_information": "Auskunft einholen",
    "schedule_meeting": "Besprechung planen",
    "order": "Bestellen",
    "make_reservation": "Reservierung",
    "ask_price": "Preis erfragen",
    "request": "Anfrage",
    "ask": "Frage",
    "inform": "Information",
    "schedule": "Terminplanung",
}

_TRANSLITERATION = str.maketrans({"ä": "ae", "ö": "oe", "ü": "ue", "ß": "ss"})


def jaccard_similarity(tokens_a: Iterable[str], tokens_b: Iterable[str]) -> float:
    """Jaccard similarity of two token collections (0.0 for two empty sets)."""
    set_a, set_b = set(tokens_a), set(tokens_b)
    union = set_a | set_b
    if not union:
        return 0.0
    return len(set_a & set_b) / len(union)


def aggregate_tokens(token_lists: Iterable[Sequence[str]]) -> List[str]:
    """Rank tokens by how many lists contain them, ties by first appearance."""
    counts: Counter = Counter()
    for tokens in token_lists:
        counts.update(tokens)
    return [token for token, _ in counts.most_common(MAX_PACK_TOKENS)]


def create_topic_slug(intent_category: str, top_tokens: Sequence[str]) -> str:
    """Slug from the intent label, or from the top three tokens for 'inform'."""
    if intent_category and intent_category != DEFAULT_INTENT:
        return intent_category.replace("_", "-").lower()

    words = [t.lower().translate(_TRANSLITERATION) for t in top_tokens[:3]]
    slug = re.sub(r"[^a-z0-9-]", "", "-".join(words)).strip("-")
    return slug or "general"


def generate_pack_id(scenario: str, topic_slug: str, level: str, top_tokens: Sequence[str]) -> str:
    """Stable pack id: <scenario>_<slug>_<level>_<sha1 prefix>.

    Example:
        >>> generate_pack_id("work", "schedule-meeting", "A2", ["meeting"])[:25]
        'work_schedule-meeting_A2_'
    """
    hash_input = "_".join([scenario, topic_slug, level, *top_tokens[:PACK_ID_TOKEN_COUNT]])
    short_hash = hashlib.sha1(hash_input.encode("utf-8")).hexdigest()[:8]
    return f"{scenario}_{topic_slug}_{level}_{short_hash}"


def generate_title(intent_category: str, scenario: str, level: str) -> str:
    label = INTENT_LABELS.get(intent_category, intent_category.replace("_", " "))
    scenario_label = scenario.replace("_", " ").title()
    return f"{scenario_label} - {label} ({level})"


def _primary_intent(signal: ExtractedSignal) -> str:
    return signal.detected_intents[0] if signal.detected_intents else DEFAULT_INTENT


def _build_pack(
    group: List[ExtractedSignal],
    intent_category: str,
    scenario: str,
    level: str,
    template: ScenarioTemplate,
) -> PlannedPack:
    tokens = aggregate_tokens(s.top_tokens for s in group)
    topic_slug = create_topic_slug(intent_category, tokens)
    return PlannedPack(
        pack_id=generate_pack_id(scenario, topic_slug, level, tokens),
        title=generate_title(intent_category, scenario, level),
        primary_structure=template.primary_structure,
        variation_slots=list(template.variation_slots),
        register=template.default_register,
        tags=[scenario, intent_category, *tokens[:3]],
        target_chunks=[s.chunk_id for s in group],
        top_tokens=tokens,
        intent_category=intent_category,
    )


def _additional_packs(
    signals: List[ExtractedSignal],
    existing: List[PlannedPack],
    scenario: str,
    level: str,
    template: ScenarioTemplate,
    count: int,
) -> List[PlannedPack]:
    """Cluster signals not used by any pack into up to `count` extra packs."""
    used = {chunk_id for pack in existing for chunk_id in pack.target_chunks}
    available = [s for s in signals if s.chunk_id not in used]

    groups: List[List[ExtractedSignal]] = []
    for signal in available:
        for group in groups:
            similarity = jaccard_similarity(
                signal.top_tokens[:PACK_ID_TOKEN_COUNT],
                group[0].top_tokens[:PACK_ID_TOKEN_COUNT],
            )
            if similarity > SPLIT_SIMILARITY_THRESHOLD:
                group.append(signal)
                break
        else:
            groups.append([signal])

    return [
        _build_pack(group, _primary_intent(group[0]), scenario, level, template)
        for group in groups[:count]
    ]


def _merge_similar(
    packs: List[PlannedPack], max_packs: int, overlap_threshold: float
) -> List[PlannedPack]:
    """Greedily fold later packs into earlier similar ones, then cap the count."""
    merged: List[PlannedPack] = []
    used = set()

    for i, pack in enumerate(packs):
        if i in used:
            continue
        used.add(i)
        current = pack

        for j in range(i + 1, len(packs)):
            if j in used:
                continue
            other = packs[j]
            if jaccard_similarity(pack.top_tokens, other.top_tokens) > overlap_threshold:
                current = current.model_copy(
                    update={
                        "target_chunks": current.target_chunks + other.target_chunks,
                        "top_tokens": aggregate_tokens([current.top_tokens, other.top_tokens]),
                        "tags": list(dict.fromkeys(current.tags + other.tags)),
                    }
                )
                used.add(j)

        merged.append(current)

    if len(merged) > max_packs:
        logger.info(f"Dropping {len(merged) - max_packs} packs beyond max_packs={max_packs}")
    return merged[:max_packs]


def _filter_overlapping(packs: List[PlannedPack], overlap_threshold: float) -> List[PlannedPack]:
    """Keep first-seen packs; drop any pack too similar to an accepted one."""
    accepted: List[PlannedPack] = []
    for pack in packs:
        if any(
            jaccard_similarity(pack.top_tokens, kept.top_tokens) >= overlap_threshold
            for kept in accepted
        ):
            logger.debug(f"Dropping overlapping pack {pack.pack_id}")
            continue
        accepted.append(pack)
    return accepted


def plan_packs(
    signals: List[ExtractedSignal],
    scenario: str,
    level: str,
    template: Optional[ScenarioTemplate] = None,
    min_packs: int = MIN_PACKS,
    max_packs: int = MAX_PACKS,
    overlap_threshold: float = OVERLAP_THRESHOLD,
) -> List[PlannedPack]:
    """Plan the packs to generate for one ingestion run.

    Args:
        signals: Extracted signals in chunk order
        scenario: Scenario id
        level: CEFR level
        template: Scenario template (loaded by scenario when omitted)
        min_packs: Target minimum pack count (best effort)
        max_packs: Hard maximum pack count
        overlap_threshold: Jaccard ceiling between the token sets of two packs

    Returns:
        Between 0 and max_packs PlannedPack objects

    Raises:
        TemplateNotFoundError: If template is omitted and none exists for the scenario
    """
    if template is None:
        template = load_scenario_template(scenario)

    groups: Dict[str, List[ExtractedSignal]] = {}
    for signal in signals:
        groups.setdefault(_primary_intent(signal), []).append(signal)

    packs = [
        _build_pack(group, intent, scenario, level, template)
        for intent, group in groups.items()
    ]
    logger.debug(f"Built {len(packs)} packs from {len(groups)} intent groups")

    if signals and len(packs) < min_packs:
        extra = _additional_packs(signals, packs, scenario, level, template, min_packs - len(packs))
        logger.debug(f"Added {len(extra)} packs from token clustering")
        packs.extend(extra)

    if len(packs) > max_packs:
        packs = _merge_similar(packs, max_packs, overlap_threshold)

    packs = _filter_overlapping(packs, overlap_threshold)

    logger.info(
        f"Planned {len(packs)} packs for {scenario}/{level} from {len(signals)} signals",
        extra={"scenario": scenario, "level": level, "pack_count": len(packs)},
    )
    return packs
