"""Assemble a DraftPack from a planned pack and its generated prompts."""

import logging
from typing import List

from packforge.models.ingest import (
    CognitiveLoad,
    DraftPack,
    DraftPrompt,
    DrillType,
    IngestionMetadata,
    PackAnalytics,
    PlannedPack,
    SessionPlan,
    SessionPlanStep,
)
from packforge.models.scenario_template import ScenarioTemplate

logger = logging.getLogger(__name__)

MIN_ESTIMATED_MINUTES = 15
MAX_ESTIMATED_MINUTES = 120

ROLEPLAY_SCENARIOS = {"government_office", "work", "restaurant"}

SCENARIO_GOALS = {
    "government_office": "Handle appointments and paperwork at a German public office",
    "work": "Coordinate meetings and tasks with colleagues",
    "restaurant": "Reserve a table, order and pay in a restaurant",
    "shopping": "Ask about prices and pay in a shop",
    "doctor": "Book an appointment and describe symptoms at the doctor's",
    "housing": "Talk to a landlord about an apartment",
}

COMMON_MISTAKES = {
    "formal": [
        "Using 'du' instead of formal 'Sie'",
        "Forgetting the plural verb form after 'Sie'",
    ],
    "neutral": [
        "Verb not in second position",
        "Missing -t ending for third-person subjects",
    ],
    "informal": [
        "Missing -st ending after 'du'",
        "Verb not in second position",
    ],
}


def estimate_minutes(prompt_count: int) -> int:
    return max(MIN_ESTIMATED_MINUTES, min(MAX_ESTIMATED_MINUTES, prompt_count))


def determine_drill_type(scenario: str, primary_structure: str) -> DrillType:
    if scenario in ROLEPLAY_SCENARIOS:
        return DrillType.ROLEPLAY_BOUNDED
    structure = primary_structure.lower()
    if "switch" in structure or "pattern" in structure:
        return DrillType.PATTERN_SWITCH
    return DrillType.SUBSTITUTION


def determine_cognitive_load(level: str, slot_count: int) -> CognitiveLoad:
    """Low for A1 with at most 2 slots; medium for other A1 or A2 with at most 3."""
    level = level.upper()
    if level == "A1" and slot_count <= 2:
        return CognitiveLoad.LOW
    if level == "A1" or (level == "A2" and slot_count <= 3):
        return CognitiveLoad.MEDIUM
    return CognitiveLoad.HIGH


def build_session_plan(template: ScenarioTemplate, prompts: List[DraftPrompt]) -> SessionPlan:
    """One session step per blueprint step, taking prompt ids in order."""
    steps = []
    cursor = 0
    for step in template.step_blueprint:
        prompt_ids = [p.id for p in prompts[cursor:cursor + step.prompt_count]]
        cursor += step.prompt_count
        steps.append(SessionPlanStep(id=step.id, title=step.title, prompt_ids=prompt_ids))
    return SessionPlan(version=1, steps=steps)


def build_analytics(
    planned: PlannedPack, template: ScenarioTemplate, scenario: str, level: str
) -> PackAnalytics:
    slots = planned.variation_slots
    return PackAnalytics(
        goal=SCENARIO_GOALS.get(scenario, f"Practice {scenario.replace('_', ' ')} conversations"),
        constraints=[
            f"Register: {planned.speech_register}",
            f"Structure: {planned.primary_structure}",
            *([f"Verb position: {template.constraints.verb_position}"]
              if template.constraints.verb_position else []),
        ],
        levers=list(slots),
        success_criteria=[
            "Uses scenario vocabulary in every sentence",
            "Subject and verb agree",
            f"Varies {', '.join(slots)} across prompts",
        ],
        common_mistakes=list(
            COMMON_MISTAKES.get(planned.speech_register, COMMON_MISTAKES["neutral"])
        ),
        drill_type=determine_drill_type(scenario, planned.primary_structure),
        cognitive_load=determine_cognitive_load(level, len(slots)),
    )


def build_draft_pack(
    planned: PlannedPack,
    prompts: List[DraftPrompt],
    template: ScenarioTemplate,
    scenario: str,
    level: str,
    metadata: IngestionMetadata,
) -> DraftPack:
    """Build the draft pack written to the workspace draft directory.

    Args:
        planned: Planned pack (id, title, structure, tags)
        prompts: Generated prompts in order
        template: Scenario template (step blueprint drives the session plan)
        scenario: Scenario id
        level: CEFR level
        metadata: Ingestion provenance; chunk ids default to the pack's targets

    Returns:
        DraftPack including `_ingestionMetadata`
    """
    if not metadata.chunk_ids:
        metadata = metadata.model_copy(update={"chunk_ids": list(planned.target_chunks)})

    pack = DraftPack(
        id=planned.pack_id,
        title=planned.title,
        level=level,
        estimated_minutes=estimate_minutes(len(prompts)),
        description=(
            f"{template.primary_structure} practice for {scenario.replace('_', ' ')} "
            f"at level {level}."
        ),
        scenario=scenario,
        register=planned.speech_register,
        primary_structure=planned.primary_structure,
        variation_slots=list(planned.variation_slots),
        outline=[step.title for step in template.step_blueprint],
        prompts=prompts,
        session_plan=build_session_plan(template, prompts),
        tags=list(dict.fromkeys(planned.tags)),
        analytics=build_analytics(planned, template, scenario, level),
        ingestion_metadata=metadata,
    )

    logger.debug(f"Built draft pack {pack.id} with {len(prompts)} prompts")
    return pack
