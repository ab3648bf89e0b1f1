"""Typed schema for per-scenario generation templates.

Templates are JSON files (one per scenario) validated at load time. Missing
or malformed fields fail fast with TemplateValidationError instead of
surfacing later as KeyErrors inside the generator.
"""

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

# Canonical slot order used to build sentence patterns
SLOT_ORDER = ["subject", "verb", "object", "modifier", "time", "location"]

# Slot name -> slotBanks key
SLOT_BANK_KEYS = {
    "subject": "subjects",
    "verb": "verbs",
    "object": "objects",
    "modifier": "modifiers",
    "time": "time",
    "location": "location",
}


class StepRules(BaseModel):
    """Optional per-step generation rules."""

    required_slots: Optional[List[str]] = Field(None, alias="requiredSlots")
    mood: Literal["statement", "question"] = "statement"

    model_config = ConfigDict(populate_by_name=True)


class StepBlueprint(BaseModel):
    """One step of the session blueprint."""

    id: str
    title: str
    prompt_count: int = Field(..., alias="promptCount", ge=1)
    rules: Optional[StepRules] = None

    model_config = ConfigDict(populate_by_name=True)


class TemplateConstraints(BaseModel):
    """Generation constraints declared by a template."""

    verb_position: Optional[str] = Field(None, alias="verbPosition")
    required_tokens_per_prompt: int = Field(1, alias="requiredTokensPerPrompt", ge=0)

    model_config = ConfigDict(populate_by_name=True)


class ScenarioTemplate(BaseModel):
    """Per-scenario template driving pack planning and prompt synthesis.

    Validation Rules:
    - every variation slot and every step's required slot must be a known slot
    - every slot used by a step must have a non-empty bank
    """

    schema_version: int = Field(default=1, alias="schemaVersion")
    scenario_id: str = Field(..., alias="scenarioId")
    default_register: Literal["formal", "neutral", "informal"] = Field(
        ..., alias="defaultRegister"
    )
    primary_structure: str = Field(..., alias="primaryStructure")
    variation_slots: List[str] = Field(..., alias="variationSlots", min_length=1)
    slot_banks: Dict[str, List[str]] = Field(..., alias="slotBanks")
    required_tokens: List[str] = Field(..., alias="requiredTokens", min_length=1)
    step_blueprint: List[StepBlueprint] = Field(..., alias="stepBlueprint", min_length=1)
    constraints: TemplateConstraints = Field(default_factory=TemplateConstraints)

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode="after")
    def validate_slots(self) -> "ScenarioTemplate":
        """Ensure every referenced slot is known and has values to sample."""
        for slot in self.variation_slots:
            if slot not in SLOT_BANK_KEYS:
                raise ValueError(f"Unknown variation slot '{slot}'")

        for step in self.step_blueprint:
            for slot in self.slots_for_step(step):
                if slot not in SLOT_BANK_KEYS:
                    raise ValueError(f"Step '{step.id}' requires unknown slot '{slot}'")
                if not self.bank_for(slot):
                    raise ValueError(
                        f"Step '{step.id}' requires slot '{slot}' but slotBanks."
                        f"{SLOT_BANK_KEYS[slot]} is empty or missing"
                    )
        return self

    def bank_for(self, slot: str) -> List[str]:
        """Return the value bank for a slot name ([] if absent)."""
        return self.slot_banks.get(SLOT_BANK_KEYS.get(slot, slot), [])

    def slots_for_step(self, step: StepBlueprint) -> List[str]:
        """Return the step's slots in canonical sentence order."""
        slots = (step.rules.required_slots if step.rules else None) or self.variation_slots
        return sorted(
            slots,
            key=lambda s: SLOT_ORDER.index(s) if s in SLOT_ORDER else len(SLOT_ORDER),
        )

    @property
    def total_prompt_count(self) -> int:
        return sum(step.prompt_count for step in self.step_blueprint)
