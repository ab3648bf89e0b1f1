"""Immutable quality-rule data shared by the prompt generator and the gates."""

from typing import Dict, List, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


class QualityRules(BaseModel):
    """Denylist, concreteness vocabulary and scenario token dictionaries.

    Loaded once from data/quality_rules.json (see packforge.config) and passed
    explicitly; never mutated.
    """

    banned_phrases: Tuple[str, ...] = Field(
        ..., alias="bannedPhrases", min_length=1, description="Generic filler phrases"
    )
    weekday_tokens: Tuple[str, ...] = Field(
        default=(), alias="weekdayTokens", description="Weekday names counted as concrete"
    )
    scenario_tokens: Dict[str, Tuple[str, ...]] = Field(
        default_factory=dict,
        alias="scenarioTokens",
        description="Per-scenario vocabulary checked by the scenario_tokens gate",
    )
    formal_markers: Tuple[str, ...] = Field(
        default=("Sie", "Ihnen"), alias="formalMarkers"
    )
    min_scenario_tokens: int = Field(default=2, alias="minScenarioTokens", ge=0)

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @field_validator("banned_phrases", "weekday_tokens")
    @classmethod
    def lowercase_phrases(cls, v: Tuple[str, ...]) -> Tuple[str, ...]:
        """Store phrases lowercased for case-insensitive matching."""
        return tuple(p.lower() for p in v)

    def tokens_for(self, scenario: str) -> List[str]:
        """Return the token dictionary for a scenario, or [] when unknown."""
        return list(self.scenario_tokens.get(scenario, ()))
