"""Pydantic models for pipeline entities, scenario templates and quality rules."""

from packforge.models.ingest import (
    DraftPack,
    DraftPrompt,
    ExtractedSignal,
    GateIssue,
    IngestionConfig,
    IngestionMetadata,
    IngestReport,
    PlannedPack,
    PromptIntent,
    QualityGateResult,
    TextChunk,
)
from packforge.models.quality_rules import QualityRules
from packforge.models.scenario_template import ScenarioTemplate, StepBlueprint

__all__ = [
    "DraftPack",
    "DraftPrompt",
    "ExtractedSignal",
    "GateIssue",
    "IngestionConfig",
    "IngestionMetadata",
    "IngestReport",
    "PlannedPack",
    "PromptIntent",
    "QualityGateResult",
    "QualityRules",
    "ScenarioTemplate",
    "StepBlueprint",
    "TextChunk",
]
