"""Pydantic models for all ingestion pipeline entities.

Python attributes are snake_case; serialized JSON keeps the content wire
format (camelCase keys, `gloss_en`/`natural_en`, `_ingestionMetadata`) through
field aliases. Dump with `model_dump(mode="json", by_alias=True,
exclude_none=True)` when writing content files.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

CEFR_LEVELS = ["A1", "A2", "B1", "B2", "C1", "C2"]


# ============================================================================
# Enums
# ============================================================================


class InputSource(str, Enum):
    """Where the raw ingestion text comes from."""

    PDF = "pdf"
    URL = "url"
    TEXT = "text"


class PromptIntent(str, Enum):
    """Communicative intent of a generated prompt."""

    REQUEST = "request"
    ASK = "ask"
    SCHEDULE = "schedule"
    ORDER = "order"
    ASK_PRICE = "ask_price"
    THANK = "thank"
    GREET = "greet"
    GOODBYE = "goodbye"
    CONFIRM = "confirm"
    APOLOGIZE = "apologize"
    INFORM = "inform"


class DrillType(str, Enum):
    """How a pack drills its structure."""

    SUBSTITUTION = "substitution"
    PATTERN_SWITCH = "pattern-switch"
    ROLEPLAY_BOUNDED = "roleplay-bounded"


class CognitiveLoad(str, Enum):
    """Estimated effort for a learner."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


EntityType = Literal["date", "time", "money", "address", "capitalized", "other"]


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class _FrozenWireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)


# ============================================================================
# Segmentation and signals
# ============================================================================


class TextChunk(_FrozenWireModel):
    """Content-addressed slice of the source text.

    chunk_id is the first 10 hex characters of SHA-1(normalized_text), so the
    same text always yields the same id.
    """

    chunk_id: str = Field(..., alias="chunkId", pattern="^[0-9a-f]{10}$")
    text: str = Field(..., description="Chunk text as it appears in the source")
    normalized_text: str = Field(
        ..., alias="normalizedText", description="Whitespace-normalized text"
    )
    char_start: int = Field(..., alias="charStart", ge=0)
    char_end: int = Field(..., alias="charEnd", ge=0)

    @model_validator(mode="after")
    def validate_range(self) -> "TextChunk":
        """Ensure the character range is not inverted."""
        if self.char_end < self.char_start:
            raise ValueError(
                f"charEnd ({self.char_end}) must not be before charStart ({self.char_start})"
            )
        return self


class TokenEvidence(_FrozenWireModel):
    """Token frequency evidence for a chunk."""

    token: str
    count: int = Field(..., ge=1)


class Entity(_FrozenWireModel):
    """Named-entity-like span found in a chunk."""

    type: EntityType
    value: str
    position: int = Field(..., ge=0, description="Character offset in the normalized text")


class ExtractedSignal(_FrozenWireModel):
    """Lexical signals derived from exactly one TextChunk."""

    chunk_id: str = Field(..., alias="chunkId")
    top_tokens: List[str] = Field(
        default_factory=list,
        alias="topTokens",
        max_length=15,
        description="Most frequent tokens, frequency descending",
    )
    detected_intents: List[str] = Field(default_factory=list, alias="detectedIntents")
    evidence: List[TokenEvidence] = Field(default_factory=list)
    entities: List[Entity] = Field(default_factory=list)
    action_verbs: List[str] = Field(default_factory=list, alias="actionVerbs")
    question_patterns: bool = Field(default=False, alias="questionPatterns")


# ============================================================================
# Planning
# ============================================================================


class PlannedPack(_FrozenWireModel):
    """A pack the planner decided to generate, before any prompt exists."""

    pack_id: str = Field(..., alias="packId")
    title: str
    primary_structure: str = Field(..., alias="primaryStructure")
    variation_slots: List[str] = Field(..., alias="variationSlots")
    speech_register: str = Field(..., alias="register", description="formal, neutral or informal")
    tags: List[str] = Field(default_factory=list)
    target_chunks: List[str] = Field(default_factory=list, alias="targetChunks")
    top_tokens: List[str] = Field(default_factory=list, alias="topTokens")
    intent_category: str = Field(..., alias="intentCategory")


# ============================================================================
# Draft content
# ============================================================================


class DraftPrompt(_WireModel):
    """One practice sentence inside a draft pack."""

    id: str = Field(..., pattern=r"^prompt-\d{3,}$")
    text: str
    intent: PromptIntent
    gloss_en: str
    natural_en: Optional[str] = None
    literal_en: Optional[str] = None
    notes_lite: Optional[str] = Field(None, max_length=120)
    audio_url: str = Field(..., alias="audioUrl")
    slots_changed: Optional[List[str]] = Field(None, alias="slotsChanged")
    slots_padded: Optional[List[str]] = Field(
        None,
        alias="slotsPadded",
        description="Slot names added to slotsChanged to meet the multi-slot quota",
    )
    slots: Optional[Dict[str, List[str]]] = None

    model_config = ConfigDict(
        populate_by_name=True,
        use_enum_values=True,
        json_schema_extra={
            "example": {
                "id": "prompt-001",
                "text": "Ich brauche einen Termin für die Anmeldung.",
                "intent": "request",
                "gloss_en": "I need to make an appointment.",
                "natural_en": "I'd like to schedule an appointment.",
                "literal_en": "[Literal: Ich brauche einen Termin für die Anmeldung.]",
                "audioUrl": "/v1/audio/government_office_request_A2_1a2b3c4d/prompt-001.mp3",
                "slotsChanged": ["subject", "verb"],
                "slots": {"subject": ["Ich"], "verb": ["brauche"]},
            }
        },
    )


class SessionPlanStep(_WireModel):
    """Ordered step of a session, referencing prompt ids."""

    id: str
    title: str
    prompt_ids: List[str] = Field(default_factory=list, alias="promptIds")


class SessionPlan(_WireModel):
    """Session plan for a pack."""

    version: int = 1
    steps: List[SessionPlanStep] = Field(default_factory=list)


class PackAnalytics(_WireModel):
    """Pedagogical metadata attached to every pack."""

    goal: str
    constraints: List[str] = Field(default_factory=list)
    levers: List[str] = Field(default_factory=list)
    success_criteria: List[str] = Field(default_factory=list, alias="successCriteria")
    common_mistakes: List[str] = Field(default_factory=list, alias="commonMistakes")
    drill_type: DrillType = Field(..., alias="drillType")
    cognitive_load: CognitiveLoad = Field(..., alias="cognitiveLoad")

    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)


class IngestionMetadata(_WireModel):
    """Provenance of a draft pack. Stripped before promotion to production."""

    source: InputSource
    source_path: Optional[str] = Field(None, alias="sourcePath")
    source_url: Optional[str] = Field(None, alias="sourceUrl")
    generated_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC), alias="generatedAt"
    )
    chunk_ids: List[str] = Field(default_factory=list, alias="chunkIds")

    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)


class DraftPack(_WireModel):
    """A generated pack awaiting review."""

    schema_version: int = Field(default=1, alias="schemaVersion")
    id: str
    kind: str = "pack"
    title: str
    level: str
    estimated_minutes: int = Field(default=15, alias="estimatedMinutes", ge=1)
    description: str = ""
    scenario: str
    speech_register: str = Field(..., alias="register", description="formal, neutral or informal")
    primary_structure: str = Field(..., alias="primaryStructure")
    variation_slots: List[str] = Field(default_factory=list, alias="variationSlots")
    outline: List[str] = Field(default_factory=list)
    prompts: List[DraftPrompt] = Field(default_factory=list)
    session_plan: SessionPlan = Field(default_factory=SessionPlan, alias="sessionPlan")
    tags: List[str] = Field(default_factory=list)
    analytics: Optional[PackAnalytics] = None
    ingestion_metadata: Optional[IngestionMetadata] = Field(
        None, alias="_ingestionMetadata"
    )

    def to_content_json(self, include_metadata: bool = True) -> dict:
        """Serialize to the content-file JSON shape."""
        exclude = None if include_metadata else {"ingestion_metadata"}
        return self.model_dump(
            mode="json", by_alias=True, exclude_none=True, exclude=exclude
        )


# ============================================================================
# Quality gates and reports
# ============================================================================


class GateIssue(_WireModel):
    """Single failure or warning produced by a quality-gate rule."""

    prompt_id: Optional[str] = Field(None, alias="promptId")
    pack_id: Optional[str] = Field(None, alias="packId")
    rule: str
    reason: str


class QualityGateResult(_WireModel):
    """Outcome of running every gate rule over one pack."""

    passed: bool
    failures: List[GateIssue] = Field(default_factory=list)
    warnings: List[GateIssue] = Field(default_factory=list)


class GeneratedPackSummary(_WireModel):
    """Per-pack line of an ingest report."""

    pack_id: str = Field(..., alias="packId")
    title: str
    prompt_count: int = Field(..., alias="promptCount")
    quality_gate_passed: bool = Field(..., alias="qualityGatePassed")


class QualityGateSummary(_WireModel):
    """Run-level aggregate of gate results."""

    total_prompts: int = Field(..., alias="totalPrompts")
    passed_prompts: int = Field(..., alias="passedPrompts")
    failed_prompts: int = Field(..., alias="failedPrompts")
    pass_rate: float = Field(..., alias="passRate", ge=0.0, le=1.0)
    failures: List[GateIssue] = Field(default_factory=list)
    warnings: List[GateIssue] = Field(default_factory=list)


class IngestReport(_WireModel):
    """Report for a single ingestion run. Written once, never overwritten."""

    timestamp: str = Field(..., description="Filesystem-safe ISO timestamp")
    workspace: str
    scenario: str
    level: str
    source: InputSource
    source_path: Optional[str] = Field(None, alias="sourcePath")
    source_url: Optional[str] = Field(None, alias="sourceUrl")
    generated_packs: List[GeneratedPackSummary] = Field(
        default_factory=list, alias="generatedPacks"
    )
    quality_gate_summary: QualityGateSummary = Field(..., alias="qualityGateSummary")
    recommended_edits: List[str] = Field(default_factory=list, alias="recommendedEdits")
    chunk_count: int = Field(default=0, alias="chunkCount")
    signal_count: int = Field(default=0, alias="signalCount")

    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)


# ============================================================================
# Run configuration
# ============================================================================


class IngestionConfig(_WireModel):
    """Inputs for one ingestion run."""

    workspace: str = Field(..., min_length=1)
    scenario: str = Field(..., min_length=1)
    level: str
    source: InputSource
    input_path: Optional[str] = Field(None, alias="inputPath")
    input_text: Optional[str] = Field(None, alias="inputText")
    input_url: Optional[str] = Field(None, alias="inputUrl")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Normalize and validate the CEFR level."""
        level = v.strip().upper()
        if level not in CEFR_LEVELS:
            raise ValueError(f"Invalid level '{v}'. Must be one of: {', '.join(CEFR_LEVELS)}")
        return level

    @model_validator(mode="after")
    def validate_source_input(self) -> "IngestionConfig":
        """The input matching the source type must be provided."""
        required = {
            InputSource.PDF: ("input_path", self.input_path),
            InputSource.URL: ("input_url", self.input_url),
            InputSource.TEXT: ("input_text", self.input_text),
        }
        field_name, value = required[InputSource(self.source)]
        if not value:
            raise ValueError(f"source '{InputSource(self.source).value}' requires {field_name}")
        return self
