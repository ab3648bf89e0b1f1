"""End-to-end ingestion: text -> chunks -> signals -> plans -> draft packs -> report.

Stages run sequentially, each consuming the previous stage's output in
full. Every stage is wrapped in `pipeline_stage_logger` so runs leave a
timed, structured trail.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple, Union

from pydantic import BaseModel, Field
from tqdm import tqdm

from packforge.config import (
    CONTENT_DIR,
    EXPORTS_DIR,
    MAX_CHUNK_CHARS,
    MAX_PACKS,
    MIN_PACKS,
    OVERLAP_THRESHOLD,
    load_quality_rules,
)
from packforge.extractors.signal_extractor import extract_all_signals
from packforge.generators.draft_pack_builder import build_draft_pack
from packforge.generators.draft_prompt_generator import generate_draft_prompts
from packforge.generators.pack_planner import plan_packs
from packforge.models.ingest import (
    DraftPack,
    ExtractedSignal,
    IngestionConfig,
    IngestionMetadata,
    IngestReport,
    PlannedPack,
    TextChunk,
)
from packforge.models.quality_rules import QualityRules
from packforge.parsers.segmenter import segment
from packforge.parsers.template_loader import load_scenario_template
from packforge.parsers.text_extractor import extract_text
from packforge.reports.ingest_report import generate_report, write_report
from packforge.utils.file_io import PACK_FILENAME, draft_pack_dir, write_json
from packforge.utils.logging_config import pipeline_stage_logger

logger = logging.getLogger(__name__)


class IngestionResult(BaseModel):
    """Everything a run produced, including where it was written."""

    chunks: List[TextChunk] = Field(default_factory=list)
    signals: List[ExtractedSignal] = Field(default_factory=list)
    planned_packs: List[PlannedPack] = Field(default_factory=list)
    draft_packs: List[DraftPack] = Field(default_factory=list)
    report: IngestReport
    draft_paths: List[Path] = Field(default_factory=list)
    report_paths: Optional[Tuple[Path, Path]] = None


def write_draft_pack(pack: DraftPack, workspace: str, content_dir: Union[str, Path]) -> Path:
    """Write a draft pack to <content_dir>/workspaces/<ws>/draft/packs/<id>/pack.json."""
    path = draft_pack_dir(content_dir, workspace, pack.id) / PACK_FILENAME
    write_json(pack.to_content_json(include_metadata=True), path)
    return path


def run_ingestion(
    config: IngestionConfig,
    content_dir: Optional[Union[str, Path]] = None,
    exports_dir: Optional[Union[str, Path]] = None,
    templates_dir: Optional[Union[str, Path]] = None,
    rules: Optional[QualityRules] = None,
    min_packs: int = MIN_PACKS,
    max_packs: int = MAX_PACKS,
    overlap_threshold: float = OVERLAP_THRESHOLD,
    max_chunk_chars: int = MAX_CHUNK_CHARS,
    dry_run: bool = False,
    show_progress: bool = False,
    now: Optional[datetime] = None,
) -> IngestionResult:
    """Run the full ingestion pipeline for one input.

    Args:
        config: Validated run inputs (workspace, scenario, level, source)
        content_dir: Content root for draft packs (default: CONTENT_DIR)
        exports_dir: Report directory (default: EXPORTS_DIR)
        templates_dir: Scenario template directory (default: TEMPLATES_DIR)
        rules: Quality rule data (default: load_quality_rules())
        min_packs: Planner minimum pack count
        max_packs: Planner maximum pack count
        overlap_threshold: Planner Jaccard overlap ceiling
        max_chunk_chars: Segmenter chunk cap
        dry_run: Build everything but write nothing
        show_progress: Show a tqdm bar while generating packs
        now: Report timestamp override

    Returns:
        IngestionResult with all intermediate artifacts

    Raises:
        ConfigurationError: Missing or malformed template or rules
        ExtractionError: Input cannot be extracted
        GenerationExhaustedError: A pack's prompts cannot be generated
        OSError: Draft or report writes fail
    """
    content_dir = Path(content_dir or CONTENT_DIR)
    exports_dir = Path(exports_dir or EXPORTS_DIR)
    source = config.source.value if hasattr(config.source, "value") else config.source
    context = {"workspace": config.workspace, "scenario": config.scenario, "level": config.level}

    template = load_scenario_template(config.scenario, templates_dir)
    rules = rules or load_quality_rules()

    with pipeline_stage_logger("extract", source=source, **context) as stage:
        raw_text = extract_text(
            source,
            input_path=config.input_path,
            input_text=config.input_text,
            input_url=config.input_url,
        )
        stage.count(chars=len(raw_text))

    with pipeline_stage_logger("segment", **context) as stage:
        chunks = segment(raw_text, max_chunk_chars=max_chunk_chars)
        stage.count(chunks=len(chunks))

    with pipeline_stage_logger("signals", **context) as stage:
        signals = extract_all_signals(chunks, config.scenario)
        stage.count(signals=len(signals))

    with pipeline_stage_logger("plan", **context) as stage:
        planned_packs = plan_packs(
            signals,
            config.scenario,
            config.level,
            template=template,
            min_packs=min_packs,
            max_packs=max_packs,
            overlap_threshold=overlap_threshold,
        )
        stage.count(packs=len(planned_packs))
        for planned in planned_packs:
            stage.debug(f"Planned {planned.pack_id}", extra={"pack_id": planned.pack_id})

    draft_packs: List[DraftPack] = []
    with pipeline_stage_logger("generate", **context) as stage:
        for planned in tqdm(
            planned_packs, desc="Generating packs", unit="pack", disable=not show_progress
        ):
            prompts = generate_draft_prompts(
                planned, signals, config.scenario, config.level, template=template, rules=rules
            )
            metadata = IngestionMetadata(
                source=source,
                source_path=config.input_path,
                source_url=config.input_url,
                chunk_ids=list(planned.target_chunks),
            )
            draft_packs.append(
                build_draft_pack(
                    planned, prompts, template, config.scenario, config.level, metadata
                )
            )
        stage.count(packs=len(draft_packs), prompts=sum(len(p.prompts) for p in draft_packs))

    draft_paths: List[Path] = []
    if not dry_run:
        with pipeline_stage_logger("write_drafts", **context) as stage:
            for pack in draft_packs:
                draft_paths.append(write_draft_pack(pack, config.workspace, content_dir))
            stage.count(files=len(draft_paths))

    with pipeline_stage_logger("report", **context) as stage:
        report = generate_report(
            draft_packs,
            config.workspace,
            config.scenario,
            config.level,
            source,
            source_path=config.input_path,
            source_url=config.input_url,
            chunk_count=len(chunks),
            signal_count=len(signals),
            rules=rules,
            now=now,
        )
        written = None if dry_run else write_report(report, exports_dir)
        stage.count(failures=len(report.quality_gate_summary.failures))

    if dry_run:
        logger.info("Dry run: no drafts or reports written")

    return IngestionResult(
        chunks=chunks,
        signals=signals,
        planned_packs=planned_packs,
        draft_packs=draft_packs,
        report=report,
        draft_paths=draft_paths,
        report_paths=written,
    )
