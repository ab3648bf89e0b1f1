"""Run-level ingestion reports (JSON + Markdown).

A report aggregates the quality gate results of every pack produced in one
run. Reports are written once under a timestamped name and never overwritten.
"""

import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from packforge.config import EXPORTS_DIR, load_quality_rules
from packforge.models.ingest import (
    DraftPack,
    GateIssue,
    GeneratedPackSummary,
    IngestReport,
    InputSource,
    QualityGateSummary,
)
from packforge.models.quality_rules import QualityRules
from packforge.utils.file_io import write_json, write_markdown
from packforge.validators.quality_gates import run_quality_gates

logger = logging.getLogger(__name__)

# Failing rule -> recommended edit
RECOMMENDED_EDITS: Dict[str, str] = {
    "scenario_tokens": "Add scenario tokens to {count} prompt(s)",
    "banned_phrases": "Remove banned phrases from {count} prompt(s)",
    "prompt_length": "Adjust {count} prompt(s) to 12-140 characters",
    "natural_en_required": "Add natural_en paraphrases to {count} prompt(s)",
    "multi_slot_variation": "Increase multi-slot variation in affected pack(s)",
    "register_consistency": "Add formal address (Sie/Ihnen) to {count} pack(s)",
    "concreteness_markers": "Add concrete times, dates or prices to {count} pack(s)",
    "prompt_count": "Regenerate {count} empty pack(s)",
}


def report_timestamp(now: Optional[datetime] = None) -> str:
    """Filesystem-safe UTC timestamp, e.g. 2025-01-15T10-30-00-123Z."""
    now = (now or datetime.now(UTC)).astimezone(UTC)
    return now.strftime("%Y-%m-%dT%H-%M-%S-") + f"{now.microsecond // 1000:03d}Z"


def _recommended_edits(failures: List[GateIssue], warnings: List[GateIssue]) -> List[str]:
    edits: List[str] = []
    if failures:
        edits.append(f"Fix {len(failures)} quality gate failure(s)")

    by_rule: Dict[str, int] = {}
    for failure in failures:
        by_rule[failure.rule] = by_rule.get(failure.rule, 0) + 1

    for rule, template in RECOMMENDED_EDITS.items():
        if rule in by_rule:
            edits.append(template.format(count=by_rule[rule]))

    verb_warnings = [w for w in warnings if w.rule == "verb_variation"]
    if verb_warnings:
        edits.append(f"Use more distinct verbs in {len(verb_warnings)} pack(s)")
    return edits


def generate_report(
    packs: List[DraftPack],
    workspace: str,
    scenario: str,
    level: str,
    source: Union[InputSource, str],
    source_path: Optional[str] = None,
    source_url: Optional[str] = None,
    chunk_count: int = 0,
    signal_count: int = 0,
    rules: Optional[QualityRules] = None,
    now: Optional[datetime] = None,
) -> IngestReport:
    """Aggregate quality gate results for all packs of a run.

    The pass rate is computed over prompts: a prompt fails if it has at least
    one prompt-level failure (counted once however many rules it breaks).
    """
    rules = rules or load_quality_rules()

    summaries: List[GeneratedPackSummary] = []
    failures: List[GateIssue] = []
    warnings: List[GateIssue] = []
    failed_prompt_keys = set()

    for pack in packs:
        result = run_quality_gates(pack, rules)
        failures.extend(result.failures)
        warnings.extend(result.warnings)
        failed_prompt_keys.update(
            (pack.id, f.prompt_id) for f in result.failures if f.prompt_id
        )
        summaries.append(
            GeneratedPackSummary(
                pack_id=pack.id,
                title=pack.title,
                prompt_count=len(pack.prompts),
                quality_gate_passed=result.passed,
            )
        )

    total_prompts = sum(len(pack.prompts) for pack in packs)
    failed_prompts = len(failed_prompt_keys)
    passed_prompts = total_prompts - failed_prompts

    report = IngestReport(
        timestamp=report_timestamp(now),
        workspace=workspace,
        scenario=scenario,
        level=level,
        source=source,
        source_path=source_path,
        source_url=source_url,
        generated_packs=summaries,
        quality_gate_summary=QualityGateSummary(
            total_prompts=total_prompts,
            passed_prompts=passed_prompts,
            failed_prompts=failed_prompts,
            pass_rate=passed_prompts / total_prompts if total_prompts else 0.0,
            failures=failures,
            warnings=warnings,
        ),
        recommended_edits=_recommended_edits(failures, warnings),
        chunk_count=chunk_count,
        signal_count=signal_count,
    )

    logger.info(
        f"Report: {len(packs)} packs, {passed_prompts}/{total_prompts} prompts passed",
        extra={"workspace": workspace, "scenario": scenario, "failures": len(failures)},
    )
    return report


def _issue_line(issue: GateIssue) -> str:
    if issue.prompt_id:
        location = f"Prompt {issue.prompt_id} in pack {issue.pack_id}"
    else:
        location = f"Pack {issue.pack_id}"
    return f"- **{issue.rule}** ({location}): {issue.reason}"


def render_markdown(report: IngestReport) -> str:
    """Render the human-readable report."""
    summary = report.quality_gate_summary
    lines = [
        "# Ingestion Report",
        "",
        f"**Timestamp:** {report.timestamp}",
        f"**Workspace:** {report.workspace}",
        f"**Scenario:** {report.scenario}",
        f"**Level:** {report.level}",
        f"**Source:** {report.source}",
    ]
    if report.source_path:
        lines.append(f"**Source Path:** {report.source_path}")
    if report.source_url:
        lines.append(f"**Source URL:** {report.source_url}")

    lines += [
        "",
        "## Summary",
        "",
        f"- **Generated Packs:** {len(report.generated_packs)}",
        f"- **Total Prompts:** {summary.total_prompts}",
        f"- **Passed Prompts:** {summary.passed_prompts}",
        f"- **Failed Prompts:** {summary.failed_prompts}",
        f"- **Pass Rate:** {summary.pass_rate * 100:.1f}%",
        f"- **Chunks Processed:** {report.chunk_count}",
        f"- **Signals Extracted:** {report.signal_count}",
        "",
        "## Generated Packs",
        "",
    ]
    for pack in report.generated_packs:
        status = "✅" if pack.quality_gate_passed else "❌"
        lines.append(f"- {status} **{pack.pack_id}**: {pack.title} ({pack.prompt_count} prompts)")
    lines.append("")

    if summary.failures:
        lines += ["## Quality Gate Failures", ""]
        lines += [_issue_line(f) for f in summary.failures]
        lines.append("")

    if summary.warnings:
        lines += ["## Warnings", ""]
        lines += [_issue_line(w) for w in summary.warnings]
        lines.append("")

    if report.recommended_edits:
        lines += ["## Recommended Manual Edits", ""]
        lines += [f"- {edit}" for edit in report.recommended_edits]
        lines.append("")

    return "\n".join(lines)


def report_paths(
    report: IngestReport, exports_dir: Optional[Union[str, Path]] = None
) -> Tuple[Path, Path]:
    stem = f"ingest-report.{report.workspace}.{report.scenario}.{report.timestamp}"
    directory = Path(exports_dir or EXPORTS_DIR)
    return directory / f"{stem}.json", directory / f"{stem}.md"


def write_report(
    report: IngestReport, exports_dir: Optional[Union[str, Path]] = None
) -> Tuple[Path, Path]:
    """Write the JSON and Markdown report pair.

    Returns:
        (json_path, md_path)

    Raises:
        FileExistsError: If a report with the same name already exists
        OSError: On any write failure
    """
    json_path, md_path = report_paths(report, exports_dir)
    for path in (json_path, md_path):
        if path.exists():
            raise FileExistsError(f"Report already exists: {path}")

    write_json(
        report.model_dump(mode="json", by_alias=True, exclude_none=True),
        json_path,
        overwrite=False,
    )
    write_markdown(render_markdown(report), md_path, overwrite=False)

    logger.info(f"Report written: {json_path}, {md_path}")
    return json_path, md_path
