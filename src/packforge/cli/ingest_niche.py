"""CLI for niche ingestion: source text -> draft packs + ingest report.

Usage:
    python -m packforge.cli.ingest_niche \
        --workspace de \
        --scenario government_office \
        --level A2 \
        --input-file docs/buergeramt.txt \
        --dry-run

Supports:
- Plain text (--input-text or --input-file)
- PDF (--pdf, requires the `pdf` extra)
- Web page (--url, requires the `pdf` extra)

Features:
- Deterministic pack ids and prompts for identical input
- Quality gate evaluation for every draft pack
- JSON + Markdown run report under the exports directory
- Progress bar with tqdm
"""

import argparse
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from packforge.config import (
    CONTENT_DIR,
    EXPORTS_DIR,
    LOG_FORMAT,
    LOG_LEVEL,
    MAX_PACKS,
    MIN_PACKS,
    OVERLAP_THRESHOLD,
    TEMPLATES_DIR,
    VALID_LEVELS,
)
from packforge.errors import PackforgeError
from packforge.models.ingest import IngestionConfig, InputSource
from packforge.pipeline import run_ingestion
from packforge.utils.file_io import read_text
from packforge.utils.logging_config import configure_logging

logger = logging.getLogger(__name__)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]
DEFAULT_LOG_LEVEL = LOG_LEVEL.upper() if LOG_LEVEL.upper() in LOG_LEVELS else "INFO"


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Generate draft practice packs from source text",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Government office packs from inline text
  python -m packforge.cli.ingest_niche \\
      --workspace de --scenario government_office --level A2 \\
      --input-text "Ich brauche einen Termin für die Anmeldung beim Bürgeramt."

  # Work packs from a PDF (dry run, nothing written)
  python -m packforge.cli.ingest_niche \\
      --workspace de --scenario work --level B1 \\
      --pdf docs/onboarding.pdf --dry-run

  # Restaurant packs from a web page into a custom content tree
  python -m packforge.cli.ingest_niche \\
      --workspace de --scenario restaurant --level A1 \\
      --url https://example.org/speisekarte \\
      --content-dir /tmp/content/v1 --exports-dir /tmp/exports
        """,
    )

    parser.add_argument("--workspace", default="de", help="Workspace name (default: de)")
    parser.add_argument(
        "--scenario",
        required=True,
        help="Scenario id, e.g. government_office, work, restaurant, shopping",
    )
    parser.add_argument(
        "--level",
        required=True,
        type=str.upper,
        choices=VALID_LEVELS,
        help="CEFR level",
    )

    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--input-text", help="Raw source text")
    source.add_argument("--input-file", type=Path, help="UTF-8 text file with the source")
    source.add_argument("--pdf", type=Path, help="PDF file with the source")
    source.add_argument("--url", help="Web page with the source")

    parser.add_argument(
        "--content-dir",
        type=Path,
        default=CONTENT_DIR,
        help=f"Content root for draft packs (default: {CONTENT_DIR})",
    )
    parser.add_argument(
        "--exports-dir",
        type=Path,
        default=EXPORTS_DIR,
        help=f"Directory for ingest reports (default: {EXPORTS_DIR})",
    )
    parser.add_argument(
        "--templates-dir",
        type=Path,
        default=TEMPLATES_DIR,
        help="Directory with <scenario>.json templates",
    )
    parser.add_argument(
        "--min-packs",
        type=int,
        default=MIN_PACKS,
        help=f"Minimum packs to plan (default: {MIN_PACKS})",
    )
    parser.add_argument(
        "--max-packs",
        type=int,
        default=MAX_PACKS,
        help=f"Maximum packs to plan (default: {MAX_PACKS})",
    )
    parser.add_argument(
        "--overlap-threshold",
        type=float,
        default=OVERLAP_THRESHOLD,
        help=f"Drop packs whose top tokens overlap this much (default: {OVERLAP_THRESHOLD})",
    )
    parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        default=DEFAULT_LOG_LEVEL,
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        default=LOG_FORMAT == "json",
        help="Emit JSON log lines (default: on when LOG_FORMAT=json)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Generate and evaluate packs without writing drafts or reports",
    )

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> IngestionConfig:
    """Translate CLI arguments into a validated IngestionConfig.

    Raises:
        FileNotFoundError: If --input-file doesn't exist
        ValidationError: If the arguments don't form a valid config
    """
    if args.pdf:
        return IngestionConfig(
            workspace=args.workspace,
            scenario=args.scenario,
            level=args.level,
            source=InputSource.PDF,
            input_path=str(args.pdf),
        )
    if args.url:
        return IngestionConfig(
            workspace=args.workspace,
            scenario=args.scenario,
            level=args.level,
            source=InputSource.URL,
            input_url=args.url,
        )

    text = read_text(args.input_file) if args.input_file else args.input_text
    return IngestionConfig(
        workspace=args.workspace,
        scenario=args.scenario,
        level=args.level,
        source=InputSource.TEXT,
        input_path=str(args.input_file) if args.input_file else None,
        input_text=text,
    )


def main(argv=None) -> int:
    """Main CLI entry point."""
    args = parse_args(argv)

    configure_logging(
        level=getattr(logging, args.log_level),
        json_format=args.json_logs,
        console_output=True,
    )

    logger.info("=" * 80)
    logger.info("Niche Ingestion Pipeline")
    logger.info("=" * 80)
    logger.info(f"Workspace: {args.workspace}")
    logger.info(f"Scenario: {args.scenario}")
    logger.info(f"Level: {args.level}")
    logger.info(f"Content Dir: {args.content_dir}")
    logger.info(f"Exports Dir: {args.exports_dir}")
    logger.info(f"Dry Run: {args.dry_run}")
    logger.info("=" * 80)

    if args.min_packs < 0 or args.max_packs < args.min_packs:
        logger.error(
            f"Invalid pack bounds: min={args.min_packs}, max={args.max_packs}"
        )
        return 1

    try:
        config = build_config(args)
        result = run_ingestion(
            config,
            content_dir=args.content_dir,
            exports_dir=args.exports_dir,
            templates_dir=args.templates_dir,
            min_packs=args.min_packs,
            max_packs=args.max_packs,
            overlap_threshold=args.overlap_threshold,
            dry_run=args.dry_run,
            show_progress=not args.json_logs,
        )
    except (PackforgeError, FileNotFoundError, FileExistsError) as e:
        logger.error(f"Ingestion failed: {e}")
        logger.debug("Ingestion failure details", exc_info=True)
        return 1
    except ValidationError as e:
        logger.error(f"Invalid ingestion configuration: {e}")
        return 1

    summary = result.report.quality_gate_summary
    logger.info("=" * 80)
    logger.info("Ingestion Complete")
    logger.info("=" * 80)
    logger.info(f"Chunks: {len(result.chunks)}")
    logger.info(f"Signals: {len(result.signals)}")
    logger.info(f"Packs: {len(result.draft_packs)}")
    logger.info(
        f"Prompts passed: {summary.passed_prompts}/{summary.total_prompts} "
        f"({summary.pass_rate * 100:.1f}%)"
    )
    if result.report_paths:
        json_path, md_path = result.report_paths
        logger.info(f"Report: {json_path}")
        logger.info(f"Report: {md_path}")
    logger.info("=" * 80)

    return 0


if __name__ == "__main__":
    sys.exit(main())
