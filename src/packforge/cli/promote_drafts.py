"""CLI for promoting reviewed draft packs to production.

Usage:
    python -m packforge.cli.promote_drafts \
        --workspace de \
        government_office_termin_A2_1a2b3c4d work_meeting_B1_9f8e7d6c

Each pack must pass the pre-approval quality gate unless --force is given.
Promotion strips `_ingestionMetadata` and removes the draft directory.
"""

import argparse
import logging
import sys
from pathlib import Path

from packforge.config import CONTENT_DIR
from packforge.errors import PromotionBlockedError
from packforge.utils.logging_config import configure_logging
from packforge.validators.gate_policy import promote_draft_pack

logger = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Promote draft packs that pass the quality gate",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Promote two reviewed drafts
  python -m packforge.cli.promote_drafts --workspace de \\
      government_office_termin_A2_1a2b3c4d work_meeting_B1_9f8e7d6c

  # Promote despite gate failures
  python -m packforge.cli.promote_drafts --workspace de --force \\
      restaurant_bestellen_A1_0a1b2c3d
        """,
    )
    parser.add_argument("pack_ids", nargs="+", help="Draft pack ids to promote")
    parser.add_argument("--workspace", default="de", help="Workspace name (default: de)")
    parser.add_argument(
        "--content-dir",
        type=Path,
        default=CONTENT_DIR,
        help=f"Content root (default: {CONTENT_DIR})",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Promote even if the quality gate fails",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Logging level (default: INFO)",
    )
    return parser.parse_args(argv)


def main(argv=None) -> int:
    """Main CLI entry point. Returns 1 if any pack was not promoted."""
    args = parse_args(argv)

    configure_logging(
        level=getattr(logging, args.log_level),
        json_format=False,
        console_output=True,
    )

    promoted, failed = [], []
    for pack_id in args.pack_ids:
        try:
            target = promote_draft_pack(
                pack_id, args.workspace, args.content_dir, force=args.force
            )
            promoted.append(pack_id)
            logger.info(f"✓ {pack_id} -> {target}")
        except PromotionBlockedError as e:
            failed.append(pack_id)
            logger.error(f"✗ {e}")
            for failure in e.failures:
                logger.error(f"    {failure.rule}: {failure.reason}")
        except FileNotFoundError:
            failed.append(pack_id)
            logger.error(f"✗ Draft pack not found: {pack_id}")
        except ValueError as e:
            failed.append(pack_id)
            logger.error(f"✗ Draft pack {pack_id} is malformed: {e}")

    logger.info("=" * 80)
    logger.info(f"Promoted: {len(promoted)}, Failed: {len(failed)}")
    logger.info("=" * 80)

    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
