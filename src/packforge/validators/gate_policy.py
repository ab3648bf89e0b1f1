"""Two-tier quality gate policy and draft promotion.

Before approval a failing gate blocks promotion. After approval the gate is
advisory: the result is still computed and logged, but never blocks.
"""

import logging
import shutil
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel, Field

from packforge.errors import PromotionBlockedError
from packforge.models.ingest import DraftPack, QualityGateResult
from packforge.models.quality_rules import QualityRules
from packforge.utils.file_io import (
    PACK_FILENAME,
    draft_pack_dir,
    production_pack_dir,
    read_json,
    write_json,
)
from packforge.validators.quality_gates import run_quality_gates

logger = logging.getLogger(__name__)


class GateStage(str, Enum):
    """Lifecycle stage at which the gate is evaluated."""

    PRE_APPROVAL = "pre_approval"
    POST_APPROVAL = "post_approval"


class GateDecision(BaseModel):
    """Gate result plus whether it blocks the next lifecycle step."""

    stage: GateStage
    result: QualityGateResult
    blocking: bool = Field(..., description="True if the failures block promotion")

    model_config = {"use_enum_values": True}


def evaluate_gate(
    pack: DraftPack,
    stage: Union[GateStage, str] = GateStage.PRE_APPROVAL,
    rules: Optional[QualityRules] = None,
) -> GateDecision:
    """Run the quality gate and apply the policy for the given stage."""
    stage = GateStage(stage)
    result = run_quality_gates(pack, rules)
    blocking = stage == GateStage.PRE_APPROVAL and not result.passed

    if not result.passed and stage == GateStage.POST_APPROVAL:
        logger.info(
            f"Approved pack {pack.id} fails {len(result.failures)} gate rule(s); advisory only"
        )
    return GateDecision(stage=stage, result=result, blocking=blocking)


def promote_draft_pack(
    pack_id: str,
    workspace: str,
    content_dir: Union[str, Path],
    force: bool = False,
    rules: Optional[QualityRules] = None,
) -> Path:
    """Move a draft pack to production after the pre-approval gate.

    Args:
        pack_id: Draft pack id
        workspace: Workspace name
        content_dir: Content root (contains workspaces/)
        force: Promote even if the gate fails
        rules: Quality rule data (default: load_quality_rules())

    Returns:
        Path of the written production pack.json

    Raises:
        FileNotFoundError: If the draft doesn't exist
        PromotionBlockedError: If the gate fails and force is False
    """
    draft_dir = draft_pack_dir(content_dir, workspace, pack_id)
    pack = DraftPack.model_validate(read_json(draft_dir / PACK_FILENAME))

    decision = evaluate_gate(pack, GateStage.PRE_APPROVAL, rules)
    if decision.blocking:
        if not force:
            raise PromotionBlockedError(pack_id, decision.result.failures)
        logger.warning(
            f"Promoting {pack_id} despite {len(decision.result.failures)} gate failure(s) (forced)"
        )

    target = production_pack_dir(content_dir, workspace, pack_id) / PACK_FILENAME
    write_json(pack.to_content_json(include_metadata=False), target)
    shutil.rmtree(draft_dir)

    logger.info(f"Promoted {pack_id} to {target}")
    return target
