"""Quality gates for draft packs and the promotion policy built on them."""

from packforge.validators.gate_policy import GateStage, evaluate_gate, promote_draft_pack
from packforge.validators.quality_gates import run_quality_gates

__all__ = ["GateStage", "evaluate_gate", "promote_draft_pack", "run_quality_gates"]
