"""Pack planning, prompt synthesis and draft pack assembly."""

from packforge.generators.conjugation import conjugate_verb
from packforge.generators.draft_pack_builder import build_draft_pack
from packforge.generators.draft_prompt_generator import (
    Err,
    Ok,
    generate_draft_prompts,
    sample_until_valid,
)
from packforge.generators.pack_planner import plan_packs

__all__ = [
    "Err",
    "Ok",
    "build_draft_pack",
    "conjugate_verb",
    "generate_draft_prompts",
    "plan_packs",
    "sample_until_valid",
]
