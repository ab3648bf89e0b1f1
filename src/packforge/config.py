"""Runtime configuration for the ingestion pipeline.

Values come from the environment (optionally a .env file pointed to by
ENV_FILE). Quality-rule data (denylist, weekday names, scenario token
dictionaries) is loaded once from JSON into an immutable model and passed
explicitly to the components that need it.
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Optional, Union

from dotenv import load_dotenv
from pydantic import ValidationError

from packforge.errors import ConfigurationError
from packforge.models.ingest import CEFR_LEVELS
from packforge.models.quality_rules import QualityRules
from packforge.utils.file_io import read_json

load_dotenv(os.getenv("ENV_FILE"), override=False)

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("LOG_FORMAT", "text")

BASE_PATH = Path(os.path.dirname(os.path.realpath(__file__)))
DATA_DIR = BASE_PATH / "data"

# Paths
CONTENT_DIR = Path(os.getenv("PACKFORGE_CONTENT_DIR", "content/v1"))
EXPORTS_DIR = Path(os.getenv("PACKFORGE_EXPORTS_DIR", "exports"))
TEMPLATES_DIR = Path(
    os.getenv("PACKFORGE_TEMPLATES_DIR", str(DATA_DIR / "templates" / "scenarios"))
)
RULES_FILE = Path(os.getenv("PACKFORGE_RULES_FILE", str(DATA_DIR / "quality_rules.json")))

# Segmentation
MAX_CHUNK_CHARS = int(os.getenv("PACKFORGE_MAX_CHUNK_CHARS", "800"))

# Planning
MIN_PACKS = 6
MAX_PACKS = 12
OVERLAP_THRESHOLD = 0.45
SPLIT_SIMILARITY_THRESHOLD = 0.3

# Generation and gates
MAX_SAMPLING_ATTEMPTS = 100
MIN_PROMPT_LENGTH = 12
MAX_PROMPT_LENGTH = 140
MAX_NOTES_LITE_LENGTH = 120
MULTI_SLOT_TARGET = 0.3
NEAR_DUPLICATE_THRESHOLD = 0.92
MIN_CONCRETE_PROMPTS = 2

VALID_LEVELS = list(CEFR_LEVELS)
NATURAL_EN_LEVELS = ["A2", "B1", "B2", "C1", "C2"]
NATURAL_EN_SCENARIOS = ["government_office"]


@lru_cache(maxsize=8)
def _load_quality_rules_cached(path: str) -> QualityRules:
    try:
        data = read_json(path)
    except FileNotFoundError as e:
        raise ConfigurationError(f"Quality rules file not found: {path}") from e
    except ValueError as e:
        raise ConfigurationError(f"Quality rules file is not valid JSON: {path}: {e}") from e

    try:
        return QualityRules.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Quality rules file is malformed: {path}: {e}") from e


def load_quality_rules(path: Optional[Union[str, Path]] = None) -> QualityRules:
    """Load the quality rule data (cached per path).

    Args:
        path: Optional rules JSON file (default: RULES_FILE)

    Returns:
        Frozen QualityRules instance

    Raises:
        ConfigurationError: If the file is missing or malformed
    """
    return _load_quality_rules_cached(str(Path(path or RULES_FILE).resolve()))
