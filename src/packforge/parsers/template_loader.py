"""Load and validate per-scenario generation templates."""

import logging
from pathlib import Path
from typing import Optional, Union

from pydantic import ValidationError

from packforge.config import TEMPLATES_DIR
from packforge.errors import TemplateNotFoundError, TemplateValidationError
from packforge.models.scenario_template import ScenarioTemplate
from packforge.utils.file_io import list_files, read_json

logger = logging.getLogger(__name__)


def template_path(scenario: str, templates_dir: Optional[Union[str, Path]] = None) -> Path:
    """Get the template file path for a scenario."""
    return Path(templates_dir or TEMPLATES_DIR) / f"{scenario}.json"


def load_scenario_template(
    scenario: str,
    templates_dir: Optional[Union[str, Path]] = None,
) -> ScenarioTemplate:
    """Load the scenario template and validate it against ScenarioTemplate.

    Args:
        scenario: Scenario id (e.g. 'government_office')
        templates_dir: Directory holding <scenario>.json files (default: TEMPLATES_DIR)

    Returns:
        Validated ScenarioTemplate

    Raises:
        TemplateNotFoundError: If no template file exists for the scenario
        TemplateValidationError: If the file is not valid JSON or misses fields
    """
    path = template_path(scenario, templates_dir)
    if not path.exists():
        raise TemplateNotFoundError(scenario, str(path))

    try:
        data = read_json(path)
    except ValueError as e:
        raise TemplateValidationError(f"Template {path} is not valid JSON: {e}") from e

    try:
        template = ScenarioTemplate.model_validate(data)
    except ValidationError as e:
        raise TemplateValidationError(f"Template {path} failed validation:\n{e}") from e

    if template.scenario_id != scenario:
        logger.warning(
            f"Template {path} declares scenarioId '{template.scenario_id}' "
            f"but was loaded for scenario '{scenario}'"
        )

    logger.debug(
        f"Loaded template for {scenario}: {len(template.step_blueprint)} steps, "
        f"{template.total_prompt_count} prompts"
    )
    return template


def available_scenarios(templates_dir: Optional[Union[str, Path]] = None) -> list:
    """List scenario ids that have a template file, sorted."""
    return [p.stem for p in list_files(templates_dir or TEMPLATES_DIR, "*.json")]
