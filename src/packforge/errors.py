"""Exception hierarchy for the ingestion pipeline.

Configuration and generation errors are fatal for a run (or a pack) and
propagate to the caller. Quality-gate failures are never raised; they are
recorded in QualityGateResult and the ingest report.
"""

from typing import Optional


class PackforgeError(Exception):
    """Base class for all pipeline errors."""
    pass


class ConfigurationError(PackforgeError):
    """Raised when the run cannot proceed because its configuration is unusable."""
    pass


class TemplateNotFoundError(ConfigurationError):
    """Raised when no scenario template file exists for a scenario."""

    def __init__(self, scenario: str, path: str):
        self.scenario = scenario
        self.path = path
        super().__init__(f"Template not found for scenario '{scenario}': {path}")


class TemplateValidationError(ConfigurationError):
    """Raised when a scenario template file is not valid JSON or misses fields."""
    pass


class ExtractionError(PackforgeError):
    """Raised when source text cannot be extracted for the requested input."""
    pass


class GenerationExhaustedError(PackforgeError):
    """Raised when no valid prompt could be sampled within the attempt budget."""

    def __init__(
        self,
        pack_id: str,
        step_id: str,
        attempts: int,
        last_reason: Optional[str] = None,
    ):
        self.pack_id = pack_id
        self.step_id = step_id
        self.attempts = attempts
        self.last_reason = last_reason
        message = (
            f"Failed to generate valid prompt for step {step_id} of pack {pack_id} "
            f"after {attempts} attempts"
        )
        if last_reason:
            message += f" (last rejection: {last_reason})"
        super().__init__(message)


class PromotionBlockedError(PackforgeError):
    """Raised when a draft pack fails the pre-approval quality gate."""

    def __init__(self, pack_id: str, failures: list):
        self.pack_id = pack_id
        self.failures = failures
        super().__init__(
            f"Pack {pack_id} has {len(failures)} quality gate failure(s); promotion blocked"
        )
