"""Logging configuration for the ingestion pipeline.

Provides JSON-formatted logging for machine parsing of run logs and a stage
context manager that records entry, exit and duration of each pipeline stage.
"""

import json
import logging
import sys
import time
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Dict, Optional, Union

# Attributes present on every LogRecord; anything else came in through `extra=`
_STANDARD_ATTRS = {
    "name",
    "msg",
    "args",
    "created",
    "filename",
    "funcName",
    "levelname",
    "levelno",
    "lineno",
    "module",
    "msecs",
    "message",
    "pathname",
    "process",
    "processName",
    "relativeCreated",
    "thread",
    "threadName",
    "exc_info",
    "exc_text",
    "stack_info",
    "taskName",
}

NOISY_LOGGERS = ("docling", "httpx", "PIL")


class JsonFormatter(logging.Formatter):
    """JSON formatter for structured log records.

    Output keys:
    - timestamp: ISO 8601 UTC timestamp
    - level: Log level (INFO, WARNING, ERROR, etc.)
    - logger: Logger name
    - message: Log message
    - extra: Context fields passed through `extra=`
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        extra_fields = {
            k: v for k, v in record.__dict__.items() if k not in _STANDARD_ATTRS
        }
        if extra_fields:
            log_data["extra"] = extra_fields

        return json.dumps(log_data, ensure_ascii=False, default=str)


def configure_logging(
    level: Union[str, int] = logging.INFO,
    log_file: Optional[Union[str, Path]] = None,
    json_format: bool = True,
    console_output: bool = True,
) -> None:
    """Configure root logging for a pipeline run.

    Args:
        level: Logging level name or number (default: INFO)
        log_file: Optional file path for log output (default: None = console only)
        json_format: If True, use JSON formatter; otherwise a plain text format
        console_output: If True, log to stdout

    Example:
        >>> configure_logging(level="DEBUG", json_format=False)
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    if json_format:
        formatter: logging.Formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    # docling logs every converted page; keep that out of run logs unless debugging
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(level if level <= logging.DEBUG else logging.WARNING)

    logging.info(
        f"Logging configured: level={logging.getLevelName(level)}, json_format={json_format}"
    )


class StageLogger(logging.LoggerAdapter):
    """Logger bound to one pipeline stage.

    Every record carries the stage name and the run context (workspace,
    scenario, level, ...). Counts registered with `count()` are attached to
    the stage's completion record.
    """

    def __init__(self, stage_name: str, context: Dict[str, Any]):
        super().__init__(
            logging.getLogger(f"packforge.stage.{stage_name}"),
            {"stage": stage_name, **context},
        )
        self.stage_name = stage_name
        self.counts: Dict[str, int] = {}

    def process(self, msg, kwargs):
        kwargs["extra"] = {**self.extra, **(kwargs.get("extra") or {})}
        return msg, kwargs

    def count(self, **counts: int) -> None:
        """Record stage output sizes, e.g. `stage.count(chunks=12)`."""
        self.counts.update(counts)

    def summary(self) -> str:
        return ", ".join(f"{name}={value}" for name, value in self.counts.items())


@contextmanager
def pipeline_stage_logger(stage_name: str, **context):
    """Log entry and exit of a pipeline stage with timing and output counts.

    Args:
        stage_name: Name of the pipeline stage (segment, plan, generate, ...)
        **context: Additional context fields to include in every record

    Yields:
        StageLogger for `packforge.stage.<stage_name>`

    Example:
        >>> with pipeline_stage_logger("segment", scenario="work") as stage:
        ...     chunks = segment(text)
        ...     stage.count(chunks=len(chunks))
    """
    stage = StageLogger(stage_name, context)
    start = time.perf_counter()
    stage.info(f"Starting pipeline stage: {stage_name}", extra={"status": "started"})

    try:
        yield stage
    except Exception as e:
        stage.error(
            f"Failed pipeline stage: {stage_name}",
            extra={
                "status": "failed",
                "duration_ms": round((time.perf_counter() - start) * 1000, 2),
                "error": str(e)[:200],
                **stage.counts,
            },
        )
        raise

    message = f"Completed pipeline stage: {stage_name}"
    if stage.counts:
        message += f" ({stage.summary()})"
    stage.info(
        message,
        extra={
            "status": "completed",
            "duration_ms": round((time.perf_counter() - start) * 1000, 2),
            **stage.counts,
        },
    )
