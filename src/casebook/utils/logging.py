"""
Structured logging for study runs.

Log events go to stderr so that rich tables and scored CSVs written to
stdout stay clean. Every event carries the module that emitted it.
"""

import logging
import sys
from typing import Any

import structlog

# Libraries that log per call at INFO and drown out study progress.
NOISY_LOGGERS = ("mlflow", "matplotlib", "urllib3", "alembic", "git")


def _quiet_libraries(log_level: int) -> None:
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))


def configure_logging(level: str = "INFO", json_output: bool = False) -> None:
    """
    Configure structlog and the standard library root logger.

    Args:
        level: Log level name; unknown names fall back to INFO.
        json_output: Render one JSON object per event instead of the
            colored console format.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(format="%(name)s: %(message)s", stream=sys.stderr, level=log_level)
    _quiet_libraries(log_level)

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=False),
        structlog.processors.StackInfoRenderer(),
    ]
    if json_output:
        processors += [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(sort_keys=True),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Return a lazily configured logger that tags events with ``logger_name``."""
    if name is None:
        return structlog.get_logger()
    return structlog.get_logger(name, logger_name=name)


def log_context(**kwargs: Any) -> structlog.contextvars.bound_contextvars:
    """
    Bind key/value pairs to every event logged inside the block.

    Example:
        with log_context(study="cells", stage="tune"):
            log.info("Tuning decision tree", candidates=25)
    """
    return structlog.contextvars.bound_contextvars(**kwargs)
