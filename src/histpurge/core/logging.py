"""Structured logging configuration for histpurge.

Uses structlog routed through stdlib logging so the same timestamped
line reaches every handler.

Architecture:
    ProcessorFormatter sends stdlib log records through structlog's
    processor chain. Two handlers share that chain: stdout for the
    operator, and an append-only file that is the tool's audit log.
    The file renderer never emits colour codes.
"""

import logging
import sys
from pathlib import Path
from typing import Any

import structlog
from structlog.stdlib import ProcessorFormatter

# Silenced to WARNING even when histpurge runs in DEBUG mode.
_NOISY_LOGGERS: tuple[str, ...] = (
    "sqlalchemy",
    "sqlalchemy.engine",
    "sqlalchemy.pool",
    "pymysql",
)


def _remove_internal_fields(
    logger: logging.Logger | None,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Remove internal structlog fields from output.

    ProcessorFormatter always adds _record and _from_structlog when
    processing log records. These are bookkeeping, not audit content.
    """
    del event_dict["_record"]
    del event_dict["_from_structlog"]
    return event_dict


def _formatter(
    shared_processors: list[Any],
    *,
    json_output: bool,
    colors: bool,
) -> ProcessorFormatter:
    if json_output:
        final_processors: list[Any] = [
            _remove_internal_fields,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        final_processors = [
            _remove_internal_fields,
            structlog.dev.ConsoleRenderer(colors=colors),
        ]
    return ProcessorFormatter(
        processors=final_processors,
        foreign_pre_chain=shared_processors,
    )


def configure_logging(
    *,
    json_output: bool = False,
    level: str = "INFO",
    log_file: Path | None = None,
) -> None:
    """Configure structlog and stdlib logging for histpurge.

    Args:
        json_output: If True, output JSON. If False, human-readable.
        level: Log level (DEBUG, INFO, WARNING, ERROR).
        log_file: Audit log path, opened in append mode. None disables it.
    """
    log_level = getattr(logging, level.upper())

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
    ]

    structlog.configure(
        processors=[*shared_processors, ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Disable caching to allow reconfiguration in tests
        cache_logger_on_first_use=False,
    )

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(
        _formatter(shared_processors, json_output=json_output, colors=sys.stdout.isatty())
    )
    handlers: list[logging.Handler] = [stdout_handler]

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setFormatter(
            _formatter(shared_processors, json_output=json_output, colors=False)
        )
        handlers.append(file_handler)

    root = logging.getLogger()
    for old in root.handlers:
        old.close()
    root.handlers = handlers
    root.setLevel(log_level)

    # Never make noisy loggers less restrictive than the root level
    noisy_level = max(log_level, logging.WARNING)
    for logger_name in _NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(noisy_level)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a bound logger for a module.

    Args:
        name: Logger name (typically __name__).

    Returns:
        Bound structlog logger.
    """
    logger: structlog.stdlib.BoundLogger = structlog.get_logger(name)
    return logger
