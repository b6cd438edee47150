"""Structured logging for the email categorizer.

Log lines go to stderr so the category printed on stdout stays clean. Each
classification runs inside classification_context(), which tags its log
lines with a classification_id so the attempts and retries of one request
can be traced together.

The Google AI API key travels as the ``key`` query parameter of every
request, so it is masked wherever it could reach a log line: structlog
event fields, and the request lines httpx writes through stdlib logging.

Usage:
    from categorizer.core.logging import classification_context, get_logger

    logger = get_logger(__name__)

    with classification_context():
        logger.info("classification_succeeded", category="Updates")
"""

from __future__ import annotations

import logging
import re
import sys
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from categorizer.config_schema import LoggingConfig

REDACTED = "***"

# Event fields that always hold a credential
CREDENTIAL_FIELDS = frozenset({"credential", "api_key", "key"})

_KEY_PARAM = re.compile(r"([?&]key=)[^&\s\"']+")

_classification_id: ContextVar[str | None] = ContextVar("classification_id", default=None)


# ---------------------------------------------------------------------------
# Classification context
# ---------------------------------------------------------------------------


def get_classification_id() -> str | None:
    """The classification_id of the running classification, if any."""
    return _classification_id.get()


@contextmanager
def classification_context(classification_id: str | None = None) -> Iterator[str]:
    """Tag every log line inside the block with a classification_id.

    A fresh UUID is used unless one is given. The previous ID (normally
    none) is restored on exit, even if the block raises.
    """
    classification_id = classification_id or str(uuid.uuid4())
    token = _classification_id.set(classification_id)
    try:
        yield classification_id
    finally:
        _classification_id.reset(token)


# ---------------------------------------------------------------------------
# Processors and filters
# ---------------------------------------------------------------------------


def redact_key_param(text: str) -> str:
    """Mask the value of any ``key=`` query parameter in text."""
    return _KEY_PARAM.sub(rf"\g<1>{REDACTED}", text)


def add_classification_id(
    logger: structlog.types.WrappedLogger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    classification_id = _classification_id.get()
    if classification_id is not None:
        event_dict["classification_id"] = classification_id
    return event_dict


def redact_credentials(
    logger: structlog.types.WrappedLogger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Mask credential fields and ``key=`` URL parameters in an event."""
    for name, value in event_dict.items():
        if name in CREDENTIAL_FIELDS and value:
            event_dict[name] = REDACTED
        elif isinstance(value, str):
            event_dict[name] = redact_key_param(value)
    return event_dict


class RedactingFilter(logging.Filter):
    """Masks the API key in stdlib records, e.g. httpx's request lines."""

    def filter(self, record: logging.LogRecord) -> bool:
        if record.args:
            record.msg = redact_key_param(record.getMessage())
            record.args = None
        elif isinstance(record.msg, str):
            record.msg = redact_key_param(record.msg)
        return True


class _StderrHandler(logging.StreamHandler):
    """Root handler owned by configure_logging(); replaced on each call."""


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------


def _level_number(log_level: str) -> int:
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {log_level!r}")
    return level


def _remove_handlers(root: logging.Logger) -> None:
    for handler in [h for h in root.handlers if isinstance(h, _StderrHandler)]:
        root.removeHandler(handler)
        handler.close()


def configure_logging(log_level: str = "WARNING", json_output: bool = False) -> None:
    """Configure stdlib logging and structlog for the categorizer.

    Can be called again to change the level or renderer; the last call wins
    and handlers installed by other code (e.g. test runners) are left alone.

    Args:
        log_level: DEBUG, INFO, WARNING or ERROR (case-insensitive)
        json_output: JSON lines if True, human-readable console output if False

    Raises:
        ValueError: If log_level is not a logging level name
    """
    level = _level_number(log_level)

    root = logging.getLogger()
    _remove_handlers(root)
    handler = _StderrHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(message)s"))
    handler.addFilter(RedactingFilter())
    root.addHandler(handler)
    root.setLevel(level)

    # httpx logs every request at INFO; only show those lines when debugging
    logging.getLogger("httpx").setLevel(logging.DEBUG if level <= logging.DEBUG else logging.WARNING)

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        add_classification_id,
        redact_credentials,
    ]
    if json_output:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Module-level loggers must pick up a reconfigured renderer
        cache_logger_on_first_use=False,
    )


def configure_from_config(logging_config: LoggingConfig, debug: bool = False) -> None:
    """Apply the ``logging`` config section; ``debug`` forces DEBUG level."""
    configure_logging(
        log_level="DEBUG" if debug else logging_config.level,
        json_output=logging_config.json_output,
    )


def reset_logging() -> None:
    """Undo configure_logging(). Primarily for testing."""
    root = logging.getLogger()
    _remove_handlers(root)
    root.setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.NOTSET)
    structlog.reset_defaults()


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
