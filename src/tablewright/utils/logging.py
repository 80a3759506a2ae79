"""Structured logging for tablewright (structlog over stdlib logging).

Every event is rendered as one JSON line with an ISO timestamp, level and
logger name. Two processors run before rendering:

- sanitization_processor redacts credential-like keys (password, token,
  secret, api_key, DATABASE_URL) at any nesting depth.
- statement_processor keeps SQL out of the logs in bulk: ``statement`` and
  ``sql`` values are whitespace-collapsed and truncated, and a ``params``
  mapping is reduced to its sorted key names so bound values never appear.

Level, optional file output and the truncation length come from Settings
(LOG_LEVEL, LOG_TO_FILE, LOG_FILE_DIR, TW_LOG_STATEMENT_MAX_LENGTH).

Usage:
    >>> from tablewright.utils.logging import get_logger
    >>> logger = get_logger(__name__)
    >>> logger.info("statement.executed", statement=sql, params=params)
"""

import logging
import os
import re
from datetime import datetime
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Any, Dict, List, Mapping, MutableMapping

import structlog
from pydantic import ValidationError
from structlog.types import EventDict, Processor

from tablewright.config import get_settings

SENSITIVE_PATTERNS = [
    re.compile(r".*password.*", re.IGNORECASE),
    re.compile(r".*token.*", re.IGNORECASE),
    re.compile(r".*api_key.*", re.IGNORECASE),
    re.compile(r".*secret.*", re.IGNORECASE),
    re.compile(r"^DATABASE_URL$", re.IGNORECASE),
]
STATEMENT_KEYS = ("statement", "sql")
PARAMS_KEY = "params"

REDACTED_VALUE = "[REDACTED]"
DEFAULT_STATEMENT_MAX_LENGTH = 200

_WHITESPACE = re.compile(r"\s+")
_HANDLER_NAME = "tablewright"


def _is_sensitive(key: str) -> bool:
    return any(pattern.match(key) for pattern in SENSITIVE_PATTERNS)


def sanitize_for_logging(data: Mapping[str, Any]) -> Dict[str, Any]:
    """Copy of ``data`` with credential-like values replaced by ``[REDACTED]``.

    Nested dicts are sanitized recursively; the input is not modified.

    Example:
        >>> sanitize_for_logging({"password": "s3cret", "user": "app"})
        {'password': '[REDACTED]', 'user': 'app'}
    """
    sanitized: Dict[str, Any] = {}
    for key, value in data.items():
        if _is_sensitive(str(key)):
            sanitized[key] = REDACTED_VALUE
        elif isinstance(value, Mapping):
            sanitized[key] = sanitize_for_logging(value)
        else:
            sanitized[key] = value
    return sanitized


def shorten_statement(sql: str, max_length: int = DEFAULT_STATEMENT_MAX_LENGTH) -> str:
    """Collapse whitespace in ``sql`` and cut it to ``max_length`` characters."""
    flat = _WHITESPACE.sub(" ", sql).strip()
    if max_length > 0 and len(flat) > max_length:
        return flat[: max_length - 3] + "..."
    return flat


def parameter_names(params: Mapping[str, Any]) -> List[str]:
    return sorted(str(name) for name in params)


def sanitization_processor(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> MutableMapping[str, Any]:
    """Structlog processor wrapping sanitize_for_logging."""
    return sanitize_for_logging(event_dict)


def make_statement_processor(max_length: int = DEFAULT_STATEMENT_MAX_LENGTH) -> Processor:
    """Build the processor that shortens SQL text and hides parameter values."""

    def statement_processor(
        logger: logging.Logger, method_name: str, event_dict: EventDict
    ) -> EventDict:
        for key in STATEMENT_KEYS:
            value = event_dict.get(key)
            if isinstance(value, str):
                event_dict[key] = shorten_statement(value, max_length)
        params = event_dict.get(PARAMS_KEY)
        if isinstance(params, Mapping):
            event_dict[PARAMS_KEY] = parameter_names(params)
        return event_dict

    return statement_processor


statement_processor = make_statement_processor()


def _logging_options() -> Dict[str, Any]:
    """Resolve level, file output and truncation length.

    A malformed TW_* variable must not stop logging from starting, so a
    settings validation failure falls back to the raw environment.
    """
    try:
        settings = get_settings()
    except ValidationError:
        return {
            "level": os.getenv("LOG_LEVEL", "INFO").upper(),
            "to_file": os.getenv("LOG_TO_FILE", "").lower() in ("1", "true", "yes"),
            "file_dir": os.getenv("LOG_FILE_DIR", "logs"),
            "max_length": DEFAULT_STATEMENT_MAX_LENGTH,
        }
    return {
        "level": settings.LOG_LEVEL,
        "to_file": settings.log_to_file,
        "file_dir": settings.log_file_dir,
        "max_length": settings.log_statement_max_length,
    }


def _log_file_path(log_dir: str) -> Path:
    directory = Path(log_dir)
    directory.mkdir(parents=True, exist_ok=True)
    return directory / f"tablewright-{datetime.now():%Y%m%d}.log"


def _install_handlers(level: int, to_file: bool, file_dir: str) -> None:
    """Attach tablewright's stream (and optional file) handler to the root logger once."""
    root = logging.getLogger()
    for handler in list(root.handlers):
        if handler.get_name() == _HANDLER_NAME:
            root.removeHandler(handler)

    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if to_file:
        handlers.append(
            TimedRotatingFileHandler(
                filename=str(_log_file_path(file_dir)),
                when="midnight",
                backupCount=30,
                encoding="utf-8",
            )
        )
    for handler in handlers:
        handler.set_name(_HANDLER_NAME)
        handler.setLevel(level)
        handler.setFormatter(logging.Formatter("%(message)s"))
        root.addHandler(handler)
    root.setLevel(level)


def configure_logging() -> None:
    """(Re)configure structlog and the stdlib handlers from current settings."""
    options = _logging_options()
    level = getattr(logging, options["level"], logging.INFO)
    _install_handlers(level, options["to_file"], options["file_dir"])

    processors: List[Processor] = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        make_statement_processor(options["max_length"]),
        sanitization_processor,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer(),
    ]
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


configure_logging()


def get_logger(name: str) -> Any:
    """structlog BoundLogger for ``name`` (usually the caller's ``__name__``)."""
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> Any:
    """Logger with ``kwargs`` bound to every event it emits.

    Example:
        >>> logger = bind_context(table="users", operation="update")
        >>> logger.info("statement.executed", row_count=3)
    """
    return structlog.get_logger().bind(**kwargs)
