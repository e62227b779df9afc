"""Structured logging utility and error hierarchy for boxport.

Records go to stderr, so stdout stays free for the CLI's JSON results. Fields
attached through ContextLogger are rendered as ``[key=value ...]`` by the
default text format, or as top-level keys once enable_json_logging() switched
the ``boxport`` logger tree to JSON.
"""
import logging
import json
import os
import sys
import traceback
from typing import Any, Dict, Optional
from datetime import datetime, timezone

ROOT_LOGGER = "boxport"
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class ContextFormatter(logging.Formatter):
    """Text formatter that appends ContextLogger fields to the message."""

    def formatMessage(self, record: logging.LogRecord) -> str:
        text = super().formatMessage(record)
        extra = getattr(record, 'extra_fields', None)
        if extra:
            text += " [" + " ".join(f"{k}={v}" for k, v in extra.items()) + "]"
        return text


# Configure root logger with LOG_LEVEL from environment
_log_level_str = os.environ.get("LOG_LEVEL", "INFO").upper()
_log_level = getattr(logging, _log_level_str, logging.INFO)
_stderr_handler = logging.StreamHandler(sys.stderr)
_stderr_handler.setFormatter(ContextFormatter(LOG_FORMAT))
logging.basicConfig(level=_log_level, handlers=[_stderr_handler])

# Cache loggers to avoid repeated lookups
_logger_cache: Dict[str, logging.Logger] = {}


class JSONFormatter(logging.Formatter):
    """Format log records as one JSON object per line."""

    __slots__ = ()

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info and record.exc_info[0] is not None:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": traceback.format_exception(*record.exc_info),
            }

        extra = getattr(record, 'extra_fields', None)
        if extra:
            log_data.update(extra)

        return json.dumps(log_data, default=str)


def get_logger(name: str, json_format: bool = False) -> logging.Logger:
    """Get a logger instance with optional JSON formatting.

    Args:
        name: Logger name (typically __name__)
        json_format: If True, records of this logger and its children are
            written as JSON to stderr instead of going to the root handler

    Returns:
        Configured logger instance
    """
    cache_key = f"{name}:{json_format}"
    if cache_key in _logger_cache:
        return _logger_cache[cache_key]

    logger = logging.getLogger(name)
    if logger.level == logging.NOTSET:
        logger.setLevel(_log_level)

    if json_format and not any(isinstance(h.formatter, JSONFormatter) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(JSONFormatter())
        logger.addHandler(handler)
        logger.propagate = False

    _logger_cache[cache_key] = logger
    return logger


def enable_json_logging(name: str = ROOT_LOGGER) -> logging.Logger:
    """Switch @name and every logger below it (boxport.*) to JSON output."""
    return get_logger(name, json_format=True)


class ContextLogger:
    """Logger wrapper that adds context fields (box id, import step) to all log messages."""

    __slots__ = ('logger', 'context')

    def __init__(self, logger: logging.Logger, **context):
        self.logger = logger
        self.context = context

    def _log(self, level: int, msg: str, **extra):
        if not self.logger.isEnabledFor(level):
            return
        merged = {**self.context, **extra} if extra else self.context
        record = self.logger.makeRecord(
            self.logger.name,
            level,
            "(unknown file)",
            0,
            msg,
            (),
            None,
        )
        record.extra_fields = merged
        self.logger.handle(record)

    def debug(self, msg: str, **extra):
        self._log(logging.DEBUG, msg, **extra)

    def info(self, msg: str, **extra):
        self._log(logging.INFO, msg, **extra)

    def warning(self, msg: str, **extra):
        self._log(logging.WARNING, msg, **extra)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------
class BoxportError(Exception):
    """Base exception for all boxport errors."""
    pass


class ConfigurationError(BoxportError):
    """Error in configuration or environment setup."""
    pass


class BoxInputError(BoxportError):
    """Problem with the local box directory or its box.yaml."""
    pass


class BoxDirectoryNotFound(BoxInputError):
    pass


class NotADirectory(BoxInputError):
    pass


class BoxDefinitionError(BoxInputError):
    """box.yaml is missing, unreadable or malformed."""
    pass


class MissingIdentityForDraft(BoxInputError):
    """Drafts must reference an existing box lineage."""
    pass


class ArtifactError(BoxportError):
    """Reading or uploading a file referenced by the box failed."""

    def __init__(self, step: str, path: str, cause: Any):
        self.step = step
        self.path = path
        self.cause = cause
        super().__init__(f"{step} {path!r}: {cause}")


class OwnerUnresolved(BoxportError):
    pass


class SchemaResolutionError(BoxportError):
    pass


class DeadlineExceeded(BoxportError):
    pass


class CatalogAPIError(BoxportError):
    """Non-success response (or exhausted retries) from the catalog API."""

    def __init__(self, method: str, path: str, status_code: Optional[int] = None, detail: str = ""):
        self.method = method
        self.path = path
        self.status_code = status_code
        self.detail = detail
        msg = f"{method} {path}"
        if status_code is not None:
            msg += f" returned {status_code}"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)


class NotFoundError(CatalogAPIError):
    pass


def safe_int(value: Any, default: int, logger: Optional[logging.Logger] = None, context: str = "") -> int:
    """Safely convert value to int with logging on failure.

    Args:
        value: Value to convert
        default: Default value if conversion fails
        logger: Optional logger for warnings
        context: Context string for log message

    Returns:
        Converted int or default
    """
    try:
        if value is None or (isinstance(value, str) and value.strip() == ""):
            return default
        return int(value)
    except (ValueError, TypeError) as e:
        if logger:
            logger.warning(f"Failed to convert {context} to int: {value}", exc_info=e)
        return default


def safe_float(value: Any, default: float, logger: Optional[logging.Logger] = None, context: str = "") -> float:
    """Safely convert value to float with logging on failure."""
    try:
        if value is None or (isinstance(value, str) and value.strip() == ""):
            return default
        return float(value)
    except (ValueError, TypeError) as e:
        if logger:
            logger.warning(f"Failed to convert {context} to float: {value}", exc_info=e)
        return default


def safe_bool(value: Any, default: bool, logger: Optional[logging.Logger] = None, context: str = "") -> bool:
    """Safely convert value to bool; unrecognized strings fall back to default."""
    if value is None or (isinstance(value, str) and value.strip() == ""):
        return default
    if isinstance(value, bool):
        return value
    s = str(value).strip().lower()
    if s in {"1", "true", "yes", "on"}:
        return True
    if s in {"0", "false", "no", "off"}:
        return False
    if logger:
        logger.warning(f"Failed to convert {context} to bool: {value}")
    return default
