"""Centralized logging utilities for accesscore.

This module provides:
- Logging configuration from AccessConfig
- Safe preview utilities for audit context values
- Secret redaction
- Structured logging with principal_id / claim / request_id propagation
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Optional

from .config import AccessConfig, LogLevel

# Patterns for detecting secrets that may leak in through audit context bags
SECRET_PATTERNS = [
    r'(?i)(?:password|passwd|pwd|secret|token|api[_-]?key|auth[_-]?token|session[_-]?id)\s*[:=]\s*["\']?([^"\'\s,}]+)',
    r'(?i)(?:bearer|basic)\s+([a-zA-Z0-9+/=._-]+)',
    r'(?i)(?:sk-|pk-)[a-zA-Z0-9]{32,}',
]

# Record attributes lifted to top-level keys instead of being treated as extras
_CONTEXT_KEYS = ("principal_id", "claim", "request_id")

_RESERVED_ATTRS = frozenset(
    {
        "name", "msg", "args", "created", "filename", "funcName",
        "levelname", "levelno", "lineno", "module", "msecs",
        "message", "pathname", "process", "processName", "relativeCreated",
        "thread", "threadName", "exc_info", "exc_text", "stack_info",
        "taskName", *_CONTEXT_KEYS,
    }
)


def safe_preview(value: Any, limit: int = 240) -> str:
    """Create a single-line, length-bounded preview of a value for logging.

    Args:
        value: The value to preview (any type)
        limit: Maximum length of the preview (default: 240)

    Returns:
        A truncated string representation
    """
    if value is None:
        return ""

    if isinstance(value, str):
        s = value
    elif isinstance(value, (dict, list, tuple)):
        try:
            s = json.dumps(value, default=str, ensure_ascii=False)
        except (TypeError, ValueError):
            s = str(value)
    else:
        s = str(value)

    s = " ".join(s.split())

    if len(s) > limit:
        return s[: limit - 1] + "…"

    return s


def redact_secrets(text: str, replacement: str = "[REDACTED]") -> str:
    """Redact secret patterns (tokens, passwords, session ids) from text."""
    if not isinstance(text, str):
        return text

    result = text
    for pattern in SECRET_PATTERNS:
        result = re.sub(pattern, replacement, result, flags=re.IGNORECASE | re.DOTALL)

    return result


def safe_log_value(value: Any, limit: int = 240, redact: bool = True) -> str:
    """Preview + optional redaction. Use for anything from an audit context bag."""
    preview = safe_preview(value, limit=limit)
    if redact:
        preview = redact_secrets(preview)
    return preview


class AccessLogFormatter(logging.Formatter):
    """Formatter that surfaces principal_id, claim and request_id.

    Outputs JSON (one object per line) or plain text. Extra record
    attributes are previewed and redacted.
    """

    def __init__(
        self,
        json_format: bool = True,
        redact_secrets: bool = True,
        *args: Any,
        **kwargs: Any,
    ):
        super().__init__(*args, **kwargs)
        self.json_format = json_format
        self.redact_secrets = redact_secrets

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key in _CONTEXT_KEYS:
            value = getattr(record, key, None)
            if value:
                log_data[key] = str(value)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_data[key] = safe_log_value(value, redact=self.redact_secrets)

        if self.redact_secrets:
            log_data["message"] = redact_secrets(log_data["message"])

        if self.json_format:
            return json.dumps(log_data, default=str, ensure_ascii=False)

        parts = [
            f"[{log_data['timestamp']}]",
            log_data["level"],
            log_data["logger"],
        ]
        for key in _CONTEXT_KEYS:
            if key in log_data:
                parts.append(f"{key}={log_data[key]}")
        parts.append(f": {log_data['message']}")
        return " ".join(parts)


class AccessLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that binds principal_id and request_id to every record.

    Usage:
        logger = get_access_logger(__name__, principal_id=user.id)
        logger.info("Checking access", claim="service:configure:all")
    """

    def __init__(
        self,
        logger: logging.Logger,
        principal_id: Optional[str] = None,
        request_id: Optional[str] = None,
    ):
        super().__init__(logger, {})
        self.principal_id = principal_id
        self.request_id = request_id

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        principal_id = kwargs.pop("principal_id", self.principal_id)
        request_id = kwargs.pop("request_id", self.request_id)
        claim = kwargs.pop("claim", None)

        extra = kwargs.get("extra", {})
        if principal_id:
            extra["principal_id"] = principal_id
        if request_id:
            extra["request_id"] = request_id
        if claim:
            extra["claim"] = str(claim)
        kwargs["extra"] = extra

        return msg, kwargs


def setup_logging(
    config: Optional[AccessConfig] = None,
    json_format: Optional[bool] = None,
    redact_secrets: bool = True,
) -> None:
    """Configure root logging for a process embedding the engine.

    Args:
        config: AccessConfig instance (if None, loads from environment)
        json_format: Override ``config.log_json``
        redact_secrets: Whether to redact secrets (default: True)
    """
    if config is None:
        from .config import load_access_config_from_env

        config = load_access_config_from_env()

    level_map = {
        LogLevel.DEBUG: logging.DEBUG,
        LogLevel.INFO: logging.INFO,
        LogLevel.WARNING: logging.WARNING,
        LogLevel.ERROR: logging.ERROR,
        LogLevel.CRITICAL: logging.CRITICAL,
    }
    log_level = level_map.get(config.log_level, logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Remove existing handlers to avoid duplicates
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(
        AccessLogFormatter(
            json_format=config.log_json if json_format is None else json_format,
            redact_secrets=redact_secrets,
        )
    )
    root_logger.addHandler(console_handler)


def get_access_logger(
    name: str,
    principal_id: Optional[str] = None,
    request_id: Optional[str] = None,
) -> AccessLoggerAdapter:
    """Get a logger adapter bound to a principal and request.

    Example:
        logger = get_access_logger(__name__, principal_id="u-42")
        logger.warning("Access denied", claim="billing:view:all")
    """
    logger = logging.getLogger(name)
    return AccessLoggerAdapter(logger, principal_id=principal_id, request_id=request_id)


__all__ = [
    "safe_preview",
    "redact_secrets",
    "safe_log_value",
    "AccessLogFormatter",
    "AccessLoggerAdapter",
    "setup_logging",
    "get_access_logger",
]
