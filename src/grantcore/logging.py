"""Centralized logging utilities for grantcore.

This module provides:
- Logging configuration from EngineConfig
- Safe preview utilities for actor/context data
- Secret redaction
- Structured logging with permission-check context (role, user_id)
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Optional

from .config import EngineConfig, LogLevel


# Patterns for detecting secrets (common patterns to redact)
SECRET_PATTERNS = [
    r'(?i)(?:password|passwd|pwd|secret|token|key|api[_-]?key|auth[_-]?token)\s*[:=]\s*["\']?([^"\'\s]+)',
    r'(?i)(?:bearer|basic)\s+([a-zA-Z0-9+/=]+)',
    r'(?i)(?:x-api-key|x-auth-token|x-access-token)\s*[:=]\s*["\']?([^"\'\s]+)',
    r'[a-f0-9]{32,}',  # Long hex strings (could be hashes or keys)
]

# Record attributes attached by PermissionLoggerAdapter
CONTEXT_FIELDS = ("role", "user_id", "resource")

_RESERVED_RECORD_KEYS = {
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "message", "pathname", "process", "processName", "relativeCreated",
    "thread", "threadName", "exc_info", "exc_text", "stack_info", "taskName",
    *CONTEXT_FIELDS,
}


def safe_preview(value: Any, limit: int = 240) -> str:
    """Create a safe, length-bounded preview of a value for logging.

    Converts any value to a single-line string, normalizes whitespace
    and truncates to ``limit`` characters.

    Args:
        value: The value to preview (any type)
        limit: Maximum length of the preview (default: 240)

    Returns:
        A safe, truncated string representation
    """
    if value is None:
        return ""

    if isinstance(value, str):
        s = value
    elif isinstance(value, (dict, list, tuple, set, frozenset)):
        try:
            s = json.dumps(
                sorted(value) if isinstance(value, (set, frozenset)) else value,
                default=str,
                ensure_ascii=False,
            )
        except (TypeError, ValueError):
            s = str(value)
    else:
        s = str(value)

    s = " ".join(s.split())

    if len(s) > limit:
        return s[: limit - 1] + "…"

    return s


def redact_secrets(text: str, replacement: str = "[REDACTED]") -> str:
    """Redact secret patterns (tokens, passwords, long hex keys) from text."""
    if not isinstance(text, str):
        return text

    result = text
    for pattern in SECRET_PATTERNS:
        result = re.sub(pattern, replacement, result, flags=re.IGNORECASE | re.DOTALL)

    return result


def safe_log_value(value: Any, limit: int = 240, redact: bool = True) -> str:
    """Create a safe log value with preview and optional redaction.

    This is the function to use when logging caller-supplied context
    (user ids, assigned-user lists, resource documents).
    """
    preview = safe_preview(value, limit=limit)
    if redact:
        preview = redact_secrets(preview)
    return preview


class GrantCoreFormatter(logging.Formatter):
    """Formatter that includes permission-check context and optional JSON output.

    Adds ``role``, ``user_id`` and ``resource`` to the output when the
    record carries them (see :class:`PermissionLoggerAdapter`).
    """

    def __init__(
        self,
        include_context: bool = True,
        json_format: bool = True,
        redact_secrets: bool = True,
        *args: Any,
        **kwargs: Any,
    ):
        super().__init__(*args, **kwargs)
        self.include_context = include_context
        self.json_format = json_format
        self.redact_secrets = redact_secrets

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        context: dict[str, str] = {}
        if self.include_context:
            for field in CONTEXT_FIELDS:
                value = getattr(record, field, None)
                if value:
                    context[field] = safe_log_value(value, redact=self.redact_secrets)
            log_data.update(context)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_RECORD_KEYS:
                log_data[key] = safe_log_value(value, redact=self.redact_secrets)

        if self.redact_secrets:
            log_data["message"] = redact_secrets(log_data["message"])

        if self.json_format:
            return json.dumps(log_data, default=str, ensure_ascii=False)

        parts = [
            f"[{log_data['timestamp']}]",
            f"{log_data['level']}",
            f"{log_data['logger']}",
        ]
        parts.extend(f"{key}={value}" for key, value in context.items())
        parts.append(f": {log_data['message']}")
        return " ".join(parts)


class PermissionLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that adds role and user_id to every record.

    Usage:
        logger = get_permission_logger(__name__, role="manager", user_id="u1")
        logger.info("Checking access", resource="property")
    """

    def __init__(
        self,
        logger: logging.Logger,
        role: Optional[str] = None,
        user_id: Optional[str] = None,
    ):
        super().__init__(logger, {})
        self.role = role
        self.user_id = user_id

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        role = kwargs.pop("role", self.role)
        user_id = kwargs.pop("user_id", self.user_id)
        resource = kwargs.pop("resource", None)

        extra = kwargs.get("extra", {})
        if role:
            extra["role"] = role
        if user_id:
            extra["user_id"] = user_id
        if resource:
            extra["resource"] = resource
        kwargs["extra"] = extra

        return msg, kwargs


def setup_logging(
    config: Optional[EngineConfig] = None,
    json_format: Optional[bool] = None,
    redact_secrets: bool = True,
) -> None:
    """Configure logging for a process embedding the engine.

    Sets the root level from EngineConfig and installs a single console
    handler with :class:`GrantCoreFormatter`.

    Args:
        config: EngineConfig instance (if None, loads from environment)
        json_format: Override ``config.log_json``
        redact_secrets: Whether to redact secrets (default: True)
    """
    if config is None:
        from .config import load_engine_config_from_env
        config = load_engine_config_from_env()

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
        GrantCoreFormatter(
            include_context=True,
            json_format=config.log_json if json_format is None else json_format,
            redact_secrets=redact_secrets,
        )
    )
    root_logger.addHandler(console_handler)

    if config.service_name:
        logging.getLogger(config.service_name).setLevel(log_level)


def get_permission_logger(
    name: str,
    role: Optional[str] = None,
    user_id: Optional[str] = None,
) -> PermissionLoggerAdapter:
    """Get a logger adapter bound to a role and user.

    Example:
        logger = get_permission_logger(__name__, role=actor.role, user_id=actor.user_id)
        logger.debug("Ownership derived", resource="user")
    """
    logger = logging.getLogger(name)
    return PermissionLoggerAdapter(logger, role=role, user_id=user_id)


__all__ = [
    "safe_preview",
    "redact_secrets",
    "safe_log_value",
    "GrantCoreFormatter",
    "PermissionLoggerAdapter",
    "setup_logging",
    "get_permission_logger",
]
