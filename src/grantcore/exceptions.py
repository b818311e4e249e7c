"""Unified exception hierarchy for grantcore.

All engine errors inherit from GrantCoreError and carry a stable error code.

Two kinds of failure exist in the engine:
    - Configuration errors are raised while loading or compiling a grant
      specification. They are fatal and must stop the process from serving.
    - Evaluation errors are raised inside a single permission check and are
      always converted to a denied PermissionResult at the check boundary.

Usage:
    from grantcore.exceptions import ConfigurationError, PermissionSpecError

    try:
        service = PermissionService.from_file(path)
    except ConfigurationError as e:
        logger.critical("Refusing to start: [%s] %s", e.code, e.message)
        raise
"""

from __future__ import annotations

from typing import Any

__all__ = [
    "GrantCoreError",
    "ConfigurationError",
    "PermissionSpecError",
    "EvaluationError",
]


# ---- Exception Hierarchy ----------------------------------------------------


class GrantCoreError(Exception):
    """Base exception for grantcore.

    Attributes:
        code: Stable error code string (e.g. "CONFIGURATION_ERROR").
        message: Human-readable error description.
        details: Additional context as keyword arguments.
    """

    code: str = "INTERNAL_ERROR"
    message: str = "An internal error occurred"

    def __init__(self, message: str | None = None, code: str | None = None, **kwargs: Any) -> None:
        self.message = message or self.message
        self.code = code or self.code
        self.details = kwargs
        super().__init__(self.message)


class ConfigurationError(GrantCoreError):
    """Invalid or missing configuration."""

    code: str = "CONFIGURATION_ERROR"


class PermissionSpecError(ConfigurationError):
    """Grant specification cannot be compiled.

    Raised for unparseable permission strings, unknown scopes,
    ``$extend`` references to undeclared roles, and inheritance cycles.
    """

    code: str = "PERMISSION_SPEC_ERROR"


class EvaluationError(GrantCoreError):
    """A single permission check could not be evaluated."""

    code: str = "EVALUATION_ERROR"
