"""Engine configuration for grantcore.

This module provides the Pydantic-validated configuration model for the
permission engine (log level, grant specification source, compiler
switches).

Direct os.environ/os.getenv usage is FORBIDDEN outside
load_engine_config_from_env(). Everything else receives an EngineConfig.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class LogLevel(str, Enum):
    """Standard log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class EngineConfig(BaseModel):
    """Configuration contract for the permission engine.

    The grant specification is read once at startup from
    ``grant_spec_path``. When no path is configured the default
    specification shipped with the package is used.
    """

    # Logging
    log_level: LogLevel = Field(
        default=LogLevel.INFO,
        description="Logging level for the engine",
    )
    log_json: bool = Field(
        default=False,
        description="Use JSON log format (default: plain text)",
    )

    # Service identification
    service_name: Optional[str] = Field(
        default=None,
        description="Service name attached to log records (e.g., 'pms-api')",
    )

    # Grant specification
    grant_spec_path: Optional[str] = Field(
        default=None,
        description="Path to a JSON grant specification. None = packaged default.",
    )
    warn_unknown_actions: bool = Field(
        default=True,
        description="Log a compiler warning for actions a resource does not declare",
    )

    @field_validator("grant_spec_path")
    @classmethod
    def validate_grant_spec_path(cls, v: Optional[str]) -> Optional[str]:
        """Grant specifications are JSON documents."""
        if v is None or v == "":
            return None
        if not v.lower().endswith(".json"):
            raise ValueError("Grant specification path must point to a .json file")
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v: str | LogLevel) -> LogLevel:
        """Convert string to LogLevel enum."""
        if isinstance(v, LogLevel):
            return v
        if isinstance(v, str):
            try:
                return LogLevel[v.upper()]
            except KeyError:
                raise ValueError(f"Invalid log level: {v}. Must be one of {[e.value for e in LogLevel]}")
        raise ValueError(f"Log level must be string or LogLevel enum, got {type(v)}")

    model_config = {
        "use_enum_values": True,
        "extra": "forbid",  # Prevent accidental extra fields
    }


def load_engine_config_from_env() -> EngineConfig:
    """Load engine configuration from environment variables.

    This is the ONLY place where os.getenv is allowed for engine settings.

    Environment variables:
    - LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    - LOG_JSON: Use JSON log format (true/false, default: false)
    - SERVICE_NAME: Service name for log records
    - GRANT_SPEC_PATH: Path to the JSON grant specification
    - GRANT_WARN_UNKNOWN_ACTIONS: Warn on undeclared actions (default: true)

    Returns:
        EngineConfig instance with values from environment or defaults.
    """
    import os

    return EngineConfig(
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        log_json=os.getenv("LOG_JSON", "false").lower() in ("true", "1", "yes"),
        service_name=os.getenv("SERVICE_NAME"),
        grant_spec_path=os.getenv("GRANT_SPEC_PATH"),
        warn_unknown_actions=os.getenv("GRANT_WARN_UNKNOWN_ACTIONS", "true").lower() in ("true", "1", "yes", "on"),
    )


__all__ = [
    "EngineConfig",
    "LogLevel",
    "load_engine_config_from_env",
]
