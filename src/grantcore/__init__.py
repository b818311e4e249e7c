from .config import EngineConfig, LogLevel, load_engine_config_from_env
from .exceptions import (
    ConfigurationError,
    EvaluationError,
    GrantCoreError,
    PermissionSpecError,
)
from .logging import (
    safe_preview,
    redact_secrets,
    safe_log_value,
    GrantCoreFormatter,
    PermissionLoggerAdapter,
    setup_logging,
    get_permission_logger,
)
from .permissions import (
    CompiledGrantTable,
    CurrentActor,
    GrantCompiler,
    GrantSpecification,
    PermissionCheckRequest,
    PermissionContext,
    PermissionResult,
    PermissionService,
    Scope,
    get_permission_service,
    load_grant_specification,
    reset_permission_service,
)

__all__ = [
    'EngineConfig',
    'LogLevel',
    'load_engine_config_from_env',
    'GrantCoreError',
    'ConfigurationError',
    'PermissionSpecError',
    'EvaluationError',
    'safe_preview',
    'redact_secrets',
    'safe_log_value',
    'GrantCoreFormatter',
    'PermissionLoggerAdapter',
    'setup_logging',
    'get_permission_logger',
    'CompiledGrantTable',
    'CurrentActor',
    'GrantCompiler',
    'GrantSpecification',
    'PermissionCheckRequest',
    'PermissionContext',
    'PermissionResult',
    'PermissionService',
    'Scope',
    'get_permission_service',
    'load_grant_specification',
    'reset_permission_service',
]
