"""Role/scope permission-resolution engine.

Defines:
- Scope / Possession / StandardAction: the permission vocabulary
- GrantSpecification: validated, immutable grant specification
- GrantCompiler / CompiledGrantTable: inheritance-resolved grant table
- ScopeResolver: business scopes (assigned / available)
- PermissionEvaluator: table lookups, fail-closed
- OwnershipClassifier: scope derivation from resource documents
- PermissionsProjector: flat permission strings for an actor
- PermissionService: the façade services call
"""

from .compiler import CompiledGrantTable, GrantCompiler, GrantKey, compile_grants
from .constants import (
    EXTEND_KEY,
    Permissions,
    Possession,
    Resources,
    Roles,
    Scope,
    StandardAction,
)
from .evaluator import PermissionEvaluator
from .inheritance import build_extend_graph, expand_role_chain, resolve_extend_order
from .models import (
    ClientConnection,
    CurrentActor,
    PermissionCheckRequest,
    PermissionContext,
    PermissionResult,
)
from .ownership import (
    DEFAULT_OWNERSHIP_RULES,
    OwnerMatch,
    Ownership,
    OwnershipClassifier,
    OwnershipRule,
)
from .projector import PermissionsProjector
from .schema import (
    GrantSpecification,
    GrantString,
    ResourceDefinition,
    RoleDefinition,
    default_spec_path,
    load_grant_specification,
    parse_permission,
)
from .scopes import ScopeResolver
from .service import PermissionService, get_permission_service, reset_permission_service

__all__ = [
    "DEFAULT_OWNERSHIP_RULES",
    "EXTEND_KEY",
    "ClientConnection",
    "CompiledGrantTable",
    "CurrentActor",
    "GrantCompiler",
    "GrantKey",
    "GrantSpecification",
    "GrantString",
    "OwnerMatch",
    "Ownership",
    "OwnershipClassifier",
    "OwnershipRule",
    "PermissionCheckRequest",
    "PermissionContext",
    "PermissionEvaluator",
    "PermissionResult",
    "PermissionService",
    "Permissions",
    "PermissionsProjector",
    "Possession",
    "ResourceDefinition",
    "Resources",
    "RoleDefinition",
    "Roles",
    "Scope",
    "ScopeResolver",
    "StandardAction",
    "build_extend_graph",
    "compile_grants",
    "default_spec_path",
    "expand_role_chain",
    "get_permission_service",
    "load_grant_specification",
    "parse_permission",
    "reset_permission_service",
    "resolve_extend_order",
]
