"""Permission evaluation over the compiled grant table.

``PermissionEvaluator.check_permission`` answers one
``(role, resource, action, scope, context)`` question:

- ``any`` / ``mine`` are looked up in the compiled table. A ``mine`` grant
  additionally needs the context to prove ownership
  (``resource_owner_id == user_id``).
- ``assigned`` / ``available`` are delegated to :class:`ScopeResolver`.
- Anything that goes wrong while evaluating becomes a denial
  (``"Error evaluating permission"``). Denial is a result, never an exception.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from ..exceptions import EvaluationError
from .compiler import CompiledGrantTable
from .constants import Possession, Scope
from .models import PermissionCheckRequest, PermissionContext, PermissionResult
from .scopes import ScopeResolver

logger = logging.getLogger(__name__)

ERROR_REASON = "Error evaluating permission"
DENIED_REASON = "Permission denied"
ROLE_NOT_FOUND_REASON = "Role not found"

# Attribute glob attached to standard-scope grants
ALL_ATTRIBUTES = ("*",)


class PermissionEvaluator:
    """Stateless evaluator over an immutable table and scope resolver."""

    __slots__ = ("_table", "_scopes")

    def __init__(self, table: CompiledGrantTable, scopes: ScopeResolver) -> None:
        self._table = table
        self._scopes = scopes

    def check_permission(
        self,
        request: PermissionCheckRequest | Mapping[str, Any],
    ) -> PermissionResult:
        """Resolve a permission check request to a grant/deny decision.

        Never raises: malformed requests and internal faults fail closed.
        """
        try:
            if not isinstance(request, PermissionCheckRequest):
                request = PermissionCheckRequest.model_validate(request)
            return self._evaluate(request)
        except Exception:
            logger.exception("Error checking permission")
            return PermissionResult.deny(ERROR_REASON)

    def _evaluate(self, request: PermissionCheckRequest) -> PermissionResult:
        role, resource, action, scope = request.role, request.resource, request.action, request.scope

        if not self._table.has_role(role):
            logger.debug("Permission check for unknown role '%s'", role)
            return PermissionResult.deny(ROLE_NOT_FOUND_REASON)

        if scope in Scope.STANDARD:
            result = self._check_standard(role, resource, action, scope, request.context)
            if result is not None:
                return result
            # Declared in the specification but absent from the table: the two disagree
            if self._scopes.is_eligible(role, resource, action, scope):
                raise EvaluationError(
                    f"'{action}:{scope}' on '{resource}' declared but missing from compiled table",
                    role=role,
                )
            logger.debug("Denied %s:%s:%s for role '%s'", resource, action, scope, role)
            return PermissionResult.deny(DENIED_REASON)

        return self._scopes.evaluate(role, resource, action, scope, request.context)

    def _check_standard(
        self,
        role: str,
        resource: str,
        action: str,
        scope: str,
        context: Optional[PermissionContext],
    ) -> Optional[PermissionResult]:
        possession = Possession.for_scope(scope)
        if not self._table.is_granted(role, resource, action, possession):
            return None

        if possession == Possession.ANY:
            return PermissionResult.allow("Permission granted", attributes=ALL_ATTRIBUTES)

        return self._validate_ownership(context)

    @staticmethod
    def _validate_ownership(context: Optional[PermissionContext]) -> PermissionResult:
        if context is None or not context.user_id:
            return PermissionResult.deny("User context required for ownership validation")
        if not context.resource_owner_id:
            return PermissionResult.deny("Ownership context required for mine scope")
        if context.resource_owner_id != context.user_id:
            return PermissionResult.deny(
                f"User {context.user_id} does not own resource owned by {context.resource_owner_id}"
            )
        return PermissionResult.allow("Permission granted (own)", attributes=ALL_ATTRIBUTES)


__all__ = [
    "ALL_ATTRIBUTES",
    "DENIED_REASON",
    "ERROR_REASON",
    "PermissionEvaluator",
    "ROLE_NOT_FOUND_REASON",
]
