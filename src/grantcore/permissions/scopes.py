"""Business-specific scope evaluation (``assigned`` / ``available``).

These scopes are not possession facts. A role is *eligible* for
``action:assigned`` or ``action:available`` when the grant specification
declares that literal string for the role (or a role it extends).
Eligibility is then combined with caller-supplied context:

- ``assigned``: the caller's user id must appear in ``context.assigned_users``.
- ``available``: eligibility alone is enough; an available item has no
  claimant yet by definition.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..logging import safe_log_value
from .compiler import CompiledGrantTable
from .constants import Permissions, Scope
from .models import PermissionContext, PermissionResult
from .schema import GrantSpecification

logger = logging.getLogger(__name__)


class ScopeResolver:
    """Resolves business scopes against the uncompiled specification.

    Args:
        spec: The validated grant specification (source of literal scope grants).
        table: The compiled table, used only for the role inheritance chain.
    """

    __slots__ = ("_spec", "_table")

    def __init__(self, spec: GrantSpecification, table: CompiledGrantTable) -> None:
        self._spec = spec
        self._table = table

    def is_eligible(self, role: str, resource: str, action: str, scope: str) -> bool:
        """Whether ``role`` (or a role it extends) declares ``action:scope`` on ``resource``."""
        for candidate in (role, *self._table.extends(role)):
            for permission in self._spec.declared_permissions(candidate, resource):
                if Permissions.split(permission) == (action, scope):
                    return True
        return False

    def evaluate(
        self,
        role: str,
        resource: str,
        action: str,
        scope: str,
        context: Optional[PermissionContext] = None,
    ) -> PermissionResult:
        """Evaluate a business-scope request.

        Returns:
            A granted result only if the role is eligible and, for
            ``assigned``, the user is in the assignment list.
        """
        if scope not in Scope.BUSINESS:
            logger.warning("Unknown permission scope: %s", scope)
            return PermissionResult.deny(f"Unsupported permission scope: {scope}")

        required = Permissions.grant(action, scope)
        if not self.is_eligible(role, resource, action, scope):
            return PermissionResult.deny(
                f"Role '{role}' does not have permission '{required}' on resource '{resource}'"
            )

        if scope == Scope.AVAILABLE:
            # TODO: confirm with product whether client boundaries should also apply here
            return PermissionResult.allow(f"Available scope permission '{required}' granted")

        return self._validate_assigned(role, resource, context)

    @staticmethod
    def _validate_assigned(
        role: str,
        resource: str,
        context: Optional[PermissionContext],
    ) -> PermissionResult:
        if context is None or not context.user_id:
            return PermissionResult.deny(
                f"{role} does not have assigned access to this {resource}: user context required"
            )

        if not context.assigned_users:
            logger.debug("Assigned scope check on '%s' without assignedUsers", resource)
            return PermissionResult.deny(
                f"{role} does not have assigned access to this {resource}: no assignment list supplied"
            )

        if context.user_id in context.assigned_users:
            return PermissionResult.allow(f"User is assigned to this {resource}")

        logger.debug(
            "User %s not in assigned users %s for %s",
            safe_log_value(context.user_id),
            safe_log_value(context.assigned_users),
            resource,
        )
        return PermissionResult.deny(f"{role} does not have assigned access to this {resource}")


__all__ = ["ScopeResolver"]
