"""Projection of a role's resolved grants into flat permission strings.

The projected list is attached to the actor once per login or session
refresh, so downstream code can do context-free checks such as
``"property:read:any" in actor.permissions`` without calling the evaluator.

Each grant is rendered in three forms:

- ``resource:action:scope`` — ``property:update:mine``
- ``resource:action``       — ``property:update``
- ``action:scope``          — ``update:mine`` (backend form)
"""

from __future__ import annotations

import logging

from .compiler import CompiledGrantTable
from .constants import Permissions, Scope
from .models import CurrentActor
from .schema import GrantSpecification

logger = logging.getLogger(__name__)


class PermissionsProjector:
    """Flattens resolved grants. Reads the table and spec, never mutates them."""

    __slots__ = ("_table", "_spec")

    def __init__(self, table: CompiledGrantTable, spec: GrantSpecification) -> None:
        self._table = table
        self._spec = spec

    def role_permissions(self, role: str) -> dict[str, list[str]]:
        """Every ``action:scope`` string ``role`` holds, grouped by resource.

        Standard grants come from the compiled table (inheritance included).
        Business-scope strings are taken from the specification for the role
        and every role it extends.
        """
        grouped: dict[str, set[str]] = {}

        for key in self._table.grants_for(role):
            grouped.setdefault(key.resource, set()).add(Permissions.grant(key.action, key.scope))

        for candidate in (role, *self._table.extends(role)):
            definition = self._spec.role(candidate)
            if definition is None:
                continue
            for resource, declared in definition.grants.items():
                for permission in declared:
                    action, scope = Permissions.split(permission)
                    if scope and scope not in Scope.STANDARD:
                        grouped.setdefault(resource, set()).add(Permissions.grant(action, scope))

        return {resource: sorted(perms) for resource, perms in sorted(grouped.items())}

    def project(self, role: str) -> tuple[str, ...]:
        """Sorted, deduplicated permission strings for ``role``."""
        flattened: set[str] = set()
        for resource, permissions in self.role_permissions(role).items():
            for permission in permissions:
                action, scope = Permissions.split(permission)
                flattened.add(permission)
                flattened.add(Permissions.flat(resource, action))
                flattened.add(Permissions.scoped(resource, action, scope or Scope.ANY))
        return tuple(sorted(flattened))

    def populate(self, actor: CurrentActor) -> CurrentActor:
        """Return a copy of ``actor`` carrying its projected permissions.

        Idempotent: populating an already-populated actor yields the same set.
        """
        permissions = self.project(actor.role)
        if not permissions:
            logger.debug("Role '%s' projects no permissions", actor.role)
        return actor.model_copy(update={"permissions": permissions})


__all__ = ["PermissionsProjector"]
