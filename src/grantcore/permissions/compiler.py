"""Grant compilation: GrantSpecification → immutable CompiledGrantTable.

Compilation runs once at process start:

1. Parse every ``action:scope`` string of every role into a grant key
   ``(role, resource, action, possession)``. Only standard scopes
   (``any``/``mine``) become table facts; ``assigned``/``available`` stay
   in the specification and are evaluated with runtime context.
2. Collect direct (non-inherited) grants for every role.
3. Walk roles in inheritance order (bases first) and union each role's
   direct grants with the effective grants of every role it extends.

The resulting table is read-only and safe to share between threads.
A role or resource missing from the table is implicitly denied.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterator, Mapping, NamedTuple

from .constants import Possession, Scope, StandardAction
from .inheritance import build_extend_graph, expand_role_chain, resolve_extend_order
from .schema import GrantSpecification, load_grant_specification, parse_permission

logger = logging.getLogger(__name__)


class GrantKey(NamedTuple):
    """One compiled fact: ``role`` may ``action`` ``resource`` with ``possession``."""

    role: str
    resource: str
    action: str
    possession: str

    @property
    def scope(self) -> str:
        return Possession.to_scope(self.possession)


@dataclass(frozen=True, eq=False)
class CompiledGrantTable:
    """Immutable grant table produced by :class:`GrantCompiler`.

    ``any`` and ``own`` grants are independent facts: holding one never
    implies the other.
    """

    grants: frozenset[GrantKey]
    ancestors: Mapping[str, tuple[str, ...]] = field(default_factory=lambda: MappingProxyType({}))

    def __post_init__(self) -> None:
        by_role: dict[str, dict[str, set[tuple[str, str]]]] = {role: {} for role in self.ancestors}
        for key in self.grants:
            by_role.setdefault(key.role, {}).setdefault(key.resource, set()).add((key.action, key.possession))
        frozen = {
            role: MappingProxyType({res: frozenset(pairs) for res, pairs in resources.items()})
            for role, resources in by_role.items()
        }
        object.__setattr__(self, "_by_role", MappingProxyType(frozen))
        object.__setattr__(self, "ancestors", MappingProxyType(dict(self.ancestors)))

    def is_granted(self, role: str, resource: str, action: str, possession: str) -> bool:
        """Whether the exact ``(role, resource, action, possession)`` fact exists."""
        return GrantKey(role, resource, action, possession) in self.grants

    def has_role(self, role: str) -> bool:
        return role in self._by_role

    @property
    def roles(self) -> tuple[str, ...]:
        return tuple(sorted(self._by_role))

    def resources_for(self, role: str) -> tuple[str, ...]:
        """Resources on which ``role`` holds at least one standard grant."""
        return tuple(sorted(self._by_role.get(role, {})))

    def grants_for(self, role: str) -> tuple[GrantKey, ...]:
        """Every standard grant of ``role``, sorted by resource, action, possession."""
        return tuple(sorted(key for key in self.grants if key.role == role))

    def actions_for(self, role: str, resource: str) -> frozenset[tuple[str, str]]:
        """``(action, possession)`` pairs ``role`` holds on ``resource``."""
        return self._by_role.get(role, {}).get(resource, frozenset())

    def extends(self, role: str) -> tuple[str, ...]:
        """Roles ``role`` inherits from, transitively."""
        return self.ancestors.get(role, ())

    def __contains__(self, key: object) -> bool:
        return key in self.grants

    def __iter__(self) -> Iterator[GrantKey]:
        return iter(sorted(self.grants))

    def __len__(self) -> int:
        return len(self.grants)


class GrantCompiler:
    """Compiles a grant specification into a :class:`CompiledGrantTable`.

    Args:
        warn_unknown_actions: Log a warning for actions a resource does not
            declare. They are still compiled (forward-compatible names).

    Example::

        table = GrantCompiler().compile({
            "roles": {
                "staff": {"property": ["read:any"]},
                "staff_accounting": {"$extend": ["staff"], "payment": ["create:any"]},
            },
        })
        table.is_granted("staff_accounting", "property", "read", "any")  # True
    """

    def __init__(self, *, warn_unknown_actions: bool = True) -> None:
        self.warn_unknown_actions = warn_unknown_actions

    def compile(self, spec: GrantSpecification | Mapping[str, Any]) -> CompiledGrantTable:
        """Compile ``spec``.

        Raises:
            PermissionSpecError: unparseable permission string, unknown
                scope, ``$extend`` to an undeclared role, or a cycle.
        """
        spec = load_grant_specification(spec)

        direct = self._direct_grants(spec)

        graph = build_extend_graph(spec)
        order = resolve_extend_order(graph)

        effective: dict[str, set[tuple[str, str, str]]] = {}
        for role in order:
            facts = set(direct[role])
            for base in graph[role]:
                facts |= effective[base]
            effective[role] = facts

        grants = frozenset(
            GrantKey(role, resource, action, possession)
            for role, facts in effective.items()
            for resource, action, possession in facts
        )
        ancestors = {role: expand_role_chain(role, graph) for role in order}

        logger.info(
            "Compiled grant table: %d roles, %d grants (%d inherited edges)",
            len(order),
            len(grants),
            sum(len(bases) for bases in graph.values()),
        )
        return CompiledGrantTable(grants=grants, ancestors=ancestors)

    def _direct_grants(self, spec: GrantSpecification) -> dict[str, set[tuple[str, str, str]]]:
        known_scopes = spec.known_scopes()
        direct: dict[str, set[tuple[str, str, str]]] = {}

        for role_name, role in spec.roles.items():
            facts: set[tuple[str, str, str]] = set()
            for resource, permissions in role.grants.items():
                for permission in permissions:
                    grant = parse_permission(
                        permission,
                        known_scopes=known_scopes,
                        role=role_name,
                        resource=resource,
                    )
                    if self.warn_unknown_actions:
                        self._warn_if_unknown(spec, role_name, resource, grant.action)
                    if grant.scope not in Scope.STANDARD:
                        # assigned/available are evaluated from the specification at check time
                        continue
                    facts.add((resource, grant.action, Possession.for_scope(grant.scope)))
            direct[role_name] = facts

        return direct

    @staticmethod
    def _warn_if_unknown(spec: GrantSpecification, role: str, resource: str, action: str) -> None:
        if action in StandardAction.ALL:
            return
        declared = spec.resources.get(resource)
        if declared is not None and action in declared.actions:
            return

        logger.warning(
            "Action '%s' on '%s' for role '%s' is not declared by the resource; compiled as-is",
            action,
            resource,
            role,
        )


def compile_grants(spec: GrantSpecification | Mapping[str, Any], **kwargs: Any) -> CompiledGrantTable:
    """Shortcut for ``GrantCompiler(**kwargs).compile(spec)``."""
    return GrantCompiler(**kwargs).compile(spec)


__all__ = [
    "CompiledGrantTable",
    "GrantCompiler",
    "GrantKey",
    "compile_grants",
]
