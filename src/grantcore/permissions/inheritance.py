"""Role inheritance graph resolution.

Provides:
- ``build_extend_graph()`` — role → direct ``$extend`` targets, validated.
- ``resolve_extend_order()`` — topological order, base roles first.
- ``expand_role_chain()`` — every role a role inherits from, transitively.

Role A extending role B means A's effective grants are A's own grants plus
B's effective grants. The graph must be acyclic.
"""

from __future__ import annotations

from typing import Mapping

from ..exceptions import PermissionSpecError
from .schema import GrantSpecification


def build_extend_graph(spec: GrantSpecification) -> dict[str, tuple[str, ...]]:
    """Map each declared role to its direct ``$extend`` targets.

    Raises:
        PermissionSpecError: if a role extends an undeclared role.
    """
    graph: dict[str, tuple[str, ...]] = {}
    for role_name, role in spec.roles.items():
        for base in role.extends:
            if base not in spec.roles:
                raise PermissionSpecError(
                    f"Role '{role_name}' extends undeclared role '{base}'",
                    role=role_name,
                    extends=base,
                )
        # Preserve declaration order, drop duplicate edges
        graph[role_name] = tuple(dict.fromkeys(role.extends))
    return graph


def resolve_extend_order(graph: Mapping[str, tuple[str, ...]]) -> tuple[str, ...]:
    """Order roles so that every role comes after all roles it extends.

    Depth-first walk that tracks the roles on the current resolution chain;
    meeting one of them again means the graph has a cycle.

    Raises:
        PermissionSpecError: on an inheritance cycle. ``details["cycle"]``
            holds the offending chain, e.g. ``("a", "b", "a")``.

    Example::

        >>> resolve_extend_order({"staff_accounting": ("staff",), "staff": ()})
        ('staff', 'staff_accounting')
    """
    order: list[str] = []
    resolved: set[str] = set()

    def visit(role: str, chain: list[str]) -> None:
        if role in resolved:
            return
        if role in chain:
            cycle = tuple(chain[chain.index(role):]) + (role,)
            raise PermissionSpecError(
                f"Role inheritance cycle: {' -> '.join(cycle)}",
                role=role,
                cycle=cycle,
            )
        chain.append(role)
        for base in graph.get(role, ()):
            visit(base, chain)
        chain.pop()
        resolved.add(role)
        order.append(role)

    for role in graph:
        visit(role, [])

    return tuple(order)


def expand_role_chain(role: str, graph: Mapping[str, tuple[str, ...]]) -> tuple[str, ...]:
    """Every role ``role`` inherits from, transitively, excluding itself.

    Returns:
        Deduplicated, sorted tuple of ancestor role names.

    Example::

        >>> expand_role_chain("a", {"a": ("b",), "b": ("c",), "c": ()})
        ('b', 'c')
    """
    expanded: set[str] = set()
    queue = list(graph.get(role, ()))

    while queue:
        current = queue.pop()
        if current in expanded or current == role:
            continue
        expanded.add(current)
        queue.extend(graph.get(current, ()))

    return tuple(sorted(expanded))


__all__ = [
    "build_extend_graph",
    "expand_role_chain",
    "resolve_extend_order",
]
