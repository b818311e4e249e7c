"""Permission vocabulary for grantcore.

Provides:
- ``Scope`` — possession breadth of a grant (any / mine / assigned / available).
- ``Possession`` — compiled possession of a standard grant (any / own).
- ``StandardAction`` — CRUD actions with dedicated possession semantics.
- ``Roles`` / ``Resources`` — names used by the default grant specification.
- ``Permissions`` — builders and parsers for permission strings.
"""

from __future__ import annotations


class Scope:
    """Breadth qualifier on a permission grant.

    Permission format: ``{action}:{scope}``
    Example: ``update:mine``, ``delete:any``, ``update:assigned``

    ``any`` and ``mine`` are resolved from the compiled grant table.
    ``assigned`` and ``available`` always need runtime context.
    """

    ANY = "any"  # Every instance of the resource type
    MINE = "mine"  # Only instances the actor owns
    ASSIGNED = "assigned"  # Instances where the actor is in the assignment list
    AVAILABLE = "available"  # Instances nobody has claimed yet

    STANDARD = frozenset({"any", "mine"})
    BUSINESS = frozenset({"assigned", "available"})
    ALL = frozenset({"any", "mine", "assigned", "available"})


class Possession:
    """Possession of a compiled standard grant."""

    ANY = "any"
    OWN = "own"

    @staticmethod
    def for_scope(scope: str) -> str:
        """``mine`` compiles to ``own``; every other standard scope to ``any``."""
        return Possession.OWN if scope == Scope.MINE else Possession.ANY

    @staticmethod
    def to_scope(possession: str) -> str:
        return Scope.MINE if possession == Possession.OWN else Scope.ANY


class StandardAction:
    """CRUD actions. Anything else is a custom action matched by exact string."""

    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"

    ALL = frozenset({"create", "read", "update", "delete"})


class Roles:
    """Roles declared by the packaged default grant specification."""

    ADMIN = "admin"
    MANAGER = "manager"
    STAFF = "staff"
    STAFF_ACCOUNTING = "staff_accounting"
    TENANT = "tenant"
    VENDOR = "vendor"


class Resources:
    """Resources declared by the packaged default grant specification."""

    CLIENT = "client"
    INVITATION = "invitation"
    LEASE = "lease"
    MAINTENANCE = "maintenance"
    PAYMENT = "payment"
    PROPERTY = "property"
    USER = "user"
    VENDOR = "vendor"


# Key in a role definition that lists the roles it inherits from
EXTEND_KEY = "$extend"


class Permissions:
    """Builders and parsers for permission strings.

    Two formats are in use:

    1. **Grant strings** — as written in a grant specification::

        Permissions.grant("update", "mine")               → "update:mine"

    2. **Projected strings** — as attached to an actor after projection::

        Permissions.scoped("property", "read", "any")     → "property:read:any"
        Permissions.flat("property", "read")              → "property:read"
    """

    @staticmethod
    def grant(action: str, scope: str | None = None) -> str:
        """Build an ``action:scope`` grant string (bare ``action`` if no scope)."""
        if scope:
            return f"{action}:{scope}"
        return action

    @staticmethod
    def scoped(resource: str, action: str, scope: str) -> str:
        return f"{resource}:{action}:{scope}"

    @staticmethod
    def flat(resource: str, action: str) -> str:
        return f"{resource}:{action}"

    @staticmethod
    def split(permission: str) -> tuple[str, str | None]:
        """Split a grant string into ``(action, scope)``.

        The scope is ``None`` when the string carries none. No validation
        happens here; see :func:`grantcore.permissions.schema.parse_permission`.

        Example::

            Permissions.split("update:assigned")  # ("update", "assigned")
            Permissions.split("list")             # ("list", None)
            Permissions.split(":any")             # ("", "any")
        """
        action, sep, scope = permission.partition(":")
        return action.strip(), (scope.strip() if sep else None)


__all__ = [
    "EXTEND_KEY",
    "Permissions",
    "Possession",
    "Resources",
    "Roles",
    "Scope",
    "StandardAction",
]
