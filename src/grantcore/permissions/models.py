"""Per-call data models for permission checks.

These are Pydantic models so caller-supplied dictionaries (camelCase
keys from an HTTP layer, or snake_case from Python callers) are validated
at the check boundary. A context that does not validate makes the check
fail closed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from .constants import Scope


def _as_id(value: Any) -> Any:
    """Document ids (ObjectId and friends) compare by their string form."""
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, (dict, list, tuple, set)):
        return value  # left for pydantic to reject
    return str(value)


class PermissionContext(BaseModel):
    """Runtime facts needed to resolve ``mine`` and business scopes."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    user_id: Optional[str] = Field(default=None, alias="userId")
    client_id: Optional[str] = Field(default=None, alias="clientId")
    resource_id: Optional[str] = Field(default=None, alias="resourceId")
    resource_owner_id: Optional[str] = Field(default=None, alias="resourceOwnerId")
    assigned_users: Optional[tuple[str, ...]] = Field(default=None, alias="assignedUsers")

    @field_validator("user_id", "client_id", "resource_id", "resource_owner_id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        return _as_id(v)

    @field_validator("assigned_users", mode="before")
    @classmethod
    def coerce_assigned(cls, v: Any) -> Any:
        if isinstance(v, (list, tuple, set, frozenset)):
            return tuple(_as_id(item) for item in v)
        return v


class PermissionCheckRequest(BaseModel):
    """A single ``(role, resource, action, scope, context)`` question."""

    model_config = ConfigDict(frozen=True)

    role: str
    resource: str
    action: str
    scope: str = Scope.ANY
    context: Optional[PermissionContext] = None


@dataclass(frozen=True)
class PermissionResult:
    """Answer to a permission check. ``reason`` is always set."""

    granted: bool
    reason: str
    attributes: Optional[tuple[str, ...]] = None

    @property
    def denied(self) -> bool:
        return not self.granted

    @classmethod
    def allow(cls, reason: str, attributes: Optional[tuple[str, ...]] = None) -> "PermissionResult":
        return cls(granted=True, reason=reason, attributes=attributes)

    @classmethod
    def deny(cls, reason: str) -> "PermissionResult":
        return cls(granted=False, reason=reason)

    def __bool__(self) -> bool:
        return self.granted


class ClientConnection(BaseModel):
    """An actor's membership in one client (tenant) account."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    client_id: str = Field(validation_alias=AliasChoices("client_id", "clientId", "cuid"))
    role: Optional[str] = None
    is_connected: bool = Field(default=True, validation_alias=AliasChoices("is_connected", "isConnected"))


class CurrentActor(BaseModel):
    """The authenticated caller, as owned by the session layer.

    The engine reads ``role``, ``user_id`` and ``client_id``; ``clients``
    is consulted for the connection precondition of ``can_access_resource``.
    ``permissions`` is filled by the projector and cached by the caller.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    user_id: str = Field(validation_alias=AliasChoices("user_id", "userId", "sub"))
    role: str
    client_id: str = Field(validation_alias=AliasChoices("client_id", "clientId", "cuid"))
    email: Optional[str] = None
    is_active: bool = Field(default=True, validation_alias=AliasChoices("is_active", "isActive"))
    clients: tuple[ClientConnection, ...] = ()
    permissions: tuple[str, ...] = ()

    @field_validator("user_id", "client_id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        return _as_id(v)

    def active_connection(self) -> Optional[ClientConnection]:
        """The connection for the actor's current client, if any."""
        for connection in self.clients:
            if connection.client_id == self.client_id:
                return connection
        return None

    def is_connected(self) -> bool:
        """Active account connected to the current client."""
        connection = self.active_connection()
        return self.is_active and connection is not None and connection.is_connected

    def has_permission(self, permission: str) -> bool:
        """Context-free check against the projected permission list."""
        return permission in self.permissions


__all__ = [
    "ClientConnection",
    "CurrentActor",
    "PermissionCheckRequest",
    "PermissionContext",
    "PermissionResult",
]
