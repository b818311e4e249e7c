"""Validated grant specification schema.

The grant specification is authored externally as JSON::

    {
      "roles": {
        "manager": {"$extend": ["staff"], "property": ["create:any", "update:mine"]}
      },
      "resources": {"property": {"actions": ["create", "read", "update", "delete"]}},
      "scopes": {"any": {}, "mine": {}, "assigned": {}, "available": {}}
    }

It is parsed into immutable Pydantic models at load time. Every permission
string is checked against the ``action[:scope]`` grammar here, so malformed
entries are rejected before compilation instead of during evaluation.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from importlib import resources as importlib_resources
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterable, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from ..exceptions import PermissionSpecError
from .constants import EXTEND_KEY, Permissions, Scope

logger = logging.getLogger(__name__)

DEFAULT_SPEC_RESOURCE = "data/permissions.json"


@dataclass(frozen=True)
class GrantString:
    """A parsed ``action:scope`` permission string."""

    action: str
    scope: str
    raw: str

    def __str__(self) -> str:
        return self.raw


def parse_permission(
    permission: Any,
    *,
    known_scopes: Iterable[str] = Scope.ALL,
    role: str | None = None,
    resource: str | None = None,
) -> GrantString:
    """Parse one ``action[:scope]`` permission string.

    A string without a scope binds to ``any``.

    Raises:
        PermissionSpecError: if the value is not a string, the action is
            missing, the string has more than one ``:`` or the scope is not
            known.
    """
    if not isinstance(permission, str):
        raise PermissionSpecError(
            f"Permission must be a string, got {type(permission).__name__}",
            role=role,
            resource=resource,
            permission=permission,
        )

    action, scope = Permissions.split(permission)
    if not action:
        raise PermissionSpecError(
            f"Permission '{permission}' has no action",
            role=role,
            resource=resource,
            permission=permission,
        )
    if scope is not None and ":" in scope:
        raise PermissionSpecError(
            f"Permission '{permission}' must have the form 'action:scope'",
            role=role,
            resource=resource,
            permission=permission,
        )
    if scope is None or scope == "":
        scope = Scope.ANY
    elif scope not in known_scopes:
        raise PermissionSpecError(
            f"Permission '{permission}' uses unknown scope '{scope}'",
            role=role,
            resource=resource,
            permission=permission,
        )

    return GrantString(action=action, scope=scope, raw=Permissions.grant(action, scope))


class ResourceDefinition(BaseModel):
    """Declared action vocabulary of a resource."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    actions: tuple[str, ...] = ()


class RoleDefinition(BaseModel):
    """One role: inheritance edges plus per-resource permission strings."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    extends: tuple[str, ...] = Field(default=(), alias=EXTEND_KEY)
    grants: dict[str, tuple[str, ...]] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def split_extend(cls, data: Any) -> Any:
        """Separate ``$extend`` from resource keys in the authored form."""
        if isinstance(data, RoleDefinition):
            return data
        if not isinstance(data, Mapping):
            raise ValueError("Role definition must be an object")
        if EXTEND_KEY not in data and isinstance(data.get("grants"), Mapping):
            # Field-name form; a resource literally named "grants" holds a list
            return data

        extends = data.get(EXTEND_KEY, ())
        if isinstance(extends, str):
            extends = (extends,)
        grants = {key: value for key, value in data.items() if key != EXTEND_KEY}
        for resource, permissions in grants.items():
            if isinstance(permissions, str) or not isinstance(permissions, Iterable):
                raise ValueError(f"Permissions for resource '{resource}' must be a list of strings")
        return {EXTEND_KEY: extends, "grants": grants}

    @model_validator(mode="after")
    def freeze_grants(self) -> "RoleDefinition":
        object.__setattr__(self, "grants", MappingProxyType(dict(self.grants)))
        return self


class GrantSpecification(BaseModel):
    """Validated grant specification.

    Built once at process start. The role, resource and scope mappings are
    read-only views, so a caller holding the specification cannot change
    the grants behind a compiled table.
    """

    model_config = ConfigDict(frozen=True)

    roles: dict[str, RoleDefinition]
    resources: dict[str, ResourceDefinition] = Field(default_factory=dict)
    scopes: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def validate_permission_strings(self) -> "GrantSpecification":
        known = self.known_scopes()
        for role_name, role in self.roles.items():
            if role_name == EXTEND_KEY or not role_name:
                raise ValueError(f"Invalid role name: {role_name!r}")
            for resource, permissions in role.grants.items():
                for permission in permissions:
                    parse_permission(permission, known_scopes=known, role=role_name, resource=resource)

        # Read-only views over the validated mappings
        for name in ("roles", "resources", "scopes"):
            object.__setattr__(self, name, MappingProxyType(dict(getattr(self, name))))
        return self

    def known_scopes(self) -> frozenset[str]:
        """The four engine scopes plus any scope declared by the spec."""
        return Scope.ALL | frozenset(self.scopes)

    def role(self, name: str) -> RoleDefinition | None:
        return self.roles.get(name)

    def declared_permissions(self, role: str, resource: str) -> tuple[str, ...]:
        """Permission strings a role declares directly for a resource."""
        definition = self.roles.get(role)
        if definition is None:
            return ()
        return definition.grants.get(resource, ())

    def to_document(self) -> dict[str, Any]:
        """Render back to the authored JSON shape."""
        roles: dict[str, Any] = {}
        for name, role in self.roles.items():
            body: dict[str, Any] = {resource: list(perms) for resource, perms in role.grants.items()}
            if role.extends:
                body[EXTEND_KEY] = list(role.extends)
            roles[name] = body
        return {
            "roles": roles,
            "resources": {name: {"actions": list(r.actions)} for name, r in self.resources.items()},
            "scopes": dict(self.scopes),
        }


def default_spec_path() -> Path:
    """Location of the grant specification shipped with the package."""
    return Path(str(importlib_resources.files("grantcore.permissions").joinpath(DEFAULT_SPEC_RESOURCE)))


def load_grant_specification(
    source: str | Path | Mapping[str, Any] | GrantSpecification | None = None,
) -> GrantSpecification:
    """Load and validate a grant specification.

    Args:
        source: A GrantSpecification (returned as is), a mapping in the
            authored JSON shape, a path to a JSON file, or None for the
            packaged default.

    Raises:
        PermissionSpecError: if the document is missing, is not valid JSON
            or does not match the schema.
    """
    if isinstance(source, GrantSpecification):
        return source

    if source is None or isinstance(source, (str, Path)):
        path = Path(source) if source is not None else default_spec_path()
        try:
            with path.open("r", encoding="utf-8") as fh:
                document = json.load(fh)
        except FileNotFoundError:
            raise PermissionSpecError(f"Grant specification not found: {path}", path=str(path))
        except json.JSONDecodeError as e:
            raise PermissionSpecError(f"Grant specification is not valid JSON: {e}", path=str(path))
        logger.debug("Loaded grant specification from %s", path)
    else:
        document = source

    try:
        return GrantSpecification.model_validate(document)
    except ValidationError as e:
        raise PermissionSpecError(f"Invalid grant specification: {e}", errors=e.errors())


__all__ = [
    "GrantSpecification",
    "GrantString",
    "ResourceDefinition",
    "RoleDefinition",
    "default_spec_path",
    "load_grant_specification",
    "parse_permission",
]
