"""Tests for grant specification loading and the permission-string grammar."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from grantcore import PermissionSpecError
from grantcore.permissions import (
    GrantSpecification,
    Permissions,
    RoleDefinition,
    Roles,
    Scope,
    default_spec_path,
    load_grant_specification,
    parse_permission,
)


class TestParsePermission:
    """Tests for the action[:scope] grammar."""

    def test_action_and_scope(self) -> None:
        """Test parsing a fully qualified grant string."""
        grant = parse_permission("update:assigned")
        assert grant.action == "update"
        assert grant.scope == Scope.ASSIGNED
        assert str(grant) == "update:assigned"

    def test_missing_scope_defaults_to_any(self) -> None:
        """Test that a bare action binds to the any scope."""
        grant = parse_permission("list")
        assert grant.scope == Scope.ANY
        assert grant.raw == "list:any"

    def test_whitespace_is_trimmed(self) -> None:
        """Test that surrounding whitespace is ignored."""
        grant = parse_permission(" read : mine ")
        assert (grant.action, grant.scope) == ("read", "mine")

    def test_missing_action(self) -> None:
        """Test that a string without an action is rejected."""
        with pytest.raises(PermissionSpecError, match="no action"):
            parse_permission(":mine")

    def test_too_many_parts(self) -> None:
        """Test that a second colon is rejected."""
        with pytest.raises(PermissionSpecError, match="action:scope"):
            parse_permission("read:mine:extra")

    def test_unknown_scope(self) -> None:
        """Test that unknown scopes report the role and resource."""
        with pytest.raises(PermissionSpecError) as exc_info:
            parse_permission("read:team", role="staff", resource="property")
        assert exc_info.value.details["role"] == "staff"
        assert exc_info.value.details["resource"] == "property"

    def test_declared_custom_scope_accepted(self) -> None:
        """Test that a scope declared by the specification is accepted."""
        grant = parse_permission("read:team", known_scopes=Scope.ALL | {"team"})
        assert grant.scope == "team"

    def test_non_string(self) -> None:
        """Test that non-string permissions are rejected."""
        with pytest.raises(PermissionSpecError, match="must be a string"):
            parse_permission(42)


class TestPermissionsBuilders:
    """Tests for permission string builders."""

    def test_builders(self) -> None:
        """Test the grant, scoped and flat string forms."""
        assert Permissions.grant("update", "mine") == "update:mine"
        assert Permissions.grant("list") == "list"
        assert Permissions.scoped("property", "read", "any") == "property:read:any"
        assert Permissions.flat("property", "read") == "property:read"

    def test_split(self) -> None:
        """Test splitting grant strings without validation."""
        assert Permissions.split("update:assigned") == ("update", "assigned")
        assert Permissions.split("list") == ("list", None)
        assert Permissions.split(":any") == ("", "any")


class TestGrantSpecification:
    """Tests for the validated schema."""

    def test_extend_split_from_resources(self) -> None:
        """Test that $extend is separated from resource keys."""
        spec = load_grant_specification(
            {"roles": {"manager": {"$extend": ["staff"], "property": ["create:any"]}, "staff": {}}}
        )
        manager = spec.role("manager")
        assert manager is not None
        assert manager.extends == ("staff",)
        assert manager.grants == {"property": ("create:any",)}

    def test_single_extend_string_accepted(self) -> None:
        """Test that a single base role may be given as a string."""
        spec = load_grant_specification({"roles": {"a": {"$extend": "b"}, "b": {}}})
        assert spec.roles["a"].extends == ("b",)

    def test_resource_named_grants(self) -> None:
        """Test that a resource called "grants" is read as a resource."""
        spec = load_grant_specification({"roles": {"r": {"grants": ["read:any"]}}})
        assert spec.declared_permissions("r", "grants") == ("read:any",)

    def test_declared_permissions(self) -> None:
        """Test direct permission lookup by role and resource."""
        spec = load_grant_specification({"roles": {"vendor": {"maintenance": ["update:assigned"]}}})
        assert spec.declared_permissions("vendor", "maintenance") == ("update:assigned",)
        assert spec.declared_permissions("vendor", "lease") == ()
        assert spec.declared_permissions("ghost", "lease") == ()

    def test_known_scopes_include_declared(self) -> None:
        """Test that declared scopes extend the four engine scopes."""
        spec = load_grant_specification({"roles": {}, "scopes": {"team": {}}})
        assert spec.known_scopes() == Scope.ALL | {"team"}

    def test_spec_is_frozen(self) -> None:
        """Test that top-level fields cannot be reassigned."""
        spec = load_grant_specification({"roles": {}})
        with pytest.raises(Exception):
            spec.roles = {}  # type: ignore[misc]

    def test_mappings_are_read_only(self) -> None:
        """Test that nested role, grant and resource mappings reject writes."""
        spec = load_grant_specification(
            {
                "roles": {"vendor": {"maintenance": ["update:assigned"]}},
                "resources": {"maintenance": {"actions": ["update"]}},
            }
        )
        with pytest.raises(TypeError):
            spec.roles["vendor"].grants["maintenance"] = ("update:available",)  # type: ignore[index]
        with pytest.raises(TypeError):
            spec.roles["admin"] = spec.roles["vendor"]  # type: ignore[index]
        with pytest.raises(TypeError):
            spec.resources["lease"] = spec.resources["maintenance"]  # type: ignore[index]
        with pytest.raises(TypeError):
            spec.scopes["team"] = {}  # type: ignore[index]

    def test_role_definition_by_field_name(self) -> None:
        """Test constructing a role with Python field names."""
        role = RoleDefinition(extends=("staff",), grants={"property": ("read:any",)})
        assert role.extends == ("staff",)
        assert role.grants == {"property": ("read:any",)}

    def test_to_document_round_trip(self) -> None:
        """Test rendering back to the authored JSON shape."""
        document = {
            "roles": {"manager": {"$extend": ["staff"], "property": ["create:any"]}, "staff": {"property": ["read:any"]}},
            "resources": {"property": {"actions": ["create", "read"]}},
            "scopes": {"any": {}},
        }
        assert load_grant_specification(document).to_document() == document

    def test_passthrough_of_validated_spec(self) -> None:
        """Test that an already validated specification is returned as is."""
        spec = load_grant_specification({"roles": {}})
        assert load_grant_specification(spec) is spec


class TestLoadErrors:
    """Tests for malformed specification sources."""

    def test_role_must_be_object(self) -> None:
        """Test that a role given as a list is rejected."""
        with pytest.raises(PermissionSpecError, match="Invalid grant specification"):
            load_grant_specification({"roles": {"manager": ["read:any"]}})

    def test_permissions_must_be_list(self) -> None:
        """Test that a bare string permission list is rejected."""
        with pytest.raises(PermissionSpecError):
            load_grant_specification({"roles": {"manager": {"property": "read:any"}}})

    def test_roles_required(self) -> None:
        """Test that a specification without roles is rejected."""
        with pytest.raises(PermissionSpecError):
            load_grant_specification({"resources": {}})

    def test_missing_file(self, tmp_path: Path) -> None:
        """Test that a missing file is a specification error."""
        with pytest.raises(PermissionSpecError, match="not found"):
            load_grant_specification(tmp_path / "missing.json")

    def test_invalid_json(self, tmp_path: Path) -> None:
        """Test that malformed JSON is a specification error."""
        path = tmp_path / "permissions.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(PermissionSpecError, match="not valid JSON"):
            load_grant_specification(path)


class TestFileSources:
    """Tests for loading from disk."""

    def test_load_from_path(self, tmp_path: Path) -> None:
        """Test loading a specification from a string path."""
        path = tmp_path / "permissions.json"
        path.write_text(json.dumps({"roles": {"admin": {"property": ["delete:any"]}}}), encoding="utf-8")
        spec = load_grant_specification(str(path))
        assert isinstance(spec, GrantSpecification)
        assert spec.declared_permissions("admin", "property") == ("delete:any",)

    def test_packaged_default(self) -> None:
        """Test that the packaged default declares every default role."""
        assert default_spec_path().name == "permissions.json"
        spec = load_grant_specification()
        for role in (Roles.ADMIN, Roles.MANAGER, Roles.STAFF, Roles.STAFF_ACCOUNTING, Roles.TENANT, Roles.VENDOR):
            assert role in spec.roles
        assert set(spec.scopes) == Scope.ALL
