"""PermissionService: the API services and controllers call.

Wires the engine together once at startup::

    GrantSpecification → GrantCompiler → CompiledGrantTable
                                              ↓
    PermissionEvaluator ← ScopeResolver / OwnershipClassifier (per call)

Usage::

    from grantcore.permissions import get_permission_service

    service = get_permission_service()
    result = service.check_user_permission(actor, "property", "update", property_doc)
    if not result.granted:
        raise Forbidden(result.reason)

Compilation errors propagate from the constructor: a process that cannot
build its grant table must not start serving.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional

from ..config import EngineConfig
from ..logging import get_permission_logger
from .compiler import CompiledGrantTable, GrantCompiler
from .constants import Permissions, Possession, Scope
from .evaluator import ERROR_REASON, PermissionEvaluator
from .models import (
    CurrentActor,
    PermissionCheckRequest,
    PermissionContext,
    PermissionResult,
)
from .ownership import Ownership, OwnershipClassifier
from .projector import PermissionsProjector
from .schema import GrantSpecification, load_grant_specification
from .scopes import ScopeResolver

logger = logging.getLogger(__name__)

SpecSource = GrantSpecification | Mapping[str, Any] | str | Path | None


@dataclass(frozen=True)
class _EngineState:
    """Everything built from one specification. Replaced as a whole on reload."""

    spec: GrantSpecification
    table: CompiledGrantTable
    evaluator: PermissionEvaluator
    projector: PermissionsProjector


class PermissionService:
    """Façade over the compiled grant table.

    Args:
        spec: Grant specification source. None = ``config.grant_spec_path``
            or, if that is unset too, the packaged default.
        config: Engine configuration.
        ownership: Ownership classifier for actor-level checks.

    Raises:
        PermissionSpecError: if the specification cannot be compiled.
    """

    def __init__(
        self,
        spec: SpecSource = None,
        *,
        config: EngineConfig | None = None,
        ownership: OwnershipClassifier | None = None,
    ) -> None:
        self._config = config or EngineConfig()
        self._ownership = ownership or OwnershipClassifier()
        source = spec if spec is not None else self._config.grant_spec_path
        self._state = self._build(source)

    @classmethod
    def from_file(cls, path: str | Path, **kwargs: Any) -> "PermissionService":
        return cls(Path(path), **kwargs)

    @classmethod
    def from_config(cls, config: EngineConfig, **kwargs: Any) -> "PermissionService":
        return cls(None, config=config, **kwargs)

    def _build(self, source: SpecSource) -> _EngineState:
        spec = load_grant_specification(source)
        table = GrantCompiler(warn_unknown_actions=self._config.warn_unknown_actions).compile(spec)
        return _EngineState(
            spec=spec,
            table=table,
            evaluator=PermissionEvaluator(table, ScopeResolver(spec, table)),
            projector=PermissionsProjector(table, spec),
        )

    def reload(self, spec: SpecSource = None) -> None:
        """Compile a new specification and swap it in.

        The new table is fully built before the handle is replaced, so
        concurrent checks see either the old or the new state, never a mix.
        On error the current state stays in place.
        """
        state = self._build(spec if spec is not None else self._config.grant_spec_path)
        self._state = state
        logger.info("Permission service reloaded (%d roles)", len(state.table.roles))

    @property
    def table(self) -> CompiledGrantTable:
        return self._state.table

    def get_permission_config(self) -> GrantSpecification:
        return self._state.spec

    # ── Checks ─────────────────────────────────────────────

    def check_permission(
        self,
        request: PermissionCheckRequest | Mapping[str, Any],
    ) -> PermissionResult:
        """Resolve an explicit ``(role, resource, action, scope, context)`` request."""
        return self._state.evaluator.check_permission(request)

    def check_user_permission(
        self,
        actor: CurrentActor | Mapping[str, Any],
        resource: str,
        action: str,
        resource_data: Any = None,
    ) -> PermissionResult:
        """Check an action for the current actor, deriving the scope.

        The scope is ``mine`` when ``resource_data`` names the actor as
        owner and ``any`` otherwise. Resources whose rule is ``always_mine``
        (``client``) are always checked as ``mine`` first. A denied ``mine``
        check still succeeds through an ``any`` grant. An actor who does not
        own the instance, whose role holds only the ``mine`` grant, is denied
        with a "does not own resource" reason.
        """
        try:
            if not isinstance(actor, CurrentActor):
                actor = CurrentActor.model_validate(actor)
            return self._check_actor(self._state, actor, resource, action, resource_data)
        except Exception:
            logger.exception("Error checking user permission")
            return PermissionResult.deny(ERROR_REASON)

    def _check_actor(
        self,
        state: _EngineState,
        actor: CurrentActor,
        resource: str,
        action: str,
        resource_data: Any,
    ) -> PermissionResult:
        log = get_permission_logger(__name__, role=actor.role, user_id=actor.user_id)
        ownership = self._ownership.classify(actor, resource, resource_data)
        log.debug("Derived scope '%s' (owned=%s)", ownership.scope, ownership.owned, resource=resource)

        result = self._evaluate(state, actor, resource, action, ownership.scope, ownership)
        if result.granted:
            return result

        if ownership.scope == Scope.MINE:
            # An any grant covers every instance, owned or not
            fallback = self._evaluate(state, actor, resource, action, Scope.ANY, ownership)
            return fallback if fallback.granted else result

        if (
            ownership.scope == Scope.ANY
            and ownership.owner_id is not None
            and state.table.is_granted(actor.role, resource, action, Possession.OWN)
        ):
            return self._evaluate(state, actor, resource, action, Scope.MINE, ownership)

        return result

    @staticmethod
    def _evaluate(
        state: _EngineState,
        actor: CurrentActor,
        resource: str,
        action: str,
        scope: str,
        ownership: Ownership,
    ) -> PermissionResult:
        context = PermissionContext(
            user_id=actor.user_id,
            client_id=actor.client_id,
            resource_owner_id=ownership.owner_id,
        )
        request = PermissionCheckRequest(
            role=actor.role,
            resource=resource,
            action=action,
            scope=scope,
            context=context,
        )
        return state.evaluator.check_permission(request)

    def can_access_resource(
        self,
        actor: CurrentActor | Mapping[str, Any],
        resource: str,
        action: str,
        resource_data: Any = None,
    ) -> bool:
        """Boolean form of :meth:`check_user_permission`.

        Denies outright when the actor is inactive or not connected to its
        current client.
        """
        try:
            if not isinstance(actor, CurrentActor):
                actor = CurrentActor.model_validate(actor)
            if not actor.is_connected():
                logger.debug("User %s not connected to client %s", actor.user_id, actor.client_id)
                return False
            return self.check_user_permission(actor, resource, action, resource_data).granted
        except Exception:
            logger.exception("Error checking access for resource %s", resource)
            return False

    # ── Introspection ──────────────────────────────────────

    def get_role_permissions(self, role: str) -> dict[str, list[str]]:
        """``{resource: ["action:scope", ...]}`` for ``role``, inheritance resolved."""
        return self._state.projector.role_permissions(role)

    def get_available_resources(self) -> list[str]:
        return list(self._state.spec.resources)

    def get_resource_actions(self, resource: str) -> list[str]:
        definition = self._state.spec.resources.get(resource)
        return list(definition.actions) if definition else []

    def get_available_scopes(self) -> list[str]:
        return list(self._state.spec.scopes)

    def is_valid_permission(self, permission: str) -> bool:
        """Syntactic check: action present and, if given, a known scope.

        Example::

            service.is_valid_permission("update:mine")   # True
            service.is_valid_permission("list")          # True
            service.is_valid_permission(":any")          # False
            service.is_valid_permission("read:nobody")   # False
        """
        if not isinstance(permission, str):
            return False
        action, scope = Permissions.split(permission)
        if not action:
            return False
        if scope and scope not in self._state.spec.known_scopes():
            return False
        return True

    def populate_user_permissions(self, actor: CurrentActor | Mapping[str, Any]) -> CurrentActor:
        """Return the actor with ``permissions`` set to its projected grants."""
        if not isinstance(actor, CurrentActor):
            actor = CurrentActor.model_validate(actor)
        return self._state.projector.populate(actor)


# ── Process-wide handle ────────────────────────────────────

_service: PermissionService | None = None
_service_lock = threading.Lock()


def get_permission_service(config: Optional[EngineConfig] = None) -> PermissionService:
    """Get or create the process-wide PermissionService.

    Args:
        config: Engine configuration (used only on first call). None loads
            it from the environment.
    """
    global _service
    if _service is None:
        with _service_lock:
            if _service is None:
                if config is None:
                    from ..config import load_engine_config_from_env

                    config = load_engine_config_from_env()
                _service = PermissionService.from_config(config)
    return _service


def reset_permission_service() -> None:
    """Reset the process-wide handle (for testing)."""
    global _service
    _service = None


__all__ = [
    "PermissionService",
    "get_permission_service",
    "reset_permission_service",
]
