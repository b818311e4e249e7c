"""Ownership classification for actor-level permission checks.

Given the current actor and a concrete resource document, decide whether
the actor owns it. Ownership turns an ``any`` request into a ``mine``
request and supplies the ``resource_owner_id`` that proves it.

Documents are plain mappings, objects with attributes, or a bare id::

    classifier.classify(actor, "property", {"_id": "u1"})
    classifier.classify(actor, "user", "u1")
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from .constants import Resources, Scope


class OwnerMatch:
    """What a document's owner field is compared against."""

    USER = "user"  # actor.user_id
    CLIENT = "client"  # actor.client_id


@dataclass(frozen=True)
class OwnershipRule:
    """How to find the owner of a resource document.

    Args:
        resource: Resource name the rule applies to.
        owner_fields: Document fields checked in order; the first present
            one names the owner.
        match_on: Compare the owner with the actor's user id or client id.
        always_mine: Requests on this resource are always ``mine`` scoped
            (a request without a document targets the actor's own instance).
    """

    resource: str
    owner_fields: tuple[str, ...] = ("createdBy", "ownerId", "_id")
    match_on: str = OwnerMatch.USER
    always_mine: bool = False

    def owner_of(self, document: Any) -> Optional[str]:
        """Owner id named by ``document``, or None if no owner field is set."""
        if document is None:
            return None
        if isinstance(document, (str, int)) and not isinstance(document, bool):
            return str(document)
        for field_name in self.owner_fields:
            if isinstance(document, Mapping):
                value = document.get(field_name)
            else:
                value = getattr(document, field_name, None)
            if value is not None and value != "":
                return str(value)
        return None


@dataclass(frozen=True)
class Ownership:
    """Outcome of classifying one document for one actor."""

    scope: str
    owned: bool
    owner_id: Optional[str] = None


DEFAULT_OWNERSHIP_RULES: dict[str, OwnershipRule] = {
    Resources.USER: OwnershipRule(
        resource=Resources.USER,
        owner_fields=("_id", "uid", "id"),
    ),
    Resources.CLIENT: OwnershipRule(
        resource=Resources.CLIENT,
        owner_fields=("cuid", "clientId", "_id"),
        match_on=OwnerMatch.CLIENT,
        always_mine=True,
    ),
}


class OwnershipClassifier:
    """Derives the scope of an actor-level check from a resource document.

    Args:
        rules: Per-resource rules. Resources without a rule use ``default_rule``.
        default_rule: Rule for every other resource.
    """

    def __init__(
        self,
        rules: Mapping[str, OwnershipRule] | None = None,
        default_rule: OwnershipRule | None = None,
    ) -> None:
        self._rules = dict(DEFAULT_OWNERSHIP_RULES if rules is None else rules)
        self._default_rule = default_rule or OwnershipRule(resource="*")

    def rule_for(self, resource: str) -> OwnershipRule:
        return self._rules.get(resource, self._default_rule)

    def classify(self, actor: Any, resource: str, resource_data: Any = None) -> Ownership:
        """Classify ``resource_data`` for ``actor``.

        Returns:
            ``Ownership(scope="mine", owned=True, owner_id=actor.user_id)`` when
            the actor owns the document, ``scope="any"`` when it does not.
            ``owner_id`` is the value compared against the actor's user id by
            the ``mine`` check, so a foreign owner never equals it.
        """
        rule = self.rule_for(resource)
        target = actor.client_id if rule.match_on == OwnerMatch.CLIENT else actor.user_id

        if resource_data is None:
            if rule.always_mine:
                return Ownership(scope=Scope.MINE, owned=True, owner_id=actor.user_id)
            return Ownership(scope=Scope.ANY, owned=False)

        owner = rule.owner_of(resource_data)
        if owner is None:
            if rule.always_mine:
                return Ownership(scope=Scope.MINE, owned=False)
            return Ownership(scope=Scope.ANY, owned=False)

        if owner == target:
            return Ownership(scope=Scope.MINE, owned=True, owner_id=actor.user_id)

        if rule.always_mine:
            return Ownership(scope=Scope.MINE, owned=False, owner_id=owner)
        return Ownership(scope=Scope.ANY, owned=False, owner_id=owner)


__all__ = [
    "DEFAULT_OWNERSHIP_RULES",
    "OwnerMatch",
    "Ownership",
    "OwnershipClassifier",
    "OwnershipRule",
]
