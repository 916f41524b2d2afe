"""Ability builder — turns a user's memberships into a queryable capability set.

An ``Ability`` is a frozen set of ``Grant`` tuples
``(resource, action, scope_kind, scope_value)`` matched by plain equality:

    - organization grants are scoped to an organization id
    - personal grants are scoped to the user's own id (resources they own)

Abilities are request-scoped: build one per authorization check from the
memberships current at that moment, never cache it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional, Sequence

from .catalog import (
    ALL_ACTIONS,
    CONCRETE_RESOURCES,
    Action,
    MembershipStatus,
    PermissionEntry,
    ResourceType,
    Role,
    default_grants,
    expand_grant,
    parse_action,
    parse_entries,
    parse_resource,
    parse_role,
)

logger = logging.getLogger(__name__)


class ScopeKind(str, Enum):
    ORGANIZATION = "organization"
    OWNER = "owner"


@dataclass(frozen=True)
class Grant:
    resource: ResourceType
    action: Action
    scope_kind: ScopeKind
    scope_value: str


@dataclass(frozen=True)
class MembershipGrants:
    """The slice of a membership the ability builder needs.

    ``custom_permissions`` accepts either parsed ``PermissionEntry`` objects
    or the stored JSON form (``[{"resource": ..., "actions": [...]}]``).
    """

    organization_id: str
    role: Role
    custom_permissions: tuple[PermissionEntry, ...] = ()
    status: MembershipStatus = MembershipStatus.ACTIVE

    def __post_init__(self) -> None:
        object.__setattr__(self, "role", parse_role(self.role))
        object.__setattr__(self, "status", MembershipStatus(self.status))
        object.__setattr__(
            self, "custom_permissions", parse_entries(self.custom_permissions)
        )

    @property
    def is_active(self) -> bool:
        return self.status is MembershipStatus.ACTIVE


@dataclass(frozen=True)
class ResourceContext:
    """Scoping fields of the resource being checked.

    ``organization_id`` matches organization grants; ``owner_id`` matches the
    personal grants of the user who owns the resource.
    """

    organization_id: Optional[str] = None
    owner_id: Optional[str] = None


# Cross-organization grants every user holds on resources they own.
_PERSONAL_GRANTS: tuple[PermissionEntry, ...] = (
    PermissionEntry(ResourceType.DOCUMENT, (Action.READ,)),
    PermissionEntry(ResourceType.CHAT, (Action.READ,)),
    PermissionEntry(ResourceType.CHAT, (Action.MANAGE,)),
)


@dataclass(frozen=True)
class Ability:
    """Capability set answering ``can(action, resource, context)``."""

    user_id: Optional[str]
    grants: frozenset[Grant] = field(default_factory=frozenset)

    def can(
        self,
        action: Action | str,
        resource: ResourceType | str,
        context: Optional[ResourceContext] = None,
    ) -> bool:
        """Return True if a grant for *action* (or ``manage``) on *resource* matches *context*.

        With ``context=None`` the question is "can this user ever do this":
        any grant on the resource counts, whatever its scope.
        """
        action = parse_action(action)
        resource = parse_resource(resource)
        if resource is ResourceType.ALL:
            return all(self.can(action, r, context) for r in CONCRETE_RESOURCES)

        wanted = {action, Action.MANAGE}

        if context is None:
            return any(g.resource is resource and g.action in wanted for g in self.grants)

        scopes = []
        if context.organization_id is not None:
            scopes.append((ScopeKind.ORGANIZATION, str(context.organization_id)))
        if context.owner_id is not None:
            scopes.append((ScopeKind.OWNER, str(context.owner_id)))

        for scope_kind, scope_value in scopes:
            for candidate in wanted:
                if Grant(resource, candidate, scope_kind, scope_value) in self.grants:
                    return True
        return False

    def cannot(
        self,
        action: Action | str,
        resource: ResourceType | str,
        context: Optional[ResourceContext] = None,
    ) -> bool:
        return not self.can(action, resource, context)


def _register(
    grants: set[Grant],
    entries: Iterable[PermissionEntry],
    scope_kind: ScopeKind,
    scope_value: str,
) -> None:
    for entry in entries:
        for resource, action in expand_grant(entry):
            grants.add(Grant(resource, action, scope_kind, scope_value))


def build_ability(user_id: str, memberships: Sequence[MembershipGrants]) -> Ability:
    """Build the Ability for *user_id* from their memberships.

    Two passes per membership over the same expansion routine: role
    defaults, then custom permissions. Custom grants only ever add.
    Non-active memberships contribute nothing. Never raises for an empty
    membership list.
    """
    grants: set[Grant] = set()

    for membership in memberships:
        if not membership.is_active:
            continue
        org_id = str(membership.organization_id)
        _register(grants, default_grants(membership.role), ScopeKind.ORGANIZATION, org_id)
        _register(grants, membership.custom_permissions, ScopeKind.ORGANIZATION, org_id)

    _register(grants, _PERSONAL_GRANTS, ScopeKind.OWNER, str(user_id))

    logger.debug(
        "Built ability",
        extra={"user_id": user_id, "memberships": len(memberships), "grants": len(grants)},
    )
    return Ability(user_id=user_id, grants=frozenset(grants))


def define_public_ability() -> Ability:
    """Ability for callers without a user: denies everything."""
    return Ability(user_id=None, grants=frozenset())


def resolve_organization_permissions(
    role: Role | str,
    custom_permissions: Sequence[PermissionEntry] | Sequence[dict] | None = None,
) -> dict[ResourceType, list[Action]]:
    """Per-resource action lists granted by *role* plus *custom_permissions*.

    Used to render "what can I do" summaries. Every concrete resource is
    present; actions follow catalog order.
    """
    pairs: set[tuple[ResourceType, Action]] = set()
    for entry in default_grants(parse_role(role)):
        pairs |= expand_grant(entry)
    for entry in parse_entries(custom_permissions):
        pairs |= expand_grant(entry)

    return {
        resource: [a for a in ALL_ACTIONS if (resource, a) in pairs]
        for resource in CONCRETE_RESOURCES
    }


def get_organization_permissions(
    ability: Ability, organization_id: str
) -> dict[ResourceType, list[Action]]:
    """Per-resource action lists *ability* grants inside one organization."""
    context = ResourceContext(organization_id=organization_id)
    return {
        resource: [a for a in ALL_ACTIONS if ability.can(a, resource, context)]
        for resource in CONCRETE_RESOURCES
    }
