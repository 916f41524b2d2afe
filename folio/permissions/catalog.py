"""Permission catalog — static roles, actions, resources, ranks and default grants.

Pure data plus the ONE expansion routine (``expand_grant``) that turns a
``{resource, actions}`` entry into concrete ``(resource, action)`` pairs.
Role defaults and per-member custom permissions both go through it, so a
``{resource: all, actions: [manage]}`` entry behaves identically wherever
it comes from.

Unknown role/action/resource strings are rejected by the ``parse_*``
helpers at the boundary; inside the core they raise ``ValueError``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Mapping, Sequence


class Role(str, Enum):
    OWNER = "owner"
    ADMIN = "admin"
    EDITOR = "editor"
    MEMBER = "member"
    VIEWER = "viewer"
    GUEST = "guest"


class Action(str, Enum):
    # MANAGE implies every other action on the same resource.
    MANAGE = "manage"
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    SHARE = "share"
    EXPORT = "export"
    INVITE = "invite"


class ResourceType(str, Enum):
    # ALL is a grant target only; it expands to every concrete resource.
    ALL = "all"
    ORGANIZATION = "organization"
    DOCUMENT = "document"
    CHAT = "chat"
    MEMBER = "member"
    SETTINGS = "settings"


class MembershipStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    SUSPENDED = "suspended"


class Visibility(str, Enum):
    PRIVATE = "private"
    ORGANIZATION = "organization"
    PUBLIC = "public"


ALL_ACTIONS: tuple[Action, ...] = tuple(Action)
CONCRETE_RESOURCES: tuple[ResourceType, ...] = tuple(
    r for r in ResourceType if r is not ResourceType.ALL
)

# Actions a document share entry may carry. INVITE is a membership action.
SHAREABLE_ACTIONS: frozenset[Action] = frozenset(
    a for a in Action if a is not Action.INVITE
)


@dataclass(frozen=True)
class PermissionEntry:
    """One ``{resource, actions[]}`` grant, as stored in role defaults or custom permissions."""

    resource: ResourceType
    actions: tuple[Action, ...]

    def to_dict(self) -> dict:
        return {"resource": self.resource.value, "actions": [a.value for a in self.actions]}


def _entry(resource: ResourceType, *actions: Action) -> PermissionEntry:
    return PermissionEntry(resource=resource, actions=tuple(actions))


# Used only for hierarchy enforcement, never for computing permissions.
ROLE_RANK: dict[Role, int] = {
    Role.OWNER: 100,
    Role.ADMIN: 80,
    Role.EDITOR: 60,
    Role.MEMBER: 40,
    Role.VIEWER: 20,
    Role.GUEST: 10,
}

DEFAULT_ROLE_GRANTS: dict[Role, tuple[PermissionEntry, ...]] = {
    Role.OWNER: (
        _entry(ResourceType.ALL, Action.MANAGE),
    ),
    Role.ADMIN: (
        _entry(ResourceType.ORGANIZATION, Action.READ, Action.UPDATE),
        _entry(ResourceType.DOCUMENT, Action.MANAGE),
        _entry(ResourceType.CHAT, Action.MANAGE),
        _entry(
            ResourceType.MEMBER,
            Action.CREATE, Action.READ, Action.UPDATE, Action.DELETE, Action.INVITE,
        ),
        _entry(ResourceType.SETTINGS, Action.READ, Action.UPDATE),
    ),
    Role.EDITOR: (
        _entry(ResourceType.ORGANIZATION, Action.READ),
        _entry(ResourceType.DOCUMENT, Action.CREATE, Action.READ, Action.UPDATE, Action.DELETE),
        _entry(ResourceType.CHAT, Action.CREATE, Action.READ, Action.UPDATE, Action.DELETE),
        _entry(ResourceType.MEMBER, Action.READ),
    ),
    Role.MEMBER: (
        _entry(ResourceType.ORGANIZATION, Action.READ),
        _entry(ResourceType.DOCUMENT, Action.CREATE, Action.READ),
        _entry(ResourceType.CHAT, Action.CREATE, Action.READ),
        _entry(ResourceType.MEMBER, Action.READ),
    ),
    Role.VIEWER: (
        _entry(ResourceType.ORGANIZATION, Action.READ),
        _entry(ResourceType.DOCUMENT, Action.READ),
        _entry(ResourceType.CHAT, Action.READ),
        _entry(ResourceType.MEMBER, Action.READ),
    ),
    Role.GUEST: (
        _entry(ResourceType.DOCUMENT, Action.READ),
    ),
}


def rank(role: Role | str) -> int:
    """Return the hierarchy rank of *role*. Raises ValueError for unknown roles."""
    return ROLE_RANK[Role(role)]


def default_grants(role: Role | str) -> tuple[PermissionEntry, ...]:
    """Return the default ``{resource, actions}`` entries granted to *role*."""
    return DEFAULT_ROLE_GRANTS[Role(role)]


def expand_grant(entry: PermissionEntry) -> set[tuple[ResourceType, Action]]:
    """Expand one entry into concrete ``(resource, action)`` pairs.

    ``all`` becomes every concrete resource and ``manage`` becomes every
    action (``manage`` itself included, so callers can still ask for it).
    """
    if entry.resource is ResourceType.ALL:
        resources: Sequence[ResourceType] = CONCRETE_RESOURCES
    else:
        resources = (entry.resource,)

    actions: set[Action] = set()
    for action in entry.actions:
        if action is Action.MANAGE:
            actions.update(ALL_ACTIONS)
        else:
            actions.add(action)

    return {(resource, action) for resource in resources for action in actions}


def expand_grants(entries: Iterable[PermissionEntry]) -> set[tuple[ResourceType, Action]]:
    """Union of ``expand_grant`` over *entries*."""
    pairs: set[tuple[ResourceType, Action]] = set()
    for entry in entries:
        pairs |= expand_grant(entry)
    return pairs


# ---------------------------------------------------------------------------
# Boundary parsing: reject unknown tokens instead of treating them as "no access"
# ---------------------------------------------------------------------------


def parse_role(value: Role | str) -> Role:
    try:
        return Role(value)
    except ValueError:
        raise ValueError(f"Unknown role: {value!r}") from None


def parse_action(value: Action | str) -> Action:
    try:
        return Action(value)
    except ValueError:
        raise ValueError(f"Unknown action: {value!r}") from None


def parse_resource(value: ResourceType | str) -> ResourceType:
    try:
        return ResourceType(value)
    except ValueError:
        raise ValueError(f"Unknown resource type: {value!r}") from None


def parse_entries(raw: Sequence[Mapping] | None) -> tuple[PermissionEntry, ...]:
    """Parse stored custom-permission JSON (``[{resource, actions}]``) into entries.

    Order is preserved. ``None`` or an empty list yields no entries.
    """
    if not raw:
        return ()
    entries = []
    for item in raw:
        if isinstance(item, PermissionEntry):
            entries.append(item)
            continue
        resource = parse_resource(item["resource"])
        actions = tuple(parse_action(a) for a in item.get("actions", ()))
        entries.append(PermissionEntry(resource=resource, actions=actions))
    return tuple(entries)
