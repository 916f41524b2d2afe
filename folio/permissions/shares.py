"""Document share registry — per-document grant lists and the helpers that read them.

A document carries three independent share mechanisms:

    - ``shared_with_users``          one entry per user id
    - ``shared_with_organizations``  one entry per organization id
    - ``public_share``               at most one, effective only when enabled

plus the legacy flat ``shared_with`` list of user ids (implicit read).

The helpers here compute each mechanism's action set for one user and do
NOT merge them; the access resolver decides how they combine.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Collection, Optional

from .catalog import Action, Visibility, parse_action


def _actions(values) -> frozenset[Action]:
    return frozenset(parse_action(v) for v in values or ())


@dataclass(frozen=True)
class UserShare:
    user_id: str
    actions: frozenset[Action]
    shared_by: Optional[str] = None
    shared_at: Optional[datetime] = None


@dataclass(frozen=True)
class OrganizationShare:
    organization_id: str
    actions: frozenset[Action]
    shared_by: Optional[str] = None
    shared_at: Optional[datetime] = None


@dataclass(frozen=True)
class PublicShare:
    enabled: bool
    actions: frozenset[Action]
    enabled_by: Optional[str] = None
    enabled_at: Optional[datetime] = None


@dataclass(frozen=True)
class DocumentAccessRecord:
    """Everything the access resolver needs to know about one document."""

    id: str
    user_id: str
    organization_id: Optional[str] = None
    visibility: Visibility = Visibility.PRIVATE
    shared_with_users: tuple[UserShare, ...] = ()
    shared_with_organizations: tuple[OrganizationShare, ...] = ()
    public_share: Optional[PublicShare] = None
    shared_with: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "visibility", Visibility(self.visibility))

    @property
    def is_personal(self) -> bool:
        return self.organization_id is None


def make_user_share(user_id: str, actions, shared_by=None, shared_at=None) -> UserShare:
    return UserShare(str(user_id), _actions(actions), shared_by, shared_at)


def make_organization_share(
    organization_id: str, actions, shared_by=None, shared_at=None
) -> OrganizationShare:
    return OrganizationShare(str(organization_id), _actions(actions), shared_by, shared_at)


def make_public_share(enabled: bool, actions, enabled_by=None, enabled_at=None) -> PublicShare:
    return PublicShare(bool(enabled), _actions(actions), enabled_by, enabled_at)


def from_user_share(document: DocumentAccessRecord, user_id: str) -> Optional[frozenset[Action]]:
    """Actions shared directly with *user_id*, or None if no share exists.

    A user listed in the legacy ``shared_with`` list without a structured
    entry gets an implicit ``read``.
    """
    for share in document.shared_with_users:
        if share.user_id == user_id:
            return share.actions
    if user_id in document.shared_with:
        return frozenset({Action.READ})
    return None


def from_org_share(
    document: DocumentAccessRecord, organization_ids: Collection[str]
) -> Optional[frozenset[Action]]:
    """Union of actions across every organization share targeting one of *organization_ids*."""
    matched = False
    actions: set[Action] = set()
    for share in document.shared_with_organizations:
        if share.organization_id in organization_ids:
            matched = True
            actions |= share.actions
    return frozenset(actions) if matched else None


def from_public_share(document: DocumentAccessRecord) -> Optional[frozenset[Action]]:
    """The public share's actions when it is enabled, else None."""
    share = document.public_share
    if share is None or not share.enabled:
        return None
    return share.actions


@dataclass(frozen=True)
class SharePermissions:
    """The three independent share-derived action sets for one user on one document."""

    from_user_share: Optional[frozenset[Action]]
    from_org_share: Optional[frozenset[Action]]
    from_public_share: Optional[frozenset[Action]]

    def allows(self, action: Action) -> bool:
        for actions in (self.from_user_share, self.from_org_share, self.from_public_share):
            if actions and (action in actions or Action.MANAGE in actions):
                return True
        return False


def compute_share_permissions(
    document: DocumentAccessRecord,
    user_id: str,
    organization_ids: Collection[str],
) -> SharePermissions:
    return SharePermissions(
        from_user_share=from_user_share(document, user_id),
        from_org_share=from_org_share(document, organization_ids),
        from_public_share=from_public_share(document),
    )
