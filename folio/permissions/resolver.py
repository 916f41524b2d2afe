"""Access resolver — the one place the document access decision order lives.

Decision order (first match wins):

    1. owner                      → allow
    2. user / org / public share  → allow if it carries the action or ``manage``
    3. personal document          → deny
    4. not a member of doc's org  → deny
    5. visibility == private      → deny
    6. role == guest              → deny
    7. role defaults + custom     → allow if they grant the action or ``manage``
    8. otherwise                  → deny

``decide_document_access`` is a pure function over an already-loaded
``DocumentAccessRecord`` and ``AccessContext``. The single-document check
and the bulk filter both call it, so they cannot diverge.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, Optional, Sequence, TypeVar

from .ability import Ability, MembershipGrants, ResourceContext, build_ability
from .catalog import Action, ResourceType, Role, Visibility, parse_action
from .shares import DocumentAccessRecord, compute_share_permissions

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AccessStep(str, Enum):
    """Which rule of the decision order produced the outcome."""

    OWNER = "owner"
    SHARE = "share"
    PERSONAL_DOCUMENT = "personal_document"
    NOT_A_MEMBER = "not_a_member"
    PRIVATE = "private"
    GUEST = "guest"
    ROLE = "role"
    NO_GRANT = "no_grant"


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    step: AccessStep

    def __bool__(self) -> bool:
        return self.allowed


@dataclass(frozen=True)
class AccessContext:
    """Request-scoped view of one user's active memberships.

    Built once per request (or once per bulk filter call) and reused for
    every document the request touches.
    """

    user_id: str
    memberships: dict[str, MembershipGrants]
    ability: Ability

    @classmethod
    def build(cls, user_id: str, memberships: Sequence[MembershipGrants]) -> "AccessContext":
        active = [m for m in memberships if m.is_active]
        return cls(
            user_id=str(user_id),
            memberships={str(m.organization_id): m for m in active},
            ability=build_ability(user_id, active),
        )

    @property
    def organization_ids(self) -> frozenset[str]:
        return frozenset(self.memberships)

    def membership_in(self, organization_id: Optional[str]) -> Optional[MembershipGrants]:
        if organization_id is None:
            return None
        return self.memberships.get(str(organization_id))


def decide_document_access(
    document: DocumentAccessRecord,
    context: AccessContext,
    action: Action | str,
) -> AccessDecision:
    """Run the decision order for *context.user_id* performing *action* on *document*."""
    action = parse_action(action)
    user_id = context.user_id

    if document.user_id == user_id:
        return AccessDecision(True, AccessStep.OWNER)

    shares = compute_share_permissions(document, user_id, context.organization_ids)
    if shares.allows(action):
        return AccessDecision(True, AccessStep.SHARE)

    if document.is_personal:
        return AccessDecision(False, AccessStep.PERSONAL_DOCUMENT)

    membership = context.membership_in(document.organization_id)
    if membership is None:
        return AccessDecision(False, AccessStep.NOT_A_MEMBER)

    if document.visibility is Visibility.PRIVATE:
        return AccessDecision(False, AccessStep.PRIVATE)

    if membership.role is Role.GUEST:
        return AccessDecision(False, AccessStep.GUEST)

    # Organization-scoped only: personal grants were settled by step 1.
    org_scope = ResourceContext(organization_id=str(document.organization_id))
    if context.ability.can(action, ResourceType.DOCUMENT, org_scope):
        return AccessDecision(True, AccessStep.ROLE)

    return AccessDecision(False, AccessStep.NO_GRANT)


def can_access(
    document: DocumentAccessRecord,
    context: AccessContext,
    action: Action | str,
) -> bool:
    decision = decide_document_access(document, context, action)
    if not decision.allowed:
        logger.debug(
            "Document access denied",
            extra={
                "user_id": context.user_id,
                "doc_id": document.id,
                "action": str(getattr(action, "value", action)),
                "step": decision.step.value,
            },
        )
    return decision.allowed


def filter_by_access(
    items: Iterable[T],
    context: AccessContext,
    action: Action | str,
    record_of: Callable[[T], DocumentAccessRecord],
) -> list[T]:
    """Keep the items whose document passes ``can_access``; input order is preserved."""
    action = parse_action(action)
    return [item for item in items if can_access(record_of(item), context, action)]
