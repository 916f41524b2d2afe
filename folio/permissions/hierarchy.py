"""Role hierarchy guard — mandatory gate on membership mutation.

Independent of the ability builder: custom permissions can let someone
reach the member-management endpoints, but they never let an actor touch
a member ranked at or above themselves, hand out a rank at or above their
own, or assign/remove the ``owner`` role. Ownership changes only through
a dedicated transfer operation.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol

from ..exceptions import ForbiddenError
from .catalog import MembershipStatus, Role, parse_role, rank

logger = logging.getLogger(__name__)


class MembershipLike(Protocol):
    user_id: str
    organization_id: str
    role: str
    status: str


def _deny(message: str, **details) -> ForbiddenError:
    logger.warning("Role hierarchy violation: %s", message, extra=details)
    return ForbiddenError(message, details=details or None)


def _check_actor(actor: Optional[MembershipLike], target: MembershipLike) -> Role:
    if actor is None or MembershipStatus(actor.status) is not MembershipStatus.ACTIVE:
        raise _deny("Not a member", organization_id=str(target.organization_id))
    if str(actor.organization_id) != str(target.organization_id):
        raise _deny(
            "Not a member",
            organization_id=str(target.organization_id),
        )
    if str(actor.user_id) == str(target.user_id):
        raise _deny("Cannot modify your own membership", user_id=str(actor.user_id))
    return parse_role(actor.role)


def _check_target(actor_role: Role, target: MembershipLike) -> Role:
    target_role = parse_role(target.role)
    if target_role is Role.OWNER:
        raise _deny("Cannot modify the owner", user_id=str(target.user_id))
    if rank(target_role) >= rank(actor_role):
        raise _deny(
            "Cannot modify role of member with equal or higher rank",
            user_id=str(target.user_id),
            target_role=target_role.value,
            actor_role=actor_role.value,
        )
    return target_role


def assert_assignable_role(actor_role: Role | str, new_role: Role | str) -> Role:
    """Raise ForbiddenError unless *actor_role* may hand out *new_role*."""
    actor_role = parse_role(actor_role)
    new_role = parse_role(new_role)
    if new_role is Role.OWNER:
        raise _deny("The owner role cannot be assigned", new_role=new_role.value)
    if rank(new_role) >= rank(actor_role):
        raise _deny(
            "Cannot assign a role equal to or higher than your own",
            new_role=new_role.value,
            actor_role=actor_role.value,
        )
    return new_role


def assert_role_change_allowed(
    actor: Optional[MembershipLike],
    target: MembershipLike,
    new_role: Role | str,
) -> None:
    """Raise ForbiddenError unless *actor* may change *target*'s role to *new_role*."""
    actor_role = _check_actor(actor, target)
    _check_target(actor_role, target)
    assert_assignable_role(actor_role, new_role)


def assert_member_removal_allowed(
    actor: Optional[MembershipLike],
    target: MembershipLike,
) -> None:
    """Raise ForbiddenError unless *actor* may remove *target* from the organization."""
    actor_role = _check_actor(actor, target)
    _check_target(actor_role, target)


def assert_permission_override_allowed(
    actor: Optional[MembershipLike],
    target: MembershipLike,
) -> None:
    """Raise ForbiddenError unless *actor* may edit *target*'s custom permissions."""
    actor_role = _check_actor(actor, target)
    _check_target(actor_role, target)
