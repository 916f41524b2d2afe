"""Membership data access — the loader behind every ability the engine builds."""

import uuid
from datetime import datetime, timezone
from typing import Optional, Sequence

from sqlalchemy.orm import Session

from ..models import Membership
from ..permissions import MembershipGrants, MembershipStatus

_ACTIVE = MembershipStatus.ACTIVE.value


class MembershipRepository:
    """Queries keyed by (user_id, organization_id); one row per pair."""

    def __init__(self, db: Session):
        self.db = db

    def list_active_for_user(self, user_id: str) -> list[Membership]:
        return (
            self.db.query(Membership)
            .filter(Membership.user_id == user_id, Membership.status == _ACTIVE)
            .order_by(Membership.created_at, Membership.id)
            .all()
        )

    def load_active_grants(self, user_id: str) -> list[MembershipGrants]:
        """``loadActiveMemberships``: the user's active memberships as engine input."""
        return [to_grants(m) for m in self.list_active_for_user(user_id)]

    def active_organization_ids(self, user_id: str) -> list[str]:
        """``loadUserOrganizationIds``: ids of organizations the user is an active member of."""
        rows = (
            self.db.query(Membership.organization_id)
            .filter(Membership.user_id == user_id, Membership.status == _ACTIVE)
            .all()
        )
        return [row[0] for row in rows]

    def get(self, user_id: str, organization_id: str) -> Optional[Membership]:
        """Membership for the pair regardless of status."""
        return (
            self.db.query(Membership)
            .filter(
                Membership.user_id == user_id,
                Membership.organization_id == organization_id,
            )
            .first()
        )

    def get_active(self, user_id: str, organization_id: str) -> Optional[Membership]:
        membership = self.get(user_id, organization_id)
        if membership is None or membership.status != _ACTIVE:
            return None
        return membership

    def list_for_organization(self, organization_id: str) -> list[Membership]:
        return (
            self.db.query(Membership)
            .filter(Membership.organization_id == organization_id)
            .order_by(Membership.created_at, Membership.id)
            .all()
        )

    def create(
        self,
        user_id: str,
        organization_id: str,
        role: str,
        invited_by: Optional[str] = None,
        status: str = _ACTIVE,
        custom_permissions: Optional[Sequence[dict]] = None,
    ) -> Membership:
        now = datetime.now(timezone.utc)
        membership = Membership(
            id=f"mem-{uuid.uuid4().hex[:16]}",
            user_id=user_id,
            organization_id=organization_id,
            role=role,
            status=status,
            custom_permissions=list(custom_permissions) if custom_permissions else None,
            invited_by=invited_by,
            invited_at=now if invited_by else None,
            joined_at=now if status == _ACTIVE else None,
        )
        self.db.add(membership)
        return membership

    def delete(self, membership: Membership) -> None:
        self.db.delete(membership)


def to_grants(membership: Membership) -> MembershipGrants:
    """Convert a stored membership into the ability builder's input.

    Unknown role/resource/action strings raise ValueError here, at the
    storage boundary, instead of silently granting nothing.
    """
    return MembershipGrants(
        organization_id=str(membership.organization_id),
        role=membership.role,
        custom_permissions=membership.custom_permissions or (),
        status=membership.status,
    )
