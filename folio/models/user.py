"""User and AuditLog models.

Users are identities only: the HTTP edge proves who the caller is and the
authorization engine receives the resulting ``user_id``. What a user may do
comes from their memberships and from document shares, never from this row.
AuditLog records membership and share mutations for accountability.
"""

from sqlalchemy import Column, String, DateTime, Boolean, Integer, Text, ForeignKey
from sqlalchemy.sql import func
from ..database import Base


class User(Base):
    """User account."""

    __tablename__ = "users"

    user_id = Column(String(50), primary_key=True)
    display_name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class AuditLog(Base):
    """Immutable record of state-changing operations.

    Written by the service layer, never modified or deleted.
    Fields:
        action        — organization_create, organization_delete, member_invite,
                        role_change, custom_permissions_set, member_remove,
                        member_leave, share_user, unshare_user, share_organization,
                        unshare_organization, public_share
        resource_type — organization, member, document
        resource_id   — ID of the affected resource
        details       — JSON string with additional context
    """

    __tablename__ = "audit_log"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(50), ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True)
    action = Column(String(50), nullable=False)
    resource_type = Column(String(50), nullable=False)
    resource_id = Column(String(255), nullable=True)
    details = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
