"""Organization and Membership models."""

from sqlalchemy import (
    Column, DateTime, ForeignKey, Index, JSON, String, Text, UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ..database import Base


def default_organization_settings() -> dict:
    return {
        "allow_public_documents": False,
        "default_member_role": "member",
        "max_storage_bytes": 10 * 1024 * 1024 * 1024,
        "max_documents": 1000,
    }


class Organization(Base):
    """A tenant. Its owner is fixed at creation."""

    __tablename__ = "organizations"
    __table_args__ = (
        Index("ix_organizations_owner_id", "owner_id"),
    )

    id = Column(String(50), primary_key=True)
    name = Column(String(100), nullable=False)
    slug = Column(String(50), nullable=False, unique=True)
    type = Column(String(20), nullable=False, default="team")  # company, school, team, personal
    description = Column(Text, nullable=True)
    owner_id = Column(String(50), ForeignKey("users.user_id"), nullable=False)
    settings = Column(JSON, nullable=False, default=default_organization_settings)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    memberships = relationship(
        "Membership",
        back_populates="organization",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class Membership(Base):
    """A user's role in one organization.

    Only ``status == "active"`` memberships take part in permission
    evaluation. ``custom_permissions`` is an ordered list of
    ``{"resource": ..., "actions": [...]}`` entries granted on top of the
    role's defaults.
    """

    __tablename__ = "memberships"
    __table_args__ = (
        UniqueConstraint("user_id", "organization_id", name="uq_memberships_user_org"),
        Index("ix_memberships_org_status", "organization_id", "status"),
        Index("ix_memberships_user_status", "user_id", "status"),
    )

    id = Column(String(50), primary_key=True)
    user_id = Column(String(50), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    organization_id = Column(
        String(50), ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    role = Column(String(20), nullable=False, default="member")
    custom_permissions = Column(JSON, nullable=True)
    status = Column(String(20), nullable=False, default="active")
    invited_by = Column(String(50), ForeignKey("users.user_id"), nullable=True)
    invited_at = Column(DateTime(timezone=True), nullable=True)
    joined_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    organization = relationship("Organization", back_populates="memberships")
