"""Document model and its share tables.

Each share mechanism lives in its own table keyed by (document, target), so
granting or revoking one share touches exactly one row and two concurrent
edits to different share lists of a document cannot overwrite each other.
"""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, JSON, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ..database import Base


class Document(Base):
    """Uploaded document. Owned by one user, optionally scoped to one organization."""

    __tablename__ = "documents"
    __table_args__ = (
        Index("ix_documents_user_created", "user_id", "created_at"),
        Index("ix_documents_org_created", "organization_id", "created_at"),
        Index("ix_documents_visibility", "visibility"),
    )

    id = Column(String(50), primary_key=True)
    user_id = Column(String(50), ForeignKey("users.user_id"), nullable=False)
    # NULL = personal document
    organization_id = Column(
        String(50), ForeignKey("organizations.id", ondelete="CASCADE"), nullable=True
    )

    filename = Column(String(255), nullable=False)
    mime_type = Column(String(100), nullable=False)
    size = Column(Integer, nullable=False, default=0)
    processing_status = Column(String(20), nullable=False, default="pending")
    processing_error = Column(Text, nullable=True)

    # private, organization, public; only meaningful for organization documents
    visibility = Column(String(20), nullable=False, default="private")

    # Legacy flat list of user ids with implicit read access.
    shared_with = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user_shares = relationship(
        "DocumentUserShare", cascade="all, delete-orphan", passive_deletes=True,
        order_by="DocumentUserShare.shared_at",
    )
    organization_shares = relationship(
        "DocumentOrganizationShare", cascade="all, delete-orphan", passive_deletes=True,
        order_by="DocumentOrganizationShare.shared_at",
    )
    public_share = relationship(
        "DocumentPublicShare", cascade="all, delete-orphan", passive_deletes=True,
        uselist=False,
    )


class DocumentUserShare(Base):
    """Share with one specific user. At most one row per (document, user)."""

    __tablename__ = "document_user_shares"
    __table_args__ = (
        Index("ix_document_user_shares_user_id", "user_id"),
    )

    document_id = Column(
        String(50), ForeignKey("documents.id", ondelete="CASCADE"), primary_key=True
    )
    user_id = Column(String(50), ForeignKey("users.user_id", ondelete="CASCADE"), primary_key=True)
    actions = Column(JSON, nullable=False, default=list)
    shared_by = Column(String(50), nullable=False)
    shared_at = Column(DateTime(timezone=True), server_default=func.now())


class DocumentOrganizationShare(Base):
    """Share with every active member of one organization. At most one row per (document, org)."""

    __tablename__ = "document_org_shares"
    __table_args__ = (
        Index("ix_document_org_shares_org_id", "organization_id"),
    )

    document_id = Column(
        String(50), ForeignKey("documents.id", ondelete="CASCADE"), primary_key=True
    )
    organization_id = Column(
        String(50), ForeignKey("organizations.id", ondelete="CASCADE"), primary_key=True
    )
    actions = Column(JSON, nullable=False, default=list)
    shared_by = Column(String(50), nullable=False)
    shared_at = Column(DateTime(timezone=True), server_default=func.now())


class DocumentPublicShare(Base):
    """Public share settings. Disabling keeps the row with ``enabled = False``."""

    __tablename__ = "document_public_shares"
    __table_args__ = (
        Index("ix_document_public_shares_enabled", "enabled"),
    )

    document_id = Column(
        String(50), ForeignKey("documents.id", ondelete="CASCADE"), primary_key=True
    )
    enabled = Column(Boolean, nullable=False, default=False)
    actions = Column(JSON, nullable=False, default=list)
    enabled_by = Column(String(50), nullable=True)
    enabled_at = Column(DateTime(timezone=True), nullable=True)
