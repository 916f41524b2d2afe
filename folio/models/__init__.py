"""Database models."""

from .user import User, AuditLog
from .organization import Organization, Membership
from .document import (
    Document,
    DocumentUserShare,
    DocumentOrganizationShare,
    DocumentPublicShare,
)

__all__ = [
    "User", "AuditLog",
    "Organization", "Membership",
    "Document", "DocumentUserShare", "DocumentOrganizationShare", "DocumentPublicShare",
]
