"""Data access repositories."""

from .base import BaseRepository
from .document_repository import DocumentRepository
from .membership_repository import MembershipRepository, to_grants
from .organization_repository import OrganizationRepository, UserRepository

__all__ = [
    "BaseRepository",
    "DocumentRepository",
    "MembershipRepository",
    "OrganizationRepository",
    "UserRepository",
    "to_grants",
]
