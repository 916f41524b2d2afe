"""Business logic services."""

from .access_service import AccessService
from .document_service import DocumentService
from .organization_service import OrganizationService
from .share_service import ShareService

__all__ = ["AccessService", "DocumentService", "OrganizationService", "ShareService"]
