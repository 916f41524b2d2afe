"""Pydantic schemas for API validation."""

from .document import (
    AccessCheckResponse,
    DocumentCreate,
    DocumentResponse,
    PublicShareRequest,
    ShareRequest,
    SharesResponse,
)
from .organization import (
    CustomPermissionsRequest,
    InviteRequest,
    MemberResponse,
    OrganizationCreate,
    OrganizationDetail,
    OrganizationResponse,
    OrganizationSummary,
    OrganizationUpdate,
    RoleUpdateRequest,
)
from .user import RegisterResponse, UserCreate, UserResponse

__all__ = [
    "AccessCheckResponse",
    "DocumentCreate",
    "DocumentResponse",
    "PublicShareRequest",
    "ShareRequest",
    "SharesResponse",
    "CustomPermissionsRequest",
    "InviteRequest",
    "MemberResponse",
    "OrganizationCreate",
    "OrganizationDetail",
    "OrganizationResponse",
    "OrganizationSummary",
    "OrganizationUpdate",
    "RoleUpdateRequest",
    "RegisterResponse",
    "UserCreate",
    "UserResponse",
]
