"""Organization and membership schemas."""

from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

AssignableRoleName = Literal["admin", "editor", "member", "viewer", "guest"]
ActionName = Literal["create", "read", "update", "delete", "share", "export", "invite", "manage"]
ResourceName = Literal["organization", "member", "document", "chat", "settings", "all"]


class OrganizationCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    slug: str = Field(..., min_length=2, max_length=50, pattern=r"^[a-z0-9-]+$")
    type: Literal["company", "school", "team", "personal"] = "team"
    description: Optional[str] = Field(None, max_length=500)

    model_config = {
        "json_schema_extra": {
            "examples": [{"name": "Acme Corp", "slug": "acme", "type": "company"}]
        }
    }


class OrganizationSettingsUpdate(BaseModel):
    allow_public_documents: Optional[bool] = None
    default_member_role: Optional[AssignableRoleName] = None
    max_storage_bytes: Optional[int] = Field(None, ge=0)
    max_documents: Optional[int] = Field(None, ge=0)


class OrganizationUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    settings: Optional[OrganizationSettingsUpdate] = None


class OrganizationSummary(BaseModel):
    id: str
    name: str
    slug: str
    type: str
    role: str
    is_owner: bool


class OrganizationPermissionFlags(BaseModel):
    can_manage: bool
    can_update: bool


class OrganizationDetail(BaseModel):
    id: str
    name: str
    slug: str
    type: str
    description: Optional[str] = None
    settings: dict = {}
    is_owner: bool
    role: str
    permissions: OrganizationPermissionFlags
    created_at: datetime


class OrganizationResponse(BaseModel):
    id: str
    name: str
    slug: str
    type: str
    description: Optional[str] = None
    owner_id: str
    settings: dict = {}
    created_at: datetime

    model_config = {"from_attributes": True}


class PermissionEntrySchema(BaseModel):
    resource: ResourceName
    actions: List[ActionName] = Field(..., min_length=1)


class InviteRequest(BaseModel):
    email: str = Field(..., description="Email of an existing user")
    role: Optional[AssignableRoleName] = Field(
        None, description="Defaults to the organization's default_member_role"
    )


class RoleUpdateRequest(BaseModel):
    role: AssignableRoleName


class CustomPermissionsRequest(BaseModel):
    custom_permissions: List[PermissionEntrySchema] = []


class MemberResponse(BaseModel):
    user_id: str
    organization_id: str
    role: str
    status: str
    custom_permissions: Optional[List[PermissionEntrySchema]] = None
    display_name: Optional[str] = None
    email: Optional[str] = None
    joined_at: Optional[datetime] = None
    invited_by: Optional[str] = None


MyPermissionsResponse = Dict[str, List[str]]
