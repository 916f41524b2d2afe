"""Document and share schemas."""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

VisibilityName = Literal["private", "organization", "public"]
ShareActionName = Literal["create", "read", "update", "delete", "share", "export", "manage"]


class DocumentCreate(BaseModel):
    filename: str = Field(..., min_length=1, max_length=255)
    mime_type: str = Field(..., min_length=1, max_length=100)
    size: int = Field(0, ge=0)
    organization_id: Optional[str] = None
    visibility: VisibilityName = "private"

    @field_validator("filename")
    @classmethod
    def validate_filename(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Filename cannot be blank")
        return v

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "filename": "report.pdf",
                    "mime_type": "application/pdf",
                    "size": 52311,
                    "organization_id": "org-3f2a9c1d0e4b5a6f",
                    "visibility": "organization",
                }
            ]
        }
    }


class DocumentResponse(BaseModel):
    id: str
    user_id: str
    organization_id: Optional[str] = None
    filename: str
    mime_type: str
    size: int
    processing_status: str
    visibility: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class AccessCheckResponse(BaseModel):
    document_id: str
    action: str
    allowed: bool


class ShareRequest(BaseModel):
    actions: List[ShareActionName] = Field(..., min_length=1)


class PublicShareRequest(BaseModel):
    enabled: bool
    actions: List[ShareActionName] = Field(default_factory=lambda: ["read"], min_length=1)


class UserShareResponse(BaseModel):
    user_id: str
    actions: List[str]


class OrganizationShareResponse(BaseModel):
    organization_id: str
    actions: List[str]


class PublicShareResponse(BaseModel):
    enabled: bool
    actions: List[str]


class SharesResponse(BaseModel):
    document_id: str
    owner_id: str
    users: List[UserShareResponse] = []
    organizations: List[OrganizationShareResponse] = []
    public: Optional[PublicShareResponse] = None
