"""User schemas."""

from datetime import datetime

from pydantic import BaseModel, Field


class UserCreate(BaseModel):
    email: str = Field(..., description="Email address")
    display_name: str = Field(..., min_length=1, max_length=100)

    model_config = {
        "json_schema_extra": {"examples": [{"email": "alice@company.com", "display_name": "Alice"}]}
    }


class UserResponse(BaseModel):
    user_id: str
    display_name: str
    email: str
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class RegisterResponse(BaseModel):
    token: str
    user: UserResponse
