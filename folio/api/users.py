"""User endpoints.

    POST /api/users     — create a user record and receive a bearer token
    GET  /api/users/me  — current user
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..core.auth import AuthContext, require_auth
from ..database import get_db
from ..repositories import UserRepository
from ..schemas.user import RegisterResponse, UserCreate, UserResponse
from ..services import user_service

router = APIRouter(prefix="/api/users", tags=["users"])


@router.post("", response_model=RegisterResponse, status_code=201)
def register_user(body: UserCreate, db: Session = Depends(get_db)):
    user = user_service.register_user(db, body.email, body.display_name)
    return RegisterResponse(
        token=user_service.issue_token(user),
        user=UserResponse.model_validate(user),
    )


@router.get("/me", response_model=UserResponse)
def get_me(auth: AuthContext = Depends(require_auth), db: Session = Depends(get_db)):
    return UserRepository(db).get_by_id(auth.user_id)
