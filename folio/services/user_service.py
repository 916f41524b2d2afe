"""User service — identity records and token issuance.

Folio does not verify passwords: an upstream identity provider (or the
bootstrap endpoint in development) creates the user, and Folio issues a
bearer token carrying the user id.
"""

import logging

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.token_factory import create_token
from ..exceptions import ConflictError, ValidationError
from ..models import User
from ..repositories import UserRepository

logger = logging.getLogger(__name__)


def register_user(db: Session, email: str, display_name: str) -> User:
    """Create a user. Raises ValidationError for bad input, ConflictError if the email is taken."""
    email = email.strip().lower()
    if not email or "@" not in email:
        raise ValidationError("Valid email address required", field="email")
    if not display_name.strip():
        raise ValidationError("Display name required", field="display_name")

    users = UserRepository(db)
    if users.get_by_email(email) is not None:
        raise ConflictError("Email already registered", details={"email": email})

    user = users.create(email=email, display_name=display_name)
    db.commit()
    db.refresh(user)
    logger.info("User registered", extra={"user_id": user.user_id})
    return user


def issue_token(user: User) -> str:
    return create_token(
        subject=user.user_id,
        secret=settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
        expires_hours=settings.token_expiry_hours,
    )
