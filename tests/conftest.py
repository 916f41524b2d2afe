"""Shared test fixtures for the Folio test suite.

Tests run against an in-memory SQLite database shared through a single
connection. Each test starts from empty tables.
"""

import os

# Use the in-memory database before any app imports.
os.environ["DATABASE_URL"] = os.environ.get("TEST_DATABASE_URL", "sqlite://")
os.environ["LOG_FORMAT"] = "text"
os.environ["ENVIRONMENT"] = "development"

from typing import Optional, Sequence

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from folio.core.config import settings
from folio.core.token_factory import create_token
from folio.database import Base, SessionLocal, get_db, init_db
from folio.main import app
from folio.middleware.request_context import rate_limiter
from folio.models import Document, Membership, Organization, User
from folio.repositories import DocumentRepository, MembershipRepository, OrganizationRepository, UserRepository

init_db()


@pytest.fixture(autouse=True)
def _clean_tables():
    """Delete every row before each test, children before parents.

    Runs before the test (not after) so failures leave data available
    for debugging.
    """
    db = SessionLocal()
    try:
        for table in reversed(Base.metadata.sorted_tables):
            db.execute(table.delete())
        db.commit()
    finally:
        db.close()
    yield


@pytest.fixture()
def db():
    """Per-test database session."""
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture()
def client(db):
    """FastAPI TestClient with the DB dependency overridden to use the test session."""

    def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    rate_limiter.reset()
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def auth_headers(user_id: str) -> dict:
    """Bearer headers for *user_id*."""
    token = create_token(subject=user_id, secret=settings.jwt_secret_key)
    return {"Authorization": f"Bearer {token}"}


def make_user(db: Session, name: str = "alice", active: bool = True) -> User:
    user = UserRepository(db).create(email=f"{name}@example.com", display_name=name.title())
    user.is_active = active
    db.commit()
    return user


def make_org(db: Session, owner: User, slug: str = "acme", name: Optional[str] = None) -> Organization:
    """Organization plus the owner's membership."""
    org = OrganizationRepository(db).create(name=name or slug.title(), slug=slug, owner_id=owner.user_id)
    db.flush()
    MembershipRepository(db).create(owner.user_id, org.id, "owner")
    db.commit()
    return org


def make_membership(
    db: Session,
    user: User,
    org: Organization,
    role: str = "member",
    custom_permissions: Optional[Sequence[dict]] = None,
    status: str = "active",
) -> Membership:
    membership = MembershipRepository(db).create(
        user.user_id, org.id, role, status=status, custom_permissions=custom_permissions
    )
    db.commit()
    return membership


def make_document(
    db: Session,
    owner: User,
    org: Optional[Organization] = None,
    visibility: str = "private",
    filename: str = "report.pdf",
    shared_with: Optional[Sequence[str]] = None,
) -> Document:
    document = DocumentRepository(db).create(
        user_id=owner.user_id,
        filename=filename,
        mime_type="application/pdf",
        size=1024,
        organization_id=org.id if org else None,
        visibility=visibility,
        shared_with=shared_with,
    )
    db.commit()
    return document
