"""Organization and user data access."""

import uuid
from typing import Optional

from ..exceptions import OrganizationNotFoundError, UserNotFoundError
from ..models import Organization, User
from ..models.organization import default_organization_settings
from .base import BaseRepository


class OrganizationRepository(BaseRepository[Organization]):
    model_class = Organization
    not_found_error = OrganizationNotFoundError

    def get_by_slug(self, slug: str) -> Optional[Organization]:
        return self.db.query(Organization).filter(Organization.slug == slug).first()

    def get_many(self, organization_ids: list[str]) -> dict[str, Organization]:
        if not organization_ids:
            return {}
        rows = self.db.query(Organization).filter(Organization.id.in_(organization_ids)).all()
        return {org.id: org for org in rows}

    def create(
        self,
        name: str,
        slug: str,
        owner_id: str,
        type: str = "team",
        description: Optional[str] = None,
    ) -> Organization:
        organization = Organization(
            id=f"org-{uuid.uuid4().hex[:16]}",
            name=name,
            slug=slug,
            type=type,
            description=description,
            owner_id=owner_id,
            settings=default_organization_settings(),
        )
        self.db.add(organization)
        return organization

    def delete(self, organization: Organization) -> None:
        self.db.delete(organization)


class UserRepository(BaseRepository[User]):
    model_class = User
    id_column = "user_id"
    not_found_error = UserNotFoundError

    def get_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == email.strip().lower()).first()

    def get_many(self, user_ids: list[str]) -> dict[str, User]:
        if not user_ids:
            return {}
        rows = self.db.query(User).filter(User.user_id.in_(user_ids)).all()
        return {u.user_id: u for u in rows}

    def create(self, email: str, display_name: str) -> User:
        user = User(
            user_id=f"usr-{uuid.uuid4().hex[:12]}",
            email=email.strip().lower(),
            display_name=display_name.strip(),
            is_active=True,
        )
        self.db.add(user)
        return user
