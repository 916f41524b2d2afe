"""Organization service — organization lifecycle and membership management.

Every membership mutation passes two independent gates:

    1. the ability check (``AccessService.authorize``) for the member resource
    2. the role hierarchy guard for role changes, invitations, removals
       and custom permission edits

Endpoints are thin wrappers; this service owns commits and audit entries.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from sqlalchemy.orm import Session

from ..exceptions import (
    ConflictError,
    ForbiddenError,
    MembershipNotFoundError,
    UserNotFoundError,
    ValidationError,
)
from ..models import Membership, Organization, User
from ..permissions import (
    Action,
    ResourceContext,
    ResourceType,
    Role,
    assert_assignable_role,
    assert_member_removal_allowed,
    assert_permission_override_allowed,
    assert_role_change_allowed,
)
from ..permissions.catalog import parse_entries, parse_role
from ..repositories import MembershipRepository, OrganizationRepository, UserRepository
from . import audit_service
from .access_service import AccessService

logger = logging.getLogger(__name__)

_SLUG_RE = re.compile(r"^[a-z0-9-]{2,50}$")
ORGANIZATION_TYPES = ("company", "school", "team", "personal")
_SETTINGS_KEYS = frozenset(
    {"allow_public_documents", "default_member_role", "max_storage_bytes", "max_documents"}
)


@dataclass(frozen=True)
class MemberView:
    membership: Membership
    user: Optional[User]


class OrganizationService:
    """Deep module for organizations and their memberships."""

    def __init__(self, db: Session):
        self.db = db
        self.orgs = OrganizationRepository(db)
        self.users = UserRepository(db)
        self.memberships = MembershipRepository(db)
        self.access = AccessService(db)

    # ------------------------------------------------------------------
    # Organizations
    # ------------------------------------------------------------------

    def create_organization(
        self,
        actor_id: str,
        name: str,
        slug: str,
        type: str = "team",
        description: Optional[str] = None,
    ) -> Organization:
        """Create an organization and its owner membership in one transaction."""
        name = name.strip()
        slug = slug.strip()
        if not 2 <= len(name) <= 100:
            raise ValidationError("Name must be 2-100 characters", field="name")
        if not _SLUG_RE.match(slug):
            raise ValidationError(
                "Slug must be 2-50 characters of lowercase letters, digits or '-'", field="slug"
            )
        if type not in ORGANIZATION_TYPES:
            raise ValidationError(f"Invalid organization type: {type}", field="type")
        if self.orgs.get_by_slug(slug) is not None:
            raise ConflictError("Organization slug already exists", details={"slug": slug})
        self.users.get_by_id(actor_id)

        organization = self.orgs.create(
            name=name, slug=slug, owner_id=actor_id, type=type, description=description
        )
        self.db.flush()
        self.memberships.create(actor_id, organization.id, Role.OWNER.value)
        audit_service.log(
            self.db, actor_id, "organization_create", "organization", organization.id,
            {"slug": slug},
        )
        self.db.commit()
        self.db.refresh(organization)
        logger.info("Organization created", extra={"organization_id": organization.id, "owner_id": actor_id})
        return organization

    def list_organizations(self, actor_id: str) -> list[tuple[Organization, Membership]]:
        """The actor's active memberships paired with their organizations."""
        memberships = self.memberships.list_active_for_user(actor_id)
        orgs = self.orgs.get_many([m.organization_id for m in memberships])
        return [(orgs[m.organization_id], m) for m in memberships if m.organization_id in orgs]

    def get_organization(self, actor_id: str, org_id: str) -> dict[str, Any]:
        organization = self.orgs.get_by_id(org_id)
        membership = self.memberships.get_active(actor_id, org_id)
        if membership is None:
            raise ForbiddenError("Not a member of this organization")

        ability = self.access.get_ability(actor_id)
        scope = ResourceContext(organization_id=org_id)
        return {
            "id": organization.id,
            "name": organization.name,
            "slug": organization.slug,
            "type": organization.type,
            "description": organization.description,
            "settings": organization.settings,
            "is_owner": organization.owner_id == actor_id,
            "role": membership.role,
            "permissions": {
                "can_manage": ability.can(Action.MANAGE, ResourceType.ORGANIZATION, scope),
                "can_update": ability.can(Action.UPDATE, ResourceType.ORGANIZATION, scope),
            },
            "created_at": organization.created_at,
        }

    def update_organization(
        self,
        actor_id: str,
        org_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
        settings: Optional[dict] = None,
    ) -> Organization:
        organization = self.orgs.get_by_id(org_id)
        self.access.authorize(
            actor_id, Action.UPDATE, ResourceType.ORGANIZATION, {"organization_id": org_id}
        )

        if name is not None:
            if not 2 <= len(name.strip()) <= 100:
                raise ValidationError("Name must be 2-100 characters", field="name")
            organization.name = name.strip()
        if description is not None:
            organization.description = description
        if settings:
            unknown = set(settings) - _SETTINGS_KEYS
            if unknown:
                raise ValidationError(f"Unknown settings: {sorted(unknown)}", field="settings")
            if "default_member_role" in settings:
                try:
                    role = parse_role(settings["default_member_role"])
                except ValueError as e:
                    raise ValidationError(str(e), field="settings.default_member_role") from e
                if role is Role.OWNER:
                    raise ValidationError(
                        "Default member role cannot be owner", field="settings.default_member_role"
                    )
            organization.settings = {**(organization.settings or {}), **settings}

        self.db.commit()
        self.db.refresh(organization)
        return organization

    def delete_organization(self, actor_id: str, org_id: str) -> None:
        """Delete the organization and all its memberships. Owner only."""
        organization = self.orgs.get_by_id(org_id)
        if organization.owner_id != actor_id:
            raise ForbiddenError("Only the owner can delete the organization")

        self.orgs.delete(organization)
        audit_service.log(self.db, actor_id, "organization_delete", "organization", org_id)
        self.db.commit()
        logger.info("Organization deleted", extra={"organization_id": org_id})

    # ------------------------------------------------------------------
    # Members
    # ------------------------------------------------------------------

    def list_members(self, actor_id: str, org_id: str) -> list[MemberView]:
        self.orgs.get_by_id(org_id)
        self.access.authorize(actor_id, Action.READ, ResourceType.MEMBER, {"organization_id": org_id})

        memberships = self.memberships.list_for_organization(org_id)
        users = self.users.get_many([m.user_id for m in memberships])
        return [MemberView(m, users.get(m.user_id)) for m in memberships]

    def invite_member(
        self, actor_id: str, org_id: str, email: str, role: Optional[str] = None
    ) -> MemberView:
        """Add an existing user to the organization (auto-accepted).

        The invited role is held to the same rule as a role change: it must
        rank below the inviter's own role, and can never be ``owner``.
        """
        organization = self.orgs.get_by_id(org_id)
        self.access.authorize(actor_id, Action.INVITE, ResourceType.MEMBER, {"organization_id": org_id})

        role = role or (organization.settings or {}).get("default_member_role", Role.MEMBER.value)
        actor = self.memberships.get_active(actor_id, org_id)
        if actor is None:
            raise ForbiddenError("Not a member")
        new_role = assert_assignable_role(actor.role, role)

        user = self.users.get_by_email(email)
        if user is None:
            raise UserNotFoundError(email)
        if self.memberships.get(user.user_id, org_id) is not None:
            raise ConflictError(
                "User is already a member", details={"user_id": user.user_id, "organization_id": org_id}
            )

        membership = self.memberships.create(
            user.user_id, org_id, new_role.value, invited_by=actor_id
        )
        audit_service.log(
            self.db, actor_id, "member_invite", "member", membership.id,
            {"organization_id": org_id, "user_id": user.user_id, "role": new_role.value},
        )
        self.db.commit()
        self.db.refresh(membership)
        return MemberView(membership, user)

    def update_member_role(
        self, actor_id: str, org_id: str, user_id: str, role: str
    ) -> Membership:
        self.orgs.get_by_id(org_id)
        self.access.authorize(actor_id, Action.UPDATE, ResourceType.MEMBER, {"organization_id": org_id})

        target = self._get_membership(user_id, org_id)
        actor = self.memberships.get_active(actor_id, org_id)
        assert_role_change_allowed(actor, target, role)

        previous = target.role
        target.role = parse_role(role).value
        audit_service.log(
            self.db, actor_id, "role_change", "member", target.id,
            {"organization_id": org_id, "user_id": user_id, "from": previous, "to": target.role},
        )
        self.db.commit()
        self.db.refresh(target)
        logger.info(
            "Member role changed",
            extra={"organization_id": org_id, "user_id": user_id, "from_role": previous, "to_role": target.role},
        )
        return target

    def set_custom_permissions(
        self, actor_id: str, org_id: str, user_id: str, entries: Sequence[dict]
    ) -> Membership:
        """Replace the member's stored custom permissions (additive over role defaults)."""
        self.orgs.get_by_id(org_id)
        self.access.authorize(actor_id, Action.MANAGE, ResourceType.MEMBER, {"organization_id": org_id})

        target = self._get_membership(user_id, org_id)
        actor = self.memberships.get_active(actor_id, org_id)
        assert_permission_override_allowed(actor, target)

        try:
            parsed = parse_entries(entries)
        except (KeyError, ValueError) as e:
            raise ValidationError(f"Invalid custom permissions: {e}", field="custom_permissions") from e

        target.custom_permissions = [entry.to_dict() for entry in parsed] or None
        audit_service.log(
            self.db, actor_id, "custom_permissions_set", "member", target.id,
            {"organization_id": org_id, "user_id": user_id, "entries": target.custom_permissions},
        )
        self.db.commit()
        self.db.refresh(target)
        return target

    def remove_member(self, actor_id: str, org_id: str, user_id: str) -> None:
        self.orgs.get_by_id(org_id)
        self.access.authorize(actor_id, Action.DELETE, ResourceType.MEMBER, {"organization_id": org_id})

        target = self._get_membership(user_id, org_id)
        actor = self.memberships.get_active(actor_id, org_id)
        assert_member_removal_allowed(actor, target)

        self.memberships.delete(target)
        audit_service.log(
            self.db, actor_id, "member_remove", "member", target.id,
            {"organization_id": org_id, "user_id": user_id, "role": target.role},
        )
        self.db.commit()

    def leave_organization(self, actor_id: str, org_id: str) -> None:
        """Remove the actor's own membership. The owner must transfer ownership first."""
        membership = self._get_membership(actor_id, org_id)
        if membership.role == Role.OWNER.value:
            raise ForbiddenError("Owner cannot leave. Transfer ownership first.")

        self.memberships.delete(membership)
        audit_service.log(
            self.db, actor_id, "member_leave", "member", membership.id, {"organization_id": org_id}
        )
        self.db.commit()

    def get_my_permissions(self, actor_id: str, org_id: str) -> dict[str, list[str]]:
        self.orgs.get_by_id(org_id)
        return self.access.organization_permissions(actor_id, org_id)

    # ------------------------------------------------------------------
    # Membership helpers
    # ------------------------------------------------------------------

    def is_member_of(self, user_id: str, org_id: str) -> bool:
        return self.memberships.get_active(user_id, org_id) is not None

    def get_user_role(self, user_id: str, org_id: str) -> Optional[str]:
        membership = self.memberships.get_active(user_id, org_id)
        return membership.role if membership else None

    def _get_membership(self, user_id: str, org_id: str) -> Membership:
        membership = self.memberships.get(user_id, org_id)
        if membership is None:
            raise MembershipNotFoundError(user_id, org_id)
        return membership
