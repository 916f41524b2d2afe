"""Organization and membership endpoints.

Endpoints are thin: OrganizationService owns the ability checks, the role
hierarchy guard, commits and audit entries.
"""

from typing import Dict, List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..core.auth import AuthContext, require_auth
from ..database import get_db
from ..schemas.organization import (
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
from ..services import OrganizationService
from ..services.organization_service import MemberView

router = APIRouter(prefix="/api/organizations", tags=["organizations"])


def _member_response(view: MemberView) -> MemberResponse:
    m = view.membership
    return MemberResponse(
        user_id=m.user_id,
        organization_id=m.organization_id,
        role=m.role,
        status=m.status,
        custom_permissions=m.custom_permissions,
        display_name=view.user.display_name if view.user else None,
        email=view.user.email if view.user else None,
        joined_at=m.joined_at,
        invited_by=m.invited_by,
    )


@router.post("", response_model=OrganizationResponse, status_code=201)
def create_organization(
    body: OrganizationCreate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    """Create an organization; the caller becomes its owner."""
    return OrganizationService(db).create_organization(
        auth.user_id, body.name, body.slug, body.type, body.description
    )


@router.get("", response_model=List[OrganizationSummary])
def list_organizations(
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    pairs = OrganizationService(db).list_organizations(auth.user_id)
    return [
        OrganizationSummary(
            id=org.id,
            name=org.name,
            slug=org.slug,
            type=org.type,
            role=membership.role,
            is_owner=org.owner_id == auth.user_id,
        )
        for org, membership in pairs
    ]


@router.get("/{org_id}", response_model=OrganizationDetail)
def get_organization(
    org_id: str,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    return OrganizationService(db).get_organization(auth.user_id, org_id)


@router.put("/{org_id}", response_model=OrganizationResponse)
def update_organization(
    org_id: str,
    body: OrganizationUpdate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    settings = body.settings.model_dump(exclude_none=True) if body.settings else None
    return OrganizationService(db).update_organization(
        auth.user_id, org_id, name=body.name, description=body.description, settings=settings
    )


@router.delete("/{org_id}", status_code=204)
def delete_organization(
    org_id: str,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    OrganizationService(db).delete_organization(auth.user_id, org_id)


@router.get("/{org_id}/permissions", response_model=Dict[str, List[str]])
def get_my_permissions(
    org_id: str,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    """The caller's effective actions per resource in this organization."""
    return OrganizationService(db).get_my_permissions(auth.user_id, org_id)


@router.get("/{org_id}/members", response_model=List[MemberResponse])
def list_members(
    org_id: str,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    return [_member_response(v) for v in OrganizationService(db).list_members(auth.user_id, org_id)]


@router.post("/{org_id}/members", response_model=MemberResponse, status_code=201)
def invite_member(
    org_id: str,
    body: InviteRequest,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    view = OrganizationService(db).invite_member(auth.user_id, org_id, body.email, body.role)
    return _member_response(view)


@router.put("/{org_id}/members/{user_id}/role", response_model=MemberResponse)
def update_member_role(
    org_id: str,
    user_id: str,
    body: RoleUpdateRequest,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    membership = OrganizationService(db).update_member_role(auth.user_id, org_id, user_id, body.role)
    return _member_response(MemberView(membership, None))


@router.put("/{org_id}/members/{user_id}/permissions", response_model=MemberResponse)
def set_custom_permissions(
    org_id: str,
    user_id: str,
    body: CustomPermissionsRequest,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    entries = [entry.model_dump() for entry in body.custom_permissions]
    membership = OrganizationService(db).set_custom_permissions(auth.user_id, org_id, user_id, entries)
    return _member_response(MemberView(membership, None))


@router.delete("/{org_id}/members/{user_id}", status_code=204)
def remove_member(
    org_id: str,
    user_id: str,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    OrganizationService(db).remove_member(auth.user_id, org_id, user_id)


@router.post("/{org_id}/leave", status_code=204)
def leave_organization(
    org_id: str,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    OrganizationService(db).leave_organization(auth.user_id, org_id)
