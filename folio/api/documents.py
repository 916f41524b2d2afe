"""Document and share endpoints.

Every route resolves access through DocumentService/ShareService; a missing
document is a 404 before any permission check, a denied one is a 403.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..core.auth import AuthContext, require_auth
from ..database import get_db
from ..permissions import DocumentAccessRecord
from ..schemas.document import (
    AccessCheckResponse,
    DocumentCreate,
    DocumentResponse,
    OrganizationShareResponse,
    PublicShareRequest,
    PublicShareResponse,
    ShareRequest,
    SharesResponse,
    UserShareResponse,
)
from ..services import DocumentService, ShareService

router = APIRouter(prefix="/api/documents", tags=["documents"])


def _sorted_actions(actions) -> list[str]:
    return sorted(a.value for a in actions)


def _shares_response(record: DocumentAccessRecord) -> SharesResponse:
    public = None
    if record.public_share is not None:
        public = PublicShareResponse(
            enabled=record.public_share.enabled,
            actions=_sorted_actions(record.public_share.actions),
        )
    return SharesResponse(
        document_id=record.id,
        owner_id=record.user_id,
        users=[
            UserShareResponse(user_id=s.user_id, actions=_sorted_actions(s.actions))
            for s in record.shared_with_users
        ],
        organizations=[
            OrganizationShareResponse(organization_id=s.organization_id, actions=_sorted_actions(s.actions))
            for s in record.shared_with_organizations
        ],
        public=public,
    )


@router.post("", response_model=DocumentResponse, status_code=201)
def create_document(
    body: DocumentCreate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    return DocumentService(db).create_document(
        auth.user_id,
        filename=body.filename,
        mime_type=body.mime_type,
        size=body.size,
        organization_id=body.organization_id,
        visibility=body.visibility,
    )


@router.get("", response_model=List[DocumentResponse])
def list_documents(
    organization_id: Optional[str] = None,
    action: str = Query("read"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    """Documents the caller may perform *action* on, newest first."""
    return DocumentService(db).list_accessible_documents(
        auth.user_id, organization_id=organization_id, action=action, skip=skip, limit=limit
    )


@router.get("/{doc_id}", response_model=DocumentResponse)
def get_document(
    doc_id: str,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    return DocumentService(db).get_document(auth.user_id, doc_id)


@router.delete("/{doc_id}", status_code=204)
def delete_document(
    doc_id: str,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    DocumentService(db).delete_document(auth.user_id, doc_id)


@router.get("/{doc_id}/access", response_model=AccessCheckResponse)
def check_access(
    doc_id: str,
    action: str = Query("read"),
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    """Answer whether the caller may perform *action*, without raising on denial."""
    allowed = DocumentService(db).check_access(auth.user_id, doc_id, action)
    return AccessCheckResponse(document_id=doc_id, action=action, allowed=allowed)


@router.get("/{doc_id}/shares", response_model=SharesResponse)
def get_shares(
    doc_id: str,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    return _shares_response(ShareService(db).get_shares(auth.user_id, doc_id))


@router.put("/{doc_id}/shares/users/{user_id}", response_model=SharesResponse)
def share_with_user(
    doc_id: str,
    user_id: str,
    body: ShareRequest,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    record = ShareService(db).share_with_user(auth.user_id, doc_id, user_id, body.actions)
    return _shares_response(record)


@router.delete("/{doc_id}/shares/users/{user_id}", response_model=SharesResponse)
def unshare_user(
    doc_id: str,
    user_id: str,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    return _shares_response(ShareService(db).unshare_user(auth.user_id, doc_id, user_id))


@router.put("/{doc_id}/shares/organizations/{org_id}", response_model=SharesResponse)
def share_with_organization(
    doc_id: str,
    org_id: str,
    body: ShareRequest,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    record = ShareService(db).share_with_organization(auth.user_id, doc_id, org_id, body.actions)
    return _shares_response(record)


@router.delete("/{doc_id}/shares/organizations/{org_id}", response_model=SharesResponse)
def unshare_organization(
    doc_id: str,
    org_id: str,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    return _shares_response(ShareService(db).unshare_organization(auth.user_id, doc_id, org_id))


@router.put("/{doc_id}/shares/public", response_model=SharesResponse)
def set_public_share(
    doc_id: str,
    body: PublicShareRequest,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    record = ShareService(db).set_public_share(auth.user_id, doc_id, body.enabled, body.actions)
    return _shares_response(record)
