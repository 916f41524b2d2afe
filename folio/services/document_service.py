"""Document service — document records and permission-filtered listing.

Text extraction, storage and indexing are handled elsewhere; this service
owns the document row and asks ``AccessService`` before every read or
write.
"""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from ..exceptions import ValidationError
from ..models import Document
from ..permissions import Action, ResourceType, Visibility
from ..permissions.catalog import parse_action
from ..repositories import DocumentRepository, MembershipRepository, OrganizationRepository
from .access_service import AccessService

logger = logging.getLogger(__name__)


def _require_action(action: str) -> Action:
    try:
        return parse_action(action)
    except ValueError as e:
        raise ValidationError(str(e), field="action") from e


class DocumentService:
    """Document lifecycle behind the access resolver."""

    def __init__(self, db: Session):
        self.db = db
        self.doc_repo = DocumentRepository(db)
        self.org_repo = OrganizationRepository(db)
        self.memberships = MembershipRepository(db)
        self.access = AccessService(db)

    def create_document(
        self,
        actor_id: str,
        filename: str,
        mime_type: str,
        size: int = 0,
        organization_id: Optional[str] = None,
        visibility: str = Visibility.PRIVATE.value,
    ) -> Document:
        """Create a document owned by *actor_id*.

        Organization documents need ``create`` on ``document`` in that
        organization; personal documents need nothing.
        """
        try:
            visibility = Visibility(visibility).value
        except ValueError as e:
            raise ValidationError(f"Invalid visibility: {visibility}", field="visibility") from e
        if size < 0:
            raise ValidationError("Size cannot be negative", field="size")

        if organization_id is not None:
            self.org_repo.get_by_id(organization_id)
            self.access.authorize(
                actor_id, Action.CREATE, ResourceType.DOCUMENT, {"organization_id": organization_id}
            )

        document = self.doc_repo.create(
            user_id=actor_id,
            filename=filename,
            mime_type=mime_type,
            size=size,
            organization_id=organization_id,
            visibility=visibility,
        )
        self.db.commit()
        self.db.refresh(document)
        logger.info(
            "Document created",
            extra={"doc_id": document.id, "organization_id": organization_id},
        )
        return document

    def get_document(self, actor_id: str, doc_id: str, action: str = Action.READ.value) -> Document:
        """Load a document the actor may perform *action* on.

        Raises DocumentNotFoundError before any permission check, then
        ForbiddenError if the check fails.
        """
        self.access.authorize_document(actor_id, doc_id, _require_action(action))
        return self.doc_repo.get_by_id(doc_id)

    def check_access(self, actor_id: str, doc_id: str, action: str) -> bool:
        return self.access.can_access_document(actor_id, doc_id, _require_action(action))

    def list_accessible_documents(
        self,
        actor_id: str,
        organization_id: Optional[str] = None,
        action: str = Action.READ.value,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Document]:
        """Documents the actor may perform *action* on, newest first."""
        action = _require_action(action)
        org_ids = self.memberships.active_organization_ids(actor_id)
        candidates = self.doc_repo.list_candidates(actor_id, org_ids, organization_id)
        allowed = self.access.filter_documents_by_permission(actor_id, candidates, action)
        return allowed[skip:skip + limit]

    def delete_document(self, actor_id: str, doc_id: str) -> None:
        self.access.authorize_document(actor_id, doc_id, Action.DELETE)
        self.doc_repo.delete(self.doc_repo.get_by_id(doc_id))
        self.db.commit()
        logger.info("Document deleted", extra={"doc_id": doc_id})
