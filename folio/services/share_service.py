"""Share service — explicit share/unshare operations on a document.

Shares are never created implicitly. Each operation requires the actor to
hold ``share`` on the document (through ownership, a share carrying
``share``/``manage``, or their role) and writes exactly one share row.
A sharer can only grant actions they hold on the document themselves.
"""

import logging
from typing import Optional, Sequence

from sqlalchemy.orm import Session

from ..exceptions import ForbiddenError, ValidationError
from ..permissions import Action, DocumentAccessRecord, can_access
from ..permissions.catalog import SHAREABLE_ACTIONS, parse_action
from ..repositories import DocumentRepository, OrganizationRepository, UserRepository
from . import audit_service
from .access_service import AccessService

logger = logging.getLogger(__name__)


def normalize_share_actions(actions: Sequence[str]) -> list[str]:
    """Validate and de-duplicate share actions, keeping first-seen order."""
    if not actions:
        raise ValidationError("At least one action is required", field="actions")
    result: list[str] = []
    for raw in actions:
        try:
            action = parse_action(raw)
        except ValueError as e:
            raise ValidationError(str(e), field="actions") from e
        if action not in SHAREABLE_ACTIONS:
            raise ValidationError(f"Action cannot be shared: {action.value}", field="actions")
        if action.value not in result:
            result.append(action.value)
    return result


class ShareService:
    """Document share mutations and share listing."""

    def __init__(self, db: Session):
        self.db = db
        self.documents = DocumentRepository(db)
        self.users = UserRepository(db)
        self.orgs = OrganizationRepository(db)
        self.access = AccessService(db)

    def _assert_grantable(
        self, actor_id: str, record: DocumentAccessRecord, actions: Sequence[str]
    ) -> None:
        """A sharer can only hand out actions they hold on the document themselves."""
        context = self.access.load_context(actor_id)
        denied = [a for a in actions if not can_access(record, context, a)]
        if denied:
            logger.info(
                "Share denied for actions not held",
                extra={"user_id": actor_id, "doc_id": record.id, "actions": denied},
            )
            raise ForbiddenError("Cannot share actions you do not hold", details={"actions": denied})

    def get_shares(self, actor_id: str, doc_id: str) -> DocumentAccessRecord:
        return self.access.authorize_document(actor_id, doc_id, Action.READ)

    def share_with_user(
        self, actor_id: str, doc_id: str, user_id: str, actions: Sequence[str]
    ) -> DocumentAccessRecord:
        """Create or overwrite the share for *user_id*. Sharing with the owner is a no-op."""
        record = self.access.authorize_document(actor_id, doc_id, Action.SHARE)
        normalized = normalize_share_actions(actions)
        self._assert_grantable(actor_id, record, normalized)
        self.users.get_by_id(user_id)

        if user_id == record.user_id:
            logger.debug("Ignoring share targeting the owner", extra={"doc_id": doc_id})
            return record

        self.documents.upsert_user_share(doc_id, user_id, normalized, shared_by=actor_id)
        audit_service.log(
            self.db, actor_id, "share_user", "document", doc_id,
            {"user_id": user_id, "actions": normalized},
        )
        self.db.commit()
        return self.documents.load_access_record(doc_id)

    def unshare_user(self, actor_id: str, doc_id: str, user_id: str) -> DocumentAccessRecord:
        self.access.authorize_document(actor_id, doc_id, Action.SHARE)
        if self.documents.remove_user_share(doc_id, user_id):
            audit_service.log(self.db, actor_id, "unshare_user", "document", doc_id, {"user_id": user_id})
        self.db.commit()
        return self.documents.load_access_record(doc_id)

    def share_with_organization(
        self, actor_id: str, doc_id: str, org_id: str, actions: Sequence[str]
    ) -> DocumentAccessRecord:
        record = self.access.authorize_document(actor_id, doc_id, Action.SHARE)
        normalized = normalize_share_actions(actions)
        self._assert_grantable(actor_id, record, normalized)
        self.orgs.get_by_id(org_id)

        self.documents.upsert_organization_share(doc_id, org_id, normalized, shared_by=actor_id)
        audit_service.log(
            self.db, actor_id, "share_organization", "document", doc_id,
            {"organization_id": org_id, "actions": normalized},
        )
        self.db.commit()
        return self.documents.load_access_record(doc_id)

    def unshare_organization(self, actor_id: str, doc_id: str, org_id: str) -> DocumentAccessRecord:
        self.access.authorize_document(actor_id, doc_id, Action.SHARE)
        if self.documents.remove_organization_share(doc_id, org_id):
            audit_service.log(
                self.db, actor_id, "unshare_organization", "document", doc_id,
                {"organization_id": org_id},
            )
        self.db.commit()
        return self.documents.load_access_record(doc_id)

    def set_public_share(
        self,
        actor_id: str,
        doc_id: str,
        enabled: bool,
        actions: Optional[Sequence[str]] = None,
    ) -> DocumentAccessRecord:
        """Enable, update, or disable the public share. Defaults to read-only."""
        record = self.access.authorize_document(actor_id, doc_id, Action.SHARE)
        normalized = normalize_share_actions(actions or [Action.READ.value])
        if enabled:
            self._assert_grantable(actor_id, record, normalized)

        self.documents.set_public_share(doc_id, enabled, normalized, enabled_by=actor_id)
        audit_service.log(
            self.db, actor_id, "public_share", "document", doc_id,
            {"enabled": enabled, "actions": normalized},
        )
        self.db.commit()
        return self.documents.load_access_record(doc_id)
