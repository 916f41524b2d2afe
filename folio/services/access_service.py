"""Access service — loads what the authorization engine needs and asks it.

This is the ONE entry point endpoints and other services use for
permission questions. Each call does at most one membership load and one
document load, then runs the pure decision in ``folio.permissions``.
Nothing is cached between calls: a role change or a new share takes
effect on the next evaluation.
"""

import logging
from typing import Mapping, Optional, Sequence, Union

from sqlalchemy.orm import Session

from ..exceptions import ForbiddenError
from ..models import Document
from ..permissions import (
    Ability,
    AccessContext,
    Action,
    DocumentAccessRecord,
    ResourceContext,
    ResourceType,
    can_access,
    filter_by_access,
    get_organization_permissions,
)
from ..permissions.catalog import parse_action, parse_resource
from ..repositories import DocumentRepository, MembershipRepository

logger = logging.getLogger(__name__)

ContextLike = Union[ResourceContext, Mapping[str, Optional[str]], None]


def _as_resource_context(context: ContextLike) -> Optional[ResourceContext]:
    if context is None or isinstance(context, ResourceContext):
        return context
    return ResourceContext(
        organization_id=context.get("organization_id"),
        owner_id=context.get("owner_id"),
    )


class AccessService:
    """Authorization checks backed by the database."""

    def __init__(self, db: Session):
        self.db = db
        self.memberships = MembershipRepository(db)
        self.documents = DocumentRepository(db)

    def load_context(self, user_id: str) -> AccessContext:
        return AccessContext.build(user_id, self.memberships.load_active_grants(user_id))

    def get_ability(self, user_id: str) -> Ability:
        return self.load_context(user_id).ability

    # ------------------------------------------------------------------
    # Non-document resources
    # ------------------------------------------------------------------

    def can(
        self,
        user_id: str,
        action: Union[Action, str],
        resource: Union[ResourceType, str],
        context: ContextLike = None,
    ) -> bool:
        return self.get_ability(user_id).can(action, resource, _as_resource_context(context))

    def authorize(
        self,
        user_id: str,
        action: Union[Action, str],
        resource: Union[ResourceType, str],
        context: ContextLike = None,
    ) -> None:
        """Raise ForbiddenError unless *user_id* may perform *action* on *resource*."""
        action = parse_action(action)
        resource = parse_resource(resource)
        if not self.can(user_id, action, resource, context):
            logger.info(
                "Authorization denied",
                extra={"user_id": user_id, "action": action.value, "resource": resource.value},
            )
            raise ForbiddenError.for_action(action.value, resource.value)

    def organization_permissions(self, user_id: str, organization_id: str) -> dict[str, list[str]]:
        """Per-resource actions the user's ability grants in *organization_id*."""
        permissions = get_organization_permissions(self.get_ability(user_id), organization_id)
        return {r.value: [a.value for a in actions] for r, actions in permissions.items()}

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def can_access_document(
        self, user_id: str, doc_id: str, action: Union[Action, str]
    ) -> bool:
        """True if *user_id* may perform *action* on the document.

        Raises DocumentNotFoundError when the document does not exist; that
        is a precondition failure, not an authorization outcome.
        """
        record = self.documents.load_access_record(doc_id)
        return can_access(record, self.load_context(user_id), action)

    def authorize_document(
        self, user_id: str, doc_id: str, action: Union[Action, str]
    ) -> DocumentAccessRecord:
        """Like ``can_access_document`` but raises ForbiddenError. Returns the loaded record."""
        action = parse_action(action)
        record = self.documents.load_access_record(doc_id)
        if not can_access(record, self.load_context(user_id), action):
            raise ForbiddenError.for_action(action.value, ResourceType.DOCUMENT.value)
        return record

    def filter_documents_by_permission(
        self,
        user_id: str,
        documents: Sequence[Document],
        action: Union[Action, str],
    ) -> list[Document]:
        """Subsequence of *documents* the user may perform *action* on.

        Same outcome as calling ``can_access_document`` per document: the
        memberships are loaded once, share rows in one batch, and the same
        decision function is applied to each.
        """
        if not documents:
            return []
        context = self.load_context(user_id)
        records = self.documents.load_access_records(documents)
        return filter_by_access(documents, context, action, lambda d: records[d.id])
