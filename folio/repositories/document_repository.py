"""Document repository — document rows plus per-key share storage.

Two jobs:

    - loaders that turn stored rows into ``DocumentAccessRecord`` snapshots
      for the access resolver (one document, or a batch with one query per
      share table rather than one per document)
    - share mutations addressed by key: a user share by (document, user), an
      organization share by (document, organization), the public share by
      document. Each is a single-row upsert or delete, never a rewrite of
      the document's whole share state.
"""

import uuid
from collections import defaultdict
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Sequence

from sqlalchemy import String, cast, or_, select

from ..exceptions import DocumentNotFoundError
from ..models import (
    Document,
    DocumentOrganizationShare,
    DocumentPublicShare,
    DocumentUserShare,
)
from ..permissions import DocumentAccessRecord
from ..permissions.shares import (
    make_organization_share,
    make_public_share,
    make_user_share,
)
from .base import BaseRepository


class DocumentRepository(BaseRepository[Document]):
    """Repository for documents and their share rows."""

    model_class = Document
    not_found_error = DocumentNotFoundError

    def create(
        self,
        user_id: str,
        filename: str,
        mime_type: str,
        size: int,
        organization_id: Optional[str] = None,
        visibility: str = "private",
        shared_with: Optional[Sequence[str]] = None,
    ) -> Document:
        document = Document(
            id=f"doc-{uuid.uuid4().hex[:16]}",
            user_id=user_id,
            organization_id=organization_id,
            filename=filename,
            mime_type=mime_type,
            size=size,
            visibility=visibility,
            shared_with=list(shared_with or []),
        )
        self.db.add(document)
        self.db.flush()
        return document

    def delete(self, document: Document) -> None:
        self.db.delete(document)

    # ------------------------------------------------------------------
    # Loaders for the access resolver
    # ------------------------------------------------------------------

    def load_access_record(self, doc_id: str) -> DocumentAccessRecord:
        """``loadDocument``: snapshot one document. Raises DocumentNotFoundError."""
        return self.to_access_record(self.get_by_id(doc_id))

    @staticmethod
    def to_access_record(document: Document) -> DocumentAccessRecord:
        return _build_record(
            document,
            document.user_shares,
            document.organization_shares,
            document.public_share,
        )

    def load_access_records(self, documents: Sequence[Document]) -> dict[str, DocumentAccessRecord]:
        """Snapshot many documents with three share queries in total."""
        doc_ids = [d.id for d in documents]
        if not doc_ids:
            return {}

        user_shares: dict[str, list] = defaultdict(list)
        for row in (
            self.db.query(DocumentUserShare)
            .filter(DocumentUserShare.document_id.in_(doc_ids))
            .order_by(DocumentUserShare.shared_at)
        ):
            user_shares[row.document_id].append(row)

        org_shares: dict[str, list] = defaultdict(list)
        for row in (
            self.db.query(DocumentOrganizationShare)
            .filter(DocumentOrganizationShare.document_id.in_(doc_ids))
            .order_by(DocumentOrganizationShare.shared_at)
        ):
            org_shares[row.document_id].append(row)

        public_shares = {
            row.document_id: row
            for row in self.db.query(DocumentPublicShare).filter(
                DocumentPublicShare.document_id.in_(doc_ids)
            )
        }

        return {
            d.id: _build_record(d, user_shares[d.id], org_shares[d.id], public_shares.get(d.id))
            for d in documents
        }

    def list_candidates(
        self,
        user_id: str,
        organization_ids: Iterable[str],
        organization_id: Optional[str] = None,
    ) -> List[Document]:
        """Documents the user *might* reach, newest first.

        A superset of what the access resolver will allow: owned, shared
        with the user (structured or legacy), shared with one of their
        organizations, publicly shared, or inside one of their
        organizations. The resolver makes the final decision.
        """
        org_ids = list(organization_ids)

        user_shared = select(DocumentUserShare.document_id).where(
            DocumentUserShare.user_id == user_id
        )
        public_shared = select(DocumentPublicShare.document_id).where(
            DocumentPublicShare.enabled.is_(True)
        )
        clauses = [
            Document.user_id == user_id,
            Document.id.in_(user_shared),
            Document.id.in_(public_shared),
            cast(Document.shared_with, String).like(f'%"{user_id}"%'),
        ]
        if org_ids:
            org_shared = select(DocumentOrganizationShare.document_id).where(
                DocumentOrganizationShare.organization_id.in_(org_ids)
            )
            clauses.append(Document.id.in_(org_shared))
            clauses.append(Document.organization_id.in_(org_ids))

        query = self.db.query(Document).filter(or_(*clauses))
        if organization_id is not None:
            query = query.filter(Document.organization_id == organization_id)
        return query.order_by(Document.created_at.desc(), Document.id).all()

    # ------------------------------------------------------------------
    # Share mutations, one row per key
    # ------------------------------------------------------------------

    def upsert_user_share(
        self, doc_id: str, user_id: str, actions: Sequence[str], shared_by: str
    ) -> None:
        self._upsert(
            DocumentUserShare,
            key={"document_id": doc_id, "user_id": user_id},
            values={
                "actions": list(actions),
                "shared_by": shared_by,
                "shared_at": datetime.now(timezone.utc),
            },
        )

    def remove_user_share(self, doc_id: str, user_id: str) -> bool:
        count = (
            self.db.query(DocumentUserShare)
            .filter(
                DocumentUserShare.document_id == doc_id,
                DocumentUserShare.user_id == user_id,
            )
            .delete(synchronize_session=False)
        )
        return count > 0

    def upsert_organization_share(
        self, doc_id: str, organization_id: str, actions: Sequence[str], shared_by: str
    ) -> None:
        self._upsert(
            DocumentOrganizationShare,
            key={"document_id": doc_id, "organization_id": organization_id},
            values={
                "actions": list(actions),
                "shared_by": shared_by,
                "shared_at": datetime.now(timezone.utc),
            },
        )

    def remove_organization_share(self, doc_id: str, organization_id: str) -> bool:
        count = (
            self.db.query(DocumentOrganizationShare)
            .filter(
                DocumentOrganizationShare.document_id == doc_id,
                DocumentOrganizationShare.organization_id == organization_id,
            )
            .delete(synchronize_session=False)
        )
        return count > 0

    def set_public_share(
        self, doc_id: str, enabled: bool, actions: Sequence[str], enabled_by: str
    ) -> None:
        self._upsert(
            DocumentPublicShare,
            key={"document_id": doc_id},
            values={
                "enabled": enabled,
                "actions": list(actions),
                "enabled_by": enabled_by,
                "enabled_at": datetime.now(timezone.utc),
            },
        )

    def _upsert(self, model, key: dict, values: dict) -> None:
        """Insert or update the single row identified by *key*.

        Uses INSERT .. ON CONFLICT DO UPDATE where the dialect supports it so
        the write is atomic per key; other dialects fall back to get-or-create.
        """
        insert = self._dialect_insert()
        if insert is not None:
            self.db.flush()
            stmt = insert(model).values(**key, **values)
            stmt = stmt.on_conflict_do_update(index_elements=list(key), set_=values)
            self.db.execute(stmt)
            # Share rows changed behind the ORM's back; drop cached collections.
            self.db.expire_all()
            return

        row = self.db.get(model, tuple(key.values()) if len(key) > 1 else next(iter(key.values())))
        if row is None:
            self.db.add(model(**key, **values))
        else:
            for name, value in values.items():
                setattr(row, name, value)
        self.db.flush()


def _build_record(document: Document, user_rows, org_rows, public_row) -> DocumentAccessRecord:
    public_share = None
    if public_row is not None:
        public_share = make_public_share(
            public_row.enabled, public_row.actions, public_row.enabled_by, public_row.enabled_at
        )
    return DocumentAccessRecord(
        id=document.id,
        user_id=document.user_id,
        organization_id=document.organization_id,
        visibility=document.visibility,
        shared_with_users=tuple(
            make_user_share(r.user_id, r.actions, r.shared_by, r.shared_at) for r in user_rows
        ),
        shared_with_organizations=tuple(
            make_organization_share(r.organization_id, r.actions, r.shared_by, r.shared_at)
            for r in org_rows
        ),
        public_share=public_share,
        shared_with=tuple(document.shared_with or ()),
    )
