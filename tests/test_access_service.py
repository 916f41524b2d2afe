"""Tests for AccessService — the database-backed entry point to the resolver."""

import pytest

from folio.exceptions import DocumentNotFoundError, ForbiddenError
from folio.permissions import Action, ResourceType
from folio.repositories import DocumentRepository, MembershipRepository
from folio.services import AccessService
from tests.conftest import make_document, make_membership, make_org, make_user


@pytest.fixture()
def world(db):
    owner = make_user(db, "owner")
    editor = make_user(db, "editor")
    viewer = make_user(db, "viewer")
    outsider = make_user(db, "outsider")
    org = make_org(db, owner)
    make_membership(db, editor, org, "editor")
    make_membership(db, viewer, org, "viewer")
    return {"owner": owner, "editor": editor, "viewer": viewer, "outsider": outsider, "org": org}


class TestAuthorize:

    def test_owner_may_update_organization(self, db, world):
        AccessService(db).authorize(
            world["owner"].user_id, "update", "organization", {"organization_id": world["org"].id}
        )

    def test_viewer_forbidden_with_standard_message(self, db, world):
        with pytest.raises(ForbiddenError) as exc_info:
            AccessService(db).authorize(
                world["viewer"].user_id, Action.INVITE, ResourceType.MEMBER,
                {"organization_id": world["org"].id},
            )
        assert exc_info.value.message == "You don't have permission to invite this member"

    def test_outsider_has_nothing_in_org(self, db, world):
        assert not AccessService(db).can(
            world["outsider"].user_id, "read", "organization", {"organization_id": world["org"].id}
        )

    def test_organization_permissions_summary(self, db, world):
        perms = AccessService(db).organization_permissions(world["editor"].user_id, world["org"].id)
        assert perms["document"] == ["create", "read", "update", "delete"]
        assert perms["settings"] == []


class TestDocumentAccess:

    def test_missing_document_is_not_found(self, db, world):
        with pytest.raises(DocumentNotFoundError):
            AccessService(db).can_access_document(world["owner"].user_id, "doc-missing", "read")

    def test_role_based_access(self, db, world):
        doc = make_document(db, world["owner"], world["org"], visibility="organization")
        svc = AccessService(db)
        assert svc.can_access_document(world["viewer"].user_id, doc.id, "read")
        assert not svc.can_access_document(world["viewer"].user_id, doc.id, "update")
        assert svc.can_access_document(world["editor"].user_id, doc.id, "update")
        assert not svc.can_access_document(world["outsider"].user_id, doc.id, "read")

    def test_authorize_document_returns_record(self, db, world):
        doc = make_document(db, world["owner"], world["org"], visibility="organization")
        record = AccessService(db).authorize_document(world["viewer"].user_id, doc.id, "read")
        assert record.id == doc.id
        assert record.organization_id == world["org"].id

    def test_authorize_document_raises(self, db, world):
        doc = make_document(db, world["owner"], world["org"], visibility="private")
        with pytest.raises(ForbiddenError, match="read this document"):
            AccessService(db).authorize_document(world["editor"].user_id, doc.id, "read")

    def test_role_change_takes_effect_immediately(self, db, world):
        doc = make_document(db, world["owner"], world["org"], visibility="organization")
        svc = AccessService(db)
        assert not svc.can_access_document(world["viewer"].user_id, doc.id, "update")

        membership = MembershipRepository(db).get(world["viewer"].user_id, world["org"].id)
        membership.role = "editor"
        db.commit()

        assert svc.can_access_document(world["viewer"].user_id, doc.id, "update")

    def test_share_grants_outsider(self, db, world):
        doc = make_document(db, world["owner"], world["org"], visibility="private")
        DocumentRepository(db).upsert_user_share(doc.id, world["outsider"].user_id, ["read"], world["owner"].user_id)
        db.commit()
        assert AccessService(db).can_access_document(world["outsider"].user_id, doc.id, "read")


class TestBulkFilter:

    def test_filter_agrees_with_single_checks(self, db, world):
        repo = DocumentRepository(db)
        docs = [
            make_document(db, world["owner"], world["org"], visibility="organization", filename="a.pdf"),
            make_document(db, world["owner"], world["org"], visibility="private", filename="b.pdf"),
            make_document(db, world["owner"], None, filename="c.pdf"),
            make_document(db, world["viewer"], world["org"], visibility="private", filename="d.pdf"),
        ]
        repo.upsert_user_share(docs[1].id, world["viewer"].user_id, ["update"], world["owner"].user_id)
        repo.set_public_share(docs[2].id, True, ["read"], world["owner"].user_id)
        db.commit()

        svc = AccessService(db)
        for user in ("owner", "editor", "viewer", "outsider"):
            user_id = world[user].user_id
            for action in ("read", "update", "delete"):
                filtered = svc.filter_documents_by_permission(user_id, docs, action)
                expected = [d for d in docs if svc.can_access_document(user_id, d.id, action)]
                assert [d.id for d in filtered] == [d.id for d in expected], (user, action)

    def test_empty_list(self, db, world):
        assert AccessService(db).filter_documents_by_permission(world["owner"].user_id, [], "read") == []
