"""Tests for ShareService — explicit share and unshare operations."""

import pytest

from folio.exceptions import (
    DocumentNotFoundError,
    ForbiddenError,
    OrganizationNotFoundError,
    UserNotFoundError,
    ValidationError,
)
from folio.models import AuditLog
from folio.permissions import Action
from folio.services import AccessService, ShareService
from tests.conftest import make_document, make_membership, make_org, make_user


@pytest.fixture()
def setup(db):
    owner = make_user(db, "owner")
    bob = make_user(db, "bob")
    carol = make_user(db, "carol")
    org = make_org(db, owner)
    other_org = make_org(db, carol, slug="other")
    doc = make_document(db, owner, org, visibility="private")
    return {"owner": owner, "bob": bob, "carol": carol, "org": org, "other_org": other_org, "doc": doc}


class TestUserShares:

    def test_share_grants_access(self, db, setup):
        svc = ShareService(db)
        record = svc.share_with_user(setup["owner"].user_id, setup["doc"].id, setup["bob"].user_id, ["read"])
        assert [(s.user_id, s.actions) for s in record.shared_with_users] == [
            (setup["bob"].user_id, frozenset({Action.READ}))
        ]
        assert AccessService(db).can_access_document(setup["bob"].user_id, setup["doc"].id, "read")

    def test_share_overwrites_previous_actions(self, db, setup):
        svc = ShareService(db)
        svc.share_with_user(setup["owner"].user_id, setup["doc"].id, setup["bob"].user_id, ["read"])
        record = svc.share_with_user(
            setup["owner"].user_id, setup["doc"].id, setup["bob"].user_id, ["update", "read"]
        )
        assert len(record.shared_with_users) == 1
        assert record.shared_with_users[0].actions == {Action.READ, Action.UPDATE}

    def test_sharing_with_owner_is_noop(self, db, setup):
        record = ShareService(db).share_with_user(
            setup["owner"].user_id, setup["doc"].id, setup["owner"].user_id, ["read"]
        )
        assert record.shared_with_users == ()

    def test_unshare_revokes(self, db, setup):
        svc = ShareService(db)
        svc.share_with_user(setup["owner"].user_id, setup["doc"].id, setup["bob"].user_id, ["read"])
        record = svc.unshare_user(setup["owner"].user_id, setup["doc"].id, setup["bob"].user_id)
        assert record.shared_with_users == ()
        assert not AccessService(db).can_access_document(setup["bob"].user_id, setup["doc"].id, "read")

    def test_reshare_requires_share_action(self, db, setup):
        svc = ShareService(db)
        svc.share_with_user(setup["owner"].user_id, setup["doc"].id, setup["bob"].user_id, ["read"])
        with pytest.raises(ForbiddenError, match="share this document"):
            svc.share_with_user(setup["bob"].user_id, setup["doc"].id, setup["carol"].user_id, ["read"])

    def test_share_action_allows_resharing(self, db, setup):
        svc = ShareService(db)
        svc.share_with_user(setup["owner"].user_id, setup["doc"].id, setup["bob"].user_id, ["read", "share"])
        svc.share_with_user(setup["bob"].user_id, setup["doc"].id, setup["carol"].user_id, ["read"])
        assert AccessService(db).can_access_document(setup["carol"].user_id, setup["doc"].id, "read")

    def test_share_holder_cannot_grant_themselves_manage(self, db, setup):
        svc = ShareService(db)
        svc.share_with_user(setup["owner"].user_id, setup["doc"].id, setup["bob"].user_id, ["share"])
        with pytest.raises(ForbiddenError, match="Cannot share actions you do not hold") as exc_info:
            svc.share_with_user(setup["bob"].user_id, setup["doc"].id, setup["bob"].user_id, ["manage"])
        assert exc_info.value.details == {"actions": ["manage"]}
        assert not AccessService(db).can_access_document(setup["bob"].user_id, setup["doc"].id, "delete")

    def test_reshare_limited_to_held_actions(self, db, setup):
        svc = ShareService(db)
        svc.share_with_user(setup["owner"].user_id, setup["doc"].id, setup["bob"].user_id, ["read", "share"])
        with pytest.raises(ForbiddenError):
            svc.share_with_user(setup["bob"].user_id, setup["doc"].id, setup["carol"].user_id, ["read", "update"])
        with pytest.raises(ForbiddenError):
            svc.share_with_organization(setup["bob"].user_id, setup["doc"].id, setup["other_org"].id, ["delete"])
        assert not AccessService(db).can_access_document(setup["carol"].user_id, setup["doc"].id, "read")

    def test_unknown_user(self, db, setup):
        with pytest.raises(UserNotFoundError):
            ShareService(db).share_with_user(setup["owner"].user_id, setup["doc"].id, "usr-ghost", ["read"])

    def test_missing_document(self, db, setup):
        with pytest.raises(DocumentNotFoundError):
            ShareService(db).share_with_user(setup["owner"].user_id, "doc-missing", setup["bob"].user_id, ["read"])

    @pytest.mark.parametrize("actions", [[], ["invite"], ["fly"]])
    def test_invalid_actions(self, db, setup, actions):
        with pytest.raises(ValidationError):
            ShareService(db).share_with_user(setup["owner"].user_id, setup["doc"].id, setup["bob"].user_id, actions)

    def test_share_is_audited(self, db, setup):
        ShareService(db).share_with_user(setup["owner"].user_id, setup["doc"].id, setup["bob"].user_id, ["read"])
        entry = db.query(AuditLog).filter(AuditLog.resource_id == setup["doc"].id).one()
        assert entry.action == "share_user"


class TestOrganizationShares:

    def test_members_of_target_org_gain_access(self, db, setup):
        dave = make_user(db, "dave")
        make_membership(db, dave, setup["other_org"], "guest")
        ShareService(db).share_with_organization(
            setup["owner"].user_id, setup["doc"].id, setup["other_org"].id, ["read"]
        )
        assert AccessService(db).can_access_document(dave.user_id, setup["doc"].id, "read")
        assert not AccessService(db).can_access_document(setup["bob"].user_id, setup["doc"].id, "read")

    def test_unshare_organization(self, db, setup):
        svc = ShareService(db)
        svc.share_with_organization(setup["owner"].user_id, setup["doc"].id, setup["other_org"].id, ["read"])
        record = svc.unshare_organization(setup["owner"].user_id, setup["doc"].id, setup["other_org"].id)
        assert record.shared_with_organizations == ()
        assert not AccessService(db).can_access_document(setup["carol"].user_id, setup["doc"].id, "read")

    def test_unknown_organization(self, db, setup):
        with pytest.raises(OrganizationNotFoundError):
            ShareService(db).share_with_organization(
                setup["owner"].user_id, setup["doc"].id, "org-ghost", ["read"]
            )


class TestPublicShare:

    def test_enable_defaults_to_read(self, db, setup):
        record = ShareService(db).set_public_share(setup["owner"].user_id, setup["doc"].id, True)
        assert record.public_share.enabled
        assert record.public_share.actions == {Action.READ}
        assert AccessService(db).can_access_document(setup["bob"].user_id, setup["doc"].id, "read")

    def test_disable(self, db, setup):
        svc = ShareService(db)
        svc.set_public_share(setup["owner"].user_id, setup["doc"].id, True)
        record = svc.set_public_share(setup["owner"].user_id, setup["doc"].id, False)
        assert not record.public_share.enabled
        assert not AccessService(db).can_access_document(setup["bob"].user_id, setup["doc"].id, "read")

    def test_org_admin_may_share_org_document(self, db, setup):
        make_membership(db, setup["bob"], setup["org"], "admin")
        doc = make_document(db, setup["owner"], setup["org"], visibility="organization")
        record = ShareService(db).set_public_share(setup["bob"].user_id, doc.id, True, ["read"])
        assert record.public_share.enabled

    def test_public_share_limited_to_held_actions(self, db, setup):
        svc = ShareService(db)
        svc.share_with_user(setup["owner"].user_id, setup["doc"].id, setup["bob"].user_id, ["share"])
        with pytest.raises(ForbiddenError):
            svc.set_public_share(setup["bob"].user_id, setup["doc"].id, True)
        record = svc.set_public_share(setup["bob"].user_id, setup["doc"].id, False)
        assert record.public_share is None or not record.public_share.enabled


class TestGetShares:

    def test_requires_read(self, db, setup):
        with pytest.raises(ForbiddenError):
            ShareService(db).get_shares(setup["bob"].user_id, setup["doc"].id)

    def test_lists_all_mechanisms(self, db, setup):
        svc = ShareService(db)
        svc.share_with_user(setup["owner"].user_id, setup["doc"].id, setup["bob"].user_id, ["read"])
        svc.share_with_organization(setup["owner"].user_id, setup["doc"].id, setup["other_org"].id, ["read"])
        svc.set_public_share(setup["owner"].user_id, setup["doc"].id, True)
        record = svc.get_shares(setup["bob"].user_id, setup["doc"].id)
        assert len(record.shared_with_users) == 1
        assert len(record.shared_with_organizations) == 1
        assert record.public_share.enabled
