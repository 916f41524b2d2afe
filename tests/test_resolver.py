"""Tests for the document access decision order."""

import pytest

from folio.permissions import (
    AccessContext,
    AccessStep,
    Action,
    DocumentAccessRecord,
    MembershipGrants,
    can_access,
    decide_document_access,
)
from folio.permissions.shares import make_organization_share, make_public_share, make_user_share


def _doc(**overrides) -> DocumentAccessRecord:
    fields = {
        "id": "doc-1",
        "user_id": "owner",
        "organization_id": "org-a",
        "visibility": "organization",
    }
    fields.update(overrides)
    return DocumentAccessRecord(**fields)


def _ctx(user_id: str = "u1", **roles) -> AccessContext:
    """Context with one active membership per keyword: ``org_a="viewer"``."""
    memberships = [
        MembershipGrants(org.replace("_", "-"), role) for org, role in roles.items()
    ]
    return AccessContext.build(user_id, memberships)


class TestOwnership:

    def test_owner_can_do_anything(self):
        ctx = AccessContext.build("owner", [])
        for action in Action:
            assert can_access(_doc(visibility="private"), ctx, action)

    def test_owner_of_personal_document(self):
        decision = decide_document_access(_doc(organization_id=None), AccessContext.build("owner", []), "delete")
        assert decision.allowed
        assert decision.step is AccessStep.OWNER

    def test_ownership_survives_leaving_the_org(self):
        assert can_access(_doc(visibility="private"), AccessContext.build("owner", []), Action.UPDATE)


class TestShares:

    def test_user_share_bypasses_private_visibility(self):
        doc = _doc(visibility="private", shared_with_users=(make_user_share("u1", ["read"]),))
        decision = decide_document_access(doc, _ctx(), Action.READ)
        assert decision.allowed
        assert decision.step is AccessStep.SHARE

    def test_user_share_does_not_grant_other_actions(self):
        doc = _doc(organization_id=None, shared_with_users=(make_user_share("u1", ["read"]),))
        assert not can_access(doc, _ctx(), Action.UPDATE)

    def test_share_on_personal_document(self):
        doc = _doc(organization_id=None, shared_with_users=(make_user_share("u1", ["update"]),))
        assert can_access(doc, _ctx(), Action.UPDATE)

    def test_org_share_for_members_of_target_org(self):
        doc = _doc(shared_with_organizations=(make_organization_share("org-b", ["read"]),))
        assert can_access(doc, _ctx(org_b="guest"), Action.READ)
        assert not can_access(doc, _ctx(org_c="owner"), Action.READ)

    def test_public_share_reaches_strangers(self):
        doc = _doc(visibility="private", public_share=make_public_share(True, ["read"]))
        assert can_access(doc, _ctx(), Action.READ)
        assert not can_access(doc, _ctx(), Action.DELETE)

    def test_disabled_public_share_grants_nothing(self):
        doc = _doc(public_share=make_public_share(False, ["read"]))
        decision = decide_document_access(doc, _ctx(), Action.READ)
        assert decision.step is AccessStep.NOT_A_MEMBER

    def test_manage_share_implies_delete(self):
        doc = _doc(shared_with_users=(make_user_share("u1", ["manage"]),))
        assert can_access(doc, _ctx(), Action.DELETE)

    def test_share_adds_to_role(self):
        doc = _doc(shared_with_users=(make_user_share("u1", ["update"]),))
        ctx = _ctx(org_a="viewer")
        assert can_access(doc, ctx, Action.UPDATE)
        assert can_access(doc, ctx, Action.READ)

    def test_legacy_shared_with_grants_read(self):
        doc = _doc(visibility="private", shared_with=("u1",))
        assert can_access(doc, _ctx(), Action.READ)
        assert not can_access(doc, _ctx(), Action.UPDATE)


class TestOrganizationRules:

    def test_personal_document_denied_to_others(self):
        decision = decide_document_access(_doc(organization_id=None), _ctx(org_a="owner"), Action.READ)
        assert not decision.allowed
        assert decision.step is AccessStep.PERSONAL_DOCUMENT

    def test_non_member_denied(self):
        decision = decide_document_access(_doc(), _ctx(org_b="owner"), Action.READ)
        assert decision.step is AccessStep.NOT_A_MEMBER

    def test_private_document_hidden_from_org_owner(self):
        decision = decide_document_access(_doc(visibility="private"), _ctx(org_a="owner"), Action.READ)
        assert not decision.allowed
        assert decision.step is AccessStep.PRIVATE

    def test_guest_denied_even_with_read_default(self):
        decision = decide_document_access(_doc(), _ctx(org_a="guest"), Action.READ)
        assert decision.step is AccessStep.GUEST

    def test_guest_with_share_allowed(self):
        doc = _doc(shared_with_users=(make_user_share("u1", ["read"]),))
        assert can_access(doc, _ctx(org_a="guest"), Action.READ)

    @pytest.mark.parametrize("visibility", ["organization", "public"])
    def test_member_reads_non_private_documents(self, visibility):
        decision = decide_document_access(_doc(visibility=visibility), _ctx(org_a="member"), Action.READ)
        assert decision.allowed
        assert decision.step is AccessStep.ROLE

    def test_member_cannot_update_others_documents(self):
        decision = decide_document_access(_doc(), _ctx(org_a="member"), Action.UPDATE)
        assert not decision.allowed
        assert decision.step is AccessStep.NO_GRANT

    def test_editor_updates_org_documents(self):
        assert can_access(_doc(), _ctx(org_a="editor"), Action.UPDATE)

    def test_admin_manage_implies_share(self):
        assert can_access(_doc(), _ctx(org_a="admin"), Action.SHARE)

    def test_custom_permissions_apply_to_documents(self):
        ctx = AccessContext.build(
            "u1",
            [MembershipGrants("org-a", "viewer", custom_permissions=[{"resource": "document", "actions": ["update"]}])],
        )
        assert can_access(_doc(), ctx, Action.UPDATE)

    def test_role_in_other_org_does_not_apply(self):
        assert not can_access(_doc(), _ctx(org_a="viewer", org_b="owner"), Action.UPDATE)

    def test_suspended_membership_is_not_membership(self):
        ctx = AccessContext.build("u1", [MembershipGrants("org-a", "owner", status="suspended")])
        assert decide_document_access(_doc(), ctx, Action.READ).step is AccessStep.NOT_A_MEMBER


class TestContext:

    def test_organization_ids_only_active(self):
        ctx = AccessContext.build(
            "u1",
            [MembershipGrants("org-a", "viewer"), MembershipGrants("org-b", "viewer", status="pending")],
        )
        assert ctx.organization_ids == {"org-a"}

    def test_unknown_action_rejected(self):
        with pytest.raises(ValueError):
            can_access(_doc(), _ctx(), "fly")

    def test_decision_is_truthy(self):
        assert decide_document_access(_doc(), AccessContext.build("owner", []), Action.READ)
        assert not decide_document_access(_doc(), _ctx(), Action.READ)


class TestCombinedGrants:

    def test_org_shares_union_across_memberships(self):
        doc = _doc(
            organization_id="org-x",
            shared_with_organizations=(
                make_organization_share("org-a", ["read"]),
                make_organization_share("org-b", ["update"]),
            ),
        )
        assert not can_access(doc, _ctx(org_a="viewer"), Action.UPDATE)
        assert can_access(doc, _ctx(org_a="viewer", org_b="viewer"), Action.UPDATE)

    def test_custom_create_does_not_broaden_to_delete(self):
        ctx = AccessContext.build(
            "u1",
            [MembershipGrants("org-a", "viewer", custom_permissions=[{"resource": "document", "actions": ["create"]}])],
        )
        assert can_access(_doc(), ctx, Action.CREATE)
        assert not can_access(_doc(), ctx, Action.DELETE)

    def test_public_share_ignores_membership_and_visibility(self):
        doc = _doc(visibility="private", public_share=make_public_share(True, ["read"]))
        assert can_access(doc, _ctx(org_b="guest"), Action.READ)
