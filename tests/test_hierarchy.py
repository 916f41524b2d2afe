"""Tests for the role hierarchy guard."""

from dataclasses import dataclass

import pytest

from folio.exceptions import ForbiddenError
from folio.permissions import (
    Role,
    assert_assignable_role,
    assert_member_removal_allowed,
    assert_permission_override_allowed,
    assert_role_change_allowed,
)


@dataclass
class _Member:
    user_id: str
    role: str
    organization_id: str = "org-a"
    status: str = "active"


class TestRoleChange:

    def test_admin_promotes_viewer_to_editor(self):
        assert_role_change_allowed(_Member("a", "admin"), _Member("t", "viewer"), "editor")

    def test_cannot_modify_self(self):
        actor = _Member("a", "admin")
        with pytest.raises(ForbiddenError, match="your own membership"):
            assert_role_change_allowed(actor, _Member("a", "admin"), "viewer")

    def test_cannot_modify_owner(self):
        with pytest.raises(ForbiddenError, match="Cannot modify the owner"):
            assert_role_change_allowed(_Member("a", "admin"), _Member("o", "owner"), "viewer")

    def test_cannot_modify_equal_rank(self):
        with pytest.raises(ForbiddenError, match="equal or higher rank"):
            assert_role_change_allowed(_Member("a", "admin"), _Member("t", "admin"), "viewer")

    def test_cannot_modify_higher_rank(self):
        with pytest.raises(ForbiddenError, match="equal or higher rank"):
            assert_role_change_allowed(_Member("a", "editor"), _Member("t", "admin"), "viewer")

    def test_cannot_promote_to_own_rank(self):
        with pytest.raises(ForbiddenError, match="equal to or higher than your own"):
            assert_role_change_allowed(_Member("a", "admin"), _Member("t", "viewer"), "admin")

    def test_owner_role_never_assignable(self):
        with pytest.raises(ForbiddenError, match="owner role cannot be assigned"):
            assert_role_change_allowed(_Member("a", "owner"), _Member("t", "admin"), "owner")

    def test_owner_may_promote_to_admin(self):
        assert_role_change_allowed(_Member("a", "owner"), _Member("t", "member"), "admin")

    def test_actor_must_be_active_member(self):
        with pytest.raises(ForbiddenError, match="Not a member"):
            assert_role_change_allowed(None, _Member("t", "viewer"), "guest")
        with pytest.raises(ForbiddenError, match="Not a member"):
            assert_role_change_allowed(_Member("a", "owner", status="suspended"), _Member("t", "viewer"), "guest")

    def test_actor_from_other_org_rejected(self):
        with pytest.raises(ForbiddenError, match="Not a member"):
            assert_role_change_allowed(
                _Member("a", "owner", organization_id="org-b"), _Member("t", "viewer"), "guest"
            )

    def test_unknown_new_role_rejected(self):
        with pytest.raises(ValueError):
            assert_role_change_allowed(_Member("a", "owner"), _Member("t", "viewer"), "emperor")

    def test_denial_carries_details(self):
        with pytest.raises(ForbiddenError) as exc_info:
            assert_role_change_allowed(_Member("a", "editor"), _Member("t", "editor"), "viewer")
        assert exc_info.value.details["target_role"] == "editor"
        assert exc_info.value.status_code == 403


class TestRemoval:

    def test_admin_removes_member(self):
        assert_member_removal_allowed(_Member("a", "admin"), _Member("t", "member"))

    def test_cannot_remove_owner(self):
        with pytest.raises(ForbiddenError):
            assert_member_removal_allowed(_Member("a", "admin"), _Member("o", "owner"))

    def test_cannot_remove_peer(self):
        with pytest.raises(ForbiddenError):
            assert_member_removal_allowed(_Member("a", "editor"), _Member("t", "editor"))

    def test_cannot_remove_self(self):
        with pytest.raises(ForbiddenError):
            assert_member_removal_allowed(_Member("a", "admin"), _Member("a", "admin"))


class TestPermissionOverride:

    def test_owner_edits_admin(self):
        assert_permission_override_allowed(_Member("o", "owner"), _Member("t", "admin"))

    def test_cannot_edit_self(self):
        with pytest.raises(ForbiddenError, match="your own membership"):
            assert_permission_override_allowed(_Member("a", "admin"), _Member("a", "admin"))

    def test_cannot_edit_peer(self):
        with pytest.raises(ForbiddenError, match="equal or higher rank"):
            assert_permission_override_allowed(_Member("a", "admin"), _Member("t", "admin"))


class TestAssignableRole:

    def test_returns_parsed_role(self):
        assert assert_assignable_role("admin", "viewer") is Role.VIEWER

    def test_editor_cannot_hand_out_editor(self):
        with pytest.raises(ForbiddenError):
            assert_assignable_role("editor", "editor")

    def test_admin_cannot_make_admin_owner(self):
        with pytest.raises(ForbiddenError):
            assert_role_change_allowed(_Member("a", "admin"), _Member("t", "admin"), "owner")

    def test_admin_cannot_demote_owner(self):
        with pytest.raises(ForbiddenError):
            assert_role_change_allowed(_Member("a", "admin"), _Member("o", "owner"), "viewer")
