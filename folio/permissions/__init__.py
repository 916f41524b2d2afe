"""Authorization engine: catalog, abilities, document shares, access resolution, role hierarchy.

Pure functions over already-loaded data. Loading memberships and documents
is the job of ``folio.services.access_service``.

Usage:
    from folio.permissions import AccessContext, can_access

    context = AccessContext.build(user_id, memberships)
    if can_access(record, context, Action.UPDATE):
        ...
"""

from .ability import (
    Ability,
    Grant,
    MembershipGrants,
    ResourceContext,
    ScopeKind,
    build_ability,
    define_public_ability,
    get_organization_permissions,
    resolve_organization_permissions,
)
from .catalog import (
    Action,
    MembershipStatus,
    PermissionEntry,
    ResourceType,
    Role,
    Visibility,
    default_grants,
    expand_grant,
    rank,
)
from .hierarchy import (
    assert_assignable_role,
    assert_member_removal_allowed,
    assert_permission_override_allowed,
    assert_role_change_allowed,
)
from .resolver import (
    AccessContext,
    AccessDecision,
    AccessStep,
    can_access,
    decide_document_access,
    filter_by_access,
)
from .shares import (
    DocumentAccessRecord,
    OrganizationShare,
    PublicShare,
    SharePermissions,
    UserShare,
    compute_share_permissions,
    from_org_share,
    from_public_share,
    from_user_share,
)

__all__ = [
    "Ability",
    "AccessContext",
    "AccessDecision",
    "AccessStep",
    "Action",
    "DocumentAccessRecord",
    "Grant",
    "MembershipGrants",
    "MembershipStatus",
    "OrganizationShare",
    "PermissionEntry",
    "PublicShare",
    "ResourceContext",
    "ResourceType",
    "Role",
    "ScopeKind",
    "SharePermissions",
    "UserShare",
    "Visibility",
    "assert_assignable_role",
    "assert_member_removal_allowed",
    "assert_permission_override_allowed",
    "assert_role_change_allowed",
    "build_ability",
    "can_access",
    "compute_share_permissions",
    "decide_document_access",
    "default_grants",
    "define_public_ability",
    "expand_grant",
    "filter_by_access",
    "from_org_share",
    "from_public_share",
    "from_user_share",
    "get_organization_permissions",
    "rank",
    "resolve_organization_permissions",
]
