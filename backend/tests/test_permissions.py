"""
Permission evaluator tests.

Verifies:
- Role grants (GLOBAL / VENUE scope) and wildcard matching
- Venue-scoped checks require an active membership at an active venue
- Per-user venue grants
- Inactive and role-less users hold nothing
- require_* variants fail closed
- The matrix is immutable and round-trips through the database
"""

from dataclasses import FrozenInstanceError

import pytest

from staffgate.errors import ForbiddenError, UnauthorizedError
from staffgate.models import Role, UserVenuePermission
from staffgate.permissions import (
    DEFAULT_ROLE_GRANTS,
    Grant,
    GrantScope,
    PermissionMatrix,
    ROLE_ADMIN,
    ROLE_MANAGER,
    ROLE_STAFF,
    build_default_matrix,
    split_permission_code,
    validate_permission_code,
)
from staffgate.services import permission_service


@pytest.fixture
def evaluator(app):
    return permission_service.get_evaluator()


# =============================================================================
# ROLE GRANTS
# =============================================================================


class TestRoleGrants:

    def test_staff_self_service_only(self, evaluator, staff_x):
        assert evaluator.has_permission(staff_x.id, "timeoff", "create")
        assert evaluator.has_permission(staff_x.id, "timeoff", "view_own")
        assert not evaluator.has_permission(staff_x.id, "timeoff", "approve")

    def test_manager_venue_grant_counts_in_any_scope(self, evaluator, manager_a):
        assert evaluator.has_permission(manager_a.id, "timeoff", "approve")

    def test_manager_venue_grant_limited_to_memberships(self, evaluator, manager_a, venue_a, venue_b):
        assert evaluator.has_venue_permission(manager_a.id, "timeoff", "approve", venue_a.id)
        assert not evaluator.has_venue_permission(manager_a.id, "timeoff", "approve", venue_b.id)

    def test_manager_grant_ignored_at_inactive_venue(self, evaluator, make_user, venue_a, venue_c):
        manager = make_user("mgr_ac", role=ROLE_MANAGER, venues=[venue_a, venue_c], primary=venue_a)
        assert not evaluator.has_venue_permission(manager.id, "timeoff", "approve", venue_c.id)

    def test_staff_global_grant_holds_at_any_venue(self, evaluator, staff_x, venue_b):
        assert evaluator.has_venue_permission(staff_x.id, "timeoff", "create", venue_b.id)

    def test_admin_wildcard(self, evaluator, admin_user, venue_b):
        assert evaluator.has_permission(admin_user.id, "timeoff", "approve")
        assert evaluator.has_permission(admin_user.id, "reports", "anything")
        assert evaluator.has_venue_permission(admin_user.id, "timeoff", "approve", venue_b.id)
        assert evaluator.is_admin(admin_user.id)
        assert not evaluator.is_manager(admin_user.id)

    def test_is_manager(self, evaluator, manager_a, staff_x):
        assert evaluator.is_manager(manager_a.id)
        assert not evaluator.is_manager(staff_x.id)

    def test_has_all_and_any(self, evaluator, staff_x):
        assert evaluator.has_all_permissions(staff_x.id, [("timeoff", "create"), ("timeoff", "view_own")])
        assert not evaluator.has_all_permissions(staff_x.id, [("timeoff", "create"), ("timeoff", "approve")])
        assert evaluator.has_any_permission(staff_x.id, [("timeoff", "approve"), ("timeoff", "create")])
        assert not evaluator.has_any_permission(staff_x.id, [("timeoff", "approve"), ("users", "edit_team")])


# =============================================================================
# INACTIVE / ROLE-LESS USERS
# =============================================================================


class TestFailClosed:

    def test_inactive_user_fails_every_check(self, evaluator, make_user, venue_a):
        user = make_user("retired", role=ROLE_ADMIN, venues=[venue_a], is_active=False)
        assert not evaluator.has_permission(user.id, "timeoff", "create")
        assert not evaluator.has_venue_permission(user.id, "timeoff", "approve", venue_a.id)
        assert not evaluator.is_admin(user.id)
        assert evaluator.effective_permissions(user.id) == []

    def test_roleless_user_has_zero_grants(self, evaluator, make_user, venue_a):
        user = make_user("nobody", role=None, venues=[venue_a])
        assert not evaluator.has_permission(user.id, "timeoff", "create")
        assert evaluator.effective_permissions(user.id) == []
        assert evaluator.effective_permissions(user.id, venue_a.id) == []

    def test_unknown_user(self, evaluator, db_session):
        assert not evaluator.has_permission(999_999, "timeoff", "create")
        assert not evaluator.has_permission(None, "timeoff", "create")

    def test_require_permission_unknown_user_is_unauthorized(self, evaluator, db_session):
        with pytest.raises(UnauthorizedError):
            evaluator.require_permission(999_999, "timeoff", "create")

    def test_require_permission_denied_is_forbidden(self, evaluator, staff_x):
        with pytest.raises(ForbiddenError) as exc_info:
            evaluator.require_permission(staff_x.id, "timeoff", "approve")
        assert "timeoff:approve" in exc_info.value.message

    def test_require_venue_permission(self, evaluator, manager_a, venue_a, venue_b):
        evaluator.require_venue_permission(manager_a.id, "timeoff", "approve", venue_a.id)
        with pytest.raises(ForbiddenError):
            evaluator.require_venue_permission(manager_a.id, "timeoff", "approve", venue_b.id)


# =============================================================================
# PER-USER VENUE GRANTS
# =============================================================================


class TestUserVenueGrants:

    def test_grant_enables_venue_check(self, evaluator, staff_x, manager_a, venue_a):
        permission_service.grant_venue_permission(
            user_id=staff_x.id, venue_id=venue_a.id, code="timeoff:approve", granted_by_user_id=manager_a.id
        )
        assert evaluator.has_venue_permission(staff_x.id, "timeoff", "approve", venue_a.id)
        assert "timeoff:approve" in evaluator.effective_permissions(staff_x.id, venue_a.id)

    def test_grant_ignored_for_inactive_venue(self, evaluator, make_user, venue_a, venue_c):
        user = make_user("c_staff", venues=[venue_a, venue_c])
        permission_service.grant_venue_permission(user_id=user.id, venue_id=venue_c.id, code="timeoff:approve")
        assert not evaluator.has_venue_permission(user.id, "timeoff", "approve", venue_c.id)

    def test_grant_ignored_without_membership(self, evaluator, staff_x, venue_b):
        permission_service.grant_venue_permission(user_id=staff_x.id, venue_id=venue_b.id, code="timeoff:approve")
        assert not evaluator.has_venue_permission(staff_x.id, "timeoff", "approve", venue_b.id)

    def test_revoke(self, evaluator, staff_x, venue_a):
        permission_service.grant_venue_permission(user_id=staff_x.id, venue_id=venue_a.id, code="timeoff:approve")
        assert permission_service.revoke_venue_permission(user_id=staff_x.id, venue_id=venue_a.id, code="timeoff:approve")
        assert not evaluator.has_venue_permission(staff_x.id, "timeoff", "approve", venue_a.id)

    def test_unknown_code_rejected(self, staff_x, venue_a):
        with pytest.raises(ValueError):
            permission_service.grant_venue_permission(user_id=staff_x.id, venue_id=venue_a.id, code="timeoff:fly")

    @pytest.mark.parametrize("code", ["timeoff", "", None, 42, "timeoff:approve:extra"])
    def test_malformed_code_rejected(self, db_session, staff_x, venue_a, code):
        with pytest.raises(ValueError, match="Unknown permission"):
            permission_service.grant_venue_permission(user_id=staff_x.id, venue_id=venue_a.id, code=code)
        assert db_session.query(UserVenuePermission).count() == 0


# =============================================================================
# EFFECTIVE PERMISSIONS
# =============================================================================


class TestEffectivePermissions:

    def test_manager_outside_venue_keeps_global_grants_only(self, evaluator, manager_a, venue_b):
        codes = evaluator.effective_permissions(manager_a.id, venue_b.id)
        assert "timeoff:create" in codes
        assert "timeoff:approve" not in codes

    def test_manager_at_own_venue(self, evaluator, manager_a, venue_a):
        codes = evaluator.effective_permissions(manager_a.id, venue_a.id)
        assert "timeoff:approve" in codes
        assert codes == sorted(codes)

    def test_admin_reports_wildcard(self, evaluator, admin_user):
        assert evaluator.effective_permissions(admin_user.id) == ["*:*"]


# =============================================================================
# MATRIX
# =============================================================================


class TestPermissionMatrix:

    def test_matrix_is_read_only(self):
        matrix = build_default_matrix()
        with pytest.raises(TypeError):
            matrix.role_grants["HACKER"] = frozenset()
        with pytest.raises(FrozenInstanceError):
            matrix.role_grants = {}

    def test_grant_is_frozen_and_validated(self):
        grant = Grant("timeoff", "approve", GrantScope.VENUE)
        with pytest.raises(FrozenInstanceError):
            grant.scope = GrantScope.GLOBAL
        with pytest.raises(ValueError):
            Grant("timeoff", "approve", "PLANET")

    def test_wildcard_matching(self):
        assert Grant("*", "*").matches("timeoff", "approve")
        assert Grant("timeoff", "*").matches("timeoff", "approve")
        assert not Grant("timeoff", "*").matches("users", "approve")

    def test_unknown_role_has_no_grants(self):
        matrix = build_default_matrix()
        assert matrix.grants_for("GHOST") == frozenset()
        assert matrix.grants_for(None) == frozenset()

    def test_evaluator_uses_injected_matrix(self, staff_x):
        matrix = PermissionMatrix.from_tuples({ROLE_STAFF: [("timeoff", "approve", GrantScope.GLOBAL)]})
        evaluator = permission_service.PermissionEvaluator(matrix)
        assert evaluator.has_permission(staff_x.id, "timeoff", "approve")
        assert not evaluator.has_permission(staff_x.id, "timeoff", "create")

    def test_database_matrix_matches_definitions(self, setup_roles):
        loaded = permission_service.load_matrix_from_db()
        expected = build_default_matrix()
        for role_name in DEFAULT_ROLE_GRANTS:
            assert loaded.grants_for(role_name) == expected.grants_for(role_name)


# =============================================================================
# SEEDING / CATALOGUE
# =============================================================================


class TestSeeding:

    def test_seeding_is_idempotent(self, setup_roles):
        assert permission_service.create_default_roles() == 0
        assert permission_service.initialize_permissions() == 0
        assert permission_service.assign_default_role_permissions() == 0

    def test_role_names_are_immutable(self, db_session, setup_roles):
        role = db_session.query(Role).filter_by(name=ROLE_MANAGER).first()
        with pytest.raises(ValueError):
            role.name = "BOSS"

    def test_assign_role(self, evaluator, make_user):
        user = make_user("promoted")
        permission_service.assign_role(user.id, ROLE_ADMIN)
        assert evaluator.is_admin(user.id)

    def test_permission_codes(self):
        assert split_permission_code("timeoff:approve") == ("timeoff", "approve")
        assert validate_permission_code("timeoff:approve")
        assert not validate_permission_code("timeoff:fly")
        with pytest.raises(ValueError):
            split_permission_code("timeoff")
