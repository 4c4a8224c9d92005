# Overview: Service-layer operations for permission; evaluates role and venue scoped grants.

"""
Permission Evaluator

WHY: Every mutating entry point (time-off review, rostering, availability)
asks the same two questions: does this user's role carry a capability, and
does it carry it at this venue.

DESIGN PRINCIPLES:
- Fail closed: deny by default; inactive users fail every check
- A user without a role has zero grants (not an error)
- Grants come from an immutable PermissionMatrix resolved once per process
  and passed in by reference; nothing mutates it at runtime
- Boolean checks for conditional logic, require_* variants for entry points
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..errors import ForbiddenError, UnauthorizedError
from ..models import User, Role, Permission, RolePermission, UserVenuePermission
from ..permissions import (
    DEFAULT_ROLES,
    DEFAULT_ROLE_GRANTS,
    PERMISSION_DEFINITIONS,
    ROLE_ADMIN,
    ROLE_MANAGER,
    WILDCARD,
    Grant,
    PermissionMatrix,
    permission_code,
    split_permission_code,
    validate_permission_code,
)
from . import venue_service


MATRIX_EXTENSION_KEY = "staffgate.permission_matrix"


class PermissionEvaluator:
    """
    Resolves capabilities against a fixed PermissionMatrix.

    The evaluator holds no per-request state; one instance is shared by the
    whole process.
    """

    def __init__(self, matrix: PermissionMatrix):
        self.matrix = matrix

    # -- internals --

    def _active_user(self, user_id: int | None) -> User | None:
        if user_id is None:
            return None
        user = db.session.query(User).filter_by(id=user_id).first()
        if not user or not user.is_active:
            return None
        return user

    @staticmethod
    def _role_name(user: User) -> str | None:
        return user.role.name if user.role else None

    def _has_user_venue_grant(self, user_id: int, resource: str, action: str, venue_id: int) -> bool:
        row = (
            db.session.query(UserVenuePermission.id)
            .join(Permission, Permission.id == UserVenuePermission.permission_id)
            .filter(
                UserVenuePermission.user_id == user_id,
                UserVenuePermission.venue_id == venue_id,
                Permission.resource.in_([resource, WILDCARD]),
                Permission.action.in_([action, WILDCARD]),
            )
            .first()
        )
        return row is not None

    # -- boolean checks --

    def has_permission(self, user_id: int | None, resource: str, action: str) -> bool:
        """True iff the user's role carries (resource, action), in any scope."""
        user = self._active_user(user_id)
        if not user:
            return False
        return bool(self.matrix.matching_grants(self._role_name(user), resource, action))

    def has_venue_permission(self, user_id: int | None, resource: str, action: str, venue_id: int | None) -> bool:
        """
        True iff the grant holds at venue_id.

        A GLOBAL role grant holds everywhere. A VENUE role grant, or a per-user
        venue grant, holds only with an active membership at venue_id.
        """
        user = self._active_user(user_id)
        if not user:
            return False

        grants = self.matrix.matching_grants(self._role_name(user), resource, action)
        if any(grant.is_global for grant in grants):
            return True

        if venue_id is None or not venue_service.can_access_venue(user.id, venue_id):
            return False

        if grants:
            return True

        return self._has_user_venue_grant(user.id, resource, action, venue_id)

    def has_all_permissions(self, user_id: int | None, permissions: list[tuple[str, str]]) -> bool:
        return all(self.has_permission(user_id, resource, action) for resource, action in permissions)

    def has_any_permission(self, user_id: int | None, permissions: list[tuple[str, str]]) -> bool:
        return any(self.has_permission(user_id, resource, action) for resource, action in permissions)

    def is_admin(self, user_id: int | None) -> bool:
        user = self._active_user(user_id)
        return bool(user and self._role_name(user) == ROLE_ADMIN)

    def is_manager(self, user_id: int | None) -> bool:
        user = self._active_user(user_id)
        return bool(user and self._role_name(user) == ROLE_MANAGER)

    def effective_permissions(self, user_id: int | None, venue_id: int | None = None) -> list[str]:
        """
        Sorted permission codes the user holds.

        Without venue_id: every role grant. With venue_id: GLOBAL role grants,
        plus VENUE role grants and per-user venue grants when the user has an
        active membership there.
        """
        user = self._active_user(user_id)
        if not user:
            return []

        grants = self.matrix.grants_for(self._role_name(user))
        if venue_id is None:
            return sorted({grant.code for grant in grants})

        codes = {grant.code for grant in grants if grant.is_global}
        if venue_service.can_access_venue(user.id, venue_id):
            codes.update(grant.code for grant in grants if not grant.is_global)
            rows = (
                db.session.query(Permission.resource, Permission.action)
                .join(UserVenuePermission, UserVenuePermission.permission_id == Permission.id)
                .filter(
                    UserVenuePermission.user_id == user.id,
                    UserVenuePermission.venue_id == venue_id,
                )
                .all()
            )
            codes.update(permission_code(resource, action) for resource, action in rows)
        return sorted(codes)

    # -- fail-closed entry point variants --

    def _require_known_user(self, user_id: int | None) -> None:
        if user_id is None or not db.session.query(User.id).filter_by(id=user_id).first():
            raise UnauthorizedError()

    def require_permission(self, user_id: int | None, resource: str, action: str) -> None:
        self._require_known_user(user_id)
        if not self.has_permission(user_id, resource, action):
            current_app.logger.info(
                "Permission denied: user=%s permission=%s:%s", user_id, resource, action
            )
            raise ForbiddenError(f"Permission denied: {resource}:{action}")

    def require_venue_permission(self, user_id: int | None, resource: str, action: str, venue_id: int | None) -> None:
        self._require_known_user(user_id)
        if not self.has_venue_permission(user_id, resource, action, venue_id):
            current_app.logger.info(
                "Venue permission denied: user=%s permission=%s:%s venue=%s",
                user_id, resource, action, venue_id,
            )
            raise ForbiddenError(f"Permission denied: {resource}:{action} at venue {venue_id}")


def get_permission_matrix() -> PermissionMatrix:
    return current_app.extensions[MATRIX_EXTENSION_KEY]


def get_evaluator() -> PermissionEvaluator:
    return PermissionEvaluator(get_permission_matrix())


def load_matrix_from_db() -> PermissionMatrix:
    """Build the matrix from the roles / role_permissions tables."""
    rows = (
        db.session.query(Role.name, Permission.resource, Permission.action, RolePermission.scope)
        .join(RolePermission, RolePermission.role_id == Role.id)
        .join(Permission, Permission.id == RolePermission.permission_id)
        .all()
    )
    role_grants: dict[str, list[Grant]] = {name: [] for (name,) in db.session.query(Role.name).all()}
    for role_name, resource, action, scope in rows:
        role_grants.setdefault(role_name, []).append(Grant(resource, action, scope))
    return PermissionMatrix(role_grants)


# -- seeding --

def create_default_roles() -> int:
    """Create ADMIN, MANAGER and STAFF if missing. Returns number created."""
    created = 0
    for name, description in DEFAULT_ROLES.items():
        if db.session.query(Role).filter_by(name=name).first():
            continue
        db.session.add(Role(name=name, description=description))
        created += 1
    db.session.commit()
    return created


def _get_or_create_permission(resource: str, action: str, description: str | None = None) -> tuple[Permission, bool]:
    permission = db.session.query(Permission).filter_by(resource=resource, action=action).first()
    if permission:
        return permission, False
    permission = Permission(resource=resource, action=action, description=description)
    db.session.add(permission)
    db.session.flush()
    return permission, True


def initialize_permissions() -> int:
    """Insert the permission catalogue. Idempotent; returns number created."""
    created = 0
    for resource, action, description in PERMISSION_DEFINITIONS:
        _, was_created = _get_or_create_permission(resource, action, description)
        created += int(was_created)
    db.session.commit()
    return created


def assign_default_role_permissions() -> int:
    """Persist DEFAULT_ROLE_GRANTS. Idempotent; returns number of new grants."""
    assigned = 0
    for role_name, grants in DEFAULT_ROLE_GRANTS.items():
        role = db.session.query(Role).filter_by(name=role_name).first()
        if not role:
            continue
        for resource, action, scope in grants:
            description = "All capabilities" if (resource, action) == (WILDCARD, WILDCARD) else None
            permission, _ = _get_or_create_permission(resource, action, description)
            existing = db.session.query(RolePermission).filter_by(
                role_id=role.id, permission_id=permission.id
            ).first()
            if existing:
                continue
            db.session.add(RolePermission(role_id=role.id, permission_id=permission.id, scope=scope))
            assigned += 1
    db.session.commit()
    return assigned


def assign_role(user_id: int, role_name: str) -> User:
    user = db.session.query(User).filter_by(id=user_id).first()
    if not user:
        raise ValueError("User not found")
    role = db.session.query(Role).filter_by(name=role_name).first()
    if not role:
        raise ValueError(f"Role {role_name} not found")
    user.role_id = role.id
    db.session.commit()
    return user


def grant_venue_permission(
    *,
    user_id: int,
    venue_id: int,
    code: str,
    granted_by_user_id: int | None = None,
) -> UserVenuePermission:
    """Grant a single capability to a user at one venue."""
    if not validate_permission_code(code):
        raise ValueError(f"Unknown permission: {code}")
    resource, action = split_permission_code(code)
    permission = db.session.query(Permission).filter_by(resource=resource, action=action).first()
    if not permission:
        raise ValueError(f"Unknown permission: {code}")

    existing = db.session.query(UserVenuePermission).filter_by(
        user_id=user_id, venue_id=venue_id, permission_id=permission.id
    ).first()
    if existing:
        return existing

    grant = UserVenuePermission(
        user_id=user_id,
        venue_id=venue_id,
        permission_id=permission.id,
        granted_by_user_id=granted_by_user_id,
    )
    db.session.add(grant)
    db.session.commit()
    return grant


def revoke_venue_permission(*, user_id: int, venue_id: int, code: str) -> bool:
    resource, action = split_permission_code(code)
    grant = (
        db.session.query(UserVenuePermission)
        .join(Permission, Permission.id == UserVenuePermission.permission_id)
        .filter(
            UserVenuePermission.user_id == user_id,
            UserVenuePermission.venue_id == venue_id,
            Permission.resource == resource,
            Permission.action == action,
        )
        .first()
    )
    if not grant:
        return False
    db.session.delete(grant)
    db.session.commit()
    return True
