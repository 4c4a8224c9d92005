from __future__ import annotations

from sqlalchemy.orm import validates

from ..extensions import db
from staffgate.time_utils import to_utc_z

class User(db.Model):
    """
    Staff account used for attribution and access decisions.

    Users are soft-deactivated (is_active=False), never deleted. An inactive
    user fails every permission check regardless of role.

    time_off_revision is bumped by every time-off submission. The bump is the
    first write of the submission transaction, so it holds the owner's row
    lock while the overlap check runs.
    """
    __tablename__ = "users"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), nullable=False, unique=True, index=True)
    email = db.Column(db.String(255), nullable=False)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    # Single role reference (nullable: a user without a role has zero grants)
    role_id = db.Column(db.Integer, db.ForeignKey("roles.id"), nullable=True, index=True)

    time_off_revision = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    role = db.relationship("Role", backref=db.backref("users", lazy=True))

    def __repr__(self) -> str:
        return f"<User id={self.id} username={self.username!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "is_active": self.is_active,
            "role_id": self.role_id,
            "role": self.role.name if self.role else None,
            "created_at": to_utc_z(self.created_at),
        }


class Role(db.Model):
    """
    Named bundle of permission grants (ADMIN, MANAGER, STAFF).

    Role names are referenced by audit history, so a persisted role can never
    be renamed.
    """
    __tablename__ = "roles"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(64), nullable=False, unique=True)
    description = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    @validates("name")
    def _validate_name(self, key, value):
        if self.id is not None and self.name is not None and value != self.name:
            raise ValueError("Role names are immutable once persisted")
        return value

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "created_at": to_utc_z(self.created_at),
        }


class Permission(db.Model):
    """
    Catalogue entry for a (resource, action) capability.

    DESIGN: Permissions are identified by "resource:action" codes
    (e.g. "timeoff:approve"). The evaluator never reads this table per check;
    it is the persisted source for PERMISSION_MATRIX_SOURCE="database".
    """
    __tablename__ = "permissions"
    __table_args__ = (
        db.UniqueConstraint("resource", "action", name="uq_permissions_resource_action"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    resource = db.Column(db.String(64), nullable=False, index=True)
    action = db.Column(db.String(64), nullable=False)
    description = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    @property
    def code(self) -> str:
        return f"{self.resource}:{self.action}"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "resource": self.resource,
            "action": self.action,
            "description": self.description,
        }


class RolePermission(db.Model):
    """
    Role-Permission association with a scope.

    scope GLOBAL applies everywhere; scope VENUE applies only when evaluated
    against a venue where the grantee holds an active membership.
    """
    __tablename__ = "role_permissions"
    __table_args__ = (
        db.UniqueConstraint("role_id", "permission_id", name="uq_role_permissions"),
        db.CheckConstraint("scope IN ('GLOBAL', 'VENUE')", name="ck_role_permissions_scope"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    role_id = db.Column(db.Integer, db.ForeignKey("roles.id"), nullable=False, index=True)
    permission_id = db.Column(db.Integer, db.ForeignKey("permissions.id"), nullable=False, index=True)
    scope = db.Column(db.String(16), nullable=False, default="GLOBAL")

    granted_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    role = db.relationship("Role", backref=db.backref("role_permissions", lazy=True))
    permission = db.relationship("Permission", backref=db.backref("role_permissions", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "role_id": self.role_id,
            "permission_id": self.permission_id,
            "scope": self.scope,
            "granted_at": to_utc_z(self.granted_at),
        }


class UserVenuePermission(db.Model):
    """
    Per-user grant of a capability at one venue.

    WHY: Lets a staff member approve time off at a single venue without
    promoting their role. Honoured only while the user holds an active
    membership at that (active) venue.
    """
    __tablename__ = "user_venue_permissions"
    __table_args__ = (
        db.UniqueConstraint("user_id", "venue_id", "permission_id", name="uq_user_venue_permissions"),
        db.Index("ix_user_venue_permissions_user_venue", "user_id", "venue_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    venue_id = db.Column(db.Integer, db.ForeignKey("venues.id"), nullable=False, index=True)
    permission_id = db.Column(db.Integer, db.ForeignKey("permissions.id"), nullable=False)
    granted_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    granted_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    user = db.relationship("User", foreign_keys=[user_id], backref=db.backref("venue_permissions", lazy=True))
    venue = db.relationship("Venue")
    permission = db.relationship("Permission")
    granted_by = db.relationship("User", foreign_keys=[granted_by_user_id])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "venue_id": self.venue_id,
            "permission_id": self.permission_id,
            "granted_by_user_id": self.granted_by_user_id,
            "granted_at": to_utc_z(self.granted_at),
        }
