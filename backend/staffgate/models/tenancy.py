from __future__ import annotations

from ..extensions import db
from staffgate.time_utils import to_utc_z

class Venue(db.Model):
    """
    Venue: the tenant-like scoping unit for staff, rosters and approvals.

    WHY: Access between staff members is derived from the venues they share.
    Deactivating a venue (is_active=False) removes every derived access
    without touching membership rows. All resolver queries join on
    Venue.is_active, so an inactive venue never reaches a caller.
    """
    __tablename__ = "venues"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    code = db.Column(db.String(32), nullable=True, unique=True, index=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Venue id={self.id} name={self.name!r} active={self.is_active}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }

class UserVenue(db.Model):
    """
    Membership of a user at a venue.

    A user may belong to zero or more venues. At most one membership per user
    is primary; the partial unique index enforces this at the database level.
    Membership grants access only while the referenced venue is active.
    """
    __tablename__ = "user_venues"
    __table_args__ = (
        db.UniqueConstraint("user_id", "venue_id", name="uq_user_venues_user_venue"),
        db.Index("ix_user_venues_venue", "venue_id"),
        db.Index(
            "uq_user_venues_one_primary",
            "user_id",
            unique=True,
            sqlite_where=db.text("is_primary = 1"),
            postgresql_where=db.text("is_primary"),
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    venue_id = db.Column(db.Integer, db.ForeignKey("venues.id"), nullable=False)
    is_primary = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    user = db.relationship("User", backref=db.backref("venue_memberships", lazy=True))
    venue = db.relationship("Venue", backref=db.backref("memberships", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "venue_id": self.venue_id,
            "is_primary": self.is_primary,
            "created_at": to_utc_z(self.created_at),
        }
