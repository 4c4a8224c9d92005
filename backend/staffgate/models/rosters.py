from __future__ import annotations

from ..extensions import db
from staffgate.time_utils import to_utc_z, to_iso_date


ROSTER_DRAFT = "DRAFT"
ROSTER_PENDING_REVIEW = "PENDING_REVIEW"
ROSTER_APPROVED = "APPROVED"
ROSTER_PUBLISHED = "PUBLISHED"
ROSTER_ARCHIVED = "ARCHIVED"

ROSTER_STATUSES = (ROSTER_DRAFT, ROSTER_PENDING_REVIEW, ROSTER_APPROVED, ROSTER_PUBLISHED, ROSTER_ARCHIVED)
# Shifts on closed rosters are history and are never re-flagged
CLOSED_ROSTER_STATUSES = (ROSTER_ARCHIVED,)


class Roster(db.Model):
    """
    Weekly schedule for one venue, owned by the scheduling subsystem.

    This core only reads roster status to decide whether its shifts are still
    open for conflict flagging.
    """
    __tablename__ = "rosters"
    __table_args__ = (
        db.Index("ix_rosters_venue_week", "venue_id", "week_start"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    venue_id = db.Column(db.Integer, db.ForeignKey("venues.id"), nullable=False, index=True)
    name = db.Column(db.String(120), nullable=True)
    week_start = db.Column(db.Date, nullable=False)
    status = db.Column(db.String(16), nullable=False, default=ROSTER_DRAFT, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    venue = db.relationship("Venue", backref=db.backref("rosters", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "venue_id": self.venue_id,
            "name": self.name,
            "week_start": to_iso_date(self.week_start),
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
        }


class RosterShift(db.Model):
    """
    A single assigned shift on a roster.

    has_conflict / conflict_type are advisory markers for schedulers. Approving
    time off flags overlapping shifts with conflict_type "TIME_OFF"; nothing
    here rolls the shift back.
    """
    __tablename__ = "roster_shifts"
    __table_args__ = (
        db.Index("ix_roster_shifts_user_date", "user_id", "date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    roster_id = db.Column(db.Integer, db.ForeignKey("rosters.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)

    date = db.Column(db.Date, nullable=False)
    start_time = db.Column(db.String(5), nullable=False)  # HH:MM
    end_time = db.Column(db.String(5), nullable=False)  # HH:MM

    has_conflict = db.Column(db.Boolean, nullable=False, default=False)
    conflict_type = db.Column(db.String(32), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    roster = db.relationship("Roster", backref=db.backref("shifts", lazy=True))
    user = db.relationship("User", backref=db.backref("roster_shifts", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "roster_id": self.roster_id,
            "user_id": self.user_id,
            "date": to_iso_date(self.date),
            "start_time": self.start_time,
            "end_time": self.end_time,
            "has_conflict": self.has_conflict,
            "conflict_type": self.conflict_type,
        }
