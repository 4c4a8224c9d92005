from __future__ import annotations

from ..extensions import db
from staffgate.time_utils import to_utc_z, to_iso_date


STATUS_PENDING = "PENDING"
STATUS_APPROVED = "APPROVED"
STATUS_REJECTED = "REJECTED"
STATUS_CANCELLED = "CANCELLED"

TIME_OFF_STATUSES = (STATUS_PENDING, STATUS_APPROVED, STATUS_REJECTED, STATUS_CANCELLED)
TERMINAL_STATUSES = frozenset({STATUS_APPROVED, STATUS_REJECTED, STATUS_CANCELLED})
# Requests in these states block overlapping submissions
BLOCKING_STATUSES = (STATUS_PENDING, STATUS_APPROVED)
REVIEW_DECISIONS = frozenset({STATUS_APPROVED, STATUS_REJECTED})

TYPE_UNAVAILABLE = "UNAVAILABLE"
TIME_OFF_TYPES = (TYPE_UNAVAILABLE,)


class TimeOffRequest(db.Model):
    """
    Time-bounded absence request.

    LIFECYCLE:
    - PENDING: submitted by the owner, the only actionable state
    - CANCELLED: withdrawn by the owner (from PENDING only)
    - APPROVED / REJECTED: decided by a reviewer (from PENDING only)

    Terminal states are absorbing. Status, reviewer and version are written
    only by request_store.compare_and_swap, which guards on version.

    version starts at 1 and increments once per successful transition.
    """
    __tablename__ = "time_off_requests"
    __table_args__ = (
        db.CheckConstraint("start_date <= end_date", name="ck_time_off_date_range"),
        db.CheckConstraint(
            "status IN ('PENDING', 'APPROVED', 'REJECTED', 'CANCELLED')",
            name="ck_time_off_status",
        ),
        db.CheckConstraint("version >= 1", name="ck_time_off_version"),
        db.CheckConstraint(
            "reviewer_id IS NULL OR reviewer_id <> user_id",
            name="ck_time_off_no_self_review",
        ),
        db.Index("ix_time_off_user_status", "user_id", "status"),
        db.Index("ix_time_off_user_range", "user_id", "start_date", "end_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    type = db.Column(db.String(32), nullable=False, default=TYPE_UNAVAILABLE)
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)
    reason = db.Column(db.Text, nullable=True)

    status = db.Column(db.String(16), nullable=False, default=STATUS_PENDING, index=True)

    # Review fields, set only on transition out of PENDING via review
    reviewer_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    reviewed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    version = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    user = db.relationship("User", foreign_keys=[user_id], backref=db.backref("time_off_requests", lazy=True))
    reviewer = db.relationship("User", foreign_keys=[reviewer_id])

    @property
    def is_actionable(self) -> bool:
        return self.status == STATUS_PENDING

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "type": self.type,
            "start_date": to_iso_date(self.start_date),
            "end_date": to_iso_date(self.end_date),
            "reason": self.reason,
            "status": self.status,
            "reviewer_id": self.reviewer_id,
            "reviewed_at": to_utc_z(self.reviewed_at) if self.reviewed_at else None,
            "notes": self.notes,
            "version": self.version,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
