# Overview: Service-layer operations for roster conflict flags.

from __future__ import annotations

from datetime import date

from ..extensions import db
from ..models import Roster, RosterShift
from ..models.rosters import CLOSED_ROSTER_STATUSES


def find_conflicting_shifts(user_id: int, start_date: date, end_date: date) -> list[RosterShift]:
    """Shifts of user_id dated within [start_date, end_date] on open rosters."""
    return (
        db.session.query(RosterShift)
        .join(Roster, Roster.id == RosterShift.roster_id)
        .filter(
            RosterShift.user_id == user_id,
            RosterShift.date >= start_date,
            RosterShift.date <= end_date,
            Roster.status.notin_(CLOSED_ROSTER_STATUSES),
        )
        .order_by(RosterShift.date.asc(), RosterShift.id.asc())
        .all()
    )


def flag_conflict(shift_id: int, conflict_type: str) -> bool:
    """Mark a shift as conflicting. Does not commit."""
    shift = db.session.query(RosterShift).filter_by(id=shift_id).first()
    if not shift:
        return False
    shift.has_conflict = True
    shift.conflict_type = conflict_type
    db.session.flush()
    return True


def recalculate_time_off_conflicts(user_id: int, start_date: date, end_date: date, conflict_type: str) -> list[int]:
    """Flag every open shift in range. Returns the flagged shift ids."""
    flagged = []
    for shift in find_conflicting_shifts(user_id, start_date, end_date):
        if flag_conflict(shift.id, conflict_type):
            flagged.append(shift.id)
    return flagged
