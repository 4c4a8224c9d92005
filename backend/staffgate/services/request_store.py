# Overview: Persistence seam for time-off requests; the only writer of status and reviewer fields.

"""
Time-off request store.

All mutations of status / reviewer_id / reviewed_at / notes go through
compare_and_swap. Nothing here commits; the workflow owns the transaction.
"""

from __future__ import annotations

from datetime import date

from ..extensions import db
from ..models import TimeOffRequest, User
from ..models.time_off import BLOCKING_STATUSES, STATUS_PENDING
from .concurrency import conditional_update, lock_by_write


CAS_FIELDS = frozenset({"status", "reviewer_id", "reviewed_at", "notes"})


def load_request(request_id: int) -> TimeOffRequest | None:
    return db.session.query(TimeOffRequest).filter_by(id=request_id).first()


def lock_owner(user_id: int) -> bool:
    """Serialise submissions for one owner. False if the user does not exist."""
    return lock_by_write(User, user_id, "time_off_revision")


def find_overlapping(user_id: int, start_date: date, end_date: date) -> TimeOffRequest | None:
    """
    First blocking request of the owner overlapping [start_date, end_date].

    Inclusive test: existing.start <= new.end AND existing.end >= new.start.
    """
    return (
        db.session.query(TimeOffRequest)
        .filter(
            TimeOffRequest.user_id == user_id,
            TimeOffRequest.status.in_(BLOCKING_STATUSES),
            TimeOffRequest.start_date <= end_date,
            TimeOffRequest.end_date >= start_date,
        )
        .order_by(TimeOffRequest.start_date.asc(), TimeOffRequest.id.asc())
        .first()
    )


def insert_request(
    *,
    user_id: int,
    start_date: date,
    end_date: date,
    reason: str | None,
    request_type: str,
) -> TimeOffRequest:
    request = TimeOffRequest(
        user_id=user_id,
        type=request_type,
        start_date=start_date,
        end_date=end_date,
        reason=reason,
        status=STATUS_PENDING,
        version=1,
    )
    db.session.add(request)
    db.session.flush()
    return request


def compare_and_swap(request_id: int, expected_version: int, patch: dict) -> bool:
    """
    Apply patch iff the request is still PENDING at expected_version.

    Increments version on success. Returns False when zero rows matched.
    """
    unknown = set(patch) - CAS_FIELDS
    if unknown:
        raise ValueError(f"Fields not writable through compare_and_swap: {sorted(unknown)}")

    return conditional_update(
        TimeOffRequest,
        request_id,
        guards={"version": expected_version, "status": STATUS_PENDING},
        values=patch,
    )
