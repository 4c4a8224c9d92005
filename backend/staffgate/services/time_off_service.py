# Overview: Service-layer operations for time-off requests; encapsulates the approval workflow.

"""
Time-Off Request Workflow

WHY: Staff submit absence requests; a reviewer with approve permission at
the owner's venue decides them. Decided requests feed back into rosters as
conflict flags.

STATE MACHINE:
    PENDING -> CANCELLED   (owner, cancel_request)
    PENDING -> APPROVED    (reviewer, review_request)
    PENDING -> REJECTED    (reviewer, review_request)
Terminal states are absorbing.

CONCURRENCY:
- create_request serialises per owner: the owner row is write-locked before
  the overlap check, so two concurrent submissions for overlapping dates
  cannot both pass the check.
- Every transition out of PENDING is a single version-guarded UPDATE
  (request_store.compare_and_swap). Losing the race is a Conflict, never
  retried here.
- Side effects (notifications, audit, roster flags) run after commit through
  the SideEffectDispatcher and can never undo the transition.

Lifecycle operations return Result; read helpers raise WorkflowError.
"""

from __future__ import annotations

from datetime import date, datetime
from functools import wraps

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..errors import (
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    OverlappingRequestError,
    Result,
    StorageError,
    UnauthorizedError,
    ValidationError,
    WorkflowError,
)
from ..models import TimeOffRequest, User
from ..models.time_off import (
    REVIEW_DECISIONS,
    STATUS_APPROVED,
    STATUS_CANCELLED,
    STATUS_PENDING,
    STATUS_REJECTED,
    TIME_OFF_STATUSES,
    TIME_OFF_TYPES,
    TYPE_UNAVAILABLE,
)
from staffgate.time_utils import parse_iso_date, today, utcnow
from . import audit_service, notification_service, request_store, scoping, venue_service
from .dispatch import get_dispatcher
from .permission_service import get_evaluator


RESOURCE = "timeoff"


def lifecycle_operation(fn):
    """Run a workflow step and fold its outcome into a Result."""
    @wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return Result.success(fn(*args, **kwargs))
        except WorkflowError as exc:
            db.session.rollback()
            return Result.from_error(exc)
        except SQLAlchemyError:
            db.session.rollback()
            current_app.logger.exception("Storage failure in %s", fn.__name__)
            return Result.from_error(StorageError())
    return wrapper


# -- validation --

def _coerce_date(value, field: str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a valid date (YYYY-MM-DD)")
    try:
        parsed = parse_iso_date(value)
    except (TypeError, ValueError):
        parsed = None
    if parsed is None:
        raise ValidationError(f"{field} must be a valid date (YYYY-MM-DD)")
    return parsed


def _validate_reason(reason: str | None) -> str | None:
    if reason is None:
        return None
    if not isinstance(reason, str):
        raise ValidationError("Reason must be text")
    reason = reason.strip()
    if not reason:
        return None

    min_length = current_app.config.get("TIME_OFF_REASON_MIN_LENGTH", 10)
    max_length = current_app.config.get("TIME_OFF_REASON_MAX_LENGTH", 500)
    if len(reason) < min_length:
        raise ValidationError(f"Reason must be at least {min_length} characters")
    if len(reason) > max_length:
        raise ValidationError(f"Reason must be less than {max_length} characters")
    return reason


def _validate_notes(notes: str | None) -> str | None:
    if notes is None:
        return None
    if not isinstance(notes, str):
        raise ValidationError("Notes must be text")
    notes = notes.strip()
    if not notes:
        return None
    max_length = current_app.config.get("TIME_OFF_NOTES_MAX_LENGTH", 500)
    if len(notes) > max_length:
        raise ValidationError(f"Notes must be less than {max_length} characters")
    return notes


def _coerce_version(value) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValidationError("expected_version must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError("expected_version must be an integer")


def _validate_range(start: date, end: date) -> None:
    if end < start:
        raise ValidationError("End date must be on or after start date")
    if not current_app.config.get("TIME_OFF_ALLOW_PAST_DATES", False) and start < today():
        raise ValidationError("Start date cannot be in the past")


def _known_user(user_id: int | None) -> User:
    user = db.session.query(User).filter_by(id=user_id).first() if user_id is not None else None
    if not user:
        raise UnauthorizedError()
    return user


# -- audience --

def reviewer_audience(owner_id: int) -> set[int]:
    """
    Users notified about an owner's submissions and cancellations.

    Active, not the owner, sharing an active venue with the owner, holding
    timeoff:approve at one of the shared venues. Admins are left out unless
    NOTIFY_ADMINS_ON_SUBMISSION is set.
    """
    owner_venues = venue_service.active_venue_ids(owner_id)
    if not owner_venues:
        return set()

    evaluator = get_evaluator()
    include_admins = current_app.config.get("NOTIFY_ADMINS_ON_SUBMISSION", False)

    audience = set()
    for candidate_id in sorted(venue_service.shared_venue_user_ids(owner_id)):
        if not include_admins and evaluator.is_admin(candidate_id):
            continue
        shared = owner_venues & venue_service.active_venue_ids(candidate_id)
        if any(evaluator.has_venue_permission(candidate_id, RESOURCE, "approve", venue_id) for venue_id in sorted(shared)):
            audience.add(candidate_id)
    return audience


def _request_payload(request: TimeOffRequest, **extra) -> dict:
    payload = {
        "request_id": request.id,
        "owner_id": request.user_id,
        "start_date": request.start_date.isoformat(),
        "end_date": request.end_date.isoformat(),
        "status": request.status,
    }
    payload.update({k: v for k, v in extra.items() if v is not None})
    return payload


# -- lifecycle --

@lifecycle_operation
def create_request(owner_id: int, start_date, end_date, reason: str | None = None, request_type: str = TYPE_UNAVAILABLE) -> TimeOffRequest:
    owner = _known_user(owner_id)
    if not owner.is_active:
        raise ForbiddenError("Inactive users cannot submit time-off requests")

    if request_type not in TIME_OFF_TYPES:
        raise ValidationError(f"Invalid request type: {request_type}")
    start = _coerce_date(start_date, "start_date")
    end = _coerce_date(end_date, "end_date")
    _validate_range(start, end)
    reason = _validate_reason(reason)

    # Owner lock, overlap check and insert share one transaction
    if not request_store.lock_owner(owner.id):
        raise UnauthorizedError()

    existing = request_store.find_overlapping(owner.id, start, end)
    if existing:
        raise OverlappingRequestError(existing.status)

    request = request_store.insert_request(
        user_id=owner.id,
        start_date=start,
        end_date=end,
        reason=reason,
        request_type=request_type,
    )
    db.session.commit()

    get_dispatcher().notify(
        notification_service.EVENT_TIME_OFF_SUBMITTED,
        owner_id,
        request.id,
        lambda: reviewer_audience(owner_id),
        _request_payload(request),
    )
    return request


@lifecycle_operation
def cancel_request(owner_id: int, request_id: int) -> TimeOffRequest:
    _known_user(owner_id)

    request = request_store.load_request(request_id)
    if not request:
        raise NotFoundError()
    if request.user_id != owner_id:
        raise ForbiddenError("You can only cancel your own time-off requests")
    if not request.is_actionable:
        raise InvalidStateError(f"Cannot cancel a request that is already {request.status.lower()}")

    captured_version = request.version
    swapped = request_store.compare_and_swap(request.id, captured_version, {"status": STATUS_CANCELLED})
    if not swapped:
        current_app.logger.warning(
            "Time-off request %s changed during cancel (version %s)", request.id, captured_version
        )
        raise ConflictError()
    db.session.commit()

    request = request_store.load_request(request_id)
    dispatcher = get_dispatcher()
    dispatcher.record(
        owner_id,
        audit_service.ACTION_TIME_OFF_CANCELLED,
        audit_service.RESOURCE_TIME_OFF_REQUEST,
        request.id,
        STATUS_PENDING,
        STATUS_CANCELLED,
    )
    dispatcher.notify(
        notification_service.EVENT_TIME_OFF_CANCELLED,
        owner_id,
        request.id,
        lambda: reviewer_audience(owner_id),
        _request_payload(request),
    )
    return request


@lifecycle_operation
def review_request(
    reviewer_id: int,
    request_id: int,
    decision: str,
    notes: str | None = None,
    expected_version: int | None = None,
) -> TimeOffRequest:
    _known_user(reviewer_id)

    # 1. Load
    request = request_store.load_request(request_id)
    if not request:
        raise NotFoundError()
    owner_id = request.user_id

    # 2. No self-review, before any venue lookup
    if reviewer_id == owner_id:
        raise ForbiddenError("You cannot review your own time-off request")

    decision = decision.upper() if isinstance(decision, str) else ""
    if decision not in REVIEW_DECISIONS:
        raise ValidationError("Decision must be APPROVED or REJECTED")
    notes = _validate_notes(notes)
    expected_version = _coerce_version(expected_version)

    # 3. Approve permission at the owner's primary venue, else globally
    evaluator = get_evaluator()
    venue_id = venue_service.primary_venue_id(owner_id)
    if venue_id is not None:
        if not evaluator.has_venue_permission(reviewer_id, RESOURCE, "approve", venue_id):
            current_app.logger.info(
                "Review denied: reviewer=%s request=%s venue=%s", reviewer_id, request.id, venue_id
            )
            raise ForbiddenError(
                f"You don't have permission to review time-off requests for venue {venue_id}"
            )
    elif not evaluator.has_permission(reviewer_id, RESOURCE, "approve"):
        current_app.logger.info("Review denied: reviewer=%s request=%s", reviewer_id, request.id)
        raise ForbiddenError("You don't have permission to review time-off requests")

    # 4. Reviewer and owner must share an active venue
    if not venue_service.users_share_venue(reviewer_id, owner_id):
        current_app.logger.info(
            "Review denied (no shared venue): reviewer=%s owner=%s", reviewer_id, owner_id
        )
        raise ForbiddenError("You can only review requests from staff at your venues")

    # 5. Only PENDING is actionable
    if not request.is_actionable:
        raise InvalidStateError(f"This request has already been {request.status.lower()}")

    # 6. Version-guarded transition
    captured_version = request.version
    if expected_version is not None and expected_version != captured_version:
        raise ConflictError()

    swapped = request_store.compare_and_swap(
        request.id,
        captured_version,
        {
            "status": decision,
            "reviewer_id": reviewer_id,
            "reviewed_at": utcnow(),
            "notes": notes,
        },
    )
    if not swapped:
        current_app.logger.warning(
            "Time-off request %s lost review race (version %s)", request.id, captured_version
        )
        raise ConflictError()
    db.session.commit()

    request = request_store.load_request(request_id)

    # 7. Audit and owner notification
    dispatcher = get_dispatcher()
    dispatcher.record(
        reviewer_id,
        audit_service.ACTION_TIME_OFF_APPROVED if decision == STATUS_APPROVED else audit_service.ACTION_TIME_OFF_REJECTED,
        audit_service.RESOURCE_TIME_OFF_REQUEST,
        request.id,
        STATUS_PENDING,
        decision,
    )
    dispatcher.notify(
        notification_service.EVENT_TIME_OFF_APPROVED if decision == STATUS_APPROVED else notification_service.EVENT_TIME_OFF_REJECTED,
        reviewer_id,
        request.id,
        [owner_id],
        _request_payload(request, notes=notes),
    )

    # 8. Roster conflicts, best effort
    if decision == STATUS_APPROVED:
        flagged = dispatcher.recalculate_conflicts(
            owner_id,
            request.start_date,
            request.end_date,
            current_app.config.get("TIME_OFF_CONFLICT_TYPE", "TIME_OFF"),
        )
        if flagged:
            current_app.logger.info(
                "Flagged %d shift(s) for approved time-off request %s", len(flagged), request.id
            )

    return request


# -- reads --

def list_my_requests(user_id: int) -> list[TimeOffRequest]:
    return (
        db.session.query(TimeOffRequest)
        .filter(TimeOffRequest.user_id == user_id)
        .order_by(TimeOffRequest.created_at.desc(), TimeOffRequest.id.desc())
        .all()
    )


def _visible_requests_query(viewer_id: int):
    query = db.session.query(TimeOffRequest)
    if get_evaluator().has_permission(viewer_id, RESOURCE, "view_all"):
        return query
    predicate = scoping.scope_filter_for(viewer_id, "user_id")
    return scoping.apply_scope(query, TimeOffRequest, predicate)


def list_team_requests(
    viewer_id: int,
    *,
    status: str | None = None,
    request_type: str | None = None,
    user_id: int | None = None,
    start_date=None,
    end_date=None,
) -> list[TimeOffRequest]:
    """
    Requests of users sharing a venue with the viewer.

    Requires timeoff:view_team. A viewer holding timeoff:view_all sees every
    request. Date filters select requests overlapping [start_date, end_date].
    """
    get_evaluator().require_permission(viewer_id, RESOURCE, "view_team")

    query = _visible_requests_query(viewer_id)

    if status:
        status = status.upper()
        if status not in TIME_OFF_STATUSES:
            raise ValidationError(f"Invalid status filter: {status}")
        query = query.filter(TimeOffRequest.status == status)
    if request_type:
        query = query.filter(TimeOffRequest.type == request_type)
    if user_id is not None:
        query = query.filter(TimeOffRequest.user_id == user_id)
    if start_date is not None:
        query = query.filter(TimeOffRequest.end_date >= _coerce_date(start_date, "start_date"))
    if end_date is not None:
        query = query.filter(TimeOffRequest.start_date <= _coerce_date(end_date, "end_date"))

    return query.order_by(TimeOffRequest.status.asc(), TimeOffRequest.start_date.asc(), TimeOffRequest.id.asc()).all()


def time_off_stats(user_id: int) -> dict:
    rows = (
        db.session.query(TimeOffRequest.status, func.count(TimeOffRequest.id))
        .filter(TimeOffRequest.user_id == user_id)
        .group_by(TimeOffRequest.status)
        .all()
    )
    counts = {status: count for status, count in rows}
    return {
        "total": sum(counts.values()),
        "pending": counts.get(STATUS_PENDING, 0),
        "approved": counts.get(STATUS_APPROVED, 0),
        "rejected": counts.get(STATUS_REJECTED, 0),
        "cancelled": counts.get(STATUS_CANCELLED, 0),
    }


def pending_count(viewer_id: int) -> int:
    """PENDING requests the viewer can see; 0 without timeoff:view_team."""
    if not get_evaluator().has_permission(viewer_id, RESOURCE, "view_team"):
        return 0
    return _visible_requests_query(viewer_id).filter(TimeOffRequest.status == STATUS_PENDING).count()
