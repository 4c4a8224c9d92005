# Overview: Service-layer operations for in-app notifications.

from __future__ import annotations

import json

from ..extensions import db
from ..models import Notification, TimeOffRequest, User
from staffgate.time_utils import utcnow


EVENT_TIME_OFF_SUBMITTED = "TIME_OFF_REQUEST"
EVENT_TIME_OFF_APPROVED = "TIME_OFF_APPROVED"
EVENT_TIME_OFF_REJECTED = "TIME_OFF_REJECTED"
EVENT_TIME_OFF_CANCELLED = "TIME_OFF_CANCELLED"

NOTIFICATION_EVENTS = frozenset({
    EVENT_TIME_OFF_SUBMITTED,
    EVENT_TIME_OFF_APPROVED,
    EVENT_TIME_OFF_REJECTED,
    EVENT_TIME_OFF_CANCELLED,
})


def _display_name(user_id: int | None) -> str:
    if user_id is None:
        return "Someone"
    user = db.session.query(User).filter_by(id=user_id).first()
    return user.username if user else "Someone"


def _date_range(request: TimeOffRequest | None, payload: dict) -> str:
    if request is not None:
        return f"{request.start_date.isoformat()} - {request.end_date.isoformat()}"
    return f"{payload.get('start_date', '?')} - {payload.get('end_date', '?')}"


def _render(event: str, actor_id: int | None, request: TimeOffRequest | None, payload: dict) -> tuple[str, str, str]:
    """(title, message, link) for a time-off event."""
    date_range = _date_range(request, payload)
    actor_name = _display_name(actor_id)
    link = f"/time-off?request={request.id}" if request is not None else "/time-off"

    if event == EVENT_TIME_OFF_SUBMITTED:
        return (
            f"{actor_name} requested time off",
            f"Time off request for {date_range}",
            link,
        )
    if event == EVENT_TIME_OFF_APPROVED:
        return (
            "Time off request approved",
            f"Your time off request for {date_range} has been approved by {actor_name}",
            link,
        )
    if event == EVENT_TIME_OFF_REJECTED:
        notes = payload.get("notes")
        if notes:
            message = f"Your time off request for {date_range} was rejected: {notes}"
        else:
            message = f"Your time off request for {date_range} was rejected by {actor_name}"
        return ("Time off request rejected", message, link)
    if event == EVENT_TIME_OFF_CANCELLED:
        return (
            f"{actor_name} cancelled time off",
            f"Time off for {date_range} has been cancelled",
            "/time-off",
        )
    raise ValueError(f"Unknown notification event: {event}")


def notify(
    event: str,
    actor_id: int | None,
    subject_id: int | None,
    recipient_ids,
    payload: dict | None = None,
) -> list[Notification]:
    """
    Write one inbox row per recipient. Does not commit.

    Duplicate recipient ids collapse; an empty recipient list writes nothing.
    """
    if event not in NOTIFICATION_EVENTS:
        raise ValueError(f"Unknown notification event: {event}")

    recipients = sorted(set(recipient_ids or []))
    if not recipients:
        return []

    payload = payload or {}
    request = None
    if subject_id is not None:
        request = db.session.query(TimeOffRequest).filter_by(id=subject_id).first()

    title, message, link = _render(event, actor_id, request, payload)
    encoded = json.dumps(payload, sort_keys=True, default=str) if payload else None

    rows = []
    for recipient_id in recipients:
        row = Notification(
            user_id=recipient_id,
            actor_id=actor_id,
            type=event,
            title=title,
            message=message,
            link=link,
            subject_type="time_off_request",
            subject_id=subject_id,
            payload=encoded,
        )
        db.session.add(row)
        rows.append(row)
    db.session.flush()
    return rows


def list_notifications(user_id: int, *, unread_only: bool = False, limit: int = 50) -> list[Notification]:
    query = db.session.query(Notification).filter(Notification.user_id == user_id)
    if unread_only:
        query = query.filter(Notification.read_at.is_(None))
    return query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit).all()


def mark_read(user_id: int, notification_id: int) -> bool:
    row = db.session.query(Notification).filter_by(id=notification_id, user_id=user_id).first()
    if not row:
        return False
    if row.read_at is None:
        row.read_at = utcnow()
        db.session.commit()
    return True
