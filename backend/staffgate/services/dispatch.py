# Overview: Best-effort dispatcher for side effects that follow a committed transition.

"""
Side-effect dispatcher.

Notifications, audit rows and roster conflict flags are written after the
primary transition has committed. Each call runs in its own transaction;
a failure is rolled back, logged and discarded so it can never undo the
transition that triggered it.

Collaborators are duck-typed:
- notifier.notify(event, actor_id, subject_id, recipient_ids, payload)
- audit_sink.record(actor_id, action_type, resource_type, resource_id, old_value, new_value)
- scheduler.recalculate_time_off_conflicts(user_id, start_date, end_date, conflict_type) -> list[int]
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from . import audit_service, notification_service, roster_service


DISPATCHER_EXTENSION_KEY = "staffgate.side_effects"


class SideEffectDispatcher:
    def __init__(self, notifier=notification_service, audit_sink=audit_service, scheduler=roster_service):
        self.notifier = notifier
        self.audit_sink = audit_sink
        self.scheduler = scheduler

    def _run(self, label: str, func, *args, default=None):
        try:
            result = func(*args)
            db.session.commit()
            return result
        except Exception:
            db.session.rollback()
            current_app.logger.exception("Side effect %s failed", label)
            return default

    def notify(self, event: str, actor_id, subject_id, recipient_ids, payload: dict | None = None) -> None:
        """recipient_ids may be a zero-argument callable; it is resolved inside the guard."""
        def _deliver():
            resolved = recipient_ids() if callable(recipient_ids) else recipient_ids
            recipients = sorted(set(resolved or []))
            if not recipients:
                return []
            return self.notifier.notify(event, actor_id, subject_id, recipients, payload or {})

        self._run(f"notify:{event}", _deliver)

    def record(self, actor_id, action_type: str, resource_type: str, resource_id, old_value=None, new_value=None) -> None:
        self._run(
            f"audit:{action_type}",
            self.audit_sink.record,
            actor_id, action_type, resource_type, resource_id, old_value, new_value,
        )

    def recalculate_conflicts(self, user_id: int, start_date, end_date, conflict_type: str) -> list[int]:
        """Flagged shift ids; empty list when the recalculation fails."""
        flagged = self._run(
            "roster:recalculate_conflicts",
            self.scheduler.recalculate_time_off_conflicts,
            user_id, start_date, end_date, conflict_type,
            default=[],
        )
        return flagged or []


def get_dispatcher() -> SideEffectDispatcher:
    return current_app.extensions[DISPATCHER_EXTENSION_KEY]
