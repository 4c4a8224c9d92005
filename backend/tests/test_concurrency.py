"""
Concurrency tests for the time-off workflow.

Runs against a file-backed SQLite database so worker threads hold separate
connections. A barrier parks each worker right before its first write, so
both have read the same state when they race.

Verifies:
- Two reviewers deciding one request: exactly one wins, the other gets CONFLICT
- Owner cancel vs reviewer decision: exactly one wins
- Two overlapping submissions for one owner: exactly one is stored
"""

import threading
from datetime import date

import pytest

from staffgate import create_app
from staffgate.errors import CONFLICT, OVERLAPPING_REQUEST
from staffgate.extensions import db
from staffgate.models import Role, TimeOffRequest, User, UserVenue, Venue
from staffgate.permissions import ROLE_MANAGER, ROLE_STAFF
from staffgate.services import permission_service, request_store, time_off_service


@pytest.fixture
def race_app(tmp_path):
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'race.db'}",
        'SQLALCHEMY_ENGINE_OPTIONS': {'connect_args': {'timeout': 30}},
        'TIME_OFF_ALLOW_PAST_DATES': True,
    })

    with app.app_context():
        db.create_all()
        permission_service.create_default_roles()
        permission_service.initialize_permissions()
        permission_service.assign_default_role_permissions()

        venue = Venue(name="Race Venue", code="R", is_active=True)
        db.session.add(venue)
        db.session.flush()

        roles = {role.name: role.id for role in db.session.query(Role).all()}
        ids = {}
        for username, role_name in [
            ("owner", ROLE_STAFF),
            ("manager_one", ROLE_MANAGER),
            ("manager_two", ROLE_MANAGER),
        ]:
            user = User(username=username, email=f"{username}@staffgate.test", role_id=roles[role_name])
            db.session.add(user)
            db.session.flush()
            db.session.add(UserVenue(user_id=user.id, venue_id=venue.id, is_primary=True))
            ids[username] = user.id
        db.session.commit()

    yield app, ids

    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.session.remove()
        db.engine.dispose()


def _race(app, *calls):
    """Run each call in its own thread and app context; collect (ok, kind)."""
    outcomes = []
    errors = []
    lock = threading.Lock()

    def worker(call):
        with app.app_context():
            try:
                result = call()
                with lock:
                    outcomes.append((result.ok, result.kind))
            except Exception as exc:
                with lock:
                    errors.append(exc)
            finally:
                db.session.remove()

    threads = [threading.Thread(target=worker, args=(call,)) for call in calls]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)

    assert not errors, errors
    return outcomes


def _park_before(monkeypatch, name, parties=2):
    """Make request_store.<name> wait until every racer has reached it."""
    barrier = threading.Barrier(parties)
    real = getattr(request_store, name)

    def _parked(*args, **kwargs):
        barrier.wait(timeout=10)
        return real(*args, **kwargs)

    monkeypatch.setattr(request_store, name, _parked)


def _seed_request(app, owner_id):
    with app.app_context():
        result = time_off_service.create_request(owner_id, date(2026, 12, 1), date(2026, 12, 5))
        assert result.ok
        return result.value.id


class TestReviewRace:

    def test_two_reviewers_one_winner(self, race_app, monkeypatch):
        app, ids = race_app
        request_id = _seed_request(app, ids["owner"])
        _park_before(monkeypatch, "compare_and_swap")

        outcomes = _race(
            app,
            lambda: time_off_service.review_request(ids["manager_one"], request_id, "APPROVED"),
            lambda: time_off_service.review_request(ids["manager_two"], request_id, "REJECTED"),
        )

        assert sorted(outcomes, key=lambda o: o[0]) == [(False, CONFLICT), (True, None)]
        with app.app_context():
            stored = db.session.get(TimeOffRequest, request_id)
            assert stored.version == 2
            assert stored.status in ("APPROVED", "REJECTED")
            assert stored.reviewer_id in (ids["manager_one"], ids["manager_two"])

    def test_cancel_and_review_one_winner(self, race_app, monkeypatch):
        app, ids = race_app
        request_id = _seed_request(app, ids["owner"])
        _park_before(monkeypatch, "compare_and_swap")

        outcomes = _race(
            app,
            lambda: time_off_service.cancel_request(ids["owner"], request_id),
            lambda: time_off_service.review_request(ids["manager_one"], request_id, "APPROVED"),
        )

        assert sorted(outcomes, key=lambda o: o[0]) == [(False, CONFLICT), (True, None)]
        with app.app_context():
            stored = db.session.get(TimeOffRequest, request_id)
            assert stored.version == 2
            assert stored.status in ("CANCELLED", "APPROVED")


class TestSubmissionRace:

    def test_overlapping_submissions_one_stored(self, race_app, monkeypatch):
        app, ids = race_app
        owner_id = ids["owner"]
        _park_before(monkeypatch, "lock_owner")

        outcomes = _race(
            app,
            lambda: time_off_service.create_request(owner_id, date(2026, 12, 1), date(2026, 12, 5)),
            lambda: time_off_service.create_request(owner_id, date(2026, 12, 3), date(2026, 12, 7)),
        )

        assert sorted(outcomes, key=lambda o: o[0]) == [(False, OVERLAPPING_REQUEST), (True, None)]
        with app.app_context():
            assert db.session.query(TimeOffRequest).filter_by(user_id=owner_id).count() == 1

    def test_disjoint_submissions_both_stored(self, race_app, monkeypatch):
        app, ids = race_app
        owner_id = ids["owner"]
        _park_before(monkeypatch, "lock_owner")

        outcomes = _race(
            app,
            lambda: time_off_service.create_request(owner_id, date(2026, 12, 1), date(2026, 12, 5)),
            lambda: time_off_service.create_request(owner_id, date(2026, 12, 6), date(2026, 12, 9)),
        )

        assert outcomes == [(True, None), (True, None)]
        with app.app_context():
            assert db.session.query(TimeOffRequest).filter_by(user_id=owner_id).count() == 2
