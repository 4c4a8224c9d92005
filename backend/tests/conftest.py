"""
Pytest fixtures for staffgate backend tests.

Provides test database setup, venue/role/user fixtures, and a CLI runner.
"""

from datetime import date

import pytest

from staffgate import create_app
from staffgate.extensions import db
from staffgate.models import Role, User, UserVenue, Venue, Roster, RosterShift
from staffgate.permissions import ROLE_ADMIN, ROLE_MANAGER, ROLE_STAFF
from staffgate.services import permission_service


TEST_CONFIG = {
    'TESTING': True,
    'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    # Fixed calendar dates below are used regardless of the current date
    'TIME_OFF_ALLOW_PAST_DATES': True,
    'NOTIFY_ADMINS_ON_SUBMISSION': False,
}


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TEST_CONFIG)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def cli_runner(app):
    return app.test_cli_runner()


@pytest.fixture(scope='function')
def setup_roles(db_session):
    """Setup default roles and permissions."""
    permission_service.create_default_roles()
    permission_service.initialize_permissions()
    permission_service.assign_default_role_permissions()
    return {role.name: role for role in db_session.query(Role).all()}


@pytest.fixture(scope='function')
def venue_a(db_session):
    venue = Venue(name="Venue A - Harbour Bar", code="A", is_active=True)
    db_session.add(venue)
    db_session.commit()
    return venue


@pytest.fixture(scope='function')
def venue_b(db_session):
    venue = Venue(name="Venue B - City Bistro", code="B", is_active=True)
    db_session.add(venue)
    db_session.commit()
    return venue


@pytest.fixture(scope='function')
def venue_c(db_session):
    """Inactive venue."""
    venue = Venue(name="Venue C - Closed Cafe", code="C", is_active=False)
    db_session.add(venue)
    db_session.commit()
    return venue


@pytest.fixture(scope='function')
def make_user(db_session, setup_roles):
    """
    Factory: make_user("name", role="STAFF", venues=[venue], primary=venue).

    role=None creates a user without a role.
    """
    def _make(username, *, role=ROLE_STAFF, venues=(), primary=None, is_active=True):
        user = User(
            username=username,
            email=f"{username}@staffgate.test",
            is_active=is_active,
            role_id=setup_roles[role].id if role else None,
        )
        db_session.add(user)
        db_session.flush()

        for venue in venues:
            db_session.add(UserVenue(
                user_id=user.id,
                venue_id=venue.id,
                is_primary=primary is not None and venue.id == primary.id,
            ))
        db_session.commit()
        return user

    return _make


@pytest.fixture(scope='function')
def staff_x(make_user, venue_a):
    """Staff member whose only venue is A (primary)."""
    return make_user("staff_x", venues=[venue_a], primary=venue_a)


@pytest.fixture(scope='function')
def manager_a(make_user, venue_a):
    """Manager at venue A (primary)."""
    return make_user("manager_a", role=ROLE_MANAGER, venues=[venue_a], primary=venue_a)


@pytest.fixture(scope='function')
def manager_b(make_user, venue_b):
    """Manager at venue B only."""
    return make_user("manager_b", role=ROLE_MANAGER, venues=[venue_b], primary=venue_b)


@pytest.fixture(scope='function')
def admin_user(make_user, venue_a):
    return make_user("admin", role=ROLE_ADMIN, venues=[venue_a], primary=venue_a)


@pytest.fixture(scope='function')
def make_shift(db_session):
    """Factory: make_shift(user, venue, date, roster_status="PUBLISHED")."""
    def _make(user, venue, shift_date: date, *, roster_status="PUBLISHED"):
        roster = Roster(venue_id=venue.id, name="Week", week_start=shift_date, status=roster_status)
        db_session.add(roster)
        db_session.flush()
        shift = RosterShift(
            roster_id=roster.id,
            user_id=user.id,
            date=shift_date,
            start_time="09:00",
            end_time="17:00",
        )
        db_session.add(shift)
        db_session.commit()
        return shift

    return _make
