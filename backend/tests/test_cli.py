"""
CLI command tests.
"""

from staffgate.models import Role, TimeOffRequest, User, Venue


class TestSystemCommands:

    def test_init_seeds_roles(self, cli_runner, db_session):
        result = cli_runner.invoke(args=["system", "init"])
        assert result.exit_code == 0
        assert "PASS Roles created: 3" in result.output
        assert "DONE" in result.output
        assert {r.name for r in db_session.query(Role).all()} == {"ADMIN", "MANAGER", "STAFF"}

    def test_init_is_idempotent(self, cli_runner, setup_roles):
        result = cli_runner.invoke(args=["system", "init"])
        assert "PASS Roles created: 0" in result.output
        assert "PASS Created 0 permissions, 0 role assignments" in result.output


class TestUserAndVenueCommands:

    def test_create_user(self, cli_runner, db_session, setup_roles):
        result = cli_runner.invoke(args=["users", "create", "--username", "alice", "--email", "alice@example.com", "--role", "staff"])
        assert "PASS Created user alice" in result.output
        assert db_session.query(User).filter_by(username="alice").one().role.name == "STAFF"

        again = cli_runner.invoke(args=["users", "create", "--username", "alice", "--email", "other@example.com"])
        assert "FAIL User 'alice' already exists" in again.output

    def test_create_user_unknown_role(self, cli_runner, setup_roles):
        result = cli_runner.invoke(args=["users", "create", "--username", "bob", "--email", "bob@example.com", "--role", "OWNER"])
        assert "FAIL Role 'OWNER' not found" in result.output

    def test_venue_create_and_assign(self, cli_runner, db_session, make_user):
        user = make_user("carol")
        created = cli_runner.invoke(args=["venues", "create", "--name", "Harbour Bar", "--code", "HARBOUR"])
        assert "PASS Created venue Harbour Bar" in created.output

        duplicate = cli_runner.invoke(args=["venues", "create", "--name", "Other", "--code", "HARBOUR"])
        assert "FAIL Venue with code 'HARBOUR' already exists" in duplicate.output

        venue = db_session.query(Venue).filter_by(code="HARBOUR").one()
        assigned = cli_runner.invoke(args=["venues", "assign", str(user.id), str(venue.id), "--primary"])
        assert f"PASS User {user.id} assigned to venue {venue.id} (primary)" in assigned.output

        listed = cli_runner.invoke(args=["venues", "list-for", str(user.id)])
        assert "Harbour Bar (Primary)" in listed.output
        assert "Active: 1  Inactive: 0" in listed.output

    def test_list_for_user_without_venues(self, cli_runner, make_user):
        user = make_user("dave")
        result = cli_runner.invoke(args=["venues", "list-for", str(user.id)])
        assert "No venues found." in result.output

    def test_shared_users(self, cli_runner, staff_x, manager_a, make_user, venue_a):
        make_user("gone", venues=[venue_a], is_active=False)

        result = cli_runner.invoke(args=["venues", "shared-users", str(staff_x.id)])
        assert "manager_a" in result.output
        assert "gone" not in result.output
        assert "Total: 1" in result.output

        everyone = cli_runner.invoke(args=["venues", "shared-users", str(staff_x.id), "--include-inactive"])
        assert "gone (inactive)" in everyone.output
        assert "Total: 2" in everyone.output

    def test_shared_users_none(self, cli_runner, make_user):
        user = make_user("loner")
        result = cli_runner.invoke(args=["venues", "shared-users", str(user.id)])
        assert "No shared users." in result.output


class TestPermissionCommands:

    def test_list_role_grants(self, cli_runner, db_session):
        result = cli_runner.invoke(args=["perms", "list", "--role", "manager"])
        assert "MANAGER" in result.output
        assert "timeoff:approve" in result.output
        assert "VENUE" in result.output

    def test_check(self, cli_runner, manager_a, venue_a, venue_b):
        allowed = cli_runner.invoke(args=["perms", "check", str(manager_a.id), "timeoff", "approve", "--venue-id", str(venue_a.id)])
        assert "ALLOWED" in allowed.output

        denied = cli_runner.invoke(args=["perms", "check", str(manager_a.id), "timeoff", "approve", "--venue-id", str(venue_b.id)])
        assert "DENIED" in denied.output

    def test_grant_venue(self, cli_runner, staff_x, venue_a):
        granted = cli_runner.invoke(args=["perms", "grant-venue", str(staff_x.id), str(venue_a.id), "timeoff:approve"])
        assert "PASS Granted timeoff:approve" in granted.output

        check = cli_runner.invoke(args=["perms", "check", str(staff_x.id), "timeoff", "approve", "--venue-id", str(venue_a.id)])
        assert "ALLOWED" in check.output

    def test_grant_venue_unknown_code(self, cli_runner, staff_x, venue_a):
        result = cli_runner.invoke(args=["perms", "grant-venue", str(staff_x.id), str(venue_a.id), "timeoff:fly"])
        assert result.output.startswith("FAIL")


class TestTimeOffCommands:

    def test_create_review_cancel(self, cli_runner, db_session, staff_x, manager_a):
        created = cli_runner.invoke(args=[
            "timeoff", "create", str(staff_x.id), "2026-12-01", "2026-12-05", "--reason", "Family wedding abroad",
        ])
        assert created.exit_code == 0
        request = db_session.query(TimeOffRequest).one()
        assert f"PASS request {request.id}: PENDING 2026-12-01..2026-12-05 (version 1)" in created.output

        reviewed = cli_runner.invoke(args=["timeoff", "review", str(manager_a.id), str(request.id), "approved"])
        assert f"PASS request {request.id}: APPROVED 2026-12-01..2026-12-05 (version 2)" in reviewed.output

        cancelled = cli_runner.invoke(args=["timeoff", "cancel", str(staff_x.id), str(request.id)])
        assert "FAIL INVALID_STATE: Cannot cancel a request that is already approved" in cancelled.output

    def test_review_stale_version(self, cli_runner, db_session, staff_x, manager_a):
        cli_runner.invoke(args=["timeoff", "create", str(staff_x.id), "2026-12-01", "2026-12-05"])
        request = db_session.query(TimeOffRequest).one()

        result = cli_runner.invoke(args=[
            "timeoff", "review", str(manager_a.id), str(request.id), "REJECTED", "--expected-version", "3",
        ])
        assert "FAIL CONFLICT" in result.output

    def test_create_validation_failure(self, cli_runner, staff_x):
        result = cli_runner.invoke(args=["timeoff", "create", str(staff_x.id), "2026-12-05", "2026-12-01"])
        assert "FAIL VALIDATION_ERROR: End date must be on or after start date" in result.output

    def test_review_rejects_unknown_decision(self, cli_runner, staff_x, manager_a):
        result = cli_runner.invoke(args=["timeoff", "review", str(manager_a.id), "1", "MAYBE"])
        assert result.exit_code != 0
