# Overview: Flask CLI command groups for bootstrap, inspection, and time-off operations.

# backend/staffgate/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init
#   Idempotent bootstrap: creates tables, roles (ADMIN, MANAGER, STAFF), permissions and default grants.
#
# Users / venues:
# - python -m flask users create --username alice --email alice@example.com --role STAFF
# - python -m flask venues create --name "Harbour Bar" --code HARBOUR
# - python -m flask venues assign 3 1 --primary
# - python -m flask venues list-for 3
# - python -m flask venues shared-users 3 [--include-inactive]
#
# Permission inspection:
# - python -m flask perms list [--role MANAGER]
# - python -m flask perms check 3 timeoff approve [--venue-id 1]
# - python -m flask perms grant-venue 3 1 timeoff:approve
#
# Time-off workflow:
# - python -m flask timeoff create 3 2026-12-01 2026-12-05 --reason "Family wedding abroad"
# - python -m flask timeoff cancel 3 17
# - python -m flask timeoff review 5 17 APPROVED [--notes "Enjoy"] [--expected-version 1]

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .models import Role, User, Venue
from .permissions import GrantScope, WILDCARD
from .services import permission_service, time_off_service, venue_service


def _echo_result(result) -> None:
    if result.ok:
        request = result.value
        click.echo(
            f"PASS request {request.id}: {request.status} "
            f"{request.start_date.isoformat()}..{request.end_date.isoformat()} (version {request.version})"
        )
    else:
        click.echo(f"FAIL {result.kind}: {result.message}")


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Initialize the access-control tables.

    Creates:
    - All tables (if missing)
    - Roles: ADMIN, MANAGER, STAFF
    - The permission catalogue and default role grants
    """
    click.echo("START Initializing staffgate...")
    db.create_all()

    created_roles = permission_service.create_default_roles()
    click.echo(f"PASS Roles created: {created_roles}")

    perm_count = permission_service.initialize_permissions()
    assignment_count = permission_service.assign_default_role_permissions()
    click.echo(f"PASS Created {perm_count} permissions, {assignment_count} role assignments")

    if current_app.config.get("PERMISSION_MATRIX_SOURCE") == "database":
        from . import install_permission_matrix
        install_permission_matrix(current_app._get_current_object())
        click.echo("PASS Reloaded permission matrix from database")

    click.echo("DONE")


@click.group('users')
def users_group():
    """User commands."""


@users_group.command('create')
@click.option('--username', required=True)
@click.option('--email', required=True)
@click.option('--role', 'role_name', default=None, help='Role name (ADMIN, MANAGER, STAFF)')
@with_appcontext
def create_user_cli(username, email, role_name):
    """Create a user, optionally with a role."""
    if db.session.query(User).filter_by(username=username).first():
        click.echo(f"FAIL User '{username}' already exists")
        return

    role = None
    if role_name:
        role = db.session.query(Role).filter_by(name=role_name.upper()).first()
        if not role:
            click.echo(f"FAIL Role '{role_name}' not found (run `flask system init`)")
            return

    user = User(username=username, email=email, role_id=role.id if role else None)
    db.session.add(user)
    db.session.commit()
    click.echo(f"PASS Created user {user.username} (ID: {user.id}, Role: {role.name if role else 'none'})")


@click.group('venues')
def venues_group():
    """Venue membership commands."""


@venues_group.command('create')
@click.option('--name', required=True)
@click.option('--code', required=True, help='Short code (unique)')
@with_appcontext
def create_venue_cli(name, code):
    if db.session.query(Venue).filter_by(code=code).first():
        click.echo(f"FAIL Venue with code '{code}' already exists")
        return
    venue = Venue(name=name, code=code, is_active=True)
    db.session.add(venue)
    db.session.commit()
    click.echo(f"PASS Created venue {venue.name} (ID: {venue.id}, Code: {venue.code})")


@venues_group.command('assign')
@click.argument('user_id', type=int)
@click.argument('venue_id', type=int)
@click.option('--primary', is_flag=True, default=False)
@with_appcontext
def assign_venue_cli(user_id, venue_id, primary):
    try:
        venue_service.assign_venue(user_id=user_id, venue_id=venue_id, is_primary=primary)
    except venue_service.VenueMembershipError as exc:
        click.echo(f"FAIL {exc}")
        return
    click.echo(f"PASS User {user_id} assigned to venue {venue_id}{' (primary)' if primary else ''}")


@venues_group.command('list-for')
@click.argument('user_id', type=int)
@with_appcontext
def list_venues_for_cli(user_id):
    """List a user's memberships, including inactive venues."""
    stats = venue_service.venue_stats(user_id)
    if not stats["venues"]:
        click.echo("No venues found.")
        return

    click.echo("\n" + "="*70)
    click.echo(f"{'ID':<5} {'Name':<35} {'Code':<15} {'Active'}")
    click.echo("="*70)
    for venue in stats["venues"]:
        name = venue_service.format_venue_name(venue["name"], venue["is_primary"])
        active_str = "Yes" if venue["is_active"] else "No"
        click.echo(f"{venue['id']:<5} {name:<35} {venue['code'] or '-':<15} {active_str}")
    click.echo("="*70)
    click.echo(f"Active: {stats['active_venues']}  Inactive: {stats['inactive_venues']}\n")


@venues_group.command('shared-users')
@click.argument('user_id', type=int)
@click.option('--include-inactive', is_flag=True, default=False)
@with_appcontext
def shared_users_cli(user_id, include_inactive):
    """List users sharing an active venue with USER_ID."""
    user_ids = venue_service.shared_venue_user_ids(user_id, include_inactive_users=include_inactive)
    if not user_ids:
        click.echo("No shared users.")
        return

    users = db.session.query(User).filter(User.id.in_(user_ids)).order_by(User.id.asc()).all()
    for user in users:
        active_str = "" if user.is_active else " (inactive)"
        click.echo(f"{user.id:<5} {user.username}{active_str}")
    click.echo(f"\nTotal: {len(users)}")


@click.group('perms')
def perms_group():
    """Permission inspection commands."""


@perms_group.command('list')
@click.option('--role', 'role_name', default=None, help='Show grants of one role')
@with_appcontext
def list_permissions_cli(role_name):
    """List role grants from the active permission matrix."""
    matrix = permission_service.get_permission_matrix()

    role_names = [role_name.upper()] if role_name else matrix.role_names
    for name in role_names:
        grants = sorted(matrix.grants_for(name), key=lambda g: (g.resource, g.action))
        click.echo(f"\n{name} ({len(grants)} grants)")
        click.echo("-"*50)
        for grant in grants:
            marker = " (all)" if grant.resource == WILDCARD else ""
            click.echo(f"  {grant.code:<35} {grant.scope}{marker}")
    click.echo("")


@perms_group.command('check')
@click.argument('user_id', type=int)
@click.argument('resource')
@click.argument('action')
@click.option('--venue-id', type=int, default=None)
@with_appcontext
def check_permission_cli(user_id, resource, action, venue_id):
    """Check whether a user holds RESOURCE:ACTION (optionally at a venue)."""
    evaluator = permission_service.get_evaluator()
    if venue_id is None:
        allowed = evaluator.has_permission(user_id, resource, action)
        where = "any scope"
    else:
        allowed = evaluator.has_venue_permission(user_id, resource, action, venue_id)
        where = f"venue {venue_id}"

    click.echo(f"User {user_id} {resource}:{action} at {where}: {'ALLOWED' if allowed else 'DENIED'}")
    codes = evaluator.effective_permissions(user_id, venue_id)
    click.echo(f"Effective permissions: {len(codes)}")


@perms_group.command('grant-venue')
@click.argument('user_id', type=int)
@click.argument('venue_id', type=int)
@click.argument('code')
@with_appcontext
def grant_venue_permission_cli(user_id, venue_id, code):
    """Grant CODE (resource:action) to a user at one venue."""
    try:
        permission_service.grant_venue_permission(user_id=user_id, venue_id=venue_id, code=code)
    except ValueError as exc:
        click.echo(f"FAIL {exc}")
        return
    click.echo(f"PASS Granted {code} to user {user_id} at venue {venue_id} ({GrantScope.VENUE})")


@click.group('timeoff')
def timeoff_group():
    """Time-off workflow commands."""


@timeoff_group.command('create')
@click.argument('owner_id', type=int)
@click.argument('start_date')
@click.argument('end_date')
@click.option('--reason', default=None)
@with_appcontext
def create_timeoff_cli(owner_id, start_date, end_date, reason):
    _echo_result(time_off_service.create_request(owner_id, start_date, end_date, reason=reason))


@timeoff_group.command('cancel')
@click.argument('owner_id', type=int)
@click.argument('request_id', type=int)
@with_appcontext
def cancel_timeoff_cli(owner_id, request_id):
    _echo_result(time_off_service.cancel_request(owner_id, request_id))


@timeoff_group.command('review')
@click.argument('reviewer_id', type=int)
@click.argument('request_id', type=int)
@click.argument('decision', type=click.Choice(['APPROVED', 'REJECTED'], case_sensitive=False))
@click.option('--notes', default=None)
@click.option('--expected-version', type=int, default=None)
@with_appcontext
def review_timeoff_cli(reviewer_id, request_id, decision, notes, expected_version):
    _echo_result(time_off_service.review_request(
        reviewer_id,
        request_id,
        decision,
        notes=notes,
        expected_version=expected_version,
    ))


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(venues_group)
    app.cli.add_command(perms_group)
    app.cli.add_command(timeoff_group)
