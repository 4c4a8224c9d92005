# Overview: Service-layer operations for venue membership; resolves shared-venue access.

"""
Venue Membership Resolver

WHY: Which staff members can see or act on each other's data is derived
from the venues they share. Every resolver query joins on Venue.is_active,
so an inactive venue is excluded at the source: deactivating a venue
silently removes all access derived from it, and no caller has to filter
post-hoc.

SECURITY INVARIANTS:
1. active_venue_ids never contains an inactive venue
2. shared_venue_user_ids never contains the caller
3. A user with no active venues shares nothing with anyone
4. At most one membership per user is primary
"""

from __future__ import annotations

from typing import Iterable

from ..extensions import db
from ..models import User, UserVenue, Venue


class VenueMembershipError(ValueError):
    """Raised for invalid membership changes."""
    pass


def _active_memberships(user_id: int):
    return (
        db.session.query(UserVenue)
        .join(Venue, Venue.id == UserVenue.venue_id)
        .filter(
            UserVenue.user_id == user_id,
            Venue.is_active.is_(True),
        )
    )


def active_venue_ids(user_id: int) -> set[int]:
    """All venues where the user has a membership AND the venue is active."""
    rows = _active_memberships(user_id).with_entities(UserVenue.venue_id).all()
    return {row[0] for row in rows}


def primary_venue_id(user_id: int) -> int | None:
    """
    The user's primary venue, if it is active.

    A primary membership that points at an inactive venue yields None, never
    the inactive venue.
    """
    row = (
        _active_memberships(user_id)
        .filter(UserVenue.is_primary.is_(True))
        .with_entities(UserVenue.venue_id)
        .first()
    )
    return row[0] if row else None


def can_access_venue(user_id: int, venue_id: int | None) -> bool:
    if venue_id is None:
        return False
    row = (
        _active_memberships(user_id)
        .filter(UserVenue.venue_id == venue_id)
        .with_entities(UserVenue.id)
        .first()
    )
    return row is not None


def shared_venue_user_ids(user_id: int, *, include_inactive_users: bool = False) -> set[int]:
    """
    Other users whose active venues intersect the caller's active venues.

    The caller is never included. Inactive users are excluded unless
    include_inactive_users is set. When the caller has no active venue the
    result is empty and no user query is issued.
    """
    venue_ids = active_venue_ids(user_id)
    if not venue_ids:
        return set()

    query = (
        db.session.query(User.id)
        .join(UserVenue, UserVenue.user_id == User.id)
        .filter(
            User.id != user_id,
            UserVenue.venue_id.in_(venue_ids),
        )
    )
    if not include_inactive_users:
        query = query.filter(User.is_active.is_(True))

    return {row[0] for row in query.distinct().all()}


def user_ids_in_venue(venue_id: int, *, include_inactive_users: bool = False) -> set[int]:
    """Members of an active venue. An inactive venue has no members."""
    query = (
        db.session.query(User.id)
        .join(UserVenue, UserVenue.user_id == User.id)
        .join(Venue, Venue.id == UserVenue.venue_id)
        .filter(
            UserVenue.venue_id == venue_id,
            Venue.is_active.is_(True),
        )
    )
    if not include_inactive_users:
        query = query.filter(User.is_active.is_(True))

    return {row[0] for row in query.distinct().all()}


def users_share_venue(user_id_a: int, user_id_b: int) -> bool:
    """True iff the two users' active venue sets intersect. Symmetric."""
    venues_a = active_venue_ids(user_id_a)
    if not venues_a:
        return False
    return bool(venues_a & active_venue_ids(user_id_b))


def shared_venue_ids(user_ids: Iterable[int]) -> set[int]:
    """
    Venues common to ALL listed users (intersection, not union).

    [] -> empty set; [u] -> active_venue_ids(u).
    """
    user_ids = list(user_ids)
    if not user_ids:
        return set()

    shared = active_venue_ids(user_ids[0])
    for other_id in user_ids[1:]:
        if not shared:
            break
        shared &= active_venue_ids(other_id)
    return shared


def venue_stats(user_id: int) -> dict:
    """Summary of every membership, including ones at inactive venues."""
    memberships = (
        db.session.query(UserVenue)
        .filter_by(user_id=user_id)
        .order_by(UserVenue.venue_id.asc())
        .all()
    )

    primary = next((m.venue for m in memberships if m.is_primary), None)
    active_count = sum(1 for m in memberships if m.venue.is_active)

    return {
        "total_venues": len(memberships),
        "active_venues": active_count,
        "inactive_venues": len(memberships) - active_count,
        "primary_venue": primary.to_dict() if primary else None,
        "venues": [
            {**m.venue.to_dict(), "is_primary": m.is_primary}
            for m in memberships
        ],
    }


def format_venue_name(venue_name: str, is_primary: bool) -> str:
    return f"{venue_name} (Primary)" if is_primary else venue_name


def _clear_primary(user_id: int, *, keep_venue_id: int | None = None) -> None:
    query = db.session.query(UserVenue).filter(
        UserVenue.user_id == user_id,
        UserVenue.is_primary.is_(True),
    )
    if keep_venue_id is not None:
        query = query.filter(UserVenue.venue_id != keep_venue_id)
    for membership in query.all():
        membership.is_primary = False
    # Flush before setting the new primary so the partial unique index never sees two
    db.session.flush()


def assign_venue(*, user_id: int, venue_id: int, is_primary: bool = False) -> UserVenue:
    user = db.session.query(User).filter_by(id=user_id).first()
    if not user:
        raise VenueMembershipError("User not found")

    venue = db.session.query(Venue).filter_by(id=venue_id).first()
    if not venue:
        raise VenueMembershipError("Venue not found")

    membership = db.session.query(UserVenue).filter_by(user_id=user_id, venue_id=venue_id).first()

    if is_primary:
        _clear_primary(user_id, keep_venue_id=venue_id)

    if membership:
        if is_primary and not membership.is_primary:
            membership.is_primary = True
        db.session.commit()
        return membership

    membership = UserVenue(user_id=user_id, venue_id=venue_id, is_primary=is_primary)
    db.session.add(membership)
    db.session.commit()
    return membership


def set_primary_venue(*, user_id: int, venue_id: int) -> UserVenue:
    membership = db.session.query(UserVenue).filter_by(user_id=user_id, venue_id=venue_id).first()
    if not membership:
        raise VenueMembershipError("User is not a member of this venue")

    _clear_primary(user_id, keep_venue_id=venue_id)
    membership.is_primary = True
    db.session.commit()
    return membership


def remove_venue(*, user_id: int, venue_id: int) -> bool:
    membership = db.session.query(UserVenue).filter_by(user_id=user_id, venue_id=venue_id).first()
    if not membership:
        return False

    db.session.delete(membership)
    db.session.commit()
    return True
