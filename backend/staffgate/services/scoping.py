# Overview: Builds "owned by someone in my shared venues" query predicates.

"""
Scoped query filters.

A predicate is a plain value describing which rows a caller may see; it is
built once from the membership resolver and translated to SQLAlchemy at the
query seam. An empty shared set yields MatchNothing, which translates to a
constant false clause rather than an empty IN list.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from sqlalchemy import false

from . import venue_service


@dataclass(frozen=True)
class OwnerIn:
    field: str
    user_ids: frozenset


@dataclass(frozen=True)
class MatchNothing:
    field: str


Predicate = Union[OwnerIn, MatchNothing]


def scope_filter_for(
    user_id: int,
    target_field: str = "user_id",
    include_inactive_users: bool = False,
) -> Predicate:
    shared = venue_service.shared_venue_user_ids(
        user_id, include_inactive_users=include_inactive_users
    )
    if not shared:
        return MatchNothing(target_field)
    return OwnerIn(target_field, frozenset(shared))


def to_clause(predicate: Predicate, model):
    if isinstance(predicate, MatchNothing):
        return false()
    if isinstance(predicate, OwnerIn):
        column = getattr(model, predicate.field)
        return column.in_(sorted(predicate.user_ids))
    raise TypeError(f"Unsupported scope predicate: {predicate!r}")


def apply_scope(query, model, predicate: Predicate):
    return query.filter(to_clause(predicate, model))


def matches(predicate: Predicate, owner_id: int | None) -> bool:
    """In-memory evaluation of a predicate against one owner id."""
    if isinstance(predicate, OwnerIn):
        return owner_id in predicate.user_ids
    return False
