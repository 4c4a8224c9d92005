# Overview: Immutable role -> grant matrix resolved once per process.

"""
Permission matrix.

The matrix is built once at application start (from the definitions in
roles.py or from the role_permissions table) and handed by reference to the
PermissionEvaluator. It is read-only: there is no API to add or remove a
grant at runtime. Changing grants means rebuilding the matrix.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping

from .categories import GrantScope, WILDCARD
from .roles import DEFAULT_ROLE_GRANTS


@dataclass(frozen=True)
class Grant:
    resource: str
    action: str
    scope: str = GrantScope.GLOBAL

    def __post_init__(self):
        if self.scope not in GrantScope.ALL:
            raise ValueError(f"Unknown grant scope: {self.scope}")

    @property
    def code(self) -> str:
        return f"{self.resource}:{self.action}"

    @property
    def is_global(self) -> bool:
        return self.scope == GrantScope.GLOBAL

    def matches(self, resource: str, action: str) -> bool:
        """Exact match, or "resource:*" / "*:*" wildcard."""
        return self.resource in (resource, WILDCARD) and self.action in (action, WILDCARD)


@dataclass(frozen=True)
class PermissionMatrix:
    role_grants: Mapping[str, frozenset] = field(default_factory=dict)

    def __post_init__(self):
        frozen = {name: frozenset(grants) for name, grants in self.role_grants.items()}
        object.__setattr__(self, "role_grants", MappingProxyType(frozen))

    @classmethod
    def from_tuples(cls, role_grants: Mapping[str, Iterable[tuple]]) -> "PermissionMatrix":
        return cls({
            role: [Grant(*grant) for grant in grants]
            for role, grants in role_grants.items()
        })

    @property
    def role_names(self) -> list[str]:
        return sorted(self.role_grants)

    def grants_for(self, role_name: str | None) -> frozenset:
        if not role_name:
            return frozenset()
        return self.role_grants.get(role_name, frozenset())

    def matching_grants(self, role_name: str | None, resource: str, action: str) -> list[Grant]:
        return [g for g in self.grants_for(role_name) if g.matches(resource, action)]


def build_default_matrix() -> PermissionMatrix:
    return PermissionMatrix.from_tuples(DEFAULT_ROLE_GRANTS)
