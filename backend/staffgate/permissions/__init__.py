# Overview: Permission system package.
# Re-exports all public APIs.

from .categories import PermissionResource, GrantScope, WILDCARD
from .definitions import (
    PERMISSION_DEFINITIONS,
    TIMEOFF_PERMISSIONS,
    AVAILABILITY_PERMISSIONS,
    SCHEDULE_PERMISSIONS,
    USER_PERMISSIONS,
    REPORT_PERMISSIONS,
    ADMIN_PERMISSIONS,
)
from .roles import DEFAULT_ROLES, DEFAULT_ROLE_GRANTS, ROLE_ADMIN, ROLE_MANAGER, ROLE_STAFF
from .matrix import Grant, PermissionMatrix, build_default_matrix
from .helpers import (
    permission_code,
    split_permission_code,
    get_all_permission_codes,
    validate_permission_code,
)

__all__ = [
    "PermissionResource",
    "GrantScope",
    "WILDCARD",
    "PERMISSION_DEFINITIONS",
    "TIMEOFF_PERMISSIONS",
    "AVAILABILITY_PERMISSIONS",
    "SCHEDULE_PERMISSIONS",
    "USER_PERMISSIONS",
    "REPORT_PERMISSIONS",
    "ADMIN_PERMISSIONS",
    "DEFAULT_ROLES",
    "DEFAULT_ROLE_GRANTS",
    "ROLE_ADMIN",
    "ROLE_MANAGER",
    "ROLE_STAFF",
    "Grant",
    "PermissionMatrix",
    "build_default_matrix",
    "permission_code",
    "split_permission_code",
    "get_all_permission_codes",
    "validate_permission_code",
]
