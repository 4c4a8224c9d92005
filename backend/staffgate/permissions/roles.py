# Overview: Default role names and their grants.
# Each grant is (resource, action, scope).

from .categories import PermissionResource as R, GrantScope, WILDCARD


ROLE_ADMIN = "ADMIN"
ROLE_MANAGER = "MANAGER"
ROLE_STAFF = "STAFF"

DEFAULT_ROLES = {
    ROLE_ADMIN: "Organization administrator; holds every capability",
    ROLE_MANAGER: "Venue manager; team capabilities at venues they belong to",
    ROLE_STAFF: "Staff member; self-service capabilities only",
}

_STAFF_GRANTS = [
    (R.AVAILABILITY, "view_own", GrantScope.GLOBAL),
    (R.AVAILABILITY, "edit_own", GrantScope.GLOBAL),
    (R.TIMEOFF, "create", GrantScope.GLOBAL),
    (R.TIMEOFF, "view_own", GrantScope.GLOBAL),
    (R.SCHEDULES, "view_own", GrantScope.GLOBAL),
]

DEFAULT_ROLE_GRANTS = {
    ROLE_ADMIN: [
        (WILDCARD, WILDCARD, GrantScope.GLOBAL),
    ],
    ROLE_MANAGER: _STAFF_GRANTS + [
        (R.AVAILABILITY, "view_team", GrantScope.VENUE),
        (R.AVAILABILITY, "edit_team", GrantScope.VENUE),
        (R.TIMEOFF, "view_team", GrantScope.VENUE),
        (R.TIMEOFF, "approve", GrantScope.VENUE),
        (R.USERS, "view_team", GrantScope.VENUE),
        (R.USERS, "edit_team", GrantScope.VENUE),
        (R.SCHEDULES, "view_team", GrantScope.VENUE),
        (R.SCHEDULES, "edit_team", GrantScope.VENUE),
        (R.SCHEDULES, "publish", GrantScope.VENUE),
        (R.REPORTS, "view_team", GrantScope.VENUE),
        (R.REPORTS, "export_team", GrantScope.VENUE),
    ],
    ROLE_STAFF: list(_STAFF_GRANTS),
}
