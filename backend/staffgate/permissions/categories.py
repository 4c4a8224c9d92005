# Overview: Permission resource and scope constants.


class PermissionResource:
    """Resources a grant can target."""
    USERS = "users"
    ROLES = "roles"
    VENUES = "venues"
    AVAILABILITY = "availability"
    TIMEOFF = "timeoff"
    SCHEDULES = "schedules"
    REPORTS = "reports"
    AUDIT = "audit"
    ADMIN = "admin"


class GrantScope:
    """
    Where a role grant applies.

    GLOBAL grants hold everywhere. VENUE grants hold only when evaluated
    against a venue where the grantee has an active membership.
    """
    GLOBAL = "GLOBAL"
    VENUE = "VENUE"

    ALL = (GLOBAL, VENUE)


WILDCARD = "*"
