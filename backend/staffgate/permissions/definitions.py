# Overview: All permission definitions organized by resource.
# Each permission is defined as: (resource, action, description)

from .categories import PermissionResource


# -- TIME OFF --

TIMEOFF_PERMISSIONS = [
    (PermissionResource.TIMEOFF, "create", "Create own time-off requests"),
    (PermissionResource.TIMEOFF, "view_own", "View own time-off requests"),
    (PermissionResource.TIMEOFF, "view_team", "View time-off requests in shared venues"),
    (PermissionResource.TIMEOFF, "approve", "Approve or reject time-off requests"),
    (PermissionResource.TIMEOFF, "view_all", "View all time-off requests"),
]


# -- AVAILABILITY --

AVAILABILITY_PERMISSIONS = [
    (PermissionResource.AVAILABILITY, "view_own", "View own availability"),
    (PermissionResource.AVAILABILITY, "edit_own", "Edit own availability"),
    (PermissionResource.AVAILABILITY, "view_team", "View team availability in shared venues"),
    (PermissionResource.AVAILABILITY, "edit_team", "Edit team availability in shared venues"),
]


# -- SCHEDULES --

SCHEDULE_PERMISSIONS = [
    (PermissionResource.SCHEDULES, "view_own", "View own schedule"),
    (PermissionResource.SCHEDULES, "view_team", "View team schedules"),
    (PermissionResource.SCHEDULES, "edit_team", "Edit team schedules"),
    (PermissionResource.SCHEDULES, "publish", "Publish schedules"),
]


# -- USERS --

USER_PERMISSIONS = [
    (PermissionResource.USERS, "view_team", "View users in shared venues"),
    (PermissionResource.USERS, "edit_team", "Edit users in shared venues"),
    (PermissionResource.USERS, "view_all", "View all users"),
]


# -- REPORTS --

REPORT_PERMISSIONS = [
    (PermissionResource.REPORTS, "view_team", "View reports for assigned venues"),
    (PermissionResource.REPORTS, "export_team", "Export data for assigned venues"),
]


# -- ADMIN --

ADMIN_PERMISSIONS = [
    (PermissionResource.ADMIN, "manage_users", "Full user management"),
    (PermissionResource.ADMIN, "manage_roles", "Manage roles and permissions"),
    (PermissionResource.ADMIN, "manage_venues", "Manage venue settings"),
    (PermissionResource.AUDIT, "view_audit_logs", "View system audit logs"),
]


# Combined list of all permissions
PERMISSION_DEFINITIONS = (
    TIMEOFF_PERMISSIONS
    + AVAILABILITY_PERMISSIONS
    + SCHEDULE_PERMISSIONS
    + USER_PERMISSIONS
    + REPORT_PERMISSIONS
    + ADMIN_PERMISSIONS
)
