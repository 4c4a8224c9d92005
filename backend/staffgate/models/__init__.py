from .tenancy import Venue, UserVenue
from .auth import User, Role, Permission, RolePermission, UserVenuePermission
from .time_off import TimeOffRequest
from .rosters import Roster, RosterShift
from .audit import AuditLog
from .communications import Notification

__all__ = [
    'Venue', 'UserVenue',
    'User', 'Role', 'Permission', 'RolePermission', 'UserVenuePermission',
    'TimeOffRequest',
    'Roster', 'RosterShift',
    'AuditLog',
    'Notification',
]
