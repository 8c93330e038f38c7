"""Database models"""

from hms_api.models.property import Property, PropertyType
from hms_api.models.user import User, UserType, user_roles
from hms_api.models.role import Role, Permission, role_permissions
from hms_api.models.bootstrap import BootstrapClaim

__all__ = [
    "Property",
    "PropertyType",
    "User",
    "UserType",
    "user_roles",
    "Role",
    "Permission",
    "role_permissions",
    "BootstrapClaim",
]
