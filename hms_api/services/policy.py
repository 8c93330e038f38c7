"""
Access policy for console resources.

Every tenant-scoped decision goes through ``is_allowed``: Master Admins are
unrestricted, Property Admins act within their own property, and Staff can
read their property and edit only themselves.
"""

from typing import Optional, Set

from hms_api.errors import AuthorizationDenied
from hms_api.models.user import User, UserType


class Action:
    PROPERTY_CREATE = "property.create"
    PROPERTY_READ = "property.read"
    PROPERTY_UPDATE = "property.update"
    PROPERTY_DELETE = "property.delete"
    PROPERTY_TOGGLE = "property.toggle"
    PROPERTY_STATS = "property.stats"

    USER_CREATE = "user.create"
    USER_READ = "user.read"
    USER_UPDATE = "user.update"
    USER_DELETE = "user.delete"
    USER_TOGGLE = "user.toggle"
    USER_STATS = "user.stats"
    USER_ASSIGN_ROLES = "user.assign_roles"

    ROLE_WRITE = "role.write"
    PERMISSION_WRITE = "permission.write"


# Actions only a Master Admin may perform
MASTER_ONLY = {
    Action.PROPERTY_CREATE,
    Action.PROPERTY_DELETE,
    Action.PROPERTY_TOGGLE,
    Action.PROPERTY_STATS,
    Action.USER_STATS,
    Action.USER_ASSIGN_ROLES,
    Action.ROLE_WRITE,
    Action.PERMISSION_WRITE,
}

# Fields a non-Master-Admin may not change, even on their own account
RESTRICTED_USER_FIELDS = frozenset({"user_type", "property_id", "is_active", "role_ids"})


def _same_property(actor: User, resource_property_id: Optional[int]) -> bool:
    return actor.property_id is not None and actor.property_id == resource_property_id


def is_allowed(
    actor: User,
    action: str,
    resource_property_id: Optional[int] = None,
    target: Optional[User] = None,
) -> bool:
    """Decide whether ``actor`` may perform ``action`` on a resource owned by ``resource_property_id``.

    ``target`` is the user being acted on by user actions. For ``user.create``
    it is the unsaved account built from the request.
    """
    if actor.user_type == UserType.MASTER_ADMIN:
        return True

    if action in MASTER_ONLY:
        return False

    is_property_admin = actor.user_type == UserType.PROPERTY_ADMIN
    in_tenant = _same_property(actor, resource_property_id)
    is_self = target is not None and target.id is not None and target.id == actor.id

    if action == Action.PROPERTY_READ:
        return in_tenant
    if action == Action.PROPERTY_UPDATE:
        return is_property_admin and in_tenant

    if action in (Action.USER_READ, Action.USER_UPDATE):
        return is_self or (is_property_admin and in_tenant)
    if action == Action.USER_CREATE:
        return (
            is_property_admin
            and in_tenant
            and target is not None
            and target.user_type == UserType.STAFF
        )
    if action == Action.USER_DELETE:
        return (
            is_property_admin
            and in_tenant
            and target is not None
            and target.user_type == UserType.STAFF
        )
    if action == Action.USER_TOGGLE:
        return is_property_admin and in_tenant

    return False


def enforce(
    actor: User,
    action: str,
    resource_property_id: Optional[int] = None,
    target: Optional[User] = None,
    message: str = "Insufficient permissions",
) -> None:
    """Raise AuthorizationDenied unless ``is_allowed``"""
    if not is_allowed(actor, action, resource_property_id, target):
        raise AuthorizationDenied(message)


def restricted_fields_for(actor: User) -> Set[str]:
    """Fields silently dropped from user updates made by ``actor``"""
    if actor.user_type == UserType.MASTER_ADMIN:
        return set()
    return set(RESTRICTED_USER_FIELDS)
