"""Default roles and permissions, inserted idempotently by name and code"""

from typing import Dict, List, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
import structlog

from hms_api.models.role import Permission, Role
from hms_api.models.user import UserType

logger = structlog.get_logger()

MASTER_ADMIN_ROLE = "Master Admin"
PROPERTY_ADMIN_ROLE = "Property Admin"
SERVICE_STAFF_ROLE = "Service Staff"

# Role assigned on registration, looked up by name
DEFAULT_ROLE_BY_USER_TYPE: Dict[UserType, str] = {
    UserType.MASTER_ADMIN: MASTER_ADMIN_ROLE,
    UserType.PROPERTY_ADMIN: PROPERTY_ADMIN_ROLE,
    UserType.STAFF: SERVICE_STAFF_ROLE,
}

DEFAULT_ROLES: List[Tuple[str, str]] = [
    (MASTER_ADMIN_ROLE, "Super administrator with full system access"),
    (PROPERTY_ADMIN_ROLE, "Administrator for a specific property"),
    ("Hotel Manager", "Manager for hotel operations"),
    ("Restaurant Manager", "Manager for restaurant operations"),
    ("Front Desk Staff", "Hotel front desk operations staff"),
    ("Housekeeping Staff", "Hotel housekeeping staff"),
    ("Kitchen Staff", "Restaurant kitchen staff"),
    (SERVICE_STAFF_ROLE, "Restaurant service staff"),
]

DEFAULT_PERMISSIONS: List[Tuple[str, str]] = [
    ("property.create", "Create new properties"),
    ("property.read", "View property information"),
    ("property.update", "Update property information"),
    ("property.delete", "Delete properties"),
    ("user.create", "Create new users"),
    ("user.read", "View user information"),
    ("user.update", "Update user information"),
    ("user.delete", "Delete users"),
    ("role.create", "Create new roles"),
    ("role.read", "View roles"),
    ("role.update", "Update roles"),
    ("role.delete", "Delete roles"),
    ("room.manage", "Manage hotel rooms"),
    ("booking.manage", "Manage hotel bookings"),
    ("guest.manage", "Manage guest information"),
    ("menu.manage", "Manage restaurant menu"),
    ("order.manage", "Manage restaurant orders"),
    ("table.manage", "Manage restaurant tables"),
    ("report.view", "View reports and analytics"),
]

# Extended catalogue installed by the permissions/initialize endpoint
CATALOGUE_PERMISSIONS: List[Tuple[str, str]] = [
    ("hotel.view", "View hotel information"),
    ("hotel.manage", "Manage hotel settings"),
    ("hotel.rooms.view", "View room information"),
    ("hotel.rooms.manage", "Manage rooms and bookings"),
    ("hotel.guests.view", "View guest information"),
    ("hotel.guests.manage", "Manage guest accounts"),
    ("restaurant.view", "View restaurant information"),
    ("restaurant.manage", "Manage restaurant settings"),
    ("restaurant.menu.view", "View menu items"),
    ("restaurant.menu.manage", "Manage menu and pricing"),
    ("restaurant.orders.view", "View orders"),
    ("restaurant.orders.manage", "Manage orders and kitchen"),
    ("staff.view", "View staff information"),
    ("staff.manage", "Manage staff accounts and schedules"),
    ("roles.view", "View roles and permissions"),
    ("roles.manage", "Manage roles and permissions"),
    ("reports.view", "View reports and analytics"),
    ("reports.export", "Export reports and data"),
    ("system.settings", "Manage system settings"),
    ("system.backup", "System backup and maintenance"),
]

PROPERTY_ADMIN_PERMISSIONS = [
    "property.read",
    "property.update",
    "user.create",
    "user.read",
    "user.update",
    "user.delete",
    "role.read",
    "report.view",
]


async def ensure_permissions(db: AsyncSession, entries: List[Tuple[str, str]]) -> List[Permission]:
    """Insert permissions whose code is missing; returns only the newly created ones"""
    result = await db.execute(select(Permission.code))
    existing = set(result.scalars().all())

    created = []
    for code, description in entries:
        if code in existing:
            continue
        permission = Permission(code=code, description=description)
        db.add(permission)
        created.append(permission)
        existing.add(code)

    await db.flush()
    return created


async def ensure_roles(db: AsyncSession) -> List[Role]:
    result = await db.execute(select(Role.name))
    existing = set(result.scalars().all())

    created = []
    for name, description in DEFAULT_ROLES:
        if name in existing:
            continue
        role = Role(name=name, description=description)
        db.add(role)
        created.append(role)

    await db.flush()
    return created


async def seed_roles_and_permissions(db: AsyncSession) -> None:
    """Install default roles and permissions, and grant them to the two admin roles"""
    new_roles = await ensure_roles(db)
    new_permissions = await ensure_permissions(db, DEFAULT_PERMISSIONS)

    result = await db.execute(
        select(Role)
        .where(Role.name.in_([MASTER_ADMIN_ROLE, PROPERTY_ADMIN_ROLE]))
        .options(selectinload(Role.permissions))
        .execution_options(populate_existing=True)
    )
    admin_roles = {role.name: role for role in result.scalars().all()}

    result = await db.execute(select(Permission))
    permissions = {permission.code: permission for permission in result.scalars().all()}

    grants = {
        MASTER_ADMIN_ROLE: list(permissions),
        PROPERTY_ADMIN_ROLE: PROPERTY_ADMIN_PERMISSIONS,
    }
    for role_name, codes in grants.items():
        role = admin_roles[role_name]
        held = {permission.code for permission in role.permissions}
        for code in codes:
            if code in permissions and code not in held:
                role.permissions.append(permissions[code])

    await db.commit()

    logger.info(
        "Seeded roles and permissions",
        roles_created=len(new_roles),
        permissions_created=len(new_permissions),
    )
