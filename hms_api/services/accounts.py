"""Account operations: loading, registration bootstrap, login, password changes, reset"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
import structlog

from hms_api.config import settings
from hms_api.errors import (
    AuthenticationRequired,
    AuthorizationDenied,
    Conflict,
    ValidationFailed,
)
from hms_api.models.bootstrap import FIRST_MASTER_ADMIN, BootstrapClaim
from hms_api.models.property import Property
from hms_api.models.role import Role
from hms_api.models.user import User, UserType, user_roles
from hms_api.schemas.auth import RESET_CONFIRMATION, RegisterRequest
from hms_api.services.seed import DEFAULT_ROLE_BY_USER_TYPE
from hms_api.services.tokens import get_password_hash, verify_password

logger = structlog.get_logger()

LOCKED_MESSAGE = "Authentication required for user registration"
LOCKED_DETAILS = (
    "A Master Administrator already exists in the system. "
    "Please login as a Master Admin to create new users."
)


def user_load_options():
    """Eager loads needed to render a user with roles, permissions and property"""
    return (
        selectinload(User.roles).selectinload(Role.permissions),
        selectinload(User.property),
    )


async def load_user(db: AsyncSession, user_id: int) -> Optional[User]:
    """Load a user with roles, permissions and property, refreshing any cached instance"""
    result = await db.execute(
        select(User)
        .where(User.id == user_id)
        .options(*user_load_options())
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def find_master_admin(db: AsyncSession) -> Optional[User]:
    """Return the earliest Master Admin, if any exists"""
    result = await db.execute(
        select(User)
        .where(User.user_type == UserType.MASTER_ADMIN)
        .order_by(User.created_at, User.id)
        .limit(1)
    )
    return result.scalar_one_or_none()


async def count_master_admins(db: AsyncSession) -> int:
    result = await db.execute(
        select(func.count(User.id)).where(User.user_type == UserType.MASTER_ADMIN)
    )
    return result.scalar()


async def ensure_email_available(db: AsyncSession, email: Optional[str], exclude_id: Optional[int] = None) -> None:
    if not email:
        return
    query = select(User.id).where(User.email == email)
    if exclude_id is not None:
        query = query.where(User.id != exclude_id)
    result = await db.execute(query)
    if result.first() is not None:
        raise Conflict("User with this email already exists")


async def ensure_property_exists(db: AsyncSession, property_id: Optional[int]) -> None:
    if property_id is None:
        return
    if await db.get(Property, property_id) is None:
        raise ValidationFailed("Property not found")


async def default_role_for(db: AsyncSession, user_type: UserType) -> Optional[Role]:
    """Resolve the registration default role by its stable name"""
    role_name = DEFAULT_ROLE_BY_USER_TYPE[user_type]
    result = await db.execute(select(Role).where(Role.name == role_name))
    role = result.scalar_one_or_none()
    if role is None:
        logger.warning("Default role missing, registering without role", role=role_name)
    return role


async def register_user(
    db: AsyncSession,
    data: RegisterRequest,
    actor: Optional[User],
) -> User:
    """
    Register a user through the bootstrap gate.

    While no Master Admin exists registration is open to anyone and the
    requested account type is honoured. Once one exists only an authenticated
    Master Admin may register further users. Creating the first Master Admin
    inserts a bootstrap claim row, so concurrent first registrations cannot
    both succeed.
    """
    existing_admin = await find_master_admin(db)

    if existing_admin is not None:
        if actor is None:
            raise AuthenticationRequired(
                LOCKED_MESSAGE,
                details=LOCKED_DETAILS,
                existing_master_admin={
                    "email": existing_admin.email,
                    "created_at": existing_admin.created_at,
                },
            )
        if not actor.is_master_admin():
            raise AuthorizationDenied("Only Master Admin can register new users")

    await ensure_email_available(db, data.email)
    await ensure_property_exists(db, data.property_id)

    if existing_admin is None and data.user_type == UserType.MASTER_ADMIN:
        db.add(BootstrapClaim(name=FIRST_MASTER_ADMIN))
        try:
            await db.flush()
        except IntegrityError:
            await db.rollback()
            logger.warning("Concurrent first Master Admin registration rejected", email=data.email)
            raise AuthenticationRequired(LOCKED_MESSAGE, details=LOCKED_DETAILS)

    user = User(
        full_name=data.full_name,
        email=data.email,
        phone=data.phone,
        password_hash=get_password_hash(data.password),
        user_type=data.user_type,
        property_id=data.property_id,
        is_active=True,
    )

    role = await default_role_for(db, data.user_type)
    if role is not None:
        user.roles.append(role)

    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise Conflict("User with this email already exists")

    logger.info(
        "User registered",
        user_id=user.id,
        user_type=user.user_type.value,
        bootstrap=existing_admin is None,
    )
    return await load_user(db, user.id)


async def authenticate(db: AsyncSession, email: str, password: str) -> User:
    """Check credentials; unknown email and wrong password fail identically"""
    result = await db.execute(
        select(User).where(User.email == email, User.is_active == True)
    )
    user = result.scalar_one_or_none()

    if not user or not user.password_hash or not verify_password(password, user.password_hash):
        logger.info("Login failed", email=email)
        raise AuthenticationRequired("Invalid email or password")

    user.last_login = datetime.utcnow()
    await db.flush()
    return user


async def change_password(db: AsyncSession, user: User, current_password: str, new_password: str) -> None:
    """Re-hash the password and revoke the stored refresh token, forcing a new login"""
    if not user.password_hash:
        raise ValidationFailed("User has no password set")

    if not verify_password(current_password, user.password_hash):
        raise ValidationFailed("Current password is incorrect")

    user.password_hash = get_password_hash(new_password)
    user.refresh_token = None
    await db.commit()


async def reset_system(db: AsyncSession, confirm_reset: Optional[str]) -> int:
    """Delete every user so the first Master Admin can be registered again"""
    if settings.is_production:
        raise AuthorizationDenied("System reset is not allowed in production")

    if confirm_reset != RESET_CONFIRMATION:
        raise ValidationFailed(
            "System reset requires explicit confirmation",
            required_confirmation=RESET_CONFIRMATION,
        )

    await db.execute(delete(user_roles))
    result = await db.execute(delete(User))
    await db.execute(delete(BootstrapClaim))
    await db.commit()

    logger.warning("System reset, all users deleted", deleted=result.rowcount)
    return result.rowcount


async def ensure_not_last_master_admin(db: AsyncSession, user: User) -> None:
    """Refuse to remove the only remaining Master Admin, which would reopen registration"""
    if user.user_type == UserType.MASTER_ADMIN and await count_master_admins(db) <= 1:
        raise ValidationFailed("Cannot remove the last Master Admin")


async def resolve_roles(db: AsyncSession, role_ids: List[int]) -> List[Role]:
    """Load roles by id; every id must exist"""
    wanted = set(role_ids)
    if not wanted:
        return []
    result = await db.execute(select(Role).where(Role.id.in_(wanted)))
    roles = list(result.scalars().all())
    if len(roles) != len(wanted):
        raise ValidationFailed("One or more roles not found")
    return roles
