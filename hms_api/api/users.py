"""User management API endpoints"""

from datetime import datetime, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from hms_api.database import get_db
from hms_api.errors import NotFound, ValidationFailed
from hms_api.models.property import Property
from hms_api.models.user import User, UserType
from hms_api.schemas.common import APIResponse, Pagination
from hms_api.schemas.user import (
    AssignRolesRequest,
    UserCreate,
    UserData,
    UserDetail,
    UserListData,
    UserOverview,
    UsersByProperty,
    UserStatsData,
    UserUpdate,
)
from hms_api.api.auth import get_current_user
from hms_api.services import accounts
from hms_api.services.policy import Action, enforce, restricted_fields_for
from hms_api.services.tokens import get_password_hash

router = APIRouter()
logger = structlog.get_logger()


async def _get_user_or_404(db: AsyncSession, user_id: int) -> User:
    user = await accounts.load_user(db, user_id)
    if not user:
        raise NotFound("User not found")
    return user


@router.post("", response_model=APIResponse[UserData], status_code=status.HTTP_201_CREATED)
async def create_user(
    data: UserCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Create a user; Property Admins may only add staff to their own property"""
    if data.user_type != UserType.MASTER_ADMIN and data.property_id is None:
        raise ValidationFailed("property_id is required for property admin and staff accounts")

    user = User(
        full_name=data.full_name,
        email=data.email,
        phone=data.phone,
        user_type=data.user_type,
        property_id=data.property_id,
        password_hash=get_password_hash(data.password) if data.password else None,
        is_active=True,
    )
    enforce(
        current_user,
        Action.USER_CREATE,
        data.property_id,
        target=user,
        message="Property Admin can only create staff in their own property",
    )

    await accounts.ensure_email_available(db, data.email)
    await accounts.ensure_property_exists(db, data.property_id)

    # Explicit role assignment is a Master Admin privilege
    if data.role_ids and current_user.is_master_admin():
        roles = await accounts.resolve_roles(db, data.role_ids)
    else:
        role = await accounts.default_role_for(db, data.user_type)
        roles = [role] if role else []

    db.add(user)
    user.roles = roles
    await db.commit()

    logger.info("User created", user_id=user.id, created_by=current_user.id)
    user = await accounts.load_user(db, user.id)
    return APIResponse(message="User created successfully", data=UserData(user=UserDetail.model_validate(user)))


@router.get("", response_model=APIResponse[UserListData])
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    user_type: Optional[UserType] = None,
    property_id: Optional[int] = None,
    is_active: Optional[bool] = None,
    search: Optional[str] = None,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List users with pagination, scoped to the caller's reach"""
    filters = []

    if current_user.is_master_admin():
        if property_id is not None:
            filters.append(User.property_id == property_id)
    elif current_user.user_type == UserType.PROPERTY_ADMIN and current_user.property_id is not None:
        filters.append(User.property_id == current_user.property_id)
    else:
        filters.append(User.id == current_user.id)

    if user_type:
        filters.append(User.user_type == user_type)
    if is_active is not None:
        filters.append(User.is_active == is_active)
    if search:
        pattern = f"%{search}%"
        filters.append(
            or_(
                User.full_name.ilike(pattern),
                User.email.ilike(pattern),
                User.phone.ilike(pattern),
            )
        )

    total_result = await db.execute(select(func.count(User.id)).where(*filters))
    total = total_result.scalar()

    offset = (page - 1) * limit
    result = await db.execute(
        select(User)
        .where(*filters)
        .options(*accounts.user_load_options())
        .order_by(User.created_at.desc(), User.id.desc())
        .offset(offset)
        .limit(limit)
        .execution_options(populate_existing=True)
    )
    users = result.scalars().all()

    return APIResponse(
        data=UserListData(
            users=[UserDetail.model_validate(user) for user in users],
            pagination=Pagination.build(page, limit, total),
        )
    )


@router.get("/stats", response_model=APIResponse[UserStatsData])
async def user_stats(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """User counts by type and property (Master Admin only)"""
    enforce(current_user, Action.USER_STATS)

    total = (await db.execute(select(func.count(User.id)))).scalar()
    active = (await db.execute(select(func.count(User.id)).where(User.is_active == True))).scalar()

    result = await db.execute(select(User.user_type, func.count(User.id)).group_by(User.user_type))
    by_type = {user_type: count for user_type, count in result.all()}

    since = datetime.utcnow() - timedelta(days=30)
    recent = (await db.execute(select(func.count(User.id)).where(User.created_at >= since))).scalar()

    result = await db.execute(
        select(User.property_id, Property.name, Property.property_type, func.count(User.id))
        .outerjoin(Property, User.property_id == Property.id)
        .group_by(User.property_id, Property.name, Property.property_type)
        .order_by(User.property_id)
    )
    by_property = [
        UsersByProperty(
            property_id=prop_id,
            property_name=name,
            property_type=property_type,
            count=count,
        )
        for prop_id, name, property_type, count in result.all()
    ]

    return APIResponse(
        data=UserStatsData(
            overview=UserOverview(
                total_users=total,
                active_users=active,
                inactive_users=total - active,
                master_admins=by_type.get(UserType.MASTER_ADMIN, 0),
                property_admins=by_type.get(UserType.PROPERTY_ADMIN, 0),
                staff=by_type.get(UserType.STAFF, 0),
                recent_registrations=recent,
            ),
            users_by_property=by_property,
        )
    )


@router.get("/{user_id}", response_model=APIResponse[UserData])
async def get_user(
    user_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    user = await _get_user_or_404(db, user_id)
    enforce(current_user, Action.USER_READ, user.property_id, target=user)
    return APIResponse(data=UserData(user=UserDetail.model_validate(user)))


@router.put("/{user_id}", response_model=APIResponse[UserData])
async def update_user(
    user_id: int,
    data: UserUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Update a user; account-level fields are dropped unless the caller is a Master Admin"""
    user = await _get_user_or_404(db, user_id)
    enforce(current_user, Action.USER_UPDATE, user.property_id, target=user)

    updates = data.model_dump(exclude_unset=True)
    dropped = restricted_fields_for(current_user) & set(updates)
    for field in dropped:
        updates.pop(field)
    if dropped:
        logger.info("Ignored restricted user fields", user_id=user.id, fields=sorted(dropped))

    if updates.get("email"):
        await accounts.ensure_email_available(db, updates["email"], exclude_id=user.id)

    if "property_id" in updates:
        await accounts.ensure_property_exists(db, updates["property_id"])

    if "user_type" in updates and updates["user_type"] != UserType.MASTER_ADMIN:
        await accounts.ensure_not_last_master_admin(db, user)

    if "user_type" in updates or "property_id" in updates:
        user_type = updates.get("user_type") or user.user_type
        property_id = updates["property_id"] if "property_id" in updates else user.property_id
        if user_type != UserType.MASTER_ADMIN and property_id is None:
            raise ValidationFailed("property_id is required for property admin and staff accounts")

    if updates.get("is_active") is False and user.id == current_user.id:
        raise ValidationFailed("Cannot deactivate your own account")

    password = updates.pop("password", None)
    if password:
        user.password_hash = get_password_hash(password)
        user.refresh_token = None

    role_ids = updates.pop("role_ids", None)
    if role_ids is not None:
        user.roles = await accounts.resolve_roles(db, role_ids)

    for field, value in updates.items():
        if value is None and field in ("full_name", "user_type", "is_active"):
            continue
        setattr(user, field, value)

    await db.commit()

    user = await accounts.load_user(db, user.id)
    return APIResponse(message="User updated successfully", data=UserData(user=UserDetail.model_validate(user)))


@router.delete("/{user_id}", response_model=APIResponse[None])
async def delete_user(
    user_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    if user_id == current_user.id:
        raise ValidationFailed("Cannot delete your own account")

    user = await _get_user_or_404(db, user_id)
    enforce(current_user, Action.USER_DELETE, user.property_id, target=user)
    await accounts.ensure_not_last_master_admin(db, user)

    await db.delete(user)
    await db.commit()

    logger.info("User deleted", user_id=user_id, deleted_by=current_user.id)
    return APIResponse(message="User deleted successfully")


@router.patch("/{user_id}/toggle-status", response_model=APIResponse[UserData])
async def toggle_user_status(
    user_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Activate or deactivate a user"""
    if user_id == current_user.id:
        raise ValidationFailed("Cannot deactivate your own account")

    user = await _get_user_or_404(db, user_id)
    enforce(current_user, Action.USER_TOGGLE, user.property_id, target=user)

    user.is_active = not user.is_active
    await db.commit()

    state = "activated" if user.is_active else "deactivated"
    user = await accounts.load_user(db, user.id)
    return APIResponse(message=f"User {state} successfully", data=UserData(user=UserDetail.model_validate(user)))


@router.post("/{user_id}/roles", response_model=APIResponse[UserData])
async def assign_roles(
    user_id: int,
    data: AssignRolesRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Replace a user's role set (Master Admin only)"""
    enforce(current_user, Action.USER_ASSIGN_ROLES, message="Master Admin access required")

    user = await _get_user_or_404(db, user_id)
    user.roles = await accounts.resolve_roles(db, data.role_ids)
    await db.commit()

    user = await accounts.load_user(db, user.id)
    return APIResponse(message="Roles assigned successfully", data=UserData(user=UserDetail.model_validate(user)))
