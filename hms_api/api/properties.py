"""Property management API endpoints"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import case, false, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
import structlog

from hms_api.database import get_db
from hms_api.errors import Conflict, NotFound, ValidationFailed
from hms_api.models.property import Property, PropertyType
from hms_api.models.user import User, UserType
from hms_api.schemas.common import APIResponse, Pagination
from hms_api.schemas.property import (
    PropertyCreate,
    PropertyData,
    PropertyDetail,
    PropertyDetailData,
    PropertyListData,
    PropertyOverview,
    PropertyResponse,
    PropertyStatsData,
    PropertyUpdate,
    PropertyUserStats,
)
from hms_api.api.auth import get_current_user
from hms_api.services.policy import Action, enforce

router = APIRouter()
logger = structlog.get_logger()


async def _get_property_or_404(db: AsyncSession, property_id: int) -> Property:
    result = await db.execute(
        select(Property)
        .where(Property.id == property_id)
        .options(selectinload(Property.users))
        .execution_options(populate_existing=True)
    )
    prop = result.scalar_one_or_none()
    if not prop:
        raise NotFound("Property not found")
    return prop


async def _ensure_code_available(db: AsyncSession, code: str, exclude_id: Optional[int] = None) -> None:
    query = select(Property.id).where(Property.code == code)
    if exclude_id is not None:
        query = query.where(Property.id != exclude_id)
    result = await db.execute(query)
    if result.first() is not None:
        raise Conflict("Property with this code already exists")


@router.post("", response_model=APIResponse[PropertyData], status_code=status.HTTP_201_CREATED)
async def create_property(
    data: PropertyCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Create a new property (Master Admin only)"""
    enforce(current_user, Action.PROPERTY_CREATE, message="Master Admin access required")
    await _ensure_code_available(db, data.code)

    prop = Property(**data.model_dump())
    db.add(prop)
    await db.commit()
    await db.refresh(prop)

    logger.info("Property created", property_id=prop.id, code=prop.code)
    return APIResponse(
        message="Property created successfully",
        data=PropertyData(property=PropertyResponse.model_validate(prop)),
    )


@router.get("", response_model=APIResponse[PropertyListData])
async def list_properties(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    property_type: Optional[PropertyType] = None,
    is_active: Optional[bool] = None,
    search: Optional[str] = None,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List properties with pagination; non-admins only see their own property"""
    filters = []

    if not current_user.is_master_admin():
        if current_user.property_id is None:
            filters.append(false())
        else:
            filters.append(Property.id == current_user.property_id)

    if property_type:
        filters.append(Property.property_type == property_type)
    if is_active is not None:
        filters.append(Property.is_active == is_active)
    if search:
        pattern = f"%{search}%"
        filters.append(
            or_(
                Property.name.ilike(pattern),
                Property.code.ilike(pattern),
                Property.city.ilike(pattern),
            )
        )

    total_result = await db.execute(select(func.count(Property.id)).where(*filters))
    total = total_result.scalar()

    offset = (page - 1) * limit
    result = await db.execute(
        select(Property)
        .where(*filters)
        .options(selectinload(Property.users))
        .order_by(Property.created_at.desc(), Property.id.desc())
        .offset(offset)
        .limit(limit)
        .execution_options(populate_existing=True)
    )
    properties = result.scalars().all()

    return APIResponse(
        data=PropertyListData(
            properties=[PropertyDetail.model_validate(prop) for prop in properties],
            pagination=Pagination.build(page, limit, total),
        )
    )


@router.get("/stats", response_model=APIResponse[PropertyStatsData])
async def property_stats(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Property counts and per-property user breakdown (Master Admin only)"""
    enforce(current_user, Action.PROPERTY_STATS, message="Master Admin access required")

    total = (await db.execute(select(func.count(Property.id)))).scalar()
    active = (await db.execute(
        select(func.count(Property.id)).where(Property.is_active == True)
    )).scalar()

    result = await db.execute(
        select(Property.property_type, func.count(Property.id)).group_by(Property.property_type)
    )
    by_type = {property_type: count for property_type, count in result.all()}

    result = await db.execute(
        select(
            Property.id,
            Property.name,
            Property.property_type,
            func.count(User.id),
            func.coalesce(func.sum(case((User.user_type == UserType.PROPERTY_ADMIN, 1), else_=0)), 0),
            func.coalesce(func.sum(case((User.user_type == UserType.STAFF, 1), else_=0)), 0),
        )
        .outerjoin(User, User.property_id == Property.id)
        .group_by(Property.id, Property.name, Property.property_type)
        .order_by(Property.id)
    )
    details = [
        PropertyUserStats(
            property_id=prop_id,
            property_name=name,
            property_type=property_type,
            total_users=total_users,
            admins=admins,
            staff=staff,
        )
        for prop_id, name, property_type, total_users, admins, staff in result.all()
    ]

    return APIResponse(
        data=PropertyStatsData(
            overview=PropertyOverview(
                total_properties=total,
                active_properties=active,
                inactive_properties=total - active,
                hotels=by_type.get(PropertyType.HOTEL, 0),
                restaurants=by_type.get(PropertyType.RESTAURANT, 0),
            ),
            property_details=details,
        )
    )


@router.get("/{property_id}", response_model=APIResponse[PropertyDetailData])
async def get_property(
    property_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Get property details with its users"""
    enforce(current_user, Action.PROPERTY_READ, property_id, message="Access denied to this property")

    prop = await _get_property_or_404(db, property_id)
    return APIResponse(data=PropertyDetailData(property=PropertyDetail.model_validate(prop)))


@router.put("/{property_id}", response_model=APIResponse[PropertyDetailData])
async def update_property(
    property_id: int,
    data: PropertyUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Update property; the property type cannot change"""
    enforce(current_user, Action.PROPERTY_UPDATE, property_id, message="Access denied to this property")

    prop = await _get_property_or_404(db, property_id)

    updates = data.model_dump(exclude_unset=True)
    if not current_user.is_master_admin():
        updates.pop("is_active", None)

    if updates.get("code"):
        await _ensure_code_available(db, updates["code"], exclude_id=prop.id)

    for field, value in updates.items():
        if value is None and field in ("code", "name", "timezone", "is_active"):
            continue
        setattr(prop, field, value)

    await db.commit()

    prop = await _get_property_or_404(db, property_id)
    return APIResponse(
        message="Property updated successfully",
        data=PropertyDetailData(property=PropertyDetail.model_validate(prop)),
    )


@router.delete("/{property_id}", response_model=APIResponse[None])
async def delete_property(
    property_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Delete property (Master Admin only); refused while users reference it"""
    enforce(current_user, Action.PROPERTY_DELETE, property_id, message="Master Admin access required")

    prop = await _get_property_or_404(db, property_id)

    result = await db.execute(select(func.count(User.id)).where(User.property_id == property_id))
    user_count = result.scalar()
    if user_count:
        raise ValidationFailed(
            "Cannot delete property with existing users. Please reassign or delete users first.",
            user_count=user_count,
        )

    await db.delete(prop)
    await db.commit()

    logger.info("Property deleted", property_id=property_id, deleted_by=current_user.id)
    return APIResponse(message="Property deleted successfully")


@router.patch("/{property_id}/toggle-status", response_model=APIResponse[PropertyData])
async def toggle_property_status(
    property_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Activate or deactivate a property (Master Admin only)"""
    enforce(current_user, Action.PROPERTY_TOGGLE, property_id, message="Master Admin access required")

    prop = await _get_property_or_404(db, property_id)
    prop.is_active = not prop.is_active
    await db.commit()

    state = "activated" if prop.is_active else "deactivated"
    return APIResponse(
        message=f"Property {state} successfully",
        data=PropertyData(property=PropertyResponse.model_validate(prop)),
    )
