"""Role and permission management API endpoints"""

from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
import structlog

from hms_api.database import get_db
from hms_api.errors import Conflict, NotFound, ValidationFailed
from hms_api.models.role import Permission, Role
from hms_api.models.user import User
from hms_api.schemas.common import APIResponse
from hms_api.schemas.role import (
    AssignPermissionsRequest,
    PermissionCreate,
    PermissionData,
    PermissionDetail,
    PermissionInitData,
    PermissionListData,
    PermissionResponse,
    RoleCreate,
    RoleData,
    RoleDetail,
    RoleDetailData,
    RoleListData,
    RoleResponse,
    RoleUpdate,
)
from hms_api.schemas.user import UserData, UserDetail
from hms_api.api.auth import get_current_user, require_master_admin
from hms_api.services import accounts
from hms_api.services.seed import CATALOGUE_PERMISSIONS, DEFAULT_ROLE_BY_USER_TYPE, ensure_permissions

router = APIRouter()
logger = structlog.get_logger()

# Registration resolves these by name
PROTECTED_ROLE_NAMES = frozenset(DEFAULT_ROLE_BY_USER_TYPE.values())


async def _get_role_or_404(db: AsyncSession, role_id: int) -> Role:
    result = await db.execute(
        select(Role)
        .where(Role.id == role_id)
        .options(selectinload(Role.permissions), selectinload(Role.users))
        .execution_options(populate_existing=True)
    )
    role = result.scalar_one_or_none()
    if not role:
        raise NotFound("Role not found")
    return role


async def _resolve_permissions(db: AsyncSession, permission_ids: List[int]) -> List[Permission]:
    wanted = set(permission_ids)
    if not wanted:
        return []
    result = await db.execute(select(Permission).where(Permission.id.in_(wanted)))
    permissions = list(result.scalars().all())
    if len(permissions) != len(wanted):
        raise ValidationFailed("One or more permissions not found")
    return permissions


async def _ensure_role_name_available(db: AsyncSession, name: str, exclude_id: Optional[int] = None) -> None:
    query = select(Role.id).where(Role.name == name)
    if exclude_id is not None:
        query = query.where(Role.id != exclude_id)
    result = await db.execute(query)
    if result.first() is not None:
        raise Conflict("Role with this name already exists")


# Roles

@router.post("/roles", response_model=APIResponse[RoleData], status_code=status.HTTP_201_CREATED)
async def create_role(
    data: RoleCreate,
    current_user: User = Depends(require_master_admin),
    db: AsyncSession = Depends(get_db),
):
    await _ensure_role_name_available(db, data.name)

    role = Role(name=data.name, description=data.description)
    role.permissions = []
    db.add(role)
    await db.commit()

    logger.info("Role created", role_id=role.id, name=role.name)
    return APIResponse(
        message="Role created successfully",
        data=RoleData(role=RoleResponse.model_validate(role)),
    )


@router.get("/roles", response_model=APIResponse[RoleListData])
async def list_roles(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List roles with their permissions and users"""
    result = await db.execute(
        select(Role)
        .options(selectinload(Role.permissions), selectinload(Role.users))
        .order_by(Role.name)
        .execution_options(populate_existing=True)
    )
    roles = result.scalars().all()
    return APIResponse(data=RoleListData(roles=[RoleDetail.model_validate(role) for role in roles]))


@router.get("/roles/{role_id}", response_model=APIResponse[RoleDetailData])
async def get_role(
    role_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    role = await _get_role_or_404(db, role_id)
    return APIResponse(data=RoleDetailData(role=RoleDetail.model_validate(role)))


@router.put("/roles/{role_id}", response_model=APIResponse[RoleDetailData])
async def update_role(
    role_id: int,
    data: RoleUpdate,
    current_user: User = Depends(require_master_admin),
    db: AsyncSession = Depends(get_db),
):
    role = await _get_role_or_404(db, role_id)

    updates = data.model_dump(exclude_unset=True)
    if updates.get("name") and updates["name"] != role.name and role.name in PROTECTED_ROLE_NAMES:
        raise ValidationFailed("Default roles cannot be renamed or deleted")
    if updates.get("name"):
        await _ensure_role_name_available(db, updates["name"], exclude_id=role.id)
    else:
        updates.pop("name", None)

    for field, value in updates.items():
        setattr(role, field, value)

    await db.commit()

    role = await _get_role_or_404(db, role_id)
    return APIResponse(
        message="Role updated successfully",
        data=RoleDetailData(role=RoleDetail.model_validate(role)),
    )


@router.delete("/roles/{role_id}", response_model=APIResponse[None])
async def delete_role(
    role_id: int,
    current_user: User = Depends(require_master_admin),
    db: AsyncSession = Depends(get_db),
):
    """Delete a role; refused while any user holds it"""
    role = await _get_role_or_404(db, role_id)

    if role.users:
        raise ValidationFailed(
            "Cannot delete role that is assigned to users",
            assigned_users=len(role.users),
        )
    if role.name in PROTECTED_ROLE_NAMES:
        raise ValidationFailed("Default roles cannot be renamed or deleted")

    await db.delete(role)
    await db.commit()

    logger.info("Role deleted", role_id=role_id)
    return APIResponse(message="Role deleted successfully")


@router.post("/roles/{role_id}/permissions", response_model=APIResponse[RoleDetailData])
async def assign_permissions(
    role_id: int,
    data: AssignPermissionsRequest,
    current_user: User = Depends(require_master_admin),
    db: AsyncSession = Depends(get_db),
):
    """Replace the role's permission set"""
    role = await _get_role_or_404(db, role_id)
    role.permissions = await _resolve_permissions(db, data.permission_ids)
    await db.commit()

    role = await _get_role_or_404(db, role_id)
    return APIResponse(
        message="Permissions assigned successfully",
        data=RoleDetailData(role=RoleDetail.model_validate(role)),
    )


@router.delete("/roles/{role_id}/permissions", response_model=APIResponse[RoleDetailData])
async def remove_permissions(
    role_id: int,
    data: AssignPermissionsRequest,
    current_user: User = Depends(require_master_admin),
    db: AsyncSession = Depends(get_db),
):
    """Remove the given permissions from the role"""
    role = await _get_role_or_404(db, role_id)

    removed = set(data.permission_ids)
    role.permissions = [p for p in role.permissions if p.id not in removed]
    await db.commit()

    role = await _get_role_or_404(db, role_id)
    return APIResponse(
        message="Permissions removed successfully",
        data=RoleDetailData(role=RoleDetail.model_validate(role)),
    )


# Permissions

@router.post("/permissions", response_model=APIResponse[PermissionData], status_code=status.HTTP_201_CREATED)
async def create_permission(
    data: PermissionCreate,
    current_user: User = Depends(require_master_admin),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(select(Permission.id).where(Permission.code == data.code))
    if result.first() is not None:
        raise Conflict("Permission with this code already exists")

    permission = Permission(code=data.code, description=data.description)
    db.add(permission)
    await db.commit()

    return APIResponse(
        message="Permission created successfully",
        data=PermissionData(permission=PermissionResponse.model_validate(permission)),
    )


@router.get("/permissions", response_model=APIResponse[PermissionListData])
async def list_permissions(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(Permission)
        .options(selectinload(Permission.roles))
        .order_by(Permission.code)
        .execution_options(populate_existing=True)
    )
    permissions = result.scalars().all()
    return APIResponse(
        data=PermissionListData(
            permissions=[PermissionDetail.model_validate(p) for p in permissions]
        )
    )


@router.post("/permissions/initialize", response_model=APIResponse[PermissionInitData])
async def initialize_permissions(
    current_user: User = Depends(require_master_admin),
    db: AsyncSession = Depends(get_db),
):
    """Install the default permission catalogue; existing codes are left alone"""
    created = await ensure_permissions(db, CATALOGUE_PERMISSIONS)
    await db.commit()

    total = (await db.execute(select(func.count(Permission.id)))).scalar()

    logger.info("Permission catalogue initialized", created=len(created), total=total)
    return APIResponse(
        message=f"Initialized {len(created)} permissions",
        data=PermissionInitData(
            created_permissions=[PermissionResponse.model_validate(p) for p in created],
            total_permissions=total,
        ),
    )


# User role membership

@router.post("/users/{user_id}/roles/{role_id}", response_model=APIResponse[UserData])
async def add_user_role(
    user_id: int,
    role_id: int,
    current_user: User = Depends(require_master_admin),
    db: AsyncSession = Depends(get_db),
):
    user = await accounts.load_user(db, user_id)
    if not user:
        raise NotFound("User not found")
    role = await db.get(Role, role_id)
    if not role:
        raise NotFound("Role not found")

    if role not in user.roles:
        user.roles.append(role)
        await db.commit()

    user = await accounts.load_user(db, user_id)
    return APIResponse(
        message="Role added to user successfully",
        data=UserData(user=UserDetail.model_validate(user)),
    )


@router.delete("/users/{user_id}/roles/{role_id}", response_model=APIResponse[UserData])
async def remove_user_role(
    user_id: int,
    role_id: int,
    current_user: User = Depends(require_master_admin),
    db: AsyncSession = Depends(get_db),
):
    user = await accounts.load_user(db, user_id)
    if not user:
        raise NotFound("User not found")

    remaining = [role for role in user.roles if role.id != role_id]
    if len(remaining) == len(user.roles):
        raise NotFound("User does not have this role")

    user.roles = remaining
    await db.commit()

    user = await accounts.load_user(db, user_id)
    return APIResponse(
        message="Role removed from user successfully",
        data=UserData(user=UserDetail.model_validate(user)),
    )
