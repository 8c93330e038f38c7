"""User management schemas"""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, EmailStr, Field

from hms_api.models.property import PropertyType
from hms_api.models.user import UserType
from hms_api.schemas.auth import PHONE_PATTERN, StrongPassword
from hms_api.schemas.common import Pagination
from hms_api.schemas.role import RoleResponse


class UserCreate(BaseModel):
    """Create user request; password is optional for staff-only accounts"""
    full_name: str = Field(min_length=2, max_length=120)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, pattern=PHONE_PATTERN)
    password: Optional[StrongPassword] = None
    user_type: UserType = UserType.STAFF
    property_id: Optional[int] = Field(default=None, gt=0)
    role_ids: Optional[List[int]] = None


class UserUpdate(BaseModel):
    """Update user request"""
    full_name: Optional[str] = Field(default=None, min_length=2, max_length=120)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, pattern=PHONE_PATTERN)
    password: Optional[StrongPassword] = None
    user_type: Optional[UserType] = None
    property_id: Optional[int] = Field(default=None, gt=0)
    is_active: Optional[bool] = None
    role_ids: Optional[List[int]] = None


class AssignRolesRequest(BaseModel):
    role_ids: List[int] = Field(alias="roleIds")

    class Config:
        populate_by_name = True


class PropertySummary(BaseModel):
    id: int
    name: str
    property_type: PropertyType
    code: str

    class Config:
        from_attributes = True


class UserDetail(BaseModel):
    """User with roles, their permissions, and property"""
    id: int
    full_name: str
    email: Optional[str]
    phone: Optional[str]
    user_type: UserType
    property_id: Optional[int]
    is_active: bool
    last_login: Optional[datetime]
    email_verified_at: Optional[datetime]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]
    roles: List[RoleResponse] = []
    property: Optional[PropertySummary] = None

    class Config:
        from_attributes = True


class UserData(BaseModel):
    user: UserDetail


class UserListData(BaseModel):
    users: List[UserDetail]
    pagination: Pagination


class UserOverview(BaseModel):
    total_users: int
    active_users: int
    inactive_users: int
    master_admins: int
    property_admins: int
    staff: int
    recent_registrations: int


class UsersByProperty(BaseModel):
    property_id: Optional[int]
    property_name: Optional[str]
    property_type: Optional[PropertyType]
    count: int


class UserStatsData(BaseModel):
    overview: UserOverview
    users_by_property: List[UsersByProperty]
