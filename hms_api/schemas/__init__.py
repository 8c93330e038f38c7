"""Pydantic schemas for request/response validation"""

from hms_api.schemas.common import APIResponse, Pagination
from hms_api.schemas.auth import (
    TokenPair,
    TokenClaims,
    RegisterRequest,
    LoginRequest,
    RefreshRequest,
    ChangePasswordRequest,
    ResetSystemRequest,
    UserResponse,
    AuthData,
    TokensData,
    ProfileData,
)
from hms_api.schemas.property import (
    PropertyCreate,
    PropertyUpdate,
    PropertyResponse,
    PropertyDetail,
    PropertyData,
    PropertyDetailData,
    PropertyListData,
    PropertyStatsData,
)
from hms_api.schemas.role import (
    RoleCreate,
    RoleUpdate,
    PermissionCreate,
    AssignPermissionsRequest,
    PermissionResponse,
    RoleResponse,
    RoleDetail,
    RoleData,
    RoleDetailData,
    RoleListData,
    PermissionData,
    PermissionListData,
    PermissionInitData,
)
from hms_api.schemas.user import (
    UserCreate,
    UserUpdate,
    AssignRolesRequest,
    UserDetail,
    UserData,
    UserListData,
    UserStatsData,
)

__all__ = [
    "APIResponse",
    "Pagination",
    "TokenPair",
    "TokenClaims",
    "RegisterRequest",
    "LoginRequest",
    "RefreshRequest",
    "ChangePasswordRequest",
    "ResetSystemRequest",
    "UserResponse",
    "AuthData",
    "TokensData",
    "ProfileData",
    "PropertyCreate",
    "PropertyUpdate",
    "PropertyResponse",
    "PropertyDetail",
    "PropertyData",
    "PropertyDetailData",
    "PropertyListData",
    "PropertyStatsData",
    "RoleCreate",
    "RoleUpdate",
    "PermissionCreate",
    "AssignPermissionsRequest",
    "PermissionResponse",
    "RoleResponse",
    "RoleDetail",
    "RoleData",
    "RoleDetailData",
    "RoleListData",
    "PermissionData",
    "PermissionListData",
    "PermissionInitData",
    "UserCreate",
    "UserUpdate",
    "AssignRolesRequest",
    "UserDetail",
    "UserData",
    "UserListData",
    "UserStatsData",
]
