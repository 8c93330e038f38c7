"""Role and permission schemas"""

from typing import List, Optional
from pydantic import BaseModel, Field


class RoleCreate(BaseModel):
    name: str = Field(min_length=2, max_length=80)
    description: Optional[str] = Field(default=None, max_length=255)


class PermissionCreate(BaseModel):
    code: str = Field(min_length=3, max_length=100, pattern=r"^[a-z][a-z0-9_]*(\.[a-z][a-z0-9_]*)+$")
    description: Optional[str] = Field(default=None, max_length=255)


class AssignPermissionsRequest(BaseModel):
    permission_ids: List[int] = Field(alias="permissionIds")

    class Config:
        populate_by_name = True


class PermissionResponse(BaseModel):
    id: int
    code: str
    description: Optional[str]

    class Config:
        from_attributes = True


class RoleRef(BaseModel):
    id: int
    name: str
    description: Optional[str]

    class Config:
        from_attributes = True


class RoleUserSummary(BaseModel):
    id: int
    full_name: str
    email: Optional[str]

    class Config:
        from_attributes = True


class RoleResponse(BaseModel):
    """Role with its permission set"""
    id: int
    name: str
    description: Optional[str]
    permissions: List[PermissionResponse] = []

    class Config:
        from_attributes = True


class RoleDetail(RoleResponse):
    users: List[RoleUserSummary] = []


class PermissionDetail(PermissionResponse):
    roles: List[RoleRef] = []


class RoleData(BaseModel):
    role: RoleResponse


class RoleDetailData(BaseModel):
    role: RoleDetail


class RoleListData(BaseModel):
    roles: List[RoleDetail]


class PermissionData(BaseModel):
    permission: PermissionResponse


class PermissionListData(BaseModel):
    permissions: List[PermissionDetail]


class PermissionInitData(BaseModel):
    created_permissions: List[PermissionResponse]
    total_permissions: int


class RoleUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=80)
    description: Optional[str] = Field(default=None, max_length=255)
