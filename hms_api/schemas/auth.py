"""Authentication schemas"""

import re
from datetime import datetime
from typing import Annotated, List, Optional
from pydantic import AfterValidator, BaseModel, EmailStr, Field

from hms_api.models.user import UserType

PASSWORD_PATTERN = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&])[A-Za-z\d@$!%*?&]")
PHONE_PATTERN = r"^[\+]?[1-9][\d]{0,15}$"

RESET_CONFIRMATION = "YES_DELETE_ALL_USERS"


def check_password_strength(value: str) -> str:
    if not PASSWORD_PATTERN.match(value):
        raise ValueError(
            "Password must contain at least one uppercase letter, one lowercase letter, "
            "one number, and one special character"
        )
    return value


StrongPassword = Annotated[str, Field(min_length=8, max_length=128), AfterValidator(check_password_strength)]


class TokenPair(BaseModel):
    """Access/refresh token pair, serialized in camelCase for the console"""
    access_token: str = Field(alias="accessToken")
    refresh_token: str = Field(alias="refreshToken")

    class Config:
        populate_by_name = True


class TokenClaims(BaseModel):
    """Decoded JWT claims"""
    sub: int
    email: Optional[str] = None
    user_type: UserType
    property_id: Optional[int] = None
    type: str
    jti: str
    exp: datetime


class RegisterRequest(BaseModel):
    """Registration request"""
    full_name: str = Field(min_length=2, max_length=120)
    email: EmailStr
    phone: Optional[str] = Field(default=None, pattern=PHONE_PATTERN)
    password: StrongPassword
    user_type: UserType = UserType.STAFF
    property_id: Optional[int] = Field(default=None, gt=0)


class LoginRequest(BaseModel):
    """Login request"""
    email: EmailStr
    password: str


class RefreshRequest(BaseModel):
    """Token refresh request"""
    refresh_token: str = Field(alias="refreshToken", min_length=1)

    class Config:
        populate_by_name = True


class ChangePasswordRequest(BaseModel):
    """Change password request"""
    current_password: str = Field(alias="currentPassword")
    new_password: StrongPassword = Field(alias="newPassword")

    class Config:
        populate_by_name = True


class ResetSystemRequest(BaseModel):
    confirm_reset: Optional[str] = None


class RoleSummary(BaseModel):
    id: int
    name: str
    description: Optional[str]

    class Config:
        from_attributes = True


class UserResponse(BaseModel):
    """User response, never exposing password hash or refresh token"""
    id: int
    full_name: str
    email: Optional[str]
    phone: Optional[str]
    user_type: UserType
    property_id: Optional[int]
    is_active: bool
    last_login: Optional[datetime] = None
    email_verified_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    roles: List[RoleSummary] = []

    class Config:
        from_attributes = True


class AuthData(BaseModel):
    user: UserResponse
    tokens: TokenPair


class TokensData(BaseModel):
    tokens: TokenPair


class ProfileData(BaseModel):
    user: UserResponse
