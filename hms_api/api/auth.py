"""Authentication API endpoints and request authorization dependencies"""

from typing import Optional

from fastapi import APIRouter, Depends, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from hms_api.database import get_db
from hms_api.errors import AuthenticationRequired, AuthorizationDenied
from hms_api.models.user import User
from hms_api.schemas.auth import (
    AuthData,
    ChangePasswordRequest,
    LoginRequest,
    ProfileData,
    RefreshRequest,
    RegisterRequest,
    ResetSystemRequest,
    TokensData,
    UserResponse,
)
from hms_api.schemas.common import APIResponse
from hms_api.services import accounts, tokens

router = APIRouter()
logger = structlog.get_logger()

# Bearer token is optional at this layer; endpoints decide whether anonymous is allowed
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


async def get_optional_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> Optional[User]:
    """Resolve the caller from a bearer token, or None when no token was sent"""
    if not token:
        return None

    claims = tokens.verify_access(token)

    user = await accounts.load_user(db, claims.sub)
    if user is None or not user.is_active:
        raise AuthenticationRequired("User not found or inactive")

    return user


async def get_current_user(
    user: Optional[User] = Depends(get_optional_user),
) -> User:
    """Require an authenticated, active user"""
    if user is None:
        raise AuthenticationRequired("Access token is required")
    return user


async def require_master_admin(
    current_user: User = Depends(get_current_user),
) -> User:
    if not current_user.is_master_admin():
        raise AuthorizationDenied("Master Admin access required")
    return current_user


def require_permission(code: str):
    """Dependency factory for permission-code access control"""
    async def permission_checker(current_user: User = Depends(get_current_user)) -> User:
        if not current_user.has_permission(code):
            raise AuthorizationDenied("Insufficient permissions")
        return current_user
    return permission_checker


@router.post("/register", response_model=APIResponse[AuthData], status_code=status.HTTP_201_CREATED)
async def register(
    data: RegisterRequest,
    actor: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    """Register a user; open until the first Master Admin exists, then Master Admin only"""
    user = await accounts.register_user(db, data, actor)
    token_pair = await tokens.issue_tokens(db, user)

    return APIResponse(
        message="User registered successfully",
        data=AuthData(user=UserResponse.model_validate(user), tokens=token_pair),
    )


@router.post("/login", response_model=APIResponse[AuthData])
async def login(
    data: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    """Authenticate user and return tokens"""
    user = await accounts.authenticate(db, data.email, data.password)
    token_pair = await tokens.issue_tokens(db, user)
    user = await accounts.load_user(db, user.id)

    logger.info("User logged in", user_id=user.id)
    return APIResponse(
        message="Login successful",
        data=AuthData(user=UserResponse.model_validate(user), tokens=token_pair),
    )


@router.post("/refresh-token", response_model=APIResponse[TokensData])
async def refresh_token(
    data: RefreshRequest,
    db: AsyncSession = Depends(get_db),
):
    """Rotate the refresh token and issue a new access token"""
    token_pair = await tokens.refresh(db, data.refresh_token)
    return APIResponse(
        message="Token refreshed successfully",
        data=TokensData(tokens=token_pair),
    )


@router.post("/logout", response_model=APIResponse[None])
async def logout(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Logout user by invalidating refresh token"""
    await tokens.revoke(db, current_user.id)
    return APIResponse(message="Logged out successfully")


@router.get("/profile", response_model=APIResponse[ProfileData])
async def get_profile(
    current_user: User = Depends(get_current_user),
):
    """Get current user information"""
    return APIResponse(data=ProfileData(user=UserResponse.model_validate(current_user)))


@router.patch("/password", response_model=APIResponse[None])
@router.put("/change-password", response_model=APIResponse[None], include_in_schema=False)
async def change_password(
    data: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Change password; the stored refresh token is revoked so other sessions must log in again"""
    await accounts.change_password(db, current_user, data.current_password, data.new_password)
    return APIResponse(message="Password changed successfully")


@router.post("/reset-system", response_model=APIResponse[None])
async def reset_system(
    data: ResetSystemRequest,
    db: AsyncSession = Depends(get_db),
):
    """Development only: delete all users so the first Master Admin can register again"""
    await accounts.reset_system(db, data.confirm_reset)
    return APIResponse(
        message="System reset successfully. You can now register the first Master Admin.",
    )
