"""Token issuer: password hashing, JWT signing, refresh rotation and revocation"""

from datetime import datetime, timedelta
from uuid import uuid4

from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import ValidationError
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from hms_api.config import settings
from hms_api.errors import InvalidRefreshToken, InvalidToken
from hms_api.models.user import User
from hms_api.schemas.auth import TokenClaims, TokenPair

logger = structlog.get_logger()

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=settings.bcrypt_rounds)

ACCESS = "access"
REFRESH = "refresh"


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password against hash"""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash password"""
    return pwd_context.hash(password)


def _encode(user: User, token_type: str, expires_delta: timedelta, secret: str) -> str:
    payload = {
        "sub": str(user.id),
        "email": user.email,
        "user_type": user.user_type.value,
        "property_id": user.property_id,
        "type": token_type,
        "jti": uuid4().hex,
        "iss": settings.jwt_issuer,
        "exp": datetime.utcnow() + expires_delta,
    }
    return jwt.encode(payload, secret, algorithm=settings.jwt_algorithm)


def _decode(token: str, token_type: str, secret: str) -> TokenClaims:
    payload = jwt.decode(
        token,
        secret,
        algorithms=[settings.jwt_algorithm],
        issuer=settings.jwt_issuer,
    )
    claims = TokenClaims.model_validate(payload)
    if claims.type != token_type:
        raise JWTError(f"expected {token_type} token")
    return claims


def create_access_token(user: User) -> str:
    """Create short-lived JWT access token"""
    return _encode(
        user,
        ACCESS,
        timedelta(minutes=settings.access_token_expire_minutes),
        settings.jwt_secret_key,
    )


def create_refresh_token(user: User) -> str:
    """Create long-lived JWT refresh token"""
    return _encode(
        user,
        REFRESH,
        timedelta(days=settings.refresh_token_expire_days),
        settings.refresh_token_secret_key,
    )


def verify_access(token: str) -> TokenClaims:
    """Validate an access token; every failure mode surfaces as the same InvalidToken"""
    try:
        return _decode(token, ACCESS, settings.jwt_secret_key)
    except (JWTError, ValidationError):
        raise InvalidToken()


def decode_refresh(token: str) -> TokenClaims:
    try:
        return _decode(token, REFRESH, settings.refresh_token_secret_key)
    except (JWTError, ValidationError):
        raise InvalidRefreshToken()


async def issue_tokens(db: AsyncSession, user: User) -> TokenPair:
    """Issue a token pair and store the refresh token, replacing any previous one"""
    access_token = create_access_token(user)
    refresh_token = create_refresh_token(user)

    user.refresh_token = refresh_token
    await db.commit()

    return TokenPair(access_token=access_token, refresh_token=refresh_token)


async def refresh(db: AsyncSession, refresh_token: str) -> TokenPair:
    """
    Rotate a refresh token.

    The presented token must be the one currently stored for an active user.
    The swap is a compare-and-swap on the stored column, so of two concurrent
    refreshes with the same token only one succeeds.
    """
    claims = decode_refresh(refresh_token)

    result = await db.execute(
        select(User).where(User.id == claims.sub, User.is_active == True)
        .execution_options(populate_existing=True)
    )
    user = result.scalar_one_or_none()

    if user is None or user.refresh_token != refresh_token:
        logger.info("Refresh token rejected", user_id=claims.sub)
        raise InvalidRefreshToken()

    access_token = create_access_token(user)
    new_refresh_token = create_refresh_token(user)

    swapped = await db.execute(
        update(User)
        .where(User.id == user.id, User.refresh_token == refresh_token)
        .values(refresh_token=new_refresh_token)
        .execution_options(synchronize_session="evaluate")
    )
    if swapped.rowcount != 1:
        await db.rollback()
        logger.info("Refresh token lost rotation race", user_id=user.id)
        raise InvalidRefreshToken()

    await db.commit()

    return TokenPair(access_token=access_token, refresh_token=new_refresh_token)


async def revoke(db: AsyncSession, user_id: int) -> None:
    """Clear the stored refresh token; a no-op when none is stored"""
    await db.execute(
        update(User)
        .where(User.id == user_id)
        .values(refresh_token=None)
        .execution_options(synchronize_session="evaluate")
    )
    await db.commit()
