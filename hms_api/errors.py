"""API error types rendered as the {success, message} envelope"""

from typing import Any, Dict, Optional

from fastapi import status


class APIError(Exception):
    """Base error carrying an HTTP status, a client-facing message and extra payload"""

    status_code: int = status.HTTP_400_BAD_REQUEST
    default_message: str = "Bad request"

    def __init__(self, message: Optional[str] = None, **extra: Any):
        self.message = message or self.default_message
        self.extra = extra
        super().__init__(self.message)

    def to_content(self) -> Dict[str, Any]:
        return {"success": False, "message": self.message, **self.extra}


class AuthenticationRequired(APIError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Authentication required"


class InvalidToken(AuthenticationRequired):
    default_message = "Invalid or expired token"


class InvalidRefreshToken(AuthenticationRequired):
    default_message = "Invalid refresh token"


class AuthorizationDenied(APIError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Insufficient permissions"


class NotFound(APIError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class Conflict(APIError):
    default_message = "Resource already exists"


class ValidationFailed(APIError):
    default_message = "Validation error"


class NotImplementedYet(APIError):
    status_code = status.HTTP_501_NOT_IMPLEMENTED
    default_message = "Not implemented"
