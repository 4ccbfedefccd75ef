"""
Error taxonomy shared by routes and services.

Domain errors (401/403/404/400) go straight back to the caller with a stable
``reason``. InfrastructureError covers storage and provider outages; its
detail is logged, and the caller only sees a generic message.
"""
from typing import Optional

from fastapi import status


class AppError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    reason: str = "InternalError"
    message: str = "Internal Server Error"

    def __init__(self, message: Optional[str] = None, reason: Optional[str] = None):
        if message is not None:
            self.message = message
        if reason is not None:
            self.reason = reason
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": self.message, "reason": self.reason}


class UnauthorizedError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    reason = "Unauthorized"
    message = "Unauthorized"


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    reason = "UserNotFound"
    message = "User not found"


class ForbiddenError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    reason = "LimitExceeded"
    message = "Limit exceeded. Please make a payment to upload more files."


class BadRequestError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    reason = "BadRequest"
    message = "Bad request"


class InfrastructureError(AppError):
    """Storage or upstream provider unavailable. Safe to retry."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    reason = "InfrastructureError"
    message = "Internal Server Error"
