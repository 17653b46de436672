"""Tagged API errors.

Every error leaving the API is rendered as ``{"error": <tag>, "message": ...}``
with the status code matching the tag. The front end maps the tag to a
localized message.
"""

from typing import Any, Dict, List, Optional

from fastapi import status


class ApiError(Exception):
    """Base class for errors rendered as a tagged JSON body."""

    tag = "internal_error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str = "", extra: Optional[Dict[str, Any]] = None):
        self.message = message or self.tag
        self.extra = extra or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        body = {"error": self.tag, "message": self.message}
        body.update(self.extra)
        return body


class UnauthorizedError(ApiError):
    tag = "unauthorized"
    status_code = status.HTTP_401_UNAUTHORIZED


class PermissionDeniedError(ApiError):
    tag = "permission_denied"
    status_code = status.HTTP_403_FORBIDDEN


class EmailExistsError(ApiError):
    tag = "email_exists"
    status_code = status.HTTP_409_CONFLICT


class NotFoundError(ApiError):
    tag = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class BadRequestError(ApiError):
    tag = "bad_request"
    status_code = status.HTTP_400_BAD_REQUEST


class InternalError(ApiError):
    pass


class InsufficientStockError(BadRequestError):
    """Raised when a withdrawal or sale needs more stock than is on hand."""

    def __init__(self, message: str = "Insufficient stock", shortages: Optional[List[Dict[str, Any]]] = None):
        self.shortages = shortages or []
        super().__init__(message, extra={"shortages": self.shortages})
