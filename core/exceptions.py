"""
Domain error taxonomy.

Every class is an HTTPException, so services raise them the same way they
raise plain HTTPExceptions and FastAPI still knows the status code. The
``kind`` travels in the response body next to the message.
"""

from fastapi import HTTPException
from starlette import status


class AppError(HTTPException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    kind = "error"

    def __init__(self, detail: str):
        super().__init__(status_code=self.status_code, detail=detail)


class ValidationError(AppError):
    """Missing or malformed input. Nothing was persisted."""
    status_code = status.HTTP_400_BAD_REQUEST
    kind = "validation_error"


class AuthorizationError(AppError):
    """Authenticated, but not allowed to do this."""
    status_code = status.HTTP_403_FORBIDDEN
    kind = "authorization_error"


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    kind = "not_found"


class ConflictError(AppError):
    """The resource is not in the state the operation requires."""
    status_code = status.HTTP_409_CONFLICT
    kind = "conflict"


class UpstreamError(AppError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    kind = "upstream_error"
