"""
Portal error taxonomy.

Every domain error is an `HTTPException`, so services raise them
directly and FastAPI turns them into responses at the request
boundary.  The handler registered in `portal.main` renders them as:

    {"detail": "<human readable message>", "code": "<ErrorClassName>"}
"""

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse


class PortalError(HTTPException):
    """Base class: carries a default status code and message."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    message: str = "Request could not be processed"

    def __init__(self, detail: str | None = None, status_code: int | None = None):
        super().__init__(
            status_code=status_code or self.status_code,
            detail=detail or self.message,
        )

    @property
    def code(self) -> str:
        return type(self).__name__


class Unauthorized(PortalError):
    """Principal missing (401) or not allowed to perform the action (403)."""

    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Not authenticated"


class NotFound(PortalError):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, entity: str, detail: str | None = None):
        self.entity = entity
        super().__init__(detail or f"{entity.capitalize()} not found")


class MissingRequiredField(PortalError):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"A {field} must be selected for this access type")


class Conflict(PortalError):
    status_code = status.HTTP_409_CONFLICT
    message = "A user with this email already exists"


class SelfActionForbidden(PortalError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "You cannot deactivate or delete your own account"


class InvalidAccessKind(PortalError):
    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, value: object):
        self.value = value
        super().__init__(f"Invalid access type: {value!r}")


class QueryTooShort(PortalError):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, min_length: int):
        self.min_length = min_length
        super().__init__(f"Search query must be at least {min_length} characters")


async def portal_error_handler(request: Request, exc: PortalError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "code": exc.code},
        headers=exc.headers,
    )
