"""Domain errors rendered by the global exception handlers.

Every error carries the HTTP status, a business code and a message, plus an
optional ``data`` payload, so the boundary can render it without looking at
where it came from.
"""

from typing import Any


class ApiError(Exception):
    """Base class for errors that reach the client as ``{code, message, data}``."""

    status_code: int = 500
    code: int = 5000
    default_message: str = "Unable to process the request"

    def __init__(self, message: str | None = None, data: Any = None):
        self.message = message or self.default_message
        self.data = data
        super().__init__(self.message)

    def to_payload(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "data": self.data}


class BadRequestError(ApiError):
    status_code = 400
    code = 4000
    default_message = "Invalid request"


class AuthenticationError(ApiError):
    status_code = 401
    code = 4001
    default_message = "Authentication required"


class ForbiddenError(ApiError):
    status_code = 403
    code = 4003
    default_message = "Permission denied"


class NotFoundError(ApiError):
    status_code = 404
    code = 4004
    default_message = "Resource not found"


class ConflictError(ApiError):
    status_code = 409
    code = 4009
    default_message = "Resource already exists"
