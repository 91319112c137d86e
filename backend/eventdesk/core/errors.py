"""
Domain error taxonomy.

Services raise these; the API layer turns them into structured results so the
client can branch on `error_code` and show the exact message.
"""

from typing import Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse


class DomainError(Exception):
    error_code = "domain_error"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field

    def to_dict(self) -> dict:
        body = {"ok": False, "message": self.message, "error_code": self.error_code}
        if self.field:
            body["errors"] = {self.field: [self.message]}
        return body


class ValidationError(DomainError):
    """Malformed or missing input, scoped to a field."""
    error_code = "validation_error"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class NotFound(DomainError):
    error_code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class Ineligible(DomainError):
    """The subject exists but a business rule forbids the operation."""
    error_code = "ineligible"
    status_code = status.HTTP_409_CONFLICT


class CapacityExceeded(DomainError):
    error_code = "capacity_exceeded"
    status_code = status.HTTP_409_CONFLICT


class Conflict(DomainError):
    error_code = "conflict"
    status_code = status.HTTP_409_CONFLICT


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())
