"""Error kinds raised by the service layer and their HTTP mapping."""

import enum
from typing import Any, Optional
from fastapi import status


class ErrorKind(str, enum.Enum):
    """Closed set of failure classes a service operation can report."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    FORBIDDEN = "forbidden"
    UNAUTHENTICATED = "unauthenticated"


STATUS_BY_KIND = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorKind.UNAUTHENTICATED: status.HTTP_401_UNAUTHORIZED,
}


class ServiceError(Exception):
    """Base class for errors raised by services.

    Args:
        message: User-facing description of the failure
        details: Optional structured payload (e.g. field-level errors)
    """

    kind: ErrorKind = ErrorKind.VALIDATION

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    @property
    def status_code(self) -> int:
        return STATUS_BY_KIND[self.kind]


class ValidationFailed(ServiceError):
    kind = ErrorKind.VALIDATION


class NotFound(ServiceError):
    kind = ErrorKind.NOT_FOUND


class Conflict(ServiceError):
    kind = ErrorKind.CONFLICT


class Forbidden(ServiceError):
    kind = ErrorKind.FORBIDDEN


class Unauthenticated(ServiceError):
    kind = ErrorKind.UNAUTHENTICATED
