"""
Error kinds raised by the storage and auth layers.

Every error carries an ErrorKind; the HTTP boundary in error_handlers maps
kinds to status codes so route handlers never build error responses.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    UNAUTHORIZED = "unauthorized"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    INVALID = "invalid"
    INTERNAL = "internal"


HTTP_STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.UNAUTHORIZED: 401,
    # Duplicate registration has always been reported as 400.
    ErrorKind.CONFLICT: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.INVALID: 400,
    ErrorKind.INTERNAL: 500,
}


class LunchspotError(Exception):
    """Base exception for all lunchspot failures."""

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @property
    def http_status(self) -> int:
        return HTTP_STATUS_BY_KIND[self.kind]

    def to_response(self) -> dict:
        return {"error": self.message}


class UnauthorizedError(LunchspotError):
    kind = ErrorKind.UNAUTHORIZED


class ConflictError(LunchspotError):
    kind = ErrorKind.CONFLICT


class NotFoundError(LunchspotError):
    kind = ErrorKind.NOT_FOUND


MISSING_CREDENTIAL = "no credential supplied"
INVALID_CREDENTIAL = "invalid or expired credential"
BAD_LOGIN = "email or password incorrect"
DUPLICATE_USER = "username or email already in use"
