"""Typed failures raised by the authentication core."""

from enum import Enum
from typing import Optional


class ErrorCode(str, Enum):
    """Error codes exposed in failed result envelopes."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNAUTHORIZED = "UNAUTHORIZED"
    TOO_MANY_REQUESTS = "TOO_MANY_REQUESTS"
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"


class StorageError(Exception):
    """The durable identity/session store could not complete an operation."""


class AuthError(Exception):
    """Base class for failures surfaced to API callers."""

    code: ErrorCode = ErrorCode.INTERNAL_SERVER_ERROR
    status_code: int = 500
    default_message: str = "An unexpected error occurred."

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_result(self) -> dict:
        """Render as a failed result envelope."""
        return {
            "ok": False,
            "error": {
                "code": self.code.value,
                "message": self.message,
            },
        }


class AuthValidationError(AuthError):
    """Malformed input or an expired code; the caller may resubmit."""

    code = ErrorCode.VALIDATION_ERROR
    status_code = 400
    default_message = "Invalid request."


class UnauthorizedError(AuthError):
    """Wrong code or a missing, invalid or expired credential."""

    code = ErrorCode.UNAUTHORIZED
    status_code = 401
    default_message = "Unauthorized"


class ThrottledError(AuthError):
    """Attempt ceiling reached; only a fresh code helps."""

    code = ErrorCode.TOO_MANY_REQUESTS
    status_code = 429
    default_message = "Too many attempts."


class InternalFaultError(AuthError):
    """A dependency failed; details stay in the server log."""

    code = ErrorCode.INTERNAL_SERVER_ERROR
    status_code = 500
