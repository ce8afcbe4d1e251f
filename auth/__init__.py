"""Authentication module for mailpass."""

from .models import (
    AuthContext,
    CodeRequestResult,
    IssuedSession,
    Session,
    SessionMetadata,
    User,
    VerificationOutcome,
    VerificationRecord,
)
from .exceptions import (
    AuthError,
    AuthValidationError,
    ErrorCode,
    InternalFaultError,
    StorageError,
    ThrottledError,
    UnauthorizedError,
)
from .verification_store import VerificationStore
from .sessions import SessionService
from .middleware import AuthGate, require_auth, get_current_user
from .orchestrator import VerificationOrchestrator, mask_identifier
from .database import AuthDatabase
from .email_service import EmailService

__all__ = [
    "AuthContext",
    "CodeRequestResult",
    "IssuedSession",
    "Session",
    "SessionMetadata",
    "User",
    "VerificationOutcome",
    "VerificationRecord",
    "AuthError",
    "AuthValidationError",
    "ErrorCode",
    "InternalFaultError",
    "StorageError",
    "ThrottledError",
    "UnauthorizedError",
    "VerificationStore",
    "SessionService",
    "AuthGate",
    "require_auth",
    "get_current_user",
    "VerificationOrchestrator",
    "mask_identifier",
    "AuthDatabase",
    "EmailService",
]
