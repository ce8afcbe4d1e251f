"""Pydantic models for authentication."""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from pydantic import BaseModel


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class VerificationOutcome(str, Enum):
    """Result of checking a submitted one-time code."""

    SUCCESS = "success"
    INVALID = "invalid"
    EXPIRED = "expired"
    TOO_MANY_ATTEMPTS = "too_many_attempts"


class VerificationRecord(BaseModel):
    """Pending one-time code for a single identifier."""

    identifier: str
    code: str
    expires_at: datetime
    attempts: int = 0


class User(BaseModel):
    """User identity owned by the durable store."""

    id: str
    email: str
    display_name: Optional[str] = None
    is_active: bool = True
    created_at: datetime
    updated_at: datetime


class SessionMetadata(BaseModel):
    """Request details recorded alongside a new session."""

    user_agent: Optional[str] = None
    ip_address: Optional[str] = None


class Session(BaseModel):
    """Session minted after a successful verification."""

    id: str
    token: str
    user_id: str
    created_at: datetime
    expires_at: datetime
    last_used_at: Optional[datetime] = None
    user_agent: Optional[str] = None
    ip_address: Optional[str] = None


class AuthContext(BaseModel):
    """Identity and session resolved from a bearer token."""

    user: User
    session: Session


class CodeRequestResult(BaseModel):
    """Returned when a verification code has been issued."""

    expires_at: datetime
    masked_identifier: str


class IssuedSession(BaseModel):
    """Returned after a code is verified and a session is created."""

    user: User
    token: str
    issued_at: datetime
    expires_at: datetime
