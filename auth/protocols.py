"""Contracts for the collaborators the authentication core depends on."""

from datetime import datetime
from typing import Optional, Protocol

from .models import Session, SessionMetadata, User


class IdentityStore(Protocol):
    """Durable users and sessions. Any method may raise StorageError."""

    async def find_user_by_id(self, user_id: str) -> Optional[User]: ...

    async def upsert_user_by_email(
        self, email: str, display_name: Optional[str] = None
    ) -> User: ...

    async def create_session(
        self,
        user_id: str,
        token: str,
        expires_at: datetime,
        metadata: Optional[SessionMetadata] = None,
    ) -> Session: ...

    async def find_session_by_token(self, token: str) -> Optional[Session]: ...

    async def update_session_last_used(self, session_id: str) -> None: ...


class DeliveryChannel(Protocol):
    """Out-of-band delivery of one-time codes."""

    def send_verification_code(self, identifier: str, code: str) -> bool: ...
