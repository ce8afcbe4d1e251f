"""Session token issuance, lookup and expiry."""

import asyncio
import logging
import secrets
from datetime import datetime, timedelta
from typing import Callable, Optional

from .models import Session, SessionMetadata, utc_now
from .protocols import IdentityStore

logger = logging.getLogger(__name__)

DEFAULT_SESSION_TTL = timedelta(days=7)


class SessionService:
    """Creates and validates sessions backed by the durable store."""

    TOKEN_LENGTH = 64  # 64-char hex token

    def __init__(
        self,
        store: IdentityStore,
        ttl: timedelta = DEFAULT_SESSION_TTL,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._store = store
        self.ttl = ttl
        self._clock = clock
        self._pending: set[asyncio.Task] = set()

    def generate_token(self) -> str:
        """Generate a secure 64-character hex token."""
        return secrets.token_hex(self.TOKEN_LENGTH // 2)

    def now(self) -> datetime:
        return self._clock()

    def expiry_from(self, issued_at: datetime) -> datetime:
        """Expiry for a session issued at the given time."""
        return issued_at + self.ttl

    async def create_session(
        self,
        user_id: str,
        token: str,
        expires_at: datetime,
        metadata: Optional[SessionMetadata] = None,
    ) -> Session:
        """Persist a new session. Raises StorageError if the store fails."""
        return await self._store.create_session(user_id, token, expires_at, metadata)

    async def find_session_by_token(self, token: str) -> Optional[Session]:
        """Get the session for an exact token match, or None."""
        return await self._store.find_session_by_token(token)

    def is_expired(self, session: Session) -> bool:
        """Check expiry against the current time."""
        return self._clock() >= session.expires_at

    def touch_last_used(self, session_id: str) -> asyncio.Task:
        """
        Record session use in the background.

        The caller never waits on the returned task, and there is no ordering
        guarantee relative to later requests on the same session. Failures
        are logged and dropped.
        """
        task = asyncio.create_task(self._update_last_used(session_id))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _update_last_used(self, session_id: str) -> None:
        try:
            await self._store.update_session_last_used(session_id)
        except Exception as e:
            logger.warning(f"Failed to update lastUsedAt for session {session_id}: {e}")

    async def wait_for_pending(self) -> None:
        """Wait for in-flight lastUsedAt updates (shutdown and tests)."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
