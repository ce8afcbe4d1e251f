"""Bearer-token authentication for FastAPI routes."""

import logging
from typing import Optional

from fastapi import Request

from .exceptions import InternalFaultError, StorageError, UnauthorizedError
from .models import AuthContext, User
from .protocols import IdentityStore
from .sessions import SessionService

logger = logging.getLogger(__name__)

BEARER_PREFIX = "bearer "


class AuthGate:
    """Resolves a bearer credential to an active identity."""

    def __init__(self, sessions: SessionService, store: IdentityStore):
        self._sessions = sessions
        self._store = store

    async def authenticate(self, authorization: Optional[str]) -> AuthContext:
        """
        Validate an Authorization header value.

        Missing sessions, expired sessions and inactive users all raise the
        same UnauthorizedError so callers cannot tell them apart.
        """
        if not authorization or not authorization.lower().startswith(BEARER_PREFIX):
            raise UnauthorizedError("Missing or invalid Authorization header.")

        token = authorization[len(BEARER_PREFIX):].strip()
        if not token:
            raise UnauthorizedError("Missing or invalid Authorization header.")

        try:
            session = await self._sessions.find_session_by_token(token)
            if session is None or self._sessions.is_expired(session):
                raise UnauthorizedError()

            user = await self._store.find_user_by_id(session.user_id)
        except StorageError as e:
            logger.error(f"Failed to authenticate request: {e}")
            raise InternalFaultError("Unable to authenticate request.") from e

        if user is None or not user.is_active:
            raise UnauthorizedError()

        self._sessions.touch_last_used(session.id)
        return AuthContext(user=user, session=session)


async def require_auth(request: Request) -> User:
    """
    Dependency that requires valid authentication.
    Raises UnauthorizedError (401) if not authenticated.
    """
    gate: AuthGate = request.app.state.auth_gate
    context = await gate.authenticate(request.headers.get("Authorization"))

    request.state.user = context.user
    request.state.auth_session = context.session
    return context.user


async def get_current_user(request: Request) -> Optional[User]:
    """
    Extract and validate user from Authorization header.
    Returns the user if valid, None if no valid auth provided.
    """
    try:
        return await require_auth(request)
    except UnauthorizedError:
        return None
