"""Two-step login: request a code, then verify it and issue a session."""

import asyncio
import logging
import re
import secrets
from typing import Callable, Optional

from .exceptions import (
    AuthValidationError,
    InternalFaultError,
    StorageError,
    ThrottledError,
    UnauthorizedError,
)
from .models import (
    CodeRequestResult,
    IssuedSession,
    SessionMetadata,
    VerificationOutcome,
)
from .protocols import DeliveryChannel, IdentityStore
from .sessions import SessionService
from .verification_store import VerificationStore

logger = logging.getLogger(__name__)

CODE_LENGTH = 6
MASK_MARKER = "***"
MASK_FILLER = "u"
MASK_DEFAULT_DOMAIN = "example.com"
DEFAULT_DISPLAY_NAME = "User"


def generate_verification_code() -> str:
    """Generate a 6-digit verification code."""
    return f"{secrets.randbelow(10 ** CODE_LENGTH):0{CODE_LENGTH}d}"


def fixed_code_generator(code: str) -> Callable[[], str]:
    """Code generator that always returns code (local development)."""
    return lambda: code


def normalize_identifier(identifier: str) -> str:
    return identifier.strip().lower()


def mask_identifier(identifier: str) -> str:
    """Hide all but the first character of the local part: a***@example.com."""
    local_part, _, domain = identifier.partition("@")
    visible_prefix = local_part[:1] or MASK_FILLER
    return f"{visible_prefix}{MASK_MARKER}@{domain or MASK_DEFAULT_DOMAIN}"


def derive_display_name(email: str) -> str:
    """Default display name for a new user, e.g. jane.doe@x -> Jane Doe."""
    local_part = email.partition("@")[0]
    words = [w for w in re.split(r"[._+\-]+", local_part) if w]
    if not words:
        return DEFAULT_DISPLAY_NAME
    return " ".join(w.capitalize() for w in words)


class VerificationOrchestrator:
    """Glues the verification store and session service into the login flow."""

    def __init__(
        self,
        verifications: VerificationStore,
        sessions: SessionService,
        store: IdentityStore,
        delivery: Optional[DeliveryChannel] = None,
        code_generator: Callable[[], str] = generate_verification_code,
    ):
        self._verifications = verifications
        self._sessions = sessions
        self._store = store
        self._delivery = delivery
        self._code_generator = code_generator

    async def request_code(self, identifier: str) -> CodeRequestResult:
        """Issue a code for identifier and hand it to the delivery channel."""
        identifier = normalize_identifier(identifier)
        code = self._code_generator()
        record = self._verifications.create_verification(identifier, code)

        if self._delivery:
            await asyncio.to_thread(
                self._delivery.send_verification_code, identifier, code
            )
        else:
            logger.info(f"Verification code issued for {mask_identifier(identifier)}")

        return CodeRequestResult(
            expires_at=record.expires_at,
            masked_identifier=mask_identifier(identifier),
        )

    async def verify_and_issue_session(
        self,
        identifier: str,
        code: str,
        metadata: Optional[SessionMetadata] = None,
    ) -> IssuedSession:
        """
        Verify a code and mint a session for the identifier.

        A code consumed here stays consumed even if creating the user or the
        session fails afterwards; the caller has to request a new one.
        """
        identifier = normalize_identifier(identifier)
        outcome = self._verifications.verify_code(identifier, code)

        if outcome is VerificationOutcome.EXPIRED:
            raise AuthValidationError("Verification code expired. Request a new code.")
        if outcome is VerificationOutcome.TOO_MANY_ATTEMPTS:
            raise ThrottledError(
                "Too many attempts. Please request a new verification code."
            )
        if outcome is not VerificationOutcome.SUCCESS:
            raise UnauthorizedError("Invalid verification code.")

        try:
            user = await self._store.upsert_user_by_email(
                identifier, derive_display_name(identifier)
            )
            token = self._sessions.generate_token()
            issued_at = self._sessions.now()
            session = await self._sessions.create_session(
                user.id,
                token,
                self._sessions.expiry_from(issued_at),
                metadata,
            )
        except StorageError as e:
            logger.error(f"Failed to issue session for {mask_identifier(identifier)}: {e}")
            raise InternalFaultError("Unable to complete sign in.") from e

        logger.info(f"Session issued for user {user.id}")
        return IssuedSession(
            user=user,
            token=session.token,
            issued_at=issued_at,
            expires_at=session.expires_at,
        )
