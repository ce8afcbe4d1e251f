"""In-process store for pending one-time verification codes."""

import secrets
import threading
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Callable, Iterator, Optional

from .models import VerificationOutcome, VerificationRecord, utc_now

DEFAULT_CODE_TTL = timedelta(minutes=5)
DEFAULT_MAX_ATTEMPTS = 5


class VerificationStore:
    """
    Pending codes keyed by normalized identifier.

    Records live only in this process. Each identifier with a pending record
    is guarded by its own lock so concurrent verify calls for one identifier
    count attempts correctly without serializing unrelated identifiers.
    A lock exists only while its record does; lookups for identifiers
    without a record never allocate one.
    """

    def __init__(
        self,
        ttl: timedelta = DEFAULT_CODE_TTL,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.ttl = ttl
        self.max_attempts = max_attempts
        self._clock = clock
        self._records: dict[str, VerificationRecord] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    @contextmanager
    def _locked(self, identifier: str, create: bool = False) -> Iterator[bool]:
        """
        Hold the identifier's current lock.

        Yields False without locking when the identifier has no lock and
        create is not set. A lock dropped while we waited on it is
        abandoned and looked up again.
        """
        while True:
            with self._registry_lock:
                lock = self._locks.get(identifier)
                if lock is None and create:
                    lock = self._locks[identifier] = threading.Lock()
            if lock is None:
                break

            lock.acquire()
            with self._registry_lock:
                current = self._locks.get(identifier) is lock
            if current:
                break
            lock.release()

        if lock is None:
            yield False
            return
        try:
            yield True
        finally:
            lock.release()

    def _discard(self, identifier: str, record: VerificationRecord) -> None:
        # Only drop the entries we hold; a reset may have replaced them
        with self._registry_lock:
            if self._records.get(identifier) is record:
                del self._records[identifier]
                self._locks.pop(identifier, None)

    def create_verification(self, identifier: str, code: str) -> VerificationRecord:
        """Store a fresh code for identifier, replacing any pending one."""
        record = VerificationRecord(
            identifier=identifier,
            code=code,
            expires_at=self._clock() + self.ttl,
            attempts=0,
        )
        with self._locked(identifier, create=True):
            self._records[identifier] = record
        return record

    def get_record(self, identifier: str) -> Optional[VerificationRecord]:
        """Get the pending record for identifier, if any."""
        with self._locked(identifier) as held:
            return self._records.get(identifier) if held else None

    def verify_code(self, identifier: str, submitted_code: str) -> VerificationOutcome:
        """
        Check a submitted code against the pending record.

        Expiry is checked before the attempt ceiling, and every check that
        reaches the comparison consumes an attempt.
        """
        with self._locked(identifier) as held:
            record = self._records.get(identifier) if held else None
            if record is None:
                return VerificationOutcome.INVALID

            if self._clock() > record.expires_at:
                self._discard(identifier, record)
                return VerificationOutcome.EXPIRED

            if record.attempts >= self.max_attempts:
                return VerificationOutcome.TOO_MANY_ATTEMPTS

            record.attempts += 1

            if not secrets.compare_digest(
                record.code.encode(), submitted_code.encode()
            ):
                return VerificationOutcome.INVALID

            self._discard(identifier, record)
            return VerificationOutcome.SUCCESS

    def reset(self) -> None:
        """Drop every pending record and its lock."""
        with self._registry_lock:
            self._records.clear()
            self._locks.clear()

    def __len__(self) -> int:
        return len(self._records)
