"""MongoDB database operations for users and sessions."""

import uuid
from contextlib import contextmanager
from datetime import datetime
from typing import Iterable, Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import PyMongoError

from .exceptions import StorageError
from .models import Session, SessionMetadata, User, utc_now


@contextmanager
def storage_errors(action: str):
    """Re-raise driver failures as StorageError."""
    try:
        yield
    except PyMongoError as e:
        raise StorageError(f"Failed to {action}: {e}") from e


def _new_id() -> str:
    return str(uuid.uuid4())


class AuthDatabase:
    """Async MongoDB implementation of the identity/session store."""

    def __init__(self, mongodb_uri: str, database_name: str = "mailpass"):
        """Initialize database connection."""
        self._client: Optional[AsyncIOMotorClient] = None
        self._db: Optional[AsyncIOMotorDatabase] = None
        self._mongodb_uri = mongodb_uri
        self._database_name = database_name

    async def connect(self) -> None:
        """Connect to MongoDB."""
        self._client = AsyncIOMotorClient(self._mongodb_uri, tz_aware=True)
        self._db = self._client[self._database_name]
        with storage_errors("create indexes"):
            await self._db.users.create_index("email", unique=True)
            # Tokens are looked up on every authenticated request
            await self._db.sessions.create_index("token", unique=True)
            await self._db.sessions.create_index("user_id")

    async def close(self) -> None:
        """Close MongoDB connection."""
        if self._client:
            self._client.close()
            self._client = None
            self._db = None

    @property
    def users(self):
        """Get users collection."""
        if self._db is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._db.users

    @property
    def sessions(self):
        """Get sessions collection."""
        if self._db is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._db.sessions

    @staticmethod
    def _to_user(doc: dict) -> User:
        return User(
            id=doc["_id"],
            email=doc["email"],
            display_name=doc.get("display_name"),
            is_active=doc.get("is_active", True),
            created_at=doc["created_at"],
            updated_at=doc.get("updated_at", doc["created_at"]),
        )

    @staticmethod
    def _to_session(doc: dict) -> Session:
        return Session(
            id=doc["_id"],
            token=doc["token"],
            user_id=doc["user_id"],
            created_at=doc["created_at"],
            expires_at=doc["expires_at"],
            last_used_at=doc.get("last_used_at"),
            user_agent=doc.get("user_agent"),
            ip_address=doc.get("ip_address"),
        )

    async def find_user_by_id(self, user_id: str) -> Optional[User]:
        """Get user by id."""
        with storage_errors("load user"):
            doc = await self.users.find_one({"_id": user_id})
        return self._to_user(doc) if doc else None

    async def upsert_user_by_email(
        self, email: str, display_name: Optional[str] = None
    ) -> User:
        """Get the user for email, creating it on first login."""
        email = email.lower()
        now = utc_now()
        with storage_errors("upsert user"):
            doc = await self.users.find_one_and_update(
                {"email": email},
                {
                    "$setOnInsert": {
                        "_id": _new_id(),
                        "email": email,
                        "display_name": display_name,
                        "is_active": True,
                        "created_at": now,
                        "updated_at": now,
                    },
                },
                upsert=True,
                return_document=ReturnDocument.AFTER,
            )
        return self._to_user(doc)

    async def create_session(
        self,
        user_id: str,
        token: str,
        expires_at: datetime,
        metadata: Optional[SessionMetadata] = None,
    ) -> Session:
        """Insert a new session document."""
        metadata = metadata or SessionMetadata()
        doc = {
            "_id": _new_id(),
            "token": token,
            "user_id": user_id,
            "created_at": utc_now(),
            "expires_at": expires_at,
            "last_used_at": None,
            "user_agent": metadata.user_agent,
            "ip_address": metadata.ip_address,
        }
        with storage_errors("create session"):
            await self.sessions.insert_one(doc)
        return self._to_session(doc)

    async def find_session_by_token(self, token: str) -> Optional[Session]:
        """Get session by exact token."""
        with storage_errors("load session"):
            doc = await self.sessions.find_one({"token": token})
        return self._to_session(doc) if doc else None

    async def update_session_last_used(self, session_id: str) -> None:
        with storage_errors("update session"):
            await self.sessions.update_one(
                {"_id": session_id},
                {"$set": {"last_used_at": utc_now()}},
            )

    async def seed_users(self, users: Iterable[tuple[str, str]]) -> list[User]:
        """
        Seed users by email.
        Args: users - iterable of (email, display_name) tuples
        Returns: the stored users
        """
        seeded = []
        for email, display_name in users:
            seeded.append(await self.upsert_user_by_email(email, display_name))
        return seeded
