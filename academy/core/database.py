"""
Database context
Holds the primary Motor client, the lazily connected remote store and the mailer
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Optional

from bson import ObjectId
from fastapi import Depends, Request
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from academy.core.config import Config
from academy.core.errors import BadRequest
from academy.notifications.mailer import SendGridMailer

logger = logging.getLogger(__name__)


class SessionRevocations:
    """Revoked admin token ids -> expiry timestamp"""

    def __init__(self):
        self._revoked: dict[str, float] = {}

    def revoke(self, jti: str, exp: float) -> None:
        self._revoked[jti] = exp
        self._cleanup()

    def is_revoked(self, jti: str) -> bool:
        exp = self._revoked.get(jti)
        if exp is None:
            return False
        if exp > datetime.utcnow().timestamp():
            return True
        del self._revoked[jti]
        return False

    def _cleanup(self) -> None:
        now = datetime.utcnow().timestamp()
        for jti in [jti for jti, exp in self._revoked.items() if exp <= now]:
            del self._revoked[jti]


class AppContext:
    """
    Process-wide handles, built once at startup and closed on shutdown.

    The primary database is connected eagerly. The remote (learner accounts)
    database is connected on first use and cached for the process lifetime.
    """

    def __init__(
        self,
        config: Config,
        db: Optional[AsyncIOMotorDatabase] = None,
        client: Optional[AsyncIOMotorClient] = None,
        remote_db: Optional[AsyncIOMotorDatabase] = None,
        mailer: Any = None,
    ):
        self.config = config
        self.client = client
        self.db = db
        self.mailer = mailer
        self.revocations = SessionRevocations()
        self._remote_client: Optional[AsyncIOMotorClient] = None
        self._remote_db = remote_db
        self._remote_lock = asyncio.Lock()

    @classmethod
    def from_config(cls, config: Config) -> "AppContext":
        client = AsyncIOMotorClient(config.MONGODB_URI)
        return cls(
            config,
            db=client[config.MONGODB_DB],
            client=client,
            mailer=SendGridMailer(config.SENDGRID_API_KEY, config.EMAIL_FROM),
        )

    @property
    def remote_configured(self) -> bool:
        return self._remote_db is not None or bool(self.config.REMOTE_MONGODB_URI)

    async def get_remote_db(self) -> AsyncIOMotorDatabase:
        """Connect to the remote store once; later calls reuse the handle"""
        if self._remote_db is not None:
            return self._remote_db

        async with self._remote_lock:
            if self._remote_db is not None:
                return self._remote_db

            uri = self.config.REMOTE_MONGODB_URI
            if not uri:
                raise RuntimeError("REMOTE_MONGODB_URI not set")

            client = AsyncIOMotorClient(
                uri,
                serverSelectionTimeoutMS=self.config.REMOTE_SERVER_SELECTION_TIMEOUT_MS,
            )
            remote_db = client[self.config.REMOTE_MONGODB_DB]
            try:
                await remote_db.command("ping")
                await remote_db.users.create_index("email", unique=True)
            except Exception:
                client.close()
                raise

            self._remote_client = client
            self._remote_db = remote_db
            logger.info("[REMOTE] Connected to learner store %s", self.config.REMOTE_MONGODB_DB)
            return remote_db

    async def create_indexes(self) -> None:
        """Create primary store indexes"""
        db = self.db
        await db.registrations.create_index([("createdAt", -1)])
        await db.registrations.create_index("status")
        await db.registrations.create_index("email")
        await db.promocodes.create_index("code", unique=True)
        await db.courses.create_index("slug", unique=True)
        await db.categories.create_index("name", unique=True)
        await db.users.create_index("email", unique=True)
        logger.info("Primary store indexes created")

    def close(self) -> None:
        if self._remote_client is not None:
            self._remote_client.close()
            self._remote_client = None
            self._remote_db = None
        if self.client is not None:
            self.client.close()


# ==================== DEPENDENCIES ====================

def get_ctx(request: Request) -> AppContext:
    return request.app.state.ctx


async def get_db(ctx: AppContext = Depends(get_ctx)) -> AsyncIOMotorDatabase:
    """Database dependency"""
    return ctx.db


# ==================== HELPERS ====================

def parse_object_id(value: str, code: str = "invalid_id") -> ObjectId:
    if not value or not ObjectId.is_valid(value):
        raise BadRequest("Malformed id", code=code)
    return ObjectId(value)


def serialize_mongo(value: Any) -> Any:
    """Convert ObjectIds (at any depth) into strings for JSON responses"""
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, dict):
        return {k: serialize_mongo(v) for k, v in value.items()}
    if isinstance(value, list):
        return [serialize_mongo(v) for v in value]
    return value


def serialize_many(docs: list) -> list:
    return [serialize_mongo(doc) for doc in docs]
