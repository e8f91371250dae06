"""
Display name persistence.

The rota core only needs get/set semantics for a user's chosen name. Names
are kept in Redis when a live Redis connection exists, in memory otherwise.
"""

from abc import ABC, abstractmethod

from rota.infrastructure.observability.logging import get_logger
from rota.services.infrastructure.redis_client import FastRedisClient

logger = get_logger(__name__)

NAME_KEY_PREFIX = "rota_display_name"
MAX_NAME_LENGTH = 40


class DisplayNameError(ValueError):
    """Raised when a display name cannot be saved."""

    pass


def clean_display_name(name: str) -> str:
    """
    Trim and validate a display name.

    Raises:
        DisplayNameError: If the name is blank or too long
    """
    trimmed = (name or "").strip()
    if not trimmed:
        raise DisplayNameError("Display name must not be empty")
    if len(trimmed) > MAX_NAME_LENGTH:
        raise DisplayNameError(f"Display name must be at most {MAX_NAME_LENGTH} characters")
    return trimmed


class DisplayNameStore(ABC):
    @abstractmethod
    async def get(self, user_id: str) -> str:
        """Previously chosen name, or "" if none."""

    @abstractmethod
    async def set(self, user_id: str, name: str) -> str:
        """Persist a new name and return the stored (trimmed) value."""


class InMemoryDisplayNameStore(DisplayNameStore):
    def __init__(self):
        self._names: dict[str, str] = {}

    async def get(self, user_id: str) -> str:
        return self._names.get(user_id, "")

    async def set(self, user_id: str, name: str) -> str:
        cleaned = clean_display_name(name)
        self._names[user_id] = cleaned
        return cleaned


class RedisDisplayNameStore(DisplayNameStore):
    def __init__(self, redis_client: FastRedisClient):
        self.redis = redis_client
        self._fallback: dict[str, str] = {}

    def _redis_key(self, user_id: str) -> str:
        return f"{NAME_KEY_PREFIX}:{user_id}"

    async def get(self, user_id: str) -> str:
        stored = await self.redis.get(self._redis_key(user_id))
        return stored or self._fallback.get(user_id, "")

    async def set(self, user_id: str, name: str) -> str:
        cleaned = clean_display_name(name)
        self._fallback[user_id] = cleaned
        stored = await self.redis.set(self._redis_key(user_id), cleaned)
        if not stored:
            # Still served from this process, lost on restart
            logger.warning("Display name not persisted", user_id=user_id)
        return cleaned
