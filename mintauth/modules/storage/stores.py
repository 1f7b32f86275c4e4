import logging
from typing import Dict, List, Optional, Protocol

import redis.asyncio as redis
from pydantic import ValidationError

from ..session.models import AuthSession

logger = logging.getLogger(__name__)


class SessionStore(Protocol):
    """
    Protocol for session persistence.

    Keys are normalized endpoint URLs exactly as given; stores apply no
    normalization of their own.
    """

    async def get_session(self, endpoint_url: str) -> Optional[AuthSession]:
        ...

    async def save_session(self, session: AuthSession) -> None:
        ...

    async def delete_session(self, endpoint_url: str) -> None:
        ...

    async def get_all_sessions(self) -> List[AuthSession]:
        ...


class MemorySessionStore:
    """Dict-backed store, one record per endpoint."""

    def __init__(self):
        self._sessions: Dict[str, AuthSession] = {}

    async def get_session(self, endpoint_url: str) -> Optional[AuthSession]:
        return self._sessions.get(endpoint_url)

    async def save_session(self, session: AuthSession) -> None:
        self._sessions[session.endpoint_url] = session

    async def delete_session(self, endpoint_url: str) -> None:
        self._sessions.pop(endpoint_url, None)

    async def get_all_sessions(self) -> List[AuthSession]:
        return list(self._sessions.values())


class RedisSessionStore:
    """
    Redis-backed session store.

    Each session is one JSON string under {prefix}:session:{endpoint_url};
    the set {prefix}:sessions indexes every stored endpoint. No Redis TTL
    is set: expired sessions stay until deleted or overwritten.
    """

    def __init__(self, redis_client=None, connection_url: Optional[str] = None, key_prefix: str = "mintauth"):
        """
        Initialize store.

        Args:
            redis_client: Async Redis client (created from connection_url if None)
            connection_url: Redis URL used when no client is given
            key_prefix: Namespace for all keys
        """
        self.url = connection_url or "redis://localhost:6379/0"
        self._client = redis_client
        self._owns_client = redis_client is None
        self.key_prefix = key_prefix
        self.index_key = f"{key_prefix}:sessions"

    async def connect(self) -> redis.Redis:
        """Get storage connection."""
        if not self._client:
            self._client = redis.from_url(self.url, decode_responses=True)
        return self._client

    async def disconnect(self):
        """Close storage connection."""
        if self._client and self._owns_client:
            await self._client.aclose()
            self._client = None

    def _key(self, endpoint_url: str) -> str:
        return f"{self.key_prefix}:session:{endpoint_url}"

    async def get_session(self, endpoint_url: str) -> Optional[AuthSession]:
        client = await self.connect()
        data = await client.get(self._key(endpoint_url))
        if not data:
            return None
        return AuthSession.model_validate_json(data)

    async def save_session(self, session: AuthSession) -> None:
        client = await self.connect()
        await client.set(self._key(session.endpoint_url), session.model_dump_json())
        await client.sadd(self.index_key, session.endpoint_url)

    async def delete_session(self, endpoint_url: str) -> None:
        client = await self.connect()
        await client.delete(self._key(endpoint_url))
        await client.srem(self.index_key, endpoint_url)

    async def get_all_sessions(self) -> List[AuthSession]:
        client = await self.connect()
        endpoint_urls = await client.smembers(self.index_key)

        sessions = []
        for endpoint_url in sorted(endpoint_urls):
            data = await client.get(self._key(endpoint_url))

            if not data:
                # Clean up stale entry
                await client.srem(self.index_key, endpoint_url)
                continue
            try:
                sessions.append(AuthSession.model_validate_json(data))
            except ValidationError as e:
                logger.warning(f"Skipping unreadable session for {endpoint_url}: {e}")

        return sessions
