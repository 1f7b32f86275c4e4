import logging
import time
from contextlib import asynccontextmanager
from contextvars import ContextVar
from typing import Any, AsyncIterator, Callable, List, Mapping, Optional, Tuple, Union

from ...utils.urls import normalize_endpoint_url
from ..events import SESSION_DELETED, SESSION_EXPIRED, SESSION_UPDATED
from .errors import AuthSessionExpiredError, AuthSessionNotFoundError
from .models import AuthSession, TokenResponse

logger = logging.getLogger(__name__)

DEFAULT_TTL = 3600

TokenMaterial = Union[TokenResponse, Mapping[str, Any]]

# Events held back by an active deferred_events() block in the current task
_deferred: ContextVar[Optional[List[Tuple["AuthSessionService", str, dict]]]] = ContextVar("mintauth_deferred_events", default=None)


class AuthSessionService:
    """
    Authoritative CRUD and expiration policy over auth sessions.

    This is the only component that emits session lifecycle events.
    Expiry is checked lazily on read; nothing here sweeps or corrects
    expired records.
    """

    def __init__(
        self,
        store,
        event_bus=None,
        default_ttl: int = DEFAULT_TTL,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize session service.

        Args:
            store: SessionStore implementation
            event_bus: Optional EventBus for lifecycle events
            default_ttl: Lifetime used when the token response has no expires_in
            clock: Returns the current time in seconds since epoch
        """
        self.store = store
        self.event_bus = event_bus
        self.default_ttl = default_ttl
        self._clock = clock

    def _now(self) -> int:
        return int(self._clock())

    async def get_valid_session(self, endpoint_url: str) -> AuthSession:
        """
        Get a session that has not expired.

        Args:
            endpoint_url: Endpoint URL (any spelling)

        Returns:
            Stored session, unchanged

        Raises:
            AuthSessionNotFoundError: No session stored for the endpoint
            AuthSessionExpiredError: Session is past expires_at
        """
        endpoint_url = normalize_endpoint_url(endpoint_url)
        session = await self.store.get_session(endpoint_url)
        if session is None:
            raise AuthSessionNotFoundError(endpoint_url)

        if session.expires_at <= self._now():
            await self._emit(SESSION_EXPIRED, {"endpoint_url": endpoint_url})
            raise AuthSessionExpiredError(endpoint_url)

        return session

    async def save_session(
        self,
        endpoint_url: str,
        tokens: TokenMaterial,
        reason: str = "login",
    ) -> AuthSession:
        """
        Persist token material as the endpoint's session.

        Overwrites any existing session. Used for fresh logins and for
        silent refresh updates alike; reason tells them apart in the
        session-updated event.

        Args:
            endpoint_url: Endpoint URL (any spelling)
            tokens: TokenResponse or mapping with access_token, refresh_token,
                expires_in, scope
            reason: "login" or "refresh"

        Returns:
            The stored session
        """
        endpoint_url = normalize_endpoint_url(endpoint_url)
        if not isinstance(tokens, TokenResponse):
            tokens = TokenResponse.model_validate(tokens)

        ttl = tokens.expires_in if tokens.expires_in is not None else self.default_ttl
        session = AuthSession(
            endpoint_url=endpoint_url,
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
            expires_at=self._now() + ttl,
            scope=tokens.scope,
        )
        await self.store.save_session(session)
        await self._emit(SESSION_UPDATED, {"endpoint_url": endpoint_url, "reason": reason})
        logger.info(f"Auth session saved for {endpoint_url} (expires_at={session.expires_at}, reason={reason})")
        return session

    async def delete_session(self, endpoint_url: str) -> None:
        """Delete the endpoint's session (no error if absent)."""
        endpoint_url = normalize_endpoint_url(endpoint_url)
        await self.store.delete_session(endpoint_url)
        await self._emit(SESSION_DELETED, {"endpoint_url": endpoint_url})
        logger.info(f"Auth session deleted for {endpoint_url}")

    async def has_session(self, endpoint_url: str) -> bool:
        """Check if a session exists, ignoring expiry."""
        endpoint_url = normalize_endpoint_url(endpoint_url)
        session = await self.store.get_session(endpoint_url)
        return session is not None

    async def get_all_sessions(self) -> List[AuthSession]:
        """All stored sessions, expired ones included."""
        return await self.store.get_all_sessions()

    @asynccontextmanager
    async def deferred_events(self) -> AsyncIterator[None]:
        """
        Hold lifecycle events raised inside the block and emit them on exit.

        Callers that serialize work with a lock enter this block outside
        the lock, so handlers run after the lock is released and may call
        back into the caller. Events are emitted even when the block raises.
        """
        queue: List[Tuple[AuthSessionService, str, dict]] = []
        token = _deferred.set(queue)
        try:
            yield
        finally:
            _deferred.reset(token)
            for service, event, payload in queue:
                await service._publish(event, payload)

    async def _emit(self, event: str, payload: dict) -> None:
        queue = _deferred.get()
        if queue is not None:
            queue.append((self, event, payload))
            return
        await self._publish(event, payload)

    async def _publish(self, event: str, payload: dict) -> None:
        if self.event_bus is not None:
            await self.event_bus.emit(event, payload)
