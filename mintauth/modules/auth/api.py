"""
Public API for endpoint authentication.

Orchestrates the live credential providers (AuthManager, optionally
with an OIDCClient for refresh) and AuthSessionService (token
persistence) so callers only need AuthApi to authenticate with
endpoints.
"""

import asyncio
import logging
import weakref
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Set, Union

import httpx

from ...config.provider import OIDCConfig
from ...utils.urls import normalize_endpoint_url
from ..oidc import OIDCClient
from ..session.errors import AuthSessionError
from ..session.models import AuthSession, TokenResponse
from .manager import AuthManager

logger = logging.getLogger(__name__)

OIDCFactory = Callable[[str, Callable[[TokenResponse], None]], OIDCClient]
ManagerFactory = Callable[[str], AuthManager]


class DeviceAuthFlow:
    """
    Pending device-code authorization.

    Show verification_uri (or verification_uri_complete) and user_code to
    the user, then await poll(). cancel() aborts a pending poll.
    """

    def __init__(
        self,
        endpoint_url: str,
        verification_uri: str,
        user_code: str,
        poll: Callable[[Optional[float]], Awaitable[TokenResponse]],
        cancel_event: asyncio.Event,
        verification_uri_complete: Optional[str] = None,
        expires_in: Optional[int] = None,
        interval: int = 5,
    ):
        self.endpoint_url = endpoint_url
        self.verification_uri = verification_uri
        self.verification_uri_complete = verification_uri_complete
        self.user_code = user_code
        self.expires_in = expires_in
        self.interval = interval
        self._poll = poll
        self._cancel_event = cancel_event

    async def poll(self, timeout: Optional[float] = None) -> TokenResponse:
        """Wait until the user authorizes; returns the issued tokens."""
        return await self._poll(timeout)

    def cancel(self) -> None:
        """Cancel the pending device-code poll."""
        self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()


class AuthApi:
    """
    Session orchestrator.

    Keeps two in-memory caches keyed by normalized endpoint URL: the live
    AuthManager (present after login/restore) and its OIDCClient (present
    when a refresh token is available). Neither is consulted for session
    validity; the persisted session is the source of truth and the caches
    are always rebuildable from it.
    """

    def __init__(
        self,
        session_service,
        endpoint_adapter,
        oidc_factory: Optional[OIDCFactory] = None,
        manager_factory: Optional[ManagerFactory] = None,
        oidc_config: Optional[OIDCConfig] = None,
    ):
        """
        Initialize auth API.

        Args:
            session_service: AuthSessionService
            endpoint_adapter: EndpointAdapter receiving credential providers
            oidc_factory: Builds an OIDCClient for (endpoint_url, on_tokens)
            manager_factory: Builds an AuthManager for an endpoint_url
            oidc_config: OIDC configuration for the default factories
        """
        self.session_service = session_service
        self.endpoint_adapter = endpoint_adapter
        self.oidc_config = oidc_config or OIDCConfig()
        self.poll_timeout = self.oidc_config.poll_timeout

        self._oidc_factory = oidc_factory or self._default_oidc_factory
        self._manager_factory = manager_factory or self._default_manager_factory
        self._http_client: Optional[httpx.AsyncClient] = None

        self._managers: Dict[str, AuthManager] = {}
        self._oidc_clients: Dict[str, OIDCClient] = {}
        # Entries live only while some operation holds or waits on the lock
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()
        self._pending: Set[asyncio.Task] = set()

    def _default_oidc_factory(self, endpoint_url: str, on_tokens) -> OIDCClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.oidc_config.http_timeout)
        return OIDCClient(
            endpoint_url,
            config=self.oidc_config,
            on_tokens=on_tokens,
            http_client=self._http_client,
        )

    def _default_manager_factory(self, endpoint_url: str) -> AuthManager:
        return AuthManager(endpoint_url, refresh_leeway=self.oidc_config.refresh_leeway)

    def _lock_for(self, endpoint_url: str) -> asyncio.Lock:
        lock = self._locks.get(endpoint_url)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[endpoint_url] = lock
        return lock

    # ------------------------------------------------------------------
    # OIDC Device Code flow
    # ------------------------------------------------------------------

    async def start_device_auth(self, endpoint_url: str) -> DeviceAuthFlow:
        """
        Start an OIDC Device Code authorization flow for an endpoint.

        After poll() succeeds the session is persisted and the
        AuthManager is wired into the endpoint adapter.

        Args:
            endpoint_url: Endpoint URL (any spelling)

        Returns:
            DeviceAuthFlow with the user code and verification URI
        """
        endpoint_url = normalize_endpoint_url(endpoint_url)

        manager = self._manager_factory(endpoint_url)
        oidc = self._oidc_factory(endpoint_url, self._token_callback(endpoint_url, manager))
        manager.attach_oidc(oidc)

        device = await oidc.start_device_auth()
        cancel_event = asyncio.Event()

        async def poll(timeout: Optional[float] = None) -> TokenResponse:
            if timeout is None:
                timeout = self.poll_timeout
            if device.expires_in:
                timeout = min(timeout, device.expires_in)

            tokens = await oidc.poll_device_token(
                device.device_code,
                interval=device.interval,
                timeout=timeout,
                cancel_event=cancel_event,
            )
            manager.set_access_token(tokens.access_token, tokens.expires_in)

            async with self.session_service.deferred_events():
                async with self._lock_for(endpoint_url):
                    await self.session_service.save_session(endpoint_url, tokens)
                    self._register(endpoint_url, manager, oidc if oidc.refresh_token else None)
            logger.info(f"Auth session established for {endpoint_url}")
            return tokens

        logger.info(f"Device authorization started for {endpoint_url}")
        return DeviceAuthFlow(
            endpoint_url=endpoint_url,
            verification_uri=device.verification_uri,
            verification_uri_complete=device.verification_uri_complete,
            user_code=device.user_code,
            expires_in=device.expires_in,
            interval=device.interval,
            poll=poll,
            cancel_event=cancel_event,
        )

    # ------------------------------------------------------------------
    # Manual login (caller already has tokens, e.g. from auth-code flow)
    # ------------------------------------------------------------------

    async def login(
        self,
        endpoint_url: str,
        tokens: Union[TokenResponse, Mapping[str, Any]],
    ) -> AuthSession:
        """
        Save tokens as the endpoint's session and wire the AuthManager.

        Use this when the caller already obtained tokens externally
        (e.g. via Authorization Code + PKCE). A refresh client is attached
        only when a refresh token is present; failing to attach one is
        logged and leaves an access-token-only provider.

        Args:
            endpoint_url: Endpoint URL (any spelling)
            tokens: TokenResponse or mapping with access_token and optional
                refresh_token, expires_in, scope

        Returns:
            The persisted session
        """
        endpoint_url = normalize_endpoint_url(endpoint_url)
        if not isinstance(tokens, TokenResponse):
            tokens = TokenResponse.model_validate(tokens)

        async with self.session_service.deferred_events():
            async with self._lock_for(endpoint_url):
                session = await self.session_service.save_session(endpoint_url, tokens)

                manager = self._manager_factory(endpoint_url)
                manager.set_access_token(tokens.access_token, tokens.expires_in)

                oidc = None
                if tokens.refresh_token:
                    oidc = await self._try_attach_oidc(endpoint_url, manager, tokens.refresh_token, "login")

                self._register(endpoint_url, manager, oidc)
        logger.info(f"Auth login completed for {endpoint_url}")
        return session

    # ------------------------------------------------------------------
    # Restore (process startup)
    # ------------------------------------------------------------------

    async def restore(self, endpoint_url: str) -> bool:
        """
        Restore a persisted session and wire the AuthManager.

        Call this on startup for each endpoint with a stored session.

        Returns:
            True if a valid session was found and restored, False if the
            session is missing or expired (nothing is changed then)
        """
        endpoint_url = normalize_endpoint_url(endpoint_url)

        async with self.session_service.deferred_events():
            async with self._lock_for(endpoint_url):
                try:
                    session = await self.session_service.get_valid_session(endpoint_url)
                except AuthSessionError as e:
                    logger.debug(f"Nothing to restore for {endpoint_url}: {e.message}")
                    return False

                manager = self._manager_factory(endpoint_url)
                manager.set_access_token(session.access_token, expires_at=session.expires_at)

                oidc = None
                if session.refresh_token:
                    oidc = await self._try_attach_oidc(endpoint_url, manager, session.refresh_token, "restore")

                self._register(endpoint_url, manager, oidc)
        logger.info(f"Auth session restored for {endpoint_url}")
        return True

    async def restore_all(self) -> Dict[str, bool]:
        """
        Restore every stored session.

        Returns:
            Mapping of endpoint URL to restore() outcome
        """
        results = {}
        for session in await self.session_service.get_all_sessions():
            results[session.endpoint_url] = await self.restore(session.endpoint_url)
        return results

    # ------------------------------------------------------------------
    # Logout
    # ------------------------------------------------------------------

    async def logout(self, endpoint_url: str) -> None:
        """Delete the session and disconnect the AuthManager."""
        endpoint_url = normalize_endpoint_url(endpoint_url)

        async with self.session_service.deferred_events():
            async with self._lock_for(endpoint_url):
                await self.session_service.delete_session(endpoint_url)
                self._managers.pop(endpoint_url, None)
                self._oidc_clients.pop(endpoint_url, None)
                self.endpoint_adapter.clear_credential_provider(endpoint_url)
        logger.info(f"Auth logout completed for {endpoint_url}")

    # ------------------------------------------------------------------
    # Session queries
    # ------------------------------------------------------------------

    async def get_session(self, endpoint_url: str) -> AuthSession:
        """Get a valid (non-expired) session; raises if missing or expired."""
        return await self.session_service.get_valid_session(endpoint_url)

    async def has_session(self, endpoint_url: str) -> bool:
        """Check whether a session exists for the endpoint."""
        return await self.session_service.has_session(endpoint_url)

    def get_credential_provider(self, endpoint_url: str) -> Optional[AuthManager]:
        """Get the live AuthManager for an endpoint, or None if not authenticated."""
        try:
            endpoint_url = normalize_endpoint_url(endpoint_url)
        except ValueError:
            return None
        return self._managers.get(endpoint_url)

    def get_refresh_client(self, endpoint_url: str) -> Optional[OIDCClient]:
        """Get the live OIDCClient for an endpoint, or None without refresh capability."""
        try:
            endpoint_url = normalize_endpoint_url(endpoint_url)
        except ValueError:
            return None
        return self._oidc_clients.get(endpoint_url)

    async def aclose(self) -> None:
        """Wait for background persistence and close the shared HTTP client."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _register(self, endpoint_url: str, manager: AuthManager, oidc: Optional[OIDCClient]) -> None:
        self._managers[endpoint_url] = manager
        if oidc is not None:
            self._oidc_clients[endpoint_url] = oidc
        else:
            self._oidc_clients.pop(endpoint_url, None)
        self.endpoint_adapter.set_credential_provider(endpoint_url, manager)

    async def _try_attach_oidc(
        self,
        endpoint_url: str,
        manager: AuthManager,
        refresh_token: str,
        operation: str,
    ) -> Optional[OIDCClient]:
        """
        Build an OIDCClient for refresh and attach it to the manager.

        Returns None (and logs) when the endpoint's OpenID provider cannot
        be discovered; the manager then works with its access token only.
        """
        try:
            oidc = self._oidc_factory(endpoint_url, self._token_callback(endpoint_url, manager))
            oidc.refresh_token = refresh_token
            await oidc.discover()
        except Exception as e:
            logger.warning(f"Failed to attach OIDC for refresh during {operation} of {endpoint_url}: {e}")
            return None

        manager.attach_oidc(oidc)
        return oidc

    def _token_callback(self, endpoint_url: str, manager: AuthManager) -> Callable[[TokenResponse], None]:
        """Push refreshed tokens into the manager and persist them in the background."""

        def on_tokens(tokens: TokenResponse) -> None:
            manager.set_access_token(tokens.access_token, tokens.expires_in)
            if tokens.access_token:
                self._spawn(self._persist_refreshed(endpoint_url, manager, tokens))

        return on_tokens

    async def _persist_refreshed(self, endpoint_url: str, manager: AuthManager, tokens: TokenResponse) -> None:
        async with self.session_service.deferred_events():
            async with self._lock_for(endpoint_url):
                # A logout or newer login replaced this manager; do not resurrect its session
                if self._managers.get(endpoint_url) is not manager:
                    logger.debug(f"Dropping refreshed tokens for inactive provider of {endpoint_url}")
                    return
                await self.session_service.save_session(endpoint_url, tokens, reason="refresh")

    def _spawn(self, coro) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Failed to persist refreshed auth session: {error}", exc_info=error)
