import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional

import jwt

from ..session.errors import CredentialProviderError

logger = logging.getLogger(__name__)

BlindTokenSource = Callable[[], Awaitable[str]]


class AuthManager:
    """
    Live credential provider for one endpoint.

    Holds the clear auth token (CAT) and, when a refresh client is
    attached, renews it shortly before it expires. Never persisted: it is
    rebuilt from a stored session whenever needed.
    """

    def __init__(
        self,
        endpoint_url: str,
        refresh_leeway: int = 30,
        blind_token_source: Optional[BlindTokenSource] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize auth manager.

        Args:
            endpoint_url: Normalized endpoint URL
            refresh_leeway: Refresh when the token expires within this many seconds
            blind_token_source: Coroutine function returning blind auth tokens
            clock: Returns the current time in seconds since epoch
        """
        self.endpoint_url = endpoint_url
        self.refresh_leeway = refresh_leeway
        self.blind_token_source = blind_token_source
        self._clock = clock
        self._access_token: Optional[str] = None
        self._expires_at: Optional[float] = None
        self._oidc = None
        self._refresh_lock = asyncio.Lock()

    def set_access_token(
        self,
        token: str,
        expires_in: Optional[int] = None,
        expires_at: Optional[float] = None,
    ) -> None:
        """
        Replace the current access token.

        Expiry comes from expires_at, else expires_in, else the token's
        own exp claim when it is a JWT. Unknown expiry disables
        proactive refresh.
        """
        self._access_token = token
        if expires_at is not None:
            self._expires_at = expires_at
        elif expires_in is not None:
            self._expires_at = self._clock() + expires_in
        else:
            self._expires_at = self._jwt_expiry(token)

    @staticmethod
    def _jwt_expiry(token: str) -> Optional[float]:
        try:
            claims = jwt.decode(token, options={"verify_signature": False})
        except jwt.InvalidTokenError:
            return None
        exp = claims.get("exp")
        return float(exp) if isinstance(exp, (int, float)) else None

    def get_cat(self) -> Optional[str]:
        """Current access token without any refresh attempt."""
        return self._access_token

    @property
    def expires_at(self) -> Optional[float]:
        return self._expires_at

    @property
    def oidc(self):
        """Attached refresh client, if any."""
        return self._oidc

    @property
    def can_refresh(self) -> bool:
        return self._oidc is not None and bool(getattr(self._oidc, "refresh_token", None))

    def attach_oidc(self, oidc) -> None:
        """Attach a refresh client used for silent renewal."""
        self._oidc = oidc

    def detach_oidc(self) -> None:
        self._oidc = None

    def _needs_refresh(self) -> bool:
        if self._access_token is None:
            return True
        if self._expires_at is None:
            return False
        return self._expires_at - self._clock() <= self.refresh_leeway

    async def get_access_token(self) -> str:
        """
        Get a usable access token.

        Returns:
            Access token, refreshed first when close to expiry

        Raises:
            CredentialProviderError: No token is available, or the token
                has expired and could not be refreshed
        """
        if self._needs_refresh() and self.can_refresh:
            async with self._refresh_lock:
                # Another caller may have refreshed while we waited
                if self._needs_refresh():
                    await self._refresh()

        if self._access_token is None:
            raise CredentialProviderError(f"No access token for {self.endpoint_url}")
        return self._access_token

    async def _refresh(self) -> None:
        try:
            tokens = await self._oidc.refresh()
        except CredentialProviderError as e:
            if self._is_expired():
                raise
            logger.warning(f"Token refresh failed for {self.endpoint_url}, using current token: {e}")
            return
        self.set_access_token(tokens.access_token, tokens.expires_in)
        logger.debug(f"Access token refreshed for {self.endpoint_url}")

    def _is_expired(self) -> bool:
        if self._access_token is None:
            return True
        return self._expires_at is not None and self._expires_at <= self._clock()

    async def get_blind_auth_token(self) -> str:
        """
        Get a single-use blind auth token.

        Raises:
            CredentialProviderError: No blind token source is configured
        """
        if self.blind_token_source is None:
            raise CredentialProviderError(f"No blind auth tokens available for {self.endpoint_url}")
        return await self.blind_token_source()
