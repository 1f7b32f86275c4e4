"""
OIDC client for token-issuing endpoints.

An endpoint advertises its OpenID provider in its info document
(nuts["21"]: openid_discovery and client_id). This client resolves that
provider and speaks the two grants a wallet needs:
- Device Authorization Grant (RFC 8628) for interactive login
- Refresh Token Grant for silent renewal
"""

import asyncio
import logging
from typing import Any, Callable, Dict, Optional

import httpx
from pydantic import ValidationError

from ...config.provider import OIDCConfig
from ..session.models import TokenResponse
from .errors import DeviceAuthCancelledError, DeviceAuthTimeoutError, OIDCError
from .models import DeviceAuthorization, ProviderMetadata

logger = logging.getLogger(__name__)

DEVICE_CODE_GRANT = "urn:ietf:params:oauth:grant-type:device_code"
SLOW_DOWN_INCREMENT = 5

TokenCallback = Callable[[TokenResponse], None]


class OIDCClient:
    """
    OIDC client bound to one endpoint.

    Discovery is lazy: the first call that needs the provider's
    endpoints performs it. on_tokens is invoked with every token set
    obtained through refresh().
    """

    def __init__(
        self,
        endpoint_url: str,
        config: Optional[OIDCConfig] = None,
        on_tokens: Optional[TokenCallback] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize OIDC client.

        Args:
            endpoint_url: Normalized endpoint URL
            config: OIDC configuration (defaults apply if None)
            on_tokens: Callback receiving refreshed token sets
            http_client: Shared httpx client (an owned one is created if None)
        """
        self.endpoint_url = endpoint_url
        self.config = config or OIDCConfig()
        self.on_tokens = on_tokens
        self.refresh_token: Optional[str] = None
        self.metadata: Optional[ProviderMetadata] = None

        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=self.config.http_timeout)

    async def aclose(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    async def _get_json(self, url: str) -> Dict[str, Any]:
        try:
            response = await self._client.get(url)
            response.raise_for_status()
            return response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise OIDCError(f"Failed to fetch {url}: {e}") from e

    async def discover(self) -> ProviderMetadata:
        """
        Resolve the endpoint's OpenID provider.

        Returns:
            Provider metadata (cached after the first call)

        Raises:
            OIDCError: If the endpoint does not advertise an OpenID provider
                or the discovery document is unusable
        """
        if self.metadata is not None:
            return self.metadata

        info = await self._get_json(f"{self.endpoint_url}{self.config.metadata_path}")
        nut21 = (info.get("nuts") or {}).get("21") or {}
        discovery_url = nut21.get("openid_discovery")
        client_id = self.config.client_id or nut21.get("client_id")
        if not discovery_url or not client_id:
            raise OIDCError(f"{self.endpoint_url} does not advertise an OpenID provider")

        document = await self._get_json(discovery_url)
        try:
            self.metadata = ProviderMetadata(
                issuer=document.get("issuer"),
                client_id=client_id,
                token_endpoint=document.get("token_endpoint"),
                device_authorization_endpoint=document.get("device_authorization_endpoint"),
            )
        except ValidationError as e:
            raise OIDCError(f"Invalid OpenID discovery document at {discovery_url}") from e

        logger.debug(f"Discovered OpenID provider {self.metadata.issuer} for {self.endpoint_url}")
        return self.metadata

    async def start_device_auth(self) -> DeviceAuthorization:
        """
        Request a device code.

        Returns:
            Device authorization with the user code and verification URI
        """
        metadata = await self.discover()
        if not metadata.device_authorization_endpoint:
            raise OIDCError(f"OpenID provider for {self.endpoint_url} does not support device authorization")

        try:
            response = await self._client.post(
                metadata.device_authorization_endpoint,
                data={"client_id": metadata.client_id, "scope": self.config.scope},
            )
        except httpx.HTTPError as e:
            raise OIDCError(f"Device authorization request failed: {e}") from e

        if response.status_code != 200:
            raise self._token_error(response, "Device authorization request failed")

        try:
            return DeviceAuthorization.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise OIDCError("Invalid device authorization response") from e

    async def poll_device_token(
        self,
        device_code: str,
        interval: float = 5,
        timeout: Optional[float] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> TokenResponse:
        """
        Poll the token endpoint until the user completes authorization.

        Args:
            device_code: Device code from start_device_auth()
            interval: Seconds between polls
            timeout: Give up after this many seconds (config.poll_timeout if None)
            cancel_event: Setting this event aborts the poll

        Returns:
            Token response

        Raises:
            DeviceAuthCancelledError: cancel_event was set
            DeviceAuthTimeoutError: timeout elapsed
            OIDCError: Denied, expired or failed request
        """
        metadata = await self.discover()
        if timeout is None:
            timeout = self.config.poll_timeout
        cancel_event = cancel_event or asyncio.Event()

        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout

        while True:
            if cancel_event.is_set():
                raise DeviceAuthCancelledError()

            tokens = await self._request_device_token(metadata, device_code)
            if cancel_event.is_set():
                raise DeviceAuthCancelledError()

            if isinstance(tokens, TokenResponse):
                if tokens.refresh_token:
                    self.refresh_token = tokens.refresh_token
                return tokens

            if tokens == "slow_down":
                interval += SLOW_DOWN_INCREMENT

            remaining = deadline - loop.time()
            if remaining <= 0:
                raise DeviceAuthTimeoutError(timeout)

            try:
                await asyncio.wait_for(cancel_event.wait(), timeout=min(interval, remaining))
            except asyncio.TimeoutError:
                continue
            raise DeviceAuthCancelledError()

    async def _request_device_token(self, metadata: ProviderMetadata, device_code: str):
        """One token poll: a TokenResponse, or the pending error code."""
        try:
            response = await self._client.post(
                metadata.token_endpoint,
                data={
                    "grant_type": DEVICE_CODE_GRANT,
                    "device_code": device_code,
                    "client_id": metadata.client_id,
                },
            )
        except httpx.HTTPError as e:
            raise OIDCError(f"Token request failed: {e}") from e

        if response.status_code == 200:
            return self._parse_tokens(response)

        error = self._token_error(response, "Device authorization failed")
        if error.error in ("authorization_pending", "slow_down"):
            return error.error
        raise error

    async def refresh(self, refresh_token: Optional[str] = None) -> TokenResponse:
        """
        Exchange a refresh token for a new token set.

        Args:
            refresh_token: Token to use (last known one if None)

        Returns:
            New token response (also delivered to on_tokens)
        """
        refresh_token = refresh_token or self.refresh_token
        if not refresh_token:
            raise OIDCError(f"No refresh token available for {self.endpoint_url}")

        metadata = await self.discover()
        try:
            response = await self._client.post(
                metadata.token_endpoint,
                data={
                    "grant_type": "refresh_token",
                    "refresh_token": refresh_token,
                    "client_id": metadata.client_id,
                },
            )
        except httpx.HTTPError as e:
            raise OIDCError(f"Token refresh failed: {e}") from e

        if response.status_code != 200:
            raise self._token_error(response, "Token refresh failed")

        tokens = self._parse_tokens(response)
        # Providers that do not rotate refresh tokens omit the field
        self.refresh_token = tokens.refresh_token or refresh_token
        if tokens.refresh_token is None:
            tokens = tokens.model_copy(update={"refresh_token": refresh_token})

        if self.on_tokens is not None:
            self.on_tokens(tokens)
        return tokens

    @staticmethod
    def _parse_tokens(response: httpx.Response) -> TokenResponse:
        try:
            return TokenResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise OIDCError("Invalid token response") from e

    @staticmethod
    def _token_error(response: httpx.Response, message: str) -> OIDCError:
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        code = body.get("error")
        description = body.get("error_description")
        detail = description or code or f"HTTP {response.status_code}"
        return OIDCError(f"{message}: {detail}", error=code)
