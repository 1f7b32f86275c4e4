import logging
from typing import Dict, Optional

import httpx

from ...utils.urls import normalize_endpoint_url
from ..auth.interfaces import CredentialProvider

logger = logging.getLogger(__name__)


class HttpEndpointAdapter:
    """
    Sends requests to endpoints with their credentials attached.

    A provider registered for an endpoint supplies the access token put
    in the auth header of every request to that endpoint; endpoints
    without a provider are called unauthenticated.
    """

    def __init__(self, http_client: Optional[httpx.AsyncClient] = None, header: str = "Clear-auth"):
        """
        Initialize adapter.

        Args:
            http_client: Shared httpx client (an owned one is created if None)
            header: Request header carrying the access token
        """
        self.header = header
        self._providers: Dict[str, CredentialProvider] = {}
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient()

    def set_credential_provider(self, endpoint_url: str, provider: CredentialProvider) -> None:
        self._providers[normalize_endpoint_url(endpoint_url)] = provider

    def clear_credential_provider(self, endpoint_url: str) -> None:
        self._providers.pop(normalize_endpoint_url(endpoint_url), None)

    def get_credential_provider(self, endpoint_url: str) -> Optional[CredentialProvider]:
        return self._providers.get(normalize_endpoint_url(endpoint_url))

    async def request(self, endpoint_url: str, method: str, path: str, **kwargs) -> httpx.Response:
        """
        Send a request to an endpoint.

        Args:
            endpoint_url: Endpoint URL (any spelling)
            method: HTTP method
            path: Path relative to the endpoint URL
            **kwargs: Passed to httpx.AsyncClient.request

        Returns:
            httpx response (status is not checked)
        """
        endpoint_url = normalize_endpoint_url(endpoint_url)
        headers = dict(kwargs.pop("headers", None) or {})

        provider = self._providers.get(endpoint_url)
        if provider is not None:
            headers[self.header] = await provider.get_access_token()

        url = f"{endpoint_url}/{path.lstrip('/')}"
        logger.debug(f"{method} {url} (authenticated={provider is not None})")
        return await self._client.request(method, url, headers=headers, **kwargs)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
