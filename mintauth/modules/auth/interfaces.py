"""Auth interfaces following Black Box Design principles."""
from typing import Optional, Protocol


class CredentialProvider(Protocol):
    """Protocol for live credential providers handed to endpoint adapters."""

    async def get_access_token(self) -> str:
        """
        Get the current access token, renewing it first if needed.

        Returns:
            Access token string
        """
        ...

    async def get_blind_auth_token(self) -> str:
        """
        Get a single-use blind auth token for the endpoint.

        Returns:
            Serialized blind auth token
        """
        ...


class EndpointAdapter(Protocol):
    """Protocol for the component that attaches credentials to requests."""

    def set_credential_provider(self, endpoint_url: str, provider: CredentialProvider) -> None:
        ...

    def clear_credential_provider(self, endpoint_url: str) -> None:
        ...


class NullEndpointAdapter:
    """Adapter that only records registrations (for callers without one)."""

    def __init__(self):
        self.providers = {}

    def set_credential_provider(self, endpoint_url: str, provider: CredentialProvider) -> None:
        self.providers[endpoint_url] = provider

    def clear_credential_provider(self, endpoint_url: str) -> None:
        self.providers.pop(endpoint_url, None)

    def get_credential_provider(self, endpoint_url: str) -> Optional[CredentialProvider]:
        return self.providers.get(endpoint_url)
