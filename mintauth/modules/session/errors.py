"""Session lifecycle errors.

Callers distinguish "never authenticated" (AuthSessionNotFoundError) from
"needs re-authentication" (AuthSessionExpiredError); both carry the
normalized endpoint URL.
"""


class AuthSessionError(Exception):
    """Base error for an endpoint's auth session."""

    def __init__(self, endpoint_url: str, message: str):
        super().__init__(f"{message}: {endpoint_url}")
        self.endpoint_url = endpoint_url
        self.message = message


class AuthSessionNotFoundError(AuthSessionError):
    """No session has been stored for the endpoint."""

    def __init__(self, endpoint_url: str):
        super().__init__(endpoint_url, "No auth session found")


class AuthSessionExpiredError(AuthSessionError):
    """The stored session is past its expiry."""

    def __init__(self, endpoint_url: str):
        super().__init__(endpoint_url, "Auth session expired")


class CredentialProviderError(Exception):
    """Failure reported by a credential provider or token protocol."""
