from typing import Optional

from ..session.errors import CredentialProviderError


class OIDCError(CredentialProviderError):
    """OIDC discovery or token endpoint failure."""

    def __init__(self, message: str, error: Optional[str] = None):
        super().__init__(message)
        self.error = error


class DeviceAuthCancelledError(OIDCError):
    """The pending device-code poll was cancelled."""

    def __init__(self):
        super().__init__("Device authorization cancelled", error="cancelled")


class DeviceAuthTimeoutError(OIDCError):
    """The user did not authorize before the poll timeout."""

    def __init__(self, timeout: float):
        super().__init__(f"Device authorization timed out after {timeout:g}s", error="timeout")
        self.timeout = timeout
