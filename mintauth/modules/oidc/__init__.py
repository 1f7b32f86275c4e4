"""
OIDC Module - Black Box Interface

Purpose: Obtain and renew tokens from an endpoint's OpenID provider
Interface: discover(), start_device_auth(), poll_device_token(), refresh()
Hidden: Discovery documents, grant encodings, polling back-off

Replaceable with any client exposing the same coroutines.
"""

from .client import OIDCClient
from .errors import DeviceAuthCancelledError, DeviceAuthTimeoutError, OIDCError
from .models import DeviceAuthorization, ProviderMetadata

__all__ = [
    "OIDCClient",
    "OIDCError",
    "DeviceAuthCancelledError",
    "DeviceAuthTimeoutError",
    "DeviceAuthorization",
    "ProviderMetadata",
]
