"""
Authentication Module - Black Box Interface

Purpose: Authenticate with endpoints and keep their credentials live
Interface: start_device_auth(), login(), restore(), logout(), get_session(),
           has_session(), get_credential_provider()
Hidden: Provider caches, refresh wiring, OIDC protocol details

This module can be replaced with any other auth implementation without
affecting the session or storage modules.
"""

from .api import AuthApi, DeviceAuthFlow
from .factory import AuthFactory
from .interfaces import CredentialProvider, EndpointAdapter, NullEndpointAdapter
from .manager import AuthManager

__all__ = [
    "AuthApi",
    "AuthFactory",
    "AuthManager",
    "CredentialProvider",
    "DeviceAuthFlow",
    "EndpointAdapter",
    "NullEndpointAdapter",
]
