"""
Adapter Module - Black Box Interface

Purpose: Attach endpoint credentials to outbound requests
Interface: set_credential_provider(), clear_credential_provider(), request()
Hidden: HTTP client, header format

Any object with set/clear_credential_provider can stand in for it.
"""

from .http_adapter import HttpEndpointAdapter

__all__ = ["HttpEndpointAdapter"]
