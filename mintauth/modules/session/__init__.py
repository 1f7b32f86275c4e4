"""
Session Module - Black Box Interface

Purpose: Manage auth session records and their expiry
Interface: get_valid_session(), save_session(), delete_session(), has_session()
Hidden: Store access, expiry arithmetic, event emission

Replaceable with any session backend (database, in-memory, distributed cache).
"""

from .errors import (
    AuthSessionError,
    AuthSessionExpiredError,
    AuthSessionNotFoundError,
    CredentialProviderError,
)
from .models import AuthSession, TokenResponse
from .service import AuthSessionService

__all__ = [
    "AuthSession",
    "TokenResponse",
    "AuthSessionService",
    "AuthSessionError",
    "AuthSessionNotFoundError",
    "AuthSessionExpiredError",
    "CredentialProviderError",
]
