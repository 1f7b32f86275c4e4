"""
Session data models.

AuthSession is the persisted record of a completed authentication with
one endpoint. TokenResponse is the raw token material returned by a
token endpoint (or handed in by a caller that authenticated elsewhere).
"""

import time
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TokenResponse(BaseModel):
    """OAuth 2.0 token endpoint response."""

    model_config = ConfigDict(extra="ignore")

    access_token: str = Field(..., min_length=1)
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = Field(None, ge=0)
    scope: Optional[str] = None
    token_type: Optional[str] = None
    id_token: Optional[str] = None


class AuthSession(BaseModel):
    """Authenticated relationship with one endpoint."""

    endpoint_url: str
    access_token: str
    refresh_token: Optional[str] = None
    expires_at: int
    scope: Optional[str] = None

    @field_validator("endpoint_url")
    @classmethod
    def validate_endpoint_url(cls, v: str) -> str:
        """Stored URLs are already normalized; reject empty ones."""
        if not v:
            raise ValueError("endpoint_url must not be empty")
        return v

    def is_expired(self, now: Optional[float] = None) -> bool:
        """Check if the session is past its expiry."""
        if now is None:
            now = time.time()
        return self.expires_at <= int(now)

    def remaining_seconds(self, now: Optional[float] = None) -> int:
        """Seconds until expiry (0 if expired)."""
        if now is None:
            now = time.time()
        return max(0, self.expires_at - int(now))
