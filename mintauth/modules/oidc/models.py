from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class DeviceAuthorization(BaseModel):
    """Device authorization response (RFC 8628 section 3.2)."""

    model_config = ConfigDict(extra="ignore")

    device_code: str
    user_code: str
    verification_uri: str
    verification_uri_complete: Optional[str] = None
    expires_in: Optional[int] = None
    interval: int = Field(5, ge=0)


class ProviderMetadata(BaseModel):
    """Endpoints resolved by discovery."""

    issuer: Optional[str] = None
    client_id: str
    token_endpoint: str
    device_authorization_endpoint: Optional[str] = None
