"""Configuration provider following Black Box Design principles."""
import os
from dataclasses import dataclass, field
from typing import List, Literal, Optional, Protocol


@dataclass
class OIDCConfig:
    """OIDC client configuration."""
    client_id: Optional[str] = None
    scopes: List[str] = field(default_factory=lambda: ["openid", "offline_access"])
    metadata_path: str = "/v1/info"
    poll_timeout: int = 300
    refresh_leeway: int = 30
    http_timeout: float = 10.0

    @property
    def scope(self) -> str:
        """Space separated scope string for token requests."""
        return " ".join(self.scopes)


@dataclass
class SessionConfig:
    """Session persistence configuration."""
    default_ttl: int = 3600
    store_backend: Literal["memory", "redis"] = "memory"
    redis_url: str = "redis://localhost:6379/0"
    key_prefix: str = "mintauth"

    @property
    def uses_redis(self) -> bool:
        """Check if sessions are persisted in Redis."""
        return self.store_backend == "redis"


class ConfigProvider(Protocol):
    """Protocol for configuration providers."""

    def get_oidc_config(self) -> OIDCConfig:
        """Get OIDC configuration."""
        ...

    def get_session_config(self) -> SessionConfig:
        """Get session configuration."""
        ...


def _int_env(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}") from None


def _float_env(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {value!r}") from None


class EnvConfigProvider:
    """Environment-based configuration provider."""

    def get_oidc_config(self) -> OIDCConfig:
        """Get OIDC configuration from environment variables."""
        return OIDCConfig(
            client_id=os.getenv("MINTAUTH_CLIENT_ID") or None,
            scopes=os.getenv("MINTAUTH_SCOPES", "openid offline_access").split(),
            metadata_path=os.getenv("MINTAUTH_METADATA_PATH", "/v1/info"),
            poll_timeout=_int_env("MINTAUTH_POLL_TIMEOUT", 300),
            refresh_leeway=_int_env("MINTAUTH_REFRESH_LEEWAY", 30),
            http_timeout=_float_env("MINTAUTH_HTTP_TIMEOUT", 10.0),
        )

    def get_session_config(self) -> SessionConfig:
        """Get session configuration from environment variables."""
        backend = os.getenv("MINTAUTH_STORE", "memory").lower()
        if backend not in ("memory", "redis"):
            raise ValueError(
                f"MINTAUTH_STORE must be 'memory' or 'redis', got {backend!r}"
            )

        return SessionConfig(
            default_ttl=_int_env("MINTAUTH_SESSION_TTL", 3600),
            store_backend=backend,
            redis_url=os.getenv("REDIS_URL", "redis://localhost:6379/0"),
            key_prefix=os.getenv("MINTAUTH_KEY_PREFIX", "mintauth"),
        )
