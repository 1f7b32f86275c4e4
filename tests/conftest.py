"""
Shared pytest fixtures for mintauth tests.

This module provides common fixtures including:
- OIDCProviderMock: Fake endpoint + OpenID provider behind httpx.MockTransport
- Redis mocks for store/event tests
- Session service wiring with a controllable clock
"""

import fnmatch
import os
import sys
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union
from unittest.mock import AsyncMock, MagicMock
from urllib.parse import parse_qs

import httpx
import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from mintauth.config.provider import OIDCConfig
from mintauth.modules.events import EventBus
from mintauth.modules.session import AuthSessionService
from mintauth.modules.storage import MemorySessionStore

MINT_URL = "https://mint.test"
ISSUER = "https://auth.test"


class FakeClock:
    """Settable clock for expiry tests."""

    def __init__(self, now: float = 1_700_000_000):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# =============================================================================
# OIDC Provider Mocking Infrastructure
# =============================================================================

@dataclass
class RecordedRequest:
    """Record of a request made to the mock provider."""
    method: str
    url: str
    form: Dict[str, str] = field(default_factory=dict)


class OIDCProviderMock:
    """
    Fake endpoint and OpenID provider served through httpx.MockTransport.

    Token polls for the device grant consume queued outcomes in order:
    "authorization_pending", "slow_down", "access_denied", "expired_token"
    or a token dict. When the queue is empty the device is approved.

    Usage:
        def test_login(oidc_provider):
            oidc_provider.queue_device_outcomes("authorization_pending")
            client = OIDCClient(MINT_URL, http_client=oidc_provider.client())
    """

    def __init__(self, endpoint_url: str = MINT_URL, issuer: str = ISSUER):
        self.endpoint_url = endpoint_url
        self.issuer = issuer
        self.info: Dict[str, Any] = {
            "name": "Test Mint",
            "nuts": {
                "21": {
                    "openid_discovery": f"{issuer}/.well-known/openid-configuration",
                    "client_id": "cashu-client",
                }
            },
        }
        self.discovery: Dict[str, Any] = {
            "issuer": issuer,
            "token_endpoint": f"{issuer}/token",
            "device_authorization_endpoint": f"{issuer}/device/code",
        }
        self.device_interval = 0
        self.issued_tokens: Dict[str, Any] = {
            "access_token": "cat-device",
            "refresh_token": "refresh-device",
            "expires_in": 3600,
            "token_type": "Bearer",
        }
        self.refreshed_tokens: Dict[str, Any] = {
            "access_token": "cat-refreshed",
            "refresh_token": "refresh-rotated",
            "expires_in": 3600,
            "token_type": "Bearer",
        }
        self.refresh_error: Optional[str] = None
        self._device_outcomes: List[Union[str, Dict[str, Any]]] = []
        self.requests: List[RecordedRequest] = []

    def queue_device_outcomes(self, *outcomes: Union[str, Dict[str, Any]]) -> "OIDCProviderMock":
        self._device_outcomes.extend(outcomes)
        return self

    def handler(self, request: httpx.Request) -> httpx.Response:
        form = {}
        if request.method == "POST":
            form = {k: v[0] for k, v in parse_qs(request.content.decode()).items()}
        url = str(request.url)
        self.requests.append(RecordedRequest(request.method, url, form))

        if request.method == "GET" and url == f"{self.endpoint_url}/v1/info":
            return httpx.Response(200, json=self.info)
        if request.method == "GET" and url == f"{self.issuer}/.well-known/openid-configuration":
            return httpx.Response(200, json=self.discovery)
        if request.method == "POST" and url == f"{self.issuer}/device/code":
            return httpx.Response(200, json={
                "device_code": "dev-123",
                "user_code": "ABCD-EFGH",
                "verification_uri": f"{self.issuer}/device",
                "verification_uri_complete": f"{self.issuer}/device?user_code=ABCD-EFGH",
                "expires_in": 600,
                "interval": self.device_interval,
            })
        if request.method == "POST" and url == f"{self.issuer}/token":
            return self._token(form)
        return httpx.Response(404, json={"error": "not_found"})

    def _token(self, form: Dict[str, str]) -> httpx.Response:
        grant = form.get("grant_type")
        if grant == "urn:ietf:params:oauth:grant-type:device_code":
            outcome = self._device_outcomes.pop(0) if self._device_outcomes else self.issued_tokens
            if isinstance(outcome, dict):
                return httpx.Response(200, json=outcome)
            return httpx.Response(400, json={"error": outcome})
        if grant == "refresh_token":
            if self.refresh_error:
                return httpx.Response(400, json={"error": self.refresh_error})
            return httpx.Response(200, json=self.refreshed_tokens)
        return httpx.Response(400, json={"error": "unsupported_grant_type"})

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    def requests_to(self, suffix: str) -> List[RecordedRequest]:
        return [r for r in self.requests if r.url.endswith(suffix)]


@pytest.fixture
def oidc_provider():
    """Fake endpoint + OpenID provider."""
    return OIDCProviderMock()


@pytest.fixture
def oidc_config():
    """OIDC configuration with short timeouts for tests."""
    return OIDCConfig(poll_timeout=5, http_timeout=1.0)


# =============================================================================
# Session Service Infrastructure
# =============================================================================

@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return MemorySessionStore()


@pytest.fixture
def event_bus():
    return EventBus()


@pytest.fixture
def recorded_events(event_bus):
    """List of (event, payload) emitted on the bus."""
    events = []
    for name in ("session-updated", "session-deleted", "session-expired"):
        event_bus.on(name, lambda payload, name=name: events.append((name, payload)))
    return events


@pytest.fixture
def session_service(store, event_bus, clock):
    return AuthSessionService(store, event_bus=event_bus, clock=clock)


@pytest.fixture
def endpoint_adapter():
    """Mock endpoint adapter recording provider registrations."""
    adapter = MagicMock()
    adapter.set_credential_provider = MagicMock()
    adapter.clear_credential_provider = MagicMock()
    return adapter


# =============================================================================
# Redis Mocking Infrastructure
# =============================================================================

@pytest.fixture
def mock_redis():
    """Create a mock Redis client for async operations."""
    redis = AsyncMock()
    redis.publish = AsyncMock()
    redis.lpush = AsyncMock()
    redis.ltrim = AsyncMock()
    return redis


@pytest.fixture
def mock_redis_with_data():
    """
    Redis mock with in-memory data storage for more realistic tests.

    This allows testing code that reads back what it writes.
    """
    storage = {}
    sets = {}

    redis = AsyncMock()

    async def mock_set(key, value, *args, **kwargs):
        storage[key] = value
        return True

    async def mock_get(key):
        return storage.get(key)

    async def mock_delete(*keys):
        count = 0
        for key in keys:
            if key in storage:
                del storage[key]
                count += 1
        return count

    async def mock_sadd(key, *members):
        sets.setdefault(key, set()).update(members)
        return len(members)

    async def mock_srem(key, *members):
        sets.setdefault(key, set()).difference_update(members)
        return len(members)

    async def mock_smembers(key):
        return set(sets.get(key, set()))

    async def mock_keys(pattern):
        return [k for k in storage.keys() if fnmatch.fnmatch(k, pattern)]

    redis.set = mock_set
    redis.get = mock_get
    redis.delete = mock_delete
    redis.sadd = mock_sadd
    redis.srem = mock_srem
    redis.smembers = mock_smembers
    redis.keys = mock_keys
    redis._storage = storage  # Expose for test assertions
    redis._sets = sets

    return redis


# =============================================================================
# Test Markers Configuration
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: Integration tests requiring a live endpoint"
    )
    config.addinivalue_line(
        "markers", "slow: Tests that take a long time to run"
    )
