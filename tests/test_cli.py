import time

import pytest
from click.testing import CliRunner

from mintauth.cli import main
from mintauth.modules.auth import AuthFactory
from mintauth.modules.session import AuthSession
from mintauth.modules.storage import MemorySessionStore

MINT_URL = "https://mint.test"


@pytest.fixture
def runner(monkeypatch):
    monkeypatch.delenv("MINTAUTH_STORE", raising=False)
    monkeypatch.delenv("MINTAUTH_SESSION_TTL", raising=False)
    return CliRunner()


@pytest.fixture
def shared_store(monkeypatch):
    """One store shared by every CLI invocation in the test."""
    store = MemorySessionStore()
    monkeypatch.setattr(AuthFactory, "build_store", staticmethod(lambda config_provider, redis_client=None: store))
    return store


def put_session(store: MemorySessionStore, expires_at: int, endpoint_url: str = MINT_URL):
    store._sessions[endpoint_url] = AuthSession(
        endpoint_url=endpoint_url,
        access_token="cat",
        refresh_token=None,
        expires_at=expires_at,
    )


def test_status_not_logged_in(runner):
    """Test status exits 1 when no session exists."""
    result = runner.invoke(main, ["status", MINT_URL])

    assert result.exit_code == 1
    assert "not logged in" in result.output


def test_status_logged_in(runner, shared_store):
    """Test status reports a valid session."""
    put_session(shared_store, int(time.time()) + 600)

    result = runner.invoke(main, ["status", "https://MINT.test/"])

    assert result.exit_code == 0
    assert "logged in" in result.output
    assert "refresh: no" in result.output


def test_status_expired(runner, shared_store):
    """Test status exits 2 for an expired session."""
    put_session(shared_store, int(time.time()) - 10)

    result = runner.invoke(main, ["status", MINT_URL])

    assert result.exit_code == 2
    assert "session expired" in result.output


def test_status_invalid_url(runner):
    """Test malformed URLs are reported as errors."""
    result = runner.invoke(main, ["status", "not-a-url"])

    assert result.exit_code == 1
    assert "Invalid endpoint URL" in result.output


def test_logout(runner, shared_store):
    """Test logout removes the stored session."""
    put_session(shared_store, int(time.time()) + 600)

    result = runner.invoke(main, ["logout", MINT_URL])

    assert result.exit_code == 0
    assert f"Logged out of {MINT_URL}" in result.output
    assert shared_store._sessions == {}


def test_restore_without_sessions(runner):
    """Test restore with an empty store."""
    result = runner.invoke(main, ["restore"])

    assert result.exit_code == 0
    assert "No stored sessions" in result.output


def test_restore_reports_each_session(runner, shared_store):
    """Test restore prints one line per stored session."""
    put_session(shared_store, int(time.time()) + 600, "https://a.test")
    put_session(shared_store, int(time.time()) - 10, "https://b.test")

    result = runner.invoke(main, ["restore"])

    assert result.exit_code == 0
    assert "https://a.test: restored" in result.output
    assert "https://b.test: expired" in result.output
