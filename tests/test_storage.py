import json

import pytest

from mintauth.modules.session import AuthSession
from mintauth.modules.storage import MemorySessionStore, RedisSessionStore

MINT_URL = "https://mint.test"


def make_session(endpoint_url: str = MINT_URL, access_token: str = "cat") -> AuthSession:
    return AuthSession(
        endpoint_url=endpoint_url,
        access_token=access_token,
        refresh_token="refresh",
        expires_at=1_700_003_600,
        scope="openid",
    )


@pytest.mark.asyncio
async def test_memory_store_crud():
    """Test the in-memory store keeps one record per endpoint."""
    store = MemorySessionStore()

    assert await store.get_session(MINT_URL) is None

    await store.save_session(make_session(access_token="first"))
    await store.save_session(make_session(access_token="second"))

    session = await store.get_session(MINT_URL)
    assert session.access_token == "second"
    assert len(await store.get_all_sessions()) == 1

    await store.delete_session(MINT_URL)
    await store.delete_session(MINT_URL)
    assert await store.get_session(MINT_URL) is None


@pytest.mark.asyncio
async def test_memory_store_does_not_normalize():
    """Test keys are used exactly as given."""
    store = MemorySessionStore()
    await store.save_session(make_session())

    assert await store.get_session(MINT_URL + "/") is None


@pytest.mark.asyncio
async def test_redis_store_round_trip(mock_redis_with_data):
    """Test sessions are stored as JSON and indexed."""
    store = RedisSessionStore(redis_client=mock_redis_with_data, key_prefix="test")

    await store.save_session(make_session())

    raw = mock_redis_with_data._storage[f"test:session:{MINT_URL}"]
    assert json.loads(raw)["access_token"] == "cat"
    assert mock_redis_with_data._sets["test:sessions"] == {MINT_URL}

    session = await store.get_session(MINT_URL)
    assert session == make_session()


@pytest.mark.asyncio
async def test_redis_store_get_missing(mock_redis_with_data):
    """Test a missing key returns None."""
    store = RedisSessionStore(redis_client=mock_redis_with_data)

    assert await store.get_session(MINT_URL) is None


@pytest.mark.asyncio
async def test_redis_store_delete(mock_redis_with_data):
    """Test delete removes the record and its index entry."""
    store = RedisSessionStore(redis_client=mock_redis_with_data)
    await store.save_session(make_session())

    await store.delete_session(MINT_URL)
    await store.delete_session(MINT_URL)

    assert await store.get_session(MINT_URL) is None
    assert await store.get_all_sessions() == []


@pytest.mark.asyncio
async def test_redis_store_get_all_cleans_stale_index(mock_redis_with_data):
    """Test index entries without a record are dropped."""
    store = RedisSessionStore(redis_client=mock_redis_with_data)
    await store.save_session(make_session("https://a.test"))
    await store.save_session(make_session("https://b.test"))
    del mock_redis_with_data._storage["mintauth:session:https://b.test"]

    sessions = await store.get_all_sessions()

    assert [s.endpoint_url for s in sessions] == ["https://a.test"]
    assert mock_redis_with_data._sets["mintauth:sessions"] == {"https://a.test"}


@pytest.mark.asyncio
async def test_redis_store_skips_corrupt_record(mock_redis_with_data):
    """Test unreadable records are skipped when listing."""
    store = RedisSessionStore(redis_client=mock_redis_with_data)
    await store.save_session(make_session("https://a.test"))
    mock_redis_with_data._storage["mintauth:session:https://bad.test"] = "{not json"
    mock_redis_with_data._sets["mintauth:sessions"].add("https://bad.test")

    sessions = await store.get_all_sessions()

    assert [s.endpoint_url for s in sessions] == ["https://a.test"]


@pytest.mark.asyncio
async def test_redis_store_disconnect_keeps_injected_client(mock_redis_with_data):
    """Test an injected client is not closed by the store."""
    store = RedisSessionStore(redis_client=mock_redis_with_data)

    await store.disconnect()

    assert await store.connect() is mock_redis_with_data
