import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from src.cache.connection import RedisConnection
from src.core.config import RedisSettings


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def _client(ping_side_effect=None):
    client = MagicMock()
    client.ping = AsyncMock(return_value=True, side_effect=ping_side_effect)
    client.aclose = AsyncMock()
    return client


@pytest.fixture
def settings():
    return RedisSettings(url="redis://cache:6379/1", retry_cooldown_seconds=30.0)


@pytest.mark.asyncio
async def test_client_is_created_once_and_shared(settings):
    client = _client()
    factory = MagicMock(return_value=client)
    connection = RedisConnection(settings, factory=factory)

    results = await asyncio.gather(connection.get(), connection.get(), connection.get())

    assert results == [client, client, client]
    factory.assert_called_once()
    assert factory.call_args.args == ("redis://cache:6379/1",)
    assert factory.call_args.kwargs["decode_responses"] is False
    client.ping.assert_awaited_once()
    assert connection.connected is True


@pytest.mark.asyncio
async def test_failed_ping_waits_for_cooldown(settings):
    down = _client(ping_side_effect=RedisConnectionError("refused"))
    up = _client()
    factory = MagicMock(side_effect=[down, up])
    clock = FakeClock()
    connection = RedisConnection(settings, factory=factory, clock=clock)

    assert await connection.get() is None
    clock.now += 10
    assert await connection.get() is None
    assert factory.call_count == 1

    clock.now += 25
    assert await connection.get() is up
    assert factory.call_count == 2


@pytest.mark.asyncio
async def test_healthy(settings):
    client = _client()
    connection = RedisConnection(settings, factory=MagicMock(return_value=client))
    assert await connection.healthy() is True

    client.ping.side_effect = asyncio.TimeoutError()
    assert await connection.healthy() is False


@pytest.mark.asyncio
async def test_healthy_when_unreachable(settings):
    down = _client(ping_side_effect=OSError("no route to host"))
    connection = RedisConnection(settings, factory=MagicMock(return_value=down))
    assert await connection.healthy() is False


@pytest.mark.asyncio
async def test_close_discards_client(settings):
    first, second = _client(), _client()
    connection = RedisConnection(settings, factory=MagicMock(side_effect=[first, second]))

    assert await connection.get() is first
    await connection.close()

    first.aclose.assert_awaited_once()
    assert connection.connected is False
    assert await connection.get() is second
