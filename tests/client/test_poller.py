"""Tests for the periodic favorites refresh."""
import asyncio
from unittest.mock import AsyncMock

import httpx

from skinvault.client.favorites import FavoritesClient
from skinvault.client.poller import FavoritesPoller
from skinvault.core.exceptions import NetworkError, ServerError


async def test_polls_until_stopped() -> None:
    favorites = AsyncMock()
    favorites.list_favorites.return_value = []
    updates = []
    poller = FavoritesPoller(favorites, "uid-1", 0.01, on_update=updates.append)

    poller.start()
    await asyncio.sleep(0.05)
    await poller.stop()
    calls = favorites.list_favorites.await_count
    await asyncio.sleep(0.03)

    assert calls >= 2
    assert favorites.list_favorites.await_count == calls
    assert not poller.running
    favorites.list_favorites.assert_awaited_with("uid-1")


async def test_first_fetch_is_immediate() -> None:
    favorites = AsyncMock()
    favorites.list_favorites.return_value = ["fav"]
    updates = []

    async with FavoritesPoller(favorites, "uid-1", 60, on_update=updates.append):
        await asyncio.sleep(0.01)

    assert updates == [["fav"]]


async def test_errors_are_reported_and_polling_continues() -> None:
    favorites = AsyncMock()
    failures = [NetworkError()]

    async def list_favorites(uid):
        if failures:
            raise failures.pop()
        return []

    favorites.list_favorites.side_effect = list_favorites
    updates, errors = [], []
    poller = FavoritesPoller(favorites, "uid-1", 0.01, on_update=updates.append, on_error=errors.append)

    poller.start()
    await asyncio.sleep(0.05)
    await poller.stop()

    assert isinstance(errors[0], NetworkError)
    assert updates


async def test_stop_without_start_and_double_start() -> None:
    favorites = AsyncMock()
    favorites.list_favorites.return_value = []
    poller = FavoritesPoller(favorites, "uid-1", 0.01, on_update=lambda favs: None)
    await poller.stop()

    poller.start()
    task = poller._task
    poller.start()
    assert poller._task is task
    await poller.stop()


async def test_unparseable_response_keeps_polling() -> None:
    def handler(request):
        return httpx.Response(200, text="<html>captive portal</html>")

    errors = []
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
        client = FavoritesClient(http_client, "http://test")
        poller = FavoritesPoller(client, "uid-1", 0.01, on_update=lambda favs: None, on_error=errors.append)
        poller.start()
        await asyncio.sleep(0.05)

        assert poller.running
        await poller.stop()

    assert errors
    assert all(isinstance(e, ServerError) for e in errors)
    assert not poller.running
