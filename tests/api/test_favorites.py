"""Tests for the favorite skins endpoints."""
import asyncio

import pytest
from httpx import AsyncClient

SKIN_IMAGE = "data:image/png;base64,iVBORw0KGgo="


async def _add(client: AsyncClient, username: str, uid: str = "uid-1"):
    return await client.post(f"/api/users/{uid}/favorites", json={"username": username, "skinImage": SKIN_IMAGE})


async def _list(client: AsyncClient, uid: str = "uid-1"):
    response = await client.get(f"/api/users/{uid}/favorites")
    assert response.status_code == 200
    return response.json()["favoriteSkins"]


async def test_list_favorites_empty(client: AsyncClient, synced_user) -> None:
    assert await _list(client) == []


async def test_list_favorites_unknown_user(client: AsyncClient) -> None:
    response = await client.get("/api/users/missing/favorites")
    assert response.status_code == 404


async def test_add_favorite_then_list(client: AsyncClient, synced_user) -> None:
    response = await _add(client, "Notch")
    assert response.status_code == 200
    assert response.json()["message"] == "Skin added to favorites"

    favorites = await _list(client)
    assert [f["username"] for f in favorites] == ["Notch"]
    assert favorites[0]["skinImage"] == SKIN_IMAGE
    assert "addedAt" in favorites[0]


async def test_favorites_listed_in_insertion_order(client: AsyncClient, synced_user) -> None:
    for name in ("jeb_", "Notch", "Dinnerbone"):
        assert (await _add(client, name)).status_code == 200
        await asyncio.sleep(0.001)
    assert [f["username"] for f in await _list(client)] == ["jeb_", "Notch", "Dinnerbone"]


@pytest.mark.parametrize("duplicate", ["Notch", "notch", "NOTCH"])
async def test_add_duplicate_favorite_is_rejected(client: AsyncClient, synced_user, duplicate) -> None:
    await _add(client, "Notch")
    before = await _list(client)

    response = await _add(client, duplicate)

    assert response.status_code == 400
    assert response.json()["code"] == "duplicate_favorite"
    assert await _list(client) == before


async def test_add_favorite_unknown_user(client: AsyncClient) -> None:
    response = await _add(client, "Notch", uid="missing")
    assert response.status_code == 404


@pytest.mark.parametrize(
    "body",
    [
        {"skinImage": SKIN_IMAGE},
        {"username": "Notch"},
        {"username": "  ", "skinImage": SKIN_IMAGE},
        {"username": "Notch", "skinImage": ""},
    ],
)
async def test_add_favorite_requires_fields(client: AsyncClient, synced_user, body) -> None:
    response = await client.post("/api/users/uid-1/favorites", json=body)
    assert response.status_code == 400
    assert response.json()["code"] == "validation_error"


async def test_remove_favorite_is_case_insensitive(client: AsyncClient, synced_user) -> None:
    before = await _list(client)
    await _add(client, "Notch")

    response = await client.delete("/api/users/uid-1/favorites/notch")

    assert response.status_code == 200
    assert response.json()["user"]["favoriteSkins"] == []
    assert await _list(client) == before


async def test_remove_favorite_ignores_surrounding_whitespace(client: AsyncClient, synced_user) -> None:
    await _add(client, " Notch")
    assert [f["username"] for f in await _list(client)] == ["Notch"]

    response = await client.delete("/api/users/uid-1/favorites/%20Notch%20")

    assert response.status_code == 200
    assert await _list(client) == []


async def test_remove_missing_favorite_is_a_noop(client: AsyncClient, synced_user) -> None:
    await _add(client, "Notch")
    before = await _list(client)

    response = await client.delete("/api/users/uid-1/favorites/jeb_")

    assert response.status_code == 200
    assert await _list(client) == before


async def test_remove_favorite_unknown_user(client: AsyncClient) -> None:
    response = await client.delete("/api/users/missing/favorites/Notch")
    assert response.status_code == 404


async def test_concurrent_adds_of_same_username_store_one(client: AsyncClient, synced_user) -> None:
    """The duplicate check and insert are one atomic store operation."""
    responses = await asyncio.gather(_add(client, "Notch"), _add(client, "notch"))

    assert sorted(r.status_code for r in responses) == [200, 400]
    assert len(await _list(client)) == 1
