"""Shared fixtures: the API wired to an in-memory user store."""
import copy
from typing import Any, Dict, Optional

import pytest
from httpx import ASGITransport, AsyncClient

from main import app
from skinvault.api.deps import get_db_service
from skinvault.core.config import Settings
from skinvault.core.exceptions import DuplicateFavoriteError, UserNotFoundError
from skinvault.services.database_service import favorite_key


class InMemoryUserStore:
    """Stands in for DynamoDBService with the same method contracts."""

    def __init__(self):
        self.items: Dict[str, Dict[str, Any]] = {}

    def _require(self, uid: str) -> Dict[str, Any]:
        if uid not in self.items:
            raise UserNotFoundError()
        return self.items[uid]

    async def get_user(self, uid: str) -> Optional[Dict[str, Any]]:
        item = self.items.get(uid)
        return copy.deepcopy(item) if item else None

    async def upsert_user(self, uid: str, email: str, now: str):
        created = uid not in self.items
        if created:
            self.items[uid] = {
                "uid": uid,
                "email": email,
                "created_at": now,
                "favorite_skins": {},
                "skin_history": [],
            }
        self.items[uid]["last_login"] = now
        return copy.deepcopy(self.items[uid]), created

    async def add_favorite(self, uid: str, favorite: Dict[str, Any]) -> Dict[str, Any]:
        item = self._require(uid)
        key = favorite_key(favorite["username"])
        if key in item["favorite_skins"]:
            raise DuplicateFavoriteError()
        item["favorite_skins"][key] = dict(favorite)
        return copy.deepcopy(item)

    async def remove_favorite(self, uid: str, username: str) -> Dict[str, Any]:
        item = self._require(uid)
        item["favorite_skins"].pop(favorite_key(username), None)
        return copy.deepcopy(item)

    async def set_minecraft_username(self, uid: str, minecraft_username: Optional[str]) -> Dict[str, Any]:
        item = self._require(uid)
        item["minecraft_username"] = minecraft_username or None
        return copy.deepcopy(item)

    async def append_skin_search(self, uid: str, entry: Dict[str, Any], limit: int) -> Dict[str, Any]:
        item = self._require(uid)
        item["skin_history"] = (item["skin_history"] + [dict(entry)])[-limit:]
        return copy.deepcopy(item)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        FIREBASE_API_KEY="test-api-key",
        API_BASE_URL="http://test",
        MOJANG_API_URL="https://api.mojang.test",
        SESSION_SERVER_URL="https://sessionserver.mojang.test",
        HTTP_TIMEOUT_SECONDS=2.0,
        FAVORITES_POLL_INTERVAL=0.01,
    )


@pytest.fixture
def store() -> InMemoryUserStore:
    return InMemoryUserStore()


@pytest.fixture
async def client(store: InMemoryUserStore):
    """HTTP client talking to the app in-process."""
    app.dependency_overrides[get_db_service] = lambda: store
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
async def synced_user(client: AsyncClient) -> Dict[str, Any]:
    response = await client.post("/api/users", json={"uid": "uid-1", "email": "steve@example.com"})
    assert response.status_code == 201
    return response.json()["user"]
