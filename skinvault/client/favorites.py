import logging
from typing import Any, Dict, List, Optional, Type, TypeVar
from urllib.parse import quote

from httpx import AsyncClient, HTTPError, Response, TimeoutException
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from skinvault.client.skins import encode_image
from skinvault.core.exceptions import (
    ERRORS_BY_CODE,
    NetworkError,
    ServerError,
    SkinVaultError,
    UserNotFoundError,
    ValidationError,
)
from skinvault.models.user import FavoriteSkin, FavoritesResponse, User, UserResponse

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


def parse_body(model: Type[M], data: Any) -> M:
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        logger.warning("Malformed %s from the server: %s", model.__name__, e)
        raise ServerError("Unexpected response from the server.") from e


def error_from_response(resp: Response) -> SkinVaultError:
    """Rebuild the backend's error as the matching exception.

    The backend answers ``{"error": message, "code": code}``; when the body is
    not ours (proxy pages, crashes) the status code decides.
    """
    try:
        body = resp.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}
    message = body.get("error") or None

    cls = ERRORS_BY_CODE.get(body.get("code"))
    if cls is None:
        if resp.status_code == 404:
            cls = UserNotFoundError
        elif resp.status_code >= 500:
            cls = ServerError
        elif resp.status_code >= 400:
            cls = ValidationError
        else:
            cls = NetworkError
    return cls(message)


class FavoritesClient:
    """Client for the SkinVault backend: user sync and favorite skins."""

    def __init__(self, http_client: AsyncClient, base_url: str, timeout: Optional[float] = None):
        self.http_client = http_client
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    async def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        if self.timeout is not None:
            kwargs.setdefault("timeout", self.timeout)
        try:
            resp = await self.http_client.request(method, f"{self.base_url}{path}", **kwargs)
        except TimeoutException as e:
            logger.warning("%s %s timed out", method, path)
            raise NetworkError("The server took too long to answer.") from e
        except HTTPError as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise NetworkError("Could not reach the server.") from e

        if resp.is_error:
            error = error_from_response(resp)
            logger.info("%s %s -> %s %s", method, path, resp.status_code, error.code)
            raise error
        try:
            return resp.json()
        except ValueError as e:
            logger.warning("%s %s answered %s with a non-JSON body", method, path, resp.status_code)
            raise ServerError("Unexpected response from the server.") from e

    def _user_path(self, uid: str) -> str:
        return f"/api/users/{quote(uid, safe='')}"

    async def sync_user(self, uid: str, email: str) -> User:
        """Create the backend user or refresh its last login. Safe to call on every sign-in."""
        data = await self._request("POST", "/api/users", json={"uid": uid, "email": email})
        return parse_body(UserResponse, data).user

    async def get_user(self, uid: str) -> User:
        data = await self._request("GET", self._user_path(uid))
        return parse_body(User, data)

    async def list_favorites(self, uid: str) -> List[FavoriteSkin]:
        data = await self._request("GET", f"{self._user_path(uid)}/favorites")
        return parse_body(FavoritesResponse, data).favorite_skins

    async def add_favorite(
        self, uid: str, username: str, image_bytes: bytes, content_type: str = "image/png"
    ) -> User:
        """Store a skin under ``username``.

        The backend rejects a username already in the favorites (compared
        case-insensitively) with DuplicateFavoriteError, whatever checks the
        caller made beforehand.
        """
        if not username or not username.strip():
            raise ValidationError("A player name is required.")
        if not image_bytes:
            raise ValidationError("The skin image is empty.")
        payload = {"username": username, "skinImage": encode_image(image_bytes, content_type)}
        data = await self._request("POST", f"{self._user_path(uid)}/favorites", json=payload)
        return parse_body(UserResponse, data).user

    async def remove_favorite(self, uid: str, username: str) -> User:
        path = f"{self._user_path(uid)}/favorites/{quote(username, safe='')}"
        data = await self._request("DELETE", path)
        return parse_body(UserResponse, data).user

    async def set_minecraft_username(self, uid: str, minecraft_username: Optional[str]) -> User:
        data = await self._request(
            "PATCH", f"{self._user_path(uid)}/minecraft", json={"minecraftUsername": minecraft_username}
        )
        return parse_body(UserResponse, data).user

    async def record_search(self, uid: str, username: str, skin_url: str) -> User:
        data = await self._request(
            "POST", f"{self._user_path(uid)}/skins", json={"username": username, "skinUrl": skin_url}
        )
        return parse_body(UserResponse, data).user
