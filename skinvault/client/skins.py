import base64
import binascii
import json
import logging
from typing import Optional, Tuple
from urllib.parse import quote

from httpx import AsyncClient, HTTPError, Response, TimeoutException
from pydantic import ValidationError as PydanticValidationError

from skinvault.core.config import Settings
from skinvault.core.exceptions import NetworkError, PlayerNotFoundError, SkinNotFoundError, ValidationError
from skinvault.models.skin import MojangProfile, ResolvedSkin

logger = logging.getLogger(__name__)

TEXTURES_PROPERTY = "textures"
# Mojang answers an unknown name with 204 (older API) or 404, and 400 for names it can't parse
NOT_FOUND_STATUSES = {204, 400, 404}


def encode_image(data: bytes, content_type: str = "image/png") -> str:
    """Encode image bytes as a ``data:`` URL, the form favorites are stored in."""
    return f"data:{content_type};base64,{base64.b64encode(data).decode('ascii')}"


def extract_texture_url(profile: MojangProfile) -> str:
    """Read ``textures.SKIN.url`` out of a profile's signed texture property.

    The property value is base64-encoded JSON. Raises SkinNotFoundError when
    the property, the payload or the SKIN entry is missing or unreadable.
    """
    props = [p for p in profile.properties if p.name == TEXTURES_PROPERTY]
    if not props and len(profile.properties) == 1:
        props = profile.properties
    if not props:
        raise SkinNotFoundError(f"No texture data for {profile.name}")

    try:
        decoded = json.loads(base64.b64decode(props[0].value))
    except (binascii.Error, ValueError) as e:
        logger.warning("Unreadable texture property for profile %s: %s", profile.id, e)
        raise SkinNotFoundError(f"No skin found for {profile.name}") from e

    url = ((decoded.get("textures") or {}).get("SKIN") or {}).get("url") if isinstance(decoded, dict) else None
    if not url:
        raise SkinNotFoundError(f"No skin found for {profile.name}")
    return url


class SkinResolver:
    """Resolves a player name to its skin texture URL.

    Two sequential lookups: name -> profile id on the Mojang API, then
    id -> signed profile on the session server. No caching and no retries;
    every request carries an explicit timeout.
    """

    def __init__(self, http_client: AsyncClient, settings: Settings):
        self.http_client = http_client
        self.api_url = settings.MOJANG_API_URL.rstrip("/")
        self.session_url = settings.SESSION_SERVER_URL.rstrip("/")
        self.timeout = settings.HTTP_TIMEOUT_SECONDS

    async def _get(self, url: str) -> Response:
        try:
            return await self.http_client.get(url, timeout=self.timeout)
        except TimeoutException as e:
            logger.warning("Timed out fetching %s", url)
            raise NetworkError("The request timed out.") from e
        except HTTPError as e:
            logger.warning("Request to %s failed: %s", url, e)
            raise NetworkError("Could not reach the skin service.") from e

    async def lookup_profile_id(self, username: str) -> str:
        resp = await self._get(f"{self.api_url}/users/profiles/minecraft/{quote(username, safe='')}")
        if resp.status_code in NOT_FOUND_STATUSES:
            logger.info("Player %s not found", username)
            raise PlayerNotFoundError(f"Player {username} not found")
        if resp.is_error:
            raise NetworkError(f"Profile lookup failed ({resp.status_code}).")
        try:
            return resp.json()["id"]
        except (ValueError, KeyError, TypeError) as e:
            raise PlayerNotFoundError(f"Player {username} not found") from e

    async def fetch_profile(self, profile_id: str) -> MojangProfile:
        resp = await self._get(f"{self.session_url}/session/minecraft/profile/{quote(profile_id, safe='')}")
        if resp.status_code in (204, 404):
            raise SkinNotFoundError("No profile data for this player")
        if resp.is_error:
            raise NetworkError(f"Profile fetch failed ({resp.status_code}).")
        try:
            return MojangProfile.model_validate(resp.json())
        except (ValueError, PydanticValidationError) as e:
            raise SkinNotFoundError("Malformed profile data for this player") from e

    async def resolve_skin(self, username: str) -> ResolvedSkin:
        if not username or not username.strip():
            raise ValidationError("Enter a player name.")
        profile_id = await self.lookup_profile_id(username)
        profile = await self.fetch_profile(profile_id)
        url = extract_texture_url(profile)
        logger.debug("Resolved %s -> %s", username, url)
        return ResolvedSkin(username=username, profile_id=profile_id, texture_url=url)

    async def fetch_texture(self, url: str) -> Tuple[bytes, str]:
        """Download a skin bitmap. Returns its bytes and content type."""
        resp = await self._get(url)
        if resp.is_error:
            raise NetworkError(f"Could not download skin ({resp.status_code}).")
        content_type: Optional[str] = resp.headers.get("content-type")
        return resp.content, (content_type or "image/png").split(";")[0].strip()
