import logging
from datetime import datetime, timezone
from typing import Any, Dict, Tuple

from skinvault.core.exceptions import UserNotFoundError
from skinvault.models.user import (
    FavoriteCreate,
    FavoriteSkin,
    FavoritesResponse,
    MinecraftUsernameUpdate,
    SkinSearch,
    SkinSearchCreate,
    User,
    UserResponse,
    UserSyncRequest,
)
from skinvault.services.database_service import DynamoDBService

logger = logging.getLogger(__name__)

# Only the most recent searches are kept per user
SKIN_HISTORY_LIMIT = 10


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


def item_to_user(item: Dict[str, Any]) -> User:
    """Build the API view of a stored user item.

    Favorites are stored in a map keyed by lower-cased username; they are
    listed oldest first.
    """
    favorites = [FavoriteSkin(**fav) for fav in (item.get("favorite_skins") or {}).values()]
    favorites.sort(key=lambda fav: fav.added_at)
    return User(
        uid=item["uid"],
        email=item["email"],
        created_at=item["created_at"],
        last_login=item["last_login"],
        minecraft_username=item.get("minecraft_username"),
        favorite_skins=favorites,
        skin_history=[SkinSearch(**entry) for entry in item.get("skin_history") or []],
    )


async def _require_user(uid: str, db_service: DynamoDBService) -> Dict[str, Any]:
    item = await db_service.get_user(uid)
    if item is None:
        logger.info("User %s not found", uid)
        raise UserNotFoundError()
    return item


async def sync_user_controller(body: UserSyncRequest, db_service: DynamoDBService) -> Tuple[UserResponse, bool]:
    """Upsert the user for a fresh sign-in. Returns the response and whether it was created."""
    item, created = await db_service.upsert_user(body.uid, body.email, _utcnow())
    message = "User created" if created else "User login updated"
    return UserResponse(message=message, user=item_to_user(item)), created


async def get_user_controller(uid: str, db_service: DynamoDBService) -> User:
    return item_to_user(await _require_user(uid, db_service))


async def list_favorites_controller(uid: str, db_service: DynamoDBService) -> FavoritesResponse:
    user = item_to_user(await _require_user(uid, db_service))
    return FavoritesResponse(favorite_skins=user.favorite_skins)


async def add_favorite_controller(uid: str, body: FavoriteCreate, db_service: DynamoDBService) -> UserResponse:
    favorite = {
        "username": body.username,
        "skin_image": body.skin_image,
        "added_at": _utcnow(),
    }
    item = await db_service.add_favorite(uid, favorite)
    return UserResponse(message="Skin added to favorites", user=item_to_user(item))


async def remove_favorite_controller(uid: str, username: str, db_service: DynamoDBService) -> UserResponse:
    item = await db_service.remove_favorite(uid, username.strip())
    return UserResponse(message="Skin removed from favorites", user=item_to_user(item))


async def set_minecraft_username_controller(
    uid: str, body: MinecraftUsernameUpdate, db_service: DynamoDBService
) -> UserResponse:
    item = await db_service.set_minecraft_username(uid, body.minecraft_username)
    return UserResponse(message="Minecraft username updated", user=item_to_user(item))


async def record_skin_search_controller(
    uid: str, body: SkinSearchCreate, db_service: DynamoDBService
) -> UserResponse:
    entry = {
        "username": body.username,
        "skin_url": body.skin_url,
        "searched_at": _utcnow(),
    }
    item = await db_service.append_skin_search(uid, entry, SKIN_HISTORY_LIMIT)
    return UserResponse(message="Skin added to history", user=item_to_user(item))
