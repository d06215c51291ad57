import logging

from fastapi import APIRouter, Depends, Response, status

from skinvault.api.deps import get_db_service
from skinvault.controllers.users import (
    add_favorite_controller,
    get_user_controller,
    list_favorites_controller,
    record_skin_search_controller,
    remove_favorite_controller,
    set_minecraft_username_controller,
    sync_user_controller,
)
from skinvault.models.user import (
    FavoriteCreate,
    FavoritesResponse,
    MinecraftUsernameUpdate,
    SkinSearchCreate,
    User,
    UserResponse,
    UserSyncRequest,
)
from skinvault.services.database_service import DynamoDBService

logger = logging.getLogger(__name__)
router = APIRouter()

@router.post(
    "",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create or update user",
)
async def sync_user(
    body: UserSyncRequest,
    response: Response,
    db_service: DynamoDBService = Depends(get_db_service),
):
    """
    Called by the client on every sign-in. Creates the user on first sight
    (201), otherwise refreshes its last login (200).
    """
    result, created = await sync_user_controller(body, db_service)
    if not created:
        response.status_code = status.HTTP_200_OK
    return result

@router.get("/{uid}", response_model=User, summary="Get user by UID")
async def get_user(uid: str, db_service: DynamoDBService = Depends(get_db_service)):
    return await get_user_controller(uid, db_service)

@router.patch("/{uid}/minecraft", response_model=UserResponse, summary="Update Minecraft username")
async def set_minecraft_username(
    uid: str,
    body: MinecraftUsernameUpdate,
    db_service: DynamoDBService = Depends(get_db_service),
):
    return await set_minecraft_username_controller(uid, body, db_service)

@router.post("/{uid}/skins", response_model=UserResponse, summary="Add skin to search history")
async def record_skin_search(
    uid: str,
    body: SkinSearchCreate,
    db_service: DynamoDBService = Depends(get_db_service),
):
    return await record_skin_search_controller(uid, body, db_service)

@router.get("/{uid}/favorites", response_model=FavoritesResponse, summary="List favorite skins")
async def list_favorites(uid: str, db_service: DynamoDBService = Depends(get_db_service)):
    return await list_favorites_controller(uid, db_service)

@router.post("/{uid}/favorites", response_model=UserResponse, summary="Add favorite skin")
async def add_favorite(
    uid: str,
    body: FavoriteCreate,
    db_service: DynamoDBService = Depends(get_db_service),
):
    """
    Stores the skin under the given username. Usernames are unique per user,
    compared case-insensitively; a second add of the same name answers 400.
    """
    return await add_favorite_controller(uid, body, db_service)

@router.delete("/{uid}/favorites/{username}", response_model=UserResponse, summary="Remove favorite skin")
async def remove_favorite(
    uid: str,
    username: str,
    db_service: DynamoDBService = Depends(get_db_service),
):
    """Removing a username that is not in the favorites succeeds and changes nothing."""
    return await remove_favorite_controller(uid, username, db_service)
