from datetime import datetime
from typing import List, Optional

from pydantic import EmailStr

from skinvault.models.base import CamelModel, NonEmptyStr


class FavoriteSkin(CamelModel):
    """A skin the user chose to keep, with its image embedded as a data URL."""
    username: str
    skin_image: str
    added_at: datetime


class SkinSearch(CamelModel):
    username: str
    skin_url: str
    searched_at: datetime


class User(CamelModel):
    """
    Backend record for an identity issued by Firebase.
    """
    uid: str
    email: EmailStr
    created_at: datetime
    last_login: datetime
    minecraft_username: Optional[str] = None
    favorite_skins: List[FavoriteSkin] = []
    skin_history: List[SkinSearch] = []


# --- Request bodies ---

class UserSyncRequest(CamelModel):
    uid: NonEmptyStr
    email: EmailStr


class FavoriteCreate(CamelModel):
    username: NonEmptyStr
    skin_image: NonEmptyStr


class MinecraftUsernameUpdate(CamelModel):
    minecraft_username: Optional[str] = None


class SkinSearchCreate(CamelModel):
    username: NonEmptyStr
    skin_url: NonEmptyStr


# --- Responses ---

class UserResponse(CamelModel):
    message: str
    user: User


class FavoritesResponse(CamelModel):
    favorite_skins: List[FavoriteSkin]


class HealthResponse(CamelModel):
    status: str
    timestamp: datetime
