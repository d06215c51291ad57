from typing import List, Optional

from pydantic import BaseModel


class ProfileProperty(BaseModel):
    name: str
    value: str
    signature: Optional[str] = None


class MojangProfile(BaseModel):
    """Session-server profile: the player id plus its signed properties."""
    id: str
    name: str
    properties: List[ProfileProperty] = []


class ResolvedSkin(BaseModel):
    """A username paired with the texture URL it resolved to. Never persisted."""
    username: str
    profile_id: str
    texture_url: str
