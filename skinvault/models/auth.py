from typing import Optional

from pydantic import BaseModel


class AuthUser(BaseModel):
    """
    Identity returned by Firebase Authentication for the signed-in account.
    """
    uid: str
    email: Optional[str] = None
    id_token: str
    refresh_token: str
    expires_in: int = 3600
