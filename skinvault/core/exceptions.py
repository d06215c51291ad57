from typing import Optional

from fastapi import status


class SkinVaultError(Exception):
    """Base class for every failure surfaced to a caller.

    ``status_code`` is what the API answers with and ``code`` is the stable
    machine-readable tag carried in error bodies, which the client uses to
    rebuild the same exception type on its side.
    """

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "error"
    default_message: str = "Unexpected error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class AuthError(SkinVaultError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "auth_error"
    default_message = "Authentication failed"


class PlayerNotFoundError(SkinVaultError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "player_not_found"
    default_message = "Player not found"


class SkinNotFoundError(SkinVaultError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "skin_not_found"
    default_message = "Skin not found"


class ValidationError(SkinVaultError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "validation_error"
    default_message = "Invalid request"


class DuplicateFavoriteError(SkinVaultError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "duplicate_favorite"
    default_message = "Skin already in favorites"


class UserNotFoundError(SkinVaultError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "user_not_found"
    default_message = "User not found"


class NetworkError(SkinVaultError):
    status_code = status.HTTP_502_BAD_GATEWAY
    code = "network_error"
    default_message = "Network request failed"


class ServerError(SkinVaultError):
    code = "server_error"
    default_message = "Server error"


ERRORS_BY_CODE = {
    cls.code: cls
    for cls in (
        AuthError,
        PlayerNotFoundError,
        SkinNotFoundError,
        ValidationError,
        DuplicateFavoriteError,
        UserNotFoundError,
        NetworkError,
        ServerError,
    )
}
