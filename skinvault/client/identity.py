import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from httpx import AsyncClient, HTTPError

from skinvault.core.exceptions import AuthError, SkinVaultError
from skinvault.models.auth import AuthUser

logger = logging.getLogger(__name__)

IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/v1"
SECURE_TOKEN_URL = "https://securetoken.googleapis.com/v1/token"

# Firebase error codes -> what the user gets to read
FIREBASE_ERROR_MESSAGES = {
    "EMAIL_EXISTS": "An account with this email already exists.",
    "INVALID_EMAIL": "The email address is badly formatted.",
    "WEAK_PASSWORD": "Password should be at least 6 characters.",
    "MISSING_PASSWORD": "A password is required.",
    "EMAIL_NOT_FOUND": "There is no account for this email.",
    "INVALID_PASSWORD": "Incorrect email or password.",
    "INVALID_LOGIN_CREDENTIALS": "Incorrect email or password.",
    "USER_DISABLED": "This account has been disabled.",
    "TOO_MANY_ATTEMPTS_TRY_LATER": "Too many attempts, try again later.",
    "TOKEN_EXPIRED": "Your session has expired, sign in again.",
    "INVALID_REFRESH_TOKEN": "Your session has expired, sign in again.",
}

UserListener = Callable[[Optional[AuthUser]], Union[Awaitable[None], None]]


class Session:
    """Holds the signed-in identity and the listeners observing it.

    Only the identity adapter changes the user; everything else subscribes.
    Listeners may be plain functions or coroutine functions.
    """

    def __init__(self):
        self._user: Optional[AuthUser] = None
        self._listeners: List[UserListener] = []

    @property
    def user(self) -> Optional[AuthUser]:
        return self._user

    async def subscribe(self, listener: UserListener) -> Callable[[], None]:
        """Register ``listener``, call it once with the current user and return an unsubscribe callable."""
        self._listeners.append(listener)
        await self._call(listener, self._user)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def set_user(self, user: Optional[AuthUser]) -> None:
        self._user = user
        for listener in list(self._listeners):
            await self._call(listener, user)

    async def _call(self, listener: UserListener, user: Optional[AuthUser]) -> None:
        # One failing listener must not keep the others from seeing the change
        try:
            result = listener(user)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("Session listener %r failed", listener)


class IdentityProvider:
    """Email/password accounts through the Firebase Authentication REST API."""

    def __init__(self, http_client: AsyncClient, api_key: Optional[str], session: Session):
        self.http_client = http_client
        self.api_key = api_key
        self.session = session

    async def _post(self, url: str, **kwargs) -> Dict[str, Any]:
        if not self.api_key:
            raise AuthError("Authentication is not configured (missing FIREBASE_API_KEY).")
        try:
            resp = await self.http_client.post(url, params={"key": self.api_key}, **kwargs)
        except HTTPError as e:
            logger.warning("Could not reach Firebase Authentication: %s", e)
            raise AuthError("Could not reach the authentication service.") from e

        if resp.is_error:
            raise AuthError(self._error_message(resp))
        try:
            body = resp.json()
        except ValueError as e:
            logger.warning("Firebase Authentication answered %s with a non-JSON body", resp.status_code)
            raise AuthError("Unexpected response from the authentication service.") from e
        if not isinstance(body, dict):
            raise AuthError("Unexpected response from the authentication service.")
        return body

    def _error_message(self, resp) -> str:
        try:
            code = resp.json()["error"]["message"]
        except (ValueError, KeyError, TypeError):
            return f"Authentication failed ({resp.status_code})."
        # Firebase sometimes appends detail: "WEAK_PASSWORD : Password should be ..."
        code = code.split(":")[0].strip()
        logger.info("Firebase rejected request: %s", code)
        return FIREBASE_ERROR_MESSAGES.get(code, code.replace("_", " ").capitalize() + ".")

    async def _sign_in_with(self, endpoint: str, email: str, password: str) -> AuthUser:
        data = await self._post(
            f"{IDENTITY_TOOLKIT_URL}/accounts:{endpoint}",
            json={"email": email, "password": password, "returnSecureToken": True},
        )
        try:
            user = AuthUser(
                uid=data["localId"],
                email=data.get("email", email),
                id_token=data["idToken"],
                refresh_token=data["refreshToken"],
                expires_in=int(data.get("expiresIn", 3600)),
            )
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Incomplete sign-in response from Firebase: %s", e)
            raise AuthError("Unexpected response from the authentication service.") from e
        await self.session.set_user(user)
        return user

    async def sign_up(self, email: str, password: str) -> AuthUser:
        """Create an account and sign it in.

        Nothing is stored on our backend here; the session listeners take
        care of syncing the new user.
        """
        user = await self._sign_in_with("signUp", email, password)
        logger.info("Created account %s", user.uid)
        return user

    async def sign_in(self, email: str, password: str) -> AuthUser:
        user = await self._sign_in_with("signInWithPassword", email, password)
        logger.info("Signed in %s", user.uid)
        return user

    async def refresh(self) -> AuthUser:
        """Exchange the refresh token for a new ID token."""
        current = self.session.user
        if current is None:
            raise AuthError("Not signed in.")
        data = await self._post(
            SECURE_TOKEN_URL,
            data={"grant_type": "refresh_token", "refresh_token": current.refresh_token},
        )
        try:
            user = current.model_copy(
                update={
                    "id_token": data["id_token"],
                    "refresh_token": data["refresh_token"],
                    "expires_in": int(data.get("expires_in", current.expires_in)),
                }
            )
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Incomplete token refresh response from Firebase: %s", e)
            raise AuthError("Unexpected response from the authentication service.") from e
        await self.session.set_user(user)
        logger.debug("Refreshed session for %s", user.uid)
        return user

    async def sign_out(self) -> None:
        # Firebase ID tokens are stateless; signing out only drops the local session.
        uid = self.session.user.uid if self.session.user else None
        await self.session.set_user(None)
        logger.info("Signed out %s", uid)

    async def on_user_changed(self, callback: UserListener) -> Callable[[], None]:
        return await self.session.subscribe(callback)


class SessionSync:
    """Upserts the backend user exactly once per transition into a signed-in session."""

    def __init__(self, session: Session, favorites_client, on_error: Optional[Callable[[SkinVaultError], None]] = None):
        self.session = session
        self.favorites_client = favorites_client
        self.on_error = on_error
        self._synced_uid: Optional[str] = None
        self._unsubscribe: Optional[Callable[[], None]] = None

    async def attach(self) -> None:
        self._unsubscribe = await self.session.subscribe(self._on_user_changed)

    def detach(self) -> None:
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None

    async def _on_user_changed(self, user: Optional[AuthUser]) -> None:
        if user is None:
            self._synced_uid = None
            return
        if user.uid == self._synced_uid:
            # token refresh, same session
            return
        self._synced_uid = user.uid
        try:
            await self.favorites_client.sync_user(user.uid, user.email)
        except SkinVaultError as e:
            logger.error("Could not sync user %s with backend: %s", user.uid, e.message)
            if self.on_error:
                self.on_error(e)
