import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Protocol

from skinvault.client.favorites import FavoritesClient
from skinvault.client.identity import IdentityProvider, Session
from skinvault.client.poller import FavoritesPoller
from skinvault.client.skins import SkinResolver
from skinvault.core.exceptions import SkinVaultError
from skinvault.models.auth import AuthUser
from skinvault.models.skin import ResolvedSkin
from skinvault.models.user import FavoriteSkin

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


@dataclass
class Notification:
    """A dismissible message shown to the user."""
    title: str
    message: str
    is_error: bool = False


Notifier = Callable[[Notification], None]


class SkinRenderer(Protocol):
    """Anything that can display a skin given its texture URL (e.g. a 3-D viewer)."""

    def render(self, texture_url: str) -> None:
        ...


class AuthView:
    """Sign-in / sign-up form logic."""

    def __init__(self, identity: IdentityProvider, notify: Notifier):
        self.identity = identity
        self.notify = notify
        self.loading = False

    def _validate(self, email: str, password: str, confirm_password: Optional[str], is_login: bool) -> Optional[str]:
        if not email or not password:
            return "Please fill in every field."
        if not is_login and password != confirm_password:
            return "Passwords do not match."
        if len(password) < MIN_PASSWORD_LENGTH:
            return f"Password must be at least {MIN_PASSWORD_LENGTH} characters."
        return None

    async def submit(
        self, email: str, password: str, confirm_password: Optional[str] = None, is_login: bool = True
    ) -> Optional[AuthUser]:
        problem = self._validate(email, password, confirm_password, is_login)
        if problem:
            self.notify(Notification("Error", problem, is_error=True))
            return None

        self.loading = True
        try:
            if is_login:
                user = await self.identity.sign_in(email, password)
                self.notify(Notification("Success", "Signed in."))
            else:
                user = await self.identity.sign_up(email, password)
                self.notify(Notification("Success", "Account created."))
            return user
        except SkinVaultError as e:
            self.notify(Notification("Error", e.message, is_error=True))
            return None
        finally:
            self.loading = False

    async def log_out(self) -> None:
        try:
            await self.identity.sign_out()
            self.notify(Notification("Success", "Signed out."))
        except SkinVaultError as e:
            self.notify(Notification("Error", e.message, is_error=True))


class HomeView:
    """Skin search, preview and favorites for the signed-in user.

    Owns the favorites poller: it runs while a user is signed in and is
    cancelled on sign-out or when the view is disposed.
    """

    def __init__(
        self,
        session: Session,
        resolver: SkinResolver,
        favorites_client: FavoritesClient,
        notify: Notifier,
        poll_interval: float,
        renderer: Optional[SkinRenderer] = None,
    ):
        self.session = session
        self.resolver = resolver
        self.favorites_client = favorites_client
        self.notify = notify
        self.poll_interval = poll_interval
        self.renderer = renderer

        self.resolved: Optional[ResolvedSkin] = None
        self.favorites: List[FavoriteSkin] = []
        self.loading = False
        self.adding_favorite = False
        self.poller: Optional[FavoritesPoller] = None
        self._unsubscribe: Optional[Callable[[], None]] = None

    async def attach(self) -> None:
        self._unsubscribe = await self.session.subscribe(self._on_user_changed)

    async def dispose(self) -> None:
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None
        await self._stop_polling()

    async def _on_user_changed(self, user: Optional[AuthUser]) -> None:
        if user is None:
            await self._stop_polling()
            self.resolved = None
            self.favorites = []
            return
        if self.poller and self.poller.uid == user.uid:
            return
        await self._stop_polling()
        self.poller = FavoritesPoller(
            self.favorites_client,
            user.uid,
            self.poll_interval,
            on_update=self._set_favorites,
            on_error=lambda e: logger.debug("Background refresh failed: %s", e.message),
        )
        self.poller.start()

    async def _stop_polling(self) -> None:
        poller, self.poller = self.poller, None
        if poller:
            await poller.stop()

    def _set_favorites(self, favorites: List[FavoriteSkin]) -> None:
        self.favorites = favorites

    def _error(self, e: SkinVaultError) -> None:
        self.notify(Notification("Error", e.message, is_error=True))

    def _uid(self) -> Optional[str]:
        return self.session.user.uid if self.session.user else None

    async def search(self, username: str) -> Optional[ResolvedSkin]:
        if not username or not username.strip():
            self.notify(Notification("Error", "Please enter a player name.", is_error=True))
            return None

        self.resolved = None
        self.loading = True
        try:
            self.resolved = await self.resolver.resolve_skin(username.strip())
        except SkinVaultError as e:
            self._error(e)
            return None
        finally:
            self.loading = False

        if self.renderer:
            self.renderer.render(self.resolved.texture_url)
        return self.resolved

    async def refresh_favorites(self) -> None:
        uid = self._uid()
        if uid is None:
            return
        try:
            self.favorites = await self.favorites_client.list_favorites(uid)
        except SkinVaultError as e:
            self._error(e)

    def is_favorite(self, username: str) -> bool:
        return any(fav.username.lower() == username.lower() for fav in self.favorites)

    async def add_current_to_favorites(self) -> bool:
        uid = self._uid()
        if uid is None or self.resolved is None:
            self.notify(Notification("Error", "Search for a player first.", is_error=True))
            return False

        # Only a hint; the backend has the final say on duplicates.
        if self.is_favorite(self.resolved.username):
            self.notify(Notification("Info", "This skin is already in your favorites."))
            return False

        self.adding_favorite = True
        try:
            image, content_type = await self.resolver.fetch_texture(self.resolved.texture_url)
            await self.favorites_client.add_favorite(uid, self.resolved.username, image, content_type)
            await self.refresh_favorites()
            self.notify(Notification("Success", "Added to favorites!"))
            return True
        except SkinVaultError as e:
            self._error(e)
            return False
        finally:
            self.adding_favorite = False

    async def remove_favorite(self, username: str) -> None:
        uid = self._uid()
        if uid is None:
            return
        try:
            await self.favorites_client.remove_favorite(uid, username)
            await self.refresh_favorites()
        except SkinVaultError as e:
            self._error(e)
