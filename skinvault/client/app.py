import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from httpx import AsyncClient

from skinvault.client.favorites import FavoritesClient
from skinvault.client.identity import IdentityProvider, Session, SessionSync
from skinvault.client.skins import SkinResolver
from skinvault.client.views import AuthView, HomeView, Notification, Notifier, SkinRenderer
from skinvault.core.config import Settings, get_settings

logger = logging.getLogger(__name__)


def log_notification(notification: Notification) -> None:
    level = logging.ERROR if notification.is_error else logging.INFO
    logger.log(level, "%s: %s", notification.title, notification.message)


class SkinVaultClient:
    """Wires the client components around one session and one HTTP client."""

    def __init__(
        self,
        settings: Settings,
        http_client: AsyncClient,
        notify: Notifier = log_notification,
        renderer: Optional[SkinRenderer] = None,
    ):
        self.session = Session()
        self.identity = IdentityProvider(http_client, settings.FIREBASE_API_KEY, self.session)
        self.resolver = SkinResolver(http_client, settings)
        self.favorites = FavoritesClient(http_client, settings.API_BASE_URL, settings.HTTP_TIMEOUT_SECONDS)
        self.sync = SessionSync(
            self.session,
            self.favorites,
            on_error=lambda e: notify(Notification("Error", e.message, is_error=True)),
        )
        self.auth_view = AuthView(self.identity, notify)
        self.home_view = HomeView(
            self.session,
            self.resolver,
            self.favorites,
            notify,
            poll_interval=settings.FAVORITES_POLL_INTERVAL,
            renderer=renderer,
        )

    async def start(self) -> None:
        # Sync first so the backend user exists before the first favorites poll
        await self.sync.attach()
        await self.home_view.attach()

    async def close(self) -> None:
        await self.home_view.dispose()
        self.sync.detach()


@asynccontextmanager
async def open_client(
    settings: Optional[Settings] = None,
    notify: Notifier = log_notification,
    renderer: Optional[SkinRenderer] = None,
) -> AsyncIterator[SkinVaultClient]:
    settings = settings or get_settings()
    async with AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS) as http_client:
        client = SkinVaultClient(settings, http_client, notify, renderer)
        await client.start()
        try:
            yield client
        finally:
            await client.close()
