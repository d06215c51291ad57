import asyncio
import inspect
import logging
from typing import Callable, List, Optional

from skinvault.core.exceptions import SkinVaultError
from skinvault.models.user import FavoriteSkin

logger = logging.getLogger(__name__)


class FavoritesPoller:
    """Re-fetches a user's favorites on a fixed interval.

    The first fetch happens as soon as the poller starts. Failures go to
    ``on_error`` and polling carries on. ``stop()`` cancels the task and waits
    for it, so no request is issued after it returns.
    """

    def __init__(
        self,
        favorites_client,
        uid: str,
        interval: float,
        on_update: Callable[[List[FavoriteSkin]], None],
        on_error: Optional[Callable[[SkinVaultError], None]] = None,
    ):
        self.favorites_client = favorites_client
        self.uid = uid
        self.interval = interval
        self.on_update = on_update
        self.on_error = on_error
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name=f"favorites-poller-{self.uid}")
        logger.debug("Started favorites polling for %s every %ss", self.uid, self.interval)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.debug("Stopped favorites polling for %s", self.uid)

    async def poll_once(self) -> None:
        try:
            favorites = await self.favorites_client.list_favorites(self.uid)
        except SkinVaultError as e:
            logger.warning("Refreshing favorites for %s failed: %s", self.uid, e.message)
            if self.on_error:
                self.on_error(e)
            return
        result = self.on_update(favorites)
        if inspect.isawaitable(result):
            await result

    async def _run(self) -> None:
        while True:
            await self.poll_once()
            await asyncio.sleep(self.interval)

    async def __aenter__(self):
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.stop()
