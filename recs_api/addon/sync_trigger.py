"""Kick off the first catalog sync for a store that has never been mirrored."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Coroutine
from dataclasses import dataclass
from typing import Any, TypeVar

from recs_api.addon.api_client import AddonApiClient
from recs_api.addon.errors import AddonError
from recs_api.schemas.ecwid import SyncStatus

logger = logging.getLogger(__name__)

RECHECK_DELAY = 5.0

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[object]]


@dataclass
class SyncCheck:
    """Result of ``ensure_synced``.

    ``recheck`` is the single delayed status check, present only when a sync
    was triggered. It resolves to ``None`` if that check failed.
    """

    initial: SyncStatus
    triggered: bool
    recheck: "asyncio.Task[SyncStatus | None] | None" = None


class SyncTrigger:
    """One trigger and one delayed re-check per call; never a polling loop."""

    def __init__(
        self,
        api: AddonApiClient,
        sleep: Sleep = asyncio.sleep,
        recheck_delay: float = RECHECK_DELAY,
    ) -> None:
        self.api = api
        self.sleep = sleep
        self.recheck_delay = recheck_delay
        self._background: set[asyncio.Task[Any]] = set()

    def _spawn(self, coro: Coroutine[Any, Any, T]) -> asyncio.Task[T]:
        # Keep a reference so pending tasks are not garbage collected
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def _fire(self, store_id: str) -> None:
        try:
            await self.api.trigger_sync(store_id)
            logger.info("Sync triggered for store %s", store_id)
        except AddonError as exc:
            logger.warning("Sync trigger failed for store %s: %s", store_id, exc.message)

    async def _recheck(self, store_id: str) -> SyncStatus | None:
        await self.sleep(self.recheck_delay)
        try:
            return await self.api.get_sync_status(store_id)
        except AddonError as exc:
            logger.warning("Sync re-check failed for store %s: %s", store_id, exc.message)
            return None

    async def ensure_synced(self, store_id: str) -> SyncCheck:
        """Check sync status and start a sync if the store was never mirrored.

        Raises whatever the initial status check raises; the trigger and the
        re-check run in the background and only log their failures.
        """
        status = await self.api.get_sync_status(store_id)
        if status.is_synced:
            return SyncCheck(initial=status, triggered=False)

        self._spawn(self._fire(store_id))
        recheck = self._spawn(self._recheck(store_id))
        return SyncCheck(initial=status, triggered=True, recheck=recheck)
