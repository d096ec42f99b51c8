"""Shared admin session: one store id and everything derived from it."""

import asyncio
import enum
import logging

from recs_api.addon.api_client import AddonApiClient
from recs_api.addon.errors import AddonError, MissingStoreId, Unauthenticated, user_message
from recs_api.addon.settings_state import SettingsStateModel
from recs_api.addon.store_detection import (
    KeyValueStorage,
    MemoryStorage,
    StoreIdResolver,
    auto_configure,
)
from recs_api.addon.sync_trigger import SyncCheck, SyncTrigger
from recs_api.schemas.ecwid import OAuthStatusResponse, SyncStatus

logger = logging.getLogger(__name__)


class AuthState(str, enum.Enum):
    UNKNOWN = "unknown"
    AUTHENTICATED = "authenticated"
    NEEDS_AUTHORIZATION = "needs_authorization"
    ERROR = "error"


class AdminSession:
    """Owns the resolved store id and the state that depends on it.

    Pages read from one session instead of each re-deriving auth, settings
    and sync state. ``override_store_id`` swaps the store and drops every
    cached value; responses for the previous store are ignored.
    """

    def __init__(
        self,
        api: AddonApiClient,
        resolver: StoreIdResolver | None = None,
        storage: KeyValueStorage | None = None,
        sync_trigger: SyncTrigger | None = None,
    ) -> None:
        self.api = api
        self.resolver = resolver
        self.storage = storage or (resolver.storage if resolver else None) or MemoryStorage()
        self.sync_trigger = sync_trigger or SyncTrigger(api)

        self.store_id: str | None = None
        self.auth_state = AuthState.UNKNOWN
        self.oauth_status: OAuthStatusResponse | None = None
        self.sync_status: SyncStatus | None = None
        self.message: str | None = None
        self.settings = SettingsStateModel(api)
        self._generation = 0

    def invalidate(self) -> None:
        self._generation += 1
        self.auth_state = AuthState.UNKNOWN
        self.oauth_status = None
        self.sync_status = None
        self.message = None
        self.settings = SettingsStateModel(self.api)

    async def resolve_store(self) -> str | None:
        """Resolve the store id once; later calls return the cached value."""
        if self.store_id is None and self.resolver is not None:
            self.store_id = await self.resolver.resolve()
        return self.store_id

    def override_store_id(self, store_id: str) -> None:
        """Manual store id entry: replaces the id and resets dependent state."""
        store_id = store_id.strip()
        if not store_id:
            raise MissingStoreId()
        self.store_id = store_id
        auto_configure(self.storage, {"storeId": store_id})
        self.invalidate()
        logger.info("Store id overridden to %s", store_id)

    def require_store_id(self) -> str:
        if not self.store_id:
            raise MissingStoreId()
        return self.store_id

    async def refresh_auth(self) -> AuthState:
        generation = self._generation
        try:
            status = await self.api.get_oauth_status(self.require_store_id())
        except AddonError as exc:
            if generation != self._generation:
                return self.auth_state
            self.oauth_status = None
            self.auth_state = (
                AuthState.NEEDS_AUTHORIZATION
                if isinstance(exc, Unauthenticated)
                else AuthState.ERROR
            )
            self.message = user_message(exc)
            return self.auth_state

        if generation != self._generation:
            return self.auth_state
        self.oauth_status = status
        self.auth_state = (
            AuthState.AUTHENTICATED if status.authenticated else AuthState.NEEDS_AUTHORIZATION
        )
        self.message = None
        return self.auth_state

    async def ensure_synced(self) -> SyncCheck | None:
        """Start the first sync if needed and record the status it reports."""
        generation = self._generation
        try:
            check = await self.sync_trigger.ensure_synced(self.require_store_id())
        except AddonError as exc:
            logger.warning("Sync status unavailable: %s", exc.message)
            return None
        if generation != self._generation:
            return check

        self.sync_status = check.initial
        if check.recheck is not None:
            check.recheck.add_done_callback(lambda task: self._apply_recheck(generation, task))
        return check

    def _apply_recheck(
        self, generation: int, task: "asyncio.Task[SyncStatus | None]"
    ) -> None:
        if task.cancelled() or generation != self._generation:
            return
        if (status := task.result()) is not None:
            self.sync_status = status

    async def load(self) -> AuthState:
        """Resolve the store, check authorization, then load settings and sync state."""
        if await self.resolve_store() is None:
            self.message = user_message(MissingStoreId())
            return self.auth_state
        state = await self.refresh_auth()
        if state is AuthState.AUTHENTICATED:
            await self.settings.load(self.store_id)
            await self.ensure_synced()
        return self.auth_state
