"""OAuth state nonces and token verification for Ecwid stores."""

import logging
import secrets

import httpx
import redis.asyncio as aioredis
from sqlalchemy.ext.asyncio import AsyncSession

from recs_api.core.config import settings
from recs_api.integrations.ecwid.client import EcwidAuthError, EcwidClient
from recs_api.integrations.ecwid.oauth import refresh_access_token
from recs_api.models.store import Store
from recs_api.services.store_service import StoreService

logger = logging.getLogger(__name__)

STATE_KEY_PREFIX = "ecwid_oauth:"


class OAuthService:
    """Issues one-time OAuth states and checks whether a store's token still works."""

    def __init__(self, db: AsyncSession, redis: aioredis.Redis) -> None:
        self.db = db
        self.redis = redis
        self.stores = StoreService(db)

    async def create_state(self, store_id: str) -> str:
        state = secrets.token_urlsafe(16)
        await self.redis.set(f"{STATE_KEY_PREFIX}{state}", store_id, ex=settings.oauth_state_ttl)
        return state

    async def consume_state(self, state: str) -> str | None:
        """Return the store id bound to ``state`` and invalidate it."""
        key = f"{STATE_KEY_PREFIX}{state}"
        store_id = await self.redis.get(key)
        await self.redis.delete(key)
        return store_id

    async def verify_store(self, store: Store) -> bool:
        """Check the stored token against Ecwid.

        A rejected token is refreshed when a refresh token is stored. If that
        is impossible the tokens are cleared. Network trouble on Ecwid's side
        leaves the tokens alone and counts as authenticated.
        """
        access_token = self.stores.access_token(store)
        if not access_token:
            return False

        try:
            await EcwidClient(store.store_id, access_token).get_profile()
            return True
        except EcwidAuthError:
            logger.warning("Ecwid rejected stored token", extra={"store_id": store.store_id})
        except httpx.HTTPError as exc:
            logger.warning(
                "Could not verify token with Ecwid: %s", exc, extra={"store_id": store.store_id}
            )
            return True

        refresh_token = self.stores.refresh_token(store)
        if refresh_token:
            try:
                grant = await refresh_access_token(refresh_token)
            except httpx.HTTPError as exc:
                logger.warning("Token refresh failed: %s", exc, extra={"store_id": store.store_id})
            else:
                await self.stores.save_tokens(store.store_id, grant)
                return True

        await self.stores.clear_tokens(store)
        return False
