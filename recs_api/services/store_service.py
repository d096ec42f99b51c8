"""Store lookups, token persistence and recommendation settings."""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from recs_api.core.encryption import decrypt_stored_token, encrypt_token
from recs_api.integrations.ecwid.oauth import TokenGrant
from recs_api.models.store import Store
from recs_api.schemas.recommendation_settings import RecommendationSettings, merge_with_defaults

logger = logging.getLogger(__name__)


class StoreService:
    """Business logic for registered Ecwid stores."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_by_store_id(self, store_id: str) -> Store | None:
        result = await self.db.execute(select(Store).where(Store.store_id == store_id))
        return result.scalar_one_or_none()

    async def list_authenticated(self) -> list[Store]:
        result = await self.db.execute(
            select(Store).where(
                Store.access_token.is_not(None),
                Store.is_active == True,  # noqa: E712
            )
        )
        return list(result.scalars().all())

    async def register(self, store_id: str, store_name: str | None = None) -> Store:
        """Create the store row if needed, updating the name when given."""
        store = await self.get_by_store_id(store_id)
        if store is None:
            store = Store(store_id=store_id, store_name=store_name or f"Store {store_id}")
            self.db.add(store)
            logger.info("Registered store", extra={"store_id": store_id})
        elif store_name:
            store.store_name = store_name
        await self.db.commit()
        await self.db.refresh(store)
        return store

    async def save_tokens(
        self, store_id: str, grant: TokenGrant, store_name: str | None = None
    ) -> Store:
        """Upsert a store with freshly granted (encrypted) tokens."""
        store = await self.get_by_store_id(store_id)
        if store is None:
            store = Store(store_id=store_id)
            self.db.add(store)

        store.store_name = store_name or store.store_name or f"Store {store_id}"
        store.access_token = encrypt_token(grant.access_token)
        store.refresh_token = encrypt_token(grant.refresh_token) if grant.refresh_token else None
        store.scopes = grant.scope
        store.token_expires_at = grant.expires_at
        store.is_active = True
        store.sync_error = None

        await self.db.commit()
        await self.db.refresh(store)
        return store

    async def clear_tokens(self, store: Store) -> None:
        """Forget a store's credentials; it must re-run OAuth."""
        store.access_token = None
        store.refresh_token = None
        store.token_expires_at = None
        await self.db.commit()
        logger.info("Cleared OAuth tokens", extra={"store_id": store.store_id})

    @staticmethod
    def access_token(store: Store) -> str | None:
        return decrypt_stored_token(store.access_token)

    @staticmethod
    def refresh_token(store: Store) -> str | None:
        return decrypt_stored_token(store.refresh_token)

    @staticmethod
    def get_recommendation_settings(store: Store) -> RecommendationSettings:
        """Saved settings in the closed shape, all-off when never saved."""
        return merge_with_defaults(store.recommendation_settings)

    async def save_recommendation_settings(
        self, store: Store, new_settings: RecommendationSettings
    ) -> RecommendationSettings:
        """Replace the whole settings object (last writer wins)."""
        store.recommendation_settings = new_settings.to_wire()
        await self.db.commit()
        logger.info("Saved recommendation settings", extra={"store_id": store.store_id})
        return new_settings
