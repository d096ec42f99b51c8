"""Celery tasks for mirroring Ecwid stores and regenerating recommendations."""

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any, TypeVar

from recs_api.core.database import async_session_maker
from recs_api.integrations.ecwid.client import EcwidAuthError, EcwidClient
from recs_api.services.recommendation_service import RecommendationService
from recs_api.services.store_service import StoreService
from recs_api.services.sync_service import SyncService
from recs_api.workers.celery_app import BaseTask, celery_app

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _run(coro: Coroutine[Any, Any, T]) -> T:
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@celery_app.task(
    name="tasks.ecwid.sync_store",
    base=BaseTask,
    bind=True,
)
def sync_store(self: BaseTask, store_id: str) -> dict[str, Any]:  # noqa: ARG001
    """Full product and order mirror for one Ecwid store."""
    return _run(sync_store_async(store_id))


async def sync_store_async(store_id: str) -> dict[str, Any]:
    """Async implementation of the store mirror."""
    async with async_session_maker() as session:
        stores = StoreService(session)
        store = await stores.get_by_store_id(store_id)

        if store is None or not store.is_active:
            return {"store_id": store_id, "status": "skipped", "reason": "unknown store"}

        access_token = stores.access_token(store)
        if not access_token:
            return {"store_id": store_id, "status": "skipped", "reason": "not authenticated"}

        try:
            counts = await SyncService(session).sync_store(
                store, EcwidClient(store_id, access_token)
            )
        except EcwidAuthError as e:
            # Retrying cannot help; the merchant must re-authorize
            await session.rollback()
            store.sync_error = str(e)[:500]
            await session.commit()
            logger.warning("Sync aborted, token rejected", extra={"store_id": store_id})
            return {"store_id": store_id, "status": "unauthorized"}
        except Exception as e:
            await session.rollback()
            store.sync_error = str(e)[:500]
            await session.commit()
            logger.exception("Sync failed", extra={"store_id": store_id})
            raise

    logger.info("Sync completed", extra={"store_id": store_id, **counts})
    return {"store_id": store_id, "status": "completed", **counts}


@celery_app.task(
    name="tasks.ecwid.sync_all_stores",
    base=BaseTask,
    bind=True,
)
def sync_all_stores(self: BaseTask) -> dict[str, Any]:  # noqa: ARG001
    """Queue a sync for every authenticated store."""
    store_ids = _run(_authenticated_store_ids())
    for store_id in store_ids:
        sync_store.delay(store_id)
    return {"status": "queued", "stores": len(store_ids)}


async def _authenticated_store_ids() -> list[str]:
    async with async_session_maker() as session:
        return [s.store_id for s in await StoreService(session).list_authenticated()]


@celery_app.task(
    name="tasks.ecwid.generate_recommendations",
    base=BaseTask,
    bind=True,
)
def generate_recommendations(self: BaseTask, store_id: str) -> dict[str, Any]:  # noqa: ARG001
    """Recompute recommendations from the current mirror without refetching."""
    return _run(generate_recommendations_async(store_id))


async def generate_recommendations_async(store_id: str) -> dict[str, Any]:
    async with async_session_maker() as session:
        store = await StoreService(session).get_by_store_id(store_id)
        if store is None:
            return {"store_id": store_id, "status": "skipped", "reason": "unknown store"}

        products, categories = await RecommendationService(session).generate_for_store(store.id)
        await session.commit()

    return {
        "store_id": store_id,
        "status": "completed",
        "products": products,
        "categories": categories,
    }
