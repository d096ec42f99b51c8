"""Mirror sync status and trigger endpoints."""

import logging

from fastapi import APIRouter, Body, Depends, HTTPException, status

from recs_api.core.deps import DBSession, get_authenticated_store, require_authenticated
from recs_api.models.store import Store
from recs_api.schemas.ecwid import (
    SyncStatusResponse,
    SyncTriggerRequest,
    SyncTriggerResponse,
)
from recs_api.services.store_service import StoreService
from recs_api.services.sync_service import SyncService
from recs_api.workers.tasks.ecwid import sync_all_stores, sync_store

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/status/{store_id}", response_model=SyncStatusResponse)
async def sync_status(
    db: DBSession,
    store: Store = Depends(get_authenticated_store),
) -> SyncStatusResponse:
    """Whether the store's catalog has been mirrored, with row counts."""
    return SyncStatusResponse(sync_status=await SyncService(db).get_status(store))


@router.post("/trigger", response_model=SyncTriggerResponse)
async def trigger_sync(
    db: DBSession,
    body: SyncTriggerRequest | None = Body(None),
) -> SyncTriggerResponse:
    """Queue a background sync for one store, or for every authenticated store.

    Returns as soon as the job is queued.
    """
    if body and body.store_id:
        store = await StoreService(db).get_by_store_id(body.store_id)
        if store is None:
            raise HTTPException(status.HTTP_404_NOT_FOUND, "Store not found")
        require_authenticated(store)

        # Clear previous sync error before starting new sync
        store.sync_error = None
        await db.commit()

        sync_store.delay(store.store_id)
        logger.info("Sync queued", extra={"store_id": store.store_id})
        return SyncTriggerResponse(message="Sync started", store_ids=[store.store_id])

    sync_all_stores.delay()
    return SyncTriggerResponse(message="Sync started for all stores")
