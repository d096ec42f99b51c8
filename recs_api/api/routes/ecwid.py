"""Ecwid add-on endpoints: widget settings, recommendations and store registration."""

import logging
from typing import Any, Literal

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query, status

from recs_api.core.deps import DBSession, get_authenticated_store, get_store_from_path
from recs_api.integrations.ecwid.client import EcwidAuthError, EcwidClient
from recs_api.integrations.ecwid.payload import PayloadError, decode_payload
from recs_api.models.store import Store
from recs_api.schemas.ecwid import (
    DecodedPayload,
    DecodePayloadRequest,
    DecodePayloadResponse,
    RecommendationsGenerated,
    RecommendationsResponse,
    StoreInfo,
    StoreInfoResponse,
    StoreRegisterRequest,
)
from recs_api.schemas.recommendation_settings import (
    RecommendationSettings,
    RecommendationSettingsResponse,
    RecommendationSettingsSaved,
)
from recs_api.services.recommendation_service import RecommendationService
from recs_api.services.store_service import StoreService

logger = logging.getLogger(__name__)

router = APIRouter()


def _store_info(store: Store) -> StoreInfo:
    return StoreInfo(
        store_id=store.store_id,
        store_name=store.store_name,
        authenticated=store.is_authenticated,
        last_synced_at=store.last_synced_at,
        created_at=store.created_at,
    )


# === Recommendation settings ===


@router.get(
    "/recommendation-settings/{store_id}",
    response_model=RecommendationSettingsResponse,
    summary="Get widget settings",
)
async def get_recommendation_settings(
    store: Store = Depends(get_authenticated_store),
) -> RecommendationSettingsResponse:
    """Saved settings, or the all-off default when nothing was saved yet."""
    return RecommendationSettingsResponse(
        settings=StoreService.get_recommendation_settings(store)
    )


@router.post(
    "/recommendation-settings/{store_id}",
    response_model=RecommendationSettingsSaved,
    summary="Replace widget settings",
)
async def save_recommendation_settings(
    new_settings: RecommendationSettings,
    db: DBSession,
    store: Store = Depends(get_authenticated_store),
) -> RecommendationSettingsSaved:
    """Replace the full settings object. Unknown keys are dropped."""
    saved = await StoreService(db).save_recommendation_settings(store, new_settings)
    return RecommendationSettingsSaved(settings=saved)


# === Recommendations (storefront widget) ===


@router.get(
    "/recommendations/{store_id}/category/{category_id}",
    response_model=RecommendationsResponse,
)
async def get_category_recommendations(
    category_id: str,
    db: DBSession,
    store: Store = Depends(get_store_from_path),
) -> RecommendationsResponse:
    """Precomputed recommendations for a category page (``default`` for the store)."""
    items = await RecommendationService(db).get_category_recommendations(store.id, category_id)
    return RecommendationsResponse(recommendations=items)


@router.get(
    "/recommendations/{store_id}/{product_id}",
    response_model=RecommendationsResponse,
)
async def get_product_recommendations(
    product_id: str,
    db: DBSession,
    store: Store = Depends(get_store_from_path),
    kind: Literal["upsell", "cross_sell"] = Query("upsell", alias="type"),
) -> RecommendationsResponse:
    """Precomputed recommendations for a product, most expensive first."""
    items = await RecommendationService(db).get_product_recommendations(
        store.id, product_id, kind
    )
    return RecommendationsResponse(recommendations=items)


@router.post(
    "/recommendations/{store_id}/generate",
    response_model=RecommendationsGenerated,
)
async def generate_recommendations(
    db: DBSession,
    store: Store = Depends(get_authenticated_store),
) -> RecommendationsGenerated:
    """Recompute every recommendation list from the current mirror."""
    products, categories = await RecommendationService(db).generate_for_store(store.id)
    await db.commit()
    return RecommendationsGenerated(products_updated=products, categories_updated=categories)


# === Store ===


@router.get("/store/{store_id}", response_model=StoreInfoResponse)
async def get_store(
    store: Store = Depends(get_store_from_path),
) -> StoreInfoResponse:
    """Store record plus its live Ecwid profile when the token allows it."""
    profile: dict[str, Any] | None = None
    access_token = StoreService.access_token(store)
    if access_token:
        try:
            profile = await EcwidClient(store.store_id, access_token).get_profile()
        except (EcwidAuthError, httpx.HTTPError) as exc:
            logger.info("Profile unavailable: %s", exc)
    return StoreInfoResponse(store=_store_info(store), profile=profile)


@router.post("/store", response_model=StoreInfoResponse, status_code=status.HTTP_201_CREATED)
async def register_store(
    data: StoreRegisterRequest,
    db: DBSession,
) -> StoreInfoResponse:
    """Register a store ahead of OAuth (or rename an existing one)."""
    store = await StoreService(db).register(data.store_id, data.store_name)
    return StoreInfoResponse(store=_store_info(store))


@router.post("/decode-payload", response_model=DecodePayloadResponse)
async def decode_admin_payload(data: DecodePayloadRequest) -> DecodePayloadResponse:
    """Decrypt the payload Ecwid passes to the app's admin iframe."""
    try:
        decoded = decode_payload(data.payload)
    except PayloadError as exc:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, str(exc)) from exc

    if "store_id" not in decoded:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Payload has no store_id")

    return DecodePayloadResponse(
        data=DecodedPayload(
            store_id=str(decoded["store_id"]),
            access_token=decoded.get("access_token"),
            lang=decoded.get("lang"),
            view_mode=decoded.get("view_mode"),
            public_token=decoded.get("public_token"),
        )
    )
