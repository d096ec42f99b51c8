"""Pydantic schemas for the Ecwid OAuth, sync, store and recommendation endpoints."""

from datetime import datetime
from typing import Any

from pydantic import Field

from recs_api.schemas.common import ApiResponse, BaseSchema

# === OAuth ===


class AuthUrlResponse(ApiResponse):
    """Authorization URL for the Ecwid OAuth consent screen."""

    auth_url: str = Field(alias="authUrl")


class StoreProfile(BaseSchema):
    """Public store identity returned to the admin app (never includes tokens)."""

    store_id: str
    store_name: str | None = None


class OAuthStatusResponse(ApiResponse):
    """Whether the store has a working access token."""

    authenticated: bool
    store: StoreProfile | None = None
    error: str | None = None


# === Sync ===


class SyncStatus(BaseSchema):
    """Mirror state for one store (camelCase on the wire)."""

    is_synced: bool = Field(alias="isSynced")
    product_count: int = Field(default=0, alias="productCount")
    order_count: int = Field(default=0, alias="orderCount")
    last_synced_at: datetime | None = Field(default=None, alias="lastSyncedAt")
    sync_error: str | None = Field(default=None, alias="syncError")


class SyncStatusResponse(ApiResponse):
    sync_status: SyncStatus = Field(alias="syncStatus")


class SyncTriggerRequest(BaseSchema):
    """Optional store scope for a sync; omit to sync every authenticated store."""

    store_id: str | None = Field(default=None, alias="storeId")


class SyncTriggerResponse(ApiResponse):
    message: str
    store_ids: list[str] = Field(default_factory=list, alias="storeIds")


# === Store ===


class StoreRegisterRequest(BaseSchema):
    """Register a store (or update its name) from the admin app."""

    store_id: str = Field(..., min_length=1, max_length=64, alias="storeId")
    store_name: str | None = Field(default=None, max_length=255, alias="storeName")


class StoreInfo(BaseSchema):
    store_id: str
    store_name: str | None = None
    authenticated: bool
    last_synced_at: datetime | None = None
    created_at: datetime


class StoreInfoResponse(ApiResponse):
    store: StoreInfo
    profile: dict[str, Any] | None = None


# === Admin payload ===


class DecodePayloadRequest(BaseSchema):
    """Encrypted payload Ecwid appends to the admin iframe URL."""

    payload: str = Field(..., min_length=1)


class DecodedPayload(BaseSchema):
    store_id: str
    access_token: str | None = None
    lang: str | None = None
    view_mode: str | None = None
    public_token: str | None = None


class DecodePayloadResponse(ApiResponse):
    data: DecodedPayload


# === Recommendations ===


class ProductRecommendation(BaseSchema):
    """A recommended product as rendered by the storefront widget."""

    ecwid_product_id: str
    name: str
    image_url: str | None = None
    price: float
    sku: str | None = None


class RecommendationsResponse(ApiResponse):
    recommendations: list[ProductRecommendation]


class RecommendationsGenerated(ApiResponse):
    products_updated: int
    categories_updated: int
