"""Async HTTP client the add-on uses to talk to the backend API."""

import logging
from typing import Any, Literal

import httpx

from recs_api.addon.errors import (
    OAUTH_SETUP_MARKER,
    BackendError,
    NetworkError,
    Unauthenticated,
)
from recs_api.schemas.analytics import AnalyticsSummary, RealtimeAnalytics
from recs_api.schemas.common import PaginatedResponse
from recs_api.schemas.ecwid import OAuthStatusResponse, ProductRecommendation, SyncStatus
from recs_api.schemas.order import OrderResponse, OrderStats
from recs_api.schemas.product import ProductResponse
from recs_api.schemas.recommendation_settings import RecommendationSettings
from recs_api.schemas.store import StoreStats

logger = logging.getLogger(__name__)


class AddonApiClient:
    """Thin wrapper over ``httpx.AsyncClient`` for the ``/api`` endpoints.

    Translates transport failures into ``NetworkError``, a 401 carrying the
    OAuth setup marker into ``Unauthenticated``, and any other non-2xx or
    ``success: false`` body into ``BackendError``.
    """

    def __init__(
        self,
        base_url: str,
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None

    async def __aenter__(self) -> "AddonApiClient":
        return self

    async def __aexit__(self, *_exc: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> dict[str, Any]:
        url = f"{self.base_url}/api{path}"
        try:
            response = await self._client.request(method, url, params=params, json=json)
        except httpx.RequestError as exc:
            logger.warning("Request to %s failed: %s", path, exc)
            raise NetworkError(str(exc) or "Network error") from exc

        try:
            body = response.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            body = {}

        error = str(body.get("error") or body.get("detail") or f"HTTP {response.status_code}")
        if response.status_code == 401 and OAUTH_SETUP_MARKER in error:
            raise Unauthenticated(error, response.status_code)
        if response.is_error or body.get("success") is False:
            raise BackendError(error, response.status_code)
        return body

    # === OAuth ===

    async def get_auth_url(self, store_id: str) -> str:
        body = await self._request("GET", f"/oauth/auth/{store_id}")
        return str(body["authUrl"])

    async def get_oauth_status(self, store_id: str) -> OAuthStatusResponse:
        body = await self._request("GET", f"/oauth/status/{store_id}")
        return OAuthStatusResponse.model_validate(body)

    # === Sync ===

    async def get_sync_status(self, store_id: str) -> SyncStatus:
        body = await self._request("GET", f"/sync/status/{store_id}")
        return SyncStatus.model_validate(body["syncStatus"])

    async def trigger_sync(self, store_id: str | None = None) -> dict[str, Any]:
        payload = {"storeId": store_id} if store_id else None
        return await self._request("POST", "/sync/trigger", json=payload)

    # === Settings and recommendations ===

    async def get_settings(self, store_id: str) -> RecommendationSettings:
        body = await self._request("GET", f"/ecwid/recommendation-settings/{store_id}")
        return RecommendationSettings.model_validate(body.get("settings") or {})

    async def save_settings(
        self, store_id: str, settings: RecommendationSettings
    ) -> RecommendationSettings:
        body = await self._request(
            "POST",
            f"/ecwid/recommendation-settings/{store_id}",
            json=settings.to_wire(),
        )
        return RecommendationSettings.model_validate(body.get("settings") or settings.to_wire())

    async def get_recommendations(
        self,
        store_id: str,
        product_id: str,
        kind: Literal["upsell", "cross_sell"] = "upsell",
    ) -> list[ProductRecommendation]:
        body = await self._request(
            "GET", f"/ecwid/recommendations/{store_id}/{product_id}", params={"type": kind}
        )
        return [ProductRecommendation.model_validate(r) for r in body.get("recommendations", [])]

    async def get_category_recommendations(
        self, store_id: str, category_id: str
    ) -> list[ProductRecommendation]:
        body = await self._request(
            "GET", f"/ecwid/recommendations/{store_id}/category/{category_id}"
        )
        return [ProductRecommendation.model_validate(r) for r in body.get("recommendations", [])]

    # === Admin views ===

    async def list_products(
        self, store_id: str, **filters: Any
    ) -> PaginatedResponse[ProductResponse]:
        params = {"storeId": store_id, **{k: v for k, v in filters.items() if v is not None}}
        body = await self._request("GET", "/products/", params=params)
        return PaginatedResponse[ProductResponse].model_validate(body)

    async def list_orders(self, store_id: str, **filters: Any) -> PaginatedResponse[OrderResponse]:
        params = {"storeId": store_id, **{k: v for k, v in filters.items() if v is not None}}
        body = await self._request("GET", "/orders/", params=params)
        return PaginatedResponse[OrderResponse].model_validate(body)

    async def get_order_stats(self, store_id: str) -> OrderStats:
        body = await self._request("GET", "/orders/stats/summary", params={"storeId": store_id})
        return OrderStats.model_validate(body["stats"])

    async def get_recent_orders(self, store_id: str, limit: int = 5) -> list[OrderResponse]:
        body = await self._request(
            "GET", "/orders/recent/list", params={"storeId": store_id, "limit": limit}
        )
        return [OrderResponse.model_validate(o) for o in body.get("orders", [])]

    async def get_analytics_summary(self, store_id: str) -> AnalyticsSummary:
        body = await self._request("GET", "/analytics/summary", params={"storeId": store_id})
        return AnalyticsSummary.model_validate(body["summary"])

    async def get_realtime_analytics(self, store_id: str) -> RealtimeAnalytics:
        body = await self._request("GET", "/analytics/realtime", params={"storeId": store_id})
        return RealtimeAnalytics.model_validate(body["realtime"])

    async def record_event(
        self, store_id: str, event_type: str, event_data: dict[str, Any] | None = None
    ) -> None:
        await self._request(
            "POST",
            "/analytics/",
            json={"storeId": store_id, "eventType": event_type, "eventData": event_data or {}},
        )

    async def get_store_stats(self, store_id: str) -> StoreStats:
        body = await self._request("GET", f"/store-stats/{store_id}")
        return StoreStats.model_validate(body["data"])
