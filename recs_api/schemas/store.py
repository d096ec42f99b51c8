"""Pydantic schemas for store-level statistics."""

from recs_api.schemas.common import ApiResponse, BaseSchema
from recs_api.schemas.recommendation_settings import RecommendationSettings


class StoreStats(BaseSchema):
    """Catalog counts plus the store's current widget settings."""

    store_id: str
    store_name: str
    product_count: int
    products_with_variants: int
    category_count: int
    order_count: int
    recommendation_settings: RecommendationSettings


class StoreStatsResponse(ApiResponse):
    data: StoreStats
