"""Pydantic schemas for request/response validation."""

from recs_api.schemas.common import (
    ApiResponse,
    ErrorResponse,
    HealthResponse,
    PaginatedResponse,
)
from recs_api.schemas.recommendation_settings import (
    DEFAULT_RECOMMENDATION_SETTINGS,
    RecommendationSettings,
)

__all__ = [
    "ApiResponse",
    "HealthResponse",
    "ErrorResponse",
    "PaginatedResponse",
    "RecommendationSettings",
    "DEFAULT_RECOMMENDATION_SETTINGS",
]
