"""Common Pydantic schemas used across the API."""

from typing import Any, Generic, TypeVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict

T = TypeVar("T")


class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
    )


class ApiResponse(BaseSchema):
    """Envelope shared by every successful response."""

    success: bool = True


class HealthResponse(BaseSchema):
    """Health check response schema."""

    status: str
    version: str
    environment: str
    checks: dict[str, str]


class ErrorResponse(BaseSchema):
    """Error response schema."""

    success: bool = False
    error: str
    details: Any | None = None


class MessageResponse(ApiResponse):
    """Envelope carrying only a human-readable message."""

    message: str


class PaginatedResponse(ApiResponse, Generic[T]):
    """Paginated response wrapper."""

    items: list[T]
    total: int
    page: int
    page_size: int
    pages: int

    @classmethod
    def build(cls, items: list[T], total: int, page: int, page_size: int) -> "PaginatedResponse[T]":
        return cls(
            items=items,
            total=total,
            page=page,
            page_size=page_size,
            pages=(total + page_size - 1) // page_size,
        )


class BulkResult(BaseSchema):
    """Outcome of one row in a bulk update."""

    id: UUID
    success: bool
    error: str | None = None


class BulkUpdateResponse(ApiResponse):
    results: list[BulkResult]
    updated: int
    failed: int
