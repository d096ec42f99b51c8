"""Products API endpoints for the mirrored catalog."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from recs_api.core.deps import (
    DBSession,
    get_authenticated_store_from_query,
    get_store_from_query,
    require_authenticated,
)
from recs_api.models.product import Product
from recs_api.models.store import Store
from recs_api.schemas.analytics import EventBreakdownResponse
from recs_api.schemas.common import BulkUpdateResponse, MessageResponse, PaginatedResponse
from recs_api.schemas.product import (
    ProductBulkUpdate,
    ProductDetailResponse,
    ProductResponse,
    ProductUpdate,
)
from recs_api.services.analytics_service import AnalyticsService
from recs_api.services.product_service import ProductService
from recs_api.services.store_service import StoreService

router = APIRouter()


async def _get_or_404(service: ProductService, store: Store, product_id: UUID) -> Product:
    product = await service.get_product(store.id, product_id)
    if product is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Product not found")
    return product


@router.get("/", response_model=PaginatedResponse[ProductResponse])
async def list_products(
    db: DBSession,
    store: Store = Depends(get_store_from_query),
    search: str | None = Query(None, max_length=200),
    category_id: str | None = Query(None, alias="categoryId"),
    enabled: bool | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
) -> PaginatedResponse[ProductResponse]:
    """List mirrored products for a store."""
    products, total = await ProductService(db).list_products(
        store.id,
        search=search,
        category_id=category_id,
        enabled=enabled,
        page=page,
        page_size=page_size,
    )
    return PaginatedResponse[ProductResponse].build(
        [ProductResponse.model_validate(p) for p in products], total, page, page_size
    )


@router.put("/bulk", response_model=BulkUpdateResponse)
async def bulk_update_products(data: ProductBulkUpdate, db: DBSession) -> BulkUpdateResponse:
    """Apply several product edits; each row succeeds or fails on its own."""
    store = await StoreService(db).get_by_store_id(data.store_id)
    if store is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Store not found")
    require_authenticated(store)

    results = await ProductService(db).bulk_update(store.id, data.updates)
    updated = sum(1 for r in results if r.success)
    return BulkUpdateResponse(results=results, updated=updated, failed=len(results) - updated)


@router.get("/{product_id}", response_model=ProductDetailResponse)
async def get_product(
    product_id: UUID,
    db: DBSession,
    store: Store = Depends(get_store_from_query),
) -> ProductDetailResponse:
    product = await _get_or_404(ProductService(db), store, product_id)
    return ProductDetailResponse(product=ProductResponse.model_validate(product))


@router.put("/{product_id}", response_model=ProductDetailResponse)
async def update_product(
    product_id: UUID,
    update: ProductUpdate,
    db: DBSession,
    store: Store = Depends(get_authenticated_store_from_query),
) -> ProductDetailResponse:
    """Edit a mirrored product. The next sync overwrites local edits."""
    service = ProductService(db)
    product = await _get_or_404(service, store, product_id)
    product = await service.update_product(product, update)
    return ProductDetailResponse(product=ProductResponse.model_validate(product))


@router.delete("/{product_id}", response_model=MessageResponse)
async def delete_product(
    product_id: UUID,
    db: DBSession,
    store: Store = Depends(get_authenticated_store_from_query),
) -> MessageResponse:
    service = ProductService(db)
    product = await _get_or_404(service, store, product_id)
    await service.delete_product(product)
    return MessageResponse(message="Product deleted")


@router.get("/{product_id}/analytics", response_model=EventBreakdownResponse)
async def product_analytics(
    product_id: UUID,
    db: DBSession,
    store: Store = Depends(get_store_from_query),
) -> EventBreakdownResponse:
    """Daily widget events that reference this product."""
    product = await _get_or_404(ProductService(db), store, product_id)
    breakdown = await AnalyticsService(db).get_product_activity(
        store.store_id, product.ecwid_product_id
    )
    return EventBreakdownResponse(breakdown=breakdown)
