"""Store statistics endpoint used by the admin dashboard."""

from fastapi import APIRouter, Depends
from sqlalchemy import func, select

from recs_api.core.deps import DBSession, get_store_from_path
from recs_api.models.category import Category
from recs_api.models.order import Order
from recs_api.models.product import Product
from recs_api.models.store import Store
from recs_api.schemas.store import StoreStats, StoreStatsResponse
from recs_api.services.store_service import StoreService

router = APIRouter()


@router.get("/{store_id}", response_model=StoreStatsResponse)
async def get_store_stats(
    db: DBSession,
    store: Store = Depends(get_store_from_path),
) -> StoreStatsResponse:
    """Counts of mirrored rows plus the effective widget settings."""
    option_rows = await db.execute(select(Product.options).where(Product.store_id == store.id))
    options = [row[0] for row in option_rows]

    category_count = await db.scalar(
        select(func.count()).select_from(Category).where(Category.store_id == store.id)
    )
    order_count = await db.scalar(
        select(func.count()).select_from(Order).where(Order.store_id == store.id)
    )

    return StoreStatsResponse(
        data=StoreStats(
            store_id=store.store_id,
            store_name=store.store_name or "Unknown Store",
            product_count=len(options),
            # JSON columns are not portably queryable, count variants here
            products_with_variants=sum(1 for o in options if o),
            category_count=category_count or 0,
            order_count=order_count or 0,
            recommendation_settings=StoreService.get_recommendation_settings(store),
        )
    )
