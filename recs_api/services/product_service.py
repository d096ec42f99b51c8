"""Product mirror queries and admin edits."""

import logging
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from recs_api.models.product import Product
from recs_api.schemas.common import BulkResult
from recs_api.schemas.product import ProductBulkItem, ProductUpdate

logger = logging.getLogger(__name__)


class ProductService:
    """Business logic for mirrored products."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def list_products(
        self,
        store_pk: UUID,
        *,
        search: str | None = None,
        category_id: str | None = None,
        enabled: bool | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[Product], int]:
        conditions = [Product.store_id == store_pk]
        if search:
            pattern = f"%{search}%"
            conditions.append(Product.name.ilike(pattern) | Product.sku.ilike(pattern))
        if enabled is not None:
            conditions.append(Product.enabled == enabled)

        stmt = select(Product).where(*conditions).order_by(Product.name)

        if category_id:
            # JSON membership differs across backends; filter in Python
            products = [
                p for p in (await self.db.execute(stmt)).scalars() if category_id in p.category_ids
            ]
            start = (page - 1) * page_size
            return products[start : start + page_size], len(products)

        count_stmt = select(func.count()).select_from(Product).where(*conditions)
        total = (await self.db.execute(count_stmt)).scalar() or 0
        result = await self.db.execute(stmt.offset((page - 1) * page_size).limit(page_size))
        return list(result.scalars().all()), total

    async def get_product(self, store_pk: UUID, product_id: UUID) -> Product | None:
        result = await self.db.execute(
            select(Product).where(Product.id == product_id, Product.store_id == store_pk)
        )
        return result.scalar_one_or_none()

    async def update_product(self, product: Product, update: ProductUpdate) -> Product:
        self._apply(product, update)
        await self.db.commit()
        await self.db.refresh(product)
        return product

    async def delete_product(self, product: Product) -> None:
        await self.db.delete(product)
        await self.db.commit()
        logger.info("Deleted mirrored product %s", product.ecwid_product_id)

    async def bulk_update(self, store_pk: UUID, items: list[ProductBulkItem]) -> list[BulkResult]:
        """Apply each update independently; a missing product fails only its own row."""
        results: list[BulkResult] = []
        for item in items:
            product = await self.get_product(store_pk, item.id)
            if product is None:
                results.append(BulkResult(id=item.id, success=False, error="Product not found"))
                continue
            self._apply(product, item)
            results.append(BulkResult(id=item.id, success=True))
        await self.db.commit()
        return results

    @staticmethod
    def _apply(product: Product, update: ProductUpdate) -> None:
        values = update.model_dump(exclude_unset=True, exclude={"id"})
        for field, value in values.items():
            if value is not None:
                setattr(product, field, value)
