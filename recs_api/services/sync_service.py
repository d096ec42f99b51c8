"""Mirror an Ecwid store's catalog and orders into the local database."""

import logging
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from recs_api.integrations.ecwid.client import EcwidClient
from recs_api.models.order import Order
from recs_api.models.product import Product
from recs_api.models.store import Store
from recs_api.schemas.ecwid import SyncStatus
from recs_api.services.recommendation_service import RecommendationService

logger = logging.getLogger(__name__)

# Stock reported for products that track no quantity but are in stock
UNLIMITED_STOCK = 999


def _min_variant_price(product: dict[str, Any]) -> float:
    variants = product.get("variants") or product.get("combinations") or []
    prices = [float(v["price"]) for v in variants if v.get("price") and float(v["price"]) > 0]
    if prices:
        return min(prices)
    return float(product.get("price") or 0)


def _total_stock(product: dict[str, Any]) -> int:
    combinations = product.get("combinations") or []
    if combinations:
        return sum(int(c.get("quantity") or 0) for c in combinations)
    if product.get("quantity") is not None:
        return int(product["quantity"])
    return UNLIMITED_STOCK if product.get("inStock") else 0


def _parse_ecwid_datetime(value: Any) -> datetime | None:
    # Ecwid sends "2024-01-31 12:00:00 +0000"
    if not value:
        return None
    for fmt in ("%Y-%m-%d %H:%M:%S %z", "%Y-%m-%dT%H:%M:%S%z"):
        try:
            return datetime.strptime(str(value), fmt)
        except ValueError:
            continue
    return None


def transform_product(store_pk: Any, data: dict[str, Any], synced_at: datetime) -> Product:
    """Map an Ecwid product payload to a mirror row."""
    return Product(
        store_id=store_pk,
        ecwid_product_id=str(data["id"]),
        name=data.get("name") or f"Product {data['id']}",
        sku=data.get("sku"),
        description=data.get("description"),
        price=_min_variant_price(data),
        compare_to_price=data.get("compareToPrice"),
        stock=_total_stock(data),
        image_url=data.get("imageUrl") or data.get("thumbnailUrl"),
        enabled=bool(data.get("enabled", True)),
        category_ids=[str(c) for c in data.get("categoryIds") or []],
        options=data.get("options") or [],
        upsells=[],
        cross_sells=[],
        synced_at=synced_at,
    )


def transform_order(store_pk: Any, data: dict[str, Any]) -> Order:
    """Map an Ecwid order payload to a mirror row."""
    items = data.get("items") or []
    billing = data.get("billingPerson") or {}
    order_id = data.get("id") or data.get("orderNumber")
    return Order(
        store_id=store_pk,
        ecwid_order_id=str(order_id),
        order_number=str(data["orderNumber"]) if data.get("orderNumber") else None,
        product_ids=[str(item["productId"]) for item in items if item.get("productId")],
        total=float(data.get("total") or 0),
        payment_status=data.get("paymentStatus"),
        fulfillment_status=data.get("fulfillmentStatus"),
        customer_email=data.get("email"),
        customer_name=billing.get("name"),
        order_created_at=_parse_ecwid_datetime(data.get("createDate")),
    )


class SyncService:
    """Replaces a store's mirror with a fresh copy from Ecwid."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def mirror_products(self, store: Store, raw_products: list[dict[str, Any]]) -> int:
        """Delete and re-insert the store's products.

        Only enabled products with stock are kept.
        """
        synced_at = datetime.now(UTC)
        rows = {
            str(p["id"]): transform_product(store.id, p, synced_at)
            for p in raw_products
            if p.get("id")
        }
        kept = [p for p in rows.values() if p.enabled and p.stock > 0]

        await self.db.execute(delete(Product).where(Product.store_id == store.id))
        self.db.add_all(kept)
        await self.db.flush()

        logger.info(
            "Mirrored products",
            extra={"kept": len(kept), "skipped": len(rows) - len(kept)},
        )
        return len(kept)

    async def mirror_orders(self, store: Store, raw_orders: list[dict[str, Any]]) -> int:
        """Delete and re-insert the store's orders."""
        rows: dict[str, Order] = {}
        for data in raw_orders:
            if data.get("id") or data.get("orderNumber"):
                order = transform_order(store.id, data)
                rows[order.ecwid_order_id] = order

        await self.db.execute(delete(Order).where(Order.store_id == store.id))
        self.db.add_all(rows.values())
        await self.db.flush()
        return len(rows)

    async def sync_store(self, store: Store, client: EcwidClient) -> dict[str, int]:
        """Fetch everything from Ecwid, mirror it and regenerate recommendations.

        Raises whatever the Ecwid client raises; the caller records the error.
        """
        raw_products = await client.get_all_products()
        raw_orders = await client.get_all_orders()

        products = await self.mirror_products(store, raw_products)
        orders = await self.mirror_orders(store, raw_orders)
        _, categories = await RecommendationService(self.db).generate_for_store(store.id)

        store.last_synced_at = datetime.now(UTC)
        store.sync_error = None
        await self.db.commit()

        return {"products": products, "orders": orders, "categories": categories}

    async def get_status(self, store: Store) -> SyncStatus:
        product_count = (
            await self.db.execute(
                select(func.count()).select_from(Product).where(Product.store_id == store.id)
            )
        ).scalar() or 0
        order_count = (
            await self.db.execute(
                select(func.count()).select_from(Order).where(Order.store_id == store.id)
            )
        ).scalar() or 0
        return SyncStatus(
            is_synced=store.last_synced_at is not None,
            product_count=product_count,
            order_count=order_count,
            last_synced_at=store.last_synced_at,
            sync_error=store.sync_error,
        )
