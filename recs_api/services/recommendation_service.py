"""Precomputed upsell, cross-sell and category recommendations.

Recommendations are computed once per sync from the mirrored catalog and
order history, then stored on the product and category rows. Serving a
widget request is a plain lookup.

Selection rules (at most ``MAX_RECOMMENDATIONS`` each, in-stock priced
products only, never the source product):

* cross-sell: products most often bought together with the source product,
  then the upsell candidates, then the priciest products of the same
  category, then the priciest products of the store.
* upsell: same-category products priced at least ``UPSELL_PRICE_MULTIPLIER``
  times the source price (cheapest first), then the priciest products of the
  same category, then the priciest products of the store.
* category: the category's products ranked by how many orders contain them,
  topped up with its priciest products. The ``default`` category covers the
  whole store.
"""

import logging
from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from recs_api.models.category import DEFAULT_CATEGORY_ID, Category
from recs_api.models.order import Order
from recs_api.models.product import Product
from recs_api.schemas.ecwid import ProductRecommendation

logger = logging.getLogger(__name__)

MAX_RECOMMENDATIONS = 3
UPSELL_PRICE_MULTIPLIER = 1.2
MIN_PRICE_DIFFERENCE = 0.01


@dataclass
class CatalogSnapshot:
    """In-memory view of one store's products and order baskets."""

    products: list[Product]
    baskets: list[list[str]] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.by_id = {p.ecwid_product_id: p for p in self.products}
        # Candidates are in stock and priced
        self.candidates = [p for p in self.products if p.stock > 0 and (p.price or 0) > 0]

    def in_categories(self, categories: Iterable[str]) -> list[Product]:
        wanted = {str(c) for c in categories}
        return [p for p in self.candidates if wanted.intersection(map(str, p.category_ids))]

    def category_ids(self) -> list[str]:
        seen: dict[str, None] = {DEFAULT_CATEGORY_ID: None}
        for product in self.products:
            for category_id in product.category_ids:
                seen.setdefault(str(category_id), None)
        return list(seen)


def _fill(selected: list[str], candidates: Iterable[str]) -> list[str]:
    """Append candidates not already selected until the list is full."""
    for product_id in candidates:
        if len(selected) >= MAX_RECOMMENDATIONS:
            break
        if product_id not in selected:
            selected.append(product_id)
    return selected


def _by_price_desc(products: Iterable[Product], exclude: str) -> list[str]:
    ranked = sorted(products, key=lambda p: p.price, reverse=True)
    return [p.ecwid_product_id for p in ranked if p.ecwid_product_id != exclude]


def find_upsells(snapshot: CatalogSnapshot, source: Product) -> list[str]:
    """Same-category products at least 20% pricier than the source, cheapest first."""
    if not source.price or source.price <= 0 or not source.category_ids:
        return []

    min_price = max(
        source.price * UPSELL_PRICE_MULTIPLIER,
        source.price + MIN_PRICE_DIFFERENCE,
    )
    matches = [
        p
        for p in snapshot.in_categories(source.category_ids)
        if p.ecwid_product_id != source.ecwid_product_id and p.price >= min_price
    ]
    matches.sort(key=lambda p: p.price)
    return [p.ecwid_product_id for p in matches[:MAX_RECOMMENDATIONS]]


def find_co_purchased(snapshot: CatalogSnapshot, source: Product) -> list[str]:
    """Products most frequently found in the same orders as the source."""
    source_id = source.ecwid_product_id
    counts: Counter[str] = Counter()
    for basket in snapshot.baskets:
        if source_id not in basket:
            continue
        for product_id in set(basket):
            if product_id != source_id and product_id in snapshot.by_id:
                candidate = snapshot.by_id[product_id]
                if candidate.stock > 0 and (candidate.price or 0) > 0:
                    counts[product_id] += 1
    return [product_id for product_id, _ in counts.most_common(MAX_RECOMMENDATIONS)]


def compute_product_recommendations(
    snapshot: CatalogSnapshot, source: Product
) -> tuple[list[str], list[str]]:
    """Return ``(upsells, cross_sells)`` for one product."""
    source_id = source.ecwid_product_id
    same_category = _by_price_desc(snapshot.in_categories(source.category_ids), source_id)
    store_wide = _by_price_desc(snapshot.candidates, source_id)
    upsell_candidates = find_upsells(snapshot, source)

    cross_sells = find_co_purchased(snapshot, source)
    _fill(cross_sells, upsell_candidates)
    _fill(cross_sells, same_category)
    _fill(cross_sells, store_wide)

    upsells = list(upsell_candidates)
    _fill(upsells, same_category)
    _fill(upsells, store_wide)

    return upsells, cross_sells


def compute_category_recommendations(snapshot: CatalogSnapshot, category_id: str) -> list[str]:
    """Best sellers of the category, topped up with its priciest products."""
    if category_id == DEFAULT_CATEGORY_ID:
        members = snapshot.candidates
    else:
        members = snapshot.in_categories([category_id])
    member_ids = {p.ecwid_product_id for p in members}

    counts: Counter[str] = Counter()
    for basket in snapshot.baskets:
        for product_id in basket:
            if product_id in member_ids:
                counts[product_id] += 1

    selected = [product_id for product_id, _ in counts.most_common()]
    if len(selected) >= MAX_RECOMMENDATIONS:
        return selected[:MAX_RECOMMENDATIONS]
    return _fill(selected, _by_price_desc(members, exclude=""))


class RecommendationService:
    """Generates and serves precomputed recommendations for a store."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def load_snapshot(self, store_pk: UUID) -> CatalogSnapshot:
        products = (
            await self.db.execute(select(Product).where(Product.store_id == store_pk))
        ).scalars()
        baskets = (
            await self.db.execute(select(Order.product_ids).where(Order.store_id == store_pk))
        ).scalars()
        return CatalogSnapshot(
            products=list(products),
            baskets=[[str(pid) for pid in basket or []] for basket in baskets],
        )

    async def generate_for_store(self, store_pk: UUID) -> tuple[int, int]:
        """Recompute every product and category list for a store.

        Returns:
            ``(products_updated, categories_updated)``. The caller commits.
        """
        snapshot = await self.load_snapshot(store_pk)

        for product in snapshot.products:
            product.upsells, product.cross_sells = compute_product_recommendations(
                snapshot, product
            )

        existing = {
            c.category_id: c
            for c in (
                await self.db.execute(select(Category).where(Category.store_id == store_pk))
            ).scalars()
        }
        category_ids = snapshot.category_ids()
        for category_id in category_ids:
            recommended = compute_category_recommendations(snapshot, category_id)
            category = existing.pop(category_id, None)
            if category is None:
                category = Category(store_id=store_pk, category_id=category_id)
                self.db.add(category)
            category.recommended_products = recommended

        # Categories that no longer have products
        for stale in existing.values():
            await self.db.delete(stale)

        await self.db.flush()
        logger.info(
            "Generated recommendations",
            extra={"products": len(snapshot.products), "categories": len(category_ids)},
        )
        return len(snapshot.products), len(category_ids)

    async def get_product_recommendations(
        self,
        store_pk: UUID,
        ecwid_product_id: str,
        kind: str = "upsell",
    ) -> list[ProductRecommendation]:
        """Precomputed recommendations for a product, most expensive first.

        Returns an empty list when the product is not mirrored.
        """
        result = await self.db.execute(
            select(Product).where(
                Product.store_id == store_pk,
                Product.ecwid_product_id == ecwid_product_id,
            )
        )
        product = result.scalar_one_or_none()
        if product is None:
            return []

        ids = product.cross_sells if kind == "cross_sell" else product.upsells
        return await self._details(store_pk, ids)

    async def get_category_recommendations(
        self, store_pk: UUID, category_id: str
    ) -> list[ProductRecommendation]:
        result = await self.db.execute(
            select(Category).where(
                Category.store_id == store_pk,
                Category.category_id == category_id,
            )
        )
        category = result.scalar_one_or_none()
        if category is None:
            return []
        return await self._details(store_pk, category.recommended_products)

    async def _details(self, store_pk: UUID, ids: Sequence[str]) -> list[ProductRecommendation]:
        if not ids:
            return []
        result = await self.db.execute(
            select(Product)
            .where(
                Product.store_id == store_pk,
                Product.ecwid_product_id.in_([str(i) for i in ids]),
            )
            .order_by(Product.price.desc())
        )
        return [ProductRecommendation.model_validate(p) for p in result.scalars()]
