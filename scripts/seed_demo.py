"""Seed a demo store for trying the admin app and storefront widget locally.

Creates:
- 1 authenticated demo store (placeholder token, sync will be rejected)
- 8 products across 2 categories, one with variants and one out of stock
- 6 orders with overlapping baskets for co-purchase cross-sells
- A handful of widget analytics events
Then precomputes recommendations the same way a sync does.

Usage:
    uv run python -m scripts.seed_demo
"""

import asyncio
import uuid
from datetime import UTC, datetime, timedelta

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from recs_api.core.database import async_session_maker
from recs_api.core.encryption import encrypt_token
from recs_api.models import AnalyticsEvent, Order, Product, Store
from recs_api.services.recommendation_service import RecommendationService

DEMO_STORE_ID = "9000001"
STORE_PK = uuid.UUID("aaaaaaaa-0000-0000-0000-000000000001")

# (ecwid id, name, price, stock, categories)
PRODUCTS = [
    ("101", "Pour-over Kettle", 45.00, 12, ["10"]),
    ("102", "Gooseneck Kettle Pro", 89.00, 4, ["10"]),
    ("103", "Ceramic Dripper", 22.00, 30, ["10", "20"]),
    ("104", "Paper Filters (100)", 6.50, 200, ["20"]),
    ("105", "Burr Grinder", 129.00, 3, ["10"]),
    ("106", "Travel Mug", 18.00, 0, ["20"]),
    ("107", "Glass Carafe", 27.00, 15, ["20"]),
    ("108", "Digital Scale", 34.00, 9, ["10"]),
]

BASKETS = [
    ["101", "104"],
    ["103", "104", "107"],
    ["103", "104"],
    ["105", "108"],
    ["101", "103", "104"],
    ["102"],
]


async def seed(session: AsyncSession) -> Store:
    now = datetime.now(UTC)

    # ── Cleanup existing seed data ──────────────────────────────────────
    await session.execute(delete(AnalyticsEvent).where(AnalyticsEvent.store_id == DEMO_STORE_ID))
    await session.execute(delete(Store).where(Store.store_id == DEMO_STORE_ID))
    await session.flush()

    # ── Store ───────────────────────────────────────────────────────────
    store = Store(
        id=STORE_PK,
        store_id=DEMO_STORE_ID,
        store_name="Demo Coffee Gear",
        access_token=encrypt_token("demo-token"),
        recommendation_settings={
            "showUpsells": True,
            "showCrossSells": True,
            "showRecommendations": False,
            "upsellLocations": {"productPage": True, "cartPage": True},
            "crossSellLocations": {"cartPage": True, "checkoutPage": False},
            "recommendationLocations": {
                "categoryPage": False,
                "productPage": False,
                "thankYouPage": False,
            },
        },
        last_synced_at=now,
    )
    session.add(store)

    # ── Catalog ─────────────────────────────────────────────────────────
    for ecwid_id, name, price, stock, categories in PRODUCTS:
        options = []
        if ecwid_id == "106":
            options = [{"name": "Color", "choices": [{"text": "Black"}, {"text": "Sand"}]}]
        session.add(
            Product(
                store_id=STORE_PK,
                ecwid_product_id=ecwid_id,
                name=name,
                sku=f"DEMO-{ecwid_id}",
                price=price,
                stock=stock,
                category_ids=categories,
                options=options,
                image_url=f"https://placehold.co/200x200?text={ecwid_id}",
                synced_at=now,
            )
        )

    # ── Orders ──────────────────────────────────────────────────────────
    prices = {p[0]: p[2] for p in PRODUCTS}
    for i, basket in enumerate(BASKETS, start=1):
        session.add(
            Order(
                store_id=STORE_PK,
                ecwid_order_id=str(5000 + i),
                order_number=str(5000 + i),
                product_ids=basket,
                total=round(sum(prices[p] for p in basket), 2),
                payment_status="PAID",
                fulfillment_status="SHIPPED" if i % 2 else "AWAITING_PROCESSING",
                customer_email=f"customer{i}@example.com",
                customer_name=f"Customer {i}",
                order_created_at=now - timedelta(days=len(BASKETS) - i),
            )
        )

    # ── Widget analytics ────────────────────────────────────────────────
    for event_type, product_id in [
        ("widget_view", "101"),
        ("widget_view", "103"),
        ("recommendation_click", "104"),
        ("add_to_cart", "104"),
    ]:
        session.add(
            AnalyticsEvent(
                store_id=DEMO_STORE_ID,
                event_type=event_type,
                event_data={"productId": product_id},
            )
        )

    await session.flush()
    await RecommendationService(session).generate_for_store(store.id)
    await session.commit()
    return store


async def main() -> None:
    async with async_session_maker() as session:
        store = await seed(session)

    print("=" * 60)
    print("  Demo seed data created successfully!")
    print("=" * 60)
    print()
    print(f"  Ecwid store id:  {store.store_id}")
    print(f"  Store pk:        {STORE_PK}")
    print(f"  Products:        {len(PRODUCTS)} (1 out of stock)")
    print(f"  Orders:          {len(BASKETS)}")
    print()
    print(f"  Widget check:    GET /api/ecwid/recommendations/{DEMO_STORE_ID}/101")
    print("=" * 60)


if __name__ == "__main__":
    asyncio.run(main())
