"""Tests for the Ecwid Celery tasks.

We test the async implementations directly rather than the sync wrappers,
as the wrappers are just thin shells that create event loops.
"""

from collections.abc import Callable, Iterator
from typing import Any
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from recs_api.integrations.ecwid.client import EcwidAuthError
from recs_api.models.order import Order
from recs_api.models.product import Product
from recs_api.models.store import Store
from recs_api.workers.tasks.ecwid import (
    _authenticated_store_ids,
    generate_recommendations_async,
    sync_store_async,
)
from tests.conftest import OTHER_STORE_ID, TEST_STORE_ID, FakeEcwid


@pytest.fixture(autouse=True)
def task_sessions(session_factory: async_sessionmaker[AsyncSession]) -> Iterator[None]:
    """Point the tasks' session maker at the test database."""
    with patch("recs_api.workers.tasks.ecwid.async_session_maker", session_factory):
        yield


async def _count(db: AsyncSession, model: Any) -> int:
    return (await db.execute(select(func.count()).select_from(model))).scalar_one()


class TestSyncStoreAsync:
    @pytest.mark.asyncio
    async def test_unknown_store_skipped(self) -> None:
        result = await sync_store_async("missing")

        assert result == {"store_id": "missing", "status": "skipped", "reason": "unknown store"}

    @pytest.mark.asyncio
    async def test_store_without_token_skipped(
        self, store_factory: Callable[..., Any], ecwid: FakeEcwid
    ) -> None:
        await store_factory(authenticated=False)

        result = await sync_store_async(TEST_STORE_ID)

        assert result["status"] == "skipped"
        assert result["reason"] == "not authenticated"
        assert ecwid.requests == []

    @pytest.mark.asyncio
    async def test_mirrors_store(
        self, store: Store, db_session: AsyncSession, ecwid: FakeEcwid
    ) -> None:
        ecwid.products = [
            {"id": 1, "name": "Lamp", "price": 20, "quantity": 3, "enabled": True},
            {"id": 2, "name": "Shade", "price": 5, "quantity": 0, "enabled": True},
        ]
        ecwid.orders = [
            {"id": "A1", "orderNumber": 101, "total": 25, "items": [{"productId": 1}]},
        ]

        result = await sync_store_async(TEST_STORE_ID)

        assert result["status"] == "completed"
        assert result["products"] == 1
        assert result["orders"] == 1
        assert await _count(db_session, Product) == 1
        assert await _count(db_session, Order) == 1

        await db_session.refresh(store)
        assert store.last_synced_at is not None
        assert store.sync_error is None

    @pytest.mark.asyncio
    async def test_rejected_token_is_not_retried(
        self, store: Store, db_session: AsyncSession
    ) -> None:
        with patch(
            "recs_api.workers.tasks.ecwid.SyncService.sync_store",
            AsyncMock(side_effect=EcwidAuthError(TEST_STORE_ID, 403)),
        ):
            result = await sync_store_async(TEST_STORE_ID)

        assert result == {"store_id": TEST_STORE_ID, "status": "unauthorized"}
        await db_session.refresh(store)
        assert store.sync_error

    @pytest.mark.asyncio
    async def test_failure_recorded_and_raised(
        self, store: Store, db_session: AsyncSession
    ) -> None:
        with (
            patch(
                "recs_api.workers.tasks.ecwid.SyncService.sync_store",
                AsyncMock(side_effect=RuntimeError("Ecwid unavailable")),
            ),
            pytest.raises(RuntimeError),
        ):
            await sync_store_async(TEST_STORE_ID)

        await db_session.refresh(store)
        assert store.sync_error == "Ecwid unavailable"


class TestSyncAllStores:
    @pytest.mark.asyncio
    async def test_only_authenticated_stores(self, store_factory: Callable[..., Any]) -> None:
        await store_factory()
        await store_factory(store_id=OTHER_STORE_ID, authenticated=False)

        assert await _authenticated_store_ids() == [TEST_STORE_ID]


class TestGenerateRecommendationsAsync:
    @pytest.mark.asyncio
    async def test_regenerates_from_mirror(
        self,
        store: Store,
        product_factory: Callable[..., Any],
        db_session: AsyncSession,
    ) -> None:
        await product_factory(store=store, ecwid_product_id="1", price=10.0)
        await product_factory(store=store, ecwid_product_id="2", price=30.0)

        result = await generate_recommendations_async(TEST_STORE_ID)

        assert result["status"] == "completed"
        assert result["products"] == 2
        source = (
            await db_session.execute(select(Product).where(Product.ecwid_product_id == "1"))
        ).scalar_one()
        await db_session.refresh(source)
        assert source.upsells == ["2"]

    @pytest.mark.asyncio
    async def test_unknown_store(self) -> None:
        result = await generate_recommendations_async("missing")

        assert result["status"] == "skipped"
