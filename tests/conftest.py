"""Pytest configuration and fixtures for the recommendations API test suite.

Provides:
- A throwaway SQLite database per test (aiosqlite, schema from metadata)
- Mock Redis (fakeredis)
- Disabled rate limiting
- Celery ``.delay`` calls captured instead of queued
- Ecwid app credentials for OAuth and payload decoding
- Model factory fixtures for Store, Product, Category, Order and AnalyticsEvent
- A scripted backend for the admin add-on client
- A fake Ecwid REST and OAuth API behind every outgoing httpx client
"""

from collections.abc import AsyncGenerator, Callable, Iterator
from datetime import datetime
from pathlib import Path
from types import SimpleNamespace
from typing import Any
from unittest.mock import MagicMock, patch

import fakeredis.aioredis
import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from recs_api.addon.api_client import AddonApiClient
from recs_api.core.config import settings
from recs_api.core.deps import get_db, get_redis
from recs_api.core.encryption import encrypt_token
from recs_api.core.rate_limit import limiter
from recs_api.main import app
from recs_api.models import AnalyticsEvent, Base, Category, Order, Product, Store
from recs_api.workers.tasks.ecwid import sync_all_stores, sync_store

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
TEST_STORE_ID = "1003"
OTHER_STORE_ID = "2004"
ECWID_TEST_CLIENT_ID = "test-client-id"
ECWID_TEST_CLIENT_SECRET = "abcdefghijklmnop-rest-of-secret"
FRONTEND_URL = "http://admin.test"
ACCESS_TOKEN = "secret_access_token"
REFRESH_TOKEN = "secret_refresh_token"

# ---------------------------------------------------------------------------
# Disable rate limiting globally for tests
# ---------------------------------------------------------------------------
limiter.enabled = False


@pytest.fixture(autouse=True)
def _ecwid_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    """Known Ecwid credentials and frontend URL for every test."""
    monkeypatch.setattr(settings, "ecwid_client_id", ECWID_TEST_CLIENT_ID)
    monkeypatch.setattr(settings, "ecwid_client_secret", ECWID_TEST_CLIENT_SECRET)
    monkeypatch.setattr(settings, "frontend_url", FRONTEND_URL)


@pytest.fixture(autouse=True)
def celery_delay() -> Iterator[SimpleNamespace]:
    """Capture task ``.delay`` calls so nothing reaches a broker."""
    with (
        patch.object(sync_store, "delay", MagicMock()) as store_delay,
        patch.object(sync_all_stores, "delay", MagicMock()) as all_delay,
    ):
        yield SimpleNamespace(sync_store=store_delay, sync_all_stores=all_delay)


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """Fresh SQLite file per test, schema created from the model metadata.

    NullPool gives every session its own connection, like a real server.
    """
    test_engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        poolclass=NullPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Session for test setup (factory fixtures) and assertions."""
    async with session_factory() as session:
        yield session


# ---------------------------------------------------------------------------
# Fake Redis
# ---------------------------------------------------------------------------


@pytest.fixture
def fake_redis() -> fakeredis.aioredis.FakeRedis:
    """Provide a fresh fakeredis instance per test."""
    return fakeredis.aioredis.FakeRedis(decode_responses=True)


# ---------------------------------------------------------------------------
# HTTP client (overrides DB & Redis)
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def client(
    session_factory: async_sessionmaker[AsyncSession],
    fake_redis: fakeredis.aioredis.FakeRedis,
) -> AsyncGenerator[AsyncClient, None]:
    """Async test client with database and Redis dependencies overridden."""

    async def _override_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as s:
            yield s

    async def _override_redis() -> AsyncGenerator[fakeredis.aioredis.FakeRedis, None]:
        yield fake_redis

    app.dependency_overrides[get_db] = _override_session
    app.dependency_overrides[get_redis] = _override_redis

    async with AsyncClient(
        transport=ASGITransport(app=app, raise_app_exceptions=False),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Model Factories
# ---------------------------------------------------------------------------


@pytest.fixture
def store_factory(db_session: AsyncSession) -> Callable[..., Any]:
    """Factory that creates Store instances in the test database."""

    async def _create(
        *,
        store_id: str = TEST_STORE_ID,
        store_name: str | None = "Test Store",
        authenticated: bool = True,
        refresh_token: str | None = None,
        recommendation_settings: dict[str, Any] | None = None,
        last_synced_at: datetime | None = None,
        sync_error: str | None = None,
        is_active: bool = True,
    ) -> Store:
        store = Store(
            store_id=store_id,
            store_name=store_name,
            access_token=encrypt_token(ACCESS_TOKEN) if authenticated else None,
            refresh_token=encrypt_token(refresh_token) if refresh_token else None,
            recommendation_settings=recommendation_settings,
            last_synced_at=last_synced_at,
            sync_error=sync_error,
            is_active=is_active,
        )
        db_session.add(store)
        await db_session.commit()
        await db_session.refresh(store)
        return store

    return _create


@pytest_asyncio.fixture
async def store(store_factory: Callable[..., Any]) -> Store:
    """An authenticated store."""
    result: Store = await store_factory()
    return result


@pytest.fixture
def product_factory(db_session: AsyncSession) -> Callable[..., Any]:
    """Factory that creates mirrored Product rows."""

    async def _create(
        *,
        store: Store,
        ecwid_product_id: str,
        name: str | None = None,
        price: float = 10.0,
        stock: int = 5,
        sku: str | None = None,
        category_ids: list[str] | None = None,
        options: list[dict[str, Any]] | None = None,
        upsells: list[str] | None = None,
        cross_sells: list[str] | None = None,
        enabled: bool = True,
        image_url: str | None = None,
    ) -> Product:
        product = Product(
            store_id=store.id,
            ecwid_product_id=ecwid_product_id,
            name=name or f"Product {ecwid_product_id}",
            price=price,
            stock=stock,
            sku=sku,
            category_ids=category_ids or [],
            options=options or [],
            upsells=upsells or [],
            cross_sells=cross_sells or [],
            enabled=enabled,
            image_url=image_url,
        )
        db_session.add(product)
        await db_session.commit()
        await db_session.refresh(product)
        return product

    return _create


@pytest.fixture
def category_factory(db_session: AsyncSession) -> Callable[..., Any]:
    """Factory that creates Category rows with precomputed recommendations."""

    async def _create(
        *,
        store: Store,
        category_id: str,
        recommended_products: list[str] | None = None,
        name: str | None = None,
    ) -> Category:
        category = Category(
            store_id=store.id,
            category_id=category_id,
            name=name,
            recommended_products=recommended_products or [],
        )
        db_session.add(category)
        await db_session.commit()
        await db_session.refresh(category)
        return category

    return _create


@pytest.fixture
def order_factory(db_session: AsyncSession) -> Callable[..., Any]:
    """Factory that creates mirrored Order rows."""

    async def _create(
        *,
        store: Store,
        ecwid_order_id: str,
        product_ids: list[str] | None = None,
        total: float = 20.0,
        payment_status: str | None = "PAID",
        fulfillment_status: str | None = "AWAITING_PROCESSING",
        customer_email: str | None = "buyer@example.com",
        customer_name: str | None = "Jane Buyer",
        order_created_at: datetime | None = None,
    ) -> Order:
        order = Order(
            store_id=store.id,
            ecwid_order_id=ecwid_order_id,
            order_number=ecwid_order_id,
            product_ids=product_ids or [],
            total=total,
            payment_status=payment_status,
            fulfillment_status=fulfillment_status,
            customer_email=customer_email,
            customer_name=customer_name,
            order_created_at=order_created_at,
        )
        db_session.add(order)
        await db_session.commit()
        await db_session.refresh(order)
        return order

    return _create


@pytest.fixture
def event_factory(db_session: AsyncSession) -> Callable[..., Any]:
    """Factory that creates AnalyticsEvent rows."""

    async def _create(
        *,
        store_id: str = TEST_STORE_ID,
        event_type: str = "widget_view",
        event_data: dict[str, Any] | None = None,
        created_at: datetime | None = None,
    ) -> AnalyticsEvent:
        event = AnalyticsEvent(
            store_id=store_id,
            event_type=event_type,
            event_data=event_data or {},
        )
        if created_at is not None:
            event.created_at = created_at
        db_session.add(event)
        await db_session.commit()
        await db_session.refresh(event)
        return event

    return _create


# ---------------------------------------------------------------------------
# Add-on client against a scripted backend
# ---------------------------------------------------------------------------

BACKEND_URL = "http://backend.test"


class FakeBackend:
    """Scripted responses for the add-on API client, keyed by (method, path).

    A value may be a ``(status, body)`` tuple, an exception to raise, or a
    list of either to answer successive calls in order.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Any] = {}
        self.calls: list[httpx.Request] = []

    def on(self, method: str, path: str, *responses: Any) -> None:
        self.routes[(method, path)] = list(responses)

    def count(self, method: str, path: str) -> int:
        return sum(1 for r in self.calls if r.method == method and r.url.path == path)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        queue = self.routes.get((request.method, request.url.path))
        if not queue:
            return httpx.Response(404, json={"success": False, "error": "Not found"})
        answer = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(answer, Exception):
            raise answer
        status, body = answer
        return httpx.Response(status, json=body)


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest_asyncio.fixture
async def api_client(backend: FakeBackend) -> AsyncGenerator[AddonApiClient, None]:
    """Add-on API client wired to ``backend`` through httpx.MockTransport."""
    http = httpx.AsyncClient(transport=httpx.MockTransport(backend.handler))
    async with http:
        yield AddonApiClient(BACKEND_URL, client=http)


# ---------------------------------------------------------------------------
# Ecwid REST and OAuth endpoints
# ---------------------------------------------------------------------------

_RealAsyncClient = httpx.AsyncClient


class FakeEcwid:
    """Scripted Ecwid API: profile, paginated products/orders and the token endpoint."""

    def __init__(self) -> None:
        self.products: list[dict[str, Any]] = []
        self.orders: list[dict[str, Any]] = []
        self.profile: dict[str, Any] = {"generalInfo": {"storeName": "Ecwid Shop"}}
        self.profile_status = 200
        self.profile_error: Exception | None = None
        self.token_status = 200
        self.token_body: dict[str, Any] = {
            "access_token": "new_access_token",
            "refresh_token": "new_refresh_token",
            "scope": "read_catalog read_orders",
            "expires_in": 3600,
        }
        self.requests: list[httpx.Request] = []

    def count(self, suffix: str) -> int:
        return sum(1 for r in self.requests if r.url.path.endswith(suffix))

    def _page(self, request: httpx.Request, items: list[dict[str, Any]]) -> httpx.Response:
        offset = int(request.url.params.get("offset", 0))
        limit = int(request.url.params.get("limit", 100))
        page = items[offset : offset + limit]
        return httpx.Response(
            200,
            json={
                "total": len(items),
                "count": len(page),
                "offset": offset,
                "limit": limit,
                "items": page,
            },
        )

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path.endswith("/token"):
            return httpx.Response(self.token_status, json=self.token_body)
        if path.endswith("/profile"):
            if self.profile_error is not None:
                raise self.profile_error
            return httpx.Response(self.profile_status, json=self.profile)
        if path.endswith("/products"):
            return self._page(request, self.products)
        if path.endswith("/orders"):
            return self._page(request, self.orders)
        return httpx.Response(404, json={"errorMessage": "Not found"})


@pytest.fixture
def ecwid() -> Iterator[FakeEcwid]:
    """Route every outgoing ``httpx.AsyncClient`` without a transport to FakeEcwid."""
    fake = FakeEcwid()

    def _factory(*args: Any, **kwargs: Any) -> httpx.AsyncClient:
        kwargs.setdefault("transport", httpx.MockTransport(fake.handler))
        return _RealAsyncClient(*args, **kwargs)

    with patch("httpx.AsyncClient", side_effect=_factory):
        yield fake
