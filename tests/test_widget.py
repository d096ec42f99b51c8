"""Tests for the storefront recommendation widget.

Covers:
- Render decisions: idle, loading, error, empty list, native widget, disabled
- Stale responses dropped when the product changes mid-fetch
- Page-loaded listener and SDK ready fallback
- Category pages when enabled
- Item actions: open product, add to cart
- Background analytics events for views, clicks and cart adds
"""

import asyncio
from collections.abc import Mapping
from typing import Any
from unittest.mock import AsyncMock

import pytest

from recs_api.addon.errors import NetworkError
from recs_api.addon.widget import (
    SDK_READY_FALLBACK,
    WIDGET_TITLE,
    PageCallback,
    RecommendationWidget,
    WidgetState,
    format_price,
)
from recs_api.schemas.ecwid import ProductRecommendation

STORE = "1003"


def _rec(product_id: str, price: float = 25.0) -> ProductRecommendation:
    return ProductRecommendation(
        ecwid_product_id=product_id,
        name=f"Product {product_id}",
        image_url=f"https://img.test/{product_id}.jpg",
        price=price,
        sku=f"SKU-{product_id}",
    )


class FakeApi:
    """Recommendations keyed by product id; optional gate per product."""

    def __init__(self, results: dict[str, list[ProductRecommendation]] | None = None) -> None:
        self.results = results or {}
        self.category_results: dict[str, list[ProductRecommendation]] = {}
        self.gates: dict[str, asyncio.Event] = {}
        self.error: Exception | None = None
        self.event_error: Exception | None = None
        self.calls: list[tuple[str, str, str]] = []
        self.events: list[tuple[str, str, dict[str, Any]]] = []

    async def get_recommendations(
        self, store_id: str, product_id: str, kind: str = "upsell"
    ) -> list[ProductRecommendation]:
        self.calls.append((store_id, product_id, kind))
        if product_id in self.gates:
            await self.gates[product_id].wait()
        if self.error is not None:
            raise self.error
        return self.results.get(product_id, [])

    async def get_category_recommendations(
        self, store_id: str, category_id: str
    ) -> list[ProductRecommendation]:
        self.calls.append((store_id, category_id, "category"))
        return self.category_results.get(category_id, [])

    async def record_event(
        self, store_id: str, event_type: str, event_data: dict[str, Any] | None = None
    ) -> None:
        if self.event_error is not None:
            raise self.event_error
        self.events.append((store_id, event_type, event_data or {}))


async def _drain(widget: RecommendationWidget) -> None:
    await asyncio.gather(*list(widget._tasks))


class FakeCart:
    def __init__(self) -> None:
        self.added: list[tuple[str, int]] = []

    def add_product(self, product_id: str, quantity: int = 1) -> None:
        self.added.append((product_id, quantity))


class FakeSdk:
    def __init__(self, native: bool = False, cart: FakeCart | None = None) -> None:
        self.native = native
        self.cart = cart
        self.listeners: list[PageCallback] = []
        self.ready_calls = 0

    async def ready(self) -> None:
        self.ready_calls += 1

    def on_page_loaded(self, callback: PageCallback) -> None:
        self.listeners.append(callback)

    def has_native_widget(self) -> bool:
        return self.native

    def fire(self, page: Mapping[str, Any]) -> None:
        for listener in self.listeners:
            listener(page)


class SdkWithOpenPage(FakeSdk):
    def __init__(self) -> None:
        super().__init__()
        self.opened: list[tuple[str, dict[str, Any]]] = []

    def open_page(self, page: str, params: dict[str, Any]) -> None:
        self.opened.append((page, params))


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


class TestRender:
    async def test_success_renders_items(self) -> None:
        api = FakeApi({"5": [_rec("9", 30.0), _rec("10", 0)]})
        widget = RecommendationWidget(api, STORE, FakeSdk())  # type: ignore[arg-type]

        await widget.show_for("5")
        view = widget.render()

        assert view is not None
        assert view.state is WidgetState.SUCCESS
        assert view.title == WIDGET_TITLE
        assert [i.ecwid_product_id for i in view.items] == ["9", "10"]
        assert view.items[0].price == "$30.00"
        assert view.items[1].price is None

    async def test_empty_list_renders_nothing(self) -> None:
        widget = RecommendationWidget(FakeApi({"5": []}), STORE, FakeSdk())  # type: ignore[arg-type]

        await widget.show_for("5")

        assert widget.state is WidgetState.SUCCESS
        assert widget.render() is None

    def test_idle_renders_nothing(self) -> None:
        widget = RecommendationWidget(FakeApi(), STORE, FakeSdk())  # type: ignore[arg-type]
        assert widget.render() is None

    async def test_native_widget_suppresses(self) -> None:
        api = FakeApi({"5": [_rec("9")]})
        widget = RecommendationWidget(api, STORE, FakeSdk(native=True))  # type: ignore[arg-type]

        await widget.show_for("5")

        assert widget.render() is None

    async def test_disabled_renders_nothing_and_never_fetches(self) -> None:
        api = FakeApi({"5": [_rec("9")]})
        widget = RecommendationWidget(api, STORE, FakeSdk(), enabled=False)  # type: ignore[arg-type]

        await widget.start("5")

        assert widget.render() is None
        assert api.calls == []

    async def test_error_renders_message(self) -> None:
        api = FakeApi()
        api.error = NetworkError("refused")
        widget = RecommendationWidget(api, STORE, FakeSdk())  # type: ignore[arg-type]

        await widget.show_for("5")
        view = widget.render()

        assert view is not None
        assert view.state is WidgetState.ERROR
        assert view.message is not None and "connection" in view.message
        assert widget.recommendations == []

    async def test_loading_view(self) -> None:
        api = FakeApi({"5": [_rec("9")]})
        api.gates["5"] = asyncio.Event()
        widget = RecommendationWidget(api, STORE, FakeSdk())  # type: ignore[arg-type]

        task = asyncio.create_task(widget.show_for("5"))
        await asyncio.sleep(0)
        view = widget.render()
        assert view is not None and view.state is WidgetState.LOADING

        api.gates["5"].set()
        await task
        assert widget.state is WidgetState.SUCCESS

    async def test_missing_store_id_does_nothing(self) -> None:
        api = FakeApi({"5": [_rec("9")]})
        widget = RecommendationWidget(api, None, FakeSdk())  # type: ignore[arg-type]

        await widget.show_for("5")

        assert api.calls == []
        assert widget.state is WidgetState.IDLE

    def test_format_price(self) -> None:
        assert format_price(12.5) == "$12.50"
        assert format_price(0) is None
        assert format_price(None) is None


# ---------------------------------------------------------------------------
# Stale responses
# ---------------------------------------------------------------------------


class TestStaleResponses:
    async def test_older_fetch_is_dropped(self) -> None:
        """A slow response for product 1 never overwrites product 2's."""
        api = FakeApi({"1": [_rec("11")], "2": [_rec("22")]})
        api.gates["1"] = asyncio.Event()
        widget = RecommendationWidget(api, STORE, FakeSdk())  # type: ignore[arg-type]

        slow = asyncio.create_task(widget.show_for("1"))
        await asyncio.sleep(0)
        await widget.show_for("2")
        api.gates["1"].set()
        await slow

        assert widget.product_id == "2"
        assert [r.ecwid_product_id for r in widget.recommendations] == ["22"]

    async def test_reset_drops_inflight_fetch(self) -> None:
        api = FakeApi({"1": [_rec("11")]})
        api.gates["1"] = asyncio.Event()
        widget = RecommendationWidget(api, STORE, FakeSdk())  # type: ignore[arg-type]

        pending = asyncio.create_task(widget.show_for("1"))
        await asyncio.sleep(0)
        widget.reset()
        api.gates["1"].set()
        await pending

        assert widget.state is WidgetState.IDLE
        assert widget.recommendations == []

    async def test_stale_error_is_dropped(self) -> None:
        api = FakeApi()
        api.gates["1"] = asyncio.Event()
        api.error = NetworkError("refused")
        widget = RecommendationWidget(api, STORE, FakeSdk())  # type: ignore[arg-type]

        pending = asyncio.create_task(widget.show_for("1"))
        await asyncio.sleep(0)
        widget.reset()
        api.gates["1"].set()
        await pending

        assert widget.state is WidgetState.IDLE
        assert widget.error is None


# ---------------------------------------------------------------------------
# Storefront navigation
# ---------------------------------------------------------------------------


class TestPageListener:
    async def test_product_page_fetches(self) -> None:
        api = FakeApi({"5": [_rec("9")]})
        sdk = FakeSdk()
        widget = RecommendationWidget(api, STORE, sdk, kind="cross_sell")  # type: ignore[arg-type]

        await widget.start()
        assert sdk.ready_calls == 1
        assert len(sdk.listeners) == 1

        sdk.fire({"type": "PRODUCT", "productId": 5})
        await asyncio.gather(*list(widget._tasks))

        assert api.calls == [(STORE, "5", "cross_sell")]
        assert widget.state is WidgetState.SUCCESS

    async def test_other_page_resets(self) -> None:
        api = FakeApi({"5": [_rec("9")]})
        sdk = FakeSdk()
        widget = RecommendationWidget(api, STORE, sdk)  # type: ignore[arg-type]
        await widget.start()
        await widget.show_for("5")

        sdk.fire({"type": "CATEGORY", "categoryId": 3})

        assert widget.state is WidgetState.IDLE
        assert widget.render() is None

    async def test_explicit_product_skips_listener(self) -> None:
        api = FakeApi({"5": [_rec("9")]})
        sdk = FakeSdk()
        widget = RecommendationWidget(api, STORE, sdk)  # type: ignore[arg-type]

        await widget.start("5")

        assert sdk.listeners == []
        assert widget.state is WidgetState.SUCCESS

    async def test_ready_fallback_without_sdk(self) -> None:
        sleep = AsyncMock()
        widget = RecommendationWidget(FakeApi({"5": [_rec("9")]}), STORE, None, sleep=sleep)  # type: ignore[arg-type]

        await widget.start("5")

        sleep.assert_awaited_once_with(SDK_READY_FALLBACK)
        assert widget.state is WidgetState.SUCCESS


# ---------------------------------------------------------------------------
# Item actions
# ---------------------------------------------------------------------------


class TestItemActions:
    async def test_open_product_navigates_to_hash(self) -> None:
        visited: list[str] = []
        sdk = SdkWithOpenPage()
        widget = RecommendationWidget(FakeApi(), STORE, sdk, navigate=visited.append)  # type: ignore[arg-type]

        assert widget.open_product("9") == "#product=9"
        assert visited == ["#product=9"]
        assert sdk.opened == []

    async def test_open_product_falls_back_to_sdk(self) -> None:
        sdk = SdkWithOpenPage()
        widget = RecommendationWidget(FakeApi(), STORE, sdk)  # type: ignore[arg-type]

        widget.open_product("9")

        assert sdk.opened == [("product", {"id": "9"})]

    async def test_add_to_cart(self) -> None:
        cart = FakeCart()
        widget = RecommendationWidget(FakeApi(), STORE, FakeSdk(cart=cart))  # type: ignore[arg-type]

        assert widget.add_to_cart("9", 2) is True
        assert cart.added == [("9", 2)]

    @pytest.mark.parametrize("sdk", [None, FakeSdk()])
    async def test_add_to_cart_without_cart_is_noop(self, sdk: FakeSdk | None) -> None:
        api = FakeApi()
        widget = RecommendationWidget(api, STORE, sdk)  # type: ignore[arg-type]

        assert widget.add_to_cart("9") is False
        await _drain(widget)
        assert api.events == []


# ---------------------------------------------------------------------------
# Category pages
# ---------------------------------------------------------------------------


class TestCategoryPages:
    async def test_category_page_fetches_when_enabled(self) -> None:
        api = FakeApi()
        api.category_results["3"] = [_rec("30")]
        sdk = FakeSdk()
        widget = RecommendationWidget(api, STORE, sdk, category_pages=True)  # type: ignore[arg-type]
        await widget.start()

        sdk.fire({"type": "CATEGORY", "categoryId": 3})
        await _drain(widget)

        assert api.calls == [(STORE, "3", "category")]
        assert widget.category_id == "3"
        assert widget.product_id is None
        view = widget.render()
        assert view is not None
        assert [i.ecwid_product_id for i in view.items] == ["30"]

    async def test_product_page_clears_category(self) -> None:
        api = FakeApi({"5": [_rec("9")]})
        api.category_results["3"] = [_rec("30")]
        widget = RecommendationWidget(api, STORE, FakeSdk(), category_pages=True)  # type: ignore[arg-type]

        await widget.show_for_category("3")
        await widget.show_for("5")

        assert widget.category_id is None
        assert [r.ecwid_product_id for r in widget.recommendations] == ["9"]


# ---------------------------------------------------------------------------
# Analytics
# ---------------------------------------------------------------------------


class TestAnalyticsEvents:
    async def test_view_click_and_cart_are_recorded(self) -> None:
        api = FakeApi({"5": [_rec("9"), _rec("10")]})
        cart = FakeCart()
        widget = RecommendationWidget(
            api,  # type: ignore[arg-type]
            STORE,
            FakeSdk(cart=cart),
            navigate=lambda _: None,
        )

        await widget.show_for("5")
        widget.open_product("9")
        widget.add_to_cart("10", 3)
        await _drain(widget)

        assert api.events == [
            (STORE, "widget_view", {"type": "upsell", "sourceProductId": "5", "count": 2}),
            (
                STORE,
                "recommendation_click",
                {"type": "upsell", "sourceProductId": "5", "productId": "9"},
            ),
            (
                STORE,
                "add_to_cart",
                {"type": "upsell", "sourceProductId": "5", "productId": "10", "quantity": 3},
            ),
        ]

    async def test_hidden_widget_records_no_view(self) -> None:
        api = FakeApi({"5": [], "6": [_rec("9")]})
        native = RecommendationWidget(api, STORE, FakeSdk(native=True))  # type: ignore[arg-type]
        empty = RecommendationWidget(api, STORE, FakeSdk())  # type: ignore[arg-type]

        await native.show_for("6")
        await empty.show_for("5")
        await _drain(native)
        await _drain(empty)

        assert api.events == []

    async def test_tracking_disabled(self) -> None:
        api = FakeApi({"5": [_rec("9")]})
        widget = RecommendationWidget(api, STORE, FakeSdk(), track=False)  # type: ignore[arg-type]

        await widget.show_for("5")
        widget.open_product("9")
        await _drain(widget)

        assert api.events == []

    async def test_failed_event_is_logged_not_raised(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        api = FakeApi({"5": [_rec("9")]})
        api.event_error = NetworkError("refused")
        widget = RecommendationWidget(api, STORE, FakeSdk())  # type: ignore[arg-type]

        with caplog.at_level("WARNING", logger="recs_api.addon.widget"):
            await widget.show_for("5")
            await _drain(widget)

        assert widget.state is WidgetState.SUCCESS
        assert "Recording widget_view event failed" in caplog.text
