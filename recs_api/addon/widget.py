"""Storefront recommendation widget: fetch, render decision and item actions."""

import asyncio
import enum
import logging
from collections.abc import Awaitable, Callable, Coroutine, Mapping
from dataclasses import dataclass, field
from typing import Any, Literal, Protocol

from recs_api.addon.api_client import AddonApiClient
from recs_api.addon.errors import AddonError, user_message
from recs_api.schemas.ecwid import ProductRecommendation

logger = logging.getLogger(__name__)

WIDGET_TITLE = "You might also like"
SDK_READY_FALLBACK = 1.0
PRODUCT_PAGE = "PRODUCT"
CATEGORY_PAGE = "CATEGORY"

VIEW_EVENT = "widget_view"
CLICK_EVENT = "recommendation_click"
ADD_TO_CART_EVENT = "add_to_cart"

PageCallback = Callable[[Mapping[str, Any]], None]


class Cart(Protocol):
    def add_product(self, product_id: str, quantity: int = 1) -> None: ...


class StorefrontSdk(Protocol):
    """The parts of the Ecwid storefront JS API the widget relies on.

    Implementations may also expose ``cart`` (a ``Cart``) and
    ``open_page(page, params)``; both are optional. ``open_page`` is only
    used when the widget has no ``navigate`` callback.
    """

    async def ready(self) -> None: ...

    def on_page_loaded(self, callback: PageCallback) -> None: ...

    def has_native_widget(self) -> bool: ...


class WidgetState(str, enum.Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class RenderedItem:
    ecwid_product_id: str
    name: str
    image_url: str | None
    price: str | None
    sku: str | None


@dataclass(frozen=True)
class WidgetView:
    """What the widget shows. ``None`` from ``render()`` means nothing at all."""

    state: WidgetState
    title: str = WIDGET_TITLE
    items: list[RenderedItem] = field(default_factory=list)
    message: str | None = None


def format_price(price: float | None) -> str | None:
    if not price:
        return None
    return f"${price:.2f}"


class RecommendationWidget:
    """Recommendations for the product currently shown on the storefront.

    Each fetch takes a generation number; a response that arrives after a
    newer fetch started (or after ``reset``) is dropped.
    """

    def __init__(
        self,
        api: AddonApiClient,
        store_id: str | None,
        sdk: StorefrontSdk | None = None,
        *,
        enabled: bool = True,
        kind: Literal["upsell", "cross_sell"] = "upsell",
        category_pages: bool = False,
        track: bool = True,
        navigate: Callable[[str], None] | None = None,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> None:
        self.api = api
        self.store_id = store_id
        self.sdk = sdk
        self.enabled = enabled
        self.kind = kind
        self.category_pages = category_pages
        self.track = track
        self.navigate = navigate
        self.sleep = sleep

        self.state = WidgetState.IDLE
        self.product_id: str | None = None
        self.category_id: str | None = None
        self.recommendations: list[ProductRecommendation] = []
        self.error: str | None = None
        self._generation = 0
        self._tasks: set[asyncio.Task[Any]] = set()

    async def wait_until_ready(self) -> None:
        if self.sdk is None:
            await self.sleep(SDK_READY_FALLBACK)
            return
        await self.sdk.ready()

    async def start(self, product_id: str | None = None) -> None:
        """Show recommendations for ``product_id`` or follow storefront navigation."""
        if not self.enabled:
            return
        await self.wait_until_ready()
        if product_id:
            await self.show_for(product_id)
        elif self.sdk is not None:
            self.sdk.on_page_loaded(self._on_page_loaded)

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _on_page_loaded(self, page: Mapping[str, Any]) -> None:
        page_type = page.get("type")
        product_id = page.get("productId")
        category_id = page.get("categoryId")
        if page_type == PRODUCT_PAGE and product_id:
            self._spawn(self.show_for(str(product_id)))
        elif page_type == CATEGORY_PAGE and category_id and self.category_pages:
            self._spawn(self.show_for_category(str(category_id)))
        else:
            self.reset()

    def reset(self) -> None:
        self._generation += 1
        self.state = WidgetState.IDLE
        self.product_id = None
        self.category_id = None
        self.recommendations = []
        self.error = None

    async def show_for(self, product_id: str) -> None:
        if not self.store_id or not product_id:
            return
        self.category_id = None
        store_id = self.store_id
        await self._load(
            product_id,
            lambda: self.api.get_recommendations(store_id, product_id, self.kind),
        )

    async def show_for_category(self, category_id: str) -> None:
        """Category-page block: the merchant-curated list for ``category_id``."""
        if not self.store_id or not category_id:
            return
        self.category_id = category_id
        store_id = self.store_id
        await self._load(
            None,
            lambda: self.api.get_category_recommendations(store_id, category_id),
        )

    async def _load(
        self,
        product_id: str | None,
        fetch: Callable[[], Awaitable[list[ProductRecommendation]]],
    ) -> None:
        self._generation += 1
        generation = self._generation
        self.product_id = product_id
        self.state = WidgetState.LOADING
        self.error = None

        try:
            items = await fetch()
        except AddonError as exc:
            if generation != self._generation:
                return
            logger.warning("Fetching recommendations failed: %s", exc.message)
            self.recommendations = []
            self.error = user_message(exc)
            self.state = WidgetState.ERROR
            return

        if generation != self._generation:
            logger.debug("Dropping stale recommendations for %s", product_id or self.category_id)
            return
        self.recommendations = items
        self.state = WidgetState.SUCCESS
        if self.render() is not None:
            self._record(VIEW_EVENT, {"count": len(items)})

    def _record(self, event_type: str, data: dict[str, Any]) -> None:
        """Send an analytics event in the background; failures are only logged."""
        if not self.track or not self.store_id:
            return
        context: dict[str, Any] = {"type": self.kind}
        if self.product_id:
            context["sourceProductId"] = self.product_id
        if self.category_id:
            context["categoryId"] = self.category_id
        self._spawn(self._send_event(self.store_id, event_type, {**context, **data}))

    async def _send_event(self, store_id: str, event_type: str, data: dict[str, Any]) -> None:
        try:
            await self.api.record_event(store_id, event_type, data)
        except AddonError as exc:
            logger.warning("Recording %s event failed: %s", event_type, exc.message)

    def render(self) -> WidgetView | None:
        if not self.enabled:
            return None
        if self.sdk is not None and self.sdk.has_native_widget():
            return None
        if self.state is WidgetState.IDLE:
            return None
        if self.state is WidgetState.LOADING:
            return WidgetView(state=self.state, message="Loading recommendations...")
        if self.state is WidgetState.ERROR:
            return WidgetView(state=self.state, message=self.error)
        if not self.recommendations:
            return None
        return WidgetView(
            state=self.state,
            items=[
                RenderedItem(
                    ecwid_product_id=r.ecwid_product_id,
                    name=r.name,
                    image_url=r.image_url,
                    price=format_price(r.price),
                    sku=r.sku,
                )
                for r in self.recommendations
            ],
        )

    def open_product(self, ecwid_product_id: str) -> str:
        """Go to the product page via its ``#product=<id>`` hash; returns that URL.

        The SDK's ``open_page`` is a fallback for hosts that gave no
        ``navigate`` callback.
        """
        target = f"#product={ecwid_product_id}"
        open_page = getattr(self.sdk, "open_page", None)
        if self.navigate is not None:
            self.navigate(target)
        elif callable(open_page):
            open_page("product", {"id": ecwid_product_id})
        self._record(CLICK_EVENT, {"productId": ecwid_product_id})
        return target

    def add_to_cart(self, ecwid_product_id: str, quantity: int = 1) -> bool:
        """Hand the product to the storefront cart. No cart, no-op."""
        cart: Cart | None = getattr(self.sdk, "cart", None)
        if cart is None:
            return False
        cart.add_product(ecwid_product_id, quantity)
        self._record(ADD_TO_CART_EVENT, {"productId": ecwid_product_id, "quantity": quantity})
        return True
