"""Resolve which Ecwid store the current admin or storefront session belongs to.

Sources are tried in a fixed order and the first non-empty value that is not
the ``YOUR_STORE_ID`` placeholder wins:

1. ``data-ecwid-store-id`` attribute on the embed script tag
2. the storefront SDK global's ``storeId``
3. URL query parameters ``storeId``, ``ecwid_store_id``, ``store_id``
4. the store id persisted by a previous session
5. the referrer's query parameters (embedded only)
6. the frame's own ``src`` query parameters (embedded only)
7. a request/response exchange with the parent frame (embedded only)

Nothing resolving is not an error: callers show the manual store id form.
"""

import asyncio
import json
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol
from urllib.parse import parse_qs, urlsplit

logger = logging.getLogger(__name__)

PLACEHOLDER_STORE_ID = "YOUR_STORE_ID"
STORE_ID_PARAMS = ("storeId", "ecwid_store_id", "store_id")

# Persisted config keys
STORE_ID_KEY = "ecwid_store_id"
STORE_CONFIG_KEY = "ecwid_store_config"
STORE_CONFIGURED_KEY = "ecwid_store_configured"

REQUEST_STORE_ID = "REQUEST_STORE_ID"
STORE_ID_MESSAGE = "STORE_ID"
PARENT_FRAME_TIMEOUT = 1.0


class KeyValueStorage(Protocol):
    """The subset of ``localStorage`` the add-on uses."""

    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class MemoryStorage:
    """Dict-backed ``KeyValueStorage``."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self.data: dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> str | None:
        return self.data.get(key)

    def set_item(self, key: str, value: str) -> None:
        self.data[key] = value

    def remove_item(self, key: str) -> None:
        self.data.pop(key, None)


@dataclass(frozen=True)
class FrameMessage:
    """A message received from the parent frame."""

    origin: str
    data: dict[str, Any]


class ParentFrameChannel(Protocol):
    """Messaging with the frame that embeds the admin app.

    ``request_store_id`` posts ``{"type": "REQUEST_STORE_ID"}`` to each of
    ``target_origins`` and returns the first reply, or ``None``.
    """

    async def request_store_id(self, target_origins: Sequence[str]) -> FrameMessage | None: ...


@dataclass(frozen=True)
class BrowserEnvironment:
    """Snapshot of the browser context the resolver reads from."""

    url: str = ""
    script_store_id: str | None = None
    sdk_store_id: str | int | None = None
    referrer: str = ""
    frame_src: str | None = None
    embedded: bool = False


def _clean(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    if not text or text == PLACEHOLDER_STORE_ID:
        return None
    return text


def store_id_from_url(url: str | None) -> str | None:
    """First store id query parameter present in ``url``, by name priority."""
    if not url:
        return None
    try:
        params = parse_qs(urlsplit(url).query)
    except ValueError:
        logger.debug("Could not parse URL %r", url)
        return None
    for name in STORE_ID_PARAMS:
        for value in params.get(name, []):
            if cleaned := _clean(value):
                return cleaned
    return None


@dataclass
class StoreIdResolver:
    """Deterministic store id lookup over a ``BrowserEnvironment``."""

    env: BrowserEnvironment
    storage: KeyValueStorage | None = None
    channel: ParentFrameChannel | None = None
    allowed_origins: Sequence[str] = field(default_factory=tuple)
    timeout: float = PARENT_FRAME_TIMEOUT

    def _from_script(self) -> str | None:
        return _clean(self.env.script_store_id)

    def _from_sdk(self) -> str | None:
        return _clean(self.env.sdk_store_id)

    def _from_url(self) -> str | None:
        return store_id_from_url(self.env.url)

    def _from_storage(self) -> str | None:
        if self.storage is None:
            return None
        return _clean(self.storage.get_item(STORE_ID_KEY))

    def _from_referrer(self) -> str | None:
        return store_id_from_url(self.env.referrer) if self.env.embedded else None

    def _from_frame(self) -> str | None:
        return store_id_from_url(self.env.frame_src) if self.env.embedded else None

    def _sync_methods(self) -> list[tuple[str, Callable[[], str | None]]]:
        return [
            ("script tag", self._from_script),
            ("sdk global", self._from_sdk),
            ("url params", self._from_url),
            ("local storage", self._from_storage),
            ("referrer", self._from_referrer),
            ("frame src", self._from_frame),
        ]

    def resolve_sync(self) -> str | None:
        """Try every source that needs no round trip (methods 1 to 6)."""
        for name, method in self._sync_methods():
            if store_id := method():
                logger.debug("Store id resolved via %s", name)
                return store_id
        return None

    async def _from_parent_frame(self) -> str | None:
        if not self.env.embedded or self.channel is None:
            return None
        if not self.allowed_origins:
            logger.debug("No allowed parent origins, skipping parent frame request")
            return None

        try:
            message = await asyncio.wait_for(
                self.channel.request_store_id(list(self.allowed_origins)),
                timeout=self.timeout,
            )
        except TimeoutError:
            logger.debug("Parent frame did not answer within %.1fs", self.timeout)
            return None

        if message is None:
            return None
        if message.origin not in self.allowed_origins:
            logger.warning("Ignoring store id from untrusted origin %s", message.origin)
            return None
        if message.data.get("type") != STORE_ID_MESSAGE:
            return None
        return _clean(message.data.get("storeId"))

    async def resolve(self) -> str | None:
        """Try all seven sources, awaiting the parent frame as the last resort."""
        store_id = self.resolve_sync()
        if store_id:
            return store_id
        store_id = await self._from_parent_frame()
        if store_id:
            logger.debug("Store id resolved via parent frame")
        return store_id


def auto_configure(storage: KeyValueStorage, config: dict[str, Any]) -> None:
    """Persist a store config so later sessions resolve it from storage."""
    store_id = _clean(config.get("storeId"))
    if store_id is None:
        raise ValueError("Store config has no storeId")
    storage.set_item(STORE_CONFIG_KEY, json.dumps(config))
    storage.set_item(STORE_ID_KEY, store_id)
    storage.set_item(STORE_CONFIGURED_KEY, "true")


def get_stored_config(storage: KeyValueStorage) -> dict[str, Any] | None:
    raw = storage.get_item(STORE_CONFIG_KEY)
    if not raw:
        return None
    try:
        config = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Stored store config is not valid JSON")
        return None
    return config if isinstance(config, dict) else None


def clear_stored_config(storage: KeyValueStorage) -> None:
    for key in (STORE_CONFIG_KEY, STORE_ID_KEY, STORE_CONFIGURED_KEY):
        storage.remove_item(key)
