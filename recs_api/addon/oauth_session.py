"""Start Ecwid authorization and read its outcome back from the redirect URL."""

import logging
from dataclasses import dataclass
from typing import Protocol
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from recs_api.addon.api_client import AddonApiClient
from recs_api.addon.errors import MissingStoreId
from recs_api.addon.store_detection import KeyValueStorage
from recs_api.schemas.ecwid import OAuthStatusResponse

logger = logging.getLogger(__name__)

PENDING_STORE_KEY = "oauth_pending_store_id"
OAUTH_COMPLETE = "oauth_complete"
CALLBACK_PARAMS = ("success", "error")


class Navigator(Protocol):
    """Full-page navigation (``window.location.href = url``)."""

    def navigate(self, url: str) -> None: ...


@dataclass(frozen=True)
class CallbackOutcome:
    """What the OAuth redirect reported, and the URL to show afterwards."""

    success: bool
    error: str | None
    store_id: str | None
    clean_url: str


def strip_callback_params(url: str) -> str:
    parts = urlsplit(url)
    query = [
        (k, v)
        for k, v in parse_qsl(parts.query, keep_blank_values=True)
        if k not in CALLBACK_PARAMS
    ]
    return urlunsplit(parts._replace(query=urlencode(query)))


class OAuthSessionManager:
    """Authorization gate for the admin app."""

    def __init__(
        self,
        api: AddonApiClient,
        storage: KeyValueStorage,
        navigator: Navigator | None = None,
    ) -> None:
        self.api = api
        self.storage = storage
        self.navigator = navigator

    async def get_authorization_url(self, store_id: str | None) -> str:
        if not store_id:
            raise MissingStoreId()
        return await self.api.get_auth_url(store_id)

    async def begin_authorization(self, store_id: str | None) -> str:
        """Fetch the consent URL and leave the page for it.

        The pending store id is written before navigating away since nothing
        in memory survives the redirect.
        """
        if not store_id:
            raise MissingStoreId()
        url = await self.api.get_auth_url(store_id)
        self.storage.set_item(PENDING_STORE_KEY, store_id)
        logger.info("Redirecting store %s to Ecwid authorization", store_id)
        if self.navigator is not None:
            self.navigator.navigate(url)
        return url

    async def get_status(self, store_id: str | None) -> OAuthStatusResponse:
        """Current authorization state.

        Raises:
            MissingStoreId: If no store id is given.
            Unauthenticated: On a 401 carrying the OAuth setup marker.
            NetworkError, BackendError: On any other failure.
        """
        if not store_id:
            raise MissingStoreId()
        return await self.api.get_oauth_status(store_id)

    def pending_store_id(self) -> str | None:
        return self.storage.get_item(PENDING_STORE_KEY)

    def consume_callback(self, url: str) -> CallbackOutcome | None:
        """Read ``success``/``error`` from the redirect URL, once.

        Returns ``None`` when the URL carries neither parameter. Otherwise the
        pending intent is cleared and the outcome includes the URL with the
        callback parameters removed, so a reload does not replay it.
        """
        params = dict(parse_qsl(urlsplit(url).query, keep_blank_values=True))
        if not any(name in params for name in CALLBACK_PARAMS):
            return None

        store_id = self.pending_store_id()
        self.storage.remove_item(PENDING_STORE_KEY)

        error = params.get("error") or None
        success = params.get("success") == OAUTH_COMPLETE and error is None
        if error:
            logger.warning("OAuth callback reported an error: %s", error)
        return CallbackOutcome(
            success=success,
            error=error,
            store_id=store_id,
            clean_url=strip_callback_params(url),
        )
