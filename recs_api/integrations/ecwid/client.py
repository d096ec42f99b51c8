"""Ecwid REST API v3 client using httpx."""

import logging
from typing import Any

import httpx

from recs_api.core.config import settings

logger = logging.getLogger(__name__)


class EcwidAuthError(Exception):
    """Ecwid rejected the store's access token (HTTP 401/403)."""

    def __init__(self, store_id: str, status_code: int) -> None:
        super().__init__(f"Ecwid rejected token for store {store_id} (HTTP {status_code})")
        self.store_id = store_id
        self.status_code = status_code


class EcwidClient:
    """Async client for one store's Ecwid REST API."""

    def __init__(self, store_id: str, access_token: str, page_size: int | None = None) -> None:
        self.store_id = store_id
        self.base_url = f"{settings.ecwid_api_base}/{store_id}"
        self.headers = {
            "Authorization": f"Bearer {access_token}",
            "Accept": "application/json",
        }
        self.page_size = page_size or settings.sync_page_size

    def _check_auth(self, response: httpx.Response) -> None:
        if response.status_code in (401, 403):
            raise EcwidAuthError(self.store_id, response.status_code)
        response.raise_for_status()

    async def get_profile(self) -> dict[str, Any]:
        """Fetch the store profile.

        Raises:
            EcwidAuthError: If the token is invalid or revoked.
            httpx.HTTPStatusError: On any other non-2xx response.
        """
        async with httpx.AsyncClient(headers=self.headers, timeout=30.0) as client:
            response = await client.get(f"{self.base_url}/profile")
            self._check_auth(response)
            profile: dict[str, Any] = response.json()
            return profile

    async def get_all_products(self) -> list[dict[str, Any]]:
        """Fetch every product in the catalog (offset pagination)."""
        return await self._get_all("products")

    async def get_all_orders(self) -> list[dict[str, Any]]:
        """Fetch every order in the store (offset pagination)."""
        return await self._get_all("orders")

    async def _get_all(self, resource: str) -> list[dict[str, Any]]:
        items: list[dict[str, Any]] = []
        offset = 0

        async with httpx.AsyncClient(headers=self.headers, timeout=30.0) as client:
            while True:
                response = await client.get(
                    f"{self.base_url}/{resource}",
                    params={"limit": self.page_size, "offset": offset},
                )
                self._check_auth(response)
                data = response.json()

                page = data.get("items", [])
                items.extend(page)
                offset += len(page)

                total = data.get("total", 0)
                if not page or offset >= total:
                    break

        logger.debug(
            "Fetched %d %s from Ecwid",
            len(items),
            resource,
            extra={"store_id": self.store_id},
        )
        return items


def store_name_from_profile(profile: dict[str, Any] | None, store_id: str) -> str:
    """Best display name for a store, falling back to ``Store <id>``."""
    if profile:
        name = (profile.get("generalInfo") or {}).get("storeName") or profile.get("name")
        if name:
            return str(name)
    return f"Store {store_id}"
