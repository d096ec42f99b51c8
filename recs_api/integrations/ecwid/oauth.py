"""Ecwid OAuth helpers for building the consent URL and exchanging tokens."""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any
from urllib.parse import urlencode

import httpx

from recs_api.core.config import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenGrant:
    """Tokens returned by the Ecwid token endpoint."""

    access_token: str
    refresh_token: str | None = None
    scope: str | None = None
    expires_at: datetime | None = None

    @classmethod
    def from_response(cls, data: dict[str, Any]) -> "TokenGrant":
        expires_in = data.get("expires_in")
        expires_at = None
        if expires_in:
            expires_at = datetime.now(UTC) + timedelta(seconds=int(expires_in))
        return cls(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token"),
            scope=data.get("scope"),
            expires_at=expires_at,
        )


def build_auth_url(store_id: str, state: str) -> str:
    """Build the Ecwid OAuth authorization URL.

    Args:
        store_id: The Ecwid store the merchant is installing into.
        state: Random nonce echoed back on the callback (CSRF protection).

    Returns:
        The full authorization URL to redirect the merchant to.
    """
    params = urlencode({
        "response_type": "code",
        "client_id": settings.ecwid_client_id,
        "redirect_uri": settings.ecwid_redirect_uri,
        "scope": settings.ecwid_scopes,
        "store_id": store_id,
        "state": state,
    })
    return f"{settings.ecwid_oauth_url}/authorize?{params}"


async def _request_token(form: dict[str, str]) -> TokenGrant:
    async with httpx.AsyncClient(timeout=30.0) as client:
        response = await client.post(f"{settings.ecwid_oauth_url}/token", data=form)
        response.raise_for_status()
        return TokenGrant.from_response(response.json())


async def exchange_code_for_token(code: str) -> TokenGrant:
    """Exchange the OAuth authorization code for store tokens.

    Args:
        code: The authorization code from the Ecwid callback.

    Returns:
        The granted tokens.

    Raises:
        httpx.HTTPStatusError: If the token exchange fails.
    """
    return await _request_token({
        "grant_type": "authorization_code",
        "client_id": settings.ecwid_client_id,
        "client_secret": settings.ecwid_client_secret,
        "code": code,
        "redirect_uri": settings.ecwid_redirect_uri,
    })


async def refresh_access_token(refresh_token: str) -> TokenGrant:
    """Trade a refresh token for a new access token.

    Raises:
        httpx.HTTPStatusError: If Ecwid rejects the refresh token.
    """
    logger.info("Refreshing Ecwid access token")
    grant = await _request_token({
        "grant_type": "refresh_token",
        "client_id": settings.ecwid_client_id,
        "client_secret": settings.ecwid_client_secret,
        "refresh_token": refresh_token,
    })
    if grant.refresh_token is None:
        # Ecwid may omit the refresh token when it is unchanged
        grant = TokenGrant(
            access_token=grant.access_token,
            refresh_token=refresh_token,
            scope=grant.scope,
            expires_at=grant.expires_at,
        )
    return grant
