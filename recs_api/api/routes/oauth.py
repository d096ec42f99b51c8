"""Ecwid OAuth endpoints: consent URL, callback and token status."""

import logging
from urllib.parse import urlencode

import httpx
from fastapi import APIRouter, Query
from fastapi.responses import RedirectResponse

from recs_api.core.config import settings
from recs_api.core.deps import DBSession, RedisClient
from recs_api.integrations.ecwid.client import EcwidAuthError, EcwidClient, store_name_from_profile
from recs_api.integrations.ecwid.oauth import build_auth_url, exchange_code_for_token
from recs_api.schemas.ecwid import AuthUrlResponse, OAuthStatusResponse, StoreProfile
from recs_api.services.oauth_service import OAuthService
from recs_api.services.store_service import StoreService
from recs_api.workers.tasks.ecwid import sync_store

logger = logging.getLogger(__name__)

router = APIRouter()


def _redirect(**params: str) -> RedirectResponse:
    """Send the merchant back to the admin app with the outcome in the query string."""
    return RedirectResponse(f"{settings.frontend_url}/?{urlencode(params)}")


@router.get("/auth/{store_id}", response_model=AuthUrlResponse)
async def get_auth_url(
    store_id: str,
    db: DBSession,
    r: RedisClient,
) -> AuthUrlResponse:
    """Build the Ecwid consent URL for a store and remember its one-time state."""
    state = await OAuthService(db, r).create_state(store_id)
    return AuthUrlResponse(auth_url=build_auth_url(store_id, state))


@router.get("/callback")
async def callback(
    db: DBSession,
    r: RedisClient,
    code: str | None = Query(None),
    state: str | None = Query(None),
    store_id: str | None = Query(None),
    error: str | None = Query(None),
) -> RedirectResponse:
    """Handle the Ecwid OAuth callback.

    Always redirects to the admin app: ``?success=oauth_complete`` on success,
    ``?error=<message>`` otherwise.
    """
    if error:
        return _redirect(error=error)
    if not code or not state:
        return _redirect(error="Missing authorization code")

    expected_store = await OAuthService(db, r).consume_state(state)
    if not expected_store:
        return _redirect(error="Invalid or expired OAuth state")
    if store_id and store_id != expected_store:
        return _redirect(error="Store mismatch")

    try:
        grant = await exchange_code_for_token(code)
    except httpx.HTTPError as exc:
        logger.warning("Token exchange failed: %s", exc, extra={"store_id": expected_store})
        return _redirect(error="Failed to exchange code for token")

    # Profile is only used for the display name
    profile = None
    try:
        profile = await EcwidClient(expected_store, grant.access_token).get_profile()
    except (EcwidAuthError, httpx.HTTPError) as exc:
        logger.warning("Profile fetch failed: %s", exc, extra={"store_id": expected_store})

    await StoreService(db).save_tokens(
        expected_store, grant, store_name_from_profile(profile, expected_store)
    )

    sync_store.delay(expected_store)
    logger.info("OAuth completed", extra={"store_id": expected_store})

    return _redirect(success="oauth_complete")


@router.get("/status/{store_id}", response_model=OAuthStatusResponse)
async def oauth_status(
    store_id: str,
    db: DBSession,
    r: RedisClient,
) -> OAuthStatusResponse:
    """Report whether the store's token still works with Ecwid.

    Unknown stores are simply not authenticated yet.
    """
    store = await StoreService(db).get_by_store_id(store_id)
    if store is None:
        return OAuthStatusResponse(authenticated=False, error="OAuth setup required")

    authenticated = await OAuthService(db, r).verify_store(store)
    return OAuthStatusResponse(
        authenticated=authenticated,
        store=StoreProfile(store_id=store.store_id, store_name=store.store_name),
        error=None if authenticated else "OAuth setup required",
    )
