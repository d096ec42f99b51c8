"""Admin-side state for the recommendation settings screen."""

import enum
import logging

from recs_api.addon.api_client import AddonApiClient
from recs_api.addon.errors import AddonError, MissingStoreId, Unauthenticated, user_message
from recs_api.schemas.recommendation_settings import RecommendationSettings

logger = logging.getLogger(__name__)


class SettingsStatus(str, enum.Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    SAVING = "saving"
    NEEDS_AUTHORIZATION = "needs_authorization"
    ERROR = "error"


def toggle_category(settings: RecommendationSettings, category: str) -> RecommendationSettings:
    """Flip a category flag; enabling it switches all of its locations on."""
    return settings.toggle_category(category)


def toggle_location(
    settings: RecommendationSettings, category: str, location: str
) -> RecommendationSettings:
    """Flip one location; the category flag is never touched."""
    return settings.toggle_location(category, location)


class SettingsStateModel:
    """Settings for one store plus the load/save status shown to the merchant.

    Failures never raise out of ``load``/``save``: they set ``status`` and a
    ``message`` and wait for the merchant to retry.
    """

    def __init__(self, api: AddonApiClient) -> None:
        self.api = api
        self.settings = RecommendationSettings()
        self.status = SettingsStatus.IDLE
        self.message: str | None = None
        self.dirty = False
        self._generation = 0
        # Bumped on every local edit; responses to requests sent before an
        # edit must not overwrite it
        self._edits = 0

    def toggle_category(self, category: str) -> RecommendationSettings:
        self.settings = toggle_category(self.settings, category)
        self.dirty = True
        self._edits += 1
        return self.settings

    def toggle_location(self, category: str, location: str) -> RecommendationSettings:
        self.settings = toggle_location(self.settings, category, location)
        self.dirty = True
        self._edits += 1
        return self.settings

    def _fail(self, exc: AddonError) -> None:
        if isinstance(exc, Unauthenticated):
            self.status = SettingsStatus.NEEDS_AUTHORIZATION
        else:
            self.status = SettingsStatus.ERROR
        self.message = user_message(exc)

    async def load(self, store_id: str | None) -> SettingsStatus:
        """Replace local settings with the stored ones."""
        self._generation += 1
        generation = self._generation
        edits = self._edits
        self.status = SettingsStatus.LOADING
        self.message = None

        try:
            if not store_id:
                raise MissingStoreId()
            settings = await self.api.get_settings(store_id)
        except AddonError as exc:
            if generation == self._generation:
                logger.info("Loading settings failed: %s", exc.message)
                self._fail(exc)
            return self.status

        if generation == self._generation:
            if edits == self._edits:
                self.settings = settings
                self.dirty = False
            self.status = SettingsStatus.READY
        return self.status

    async def save(self, store_id: str | None) -> bool:
        """Send the whole settings object. Last writer wins.

        Edits made while the request is in flight are kept and stay dirty.
        """
        self._generation += 1
        generation = self._generation
        edits = self._edits
        self.status = SettingsStatus.SAVING
        self.message = None

        try:
            if not store_id:
                raise MissingStoreId()
            saved = await self.api.save_settings(store_id, self.settings)
        except AddonError as exc:
            if generation == self._generation:
                logger.warning("Saving settings failed: %s", exc.message)
                self._fail(exc)
            return False

        if generation == self._generation:
            self.status = SettingsStatus.READY
            if edits == self._edits:
                self.settings = saved
                self.dirty = False
                self.message = "Settings saved"
            else:
                logger.debug("Settings changed while saving, keeping local edits")
                self.message = "Settings saved. You have newer unsaved changes."
        return True
