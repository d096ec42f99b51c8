"""Recommendation display settings and their toggle rules.

A store has three recommendation categories, each with an enable flag and a
closed map of storefront locations::

    showUpsells          -> upsellLocations          {productPage, cartPage}
    showCrossSells       -> crossSellLocations       {cartPage, checkoutPage}
    showRecommendations  -> recommendationLocations  {categoryPage, productPage, thankYouPage}

Enabling a category (false -> true) switches every one of its locations on.
Disabling it keeps the location map as it was. Toggling a single location
never changes the category flag, even when that leaves every location off.
"""

from typing import Any, Self

from pydantic import ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from recs_api.schemas.common import ApiResponse, BaseSchema


class _LocationMap(BaseSchema):
    """Closed set of boolean location keys (unknown keys are dropped)."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        alias_generator=to_camel,
        extra="ignore",
    )

    @field_validator("*", mode="before")
    @classmethod
    def _coerce_bool(cls, value: Any) -> bool:
        return bool(value)

    def all_enabled(self) -> Self:
        return self.model_copy(update={name: True for name in type(self).model_fields})

    def field_for(self, location: str) -> str:
        """Resolve a wire name (``productPage``) or field name to the field name."""
        for name, info in type(self).model_fields.items():
            if location in (name, info.alias):
                return name
        raise ValueError(f"Unknown location {location!r} for {type(self).__name__}")


class UpsellLocations(_LocationMap):
    product_page: bool = False
    cart_page: bool = False


class CrossSellLocations(_LocationMap):
    cart_page: bool = False
    checkout_page: bool = False


class RecommendationLocations(_LocationMap):
    category_page: bool = False
    product_page: bool = False
    thank_you_page: bool = False


# Category flag -> its location map field
CATEGORY_LOCATIONS: dict[str, str] = {
    "show_upsells": "upsell_locations",
    "show_cross_sells": "cross_sell_locations",
    "show_recommendations": "recommendation_locations",
}


class RecommendationSettings(BaseSchema):
    """Per-store widget visibility settings (camelCase on the wire)."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        alias_generator=to_camel,
        extra="ignore",
    )

    show_upsells: bool = False
    show_cross_sells: bool = False
    show_recommendations: bool = False

    upsell_locations: UpsellLocations = Field(default_factory=UpsellLocations)
    cross_sell_locations: CrossSellLocations = Field(default_factory=CrossSellLocations)
    recommendation_locations: RecommendationLocations = Field(
        default_factory=RecommendationLocations
    )

    @field_validator("show_upsells", "show_cross_sells", "show_recommendations", mode="before")
    @classmethod
    def _coerce_flag(cls, value: Any) -> bool:
        return bool(value)

    @field_validator(
        "upsell_locations", "cross_sell_locations", "recommendation_locations", mode="before"
    )
    @classmethod
    def _coerce_locations(cls, value: Any) -> Any:
        # A missing or malformed map falls back to all-off
        return value if isinstance(value, dict | _LocationMap) else {}

    @staticmethod
    def flag_for(category: str) -> str:
        """Resolve ``showUpsells`` / ``show_upsells`` to the flag field name."""
        for name in CATEGORY_LOCATIONS:
            if category in (name, to_camel(name)):
                return name
        raise ValueError(f"Unknown recommendation category {category!r}")

    def locations_for(self, category: str) -> _LocationMap:
        return getattr(self, CATEGORY_LOCATIONS[self.flag_for(category)])

    def toggle_category(self, category: str) -> "RecommendationSettings":
        """Return a copy with the category flag flipped.

        Turning a category on resets all of its locations to on; turning it
        off leaves the location map untouched.
        """
        flag = self.flag_for(category)
        enabled = not getattr(self, flag)
        update: dict[str, Any] = {flag: enabled}
        if enabled:
            locations_field = CATEGORY_LOCATIONS[flag]
            update[locations_field] = getattr(self, locations_field).all_enabled()
        return self.model_copy(update=update, deep=True)

    def toggle_location(self, category: str, location: str) -> "RecommendationSettings":
        """Return a copy with one location flipped. The category flag is left alone."""
        locations_field = CATEGORY_LOCATIONS[self.flag_for(category)]
        locations = getattr(self, locations_field)
        field = locations.field_for(location)
        toggled = locations.model_copy(update={field: not getattr(locations, field)})
        return self.model_copy(update={locations_field: toggled}, deep=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


DEFAULT_RECOMMENDATION_SETTINGS = RecommendationSettings()


def merge_with_defaults(stored: dict[str, Any] | None) -> RecommendationSettings:
    """Coerce a stored settings blob into the closed shape, filling gaps with defaults."""
    if not stored:
        return RecommendationSettings()
    return RecommendationSettings.model_validate(stored)


class RecommendationSettingsResponse(ApiResponse):
    """GET /ecwid/recommendation-settings/{store_id} response."""

    settings: RecommendationSettings


class RecommendationSettingsSaved(ApiResponse):
    """POST /ecwid/recommendation-settings/{store_id} response."""

    message: str = "Recommendation settings saved"
    settings: RecommendationSettings
