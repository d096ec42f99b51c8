"""Tests for the recommendation settings model and its toggle rules.

Covers:
- Enabling a category switches every one of its locations on
- Disabling a category leaves its location map untouched
- Toggling a location never changes the category flag
- Wire format (camelCase), coercion and unknown-key handling
- merge_with_defaults for stores that never saved settings
"""

import pytest

from recs_api.addon.settings_state import toggle_category, toggle_location
from recs_api.schemas.recommendation_settings import (
    CATEGORY_LOCATIONS,
    DEFAULT_RECOMMENDATION_SETTINGS,
    RecommendationSettings,
    merge_with_defaults,
)

CATEGORIES = ["showUpsells", "showCrossSells", "showRecommendations"]

LOCATION_KEYS = {
    "showUpsells": ("upsellLocations", ["productPage", "cartPage"]),
    "showCrossSells": ("crossSellLocations", ["cartPage", "checkoutPage"]),
    "showRecommendations": (
        "recommendationLocations",
        ["categoryPage", "productPage", "thankYouPage"],
    ),
}


def _wire(settings: RecommendationSettings) -> dict:
    return settings.to_wire()


# ---------------------------------------------------------------------------
# toggle_category
# ---------------------------------------------------------------------------


class TestToggleCategory:
    """Cascade-on-enable, no cascade on disable."""

    def test_enable_upsells_turns_all_locations_on(self) -> None:
        """{showUpsells: false, all off} -> {showUpsells: true, all on}."""
        settings = RecommendationSettings.model_validate(
            {"showUpsells": False, "upsellLocations": {"productPage": False, "cartPage": False}}
        )

        result = toggle_category(settings, "showUpsells")

        wire = _wire(result)
        assert wire["showUpsells"] is True
        assert wire["upsellLocations"] == {"productPage": True, "cartPage": True}

    @pytest.mark.parametrize("category", CATEGORIES)
    def test_enable_overwrites_partial_selection(self, category: str) -> None:
        """Prior per-location choices are replaced by all-true on enable."""
        locations_key, keys = LOCATION_KEYS[category]
        partial = {key: index % 2 == 0 for index, key in enumerate(keys)}
        settings = RecommendationSettings.model_validate(
            {category: False, locations_key: partial}
        )

        result = _wire(toggle_category(settings, category))

        assert result[category] is True
        assert result[locations_key] == {key: True for key in keys}

    @pytest.mark.parametrize("category", CATEGORIES)
    def test_disable_leaves_locations_unchanged(self, category: str) -> None:
        """true -> false keeps the location map bit-for-bit."""
        locations_key, keys = LOCATION_KEYS[category]
        mixed = {key: index == 0 for index, key in enumerate(keys)}
        settings = RecommendationSettings.model_validate({category: True, locations_key: mixed})

        result = _wire(toggle_category(settings, category))

        assert result[category] is False
        assert result[locations_key] == mixed

    def test_other_categories_untouched(self) -> None:
        """Toggling one category does not affect the others."""
        before = _wire(DEFAULT_RECOMMENDATION_SETTINGS)
        after = _wire(toggle_category(DEFAULT_RECOMMENDATION_SETTINGS, "showCrossSells"))

        assert after["showUpsells"] == before["showUpsells"]
        assert after["upsellLocations"] == before["upsellLocations"]
        assert after["recommendationLocations"] == before["recommendationLocations"]

    def test_returns_copy(self) -> None:
        """The original settings object is not mutated."""
        settings = RecommendationSettings()
        toggle_category(settings, "showUpsells")
        assert settings.show_upsells is False
        assert settings.upsell_locations.product_page is False

    def test_accepts_snake_case_name(self) -> None:
        result = toggle_category(RecommendationSettings(), "show_recommendations")
        assert result.show_recommendations is True

    def test_unknown_category_raises(self) -> None:
        with pytest.raises(ValueError, match="Unknown recommendation category"):
            toggle_category(RecommendationSettings(), "showBanners")


# ---------------------------------------------------------------------------
# toggle_location
# ---------------------------------------------------------------------------


class TestToggleLocation:
    """Location toggles never touch the parent flag."""

    @pytest.mark.parametrize("category", CATEGORIES)
    @pytest.mark.parametrize("flag", [True, False])
    def test_flag_never_changes(self, category: str, flag: bool) -> None:
        locations_key, keys = LOCATION_KEYS[category]
        settings = RecommendationSettings.model_validate(
            {category: flag, locations_key: {key: True for key in keys}}
        )

        for key in keys:
            settings = toggle_location(settings, category, key)
            assert _wire(settings)[category] is flag

    def test_all_locations_off_keeps_flag_on(self) -> None:
        """Switching every location off still leaves the category enabled."""
        settings = toggle_category(RecommendationSettings(), "showUpsells")
        settings = toggle_location(settings, "showUpsells", "productPage")
        settings = toggle_location(settings, "showUpsells", "cartPage")

        wire = _wire(settings)
        assert wire["showUpsells"] is True
        assert wire["upsellLocations"] == {"productPage": False, "cartPage": False}

    def test_flips_single_location(self) -> None:
        settings = toggle_location(RecommendationSettings(), "showCrossSells", "checkoutPage")
        assert settings.cross_sell_locations.checkout_page is True
        assert settings.cross_sell_locations.cart_page is False

    def test_unknown_location_raises(self) -> None:
        with pytest.raises(ValueError, match="Unknown location"):
            toggle_location(RecommendationSettings(), "showUpsells", "checkoutPage")


# ---------------------------------------------------------------------------
# Shape, coercion, defaults
# ---------------------------------------------------------------------------


class TestSettingsShape:
    """Closed shape on the wire and when stored."""

    def test_default_is_all_off(self) -> None:
        wire = _wire(RecommendationSettings())
        assert wire == {
            "showUpsells": False,
            "showCrossSells": False,
            "showRecommendations": False,
            "upsellLocations": {"productPage": False, "cartPage": False},
            "crossSellLocations": {"cartPage": False, "checkoutPage": False},
            "recommendationLocations": {
                "categoryPage": False,
                "productPage": False,
                "thankYouPage": False,
            },
        }

    def test_unknown_keys_dropped(self) -> None:
        settings = RecommendationSettings.model_validate(
            {
                "showUpsells": True,
                "showBanners": True,
                "upsellLocations": {"productPage": True, "footer": True},
            }
        )
        wire = _wire(settings)
        assert "showBanners" not in wire
        assert wire["upsellLocations"] == {"productPage": True, "cartPage": False}

    def test_values_coerced_to_bool(self) -> None:
        settings = RecommendationSettings.model_validate(
            {"showUpsells": 1, "showCrossSells": 0, "upsellLocations": {"cartPage": "yes"}}
        )
        assert settings.show_upsells is True
        assert settings.show_cross_sells is False
        assert settings.upsell_locations.cart_page is True

    def test_malformed_location_map_falls_back_to_default(self) -> None:
        settings = RecommendationSettings.model_validate({"crossSellLocations": "everywhere"})
        assert _wire(settings)["crossSellLocations"] == {"cartPage": False, "checkoutPage": False}

    def test_every_flag_has_a_location_map(self) -> None:
        assert set(CATEGORY_LOCATIONS) == {
            "show_upsells",
            "show_cross_sells",
            "show_recommendations",
        }


class TestMergeWithDefaults:
    def test_none_returns_default(self) -> None:
        assert merge_with_defaults(None) == RecommendationSettings()

    def test_partial_stored_value_is_completed(self) -> None:
        merged = merge_with_defaults({"showRecommendations": True})
        wire = _wire(merged)
        assert wire["showRecommendations"] is True
        assert wire["recommendationLocations"]["thankYouPage"] is False
