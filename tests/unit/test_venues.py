"""Unit tests for the venue registry."""

import pytest

from arbopt.errors import ConfigurationError
from arbopt.venues import DEFAULT_VENUES, Venue, VenueRegistry


class TestVenue:
    def test_rejects_empty_id(self):
        with pytest.raises(ConfigurationError, match="non-empty"):
            Venue(id="", fee_rate=0.003, gas_per_swap=100_000)

    def test_rejects_bad_fee_rate(self):
        with pytest.raises(ConfigurationError, match="fee_rate"):
            Venue(id="v1", fee_rate=1.0, gas_per_swap=100_000)

    def test_rejects_non_positive_gas(self):
        with pytest.raises(ConfigurationError, match="gas_per_swap"):
            Venue(id="v1", fee_rate=0.003, gas_per_swap=0)


class TestVenueRegistry:
    def test_defaults(self):
        registry = VenueRegistry()

        assert len(registry) == len(DEFAULT_VENUES)
        assert [v.id for v in registry.enabled()] == ["uniswap-v2", "uniswap-v3"]

    def test_registration_order_kept_on_replace(self):
        registry = VenueRegistry(
            [Venue("a", 0.003, 100_000), Venue("b", 0.003, 100_000)]
        )
        registry.add(Venue("a", 0.001, 90_000))

        assert [v.id for v in registry] == ["a", "b"]
        assert registry.get("a").gas_per_swap == 90_000

    def test_set_enabled(self):
        registry = VenueRegistry()
        registry.set_enabled("sushiswap", True)

        assert "sushiswap" in [v.id for v in registry.enabled()]

    def test_set_enabled_unknown_venue(self):
        with pytest.raises(ConfigurationError, match="Unknown venue"):
            VenueRegistry().set_enabled("nope", True)

    def test_require_venues(self):
        with pytest.raises(ConfigurationError):
            VenueRegistry([]).require_venues()

    def test_only_disabled_venues_is_valid(self):
        registry = VenueRegistry([Venue("a", 0.003, 100_000, enabled=False)])

        registry.require_venues()
        assert registry.enabled() == []
