"""Venue registry for route search.

Venues are kept in registration order, which is also the order routes are
generated in and therefore the tie-break order for equal-value routes.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, replace

import structlog

from arbopt.errors import ConfigurationError

logger = structlog.get_logger()


@dataclass(frozen=True)
class Venue:
    """A trading venue.

    Attributes:
        id: Stable identifier used in routes and quote requests
        fee_rate: Swap fee as a fraction (0.003 = 0.3%)
        gas_per_swap: Gas units consumed by one swap on this venue
        enabled: Disabled venues are ignored by route search
        name: Display name
    """

    id: str
    fee_rate: float
    gas_per_swap: int
    enabled: bool = True
    name: str = ""

    def __post_init__(self) -> None:
        if not self.id:
            raise ConfigurationError("Venue id must be non-empty")
        if not 0 <= self.fee_rate < 1:
            raise ConfigurationError(
                f"Venue {self.id}: fee_rate must be in [0, 1), got {self.fee_rate}"
            )
        if self.gas_per_swap <= 0:
            raise ConfigurationError(
                f"Venue {self.id}: gas_per_swap must be positive, got {self.gas_per_swap}"
            )


DEFAULT_VENUES: tuple[Venue, ...] = (
    Venue(id="uniswap-v2", fee_rate=0.003, gas_per_swap=120_000, enabled=True, name="Uniswap V2"),
    Venue(id="uniswap-v3", fee_rate=0.003, gas_per_swap=140_000, enabled=True, name="Uniswap V3"),
    Venue(id="sushiswap", fee_rate=0.003, gas_per_swap=125_000, enabled=False, name="SushiSwap"),
)


class VenueRegistry:
    """Ordered collection of venues keyed by id."""

    def __init__(self, venues: Iterable[Venue] | None = None) -> None:
        self._venues: dict[str, Venue] = {}
        for venue in venues if venues is not None else DEFAULT_VENUES:
            self.add(venue)

    def add(self, venue: Venue) -> None:
        """Register a venue. Re-adding an id replaces it in place."""
        if venue.id in self._venues:
            logger.debug("venue_replaced", venue_id=venue.id)
        self._venues[venue.id] = venue

    def get(self, venue_id: str) -> Venue | None:
        return self._venues.get(venue_id)

    def set_enabled(self, venue_id: str, enabled: bool) -> None:
        """Enable or disable a registered venue.

        Raises:
            ConfigurationError: If the venue is not registered
        """
        venue = self._venues.get(venue_id)
        if venue is None:
            raise ConfigurationError(f"Unknown venue: {venue_id}")
        self._venues[venue_id] = replace(venue, enabled=enabled)
        logger.info("venue_toggled", venue_id=venue_id, enabled=enabled)

    def enabled(self) -> list[Venue]:
        """Enabled venues in registration order."""
        return [v for v in self._venues.values() if v.enabled]

    def require_venues(self) -> None:
        """Raise if nothing at all is registered.

        A registry with only disabled venues is a valid (empty-result) setup;
        an empty registry is a configuration mistake.
        """
        if not self._venues:
            raise ConfigurationError("No venues configured")

    def __iter__(self) -> Iterator[Venue]:
        return iter(self._venues.values())

    def __len__(self) -> int:
        return len(self._venues)

    def __contains__(self, venue_id: object) -> bool:
        return venue_id in self._venues


__all__ = ["DEFAULT_VENUES", "Venue", "VenueRegistry"]
