"""Trading venues available to route search."""

from arbopt.venues.registry import DEFAULT_VENUES, Venue, VenueRegistry

__all__ = ["DEFAULT_VENUES", "Venue", "VenueRegistry"]
