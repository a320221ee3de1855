"""
Error taxonomy shared by the clients, the unifier and the HTTP layer.
"""

from __future__ import annotations


class AirQualityError(RuntimeError):
    """Base class for user-facing lookup failures."""
    pass


class NotFound(AirQualityError):
    """Geocoding produced no candidates (obscure or misspelled input)."""

    def __init__(self, query: str):
        self.query = query
        super().__init__(
            f"Location not found: {query!r}. Try a more specific query "
            "(e.g., 'Paris, France', 'Austin', or '40.7128,-74.0060')."
        )


class ProviderUnavailable(AirQualityError):
    """An upstream provider failed, timed out or returned a non-success status."""

    def __init__(self, provider: str, detail: str = ""):
        self.provider = provider
        self.detail = detail
        message = f"{provider} provider unavailable"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class NoHistoricalData(AirQualityError):
    """Historical fetch failed or returned an empty series."""
    pass


class InvalidCoordinates(AirQualityError):
    """Latitude/longitude outside the valid range."""
    pass


def validate_coordinates(lat: float, lon: float) -> None:
    if not (-90.0 <= lat <= 90.0):
        raise InvalidCoordinates("Invalid latitude. Must be between -90 and 90.")
    if not (-180.0 <= lon <= 180.0):
        raise InvalidCoordinates("Invalid longitude. Must be between -180 and 180.")
