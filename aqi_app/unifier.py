"""
Current-snapshot orchestration: geocoder + air quality + weather.

This path is fail-fast. Callers get NotFound, InvalidCoordinates or
ProviderUnavailable and are expected to offer a retry; nothing is retried
here and nothing is cached between calls.
"""

from __future__ import annotations

import asyncio
import logging

from .air_quality_clients import AirQualityProvider, clamp_aqi
from .classifier import classify
from .errors import ProviderUnavailable, validate_coordinates
from .schemas import AirQualitySnapshot, Coordinates
from .weather_clients import OpenMeteoGeocoder, OpenMeteoWeatherClient

logger = logging.getLogger(__name__)


def _discard(task: asyncio.Task) -> None:
    """Cancel a task we no longer need, or collect its outcome if it already finished."""
    if not task.done():
        task.cancel()
    elif not task.cancelled():
        task.exception()


class AirQualityService:
    """
    Resolves a place or coordinate pair into one AirQualitySnapshot.

    There is exactly one air-quality source. If it is unavailable the
    whole request fails; a weather-only answer is not a valid output.
    """

    def __init__(
        self,
        geocoder: OpenMeteoGeocoder,
        weather: OpenMeteoWeatherClient,
        air_quality: AirQualityProvider,
    ):
        self.geocoder = geocoder
        self.weather = weather
        self.air_quality = air_quality

    async def resolve_by_query(self, text: str) -> AirQualitySnapshot:
        """Geocode free text, then unify. NotFound propagates to the caller."""
        location = await self.geocoder.resolve(text)
        return await self.unify(location.lat, location.lon, location.display_name)

    async def resolve_by_coords(self, lat: float, lon: float) -> AirQualitySnapshot:
        """Label the coordinates (best effort, never fails), then unify."""
        validate_coordinates(lat, lon)
        display_name = await self.geocoder.reverse_resolve(lat, lon)
        return await self.unify(lat, lon, display_name)

    async def unify(self, lat: float, lon: float, display_name: str) -> AirQualitySnapshot:
        """
        Fetch air quality and weather concurrently and compose the snapshot.

        Air quality is awaited first: when it is unavailable the weather
        fetch is cancelled and ProviderUnavailable is raised immediately.
        The provider's station name is dropped in favor of `display_name`.
        """
        air_task = asyncio.create_task(self.air_quality.fetch_by_coords(lat, lon))
        weather_task = asyncio.create_task(self.weather.fetch_current(lat, lon))
        try:
            reading = await air_task
            if reading is None:
                logger.warning("air quality unavailable for %.4f,%.4f", lat, lon)
                raise ProviderUnavailable("air_quality", "no reading for these coordinates")
            weather = await weather_task
        finally:
            _discard(air_task)
            _discard(weather_task)

        aqi = clamp_aqi(reading.aqi)
        category = classify(aqi)
        logger.info(
            "unified %s: aqi=%s status=%s (station %r)",
            display_name, aqi, category.status.value, reading.station,
        )
        return AirQualitySnapshot(
            city=display_name,
            aqi=aqi,
            status=category.status,
            pollutants=reading.pollutants,
            weather=weather,
            advice=category.advice,
            habits=category.habits,
            forecast=list(reading.forecast),
            coordinates=Coordinates(lat=lat, lon=lon),
        )
