"""
Shared fixtures: required settings and in-memory stand-ins for the upstream
providers. HTTP-level tests use httpx.MockTransport directly instead.
"""

import asyncio
import os

# Settings() is built at import time and requires a token.
os.environ.setdefault("WAQI_TOKEN", "test-token")
os.environ.setdefault("AQI_PROVIDER", "waqi")

import pytest

from aqi_app.air_quality_clients import AirQualityReading
from aqi_app.errors import NotFound
from aqi_app.schemas import PollutantReadings, WeatherSnapshot
from aqi_app.weather_clients import FALLBACK_LOCATION_LABEL, ResolvedLocation


class FakeGeocoder:
    def __init__(self, places=None, reverse_label=FALLBACK_LOCATION_LABEL):
        self.places = places or {}
        self.reverse_label = reverse_label
        self.queries = []

    async def resolve(self, text):
        self.queries.append(text)
        if text not in self.places:
            raise NotFound(text)
        return self.places[text]

    async def reverse_resolve(self, lat, lon):
        return self.reverse_label


class FakeWeather:
    def __init__(self, snapshot=None, error=None, delay=0.0):
        self.snapshot = snapshot or WeatherSnapshot(
            temperature=18.5,
            apparent_temperature=17.9,
            humidity=62,
            wind_speed=11.2,
            condition="Partly cloudy",
            is_day=True,
        )
        self.error = error
        self.delay = delay
        self.calls = 0
        self.cancelled = False

    async def fetch_current(self, lat, lon):
        self.calls += 1
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        if self.error:
            raise self.error
        return self.snapshot


class FakeAirQuality:
    def __init__(self, reading=None):
        self.reading = reading
        self.calls = []

    async def fetch_by_coords(self, lat, lon):
        self.calls.append((lat, lon))
        return self.reading


class FakeHistorySource:
    def __init__(self, times=None, values=None, error=None):
        self.times = times or []
        self.values = values or []
        self.error = error
        self.windows = []

    async def hourly_us_aqi(self, lat, lon, start, end):
        self.windows.append((start, end))
        if self.error:
            raise self.error
        return self.times, self.values


def reading(aqi=42, station="Station Internal #7", **pollutants):
    return AirQualityReading(
        aqi=aqi,
        pollutants=PollutantReadings(**pollutants),
        station=station,
    )


PARIS = ResolvedLocation(
    display_name="Paris, Île-de-France (France)",
    lat=48.8534,
    lon=2.3488,
    country="France",
    region="Île-de-France",
)


@pytest.fixture
def paris_geocoder():
    return FakeGeocoder(places={"Paris, France": PARIS})


@pytest.fixture
def weather():
    return FakeWeather()


@pytest.fixture
def make_reading():
    return reading


@pytest.fixture
def fakes():
    """Access to the fake classes for tests that need custom wiring."""
    class Fakes:
        Geocoder = FakeGeocoder
        Weather = FakeWeather
        AirQuality = FakeAirQuality
        HistorySource = FakeHistorySource
        paris = PARIS
    return Fakes
