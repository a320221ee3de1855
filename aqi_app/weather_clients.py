"""
Geocoding and weather clients.

We intentionally separate API logic from FastAPI endpoints:
- easier to test in isolation
- the unifier and the history aggregator share one geocoder
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from .errors import NotFound, ProviderUnavailable, validate_coordinates
from .schemas import WeatherSnapshot

logger = logging.getLogger(__name__)

FALLBACK_LOCATION_LABEL = "Your Location"

# WMO weather interpretation codes (Open-Meteo `weather_code`)
WEATHER_CODES: Dict[int, str] = {
    0: "Clear sky",
    1: "Mainly clear",
    2: "Partly cloudy",
    3: "Overcast",
    45: "Fog",
    48: "Depositing rime fog",
    51: "Light Drizzle",
    53: "Moderate Drizzle",
    55: "Dense Drizzle",
    56: "Light Freezing Drizzle",
    57: "Dense Freezing Drizzle",
    61: "Slight Rain",
    63: "Moderate Rain",
    65: "Heavy Rain",
    66: "Light Freezing Rain",
    67: "Heavy Freezing Rain",
    71: "Slight Snow",
    73: "Moderate Snow",
    75: "Heavy Snow",
    77: "Snow grains",
    80: "Slight Rain Showers",
    81: "Moderate Rain Showers",
    82: "Violent Rain Showers",
    85: "Slight Snow Showers",
    86: "Heavy Snow Showers",
    95: "Thunderstorm",
    96: "Thunderstorm with slight hail",
    99: "Thunderstorm with heavy hail",
}


def weather_condition(code: Any) -> str:
    """Look up a WMO code; anything outside the table is "Unknown"."""
    try:
        return WEATHER_CODES.get(int(code), "Unknown")
    except (TypeError, ValueError):
        return "Unknown"


@dataclass(frozen=True)
class ResolvedLocation:
    """
    Minimal resolved location object produced by geocoding.
    """
    display_name: str
    lat: float
    lon: float
    country: str = ""
    region: str = ""


def clean_query(text: str) -> str:
    """Strip quotes, surrounding whitespace and parenthesized fragments."""
    raw = text.strip().strip("'\"")
    raw = re.sub(r"\([^)]*\)", "", raw)
    return re.sub(r"\s+", " ", raw).strip(" ,")


def format_display_name(name: str, region: str = "", country: str = "") -> str:
    """"Name, Region (Country)", skipping empty or repeated parts."""
    label = name
    if region and region != name:
        label = f"{label}, {region}"
    if country:
        label = f"{label} ({country})"
    return label


class OpenMeteoGeocoder:
    """
    Open-Meteo geocoding for forward lookups, BigDataCloud for reverse.

    Endpoints used:
    - Search:
        https://geocoding-api.open-meteo.com/v1/search?name=...&count=5
    - Reverse (client-side free tier, no key):
        https://api.bigdatacloud.net/data/reverse-geocode-client?latitude=...&longitude=...
    """

    def __init__(self, timeout_s: float = 10.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.timeout_s = timeout_s
        self.transport = transport
        self.search_url = "https://geocoding-api.open-meteo.com/v1/search"
        self.reverse_url = "https://api.bigdatacloud.net/data/reverse-geocode-client"

    async def resolve(self, text: str) -> ResolvedLocation:
        """
        Resolve a user-provided location string into a display name + lat/lon.

        Supported input formats (checked in this order):

        1) Coordinates: "40.7128,-74.0060"
           - Validated, then labeled with a best-effort reverse lookup.

        2) Place name: "Austin", "Paris, France", "Delhi (IN)"
           - Parenthesized fragments are dropped.
           - The name search does not understand qualifiers, so we try the
             full text first and then only the first comma-separated part,
             preferring a candidate whose country/region matches the rest.

        Raises NotFound when no variant yields a candidate.
        """
        raw = clean_query(text)

        coord_match = re.fullmatch(
            r"\s*(-?\d+(?:\.\d+)?)\s*,\s*(-?\d+(?:\.\d+)?)\s*",
            raw,
        )
        if coord_match:
            lat = float(coord_match.group(1))
            lon = float(coord_match.group(2))
            validate_coordinates(lat, lon)
            name = await self.reverse_resolve(lat, lon)
            return ResolvedLocation(display_name=name, lat=lat, lon=lon)

        if not raw:
            raise NotFound(text)

        parts = [p.strip() for p in raw.split(",") if p.strip()]
        candidates = [raw]
        if len(parts) > 1:
            candidates.append(parts[0])
        qualifiers = [p.lower() for p in parts[1:]]

        async with httpx.AsyncClient(timeout=self.timeout_s, transport=self.transport) as client:
            for q in candidates:
                params = {"name": q, "count": 5, "language": "en", "format": "json"}
                try:
                    r = await client.get(self.search_url, params=params)
                except httpx.HTTPError as e:
                    raise ProviderUnavailable("geocoding", str(e)) from e

                if r.status_code != 200:
                    raise ProviderUnavailable("geocoding", f"HTTP {r.status_code}")

                try:
                    results = (r.json() or {}).get("results") or []
                except (ValueError, AttributeError) as e:
                    raise ProviderUnavailable("geocoding", "malformed payload") from e
                if not isinstance(results, list):
                    raise ProviderUnavailable("geocoding", "malformed payload")
                results = [res for res in results if isinstance(res, dict)]
                if results:
                    try:
                        return self._to_location(self._pick(results, qualifiers))
                    except (KeyError, TypeError, ValueError) as e:
                        raise ProviderUnavailable("geocoding", "result without coordinates") from e

        logger.info("geocoding: no results for %r", raw)
        raise NotFound(text)

    @staticmethod
    def _pick(results: List[Dict[str, Any]], qualifiers: List[str]) -> Dict[str, Any]:
        """Prefer a candidate whose country/region matches a qualifier."""
        for res in results:
            fields = {
                str(res.get("country", "")).lower(),
                str(res.get("country_code", "")).lower(),
                str(res.get("admin1", "")).lower(),
            }
            if any(q in fields for q in qualifiers):
                return res
        return results[0]

    @staticmethod
    def _to_location(best: Dict[str, Any]) -> ResolvedLocation:
        name = best.get("name", "")
        region = best.get("admin1") or ""
        country = best.get("country") or ""
        return ResolvedLocation(
            display_name=format_display_name(name, region, country),
            lat=float(best["latitude"]),
            lon=float(best["longitude"]),
            country=country,
            region=region,
        )

    async def reverse_resolve(self, lat: float, lon: float) -> str:
        """
        Best-effort label for a coordinate pair.

        Never raises: the label is cosmetic, so any upstream error or empty
        answer degrades to "Your Location".
        """
        params = {"latitude": lat, "longitude": lon, "localityLanguage": "en"}
        try:
            async with httpx.AsyncClient(timeout=self.timeout_s, transport=self.transport) as client:
                r = await client.get(self.reverse_url, params=params)
            if r.status_code != 200:
                logger.warning("reverse geocoding failed (%s)", r.status_code)
                return FALLBACK_LOCATION_LABEL
            data = r.json() or {}
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("reverse geocoding failed: %s", e)
            return FALLBACK_LOCATION_LABEL

        if not isinstance(data, dict):
            return FALLBACK_LOCATION_LABEL
        place = data.get("city") or data.get("locality")
        if not place:
            return FALLBACK_LOCATION_LABEL
        subdivision = data.get("principalSubdivision") or ""
        return f"{place}, {subdivision}" if subdivision else place


class OpenMeteoWeatherClient:
    """
    Open-Meteo current conditions (no API key required).

    Weather is mandatory for a snapshot: every failure here raises
    ProviderUnavailable("weather") because there is no safe zero-default.
    """

    CURRENT_FIELDS = (
        "temperature_2m",
        "relative_humidity_2m",
        "apparent_temperature",
        "is_day",
        "weather_code",
        "wind_speed_10m",
    )

    def __init__(self, timeout_s: float = 10.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.timeout_s = timeout_s
        self.transport = transport
        self.base = "https://api.open-meteo.com/v1/forecast"

    async def fetch_current(self, lat: float, lon: float) -> WeatherSnapshot:
        params = {
            "latitude": lat,
            "longitude": lon,
            "current": ",".join(self.CURRENT_FIELDS),
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout_s, transport=self.transport) as client:
                r = await client.get(self.base, params=params)
        except httpx.HTTPError as e:
            raise ProviderUnavailable("weather", str(e)) from e

        if r.status_code != 200:
            raise ProviderUnavailable("weather", f"HTTP {r.status_code}")

        try:
            current = r.json()["current"]
            return WeatherSnapshot(
                temperature=float(current["temperature_2m"]),
                humidity=float(current["relative_humidity_2m"]),
                wind_speed=float(current["wind_speed_10m"]),
                apparent_temperature=float(current["apparent_temperature"]),
                condition=weather_condition(current.get("weather_code")),
                is_day=bool(current.get("is_day", 1)),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ProviderUnavailable("weather", f"malformed payload ({e})") from e
