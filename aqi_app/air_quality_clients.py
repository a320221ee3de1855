"""
Air-quality clients.

Current readings come from one configured provider (WAQI by default,
OpenWeather Air Pollution as an alternative). Provider failures on the
current path never raise: `fetch_by_coords` returns None ("unavailable")
and the unifier decides what that means.

Historical hourly AQI comes from the Open-Meteo air-quality API.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Protocol, Tuple

import httpx

from .classifier import classify, pm25_to_us_aqi
from .errors import NoHistoricalData
from .schemas import ForecastDay, PollutantReadings

logger = logging.getLogger(__name__)

MAX_AQI = 500.0
FORECAST_DAYS = 3


@dataclass(frozen=True)
class AirQualityReading:
    """
    Partial snapshot produced by an air-quality provider.

    `station` is the provider's own label for the nearest monitoring
    station; the unifier discards it in favor of the requested place.
    """
    aqi: float
    pollutants: PollutantReadings
    station: str = ""
    forecast: List[ForecastDay] = field(default_factory=list)


class AirQualityProvider(Protocol):
    async def fetch_by_coords(self, lat: float, lon: float) -> Optional[AirQualityReading]:
        ...


def non_negative(value: Any) -> float:
    """Coerce a provider number to a float >= 0; junk and missing become 0."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if number != number or number < 0:  # NaN or negative
        return 0.0
    return number


def is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return value == value  # NaN


def as_dict(value: Any) -> Dict[str, Any]:
    """Payload objects that are missing or the wrong shape read as empty."""
    return value if isinstance(value, dict) else {}


def as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def clamp_aqi(value: float) -> float:
    return min(non_negative(value), MAX_AQI)


def build_forecast(days: Iterable[Tuple[str, float, float]], today: date) -> List[ForecastDay]:
    """
    Turn (ISO date, avg AQI, max AQI) rows into at most three classified
    forecast days, dropping anything before `today` and any day without a
    numeric average. A missing max falls back to the average.
    """
    today_iso = today.isoformat()
    kept = sorted(
        (d for d in days if d[0] >= today_iso and is_number(d[1])),
        key=lambda d: d[0],
    )
    out: List[ForecastDay] = []
    for day, avg, peak in kept[:FORECAST_DAYS]:
        avg_aqi = clamp_aqi(avg)
        peak_aqi = clamp_aqi(peak) if is_number(peak) else avg_aqi
        out.append(ForecastDay(
            date=day,
            avg_aqi=avg_aqi,
            max_aqi=max(peak_aqi, avg_aqi),
            status=classify(avg_aqi).status,
        ))
    return out


class WaqiClient:
    """
    World Air Quality Index (aqicn.org) feed for the station nearest to a
    coordinate pair.

    Endpoint used:
        https://api.waqi.info/feed/geo:{lat};{lon}/?token=KEY

    Payload shape (abridged):
        {"status": "ok",
         "data": {"aqi": 42,
                  "city": {"name": "Station name"},
                  "iaqi": {"pm25": {"v": 42}, "pm10": {"v": 17}, ...},
                  "forecast": {"daily": {"pm25": [{"day": "2024-05-01", "avg": 40, "max": 55}, ...]}}}}
    """

    def __init__(self, token: str, timeout_s: float = 10.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.token = token
        self.timeout_s = timeout_s
        self.transport = transport
        self.base = "https://api.waqi.info"

    async def fetch_by_coords(self, lat: float, lon: float) -> Optional[AirQualityReading]:
        url = f"{self.base}/feed/geo:{lat};{lon}/"
        try:
            async with httpx.AsyncClient(timeout=self.timeout_s, transport=self.transport) as client:
                r = await client.get(url, params={"token": self.token})
            if r.status_code != 200:
                logger.warning("WAQI request failed (%s)", r.status_code)
                return None
            payload = r.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("WAQI request failed: %s", e)
            return None

        if not isinstance(payload, dict) or payload.get("status") != "ok":
            logger.warning("WAQI returned status %r", payload.get("status") if isinstance(payload, dict) else None)
            return None

        data = as_dict(payload.get("data"))
        try:
            # Stations without a current reading report aqi as "-"
            aqi = float(data["aqi"])
        except (KeyError, TypeError, ValueError):
            logger.warning("WAQI payload has no usable aqi")
            return None

        iaqi = as_dict(data.get("iaqi"))
        pollutants = PollutantReadings(
            pm25=non_negative(as_dict(iaqi.get("pm25")).get("v")),
            pm10=non_negative(as_dict(iaqi.get("pm10")).get("v")),
            o3=non_negative(as_dict(iaqi.get("o3")).get("v")),
            no2=non_negative(as_dict(iaqi.get("no2")).get("v")),
        )

        daily = as_list(as_dict(as_dict(data.get("forecast")).get("daily")).get("pm25"))
        rows = [
            (str(d["day"]), d.get("avg"), d.get("max"))
            for d in daily
            if isinstance(d, dict) and d.get("day")
        ]

        return AirQualityReading(
            aqi=clamp_aqi(aqi),
            pollutants=pollutants,
            station=str(as_dict(data.get("city")).get("name", "")),
            forecast=build_forecast(rows, date.today()),
        )


class OpenWeatherAirClient:
    """
    OpenWeatherMap Air Pollution API.

    Endpoints used:
    - Current:  /data/2.5/air_pollution?lat=...&lon=...&appid=KEY
    - Forecast: /data/2.5/air_pollution/forecast?lat=...&lon=...&appid=KEY

    OpenWeather reports its own 1-5 index, so the US AQI is derived from the
    raw PM2.5 concentration. The hourly forecast is grouped per UTC date into
    average and peak PM2.5. A failed forecast call only empties the forecast.
    """

    def __init__(self, api_key: str, timeout_s: float = 10.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.api_key = api_key
        self.timeout_s = timeout_s
        self.transport = transport
        self.base = "https://api.openweathermap.org/data/2.5/air_pollution"

    async def fetch_by_coords(self, lat: float, lon: float) -> Optional[AirQualityReading]:
        params = {"lat": lat, "lon": lon, "appid": self.api_key}
        async with httpx.AsyncClient(timeout=self.timeout_s, transport=self.transport) as client:
            try:
                r = await client.get(self.base, params=params)
                if r.status_code != 200:
                    logger.warning("OpenWeather air pollution failed (%s)", r.status_code)
                    return None
                items = as_list(as_dict(r.json()).get("list"))
            except (httpx.HTTPError, ValueError) as e:
                logger.warning("OpenWeather air pollution failed: %s", e)
                return None

            current = as_dict(items[0]) if items else {}
            if not isinstance(current.get("components"), dict):
                logger.warning("OpenWeather air pollution returned no readings")
                return None

            forecast = await self._forecast(client, params)

        components = current["components"]
        return AirQualityReading(
            aqi=clamp_aqi(pm25_to_us_aqi(non_negative(components.get("pm2_5")))),
            pollutants=PollutantReadings(
                pm25=non_negative(components.get("pm2_5")),
                pm10=non_negative(components.get("pm10")),
                o3=non_negative(components.get("o3")),
                no2=non_negative(components.get("no2")),
            ),
            station="OpenWeather Station",
            forecast=forecast,
        )

    async def _forecast(self, client: httpx.AsyncClient, params: Dict[str, Any]) -> List[ForecastDay]:
        try:
            r = await client.get(f"{self.base}/forecast", params=params)
            if r.status_code != 200:
                logger.warning("OpenWeather air forecast failed (%s)", r.status_code)
                return []
            items = as_list(as_dict(r.json()).get("list"))
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("OpenWeather air forecast failed: %s", e)
            return []

        per_day: Dict[str, List[float]] = defaultdict(list)
        for item in items:
            item = as_dict(item)
            components = item.get("components")
            if not isinstance(components, dict):
                continue
            try:
                day = datetime.fromtimestamp(int(item["dt"]), tz=timezone.utc).date().isoformat()
            except (KeyError, TypeError, ValueError, OverflowError, OSError):
                continue
            per_day[day].append(non_negative(components.get("pm2_5")))

        rows = [
            (day, pm25_to_us_aqi(sum(values) / len(values)), pm25_to_us_aqi(max(values)))
            for day, values in per_day.items()
        ]
        return build_forecast(rows, datetime.now(timezone.utc).date())


class OpenMeteoAirQualityClient:
    """
    Open-Meteo air-quality API, used only for historical trends.

    Returns the provider's own hourly US AQI index; daily figures are
    averaged from it rather than re-derived from raw concentrations.
    """

    def __init__(self, timeout_s: float = 10.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.timeout_s = timeout_s
        self.transport = transport
        self.base = "https://air-quality-api.open-meteo.com/v1/air-quality"

    async def hourly_us_aqi(
        self, lat: float, lon: float, start: date, end: date
    ) -> Tuple[List[str], List[Optional[float]]]:
        """
        Fetch (timestamps, values) for the inclusive date window.

        Raises NoHistoricalData on any failure or an empty series.
        """
        params = {
            "latitude": lat,
            "longitude": lon,
            "hourly": "us_aqi",
            "start_date": start.isoformat(),
            "end_date": end.isoformat(),
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout_s, transport=self.transport) as client:
                r = await client.get(self.base, params=params)
        except httpx.HTTPError as e:
            raise NoHistoricalData(f"Historical air quality request failed: {e}") from e

        if r.status_code != 200:
            raise NoHistoricalData(f"Historical air quality failed ({r.status_code})")

        try:
            payload = r.json()
        except ValueError as e:
            raise NoHistoricalData("Historical air quality payload is malformed") from e

        hourly = as_dict(payload).get("hourly")
        if not isinstance(hourly, dict):
            raise NoHistoricalData("Historical air quality payload has no hourly block")

        times = hourly.get("time")
        values = hourly.get("us_aqi")
        if not isinstance(times, list) or not isinstance(values, list):
            raise NoHistoricalData("Historical air quality series is malformed")
        if not times or not values:
            raise NoHistoricalData("No historical data available for that range.")

        return list(times), list(values)
