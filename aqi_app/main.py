"""
FastAPI entrypoint.

This file focuses on:
- routing
- request/response handling
- wiring settings into the clients and services
"""

from __future__ import annotations

import logging

from fastapi import Depends, FastAPI, HTTPException, Query

from .air_quality_clients import AirQualityProvider, OpenMeteoAirQualityClient, OpenWeatherAirClient, WaqiClient
from .errors import InvalidCoordinates, NotFound, ProviderUnavailable
from .history import HistoricalAggregator
from .schemas import AirQualitySnapshot, HistoryResult
from .settings import Settings, settings
from .unifier import AirQualityService
from .weather_clients import OpenMeteoGeocoder, OpenMeteoWeatherClient

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

MAX_HISTORY_DAYS = 730


def build_air_quality_provider(cfg: Settings) -> AirQualityProvider:
    """Pick the single configured air-quality source."""
    provider = cfg.aqi_provider.lower()
    if provider == "waqi":
        if not cfg.waqi_token:
            raise ValueError("AQI_PROVIDER=waqi requires WAQI_TOKEN")
        return WaqiClient(cfg.waqi_token, timeout_s=cfg.http_timeout_s)
    if provider == "openweather":
        if not cfg.openweather_api_key:
            raise ValueError("AQI_PROVIDER=openweather requires OPENWEATHER_API_KEY")
        return OpenWeatherAirClient(cfg.openweather_api_key, timeout_s=cfg.http_timeout_s)
    raise ValueError(f"Unknown AQI_PROVIDER {cfg.aqi_provider!r} (expected 'waqi' or 'openweather')")


app = FastAPI(title=settings.app_name)

# API clients (constructed once; they hold no per-request state).
geocoder = OpenMeteoGeocoder(timeout_s=settings.http_timeout_s)
service = AirQualityService(
    geocoder=geocoder,
    weather=OpenMeteoWeatherClient(timeout_s=settings.http_timeout_s),
    air_quality=build_air_quality_provider(settings),
)
aggregator = HistoricalAggregator(
    geocoder=geocoder,
    source=OpenMeteoAirQualityClient(timeout_s=settings.http_timeout_s),
)


def get_service() -> AirQualityService:
    return service


def get_aggregator() -> HistoricalAggregator:
    return aggregator


@app.get("/api/health")
def api_health():
    return {"ok": True, "provider": settings.aqi_provider.lower()}


@app.get("/api/aqi", response_model=AirQualitySnapshot)
async def api_aqi(
    q: str = Query(..., min_length=2, max_length=255),
    svc: AirQualityService = Depends(get_service),
):
    """
    Current air quality + weather for a place name or "lat,lon" string.
    """
    try:
        return await svc.resolve_by_query(q)
    except NotFound as e:
        logger.info("aqi lookup for %r: %s", q, e)
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidCoordinates as e:
        logger.info("aqi lookup for %r: %s", q, e)
        raise HTTPException(status_code=400, detail=str(e))
    except ProviderUnavailable as e:
        logger.warning("aqi lookup for %r failed: %s", q, e)
        raise HTTPException(status_code=502, detail=str(e))


@app.get("/api/aqi/by-coords", response_model=AirQualitySnapshot)
async def api_aqi_by_coords(
    lat: float,
    lon: float,
    svc: AirQualityService = Depends(get_service),
):
    """
    Current-location snapshot:
    - browser provides coords via Geolocation API
    - the label comes from a best-effort reverse lookup
    """
    try:
        return await svc.resolve_by_coords(lat, lon)
    except InvalidCoordinates as e:
        logger.info("aqi lookup for (%s, %s): %s", lat, lon, e)
        raise HTTPException(status_code=400, detail=str(e))
    except ProviderUnavailable as e:
        logger.warning("aqi lookup for (%s, %s) failed: %s", lat, lon, e)
        raise HTTPException(status_code=502, detail=str(e))


@app.get("/api/aqi/history", response_model=HistoryResult)
async def api_aqi_history(
    q: str = Query(..., min_length=2, max_length=255),
    days: int = Query(settings.history_days_default, ge=1, le=MAX_HISTORY_DAYS),
    agg: HistoricalAggregator = Depends(get_aggregator),
):
    """Daily AQI trend; empty (never an error) when nothing can be found."""
    return await agg.get_history(q, days_back=days)
