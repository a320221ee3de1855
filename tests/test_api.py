"""
API-level tests for the snapshot and history endpoints.
"""

import logging
from datetime import date

import pytest
from fastapi.testclient import TestClient

from aqi_app.air_quality_clients import OpenWeatherAirClient, WaqiClient
from aqi_app.history import HistoricalAggregator
from aqi_app.main import app, build_air_quality_provider, get_aggregator, get_service
from aqi_app.settings import Settings
from aqi_app.unifier import AirQualityService

client = TestClient(app)


@pytest.fixture
def override(fakes, weather, make_reading):
    """Wire the app to in-memory providers; `air.reading` can be swapped per test."""
    air = fakes.AirQuality(make_reading(aqi=42, pm25=42))
    history_source = fakes.HistorySource(
        ["2024-05-01T00:00", "2024-05-01T01:00", "2024-05-02T00:00"],
        [40, 60, 120],
    )
    geocoder = fakes.Geocoder(places={"Paris, France": fakes.paris}, reverse_label="Somewhere, Here")
    app.dependency_overrides[get_service] = lambda: AirQualityService(geocoder, weather, air)
    app.dependency_overrides[get_aggregator] = lambda: HistoricalAggregator(
        geocoder, history_source, today=lambda: date(2024, 5, 2)
    )
    yield air
    app.dependency_overrides.clear()


class TestSnapshotEndpoints:
    def test_query_success(self, override, fakes):
        resp = client.get("/api/aqi", params={"q": "Paris, France"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["city"] == fakes.paris.display_name
        assert data["status"] == "Good"
        assert data["aqi"] == 42
        assert data["pollutants"] == {"pm25": 42, "pm10": 0, "o3": 0, "no2": 0}
        assert data["coordinates"] == {"lat": fakes.paris.lat, "lon": fakes.paris.lon}
        assert set(data["weather"]) == {
            "temperature", "apparentTemperature", "humidity", "windSpeed", "condition", "isDay",
        }
        assert set(data["advice"]) == {"general", "sensitive"}
        assert data["forecast"] == []

    def test_query_not_found(self, override):
        resp = client.get("/api/aqi", params={"q": "NoSuchCityZX99"})
        assert resp.status_code == 404

    def test_query_provider_unavailable(self, override):
        override.reading = None
        resp = client.get("/api/aqi", params={"q": "Paris, France"})
        assert resp.status_code == 502
        assert "air_quality" in resp.json()["detail"]

    def test_query_too_short(self, override):
        resp = client.get("/api/aqi", params={"q": "P"})
        assert resp.status_code == 422

    def test_by_coords(self, override):
        resp = client.get("/api/aqi/by-coords", params={"lat": 12.5, "lon": 77.6})
        assert resp.status_code == 200
        data = resp.json()
        assert data["city"] == "Somewhere, Here"
        assert data["coordinates"] == {"lat": 12.5, "lon": 77.6}

    def test_by_coords_out_of_range(self, override):
        resp = client.get("/api/aqi/by-coords", params={"lat": 91, "lon": 0})
        assert resp.status_code == 400


class TestHistoryEndpoint:
    def test_history(self, override):
        resp = client.get("/api/aqi/history", params={"q": "Paris, France", "days": 7})
        assert resp.status_code == 200
        data = resp.json()
        assert data["trends"] == [
            {"date": "2024-05-01", "aqi": 50, "category": "Good"},
            {"date": "2024-05-02", "aqi": 120, "category": "Unhealthy"},
        ]
        assert data["summary"] == {
            "avgAQI": 85, "bestDate": "2024-05-01", "bestAQI": 50,
            "worstDate": "2024-05-02", "worstAQI": 120,
        }

    def test_history_unknown_city_is_200(self, override):
        resp = client.get("/api/aqi/history", params={"q": "NoSuchCityZX99"})
        assert resp.status_code == 200
        assert resp.json() == {
            "trends": [],
            "summary": {"avgAQI": 0, "bestDate": "", "bestAQI": 0, "worstDate": "", "worstAQI": 0},
        }

    def test_history_days_bounds(self, override):
        assert client.get("/api/aqi/history", params={"q": "Paris", "days": 0}).status_code == 422
        assert client.get("/api/aqi/history", params={"q": "Paris", "days": 5000}).status_code == 422


class TestWiring:
    def test_health(self):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json() == {"ok": True, "provider": "waqi"}

    def test_provider_selection(self):
        assert isinstance(build_air_quality_provider(Settings(waqi_token="t", aqi_provider="waqi")), WaqiClient)
        ow = build_air_quality_provider(
            Settings(waqi_token="t", aqi_provider="OpenWeather", openweather_api_key="k")
        )
        assert isinstance(ow, OpenWeatherAirClient)

    def test_openweather_requires_key(self):
        with pytest.raises(ValueError):
            build_air_quality_provider(Settings(waqi_token="t", aqi_provider="openweather", openweather_api_key=""))

    def test_unknown_provider(self):
        with pytest.raises(ValueError):
            build_air_quality_provider(Settings(waqi_token="t", aqi_provider="purpleair"))

    def test_waqi_requires_token(self):
        with pytest.raises(ValueError):
            build_air_quality_provider(Settings(waqi_token="", aqi_provider="waqi"))

    def test_openweather_needs_no_waqi_token(self, monkeypatch):
        monkeypatch.delenv("WAQI_TOKEN", raising=False)
        cfg = Settings(_env_file=None, aqi_provider="openweather", openweather_api_key="k")
        assert cfg.waqi_token == ""
        assert isinstance(build_air_quality_provider(cfg), OpenWeatherAirClient)


class TestErrorLogging:
    def test_provider_failure_is_logged(self, override, caplog):
        override.reading = None
        with caplog.at_level(logging.WARNING, logger="aqi_app.main"):
            resp = client.get("/api/aqi", params={"q": "Paris, France"})
        assert resp.status_code == 502
        assert any("Paris, France" in r.getMessage() for r in caplog.records)

    def test_not_found_is_logged(self, override, caplog):
        with caplog.at_level(logging.INFO, logger="aqi_app.main"):
            resp = client.get("/api/aqi", params={"q": "NoSuchCityZX99"})
        assert resp.status_code == 404
        assert any("NoSuchCityZX99" in r.getMessage() for r in caplog.records)
