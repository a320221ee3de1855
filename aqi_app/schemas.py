"""
Pydantic schemas.

Defines the output contract of the engine and the REST endpoints.
Attributes are snake_case in Python; JSON uses the camelCase aliases.
"""

from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class AqiStatus(str, Enum):
    GOOD = "Good"
    MODERATE = "Moderate"
    UNHEALTHY = "Unhealthy"
    HAZARDOUS = "Hazardous"


class CamelModel(BaseModel):
    """Base model: serialize with camelCase aliases, accept either spelling."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PollutantReadings(CamelModel):
    """Current pollutant indices; a missing reading is 0, never null."""
    pm25: float = Field(0.0, ge=0)
    pm10: float = Field(0.0, ge=0)
    o3: float = Field(0.0, ge=0)
    no2: float = Field(0.0, ge=0)


class WeatherSnapshot(CamelModel):
    temperature: float
    apparent_temperature: float
    humidity: float
    wind_speed: float
    condition: str
    is_day: bool = True


class Advice(CamelModel):
    general: str
    sensitive: str


class ForecastDay(CamelModel):
    """One day of the short forward air-quality forecast."""
    date: str
    avg_aqi: float = Field(..., ge=0, alias="avgAQI")
    max_aqi: float = Field(..., ge=0, alias="maxAQI")
    status: AqiStatus


class Coordinates(CamelModel):
    lat: float
    lon: float


class AirQualitySnapshot(CamelModel):
    """
    The unified current snapshot.

    `city` is always the requested/geocoded display name, never the
    monitoring station's own label. `status`, `advice` and `habits` are
    derived from `aqi` by the classifier.
    """
    city: str
    aqi: float = Field(..., ge=0, le=500)
    status: AqiStatus
    pollutants: PollutantReadings
    weather: WeatherSnapshot
    advice: Advice
    habits: List[str]
    forecast: List[ForecastDay] = Field(default_factory=list)
    coordinates: Optional[Coordinates] = None


class HistoryPoint(CamelModel):
    """Daily mean AQI for one calendar date."""
    date: str
    aqi: float = Field(..., ge=0)
    category: AqiStatus


class HistorySummary(CamelModel):
    avg_aqi: float = Field(0.0, alias="avgAQI")
    best_date: str = ""
    best_aqi: float = Field(0.0, alias="bestAQI")
    worst_date: str = ""
    worst_aqi: float = Field(0.0, alias="worstAQI")


class HistoryResult(CamelModel):
    """Always structurally valid, even when empty."""
    trends: List[HistoryPoint] = Field(default_factory=list)
    summary: HistorySummary = Field(default_factory=HistorySummary)
