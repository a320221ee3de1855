"""
Historical AQI trends: hourly series -> daily means -> best/worst summary.

Unlike the current-snapshot path this one is fail-soft. Any geocoding or
provider problem yields an empty but renderable HistoryResult.

Daily means are taken over the provider's own hourly AQI index, not
re-derived from averaged raw concentrations.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date, timedelta
from typing import Callable, Dict, List, Optional, Sequence

from .air_quality_clients import OpenMeteoAirQualityClient
from .classifier import classify
from .errors import AirQualityError, NotFound
from .schemas import HistoryPoint, HistoryResult, HistorySummary
from .weather_clients import OpenMeteoGeocoder

logger = logging.getLogger(__name__)


def _valid(value) -> bool:
    if value is None or isinstance(value, bool):
        return False
    if not isinstance(value, (int, float)):
        return False
    return value == value and value >= 0  # drop NaN and negatives


def aggregate_daily(times: Sequence[str], values: Sequence[Optional[float]]) -> List[HistoryPoint]:
    """
    Bucket hourly samples by calendar date and average each bucket.

    Timestamps are ISO strings ("2024-05-01T13:00"); the part before "T" is
    the bucket key. Null samples are skipped and a date with no valid
    sample produces no point at all. Points come back sorted by date.
    """
    buckets: Dict[str, List[float]] = defaultdict(list)
    for stamp, value in zip(times, values):
        day = str(stamp).split("T", 1)[0]
        if _valid(value):
            buckets[day].append(float(value))

    points = []
    for day in sorted(buckets):
        samples = buckets[day]
        mean = sum(samples) / len(samples)
        points.append(HistoryPoint(date=day, aqi=mean, category=classify(mean).status))
    return points


def summarize(points: Sequence[HistoryPoint]) -> HistorySummary:
    """Average of daily means plus the best (lowest) and worst (highest) day."""
    if not points:
        return HistorySummary()

    # min/max keep the first of equal values; points are in date order
    best = min(points, key=lambda p: p.aqi)
    worst = max(points, key=lambda p: p.aqi)
    return HistorySummary(
        avg_aqi=sum(p.aqi for p in points) / len(points),
        best_date=best.date,
        best_aqi=best.aqi,
        worst_date=worst.date,
        worst_aqi=worst.aqi,
    )


class HistoricalAggregator:
    def __init__(
        self,
        geocoder: OpenMeteoGeocoder,
        source: OpenMeteoAirQualityClient,
        today: Callable[[], date] = date.today,
    ):
        self.geocoder = geocoder
        self.source = source
        self.today = today

    async def get_history(self, text: str, days_back: int = 365) -> HistoryResult:
        """
        Daily AQI trend for the last `days_back` calendar dates (today included).

        Never raises for lookup or provider failures; returns an empty
        HistoryResult instead.
        """
        if days_back < 1:
            raise ValueError("days_back must be at least 1")

        end = self.today()
        start = end - timedelta(days=days_back - 1)

        try:
            location = await self.geocoder.resolve(text)
            times, values = await self.source.hourly_us_aqi(location.lat, location.lon, start, end)
        except NotFound:
            logger.info("history: no location for %r", text)
            return HistoryResult()
        except AirQualityError as e:
            logger.warning("history for %r unavailable: %s", text, e)
            return HistoryResult()

        window = (start.isoformat(), end.isoformat())
        trends = [p for p in aggregate_daily(times, values) if window[0] <= p.date <= window[1]]
        return HistoryResult(trends=trends, summary=summarize(trends))
