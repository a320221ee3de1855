"""
AQI category classifier.

A deliberate four-tier simplification of the US EPA scale:

    <= 50   Good
    <= 100  Moderate
    <= 200  Unhealthy
    above   Hazardous

Do not expand this to the six-tier EPA scale; downstream consumers key
their UI on exactly these four statuses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple

from .schemas import Advice, AqiStatus


@dataclass(frozen=True)
class Category:
    status: AqiStatus
    advice: Advice
    habits: List[str]


# (upper bound inclusive, status, general advice, sensitive advice, habits)
_TIERS: List[Tuple[float, AqiStatus, str, str, List[str]]] = [
    (
        50,
        AqiStatus.GOOD,
        "Air quality is satisfactory. Enjoy outdoor activities!",
        "Air quality is great. No restrictions.",
        ["Open windows for fresh air", "Go for a run or walk", "Plant more trees"],
    ),
    (
        100,
        AqiStatus.MODERATE,
        "Air quality is acceptable for most people.",
        "Unusually sensitive people should consider reducing prolonged or heavy exertion.",
        ["Reduce car usage", "Avoid burning waste", "Keep indoor plants"],
    ),
    (
        200,
        AqiStatus.UNHEALTHY,
        "Everyone may begin to experience health effects. Wear a mask outdoors.",
        "Members of sensitive groups may experience more serious health effects. "
        "Avoid outdoor exertion.",
        ["Wear N95 mask outdoors", "Use public transport", "Run air purifier indoors"],
    ),
    (
        float("inf"),
        AqiStatus.HAZARDOUS,
        "Health warnings of emergency conditions. The entire population is more likely to be affected.",
        "Avoid all outdoor exertion. Stay indoors and keep activity levels low.",
        [
            "Stay indoors strictly",
            "Seal windows/doors",
            "Use high-quality air purifier",
            "Avoid strenuous exercise",
        ],
    ),
]

SEVERITY_ORDER: List[AqiStatus] = [tier[1] for tier in _TIERS]


def classify(aqi: float) -> Category:
    """Map a numeric AQI to its status, advice pair and suggested habits."""
    for upper, status, general, sensitive, habits in _TIERS:
        if aqi <= upper:
            return Category(
                status=status,
                advice=Advice(general=general, sensitive=sensitive),
                habits=list(habits),
            )
    # NaN compares false against every bound
    raise ValueError(f"AQI must be a number, got {aqi!r}")


def severity_rank(status: AqiStatus) -> int:
    """0 for Good up to 3 for Hazardous."""
    return SEVERITY_ORDER.index(AqiStatus(status))


# US EPA PM2.5 breakpoints (ug/m3 -> index), 24h basis
_PM25_BREAKPOINTS: List[Tuple[float, float, int, int]] = [
    (0.0, 12.0, 0, 50),
    (12.1, 35.4, 51, 100),
    (35.5, 55.4, 101, 150),
    (55.5, 150.4, 151, 200),
    (150.5, 250.4, 201, 300),
    (250.5, 350.4, 301, 400),
    (350.5, 500.4, 401, 500),
]


def pm25_to_us_aqi(concentration: float) -> int:
    """
    Convert a PM2.5 concentration (ug/m3) to the US EPA AQI by linear
    interpolation inside its breakpoint band. Values above the last band
    cap at 500; negative readings are treated as 0.
    """
    c = max(0.0, float(concentration))
    for c_lo, c_hi, i_lo, i_hi in _PM25_BREAKPOINTS:
        if c <= c_hi:
            # Concentrations falling in the 0.1 gap between bands use the upper band
            c_lo = min(c_lo, c)
            return round((i_hi - i_lo) / (c_hi - c_lo) * (c - c_lo) + i_lo)
    return 500
