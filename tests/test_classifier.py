"""
Tests for the four-tier AQI classifier and the PM2.5 -> US AQI conversion.
"""

import pytest

from aqi_app.classifier import classify, pm25_to_us_aqi, severity_rank
from aqi_app.schemas import AqiStatus


class TestClassify:
    @pytest.mark.parametrize(
        "aqi, expected",
        [
            (0, AqiStatus.GOOD),
            (50, AqiStatus.GOOD),
            (51, AqiStatus.MODERATE),
            (100, AqiStatus.MODERATE),
            (101, AqiStatus.UNHEALTHY),
            (200, AqiStatus.UNHEALTHY),
            (201, AqiStatus.HAZARDOUS),
            (500, AqiStatus.HAZARDOUS),
        ],
    )
    def test_boundaries(self, aqi, expected):
        assert classify(aqi).status == expected

    def test_fractional_means_between_tiers(self):
        assert classify(50.5).status == AqiStatus.MODERATE
        assert classify(100.25).status == AqiStatus.UNHEALTHY

    def test_monotonic(self):
        ranks = [severity_rank(classify(a / 2).status) for a in range(0, 1001)]
        assert ranks == sorted(ranks)

    def test_exactly_four_tiers(self):
        statuses = {classify(a).status for a in range(0, 501)}
        assert statuses == set(AqiStatus)

    def test_advice_and_habits_per_tier(self):
        good = classify(10)
        assert good.advice.general.startswith("Air quality is satisfactory")
        assert "Go for a run or walk" in good.habits

        hazardous = classify(350)
        assert "Stay indoors strictly" in hazardous.habits
        assert len(hazardous.habits) == 4

    def test_habits_are_fresh_lists(self):
        first = classify(10)
        first.habits.append("mutated")
        assert "mutated" not in classify(10).habits

    def test_nan_rejected(self):
        with pytest.raises(ValueError):
            classify(float("nan"))


class TestSeverityRank:
    def test_order(self):
        assert [severity_rank(s) for s in AqiStatus] == [0, 1, 2, 3]

    def test_accepts_plain_string(self):
        assert severity_rank("Unhealthy") == 2


class TestPm25ToUsAqi:
    @pytest.mark.parametrize(
        "concentration, expected",
        [
            (0.0, 0),
            (12.0, 50),
            (12.1, 51),
            (35.4, 100),
            (55.4, 150),
            (150.4, 200),
            (500.4, 500),
        ],
    )
    def test_breakpoints(self, concentration, expected):
        assert pm25_to_us_aqi(concentration) == expected

    def test_interpolates_inside_band(self):
        # halfway through the first band
        assert pm25_to_us_aqi(6.0) == 25

    def test_caps_at_500(self):
        assert pm25_to_us_aqi(900) == 500

    def test_gap_between_bands(self):
        assert pm25_to_us_aqi(12.05) == 51

    def test_negative_is_zero(self):
        assert pm25_to_us_aqi(-3) == 0
