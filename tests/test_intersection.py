"""
Tests for overtake date estimation.
"""

from datetime import datetime, timedelta

import numpy as np
import pandas as pd
import pytest

from analysis.intersection import IntersectionResult, find_crossing
from analysis.regression import BASE10, RegressionModel
from config import KASPA_GENESIS_DATE, NO_INTERSECTION_MESSAGE

# predict(day) == day
IDENTITY = RegressionModel(slope=1.0, intercept=0.0, r2=1.0, log_base=BASE10)


def reference_curve(values: dict[int, float]) -> pd.Series:
    return pd.Series(values, name="reference").rename_axis("day")


class TestFindCrossing:
    """Tests for the first-crossing search."""

    def test_hit_at_min_day(self):
        """Test that a reference already below the model crosses on the first day."""
        days = np.arange(1, 101)
        reference = pd.Series(0.5, index=pd.Index(days, name="day"))

        result = find_crossing(IDENTITY, reference, 10, 100, KASPA_GENESIS_DATE, KASPA_GENESIS_DATE)

        assert result.found
        assert result.crossing_day == 10

    def test_first_crossing_only(self):
        """Test that the earliest day satisfying the condition wins."""
        # Identity model first reaches 49.5 on day 50
        days = np.arange(1, 201)
        reference = pd.Series(49.5, index=pd.Index(days, name="day"))

        result = find_crossing(IDENTITY, reference, 1, 200, KASPA_GENESIS_DATE, KASPA_GENESIS_DATE)

        assert result.crossing_day == 50

    def test_equality_counts_as_crossing(self):
        """Test that reference == prediction is a crossing."""
        reference = reference_curve({8: 100.0, 9: 100.0, 10: 10.0, 11: 1.0})

        result = find_crossing(IDENTITY, reference, 8, 11, KASPA_GENESIS_DATE, KASPA_GENESIS_DATE)

        assert result.crossing_day == 10

    def test_no_crossing(self):
        """Test that a reference always above the model gives no result."""
        days = np.arange(1, 101)
        reference = pd.Series(1e9, index=pd.Index(days, name="day"))

        result = find_crossing(IDENTITY, reference, 1, 100, KASPA_GENESIS_DATE, KASPA_GENESIS_DATE)

        assert not result.found
        assert result == IntersectionResult()
        assert result.describe() == NO_INTERSECTION_MESSAGE

    def test_crossing_after_max_day_not_reported(self):
        """Test that the scan stops at max_day."""
        days = np.arange(1, 201)
        reference = pd.Series(150.0, index=pd.Index(days, name="day"))

        result = find_crossing(IDENTITY, reference, 1, 100, KASPA_GENESIS_DATE, KASPA_GENESIS_DATE)

        assert not result.found

    def test_missing_reference_days_never_cross(self):
        """Test that gaps in the reference are skipped."""
        reference = reference_curve({1: 1e9, 2: 1e9, 4: 0.0})

        result = find_crossing(IDENTITY, reference, 1, 4, KASPA_GENESIS_DATE, KASPA_GENESIS_DATE)

        assert result.crossing_day == 4

    def test_infinite_reference_never_crosses(self):
        """Test that an infinite reference value is never at or below the model."""
        reference = reference_curve({1: np.inf, 2: np.inf, 3: 1.0})

        result = find_crossing(IDENTITY, reference, 1, 3, KASPA_GENESIS_DATE, KASPA_GENESIS_DATE)

        assert result.crossing_day == 3

    def test_fractional_bounds_are_floored(self):
        """Test that min_day and max_day round down to whole days."""
        reference = reference_curve({day: 0.0 for day in range(1, 20)})

        result = find_crossing(IDENTITY, reference, 3.9, 10.2, KASPA_GENESIS_DATE, KASPA_GENESIS_DATE)

        assert result.crossing_day == 3

    def test_min_day_zero_starts_at_one(self):
        """Test that day 0 is never evaluated."""
        reference = reference_curve({0: 0.0, 1: 0.0})

        result = find_crossing(IDENTITY, reference, 0, 1, KASPA_GENESIS_DATE, KASPA_GENESIS_DATE)

        assert result.crossing_day == 1

    def test_empty_range(self):
        """Test that an empty range reports no crossing."""
        reference = reference_curve({1: 0.0})

        result = find_crossing(IDENTITY, reference, 10, 5, KASPA_GENESIS_DATE, KASPA_GENESIS_DATE)

        assert not result.found


class TestCrossingDate:
    """Tests for the date and years-from-now figures."""

    def test_crossing_date_from_genesis(self):
        """Test that the crossing date is genesis plus the crossing day."""
        reference = reference_curve({day: 999.5 for day in range(1, 2001)})

        result = find_crossing(IDENTITY, reference, 1, 2000, KASPA_GENESIS_DATE, KASPA_GENESIS_DATE)

        assert result.crossing_day == 1000
        assert result.crossing_date == KASPA_GENESIS_DATE + timedelta(days=1000)

    def test_years_from_now(self):
        """Test the years-from-now figure against a fixed clock."""
        reference = reference_curve({day: 999.5 for day in range(1, 2001)})
        now = KASPA_GENESIS_DATE + timedelta(days=269)

        result = find_crossing(IDENTITY, reference, 1, 2000, KASPA_GENESIS_DATE, now)

        assert result.years_from_now == pytest.approx(731 / 365.25)

    def test_years_from_now_negative_for_past_crossing(self):
        """Test that a crossing before now gives a negative figure."""
        reference = reference_curve({day: 0.0 for day in range(1, 10)})
        now = KASPA_GENESIS_DATE + timedelta(days=366.25)

        result = find_crossing(IDENTITY, reference, 1, 9, KASPA_GENESIS_DATE, now)

        assert result.years_from_now == pytest.approx(-1.0)

    def test_describe(self):
        """Test the headline text."""
        result = IntersectionResult(
            crossing_day=3432,
            crossing_date=datetime(2031, 3, 15),
            years_from_now=6.4321,
        )

        assert result.describe() == "March 2031, 6.4 years from now"
