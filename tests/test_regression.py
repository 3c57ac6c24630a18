"""
Tests for the power-law regression.

Tests cover:
- Log base selection
- Least squares fit in log-log space
- Projection over whole day offsets
- Insufficient data handling
"""

import math

import numpy as np
import pytest

from analysis.regression import (
    BASE2,
    BASE10,
    LOG_BASES,
    NATURAL,
    InsufficientDataError,
    LogBase,
    RegressionModel,
    fit,
    fit_power_law,
    floor_day,
    parse_log_base,
    project,
)
from config import KASPA_GENESIS_DATE
from conftest import power_law_rows
from data.loader import load_series


class TestParseLogBase:
    """Tests for log base selection."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("2", BASE2),
            ("10", BASE10),
            ("e", NATURAL),
            ("E", NATURAL),
            (2, BASE2),
            (10, BASE10),
            (" 10 ", BASE10),
        ],
    )
    def test_supported_values(self, value, expected):
        """Test accepted spellings."""
        assert parse_log_base(value) is expected

    def test_passes_through_log_base(self):
        """Test that a LogBase is returned unchanged."""
        assert parse_log_base(NATURAL) is NATURAL

    @pytest.mark.parametrize("value", ["3", "ln", "", 16])
    def test_unsupported_values(self, value):
        """Test that other bases are rejected."""
        with pytest.raises(ValueError):
            parse_log_base(value)

    def test_str(self):
        """Test the display name."""
        assert str(BASE2) == "log2"
        assert str(NATURAL) == "loge"

    @pytest.mark.parametrize("base", list(LOG_BASES.values()))
    def test_log_and_pow_are_inverse(self, base: LogBase):
        """Test that pow undoes log for every base."""
        values = np.array([0.001, 1.0, 7.5, 1e12])

        np.testing.assert_allclose(base.pow(base.log(values)), values, rtol=1e-12)

    @pytest.mark.parametrize("base", [BASE2, BASE10, NATURAL])
    def test_predict_is_linear_in_log_space(self, base: LogBase):
        """Test that log(predict(day)) equals slope * log(day) + intercept."""
        model = RegressionModel(slope=1.7, intercept=-3.2, r2=0.9, log_base=base)
        days = np.array([1.0, 2.0, 37.0, 1533.0, 5000.0])

        np.testing.assert_allclose(
            base.log(model.predict(days)),
            model.slope * base.log(days) + model.intercept,
            rtol=1e-9,
            atol=1e-12,
        )


class TestFitPowerLaw:
    """Tests for the log-log least squares fit."""

    def test_two_points_base10(self):
        """Test an exact fit through (1, 1) and (10, 100)."""
        model = fit_power_law([1, 10], [1, 100], BASE10)

        assert model.slope == pytest.approx(2.0)
        assert model.intercept == pytest.approx(0.0, abs=1e-12)
        assert model.r2 == pytest.approx(1.0)
        assert model.predict(100) == pytest.approx(10_000)

    def test_linear_relationship(self):
        """Test that value = day gives slope 1 and intercept 0."""
        model = fit_power_law([1, 10, 100], [1, 10, 100], BASE10)

        assert model.slope == pytest.approx(1.0)
        assert model.intercept == pytest.approx(0.0, abs=1e-12)
        assert model.predict(1000) == pytest.approx(1000)

    @pytest.mark.parametrize("base", [BASE2, BASE10, NATURAL])
    def test_recovers_power_law_in_every_base(self, base):
        """Test that an exact power law is recovered regardless of base."""
        days = np.arange(10, 500, 7, dtype=float)
        values = 3.5e-4 * days**2.25

        model = fit_power_law(days, values, base)

        assert model.slope == pytest.approx(2.25)
        assert model.r2 == pytest.approx(1.0)
        assert model.predict(1000.0) == pytest.approx(3.5e-4 * 1000**2.25)

    @pytest.mark.parametrize("base", [BASE2, BASE10, NATURAL])
    def test_prediction_independent_of_base(self, base):
        """Test that noisy data gives the same predictions in every base."""
        rng = np.random.default_rng(42)
        days = np.arange(1, 200, dtype=float)
        values = 2.0 * days**1.5 * np.exp(rng.normal(0, 0.3, size=days.size))

        reference = fit_power_law(days, values, NATURAL)
        model = fit_power_law(days, values, base)

        assert model.slope == pytest.approx(reference.slope)
        assert model.r2 == pytest.approx(reference.r2)
        assert model.predict(400.0) == pytest.approx(reference.predict(400.0))

    def test_r2_in_unit_interval(self):
        """Test that a noisy fit still gives r2 in [0, 1]."""
        rng = np.random.default_rng(0)
        days = np.arange(1, 100, dtype=float)
        values = np.exp(rng.normal(0, 1, size=days.size))

        model = fit_power_law(days, values, BASE2)

        assert 0.0 <= model.r2 <= 1.0

    def test_constant_values(self):
        """Test that flat data fits a zero slope with r2 of 1."""
        model = fit_power_law([1, 2, 4], [4, 4, 4], BASE2)

        assert model.slope == pytest.approx(0.0)
        assert model.r2 == 1.0
        assert model.predict(50) == pytest.approx(4.0)

    def test_predict_array(self):
        """Test vectorized predictions."""
        model = RegressionModel(slope=1.0, intercept=0.0, r2=1.0, log_base=BASE10)

        np.testing.assert_allclose(model.predict(np.array([1.0, 2.0, 3.0])), [1.0, 2.0, 3.0])

    def test_coefficients_not_rounded(self):
        """Test that fitted coefficients keep full precision."""
        days = np.array([1.0, 3.0])
        values = np.array([1.0, 3.0**1.234567])

        model = fit_power_law(days, values, NATURAL)

        assert model.slope == pytest.approx(1.234567, abs=1e-9)

    @pytest.mark.parametrize("count", [0, 1])
    def test_too_few_points(self, count):
        """Test that zero or one point cannot be fitted."""
        with pytest.raises(InsufficientDataError):
            fit_power_law([1.0] * count, [2.0] * count, BASE2)

    def test_all_points_same_day(self):
        """Test that a vertical line cannot be fitted."""
        with pytest.raises(InsufficientDataError):
            fit_power_law([5.0, 5.0], [1.0, 2.0], BASE2)


class TestProject:
    """Tests for projection over day ranges."""

    def test_inclusive_bounds(self):
        """Test that both ends of the range are included."""
        model = RegressionModel(slope=1.0, intercept=0.0, r2=1.0, log_base=BASE10)

        curve = project(model, 3, 7)

        assert curve.index.tolist() == [3, 4, 5, 6, 7]
        np.testing.assert_allclose(curve.to_numpy(), [3, 4, 5, 6, 7])
        assert curve.index.name == "day"

    def test_single_day(self):
        """Test a range of one day."""
        model = RegressionModel(slope=2.0, intercept=0.0, r2=1.0, log_base=BASE2)

        curve = project(model, 4, 4)

        assert curve.to_dict() == {4: pytest.approx(16.0)}


class TestFit:
    """Tests for fitting a TimeSeries."""

    def test_curve_bounds(self):
        """Test that the curve spans the floored range."""
        series = load_series(
            power_law_rows(KASPA_GENESIS_DATE, range(10, 20), 1.0, 2.0), [], KASPA_GENESIS_DATE
        )

        result = fit(series, 10.7, 30.9, BASE2)

        assert result.min_day == 10
        assert result.max_day == 30
        assert len(result.curve) == 21
        assert result.curve.loc[30] == pytest.approx(900.0)

    def test_min_day_clamped_to_one(self):
        """Test that projection never starts at day 0."""
        series = load_series(
            power_law_rows(KASPA_GENESIS_DATE, range(1, 5), 1.0, 1.0), [], KASPA_GENESIS_DATE
        )

        result = fit(series, 0.0, 5, BASE10)

        assert result.min_day == 1
        assert np.isfinite(result.curve.to_numpy()).all()

    def test_genesis_point_excluded(self):
        """Test that a point at day 0 does not break the fit."""
        rows = [{"Start": KASPA_GENESIS_DATE.strftime("%Y-%m-%d"), "Open": "99"}]
        rows += power_law_rows(KASPA_GENESIS_DATE, range(1, 10), 2.0, 3.0)
        series = load_series(rows, [], KASPA_GENESIS_DATE)

        result = fit(series, 1, 10, NATURAL)

        assert result.model.slope == pytest.approx(3.0)
        assert math.isfinite(result.model.intercept)

    def test_insufficient_after_exclusion(self):
        """Test that a genesis point plus one other point is not enough."""
        rows = [
            {"Start": "2021-11-07", "Open": "1"},
            {"Start": "2021-11-17", "Open": "2"},
        ]
        series = load_series(rows, [], KASPA_GENESIS_DATE)

        with pytest.raises(InsufficientDataError):
            fit(series, 1, 100, BASE2)

    def test_empty_range(self):
        """Test that a max_day before min_day is rejected."""
        series = load_series(
            power_law_rows(KASPA_GENESIS_DATE, range(10, 20), 1.0, 2.0), [], KASPA_GENESIS_DATE
        )

        with pytest.raises(ValueError):
            fit(series, 20, 10, BASE2)


class TestFloorDay:
    """Tests for the whole-day rounding rule."""

    @pytest.mark.parametrize(
        "day,expected",
        [(0.0, 0), (0.99, 0), (1.0, 1), (1533.5, 1533), (-0.5, -1)],
    )
    def test_floor(self, day, expected):
        """Test that fractional days round down."""
        assert floor_day(day) == expected
