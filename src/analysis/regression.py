"""
Power-law regression for WhenKas.

Fits log(value) = slope * log(day) + intercept by ordinary least squares,
i.e. value ~ a * day^slope in linear space, and projects the fitted curve
over a dense range of whole day offsets.

The logarithm base (2, 10 or e) is chosen once per pipeline run and passed
explicitly to every function that takes a log.
"""

import math
from collections.abc import Callable
from dataclasses import dataclass

import numpy as np
import pandas as pd

from config import MIN_REGRESSION_POINTS
from data.loader import TimeSeries
from utils.logging import get_logger

logger = get_logger(__name__)


class InsufficientDataError(Exception):
    """Raised when a series cannot support a regression."""

    pass


@dataclass(frozen=True)
class LogBase:
    """A logarithm base with its paired log and pow functions."""

    label: str
    log: Callable[[np.ndarray | float], np.ndarray | float]
    pow: Callable[[np.ndarray | float], np.ndarray | float]

    def __str__(self) -> str:
        return f"log{self.label}"


BASE2 = LogBase("2", np.log2, lambda y: np.power(2.0, y))
BASE10 = LogBase("10", np.log10, lambda y: np.power(10.0, y))
NATURAL = LogBase("e", np.log, np.exp)

LOG_BASES = {base.label: base for base in (BASE2, BASE10, NATURAL)}


def parse_log_base(value: str | int | LogBase) -> LogBase:
    """
    Resolve a user-facing base selection.

    Args:
        value: "2", "10", "e" (ints 2 and 10 also accepted) or a LogBase

    Returns:
        Matching LogBase
    """
    if isinstance(value, LogBase):
        return value

    key = str(value).strip().lower()
    if key not in LOG_BASES:
        raise ValueError(f"Unsupported log base: {value!r} (expected one of {list(LOG_BASES)})")
    return LOG_BASES[key]


@dataclass(frozen=True)
class RegressionModel:
    """Straight line in log-log space."""

    slope: float
    intercept: float
    r2: float
    log_base: LogBase

    def predict(self, day):
        """
        Projected value at a day offset.

        Only defined for day > 0. Accepts scalars or numpy arrays.
        """
        log_base = self.log_base
        return log_base.pow(self.slope * log_base.log(day) + self.intercept)


@dataclass
class FitResult:
    """A fitted model together with its projected curve."""

    model: RegressionModel
    curve: pd.Series

    @property
    def min_day(self) -> int:
        return int(self.curve.index[0])

    @property
    def max_day(self) -> int:
        return int(self.curve.index[-1])


def floor_day(day: float) -> int:
    """Convert a fractional day offset to a whole day (floor)."""
    return math.floor(day)


def fit_power_law(days, values, log_base: LogBase) -> RegressionModel:
    """
    Ordinary least squares on (log(day), log(value)).

    Args:
        days: Positive day offsets
        values: Positive observed values
        log_base: Base for both logarithms

    Returns:
        RegressionModel with r2 on the transformed data, clamped to [0, 1]

    Raises:
        InsufficientDataError: Fewer than two points, or all on the same day
    """
    x = log_base.log(np.asarray(days, dtype=float))
    y = log_base.log(np.asarray(values, dtype=float))

    if len(x) < MIN_REGRESSION_POINTS:
        raise InsufficientDataError(
            f"Need at least {MIN_REGRESSION_POINTS} points for a regression, got {len(x)}"
        )

    x_mean = x.mean()
    y_mean = y.mean()
    sxx = ((x - x_mean) ** 2).sum()

    if sxx == 0:
        raise InsufficientDataError("All points share the same day offset")

    slope = ((x - x_mean) * (y - y_mean)).sum() / sxx
    intercept = y_mean - slope * x_mean

    residuals = y - (slope * x + intercept)
    ss_res = (residuals**2).sum()
    ss_tot = ((y - y_mean) ** 2).sum()
    r2 = 1.0 if ss_tot == 0 else 1.0 - ss_res / ss_tot

    return RegressionModel(
        slope=float(slope),
        intercept=float(intercept),
        r2=float(min(max(r2, 0.0), 1.0)),
        log_base=log_base,
    )


def project(model: RegressionModel, min_day: int, max_day: int) -> pd.Series:
    """Evaluate the model at every whole day in [min_day, max_day]."""
    days = np.arange(min_day, max_day + 1)
    return pd.Series(
        model.predict(days.astype(float)),
        index=pd.Index(days, name="day"),
        name="projected",
    )


def fit(
    series: TimeSeries,
    min_day: float,
    max_day: float,
    log_base: LogBase,
) -> FitResult:
    """
    Fit a series and project it from min_day to max_day.

    Points on or before genesis (day <= 0) cannot be log-transformed and are
    left out of the fit. Both bounds are floored to whole days; min_day is
    raised to 1 if needed so the projection never evaluates log(0).

    Args:
        series: Observed series
        min_day: First projected day offset
        max_day: Last projected day offset (inclusive)
        log_base: Base used for the log-log transform

    Returns:
        FitResult holding the model and the projected curve

    Raises:
        InsufficientDataError: Too few usable points
    """
    frame = series.df
    usable = frame[frame["days_since_genesis"] > 0]

    if len(usable) < len(frame):
        logger.debug("Ignoring %d points at or before genesis", len(frame) - len(usable))

    model = fit_power_law(usable["days_since_genesis"], usable["value"], log_base)

    start = max(floor_day(min_day), 1)
    end = floor_day(max_day)
    if end < start:
        raise ValueError(f"Projection range is empty: {start}..{end}")

    logger.debug(
        "Fitted %s power law: slope=%.4f intercept=%.4f r2=%.4f over %d points",
        log_base,
        model.slope,
        model.intercept,
        model.r2,
        len(usable),
    )

    return FitResult(model=model, curve=project(model, start, end))
