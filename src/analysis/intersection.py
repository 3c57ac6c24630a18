"""
Overtake date estimation for WhenKas.

Scans whole day offsets from the first observed day to the horizon and
reports the first day on which the reference curve is at or below the
subject's projected curve. Only the earliest crossing is reported.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta

import numpy as np
import pandas as pd

from analysis.regression import RegressionModel, floor_day
from config import DAYS_PER_YEAR, NO_INTERSECTION_MESSAGE
from utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class IntersectionResult:
    """Outcome of a crossing search. All fields are None when nothing crosses."""

    crossing_day: int | None = None
    crossing_date: datetime | None = None
    years_from_now: float | None = None

    @property
    def found(self) -> bool:
        return self.crossing_day is not None

    def describe(self) -> str:
        """Headline text, e.g. "March 2031, 6.4 years from now"."""
        if not self.found:
            return NO_INTERSECTION_MESSAGE
        return f"{self.crossing_date:%B %Y}, {self.years_from_now:.1f} years from now"


def find_crossing(
    model: RegressionModel,
    reference: pd.Series,
    min_day: float,
    max_day: float,
    genesis: datetime,
    now: datetime,
) -> IntersectionResult:
    """
    Find the first day the reference falls to or below the model's projection.

    Days missing from the reference never count as a crossing.

    Args:
        model: Fitted model of the subject asset
        reference: Series indexed by whole day offset since `genesis`
        min_day: First day to check (floored, at least 1)
        max_day: Last day to check (floored, inclusive)
        genesis: Genesis instant of the subject asset
        now: Current instant for the years-from-now figure

    Returns:
        IntersectionResult, empty if no day in range satisfies the condition
    """
    start = max(floor_day(min_day), 1)
    end = floor_day(max_day)

    if end < start:
        return IntersectionResult()

    days = np.arange(start, end + 1)
    reference_values = reference.reindex(days).to_numpy(dtype=float)
    predicted = model.predict(days.astype(float))

    with np.errstate(invalid="ignore"):
        hits = np.flatnonzero(reference_values <= predicted)

    if hits.size == 0:
        logger.info("No crossing between day %d and day %d", start, end)
        return IntersectionResult()

    crossing_day = int(days[hits[0]])
    crossing_date = genesis + timedelta(days=crossing_day)
    years_from_now = (crossing_date - now) / timedelta(days=DAYS_PER_YEAR)

    logger.info("Crossing on day %d (%s)", crossing_day, crossing_date.date())

    return IntersectionResult(
        crossing_day=crossing_day,
        crossing_date=crossing_date,
        years_from_now=years_from_now,
    )
