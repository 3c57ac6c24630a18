"""
Series loader for WhenKas.

Turns the raw "Start,Open" rows of a historical file and a live (API) file
into one date-ordered series:
- Parses timestamps and values, dropping rows that do not parse
- Computes fractional days since the asset's genesis
- Merges both sources by calendar date, preferring the historical row
- Sorts ascending by date

Pure transform: nothing here raises on bad rows. An empty result is left
for the caller to report.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime
from io import StringIO
from pathlib import Path

import numpy as np
import pandas as pd

from config import DATE_COLUMN, VALUE_COLUMN
from utils.logging import get_logger

logger = get_logger(__name__)

Rows = pd.DataFrame | Iterable[Mapping[str, object]]

SERIES_COLUMNS = ["days_since_genesis", "value"]


@dataclass(frozen=True)
class ObservedPoint:
    """A single observation of a metric."""

    date: pd.Timestamp
    days_since_genesis: float
    value: float


@dataclass
class TimeSeries:
    """
    Date-ordered observations of one metric for one asset.

    The frame is indexed by normalized calendar date (one row per date,
    ascending) with columns "days_since_genesis" and "value".
    """

    df: pd.DataFrame
    genesis: datetime

    def __len__(self) -> int:
        return len(self.df)

    @property
    def empty(self) -> bool:
        return self.df.empty

    @property
    def min_day(self) -> float:
        return float(self.df["days_since_genesis"].min())

    @property
    def max_day(self) -> float:
        return float(self.df["days_since_genesis"].max())

    @property
    def first_date(self) -> pd.Timestamp:
        return self.df.index.min()

    @property
    def last_date(self) -> pd.Timestamp:
        return self.df.index.max()

    def points(self) -> list[ObservedPoint]:
        """Return the series as a list of ObservedPoint."""
        return [
            ObservedPoint(
                date=dt,
                days_since_genesis=float(row.days_since_genesis),
                value=float(row.value),
            )
            for dt, row in zip(self.df.index, self.df.itertuples(index=False))
        ]


def _to_frame(rows: Rows) -> pd.DataFrame:
    """Coerce a row source into a frame holding exactly the Start/Open columns."""
    if isinstance(rows, pd.DataFrame):
        return rows.reindex(columns=[DATE_COLUMN, VALUE_COLUMN])
    return pd.DataFrame.from_records(list(rows), columns=[DATE_COLUMN, VALUE_COLUMN])


def parse_rows(rows: Rows, genesis: datetime) -> pd.DataFrame:
    """
    Parse raw rows into dated observations.

    Rows whose date does not parse, whose day offset is not finite, or whose
    value is not a positive finite number are dropped. When a source repeats
    a calendar date, its last row for that date is kept.

    Args:
        rows: Sequence of {"Start": ..., "Open": ...} mappings or a DataFrame
        genesis: Genesis instant the day offsets are measured from

    Returns:
        DataFrame with columns "date", "days_since_genesis" and "value"
    """
    frame = _to_frame(rows)

    timestamps = pd.to_datetime(
        frame[DATE_COLUMN].astype("string"), errors="coerce", utc=True, format="mixed"
    ).dt.tz_localize(None)
    values = pd.to_numeric(frame[VALUE_COLUMN], errors="coerce").astype(float)
    days = (timestamps - pd.Timestamp(genesis)) / pd.Timedelta(days=1)

    valid = timestamps.notna() & np.isfinite(days) & np.isfinite(values) & (values > 0)

    dropped = int((~valid).sum())
    if dropped:
        logger.debug("Dropped %d malformed rows out of %d", dropped, len(frame))

    parsed = pd.DataFrame(
        {
            "date": timestamps[valid].dt.normalize(),
            "days_since_genesis": days[valid].astype(float),
            "value": values[valid],
        }
    )
    return parsed.drop_duplicates(subset="date", keep="last")


def load_series(
    historical_rows: Rows,
    live_rows: Rows,
    genesis: datetime,
) -> TimeSeries:
    """
    Merge historical and live rows into a single series.

    For a calendar date present in both sources the historical row wins and
    the live row is discarded.

    Args:
        historical_rows: Rows from the long-run historical file
        live_rows: Rows from the recent API file
        genesis: Genesis instant of the asset

    Returns:
        TimeSeries sorted ascending by date, one point per date
    """
    historical = parse_rows(historical_rows, genesis)
    live = parse_rows(live_rows, genesis)

    live = live[~live["date"].isin(historical["date"])]

    frames = [frame for frame in (historical, live) if not frame.empty]
    if frames:
        merged = pd.concat(frames, ignore_index=True)
    else:
        merged = historical

    merged = merged.sort_values("date", kind="stable").set_index("date")
    merged.index.name = "date"

    logger.debug(
        "Merged %d historical and %d live points into %d",
        len(historical),
        len(live),
        len(merged),
    )

    return TimeSeries(df=merged[SERIES_COLUMNS], genesis=genesis)


def read_rows(source: Path | str | StringIO) -> pd.DataFrame:
    """
    Read a "Start,Open" CSV into raw rows.

    Everything is read as text; parsing is left to load_series so that a
    malformed cell only costs its own row.

    Args:
        source: Path to a CSV file, or a buffer holding CSV text

    Returns:
        DataFrame of raw string cells (empty if the file has no rows)
    """
    try:
        return pd.read_csv(source, dtype=str, skip_blank_lines=True)
    except pd.errors.EmptyDataError:
        logger.warning("CSV source %s is empty", source)
        return pd.DataFrame(columns=[DATE_COLUMN, VALUE_COLUMN])
