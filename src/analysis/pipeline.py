"""
Overtake pipeline for WhenKas.

Runs the whole analysis for one set of parameters:
1. Fetch the CSV sources concurrently (2 files for prices, 4 for hashrate)
2. Parse and merge each metric into a TimeSeries
3. Fit power laws and project them over the horizon
4. Build the reference curve (supply parity, or Bitcoin's projected hashrate)
5. Find the first crossing and assemble chart data

Every run starts from scratch. A run that finishes after a newer run has
started is discarded (last parameters win).
"""

import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta

import pandas as pd

from analysis.intersection import IntersectionResult, find_crossing
from analysis.regression import (
    FitResult,
    InsufficientDataError,
    LogBase,
    fit,
    floor_day,
    parse_log_base,
)
from analysis.supply import supply_parity_curve
from config import (
    BITCOIN_GENESIS_DATE,
    DAYS_PER_PROJECTION_YEAR,
    DEFAULT_ASSET,
    DEFAULT_LOG_BASE,
    DEFAULT_MODE,
    KASPA_GENESIS_DATE,
    MAX_FETCH_WORKERS,
    MODE_PRICES,
    NO_DATA_MESSAGE,
    PROJECTION_YEARS,
    SUPPORTED_ASSETS,
    SUPPORTED_MODES,
    get_data_files,
)
from data.loader import TimeSeries, load_series
from data.sources import LocalCsvSource, RemoteCsvSource, SourceError, fetch_sources
from utils.logging import get_logger
from visualization.charts import ChartData, build_hashrate_chart, build_price_chart

logger = get_logger(__name__)

PROJECTION_DAYS = PROJECTION_YEARS * DAYS_PER_PROJECTION_YEAR


class PipelineError(Exception):
    """Base exception for pipeline errors."""

    pass


class NoDataError(PipelineError):
    """Raised when a run has no usable data (fetch failure or too few points)."""

    pass


@dataclass(frozen=True)
class PipelineParams:
    """User-facing parameters of one run. `now` is injected for reproducibility."""

    mode: str = DEFAULT_MODE
    log_base: str = DEFAULT_LOG_BASE
    asset: str = DEFAULT_ASSET
    now: datetime = field(default_factory=datetime.now)

    def __post_init__(self):
        if self.mode not in SUPPORTED_MODES:
            raise ValueError(f"Unsupported mode: {self.mode!r}")
        if self.asset not in SUPPORTED_ASSETS:
            raise ValueError(f"Unsupported asset: {self.asset!r}")
        parse_log_base(self.log_base)

    @property
    def key(self) -> tuple[str, str, str]:
        """Parameter tuple identifying a run, independent of the clock."""
        return (self.mode, parse_log_base(self.log_base).label, self.asset)


@dataclass(frozen=True)
class RunToken:
    """Identifies one in-flight run."""

    key: tuple[str, str, str]
    sequence: int


@dataclass
class PipelineResult:
    """Output of a completed run."""

    params: PipelineParams
    intersection: IntersectionResult
    fits: dict[str, FitResult]
    series: dict[str, TimeSeries]
    reference: pd.Series
    chart: ChartData

    @property
    def headline(self) -> str:
        return self.intersection.describe()


def _require_data(series: TimeSeries, label: str) -> TimeSeries:
    if series.empty:
        raise NoDataError(f"{NO_DATA_MESSAGE}: no valid {label} rows")
    return series


class OvertakePipeline:
    """
    Runs the overtake analysis against a data source.

    Usage:
        pipeline = OvertakePipeline(LocalCsvSource(Path("data")))
        result = pipeline.run(PipelineParams(mode="prices", log_base="10"))
        print(result.headline)
    """

    def __init__(
        self,
        source: LocalCsvSource | RemoteCsvSource | None = None,
        max_workers: int = MAX_FETCH_WORKERS,
    ):
        """
        Initialize the pipeline.

        Args:
            source: Where the CSV files are read from (default: local data dir)
            max_workers: Upper bound on concurrent fetches
        """
        self.source = source or LocalCsvSource()
        self.max_workers = max_workers

        self._lock = threading.Lock()
        self._sequence = 0
        self._current: RunToken | None = None

    # -------------------------------------------------------------------------
    # Run tokens
    # -------------------------------------------------------------------------

    def begin(self, params: PipelineParams) -> RunToken:
        """Register a new run; it supersedes any run still in flight."""
        with self._lock:
            self._sequence += 1
            token = RunToken(key=params.key, sequence=self._sequence)
            self._current = token
        return token

    def is_current(self, token: RunToken) -> bool:
        with self._lock:
            return token == self._current

    def run(self, params: PipelineParams) -> PipelineResult | None:
        """
        Run the pipeline, discarding the result if a newer run has started.

        Args:
            params: Run parameters

        Returns:
            PipelineResult, or None if the run went stale

        Raises:
            NoDataError: If data could not be fetched or is insufficient
        """
        token = self.begin(params)
        result = self.compute(params)

        if not self.is_current(token):
            logger.info("Discarding stale run %s #%d", token.key, token.sequence)
            return None

        return result

    # -------------------------------------------------------------------------
    # Computation
    # -------------------------------------------------------------------------

    def compute(self, params: PipelineParams) -> PipelineResult:
        """
        Run the pipeline without run-token bookkeeping.

        Fetch failures and insufficient data are logged and surfaced as
        NoDataError.
        """
        log_base = parse_log_base(params.log_base)
        logger.info("Running %s pipeline (%s, %s)", params.mode, params.asset.upper(), log_base)

        try:
            if params.mode == MODE_PRICES:
                return self._compute_prices(params, log_base)
            return self._compute_hashrate(params, log_base)
        except SourceError as e:
            logger.error("Failed to fetch data: %s", e)
            raise NoDataError(NO_DATA_MESSAGE) from e
        except InsufficientDataError as e:
            logger.error("Insufficient data: %s", e)
            raise NoDataError(NO_DATA_MESSAGE) from e

    def _fetch(self, names: list[str]) -> list[pd.DataFrame]:
        rows = fetch_sources(self.source, names, self.max_workers)
        return [rows[name] for name in names]

    def _compute_prices(self, params: PipelineParams, log_base: LogBase) -> PipelineResult:
        historical, live = self._fetch(get_data_files(MODE_PRICES, params.asset))

        series = _require_data(load_series(historical, live, KASPA_GENESIS_DATE), "price")
        logger.info(
            "Loaded %d price points (%s to %s)",
            len(series),
            series.first_date.date(),
            series.last_date.date(),
        )

        kaspa_fit = fit(series, series.min_day, series.max_day + PROJECTION_DAYS, log_base)
        reference = supply_parity_curve(kaspa_fit.max_day, params.asset)

        intersection = find_crossing(
            kaspa_fit.model,
            reference,
            kaspa_fit.min_day,
            kaspa_fit.max_day,
            KASPA_GENESIS_DATE,
            params.now,
        )

        chart = build_price_chart(
            series, kaspa_fit, reference, intersection, log_base, params.asset, params.now
        )

        return PipelineResult(
            params=params,
            intersection=intersection,
            fits={"kas": kaspa_fit},
            series={"kas": series},
            reference=reference,
            chart=chart,
        )

    def _compute_hashrate(self, params: PipelineParams, log_base: LogBase) -> PipelineResult:
        kaspa_historical, kaspa_live, bitcoin_historical, bitcoin_live = self._fetch(
            get_data_files(params.mode)
        )

        kaspa_series = _require_data(
            load_series(kaspa_historical, kaspa_live, KASPA_GENESIS_DATE), "Kaspa hashrate"
        )
        bitcoin_series = _require_data(
            load_series(bitcoin_historical, bitcoin_live, BITCOIN_GENESIS_DATE),
            "Bitcoin hashrate",
        )
        logger.info(
            "Loaded %d Kaspa and %d Bitcoin hashrate points",
            len(kaspa_series),
            len(bitcoin_series),
        )

        # Horizon runs from today, not from the last observation
        kaspa_max_day = days_since(params.now, KASPA_GENESIS_DATE) + PROJECTION_DAYS
        bitcoin_max_day = days_since(params.now, BITCOIN_GENESIS_DATE) + PROJECTION_DAYS

        kaspa_fit = fit(kaspa_series, kaspa_series.min_day, kaspa_max_day, log_base)
        bitcoin_fit = fit(bitcoin_series, bitcoin_series.min_day, bitcoin_max_day, log_base)

        reference = rebase_curve(bitcoin_fit.curve, BITCOIN_GENESIS_DATE, KASPA_GENESIS_DATE)

        intersection = find_crossing(
            kaspa_fit.model,
            reference,
            kaspa_fit.min_day,
            kaspa_fit.max_day,
            KASPA_GENESIS_DATE,
            params.now,
        )

        chart = build_hashrate_chart(
            kaspa_series,
            kaspa_fit,
            bitcoin_series,
            bitcoin_fit,
            intersection,
            log_base,
            params.asset,
            params.now,
        )

        return PipelineResult(
            params=params,
            intersection=intersection,
            fits={"kas": kaspa_fit, params.asset: bitcoin_fit},
            series={"kas": kaspa_series, params.asset: bitcoin_series},
            reference=reference,
            chart=chart,
        )


def days_since(at: datetime, genesis: datetime) -> int:
    """Whole days between genesis and `at` (floor)."""
    return floor_day((at - genesis) / timedelta(days=1))


def rebase_curve(curve: pd.Series, from_genesis: datetime, to_genesis: datetime) -> pd.Series:
    """
    Re-index a curve from one genesis to another, dropping days before the new genesis.

    Args:
        curve: Series indexed by whole days since `from_genesis`
        from_genesis: Genesis the curve is indexed from
        to_genesis: Genesis to index by instead (later than from_genesis)

    Returns:
        Series indexed by whole days since `to_genesis`
    """
    offset = (to_genesis - from_genesis).days
    rebased = pd.Series(
        curve.to_numpy(),
        index=pd.Index(curve.index - offset, name="day"),
        name=curve.name,
    )
    return rebased[rebased.index >= 0]
