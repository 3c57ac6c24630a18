"""
Configuration constants for the WhenKas project.

WhenKas - Power-law projection of when Kaspa overtakes Bitcoin.
"""

from datetime import datetime
from pathlib import Path

# =============================================================================
# Project Paths
# =============================================================================

PROJECT_ROOT = Path(__file__).parent.parent
DATA_DIR = PROJECT_ROOT / "data"
OUTPUT_DIR = PROJECT_ROOT / "output"
CHARTS_DIR = OUTPUT_DIR / "charts"

# =============================================================================
# Genesis Instants
# =============================================================================

# Day offsets for each asset are measured from these instants (UTC, naive)
BITCOIN_GENESIS_DATE = datetime(2009, 1, 3)
KASPA_GENESIS_DATE = datetime(2021, 11, 7)

# =============================================================================
# Bitcoin Issuance Schedule
# =============================================================================

BITCOIN_BLOCK_INTERVAL_SECONDS = 10 * 60
BITCOIN_HALVING_INTERVAL = 210_000  # blocks per halving epoch
BITCOIN_INITIAL_REWARD = 50.0

# =============================================================================
# Kaspa Emission Schedule
# =============================================================================

# Bootstrap phase: first two weeks after genesis
KASPA_BOOTSTRAP_END_DATE = datetime(2021, 11, 21)
# Constant-rate phase ends at the deflationary cutover
KASPA_DEFLATIONARY_START_DATE = datetime(2022, 5, 8)

KASPA_PRE_DEFLATIONARY_REWARD = 500.0  # KAS per second
KASPA_DEFLATIONARY_INITIAL_REWARD = 440.0  # KAS per second
KASPA_DEFLATIONARY_DECAY = 0.5 ** (1 / 12)  # applied once per decay period
KASPA_DECAY_PERIOD_SECONDS = 365.25 * 24 * 60 * 60

# Keeps the supply-parity curve away from exact zero
SUPPLY_PARITY_EPSILON = 1e-8

# =============================================================================
# Projection Configuration
# =============================================================================

# Horizon extension: observed range + PROJECTION_YEARS "years" of 360 days
PROJECTION_YEARS = 12
DAYS_PER_PROJECTION_YEAR = 360

# "Years from now" uses calendar-average years
DAYS_PER_YEAR = 365.25

# Minimum number of usable points for a regression
MIN_REGRESSION_POINTS = 2

# =============================================================================
# Pipeline Parameters
# =============================================================================

MODE_PRICES = "prices"
MODE_HASHRATE = "hashrate"
SUPPORTED_MODES = (MODE_HASHRATE, MODE_PRICES)

SUPPORTED_LOG_BASES = ("2", "10", "e")

# Assets Kaspa can be compared against (only BTC has a supply model)
SUPPORTED_ASSETS = ("btc",)

DEFAULT_MODE = MODE_HASHRATE
DEFAULT_LOG_BASE = "2"
DEFAULT_ASSET = "btc"

# =============================================================================
# Data Sources
# =============================================================================

# CSV files with a "Start,Open" header, produced by the data collectors
PRICES_HISTORICAL_FILE = "kaspa_prices_{asset}_historical.csv"
PRICES_API_FILE = "kaspa_prices_{asset}_api.csv"
KASPA_HASHRATE_HISTORICAL_FILE = "kaspa_hashrate_historical.csv"
KASPA_HASHRATE_API_FILE = "kaspa_hashrate_api.csv"
BITCOIN_HASHRATE_HISTORICAL_FILE = "bitcoin_hashrate_historical.csv"
BITCOIN_HASHRATE_API_FILE = "bitcoin_hashrate_api.csv"

DATE_COLUMN = "Start"
VALUE_COLUMN = "Open"

# Published copy of the data directory
REMOTE_DATA_BASE_URL = "https://whenkas.github.io/data"

# Concurrent source fetches per pipeline run (at most four files)
MAX_FETCH_WORKERS = 4

# Retry configuration for remote fetches
API_MAX_RETRIES = 5
API_RETRY_MIN_WAIT = 1  # seconds
API_RETRY_MAX_WAIT = 60  # seconds
API_REQUEST_TIMEOUT = 30  # seconds


def get_data_files(mode: str, asset: str = DEFAULT_ASSET) -> list[str]:
    """
    List the CSV file names a pipeline run needs.

    Args:
        mode: "prices" or "hashrate"
        asset: Comparison asset symbol (lowercase)

    Returns:
        File names, historical before live, subject before comparison asset
    """
    if mode == MODE_PRICES:
        return [
            PRICES_HISTORICAL_FILE.format(asset=asset),
            PRICES_API_FILE.format(asset=asset),
        ]
    if mode == MODE_HASHRATE:
        return [
            KASPA_HASHRATE_HISTORICAL_FILE,
            KASPA_HASHRATE_API_FILE,
            BITCOIN_HASHRATE_HISTORICAL_FILE,
            BITCOIN_HASHRATE_API_FILE,
        ]
    raise ValueError(f"Unknown mode: {mode}")


def get_all_data_files() -> list[str]:
    """All CSV file names used by any mode and supported asset."""
    files = []
    for asset in SUPPORTED_ASSETS:
        files.extend(get_data_files(MODE_PRICES, asset))
    files.extend(get_data_files(MODE_HASHRATE))
    return files


# =============================================================================
# Visualization Configuration
# =============================================================================

COLORS = {
    "observed": "blue",
    "subject_fit": "red",
    "reference": "green",
    "background": "#f4f4f4",
    "tick_text": "#7f7f7f",
}

# Month ticks start at this year
CHART_TICK_START_YEAR = 2022
# Months (1-based) that get an x-axis tick each year
CHART_TICK_MONTHS = (1, 7)

CHART_WIDTH = 920
CHART_HEIGHT = 440

CHART_FONT_FAMILY = "Arial, sans-serif"
CHART_TICK_SIZE = 8

NO_INTERSECTION_MESSAGE = "No intersection found within the available data range."
NO_DATA_MESSAGE = "No data available"
