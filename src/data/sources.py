"""
CSV data sources for WhenKas.

The price and hashrate series live in flat "Start,Open" CSV files written by
the data collectors. They can be read from:
- A local data directory (LocalCsvSource)
- A published copy served over HTTP (RemoteCsvSource)

Both return raw rows; parsing happens in data.loader.
"""

from concurrent.futures import ThreadPoolExecutor
from importlib.metadata import PackageNotFoundError, version
from io import StringIO
from pathlib import Path

import pandas as pd
import requests
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from tqdm import tqdm

from config import (
    API_MAX_RETRIES,
    API_REQUEST_TIMEOUT,
    API_RETRY_MAX_WAIT,
    API_RETRY_MIN_WAIT,
    DATA_DIR,
    MAX_FETCH_WORKERS,
    REMOTE_DATA_BASE_URL,
)
from data.loader import read_rows
from utils.logging import get_logger

logger = get_logger(__name__)


def get_version() -> str:
    """Get package version for User-Agent."""
    try:
        return version("whenkas")
    except PackageNotFoundError:
        return "dev"


class SourceError(Exception):
    """Base exception for data source errors."""

    pass


class TransientSourceError(SourceError):
    """Raised for failures worth retrying (timeouts, 429, 5xx)."""

    pass


class LocalCsvSource:
    """
    Reads data files from a local directory.

    Usage:
        source = LocalCsvSource(Path("data"))
        rows = source.fetch("kaspa_hashrate_historical.csv")
    """

    def __init__(self, data_dir: Path = DATA_DIR):
        self.data_dir = Path(data_dir)

    def __repr__(self) -> str:
        return f"LocalCsvSource({self.data_dir})"

    def path_for(self, name: str) -> Path:
        return self.data_dir / name

    def fetch(self, name: str) -> pd.DataFrame:
        """
        Read one CSV file.

        Args:
            name: File name inside the data directory

        Returns:
            Raw rows as a DataFrame of strings

        Raises:
            SourceError: If the file is missing or cannot be parsed
        """
        path = self.path_for(name)
        if not path.exists():
            raise SourceError(f"Data file not found: {path}")

        try:
            rows = read_rows(path)
        except (OSError, UnicodeDecodeError, pd.errors.ParserError) as e:
            raise SourceError(f"Could not read {path}: {e}") from e

        logger.debug("Read %d rows from %s", len(rows), path)
        return rows


class RemoteCsvSource:
    """
    Reads data files from a published copy of the data directory.

    Transient HTTP failures are retried with exponential back-off.

    Usage:
        source = RemoteCsvSource()
        rows = source.fetch("bitcoin_hashrate_api.csv")
    """

    def __init__(
        self,
        base_url: str = REMOTE_DATA_BASE_URL,
        timeout: int = API_REQUEST_TIMEOUT,
    ):
        """
        Initialize the remote source.

        Args:
            base_url: URL of the directory holding the CSV files
            timeout: Per-request timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

        self.session = requests.Session()
        self.session.headers.update(
            {
                "Accept": "text/csv",
                "User-Agent": f"WhenKas/{get_version()}",
            }
        )

    def __repr__(self) -> str:
        return f"RemoteCsvSource({self.base_url})"

    def url_for(self, name: str) -> str:
        return f"{self.base_url}/{name}"

    @retry(
        retry=retry_if_exception_type(TransientSourceError),
        stop=stop_after_attempt(API_MAX_RETRIES),
        wait=wait_exponential(multiplier=1, min=API_RETRY_MIN_WAIT, max=API_RETRY_MAX_WAIT),
        reraise=True,
    )
    def _request(self, name: str) -> str:
        """
        Download one file's text.

        Args:
            name: File name relative to the base URL

        Returns:
            Response body
        """
        url = self.url_for(name)

        try:
            response = self.session.get(url, timeout=self.timeout)
        except (requests.ConnectionError, requests.Timeout) as e:
            raise TransientSourceError(f"Request to {url} failed: {e}") from e
        except requests.RequestException as e:
            raise SourceError(f"Request to {url} failed: {e}") from e

        if response.status_code == 429 or response.status_code >= 500:
            raise TransientSourceError(f"HTTP {response.status_code} for {url}")

        if response.status_code != 200:
            raise SourceError(f"HTTP {response.status_code} for {url}")

        return response.text

    def fetch(self, name: str) -> pd.DataFrame:
        """
        Download and read one CSV file.

        Args:
            name: File name relative to the base URL

        Returns:
            Raw rows as a DataFrame of strings

        Raises:
            SourceError: If the download fails after retries or the body is not CSV
        """
        text = self._request(name)

        try:
            rows = read_rows(StringIO(text))
        except pd.errors.ParserError as e:
            raise SourceError(f"Could not parse {self.url_for(name)}: {e}") from e

        logger.debug("Downloaded %d rows from %s", len(rows), self.url_for(name))
        return rows

    def download(self, name: str, dest_dir: Path) -> Path:
        """
        Save one remote file into a local directory.

        Args:
            name: File name relative to the base URL
            dest_dir: Target directory (created if missing)

        Returns:
            Path of the written file
        """
        text = self._request(name)

        dest_dir.mkdir(parents=True, exist_ok=True)
        path = dest_dir / name
        with open(path, "w", encoding="utf-8") as f:
            f.write(text)

        return path


def fetch_sources(
    source: LocalCsvSource | RemoteCsvSource,
    names: list[str],
    max_workers: int = MAX_FETCH_WORKERS,
) -> dict[str, pd.DataFrame]:
    """
    Fetch several files concurrently and wait for all of them.

    Each branch only reads its own file; results are joined by name.

    Args:
        source: Source to read from
        names: File names to fetch
        max_workers: Upper bound on concurrent fetches

    Returns:
        Dictionary mapping file name to raw rows

    Raises:
        SourceError: If any fetch fails
    """
    if not names:
        return {}

    with ThreadPoolExecutor(max_workers=min(max_workers, len(names))) as executor:
        futures = {name: executor.submit(source.fetch, name) for name in names}
        return {name: future.result() for name, future in futures.items()}


def sync_data(
    names: list[str],
    dest_dir: Path = DATA_DIR,
    remote: RemoteCsvSource | None = None,
    show_progress: bool = True,
) -> tuple[list[Path], list[str]]:
    """
    Mirror remote data files into a local directory.

    Args:
        names: File names to download
        dest_dir: Local data directory
        remote: Remote source (default: new instance)
        show_progress: Show progress bar

    Returns:
        Tuple of (written paths, error messages)
    """
    remote = remote or RemoteCsvSource()

    written = []
    errors = []
    iterator = tqdm(names, desc="Downloading data files") if show_progress else names

    for name in iterator:
        try:
            written.append(remote.download(name, dest_dir))
        except SourceError as e:
            logger.error("Failed to download %s: %s", name, e)
            errors.append(f"{name}: {e}")

    return written, errors
