"""
Data loading modules: CSV sources and the series loader.
"""

from .loader import ObservedPoint, TimeSeries, load_series, parse_rows, read_rows
from .sources import (
    LocalCsvSource,
    RemoteCsvSource,
    SourceError,
    TransientSourceError,
    fetch_sources,
    sync_data,
)

__all__ = [
    "ObservedPoint",
    "TimeSeries",
    "load_series",
    "parse_rows",
    "read_rows",
    "LocalCsvSource",
    "RemoteCsvSource",
    "SourceError",
    "TransientSourceError",
    "fetch_sources",
    "sync_data",
]
