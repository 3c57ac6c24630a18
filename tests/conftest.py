"""
Pytest configuration and fixtures for WhenKas tests.
"""

import os
import sys
import tempfile
from datetime import datetime, timedelta
from pathlib import Path

import pytest

# Add src directory to Python path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (actual HTTP calls)"
    )


def pytest_addoption(parser):
    """Add command line option for integration tests."""
    parser.addoption(
        "--run-integration",
        action="store_true",
        default=False,
        help="Run integration tests that download the published data files",
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless --run-integration is specified."""
    if config.getoption("--run-integration"):
        os.environ["RUN_INTEGRATION_TESTS"] = "1"
        return

    skip_integration = pytest.mark.skip(reason="Use --run-integration to run HTTP tests")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


def power_law_rows(
    genesis: datetime,
    days: range,
    coefficient: float,
    exponent: float,
) -> list[dict[str, str]]:
    """
    Rows of an exact power law value = coefficient * day^exponent.

    Dates are whole days after genesis, formatted like the collector CSVs.
    """
    return [
        {
            "Start": (genesis + timedelta(days=day)).strftime("%Y-%m-%d"),
            "Open": repr(coefficient * day**exponent),
        }
        for day in days
    ]


def write_rows(path: Path, rows: list[dict[str, str]]) -> Path:
    """Write rows as a Start,Open CSV file."""
    lines = ["Start,Open"] + [f"{row['Start']},{row['Open']}" for row in rows]
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


@pytest.fixture
def temp_dir():
    """Create a temporary directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)
