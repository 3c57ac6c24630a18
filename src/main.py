"""
WhenKas - When does Kaspa overtake Bitcoin?

Command-line entry point for the overtake pipeline.

Usage:
    python -m main [command] [options]

Commands:
    estimate          Print the projected overtake date
    generate-chart    Write the interactive chart as HTML
    sync-data         Download the CSV data files into the data directory
    status            Show the state of the local data files

Examples:
    # Hashrate overtake date, log base 2 (defaults)
    python -m main estimate

    # Market-cap overtake date from prices, log base 10
    python -m main estimate --mode prices --log-base 10

    # Read the published data instead of the local directory
    python -m main estimate --remote

    # Write the chart
    python -m main generate-chart --mode prices --output output/charts/prices.html

    # Verbose logging
    python -m main estimate --verbose
"""

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path

from analysis.pipeline import NoDataError, OvertakePipeline, PipelineParams
from config import (
    CHARTS_DIR,
    DATA_DIR,
    DEFAULT_ASSET,
    DEFAULT_LOG_BASE,
    DEFAULT_MODE,
    NO_DATA_MESSAGE,
    OUTPUT_DIR,
    REMOTE_DATA_BASE_URL,
    SUPPORTED_ASSETS,
    SUPPORTED_LOG_BASES,
    SUPPORTED_MODES,
    get_all_data_files,
)
from data.loader import read_rows
from data.sources import LocalCsvSource, RemoteCsvSource, sync_data
from utils.logging import get_logger, setup_logging
from visualization.charts import write_chart_html

# Module logger
logger = get_logger(__name__)


def _build_pipeline(args: argparse.Namespace) -> OvertakePipeline:
    """Create a pipeline reading from the source selected on the command line."""
    if args.remote:
        source = RemoteCsvSource(base_url=args.base_url)
    else:
        source = LocalCsvSource(args.data_dir)
    logger.debug("Using data source %r", source)
    return OvertakePipeline(source)


def _build_params(args: argparse.Namespace) -> PipelineParams:
    return PipelineParams(
        mode=args.mode,
        log_base=args.log_base,
        asset=args.asset,
        now=datetime.now(),
    )


def cmd_estimate(args: argparse.Namespace) -> int:
    """Print the overtake estimate for the selected parameters."""
    params = _build_params(args)
    pipeline = _build_pipeline(args)

    try:
        result = pipeline.run(params)
    except NoDataError:
        logger.error(NO_DATA_MESSAGE)
        return 1

    chart = result.chart

    logger.info("=" * 60)
    logger.info(chart.headline_prefix)
    logger.info("  %s", result.headline)
    logger.info("  %s", chart.r2_text)
    logger.info("=" * 60)
    logger.info("Earliest data: %s", chart.earliest_date.date())
    logger.info("Last updated:  %s", chart.last_updated.date())

    if chart.warning:
        logger.warning(chart.warning)

    return 0


def cmd_generate_chart(args: argparse.Namespace) -> int:
    """Run the pipeline and write the interactive chart."""
    params = _build_params(args)
    pipeline = _build_pipeline(args)

    output_path = args.output or CHARTS_DIR / f"kaspa_{params.mode}_{params.asset}.html"

    try:
        result = pipeline.run(params)
    except NoDataError:
        logger.error(NO_DATA_MESSAGE)
        return 1

    write_chart_html(result.chart, output_path)

    logger.info("%s", result.headline)
    logger.info("Chart written to: %s", output_path)
    return 0


def cmd_sync_data(args: argparse.Namespace) -> int:
    """Download the published CSV files into the data directory."""
    logger.info("=" * 60)
    logger.info("WHENKAS - Sync Data")
    logger.info("=" * 60)

    names = get_all_data_files()
    remote = RemoteCsvSource(base_url=args.base_url)

    written, errors = sync_data(
        names,
        dest_dir=args.data_dir,
        remote=remote,
        show_progress=not args.quiet,
    )

    logger.info("Downloaded %d of %d files into %s", len(written), len(names), args.data_dir)

    if errors:
        logger.warning("%d files failed:", len(errors))
        for error in errors:
            logger.warning("  - %s", error)
        return 1

    return 0


def cmd_status(args: argparse.Namespace) -> int:
    """Show row counts and date ranges of the local data files."""
    logger.info("=" * 60)
    logger.info("WHENKAS - Data Status")
    logger.info("=" * 60)
    logger.info("Data directory: %s", args.data_dir)

    missing = 0
    for name in get_all_data_files():
        path = args.data_dir / name
        if not path.exists():
            logger.info("  %-40s missing", name)
            missing += 1
            continue

        rows = read_rows(path)
        if rows.empty or "Start" not in rows.columns:
            logger.info("  %-40s empty", name)
            continue

        logger.info(
            "  %-40s %6d rows (%s to %s)",
            name,
            len(rows),
            rows["Start"].iloc[0],
            rows["Start"].iloc[-1],
        )

    if missing:
        logger.info("Run 'python -m main sync-data' to download missing files")

    return 0


def _add_pipeline_arguments(parser: argparse.ArgumentParser) -> None:
    """Arguments shared by the commands that run the pipeline."""
    parser.add_argument(
        "--mode",
        choices=SUPPORTED_MODES,
        default=DEFAULT_MODE,
        help=f"Compare hashrate or prices (default: {DEFAULT_MODE})",
    )
    parser.add_argument(
        "--log-base",
        choices=SUPPORTED_LOG_BASES,
        default=DEFAULT_LOG_BASE,
        help=f"Logarithm base for the log-log fit (default: {DEFAULT_LOG_BASE})",
    )
    parser.add_argument(
        "--asset",
        choices=SUPPORTED_ASSETS,
        default=DEFAULT_ASSET,
        help=f"Asset Kaspa is compared against (default: {DEFAULT_ASSET})",
    )
    parser.add_argument(
        "--remote",
        action="store_true",
        help="Read the published data files instead of the local data directory",
    )


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        prog="whenkas",
        description="Power-law projection of when Kaspa overtakes Bitcoin",
    )

    # Global arguments
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging (DEBUG level)",
    )
    parser.add_argument(
        "--quiet",
        "-q",
        action="store_true",
        help="Suppress progress bars",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        help="Log to file (in addition to console)",
    )
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=DATA_DIR,
        help=f"Local data directory (default: {DATA_DIR})",
    )
    parser.add_argument(
        "--base-url",
        default=REMOTE_DATA_BASE_URL,
        help=f"URL of the published data directory (default: {REMOTE_DATA_BASE_URL})",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # estimate command
    estimate_parser = subparsers.add_parser(
        "estimate",
        help="Print the projected overtake date",
    )
    _add_pipeline_arguments(estimate_parser)

    # generate-chart command
    chart_parser = subparsers.add_parser(
        "generate-chart",
        help="Write the interactive overtake chart as HTML",
    )
    _add_pipeline_arguments(chart_parser)
    chart_parser.add_argument(
        "--output",
        "-o",
        type=Path,
        default=None,
        help=f"Output HTML file (default: {CHARTS_DIR}/kaspa_<mode>_<asset>.html)",
    )

    # sync-data command
    subparsers.add_parser(
        "sync-data",
        help="Download the CSV data files into the data directory",
    )

    # status command
    subparsers.add_parser(
        "status",
        help="Show the state of the local data files",
    )

    args = parser.parse_args(argv)

    # Setup logging based on global args
    log_level = logging.DEBUG if args.verbose else logging.INFO
    log_file = args.log_file or (OUTPUT_DIR / "whenkas.log" if args.verbose else None)
    setup_logging(level=log_level, log_file=log_file, verbose=args.verbose)

    if args.command is None:
        parser.print_help()
        return 0

    # Route to command handler
    commands = {
        "estimate": cmd_estimate,
        "generate-chart": cmd_generate_chart,
        "sync-data": cmd_sync_data,
        "status": cmd_status,
    }

    handler = commands.get(args.command)
    if handler:
        try:
            return handler(args)
        except KeyboardInterrupt:
            logger.info("Interrupted by user")
            return 130
        except Exception as e:
            logger.exception("Unexpected error: %s", e)
            return 1

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
