"""
Visualization module for WhenKas.

Turns pipeline output into chart data and interactive Plotly charts:
- Observed series, fitted power laws and the overtake curve, all plotted in
  log-log space using the run's logarithm base
- Month ticks on the x axis, order-of-magnitude ticks on the y axis
- Hover text with the calendar date and the untransformed value
"""

import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path

import numpy as np
import pandas as pd
import plotly.graph_objects as go

from analysis.intersection import IntersectionResult
from analysis.regression import FitResult, LogBase
from config import (
    BITCOIN_GENESIS_DATE,
    CHART_FONT_FAMILY,
    CHART_HEIGHT,
    CHART_TICK_MONTHS,
    CHART_TICK_SIZE,
    CHART_TICK_START_YEAR,
    CHART_WIDTH,
    COLORS,
    KASPA_GENESIS_DATE,
    PROJECTION_YEARS,
)
from data.loader import TimeSeries


@dataclass
class ChartSeries:
    """One named trace, already in log-log coordinates."""

    name: str
    x: list[float]
    y: list[float]
    mode: str = "lines"
    color: str = COLORS["observed"]
    dash: str | None = None
    hover: list[str] | None = None


@dataclass
class AxisTicks:
    """Explicit tick positions (log-transformed) and their labels."""

    values: list[float] = field(default_factory=list)
    labels: list[str] = field(default_factory=list)


@dataclass
class ChartData:
    """Everything the chart layer needs to draw one pipeline run."""

    series: list[ChartSeries]
    x_ticks: AxisTicks
    y_ticks: AxisTicks
    title: str
    x_title: str
    y_title: str
    headline_prefix: str
    headline: str
    r2_text: str
    last_updated: pd.Timestamp
    earliest_date: pd.Timestamp
    warning: str | None = None


# =============================================================================
# Ticks and hover text
# =============================================================================


def month_ticks(
    start_year: int,
    end_year: int,
    genesis: datetime,
    log_base: LogBase,
    months: tuple[int, ...] = CHART_TICK_MONTHS,
) -> AxisTicks:
    """
    X-axis ticks at the first of selected months.

    Positions are log(whole days since genesis); months on or before
    genesis are skipped since their log is undefined.

    Args:
        start_year: First year with ticks
        end_year: Last year with ticks (inclusive)
        genesis: Genesis the x axis is measured from
        log_base: Base of the x-axis transform
        months: Months (1-12) that get a tick each year

    Returns:
        AxisTicks with labels such as "Jan 2024"
    """
    ticks = AxisTicks()
    for year in range(start_year, end_year + 1):
        for month in months:
            tick_date = datetime(year, month, 1)
            day = math.floor((tick_date - genesis) / timedelta(days=1))
            if day <= 0:
                continue
            ticks.values.append(float(log_base.log(day)))
            ticks.labels.append(f"{tick_date:%b} {year}")
    return ticks


def magnitude_ticks(min_y: float, max_y: float, unit: str, log_base: LogBase) -> AxisTicks:
    """
    Y-axis ticks at every power of ten covering [min_y, max_y].

    Args:
        min_y: Smallest plotted value (untransformed, > 0)
        max_y: Largest plotted value (untransformed)
        unit: Unit suffix, upper-cased in labels
        log_base: Base of the y-axis transform

    Returns:
        AxisTicks with labels such as "1e-6 BTC"
    """
    ticks = AxisTicks()
    min_power = math.floor(math.log10(min_y))
    max_power = math.ceil(math.log10(max_y))

    for power in range(min_power, max_power + 1):
        ticks.values.append(float(log_base.log(10.0**power)))
        ticks.labels.append(f"1e{power:+d} {unit.upper()}")
    return ticks


def format_hover_date(dt: datetime) -> str:
    """Format a date like "Jan 5, 2024"."""
    return f"{dt:%b} {dt.day}, {dt.year}"


def hover_text(days, values, genesis: datetime, label: str) -> list[str]:
    """Hover labels with the calendar date and the value in exponent form."""
    texts = []
    for day, value in zip(days, values):
        dt = genesis + timedelta(days=float(day))
        texts.append(f"Date: {format_hover_date(dt)}<br>{label}: {value:.2e}")
    return texts


def make_series(
    name: str,
    days,
    values,
    log_base: LogBase,
    genesis: datetime,
    hover_label: str,
    mode: str = "lines",
    color: str = COLORS["observed"],
    dash: str | None = None,
) -> ChartSeries:
    """
    Build a trace from untransformed day offsets and values.

    Args:
        name: Legend name
        days: Day offsets since `genesis` (> 0)
        values: Values (> 0)
        log_base: Base applied to both axes
        genesis: Genesis of the x axis, used for hover dates
        hover_label: Label of the value in hover text

    Returns:
        ChartSeries in log-log coordinates
    """
    days = np.asarray(days, dtype=float)
    values = np.asarray(values, dtype=float)
    return ChartSeries(
        name=name,
        x=log_base.log(days).tolist(),
        y=log_base.log(values).tolist(),
        mode=mode,
        color=color,
        dash=dash,
        hover=hover_text(days, values, genesis, hover_label),
    )


# =============================================================================
# Chart data per mode
# =============================================================================


def build_price_chart(
    series: TimeSeries,
    fit_result: FitResult,
    reference: pd.Series,
    intersection: IntersectionResult,
    log_base: LogBase,
    asset: str,
    now: datetime,
) -> ChartData:
    """
    Chart data for price mode: KAS price in `asset` against the supply-parity price.

    Args:
        series: Observed KAS price series
        fit_result: Power law fitted to `series`
        reference: Supply-parity price by KAS day offset
        intersection: Crossing search result
        log_base: Base of the log-log transform
        asset: Comparison asset symbol
        now: Current instant (sets the last tick year)

    Returns:
        ChartData with three traces
    """
    symbol = asset.upper()
    hover_label = f"Kas Price in {symbol}"
    curve = fit_result.curve
    parity = reference.loc[fit_result.min_day : fit_result.max_day]

    traces = [
        make_series(
            "Open Prices",
            series.df["days_since_genesis"],
            series.df["value"],
            log_base,
            KASPA_GENESIS_DATE,
            hover_label,
            mode="lines+markers",
            color=COLORS["observed"],
        ),
        make_series(
            "Kaspa Best Fit Line",
            curve.index,
            curve.values,
            log_base,
            KASPA_GENESIS_DATE,
            hover_label,
            color=COLORS["subject_fit"],
        ),
        make_series(
            f"Kas Overtake {symbol} prices",
            parity.index,
            parity.values,
            log_base,
            KASPA_GENESIS_DATE,
            hover_label,
            color=COLORS["reference"],
            dash="dot",
        ),
    ]

    return ChartData(
        series=traces,
        x_ticks=month_ticks(
            CHART_TICK_START_YEAR, now.year + PROJECTION_YEARS, KASPA_GENESIS_DATE, log_base
        ),
        y_ticks=magnitude_ticks(float(curve.min()), float(curve.max()), asset, log_base),
        title=(
            f"KAS/{symbol} PowerLaw and Price in {symbol} needed for Kaspa "
            f"to be worth more than {symbol} ({log_base} scale)"
        ),
        x_title="Days Since Kaspa Genesis",
        y_title=hover_label,
        headline_prefix=f"Kaspa Will Overtake {symbol} in Market Cap around",
        headline=intersection.describe(),
        r2_text=f"R²: {fit_result.model.r2:.2f}",
        last_updated=series.last_date,
        earliest_date=series.first_date,
    )


def build_hashrate_chart(
    kaspa_series: TimeSeries,
    kaspa_fit: FitResult,
    bitcoin_series: TimeSeries,
    bitcoin_fit: FitResult,
    intersection: IntersectionResult,
    log_base: LogBase,
    asset: str,
    now: datetime,
) -> ChartData:
    """
    Chart data for hashrate mode, with both assets on a Bitcoin-genesis x axis.

    Kaspa day offsets are shifted by the whole days between the two geneses
    and floored. Bitcoin traces start at Kaspa's genesis.

    Args:
        kaspa_series: Observed Kaspa hashrate (H/s)
        kaspa_fit: Power law fitted to the Kaspa series
        bitcoin_series: Observed Bitcoin hashrate (H/s)
        bitcoin_fit: Power law fitted to the Bitcoin series
        intersection: Crossing search result
        log_base: Base of the log-log transform
        asset: Comparison asset symbol
        now: Current instant (sets the last tick year)

    Returns:
        ChartData with four traces
    """
    symbol = asset.upper()
    hover_label = "Hashrate in H/S"
    offset = (KASPA_GENESIS_DATE - BITCOIN_GENESIS_DATE).days

    kaspa_curve = kaspa_fit.curve
    bitcoin_curve = bitcoin_fit.curve
    bitcoin_curve_since_kaspa = bitcoin_curve[bitcoin_curve.index >= offset]
    bitcoin_observed = bitcoin_series.df[
        bitcoin_series.df["days_since_genesis"] >= offset
    ]

    traces = [
        make_series(
            "Kaspa Hashrate (H/s)",
            np.floor(kaspa_series.df["days_since_genesis"] + offset),
            kaspa_series.df["value"],
            log_base,
            BITCOIN_GENESIS_DATE,
            hover_label,
            mode="lines+markers",
            color=COLORS["observed"],
        ),
        make_series(
            "Kaspa Best Fit Line",
            kaspa_curve.index + offset,
            kaspa_curve.values,
            log_base,
            BITCOIN_GENESIS_DATE,
            hover_label,
            color=COLORS["subject_fit"],
        ),
        make_series(
            f"{symbol} Best Fit Line",
            bitcoin_curve_since_kaspa.index,
            bitcoin_curve_since_kaspa.values,
            log_base,
            BITCOIN_GENESIS_DATE,
            hover_label,
            mode="lines+markers",
            color=COLORS["reference"],
        ),
        make_series(
            f"{symbol} Hashrate (H/s)",
            bitcoin_observed["days_since_genesis"],
            bitcoin_observed["value"],
            log_base,
            BITCOIN_GENESIS_DATE,
            hover_label,
            color=COLORS["reference"],
            dash="dot",
        ),
    ]

    min_y = min(float(kaspa_curve.min()), float(bitcoin_curve.min()))
    max_y = max(float(kaspa_curve.max()), float(bitcoin_curve.max()))

    earliest = kaspa_series.first_date

    return ChartData(
        series=traces,
        x_ticks=month_ticks(
            CHART_TICK_START_YEAR, now.year + PROJECTION_YEARS, BITCOIN_GENESIS_DATE, log_base
        ),
        y_ticks=magnitude_ticks(min_y, max_y, "H/s", log_base),
        title=(
            f"KAS and {symbol} PowerLaw and Hashrate, "
            f"and timeline to intersect using {log_base}."
        ),
        x_title="Truncated Days Since Bitcoin Genesis",
        y_title="Hashrate (H/s)",
        headline_prefix=f"Kaspa Will Overtake {symbol} in Hashrate around",
        headline=intersection.describe(),
        r2_text=f"R²: Kaspa {kaspa_fit.model.r2:.2f}, {symbol} {bitcoin_fit.model.r2:.2f}",
        last_updated=kaspa_series.last_date,
        earliest_date=earliest,
        warning=(
            f"We only have kaspa hashrate data starting from {earliest:%Y-%m-%d}. "
            "More time is needed for this estimate to have enough data"
        ),
    )


# =============================================================================
# Plotly rendering
# =============================================================================


def build_figure(chart: ChartData) -> go.Figure:
    """
    Create the interactive Plotly figure for a pipeline run.

    Args:
        chart: Chart data from build_price_chart or build_hashrate_chart

    Returns:
        Plotly Figure
    """
    fig = go.Figure()

    for trace in chart.series:
        style = {"color": trace.color}
        if trace.dash:
            style["dash"] = trace.dash

        fig.add_trace(
            go.Scatter(
                x=trace.x,
                y=trace.y,
                mode=trace.mode,
                name=trace.name,
                line=style,
                marker={"color": trace.color},
                text=trace.hover,
                hovertemplate="%{text}<extra></extra>" if trace.hover else None,
            )
        )

    tick_font = {
        "size": CHART_TICK_SIZE,
        "family": CHART_FONT_FAMILY,
        "color": COLORS["tick_text"],
    }

    fig.update_layout(
        title={
            "text": (
                f"{chart.headline_prefix}<br>"
                f"<b>{chart.headline}</b><br>"
                f"<sup>{chart.r2_text} | {chart.title}</sup>"
            ),
            "font": {"family": CHART_FONT_FAMILY},
        },
        xaxis={
            "title": chart.x_title,
            "type": "linear",
            "autorange": True,
            "tickvals": chart.x_ticks.values,
            "ticktext": chart.x_ticks.labels,
            "tickangle": 45,
            "tickfont": tick_font,
        },
        yaxis={
            "title": chart.y_title,
            "type": "linear",
            "autorange": True,
            "tickvals": chart.y_ticks.values,
            "ticktext": chart.y_ticks.labels,
            "tickfont": tick_font,
        },
        width=CHART_WIDTH,
        height=CHART_HEIGHT,
        margin={"l": 50, "r": 50, "t": 120, "b": 50},
        paper_bgcolor=COLORS["background"],
        plot_bgcolor=COLORS["background"],
    )

    footer = f"Last Updated: {chart.last_updated:%Y-%m-%d}"
    if chart.warning:
        footer = f"{chart.warning}<br>{footer}"

    fig.add_annotation(
        x=0.5,
        y=-0.35,
        xref="paper",
        yref="paper",
        text=footer,
        showarrow=False,
        font={"size": 10, "color": "#888"},
    )

    return fig


def write_chart_html(chart: ChartData, output_path: Path) -> Path:
    """
    Render a chart to a standalone HTML file.

    Args:
        chart: Chart data for one pipeline run
        output_path: Destination HTML file

    Returns:
        Path to created file
    """
    output_path.parent.mkdir(parents=True, exist_ok=True)
    build_figure(chart).write_html(output_path)
    return output_path
