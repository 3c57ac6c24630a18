"""Visualization module for WhenKas charts."""

from visualization.charts import (
    AxisTicks,
    ChartData,
    ChartSeries,
    build_figure,
    build_hashrate_chart,
    build_price_chart,
    write_chart_html,
)

__all__ = [
    "AxisTicks",
    "ChartData",
    "ChartSeries",
    "build_figure",
    "build_hashrate_chart",
    "build_price_chart",
    "write_chart_html",
]
