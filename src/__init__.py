"""
WhenKas - When does Kaspa overtake Bitcoin?

This package provides tools to:
- Load historical and live Kaspa/Bitcoin price and hashrate series
- Fit power-law (log-log) regressions and project them forward
- Model Bitcoin and Kaspa circulating supply from their issuance schedules
- Estimate the date Kaspa's projection crosses the overtake curve
- Render the result as an interactive Plotly chart
"""

__app_name__ = "whenkas"
