"""
Analysis modules: supply models, power-law regression, crossing search.

The pipeline lives in analysis.pipeline and is imported from there directly.
"""

from .intersection import IntersectionResult, find_crossing
from .regression import (
    BASE2,
    BASE10,
    NATURAL,
    FitResult,
    InsufficientDataError,
    LogBase,
    RegressionModel,
    fit,
    parse_log_base,
)
from .supply import bitcoin_supply, kaspa_supply, supply_parity_curve

__all__ = [
    "BASE2",
    "BASE10",
    "NATURAL",
    "FitResult",
    "InsufficientDataError",
    "IntersectionResult",
    "LogBase",
    "RegressionModel",
    "bitcoin_supply",
    "find_crossing",
    "fit",
    "kaspa_supply",
    "parse_log_base",
    "supply_parity_curve",
]
