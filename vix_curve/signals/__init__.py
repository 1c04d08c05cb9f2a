"""Signal calculations for vix_curve."""

from .moving_average import IndexQuote, Trend, add_moving_averages, compute_index_quote, compute_sma, compute_trend
from .term_structure import (
    ContangoReport,
    ContangoState,
    FuturesPoint,
    MonthValue,
    TermStructureRun,
    build_term_structure,
    compute_constant_maturity,
    compute_contango_metrics,
    compute_implied_forwards,
    parse_month_label,
    run_term_structure,
)

__all__ = [
    "ContangoReport",
    "ContangoState",
    "FuturesPoint",
    "IndexQuote",
    "MonthValue",
    "TermStructureRun",
    "Trend",
    "add_moving_averages",
    "build_term_structure",
    "compute_constant_maturity",
    "compute_contango_metrics",
    "compute_implied_forwards",
    "compute_index_quote",
    "compute_sma",
    "compute_trend",
    "parse_month_label",
    "run_term_structure",
]
