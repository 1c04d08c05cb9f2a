"""Data source interfaces for vix_curve."""

from .sources import (
    CSVFuturesSource,
    CSVHistorySource,
    FuturesSource,
    HistorySource,
    MarketHistory,
    YahooHistorySource,
    get_futures_source,
    get_history_source,
    with_spot,
)

__all__ = [
    "CSVFuturesSource",
    "CSVHistorySource",
    "FuturesSource",
    "HistorySource",
    "MarketHistory",
    "YahooHistorySource",
    "get_futures_source",
    "get_history_source",
    "with_spot",
]
