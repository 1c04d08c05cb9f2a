"""Moving averages, trend and quote helpers for daily index closes."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

import numpy as np
import pandas as pd

DEFAULT_WINDOWS = (10, 20, 50)


@dataclass(frozen=True)
class Trend:
    is_up: bool
    percent: float


@dataclass(frozen=True)
class IndexQuote:
    name: str
    value: float
    change: float
    change_percent: float


def compute_sma(values: Iterable[float], window: int) -> pd.Series:
    """Simple moving average rounded to cents; NaN until `window` closes are available."""

    if window <= 0:
        raise ValueError("window must be positive")
    series = pd.Series(list(values), dtype=float)
    return series.rolling(window, min_periods=window).mean().round(2)


def add_moving_averages(
    frame: pd.DataFrame, windows: Sequence[int] = DEFAULT_WINDOWS, column: str = "close"
) -> pd.DataFrame:
    if column not in frame.columns:
        raise ValueError(f"Missing column {column}")
    out = frame.copy()
    for window in windows:
        sma = compute_sma(out[column].tolist(), window)
        sma.index = out.index
        out[f"sma{window}"] = sma
    return out


def compute_trend(values: Iterable[float]) -> Trend:
    """Direction and percent move from the first to the last close."""

    series = pd.Series(list(values), dtype=float).dropna()
    if len(series) < 2:
        raise ValueError("need at least two closes to compute a trend")
    first, last = series.iloc[0], series.iloc[-1]
    if first == 0:
        raise ValueError("first close must be non-zero")
    percent = (last - first) / first * 100
    return Trend(is_up=bool(percent >= 0), percent=round(float(abs(percent)), 2))


def compute_index_quote(name: str, value: float, previous_close: Optional[float]) -> Optional[IndexQuote]:
    if previous_close is None or previous_close == 0 or np.isnan(previous_close):
        return None
    change = value - previous_close
    return IndexQuote(
        name=name,
        value=float(value),
        change=round(float(change), 2),
        change_percent=round(float(change / previous_close * 100), 2),
    )
