"""Futures snapshot and daily history sources."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import List, Optional, Protocol

import pandas as pd
import yfinance as yf

from vix_curve.config import AppConfig, HistoryProvider
from vix_curve.signals.term_structure import FuturesPoint, is_spot_label

logger = logging.getLogger(__name__)

SPOT_LABEL = "Current"

_LABEL_ALIASES = ["label", "month", "name"]
_VALUE_ALIASES = ["value", "price", "close", "y"]


@dataclass
class MarketHistory:
    sp500: pd.DataFrame
    vix: pd.DataFrame

    def last_close(self, name: str) -> Optional[float]:
        closes = getattr(self, name)["close"].dropna()
        if closes.empty:
            return None
        return float(closes.iloc[-1])


class HistorySource(Protocol):
    def load(self, start: date, end: date | None = None) -> MarketHistory: ...


class FuturesSource(Protocol):
    def load(self) -> List[FuturesPoint]: ...


_REQUIRED_COLS = ["open", "high", "low", "close", "adj_close", "volume"]


def _ensure_columns(df: pd.DataFrame) -> pd.DataFrame:
    out = df.copy()
    if "close" not in out.columns and "adj_close" in out.columns:
        out["close"] = out["adj_close"]
    if "adj_close" not in out.columns and "close" in out.columns:
        out["adj_close"] = out["close"]
    for col in _REQUIRED_COLS:
        if col not in out.columns:
            out[col] = pd.NA
    return out[_REQUIRED_COLS]


def _load_csv(path: Path) -> pd.DataFrame:
    df = pd.read_csv(path)
    df.columns = [c.lower().replace(" ", "_") for c in df.columns]
    if "date" not in df.columns:
        raise ValueError(f"{path} is missing a date column")
    df["date"] = pd.to_datetime(df["date"])
    df = df.set_index("date").sort_index()
    return _ensure_columns(df)


def _pick_column(df: pd.DataFrame, aliases: List[str], path: Path) -> str:
    for alias in aliases:
        if alias in df.columns:
            return alias
    raise ValueError(f"{path} needs one of the columns {aliases}")


class CSVFuturesSource:
    """Reads a futures snapshot with one `label,value` row per contract."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> List[FuturesPoint]:
        if not self.path.exists():
            raise FileNotFoundError(f"futures snapshot not found: {self.path}")
        df = pd.read_csv(self.path)
        df.columns = [c.strip().lower() for c in df.columns]
        label_col = _pick_column(df, _LABEL_ALIASES, self.path)
        value_col = _pick_column(df, _VALUE_ALIASES, self.path)
        values = pd.to_numeric(df[value_col], errors="coerce")
        return [
            FuturesPoint(label=str(label).strip(), value=float(value))
            for label, value in zip(df[label_col].fillna(""), values)
        ]


class CSVHistorySource:
    def __init__(self, config: AppConfig):
        if not config.data.csv:
            raise ValueError("CSV paths missing in config")
        self.paths = config.data.csv

    def load(self, start: date, end: date | None = None) -> MarketHistory:
        sp500 = _load_csv(self.paths.sp500)
        vix = _load_csv(self.paths.vix)
        slice_ = slice(pd.Timestamp(start), pd.Timestamp(end) if end else None)
        return MarketHistory(sp500=sp500.loc[slice_], vix=vix.loc[slice_])


class YahooHistorySource:
    def __init__(self, config: AppConfig):
        self.config = config

    def load(self, start: date, end: date | None = None) -> MarketHistory:
        symbols = [self.config.data.yfinance.sp500_symbol, self.config.data.yfinance.vix_symbol]
        data = yf.download(symbols, start=start, end=end, auto_adjust=False, progress=False)
        if data.empty:
            raise RuntimeError(f"No data returned for {symbols}")
        frames = {sym: _normalize_from_multiindex(data, sym) for sym in symbols}
        return MarketHistory(sp500=frames[symbols[0]], vix=frames[symbols[1]])


def _normalize_from_multiindex(df: pd.DataFrame, symbol: str) -> pd.DataFrame:
    cols = df.xs(symbol, axis=1, level=1)
    cols = cols.rename(columns={
        "Open": "open",
        "High": "high",
        "Low": "low",
        "Close": "close",
        "Adj Close": "adj_close",
        "Volume": "volume",
    })
    if getattr(cols.index, "tz", None) is not None:
        cols.index = cols.index.tz_localize(None)
    return _ensure_columns(cols)


def get_history_source(config: AppConfig) -> HistorySource:
    if config.data.provider == HistoryProvider.CSV:
        return CSVHistorySource(config)
    return YahooHistorySource(config)


def get_futures_source(config: AppConfig) -> FuturesSource:
    return CSVFuturesSource(config.data.futures_csv)


def with_spot(points: List[FuturesPoint], spot_value: Optional[float]) -> List[FuturesPoint]:
    """Prepend a spot point from the current index print when the snapshot lacks one."""

    if spot_value is None or any(is_spot_label(p.label) for p in points):
        return list(points)
    logger.info("adding spot VIX %.2f to futures snapshot", spot_value)
    return [FuturesPoint(label=SPOT_LABEL, value=float(spot_value))] + list(points)
