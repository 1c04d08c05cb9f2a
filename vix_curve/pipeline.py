"""Daily term structure calculation and S&P 500 overview."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, List, Optional, Sequence

import pandas as pd

from vix_curve.config import AppConfig
from vix_curve.data import MarketHistory, get_futures_source, get_history_source, with_spot
from vix_curve.signals import (
    FuturesPoint,
    IndexQuote,
    TermStructureRun,
    Trend,
    add_moving_averages,
    compute_contango_metrics,
    compute_index_quote,
    compute_trend,
    run_term_structure,
)
from vix_curve.signals.term_structure import TermStructureSeries
from vix_curve.storage import TermStructureStore

logger = logging.getLogger(__name__)

MIN_RAW_POINTS = 2


@dataclass
class MarketOverview:
    sp500: pd.DataFrame
    trend: Optional[Trend]
    quotes: Dict[str, IndexQuote]


def _until(history: MarketHistory, as_of: date) -> MarketHistory:
    cutoff = pd.Timestamp(as_of)
    return MarketHistory(sp500=history.sp500.loc[:cutoff], vix=history.vix.loc[:cutoff])


def load_history(config: AppConfig, as_of: date, start: Optional[date] = None) -> MarketHistory:
    start = start or as_of - timedelta(days=config.curve.history_lookback_days)
    source = get_history_source(config)
    return _until(source.load(start, as_of + timedelta(days=1)), as_of)


def _spot_from_history(config: AppConfig, as_of: date, history: Optional[MarketHistory]) -> Optional[float]:
    if history is None:
        try:
            history = load_history(config, as_of)
        except (RuntimeError, OSError, ValueError) as exc:
            logger.warning("could not load VIX history for spot: %s", exc)
            return None
    else:
        history = _until(history, as_of)
    return history.last_close("vix")


def calculate_term_structure(
    config: AppConfig,
    as_of: Optional[date] = None,
    futures: Optional[Sequence[FuturesPoint]] = None,
    history: Optional[MarketHistory] = None,
    store: Optional[TermStructureStore] = None,
) -> Optional[TermStructureRun]:
    """Compute today's term structure and upsert it into the store.

    Returns None when the futures snapshot has fewer than two quotes; nothing is
    persisted in that case.
    """

    as_of = as_of or date.today()
    points: List[FuturesPoint] = list(futures) if futures is not None else get_futures_source(config).load()

    if config.curve.inject_spot_from_history:
        points = with_spot(points, _spot_from_history(config, as_of, history))

    if len(points) < MIN_RAW_POINTS:
        logger.error("Not enough VIX futures data to calculate term structure (%d points)", len(points))
        return None

    run = run_term_structure(points, as_of, config.curve.target_maturity_days)
    logger.info(
        "term structure for %s: %d contracts, %d forwards, constant maturity %s",
        as_of,
        len(run.curve),
        len(run.implied_forwards),
        run.constant_maturity.value if run.constant_maturity else "n/a",
    )

    if config.storage.enabled:
        store = store or TermStructureStore(config.storage.path)
        try:
            store.upsert(as_of, run.combined())
        except (OSError, ValueError) as exc:
            logger.error("failed to store term structure for %s: %s", as_of, exc)
    return run


def _rebuild_run(calculation_date: date, points: TermStructureSeries) -> TermStructureRun:
    curve = tuple(p for p in points if not p.is_derived)
    return TermStructureRun(
        calculation_date=calculation_date,
        curve=curve,
        implied_forwards=tuple(p for p in points if p.is_implied_forward),
        constant_maturity=next((p for p in points if p.is_constant_maturity), None),
        report=compute_contango_metrics(curve),
    )


def latest_term_structure(config: AppConfig, store: Optional[TermStructureStore] = None) -> Optional[TermStructureRun]:
    """Read back the most recent stored snapshot and recompute its contango report."""

    store = store or TermStructureStore(config.storage.path)
    latest, points = store.load_latest()
    if latest is None:
        logger.info("No term structure data found in %s", store.path)
        return None
    return _rebuild_run(latest, points)


def _quote(name: str, frame: pd.DataFrame) -> Optional[IndexQuote]:
    closes = frame["close"].dropna()
    if len(closes) < 2:
        return None
    return compute_index_quote(name, float(closes.iloc[-1]), float(closes.iloc[-2]))


def sp500_overview(config: AppConfig, history: MarketHistory) -> MarketOverview:
    sp500 = add_moving_averages(history.sp500, config.moving_averages.windows)
    closes = sp500["close"].dropna()
    trend = compute_trend(closes.tolist()) if len(closes) >= 2 else None
    quotes = {}
    for name, frame in (("S&P 500", history.sp500), ("VIX", history.vix)):
        quote = _quote(name, frame)
        if quote is not None:
            quotes[name] = quote
    return MarketOverview(sp500=sp500, trend=trend, quotes=quotes)
