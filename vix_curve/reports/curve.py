"""Tabular views of a term structure run for printing or CSV export."""

from __future__ import annotations

from typing import Iterable, List

import pandas as pd

from vix_curve.signals.term_structure import ContangoReport, FuturesPoint

SERIES_COLUMNS = ["label", "value", "days_to_expiration", "contango", "kind"]
REPORT_COLUMNS = ["month", "pct_from_spot", "diff_from_spot", "term_structure"]


def _kind(point: FuturesPoint) -> str:
    if point.is_implied_forward:
        return "implied_forward"
    if point.is_constant_maturity:
        return "constant_maturity"
    if point.is_spot:
        return "spot"
    return "future"


def series_frame(points: Iterable[FuturesPoint]) -> pd.DataFrame:
    rows: List[dict] = [
        {
            "label": p.label,
            "value": p.value,
            "days_to_expiration": p.days_to_expiration,
            "contango": p.contango.value,
            "kind": _kind(p),
        }
        for p in points
    ]
    return pd.DataFrame(rows, columns=SERIES_COLUMNS)


def report_frame(report: ContangoReport) -> pd.DataFrame:
    """One row per month: % and absolute difference from spot, and spot-normalized level."""

    rows = [
        {
            "month": pct.month,
            "pct_from_spot": round(pct.value, 2),
            "diff_from_spot": round(diff.value, 2),
            "term_structure": round(norm.value, 2),
        }
        for pct, diff, norm in zip(
            report.percentages_from_spot,
            report.absolute_differences_from_spot,
            report.normalized_term_structure,
        )
    ]
    return pd.DataFrame(rows, columns=REPORT_COLUMNS)


def metrics_frame(report: ContangoReport) -> pd.DataFrame:
    rows = [{"metric": label, "value": round(value, 2)} for label, value in report.cross_month_metrics.items()]
    return pd.DataFrame(rows, columns=["metric", "value"])
