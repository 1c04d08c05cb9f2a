"""Local datastore for calculated term structures, upserted by calculation date."""

from __future__ import annotations

import logging
from datetime import date
from pathlib import Path
from typing import Dict, Iterable, Optional, Tuple

import pandas as pd

from vix_curve.signals.term_structure import ContangoState, FuturesPoint, TermStructureSeries

logger = logging.getLogger(__name__)

COLUMNS = [
    "calculation_date",
    "label",
    "value",
    "days_to_expiration",
    "contango",
    "is_implied_forward",
    "is_constant_maturity",
    "forward_start_label",
    "forward_end_label",
    "maturity_days",
]
KEY = ["calculation_date", "label", "is_implied_forward", "is_constant_maturity"]


def _text(value: Optional[object]) -> str:
    return "" if value is None else str(value)


def _optional_int(text: str) -> Optional[int]:
    return int(float(text)) if text else None


def _to_row(calculation_date: date, point: FuturesPoint) -> Dict[str, str]:
    return {
        "calculation_date": calculation_date.isoformat(),
        "label": point.label,
        "value": repr(float(point.value)),
        "days_to_expiration": _text(point.days_to_expiration),
        "contango": point.contango.value,
        "is_implied_forward": str(point.is_implied_forward),
        "is_constant_maturity": str(point.is_constant_maturity),
        "forward_start_label": _text(point.forward_start_label),
        "forward_end_label": _text(point.forward_end_label),
        "maturity_days": _text(point.maturity_days),
    }


def _from_row(row: pd.Series) -> FuturesPoint:
    return FuturesPoint(
        label=row["label"],
        value=float(row["value"]),
        days_to_expiration=_optional_int(row["days_to_expiration"]),
        contango=ContangoState(row["contango"] or ContangoState.UNKNOWN.value),
        is_implied_forward=row["is_implied_forward"] == "True",
        is_constant_maturity=row["is_constant_maturity"] == "True",
        forward_start_label=row["forward_start_label"] or None,
        forward_end_label=row["forward_end_label"] or None,
        maturity_days=_optional_int(row["maturity_days"]),
    )


class TermStructureStore:
    """CSV-backed store keyed by (date, label, is_implied_forward, is_constant_maturity)."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def _read(self) -> pd.DataFrame:
        if not self.path.exists():
            return pd.DataFrame(columns=COLUMNS)
        df = pd.read_csv(self.path, dtype=str, keep_default_na=False)
        missing = [col for col in COLUMNS if col not in df.columns]
        if missing:
            raise ValueError(f"{self.path} is missing columns {missing}")
        return df[COLUMNS]

    def upsert(self, calculation_date: date, points: Iterable[FuturesPoint]) -> int:
        rows = pd.DataFrame([_to_row(calculation_date, p) for p in points], columns=COLUMNS)
        if rows.empty:
            return 0
        existing = self._read()
        combined = rows if existing.empty else pd.concat([existing, rows], ignore_index=True)
        combined = combined.drop_duplicates(subset=KEY, keep="last")
        combined = combined.sort_values("calculation_date", kind="stable")
        self.path.parent.mkdir(parents=True, exist_ok=True)
        combined.to_csv(self.path, index=False)
        logger.info("stored %d term structure rows for %s in %s", len(rows), calculation_date, self.path)
        return len(rows)

    def dates(self) -> list[date]:
        df = self._read()
        return sorted(date.fromisoformat(d) for d in df["calculation_date"].unique())

    def load(self, calculation_date: date) -> TermStructureSeries:
        df = self._read()
        subset = df[df["calculation_date"] == calculation_date.isoformat()]
        points = [_from_row(row) for _, row in subset.iterrows()]
        return tuple(sorted(points, key=lambda p: p.days_to_expiration or 0))

    def load_latest(self) -> Tuple[Optional[date], TermStructureSeries]:
        dates = self.dates()
        if not dates:
            return None, ()
        latest = dates[-1]
        return latest, self.load(latest)
