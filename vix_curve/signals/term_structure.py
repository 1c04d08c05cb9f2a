"""VIX futures term structure: expirations, forwards, constant maturity and contango metrics."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, replace
from decimal import ROUND_HALF_UP, Decimal
from datetime import date, datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

logger = logging.getLogger(__name__)

MONTH_ABBREVIATIONS = ("jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "oct", "nov", "dec")
SPOT_MARKERS = ("current", "spot")
EXPIRATION_DAY = 15  # VIX futures settle around mid-month
DAYS_PER_YEAR = 365
DEFAULT_TARGET_DAYS = 30

MONTH_7_VS_4_LABEL = "month 7 vs month 4 contango"
STEEPNESS_3M_LABEL = "3-month term-structure steepness"


class ContangoState(str, Enum):
    CONTANGO = "contango"
    BACKWARDATION = "backwardation"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class FuturesPoint:
    label: str
    value: float
    days_to_expiration: Optional[int] = None
    contango: ContangoState = ContangoState.UNKNOWN
    is_implied_forward: bool = False
    is_constant_maturity: bool = False
    forward_start_label: Optional[str] = None
    forward_end_label: Optional[str] = None
    maturity_days: Optional[int] = None

    @property
    def is_spot(self) -> bool:
        return is_spot_label(self.label) and not self.is_derived

    @property
    def is_derived(self) -> bool:
        return self.is_implied_forward or self.is_constant_maturity

    @property
    def is_contango(self) -> Optional[bool]:
        if self.contango is ContangoState.UNKNOWN:
            return None
        return self.contango is ContangoState.CONTANGO


TermStructureSeries = Tuple[FuturesPoint, ...]
RawPoint = Union[FuturesPoint, Mapping[str, Any]]


@dataclass(frozen=True)
class MonthValue:
    month: int
    value: float


@dataclass(frozen=True)
class ContangoReport:
    percentages_from_spot: Tuple[MonthValue, ...] = ()
    absolute_differences_from_spot: Tuple[MonthValue, ...] = ()
    normalized_term_structure: Tuple[MonthValue, ...] = ()
    cross_month_metrics: Mapping[str, float] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "cross_month_metrics", MappingProxyType(dict(self.cross_month_metrics)))

    @property
    def is_empty(self) -> bool:
        return not self.normalized_term_structure


@dataclass(frozen=True)
class TermStructureRun:
    calculation_date: date
    curve: TermStructureSeries
    implied_forwards: TermStructureSeries
    constant_maturity: Optional[FuturesPoint]
    report: ContangoReport

    def combined(self) -> TermStructureSeries:
        """Curve, forwards and constant-maturity points ordered by days to expiration."""

        points: List[FuturesPoint] = list(self.curve) + list(self.implied_forwards)
        if self.constant_maturity is not None:
            points.append(self.constant_maturity)
        return tuple(sorted(points, key=_days))


def is_spot_label(label: str) -> bool:
    lowered = label.lower()
    return any(marker in lowered for marker in SPOT_MARKERS)


def parse_month_label(label: str) -> Optional[int]:
    """Return the calendar month (1-12) a contract label starts with, or None."""

    prefix = label.strip()[:3].lower()
    if prefix in MONTH_ABBREVIATIONS:
        return MONTH_ABBREVIATIONS.index(prefix) + 1
    return None


def expiration_date(month: int, calculation_date: date) -> date:
    """Assumed expiration for a contract month, rolled into next year once it has passed."""

    expiry = date(calculation_date.year, month, EXPIRATION_DAY)
    if expiry < calculation_date:
        expiry = expiry.replace(year=calculation_date.year + 1)
    return expiry


def _days(point: FuturesPoint) -> int:
    return point.days_to_expiration or 0


def _as_date(value: date) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def _round_cents(value: float) -> float:
    """Round half away from zero to two decimals, like a printed price."""

    return float(Decimal(repr(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def _coerce(raw: RawPoint) -> FuturesPoint:
    if isinstance(raw, FuturesPoint):
        label, value = raw.label, raw.value
    else:
        label = raw.get("label", raw.get("month"))
        value = raw.get("value")
    try:
        number = float(value)
    except (TypeError, ValueError):
        number = math.nan
    return FuturesPoint(label=str(label) if label is not None else "", value=number)


def build_term_structure(points: Iterable[RawPoint], calculation_date: date) -> TermStructureSeries:
    """Order raw futures quotes by expiration and flag month-over-month contango.

    The spot point (label containing "current" or "spot") always comes first with
    zero days to expiration. Quotes with non-finite values or labels that do not
    start with a month abbreviation are dropped.
    """

    as_of = _as_date(calculation_date)
    spot: Optional[FuturesPoint] = None
    dated: List[Tuple[date, int, FuturesPoint]] = []

    for order, raw in enumerate(points):
        point = _coerce(raw)
        if not math.isfinite(point.value):
            logger.debug("dropping %r: non-finite value", point.label)
            continue
        if is_spot_label(point.label):
            if spot is None:
                spot = replace(point, days_to_expiration=0)
            else:
                logger.debug("dropping duplicate spot point %r", point.label)
            continue
        month = parse_month_label(point.label)
        if month is None:
            logger.debug("dropping %r: unrecognized contract month", point.label)
            continue
        dated.append((expiration_date(month, as_of), order, point))

    dated.sort(key=lambda item: (item[0], item[1]))

    series: List[FuturesPoint] = [spot] if spot is not None else []
    for expiry, _, point in dated:
        previous = series[-1] if series else None
        if previous is None:
            state = ContangoState.UNKNOWN
        elif point.value > previous.value:
            state = ContangoState.CONTANGO
        else:
            state = ContangoState.BACKWARDATION
        series.append(replace(point, days_to_expiration=(expiry - as_of).days, contango=state))
    return tuple(series)


def compute_implied_forwards(series: Iterable[FuturesPoint]) -> TermStructureSeries:
    """Implied forward volatility between each pair of adjacent futures contracts."""

    curve = [point for point in series if not point.is_derived]
    if len(curve) < 3:
        return ()

    forwards: List[FuturesPoint] = []
    for near, far in zip(curve, curve[1:]):
        d1, d2 = _days(near), _days(far)
        if d1 <= 0 or d2 <= 0 or d1 == d2:
            continue
        t1 = d1 / DAYS_PER_YEAR
        t2 = d2 / DAYS_PER_YEAR
        forward_variance = (far.value**2 * t2 - near.value**2 * t1) / (t2 - t1)
        forwards.append(
            FuturesPoint(
                label=f"{near.label}-{far.label} Fwd",
                value=_round_cents(math.sqrt(max(0.0, forward_variance))),
                days_to_expiration=math.floor((d1 + d2) / 2 + 0.5),
                is_implied_forward=True,
                forward_start_label=near.label,
                forward_end_label=far.label,
            )
        )
    return tuple(forwards)


def compute_constant_maturity(
    series: Iterable[FuturesPoint], target_days: int = DEFAULT_TARGET_DAYS
) -> Optional[FuturesPoint]:
    """Linearly interpolate a fixed-tenor value from the two contracts bracketing it."""

    curve = sorted((point for point in series if not point.is_implied_forward), key=_days)
    for lower, upper in zip(curve, curve[1:]):
        d1, d2 = _days(lower), _days(upper)
        if d1 <= target_days < d2:
            w_lower = (d2 - target_days) / (d2 - d1)
            w_upper = (target_days - d1) / (d2 - d1)
            return FuturesPoint(
                label=f"{target_days}-Day VIX",
                value=_round_cents(lower.value * w_lower + upper.value * w_upper),
                days_to_expiration=target_days,
                is_constant_maturity=True,
                maturity_days=target_days,
            )
    return None


def compute_contango_metrics(series: Iterable[FuturesPoint]) -> ContangoReport:
    futures = sorted((point for point in series if not point.is_derived), key=_days)
    if len(futures) < 2:
        return ContangoReport()

    spot = futures[0].value
    if spot <= 0:
        logger.warning("spot value %s is not positive; contango metrics unavailable", spot)
        return ContangoReport()

    percentages = [MonthValue(1, 0.0)]
    differences = [MonthValue(1, 0.0)]
    normalized = [MonthValue(1, 100.0)]
    for month, point in enumerate(futures[1:], start=2):
        percentages.append(MonthValue(month, (point.value - spot) / spot * 100))
        differences.append(MonthValue(month, point.value - spot))
        normalized.append(MonthValue(month, point.value / spot * 100))

    metrics: Dict[str, float] = {}
    if len(futures) >= 7 and futures[3].value != 0:
        month4, month7 = futures[3].value, futures[6].value
        metrics[MONTH_7_VS_4_LABEL] = (month7 - month4) / month4 * 100
    if len(futures) >= 3:
        metrics[STEEPNESS_3M_LABEL] = (futures[2].value / spot - 1) * 100

    return ContangoReport(
        percentages_from_spot=tuple(percentages),
        absolute_differences_from_spot=tuple(differences),
        normalized_term_structure=tuple(normalized),
        cross_month_metrics=metrics,
    )


def run_term_structure(
    points: Iterable[RawPoint],
    calculation_date: date,
    target_days: int = DEFAULT_TARGET_DAYS,
) -> TermStructureRun:
    as_of = _as_date(calculation_date)
    curve = build_term_structure(points, as_of)
    return TermStructureRun(
        calculation_date=as_of,
        curve=curve,
        implied_forwards=compute_implied_forwards(curve),
        constant_maturity=compute_constant_maturity(curve, target_days),
        report=compute_contango_metrics(curve),
    )
