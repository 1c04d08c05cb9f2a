import math
from datetime import date

import pytest

from vix_curve.signals import (
    ContangoReport,
    ContangoState,
    FuturesPoint,
    MonthValue,
    build_term_structure,
    compute_constant_maturity,
    compute_contango_metrics,
    compute_implied_forwards,
    parse_month_label,
    run_term_structure,
)
from vix_curve.signals.term_structure import MONTH_7_VS_4_LABEL, STEEPNESS_3M_LABEL, _round_cents, expiration_date

JAN_10 = date(2025, 1, 10)


def raw(label, value):
    return {"label": label, "value": value}


SCENARIO = [raw("Current", 20.0), raw("Feb", 21.0), raw("Mar", 22.0), raw("Apr", 21.5)]


def point(label, value, days):
    return FuturesPoint(label=label, value=value, days_to_expiration=days)


def test_parse_month_label():
    assert parse_month_label("Jan") == 1
    assert parse_month_label("dec 2025") == 12
    assert parse_month_label("  Mar") == 3
    assert parse_month_label("SEPTEMBER") == 9
    assert parse_month_label("Q1-Blend") is None
    assert parse_month_label("") is None


def test_expiration_rolls_into_next_year():
    assert expiration_date(2, JAN_10) == date(2025, 2, 15)
    assert expiration_date(1, date(2025, 1, 20)) == date(2026, 1, 15)
    assert expiration_date(1, date(2025, 1, 15)) == date(2025, 1, 15)


def test_builder_scenario_days_and_contango_flags():
    series = build_term_structure(SCENARIO, JAN_10)

    assert [p.label for p in series] == ["Current", "Feb", "Mar", "Apr"]
    assert [p.days_to_expiration for p in series] == [0, 36, 64, 95]
    assert [p.contango for p in series] == [
        ContangoState.UNKNOWN,
        ContangoState.CONTANGO,
        ContangoState.CONTANGO,
        ContangoState.BACKWARDATION,
    ]
    assert series[0].is_contango is None
    assert series[1].is_contango is True
    assert series[3].is_contango is False


def test_builder_reorders_unsorted_input_and_keeps_spot_first():
    series = build_term_structure(
        [raw("Jan", 23.0), raw("Dec", 22.0), raw("SPOT VIX", 19.0), raw("Feb", 22.5)],
        date(2025, 11, 20),
    )

    assert [p.label for p in series] == ["SPOT VIX", "Dec", "Jan", "Feb"]
    assert [p.days_to_expiration for p in series] == [0, 25, 56, 87]
    assert [p.contango for p in series[1:]] == [
        ContangoState.CONTANGO,
        ContangoState.CONTANGO,
        ContangoState.BACKWARDATION,
    ]


def test_builder_output_sorted_and_non_negative():
    series = build_term_structure(
        [raw(m, 20 + i * 0.3) for i, m in enumerate(["Nov", "Mar", "Jul", "Jan", "May", "Sep"])]
        + [raw("current", 18.0)],
        date(2025, 6, 3),
    )

    days = [p.days_to_expiration for p in series]
    assert series[0].label == "current"
    assert days == sorted(days)
    assert all(d >= 0 for d in days)


def test_builder_drops_unparseable_labels():
    series = build_term_structure(SCENARIO + [raw("Q1-Blend", 21.2)], JAN_10)
    assert len(series) == len(SCENARIO)
    assert "Q1-Blend" not in {p.label for p in series}


def test_builder_drops_non_finite_values():
    series = build_term_structure(
        [raw("Current", 20.0), raw("Feb", math.nan), raw("Mar", "n/a"), raw("Apr", math.inf), raw("May", 23.0)],
        JAN_10,
    )
    assert [p.label for p in series] == ["Current", "May"]


def test_builder_accepts_points_and_month_key():
    series = build_term_structure(
        [FuturesPoint(label="Current", value=20.0), {"month": "Feb", "value": "21.0"}],
        JAN_10,
    )
    assert [(p.label, p.value) for p in series] == [("Current", 20.0), ("Feb", 21.0)]


def test_builder_without_spot_leaves_first_contract_unknown():
    series = build_term_structure([raw("Mar", 22.0), raw("Feb", 21.0)], JAN_10)
    assert [p.label for p in series] == ["Feb", "Mar"]
    assert series[0].contango is ContangoState.UNKNOWN
    assert series[1].contango is ContangoState.CONTANGO


def test_builder_keeps_single_spot():
    series = build_term_structure([raw("Current", 20.0), raw("Spot", 19.0), raw("Feb", 21.0)], JAN_10)
    assert [p.label for p in series] == ["Current", "Feb"]


def test_builder_empty_input_is_empty_series():
    assert build_term_structure([], JAN_10) == ()
    assert build_term_structure([raw("Q1-Blend", 20.0)], JAN_10) == ()


def test_implied_forwards_require_three_points():
    series = build_term_structure(SCENARIO[:2], JAN_10)
    assert compute_implied_forwards(series) == ()
    assert compute_implied_forwards([]) == ()


def test_implied_forward_formula_and_labels():
    series = build_term_structure(SCENARIO, JAN_10)
    forwards = compute_implied_forwards(series)

    assert [f.label for f in forwards] == ["Feb-Mar Fwd", "Mar-Apr Fwd"]
    t1, t2 = 36 / 365, 64 / 365
    expected = math.sqrt((22.0**2 * t2 - 21.0**2 * t1) / (t2 - t1))
    first = forwards[0]
    assert first.value == pytest.approx(round(expected, 2))
    assert first.days_to_expiration == 50
    assert first.is_implied_forward
    assert first.forward_start_label == "Feb"
    assert first.forward_end_label == "Mar"


def test_implied_forward_clamps_negative_variance():
    series = [point("Current", 20.0, 0), point("Feb", 30.0, 36), point("Mar", 15.0, 64)]
    forwards = compute_implied_forwards(series)
    assert len(forwards) == 1
    assert forwards[0].value == 0.0


def test_implied_forwards_never_negative_or_nan():
    values = [35.0, 12.0, 40.0, 9.0, 25.0]
    series = [point("Current", 20.0, 0)] + [
        point(label, value, 30 * (i + 1)) for i, (label, value) in enumerate(zip(["Feb", "Mar", "Apr", "May", "Jun"], values))
    ]
    forwards = compute_implied_forwards(series)
    assert len(forwards) == 4
    assert all(f.value >= 0 and not math.isnan(f.value) for f in forwards)


def test_implied_forwards_skip_equal_expirations():
    series = [point("Current", 20.0, 0), point("Feb", 21.0, 36), point("February", 21.5, 36)]
    assert compute_implied_forwards(series) == ()


def test_constant_maturity_scenario():
    series = [point("Feb", 21.0, 20), point("Mar", 23.0, 40)]
    cm = compute_constant_maturity(series, 30)

    assert cm is not None
    assert cm.value == pytest.approx(22.0)
    assert cm.label == "30-Day VIX"
    assert cm.is_constant_maturity
    assert cm.maturity_days == 30
    assert cm.days_to_expiration == 30


def test_constant_maturity_brackets_with_spot():
    series = build_term_structure(SCENARIO, JAN_10)
    cm = compute_constant_maturity(series)
    assert cm.value == pytest.approx(round(20.0 * 6 / 36 + 21.0 * 30 / 36, 2))


def test_constant_maturity_without_bracket_is_none():
    series = [point("Feb", 21.0, 40), point("Mar", 23.0, 70)]
    assert compute_constant_maturity(series, 30) is None
    assert compute_constant_maturity(series, 70) is None
    assert compute_constant_maturity(series[:1], 40) is None
    assert compute_constant_maturity([], 30) is None


def test_constant_maturity_lower_bound_inclusive():
    series = [point("Feb", 21.0, 30), point("Mar", 23.0, 60)]
    assert compute_constant_maturity(series, 30).value == pytest.approx(21.0)


def test_constant_maturity_ignores_implied_forwards():
    forward = FuturesPoint(label="Feb-Mar Fwd", value=99.0, days_to_expiration=30, is_implied_forward=True)
    series = [point("Feb", 21.0, 20), forward, point("Mar", 23.0, 40)]
    assert compute_constant_maturity(series, 30).value == pytest.approx(22.0)


@pytest.mark.parametrize("lower,upper", [(21.0, 23.0), (25.0, 18.5), (19.0, 19.0)])
@pytest.mark.parametrize("target", [10, 25, 33, 49])
def test_constant_maturity_stays_within_bracket(lower, upper, target):
    cm = compute_constant_maturity([point("Feb", lower, 10), point("Mar", upper, 50)], target)
    assert min(lower, upper) <= cm.value <= max(lower, upper)


def test_contango_metrics_scenario():
    report = compute_contango_metrics(build_term_structure(SCENARIO, JAN_10))

    assert [m.month for m in report.normalized_term_structure] == [1, 2, 3, 4]
    assert [m.value for m in report.normalized_term_structure] == pytest.approx([100.0, 105.0, 110.0, 107.5])
    assert [m.value for m in report.percentages_from_spot] == pytest.approx([0.0, 5.0, 10.0, 7.5])
    assert [m.value for m in report.absolute_differences_from_spot] == pytest.approx([0.0, 1.0, 2.0, 1.5])
    assert report.cross_month_metrics[STEEPNESS_3M_LABEL] == pytest.approx(10.0)
    assert MONTH_7_VS_4_LABEL not in report.cross_month_metrics


def test_contango_metrics_spot_month_is_exact():
    report = compute_contango_metrics([point("Current", 17.3, 0), point("Feb", 18.1, 36)])
    assert report.percentages_from_spot[0] == MonthValue(1, 0.0)
    assert report.absolute_differences_from_spot[0] == MonthValue(1, 0.0)
    assert report.normalized_term_structure[0] == MonthValue(1, 100.0)


def test_contango_metrics_month_seven_vs_four():
    values = [20.0, 21.0, 22.0, 23.0, 24.0, 25.0, 26.0]
    series = [point(f"m{i}", v, i * 30) for i, v in enumerate(values)]
    report = compute_contango_metrics(series)

    assert report.cross_month_metrics[MONTH_7_VS_4_LABEL] == pytest.approx((26.0 - 23.0) / 23.0 * 100)
    assert report.cross_month_metrics[STEEPNESS_3M_LABEL] == pytest.approx((22.0 / 20.0 - 1) * 100)


def test_contango_metrics_excludes_derived_points():
    series = [
        point("Current", 20.0, 0),
        FuturesPoint(label="30-Day VIX", value=20.5, days_to_expiration=30, is_constant_maturity=True),
        point("Feb", 21.0, 36),
        FuturesPoint(label="Feb-Mar Fwd", value=23.0, days_to_expiration=50, is_implied_forward=True),
        point("Mar", 22.0, 64),
    ]
    report = compute_contango_metrics(series)
    assert len(report.normalized_term_structure) == 3


def test_contango_metrics_insufficient_data_is_empty():
    empty = compute_contango_metrics([point("Current", 20.0, 0)])
    assert empty == ContangoReport()
    assert empty.is_empty
    assert empty.cross_month_metrics == {}


def test_contango_metrics_zero_spot_is_empty():
    assert compute_contango_metrics([point("Current", 0.0, 0), point("Feb", 21.0, 36)]).is_empty


def test_run_is_idempotent():
    first = run_term_structure(SCENARIO, JAN_10)
    second = run_term_structure(list(SCENARIO), JAN_10)
    assert first == second
    assert first.combined() == second.combined()


def test_run_combines_all_points_in_days_order():
    run = run_term_structure(SCENARIO, JAN_10, target_days=30)
    combined = run.combined()

    assert combined[0].label == "Current"
    assert [p.label for p in combined] == ["Current", "30-Day VIX", "Feb", "Feb-Mar Fwd", "Mar", "Mar-Apr Fwd", "Apr"]
    days = [p.days_to_expiration for p in combined]
    assert days == sorted(days)
    assert run.constant_maturity.maturity_days == 30
    assert len(run.implied_forwards) == 2
    assert not run.report.is_empty


def test_implied_forward_days_round_half_up():
    series = [point("Current", 20.0, 0), point("May", 21.0, 125), point("Jun", 22.0, 156)]
    assert compute_implied_forwards(series)[0].days_to_expiration == 141


def test_constant_maturity_rounds_half_up():
    cm = compute_constant_maturity([point("Feb", 21.0, 20), point("Mar", 21.25, 40)], 30)
    assert cm.value == 21.13


def test_round_cents_uses_printed_value():
    assert _round_cents(2.675) == 2.68
    assert _round_cents(21.125) == 21.13
    assert _round_cents(19.994) == 19.99


def test_cross_month_metrics_are_read_only():
    report = compute_contango_metrics(build_term_structure(SCENARIO, JAN_10))
    with pytest.raises(TypeError):
        report.cross_month_metrics["extra"] = 1.0
    assert dict(report.cross_month_metrics) == {STEEPNESS_3M_LABEL: pytest.approx(10.0)}
