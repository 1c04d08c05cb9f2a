"""Command line entry points."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict
from datetime import date
from pathlib import Path

from vix_curve.config import AppConfig, load_config
from vix_curve.pipeline import calculate_term_structure, latest_term_structure, load_history, sp500_overview
from vix_curve.reports import metrics_frame, report_frame, series_frame
from vix_curve.signals import TermStructureRun


def _configure_logging(config: AppConfig) -> None:
    logging.basicConfig(
        level=config.logging.level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _run_payload(run: TermStructureRun) -> dict:
    return {
        "calculation_date": run.calculation_date.isoformat(),
        "points": series_frame(run.combined()).to_dict(orient="records"),
        "report": report_frame(run.report).to_dict(orient="records"),
        "metrics": dict(run.report.cross_month_metrics),
    }


def _print_run(run: TermStructureRun, as_json: bool) -> None:
    if as_json:
        print(json.dumps(_run_payload(run), default=str))
        return
    print(f"VIX term structure as of {run.calculation_date.isoformat()}")
    print(series_frame(run.combined()).to_string(index=False))
    if run.report.is_empty:
        print("Not enough contracts for contango metrics")
        return
    print()
    print(report_frame(run.report).to_string(index=False))
    metrics = metrics_frame(run.report)
    if not metrics.empty:
        print()
        print(metrics.to_string(index=False))


def _calculate(args: argparse.Namespace) -> int:
    config = load_config(args.config)
    _configure_logging(config)
    run = calculate_term_structure(config, as_of=args.as_of)
    if run is None:
        print("Not enough VIX futures data to calculate term structure", file=sys.stderr)
        return 1
    if args.output:
        series_frame(run.combined()).to_csv(args.output, index=False)
        print(f"Saved term structure to {args.output}")
    else:
        _print_run(run, args.json)
    return 0


def _latest(args: argparse.Namespace) -> int:
    config = load_config(args.config)
    _configure_logging(config)
    run = latest_term_structure(config)
    if run is None:
        print("No term structure data found", file=sys.stderr)
        return 1
    _print_run(run, args.json)
    return 0


def _sp500(args: argparse.Namespace) -> int:
    config = load_config(args.config)
    _configure_logging(config)
    history = load_history(config, args.end or date.today(), start=args.start)
    overview = sp500_overview(config, history)
    columns = ["close"] + [f"sma{w}" for w in config.moving_averages.windows]
    table = overview.sp500[columns].tail(args.rows)
    table.index = table.index.strftime("%Y-%m-%d")
    print(table.to_string())
    payload = {
        "trend": asdict(overview.trend) if overview.trend else None,
        "quotes": {name: asdict(quote) for name, quote in overview.quotes.items()},
    }
    print(json.dumps(payload, default=str))
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="VIX term structure CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    calc_parser = subparsers.add_parser("calculate", help="Calculate and store today's term structure")
    calc_parser.add_argument("--config", required=True, type=Path)
    calc_parser.add_argument("--as-of", type=date.fromisoformat, help="Calculation date (YYYY-MM-DD)")
    calc_parser.add_argument("--output", type=Path, help="Optional CSV output path")
    calc_parser.add_argument("--json", action="store_true", help="Print JSON instead of tables")

    latest_parser = subparsers.add_parser("latest", help="Show the latest stored term structure")
    latest_parser.add_argument("--config", required=True, type=Path)
    latest_parser.add_argument("--json", action="store_true", help="Print JSON instead of tables")

    sp_parser = subparsers.add_parser("sp500", help="S&P 500 moving averages and index quotes")
    sp_parser.add_argument("--config", required=True, type=Path)
    sp_parser.add_argument("--start", type=date.fromisoformat)
    sp_parser.add_argument("--end", type=date.fromisoformat)
    sp_parser.add_argument("--rows", type=int, default=10)

    args = parser.parse_args(argv)
    if args.command == "calculate":
        return _calculate(args)
    if args.command == "latest":
        return _latest(args)
    return _sp500(args)


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
