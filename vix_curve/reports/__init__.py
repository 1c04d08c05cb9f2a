"""Reporting helpers."""

from .curve import metrics_frame, report_frame, series_frame

__all__ = ["metrics_frame", "report_frame", "series_frame"]
