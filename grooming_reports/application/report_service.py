"""End-to-end reporting pipeline: raw collections + query string -> ReportData."""

from __future__ import annotations

import logging
from datetime import date
from time import perf_counter
from typing import Any, Mapping, Sequence

from grooming_reports.config import Settings
from grooming_reports.domain.report_types import ReportData, validate_report_id
from grooming_reports.filters import business_today, parse_filters_from_query
from grooming_reports.normalization import normalize_reports_data
from grooming_reports.report_engine import ReportEngine

logger = logging.getLogger(__name__)

RAW_COLLECTIONS: tuple[str, ...] = ("appointments", "transactions", "clients", "staff", "inventory", "messages")


def _collection(raw: Mapping[str, Any], name: str) -> Sequence[Mapping[str, Any]]:
    rows = raw.get(name)
    if rows is None:
        return []
    if not isinstance(rows, Sequence) or isinstance(rows, (str, bytes)):
        raise ValueError(f"Raw collection {name!r} must be a list of records")
    return rows


def run_report(
    report_id: str,
    raw: Mapping[str, Any],
    query: str | Mapping[str, Any] | None = None,
    today: date | None = None,
    settings: Settings | None = None,
) -> ReportData:
    validate_report_id(report_id)
    settings = settings or Settings.from_env()
    pipeline_start = perf_counter()
    stage_start = pipeline_start
    stage_timings: list[tuple[str, float]] = []

    def _mark(stage_name: str) -> None:
        nonlocal stage_start
        now = perf_counter()
        stage_timings.append((stage_name, now - stage_start))
        stage_start = now

    data = normalize_reports_data(**{name: _collection(raw, name) for name in RAW_COLLECTIONS})
    _mark("normalize")
    filters = parse_filters_from_query(query, report_id, today or business_today(settings.timezone))
    _mark("parse_filters")
    report = ReportEngine(settings).compute(report_id, data, filters)
    _mark("compute")

    stage_text = ", ".join([f"{name}={seconds:.3f}s" for name, seconds in stage_timings])
    logger.debug("Stage Timing (%s): %s", report_id, stage_text)
    logger.debug("Total Elapsed (%s): %.3fs", report_id, perf_counter() - pipeline_start)
    return report
