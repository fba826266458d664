"""Grooming business reporting package."""

from .application import run_report
from .config import Settings
from .domain import FilterState, ReportData, get_metric, generate_insights
from .drilldown import resolve_drill_rows
from .filters import parse_filters_from_query, report_filters, serialize_filters_to_query
from .normalization import normalize_reports_data
from .report_engine import ReportEngine, compute_report_data

__all__ = [
    "Settings",
    "FilterState",
    "ReportData",
    "ReportEngine",
    "compute_report_data",
    "get_metric",
    "generate_insights",
    "normalize_reports_data",
    "parse_filters_from_query",
    "serialize_filters_to_query",
    "report_filters",
    "resolve_drill_rows",
    "run_report",
]
