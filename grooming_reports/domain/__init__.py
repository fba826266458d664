"""Domain layer package."""

from .insights import INSIGHT_RULES, generate_insights
from .metric_registry import METRIC_REGISTRY, get_metric, metric_label, metric_tooltip
from .report_types import REPORT_IDS, FilterState, ReportData

__all__ = [
    "INSIGHT_RULES",
    "METRIC_REGISTRY",
    "REPORT_IDS",
    "FilterState",
    "ReportData",
    "generate_insights",
    "get_metric",
    "metric_label",
    "metric_tooltip",
]
