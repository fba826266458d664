"""Per-report KPI selection and registry-backed KPI assembly."""

from __future__ import annotations

from typing import Dict, List, Tuple

from grooming_reports.application.reporting.aggregates import ReportAggregates
from grooming_reports.application.reporting.metrics import format_delta, format_metric, trend
from grooming_reports.domain.metric_registry import get_metric, metric_tooltip
from grooming_reports.domain.report_types import KPIValue

KPI_SOURCES: Dict[str, str] = {
    "gross-sales": "gross_sales",
    "net-sales": "net_sales",
    "discounts": "discounts",
    "refunds": "refunds",
    "taxes": "taxes",
    "tips": "tips",
    "total-collected": "total_collected",
    "contribution-margin": "contribution",
    "contribution-margin-percent": "contribution_pct",
    "gross-margin-percent": "gross_margin_pct",
    "avg-ticket": "avg_ticket",
    "appointments-completed": "completed_count",
    "no-show-rate": "no_show_rate",
    "rebook-30d": "rebook_30d",
    "utilization": "utilization",
    "processing-fees": "processing_fees",
    "direct-labor": "labor",
    "estimated-cogs": "cogs",
    "revenue-per-hour": "revenue_per_hour",
    "margin-per-hour": "margin_per_hour",
    "rebook-7d": "rebook_7d",
    "rebook-24h": "rebook_24h",
    "rebook-30d-window": "rebook_30d",
    "avg-days-to-return": "avg_days_to_return",
    "return-90d": "return_90d",
    "booked": "booked_count",
    "cancelled": "cancelled_count",
    "avg-lead-time": "avg_lead_time",
    "no-show-lost-revenue": "no_show_lost_revenue",
    "recovery-rate": "recovery_rate",
    "avg-ltv-12m": "avg_ltv_12m",
    "median-visits-12m": "median_visits_12m",
    "new-clients": "new_clients",
    "retention-90": "retention_90",
    "retention-180": "retention_180",
    "retention-360": "retention_360",
    "tips-total": "tips",
    "tip-percent": "tip_percent",
    "tip-fee-cost": "tip_fee_cost",
    "net-to-staff": "net_to_staff",
    "taxable-sales": "taxable_sales",
    "nontaxable-sales": "nontaxable_sales",
}

REPORT_KPIS: Dict[str, Tuple[str, ...]] = {
    "owner-overview": (
        "gross-sales",
        "net-sales",
        "contribution-margin",
        "contribution-margin-percent",
        "avg-ticket",
        "appointments-completed",
        "no-show-rate",
        "rebook-30d",
        "utilization",
        "tips",
    ),
    "true-profit": (
        "contribution-margin",
        "contribution-margin-percent",
        "gross-margin-percent",
        "avg-ticket",
        "estimated-cogs",
        "processing-fees",
        "direct-labor",
    ),
    "sales-summary": ("gross-sales", "net-sales", "discounts", "refunds", "taxes", "tips", "total-collected"),
    "finance-recon": ("total-collected", "refunds", "processing-fees"),
    "appointments-capacity": (
        "booked",
        "appointments-completed",
        "cancelled",
        "no-show-rate",
        "avg-lead-time",
        "utilization",
    ),
    "no-shows": ("no-show-rate", "no-show-lost-revenue", "recovery-rate"),
    "retention": ("rebook-24h", "rebook-7d", "rebook-30d-window", "avg-days-to-return", "return-90d"),
    "cohorts-ltv": (
        "avg-ltv-12m",
        "median-visits-12m",
        "new-clients",
        "retention-90",
        "retention-180",
        "retention-360",
    ),
    "staff-performance": ("revenue-per-hour", "margin-per-hour", "rebook-7d", "avg-ticket", "tips"),
    "payroll": ("total-collected", "tips"),
    "service-mix": ("gross-sales", "contribution-margin", "avg-ticket"),
    "inventory": ("estimated-cogs", "avg-ticket"),
    "marketing-roi": ("gross-sales",),
    "tips": ("tips-total", "tip-percent", "tip-fee-cost", "net-to-staff"),
    "taxes": ("taxable-sales", "nontaxable-sales", "taxes"),
}


def build_kpi(
    metric_id: str,
    value: float,
    time_basis: str,
    previous: float | None = None,
    fallback_format: str = "int",
) -> KPIValue:
    metric = get_metric(metric_id)
    fmt = metric.format if metric is not None else fallback_format
    delta = None if previous is None else value - previous
    return KPIValue(
        id=metric_id,
        label=metric.label if metric is not None else metric_id,
        value=value,
        formatted_value=format_metric(value, fmt),
        format=fmt,
        delta=delta,
        delta_formatted=None if delta is None else format_delta(delta, fmt),
        tooltip=metric_tooltip(metric_id, time_basis) if metric is not None else None,
        trend=trend(delta),
        drill_row_types=metric.drill_row_types if metric is not None else (),
    )


def kpi_value(metric_id: str, aggregates: ReportAggregates) -> float:
    return getattr(aggregates, KPI_SOURCES[metric_id])


def build_report_kpis(
    report_id: str,
    current: ReportAggregates,
    time_basis: str,
    previous: ReportAggregates | None = None,
) -> List[KPIValue]:
    return [
        build_kpi(
            metric_id,
            kpi_value(metric_id, current),
            time_basis,
            None if previous is None else kpi_value(metric_id, previous),
        )
        for metric_id in REPORT_KPIS[report_id]
    ]
