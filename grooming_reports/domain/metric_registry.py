"""Catalog of report metric definitions used for labels, tooltips and drill targets."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Tuple


@dataclass(frozen=True)
class MetricDefinition:
    id: str
    label: str
    definition: str
    formula: str
    format: str
    exclusions: str | None = None
    time_basis_sensitivity: str | None = None
    drill_row_types: Tuple[str, ...] = ()


METRIC_REGISTRY: Tuple[MetricDefinition, ...] = (
    MetricDefinition(
        id="gross-sales",
        label="Gross Sales",
        definition="Total service and product sales before discounts, refunds, taxes, and tips.",
        formula="Sum of transaction subtotals before discounts.",
        exclusions="Excludes taxes and tips.",
        time_basis_sensitivity="Checkout / Transaction date",
        format="money",
        drill_row_types=("transactions", "appointments"),
    ),
    MetricDefinition(
        id="net-sales",
        label="Net Sales",
        definition="Sales after discounts and refunds, excluding taxes and tips.",
        formula="Gross Sales - Discounts - Refunds.",
        exclusions="Excludes taxes and tips by default.",
        time_basis_sensitivity="Checkout / Transaction date",
        format="money",
        drill_row_types=("transactions", "appointments"),
    ),
    MetricDefinition(
        id="discounts",
        label="Discounts",
        definition="Total discounts applied to invoices.",
        formula="Sum of discount amounts on transactions.",
        exclusions="Excludes refunds.",
        time_basis_sensitivity="Checkout / Transaction date",
        format="money",
        drill_row_types=("transactions",),
    ),
    MetricDefinition(
        id="refunds",
        label="Refunds",
        definition="Total value of refunded transactions.",
        formula="Sum of refunded transaction totals.",
        exclusions="Only refunded status.",
        time_basis_sensitivity="Transaction date",
        format="money",
        drill_row_types=("transactions",),
    ),
    MetricDefinition(
        id="taxes",
        label="Taxes Collected",
        definition="Total taxes collected on transactions.",
        formula="Sum of tax amounts on transactions.",
        time_basis_sensitivity="Transaction date",
        format="money",
        drill_row_types=("transactions",),
    ),
    MetricDefinition(
        id="tips",
        label="Tips Collected",
        definition="Tips collected from clients.",
        formula="Sum of tip amounts on transactions.",
        time_basis_sensitivity="Checkout / Transaction date",
        format="money",
        drill_row_types=("appointments", "transactions"),
    ),
    MetricDefinition(
        id="total-collected",
        label="Total Collected",
        definition="Total amount collected from clients, including taxes and tips.",
        formula="Net Sales + Taxes + Tips.",
        time_basis_sensitivity="Transaction date",
        format="money",
        drill_row_types=("transactions",),
    ),
    MetricDefinition(
        id="contribution-margin",
        label="Contribution Margin $",
        definition="Revenue after direct costs such as COGS, labor, and processing fees.",
        formula="Net Sales - COGS - Labor - Fees.",
        time_basis_sensitivity="Checkout date",
        format="money",
        drill_row_types=("appointments", "transactions"),
    ),
    MetricDefinition(
        id="contribution-margin-percent",
        label="Contribution Margin %",
        definition="Contribution margin as a percentage of net sales.",
        formula="Contribution Margin / Net Sales.",
        time_basis_sensitivity="Checkout date",
        format="percent",
        drill_row_types=("appointments", "transactions"),
    ),
    MetricDefinition(
        id="gross-margin-percent",
        label="Gross Margin %",
        definition="Gross margin as a percentage of net sales.",
        formula="(Net Sales - COGS) / Net Sales.",
        time_basis_sensitivity="Checkout date",
        format="percent",
        drill_row_types=("transactions",),
    ),
    MetricDefinition(
        id="avg-ticket",
        label="Avg Ticket",
        definition="Average sales per completed appointment.",
        formula="Net Sales / Completed Appointments.",
        time_basis_sensitivity="Checkout date",
        format="money",
        drill_row_types=("appointments", "transactions"),
    ),
    MetricDefinition(
        id="appointments-completed",
        label="Appointments Completed",
        definition="Number of completed appointments.",
        formula="Count of appointments with completed status.",
        time_basis_sensitivity="Service date",
        format="int",
        drill_row_types=("appointments",),
    ),
    MetricDefinition(
        id="no-show-rate",
        label="No-show Rate",
        definition="Percentage of appointments marked as no-show.",
        formula="No-shows / Booked appointments.",
        time_basis_sensitivity="Service date",
        format="percent",
        drill_row_types=("appointments",),
    ),
    MetricDefinition(
        id="rebook-30d",
        label="30-Day Rebook Rate",
        definition="Share of clients who rebooked within 30 days.",
        formula="Rebooked within 30d / Total clients with completed appt.",
        time_basis_sensitivity="Service date",
        format="percent",
        drill_row_types=("clients", "appointments"),
    ),
    MetricDefinition(
        id="utilization",
        label="Utilization %",
        definition="Percent of available capacity that is booked or completed.",
        formula="Booked minutes / Available minutes.",
        time_basis_sensitivity="Service date",
        format="percent",
        drill_row_types=("appointments",),
    ),
    MetricDefinition(
        id="processing-fees",
        label="Processing Fees",
        definition="Estimated payment processing fees.",
        formula="Card volume x fee rate + fixed fee.",
        time_basis_sensitivity="Transaction date",
        format="money",
        drill_row_types=("transactions",),
    ),
    MetricDefinition(
        id="direct-labor",
        label="Direct Labor",
        definition="Estimated groomer labor cost for completed appointments.",
        formula="Sum over completed appointments of duration hours x hourly rate; missing rates count as 0.",
        time_basis_sensitivity="Service date",
        format="money",
        drill_row_types=("appointments",),
    ),
    MetricDefinition(
        id="estimated-cogs",
        label="Estimated COGS",
        definition="Estimated cost of goods sold for completed services plus stocked inventory usage.",
        formula="Completed service revenue x COGS rate + unit cost of each stocked inventory item.",
        time_basis_sensitivity="Service date",
        format="money",
        drill_row_types=("transactions", "inventory"),
    ),
    MetricDefinition(
        id="revenue-per-hour",
        label="Revenue / Hour",
        definition="Revenue earned per service hour.",
        formula="Net Sales / Total service hours.",
        time_basis_sensitivity="Service date",
        format="money",
        drill_row_types=("appointments",),
    ),
    MetricDefinition(
        id="margin-per-hour",
        label="Margin / Hour",
        definition="Contribution margin per service hour.",
        formula="Contribution Margin / Service hours.",
        time_basis_sensitivity="Service date",
        format="money",
        drill_row_types=("appointments",),
    ),
    MetricDefinition(
        id="rebook-7d",
        label="Rebook ≤7d",
        definition="Rebooking rate within 7 days.",
        formula="Clients rebooked within 7d / completed clients.",
        time_basis_sensitivity="Service date",
        format="percent",
        drill_row_types=("clients",),
    ),
    MetricDefinition(
        id="rebook-24h",
        label="Rebook 0-24h",
        definition="Rebooking rate within 24 hours.",
        formula="Clients rebooked within 24h / completed clients.",
        time_basis_sensitivity="Service date",
        format="percent",
        drill_row_types=("clients",),
    ),
    MetricDefinition(
        id="rebook-30d-window",
        label="Rebook ≤30d",
        definition="Rebooking rate within 30 days.",
        formula="Clients rebooked within 30d / completed clients.",
        time_basis_sensitivity="Service date",
        format="percent",
        drill_row_types=("clients",),
    ),
    MetricDefinition(
        id="avg-days-to-return",
        label="Avg Days to Next Visit",
        definition="Average days between a completed appointment and the client's next one.",
        formula="Avg(next appointment date - first appointment date).",
        time_basis_sensitivity="Service date",
        format="int",
        drill_row_types=("clients",),
    ),
    MetricDefinition(
        id="return-90d",
        label="90-day Return Rate",
        definition="Percent of clients returning within 90 days.",
        formula="Clients returning within 90d / completed clients.",
        time_basis_sensitivity="Service date",
        format="percent",
        drill_row_types=("clients",),
    ),
    MetricDefinition(
        id="booked",
        label="Booked Appointments",
        definition="Appointments booked in the date range.",
        formula="Count of appointments excluding cancelled.",
        time_basis_sensitivity="Service date",
        format="int",
        drill_row_types=("appointments",),
    ),
    MetricDefinition(
        id="cancelled",
        label="Cancelled Appointments",
        definition="Appointments marked as cancelled.",
        formula="Count of cancelled appointments.",
        time_basis_sensitivity="Service date",
        format="int",
        drill_row_types=("appointments",),
    ),
    MetricDefinition(
        id="avg-lead-time",
        label="Avg Lead Time",
        definition="Average days between booking and appointment date.",
        formula="Avg(appointment date - created date).",
        time_basis_sensitivity="Service date",
        format="int",
        drill_row_types=("appointments",),
    ),
    MetricDefinition(
        id="no-show-lost-revenue",
        label="Lost Revenue",
        definition="Estimated revenue lost from no-shows.",
        formula="Sum of appointment totals for no-shows.",
        time_basis_sensitivity="Service date",
        format="money",
        drill_row_types=("appointments",),
    ),
    MetricDefinition(
        id="recovery-rate",
        label="Recovery Rate",
        definition="Percent of no-shows that rebook within 7 days.",
        formula="Recovered no-shows / total no-shows.",
        time_basis_sensitivity="Service date",
        format="percent",
        drill_row_types=("appointments", "clients"),
    ),
    MetricDefinition(
        id="avg-ltv-12m",
        label="Avg LTV (12m)",
        definition="Average revenue per client in the last 12 months.",
        formula="Completed revenue over 12m / active clients.",
        time_basis_sensitivity="Service date",
        format="money",
        drill_row_types=("clients", "transactions"),
    ),
    MetricDefinition(
        id="median-visits-12m",
        label="Median Visits (12m)",
        definition="Median visit count per client over last 12 months.",
        formula="Median of completed visits per client.",
        time_basis_sensitivity="Service date",
        format="int",
        drill_row_types=("clients",),
    ),
    MetricDefinition(
        id="new-clients",
        label="New Clients",
        definition="Clients whose first visit occurs in the date range.",
        formula="Count of clients with first visit within range.",
        time_basis_sensitivity="Service date",
        format="int",
        drill_row_types=("clients",),
    ),
    MetricDefinition(
        id="retention-90",
        label="Retention @90d",
        definition="Cohort retention after 90 days.",
        formula="Clients returning within 90d / cohort size.",
        time_basis_sensitivity="Service date",
        format="percent",
        drill_row_types=("clients",),
    ),
    MetricDefinition(
        id="retention-180",
        label="Retention @180d",
        definition="Cohort retention after 180 days.",
        formula="Clients returning within 180d / cohort size.",
        time_basis_sensitivity="Service date",
        format="percent",
        drill_row_types=("clients",),
    ),
    MetricDefinition(
        id="retention-360",
        label="Retention @360d",
        definition="Cohort retention after 360 days.",
        formula="Clients returning within 360d / cohort size.",
        time_basis_sensitivity="Service date",
        format="percent",
        drill_row_types=("clients",),
    ),
    MetricDefinition(
        id="tips-total",
        label="Total Tips",
        definition="Total tips collected.",
        formula="Sum of tips from transactions.",
        time_basis_sensitivity="Checkout date",
        format="money",
        drill_row_types=("appointments", "transactions"),
    ),
    MetricDefinition(
        id="tip-percent",
        label="Avg Tip %",
        definition="Average tip as a percent of net sales.",
        formula="Tips / Net Sales.",
        time_basis_sensitivity="Checkout date",
        format="percent",
        drill_row_types=("transactions",),
    ),
    MetricDefinition(
        id="tip-fee-cost",
        label="Tip Fee Cost",
        definition="Estimated processing fees on tips.",
        formula="Tips x processing fee rate.",
        time_basis_sensitivity="Transaction date",
        format="money",
        drill_row_types=("transactions",),
    ),
    MetricDefinition(
        id="net-to-staff",
        label="Net to Staff",
        definition="Tips paid to staff after fees or policy adjustments.",
        formula="Tips - Tip Fees.",
        time_basis_sensitivity="Transaction date",
        format="money",
        drill_row_types=("transactions",),
    ),
    MetricDefinition(
        id="taxable-sales",
        label="Taxable Sales",
        definition="Sales subject to tax.",
        formula="Net sales of transactions carrying tax.",
        time_basis_sensitivity="Transaction date",
        format="money",
        drill_row_types=("transactions",),
    ),
    MetricDefinition(
        id="nontaxable-sales",
        label="Non-taxable Sales",
        definition="Sales exempt from tax.",
        formula="Net sales - taxable sales.",
        time_basis_sensitivity="Transaction date",
        format="money",
        drill_row_types=("transactions",),
    ),
)

METRIC_LOOKUP: Dict[str, MetricDefinition] = {metric.id: metric for metric in METRIC_REGISTRY}


def get_metric(metric_id: str) -> MetricDefinition | None:
    return METRIC_LOOKUP.get(metric_id)


def metric_label(metric_id: str) -> str:
    metric = METRIC_LOOKUP.get(metric_id)
    return metric.label if metric is not None else metric_id


def metric_tooltip(metric_id: str, time_basis: str) -> str:
    """Help text for a metric; empty for ids outside the catalog."""
    metric = METRIC_LOOKUP.get(metric_id)
    if metric is None:
        return ""
    lines = [metric.definition, f"Formula: {metric.formula}"]
    if metric.exclusions:
        lines.append(f"Exclusions: {metric.exclusions}")
    lines.append(f"Time basis: {time_basis}")
    return "\n".join(lines)
