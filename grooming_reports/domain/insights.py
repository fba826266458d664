"""Ordered threshold rules that turn a computed report into narrative insights."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Sequence, Tuple

from grooming_reports.domain.models import Appointment
from grooming_reports.domain.report_types import DrillRequest, InsightsItem, KPIValue

MAX_INSIGHTS = 3
NO_SHOW_SPIKE_GROWTH = 0.15
NO_SHOW_SPIKE_MIN_COUNT = 5
MARGIN_DROP_DELTA = -0.05
REBOOK_DROP_DELTA = -0.10


@dataclass(frozen=True)
class InsightContext:
    report_id: str
    kpis: Tuple[KPIValue, ...]
    appointments: Tuple[Appointment, ...]
    compare_appointments: Tuple[Appointment, ...]

    def kpi(self, metric_id: str) -> KPIValue | None:
        for item in self.kpis:
            if item.id == metric_id:
                return item
        return None

    def kpi_delta(self, metric_id: str) -> float | None:
        item = self.kpi(metric_id)
        return None if item is None else item.delta


@dataclass(frozen=True)
class InsightRule:
    id: str
    predicate: Callable[[InsightContext], bool]
    factory: Callable[[InsightContext], InsightsItem]


def _cancelled_count(appointments: Sequence[Appointment]) -> int:
    return sum(1 for appointment in appointments if appointment.status == "cancelled")


def no_show_growth(ctx: InsightContext) -> float:
    current = _cancelled_count(ctx.appointments)
    previous = _cancelled_count(ctx.compare_appointments)
    if previous == 0:
        return 0.0
    return (current - previous) / previous


def _no_show_spike(ctx: InsightContext) -> bool:
    return (
        no_show_growth(ctx) > NO_SHOW_SPIKE_GROWTH
        and _cancelled_count(ctx.appointments) >= NO_SHOW_SPIKE_MIN_COUNT
    )


def _no_show_spike_item(ctx: InsightContext) -> InsightsItem:
    growth = no_show_growth(ctx)
    return InsightsItem(
        id="no-show-spike",
        title="No-show spike",
        description=f"No-shows are up {growth * 100:.0f}% vs prior period.",
        metric_id="no-show-rate",
        delta=growth,
        action="Review reminder timing and confirmation messages.",
        drill=DrillRequest(
            title="No-show appointments",
            row_types=("appointments",),
            filters={"status": "cancelled"},
        ),
    )


def _delta_below(metric_id: str, threshold: float) -> Callable[[InsightContext], bool]:
    def _check(ctx: InsightContext) -> bool:
        delta = ctx.kpi_delta(metric_id)
        return delta is not None and delta < threshold

    return _check


def _margin_drop_item(ctx: InsightContext) -> InsightsItem:
    return InsightsItem(
        id="margin-drop",
        title="Margin drop",
        description="Contribution margin declined by more than 5 points.",
        metric_id="contribution-margin-percent",
        delta=ctx.kpi_delta("contribution-margin-percent"),
        action="Investigate labor and COGS drivers.",
    )


def _rebook_weakness_item(ctx: InsightContext) -> InsightsItem:
    return InsightsItem(
        id="rebook-weakness",
        title="Rebooking weakness",
        description="Rebooking within 7 days dropped by more than 10%.",
        metric_id="rebook-7d",
        delta=ctx.kpi_delta("rebook-7d"),
        action="Add rebooking prompts at checkout.",
    )


def _for_report(report_id: str) -> Callable[[InsightContext], bool]:
    return lambda ctx: ctx.report_id == report_id


def _inventory_risk_item(ctx: InsightContext) -> InsightsItem:
    return InsightsItem(
        id="inventory-risk",
        title="Inventory risk",
        description="Several supply items are below 7 days of supply.",
        metric_id="estimated-cogs",
        action="Review reorder points and create a purchase order.",
    )


def _campaign_roi_item(ctx: InsightContext) -> InsightsItem:
    return InsightsItem(
        id="campaign-roi",
        title="Campaign ROI extreme",
        description="ROI is outside the 0.5 to 3.0 band for at least one channel.",
        action="Rebalance spend between higher-performing channels.",
    )


INSIGHT_RULES: Tuple[InsightRule, ...] = (
    InsightRule("no-show-spike", _no_show_spike, _no_show_spike_item),
    InsightRule("margin-drop", _delta_below("contribution-margin-percent", MARGIN_DROP_DELTA), _margin_drop_item),
    InsightRule("rebook-weakness", _delta_below("rebook-7d", REBOOK_DROP_DELTA), _rebook_weakness_item),
    InsightRule("inventory-risk", _for_report("inventory"), _inventory_risk_item),
    InsightRule("campaign-roi", _for_report("marketing-roi"), _campaign_roi_item),
)


def generate_insights(
    report_id: str,
    kpis: Sequence[KPIValue],
    appointments: Sequence[Appointment],
    compare_appointments: Sequence[Appointment] = (),
    rules: Sequence[InsightRule] = INSIGHT_RULES,
) -> List[InsightsItem]:
    ctx = InsightContext(
        report_id=report_id,
        kpis=tuple(kpis),
        appointments=tuple(appointments),
        compare_appointments=tuple(compare_appointments),
    )
    insights = [rule.factory(ctx) for rule in rules if rule.predicate(ctx)]
    return insights[:MAX_INSIGHTS]
