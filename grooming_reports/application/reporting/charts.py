"""Per-report chart builders over the filtered report frames."""

from __future__ import annotations

from datetime import date, timedelta
from typing import Any, Callable, Dict, List, Sequence, Tuple

import polars as pl

from grooming_reports.application.reporting.aggregates import REBOOK_WINDOWS, rebook_rate
from grooming_reports.application.reporting.context import ReportContext
from grooming_reports.application.reporting.frames import WEEKDAYS, frame_from_rows
from grooming_reports.application.reporting.metrics import round_half_up, safe_ratio, safe_ratio_expr
from grooming_reports.config import STANDARD_SLOT_MINUTES
from grooming_reports.domain.report_types import ChartData, ChartSeries

ChartBuilder = Callable[[ReportContext], List[ChartData]]

COHORT_MONTHS = 6
RETURN_BUCKETS: Tuple[Tuple[str, int, int | None], ...] = (
    ("0-7d", 0, 7),
    ("8-30d", 8, 30),
    ("31-60d", 31, 60),
    ("61-90d", 61, 90),
    ("90d+", 91, None),
)
FUNNEL_LABELS: Dict[int, str] = {1: "0-24h", 7: "<=7d", 30: "<=30d", 90: "<=90d"}


def _series(key: str, label: str, rows: Sequence[Dict[str, Any]], color: str | None = None) -> ChartSeries:
    return ChartSeries(key=key, label=label, data=tuple(rows), color=color)


def _points(rows: Sequence[Dict[str, Any]], x_key: str, value_key: str) -> List[Dict[str, Any]]:
    return [{x_key: row[x_key], value_key: row[value_key]} for row in rows]


def _chart(
    chart_id: str,
    title: str,
    chart_type: str,
    series: Sequence[ChartSeries],
    x_key: str,
    aria_label: str,
    y_key: str | None = None,
    compare_series: Sequence[ChartSeries] | None = None,
) -> ChartData:
    return ChartData(
        id=chart_id,
        title=title,
        type=chart_type,
        series=tuple(series),
        x_key=x_key,
        aria_label=aria_label,
        y_key=y_key,
        compare_series=None if compare_series is None else tuple(compare_series),
    )


def _sum_by(frame: pl.DataFrame, key: str, column: str, alias: str) -> List[Dict[str, Any]]:
    return frame.group_by(key).agg(pl.col(column).sum().alias(alias)).sort(key).to_dicts()


def _ratio_by(frame: pl.DataFrame, key: str, num: pl.Expr, den: pl.Expr, alias: str) -> List[Dict[str, Any]]:
    grouped = frame.group_by(key).agg(num.alias("_num"), den.alias("_den")).sort(key)
    return grouped.select(pl.col(key), safe_ratio_expr(pl.col("_num"), pl.col("_den")).alias(alias)).to_dicts()


def _owner_overview(ctx: ReportContext) -> List[ChartData]:
    weekly = (
        ctx.frames.transactions.group_by("week")
        .agg(pl.col("subtotal_cents").sum().alias("gross"), pl.col("net_cents").sum().alias("net"))
        .sort("week")
        .to_dicts()
    )
    mix = _sum_by(ctx.frames.service_lines, "category", "revenue_cents", "value")
    return [
        _chart(
            "gross-net-trend",
            "Gross vs Net Trend",
            "line",
            [_series("gross", "Gross", _points(weekly, "week", "gross")), _series("net", "Net", _points(weekly, "week", "net"))],
            "week",
            "Weekly gross and net sales",
        ),
        _chart(
            "service-mix",
            "Service Mix",
            "donut",
            [_series("value", "Revenue", [{"name": row["category"], "value": row["value"]} for row in mix])],
            "name",
            "Revenue share by service category",
        ),
    ]


def _true_profit(ctx: ReportContext) -> List[ChartData]:
    by_service = _ratio_by(
        ctx.frames.service_lines,
        "service",
        pl.col("contribution_cents").sum(),
        pl.col("revenue_cents").sum(),
        "margin",
    )
    by_staff = _ratio_by(
        ctx.frames.appointments,
        "staff_name",
        pl.col("contribution_cents").sum(),
        pl.col("revenue_cents").sum(),
        "margin",
    )
    return [
        _chart(
            "margin-by-service",
            "Margin by Service",
            "bar",
            [_series("margin", "Contribution %", by_service)],
            "service",
            "Contribution margin percent by service",
        ),
        _chart(
            "margin-by-staff",
            "Margin by Staff",
            "bar",
            [_series("margin", "Contribution %", by_staff)],
            "staff_name",
            "Contribution margin percent by staff member",
        ),
    ]


def _sales_summary(ctx: ReportContext) -> List[ChartData]:
    daily = _sum_by(ctx.frames.transactions, "date", "net_cents", "sales")
    compare = None
    if ctx.compare_frames is not None:
        previous = _sum_by(ctx.compare_frames.transactions, "date", "net_cents", "sales")
        compare = [_series("sales", "Previous period", previous)]
    categories = _sum_by(ctx.frames.items, "category", "total_cents", "value")
    return [
        _chart(
            "sales-by-day",
            "Sales by Day",
            "line",
            [_series("sales", "Net sales", daily)],
            "date",
            "Net sales by day",
            compare_series=compare,
        ),
        _chart(
            "sales-by-category",
            "Sales by Category",
            "stacked",
            [_series("value", "Sales", [{"category": row["category"], "value": row["value"]} for row in categories])],
            "category",
            "Line item sales by category",
        ),
    ]


def _finance_recon(ctx: ReportContext) -> List[ChartData]:
    collected = _sum_by(ctx.frames.transactions, "date", "total_cents", "collected")
    refunds = ctx.aggregates.refunds
    reasons = [{"reason": "Refunded", "value": refunds}] if refunds > 0 else []
    return [
        _chart(
            "collected-by-day",
            "Collected by Day",
            "bar",
            [_series("collected", "Collected", collected)],
            "date",
            "Total collected by day",
        ),
        _chart(
            "refunds-by-reason",
            "Refunds by Reason",
            "donut",
            [_series("value", "Refunds", reasons)],
            "reason",
            "Refunded amounts by reason",
        ),
    ]


def _weekday_counts(start: date, end: date) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    day = start
    while day <= end:
        name = WEEKDAYS[day.weekday()]
        counts[name] = counts.get(name, 0) + 1
        day += timedelta(days=1)
    return counts


def _appointments_capacity(ctx: ReportContext) -> List[ChartData]:
    active = ctx.frames.appointments.filter(~pl.col("cancelled"))
    booked = dict(active.group_by("weekday").agg(pl.col("duration_minutes").sum()).iter_rows())
    day_counts = _weekday_counts(ctx.filters.start, ctx.filters.end)
    weekdays = [name for name in WEEKDAYS if name in day_counts]
    booked_points = [{"weekday": name, "booked": booked.get(name, 0)} for name in weekdays]
    capacity_points = [
        {"weekday": name, "capacity": round_half_up(ctx.day_capacity_minutes * day_counts[name])} for name in weekdays
    ]
    overrun = (
        active.group_by("date")
        .agg((pl.col("duration_minutes") - STANDARD_SLOT_MINUTES).clip(lower_bound=0).mean().alias("overrun"))
        .sort("date")
        .to_dicts()
    )
    return [
        _chart(
            "booked-vs-capacity",
            "Booked vs Capacity",
            "bar",
            [_series("booked", "Booked minutes", booked_points), _series("capacity", "Capacity minutes", capacity_points)],
            "weekday",
            "Booked minutes against staff capacity by weekday",
        ),
        _chart(
            "duration-overrun",
            "Duration Overrun",
            "line",
            [_series("overrun", "Avg overrun (min)", overrun)],
            "date",
            "Average minutes over the standard slot by day",
        ),
    ]


def _weekday_order(name: str) -> int:
    return WEEKDAYS.index(name) if name in WEEKDAYS else len(WEEKDAYS)


def _no_shows(ctx: ReportContext) -> List[ChartData]:
    frame = ctx.frames.appointments
    cells = frame.filter(pl.col("no_show")).group_by(["weekday", "start_hour"]).agg(pl.len().alias("value")).to_dicts()
    cells.sort(key=lambda row: (_weekday_order(row["weekday"]), row["start_hour"]))
    heatmap = [{"day": row["weekday"], "hour": row["start_hour"], "value": row["value"]} for row in cells]
    rates = _ratio_by(frame, "channel", pl.col("no_show").sum(), pl.len(), "rate")
    return [
        _chart(
            "no-show-heatmap",
            "No-Show Heatmap",
            "heatmap",
            [_series("value", "No-shows", heatmap)],
            "hour",
            "No-shows by weekday and start hour",
            y_key="day",
        ),
        _chart(
            "rates-by-channel",
            "No-Show Rate by Channel",
            "bar",
            [_series("rate", "No-show rate", rates)],
            "channel",
            "No-show rate by booking channel",
        ),
    ]


def _return_histogram(days: Sequence[int]) -> List[Dict[str, Any]]:
    points = []
    for label, low, high in RETURN_BUCKETS:
        count = sum(1 for value in days if value >= low and (high is None or value <= high))
        points.append({"bucket": label, "clients": count})
    return points


def _retention(ctx: ReportContext) -> List[ChartData]:
    funnel = [{"stage": FUNNEL_LABELS[window], "rate": rebook_rate(ctx.gaps, window)} for window in REBOOK_WINDOWS]
    return [
        _chart(
            "rebook-funnel",
            "Rebook Funnel",
            "bar",
            [_series("rate", "Returned", funnel)],
            "stage",
            "Share of clients returning within each window",
        ),
        _chart(
            "time-to-return",
            "Time to Return",
            "bar",
            [_series("clients", "Clients", _return_histogram([gap.days for gap in ctx.gaps]))],
            "bucket",
            "Distribution of days between first and second visit",
        ),
    ]


def _month_offset(cohort: str, month: str) -> int | None:
    try:
        return (int(month[:4]) - int(cohort[:4])) * 12 + int(month[5:7]) - int(cohort[5:7])
    except ValueError:
        return None


def _cohort_cells(ctx: ReportContext) -> List[Dict[str, Any]]:
    cohorts: Dict[str, List[str]] = {}
    clients = sorted({item.client_id for item in ctx.appointments if item.is_completed})
    for client_id in clients:
        first = ctx.history.first_visits.get(client_id)
        if first:
            cohorts.setdefault(first[:7], []).append(client_id)

    cells: List[Dict[str, Any]] = []
    for cohort in sorted(cohorts):
        members = cohorts[cohort]
        active: Dict[int, set[str]] = {}
        for client_id in members:
            for visit_date, _ in ctx.history.visits(client_id):
                offset = _month_offset(cohort, visit_date[:7])
                if offset is not None and 0 <= offset < COHORT_MONTHS:
                    active.setdefault(offset, set()).add(client_id)
        for offset in range(COHORT_MONTHS):
            cells.append(
                {
                    "cohort": cohort,
                    "month": f"M{offset}",
                    "value": safe_ratio(len(active.get(offset, ())), len(members)),
                }
            )
    return cells


def _cohorts_ltv(ctx: ReportContext) -> List[ChartData]:
    completed = ctx.frames.appointments.filter(pl.col("completed"))
    ltv = _ratio_by(completed, "channel", pl.col("revenue_cents").sum(), pl.col("client_id").n_unique(), "ltv")
    return [
        _chart(
            "cohort-retention",
            "Cohort Retention",
            "heatmap",
            [_series("value", "Active share", _cohort_cells(ctx))],
            "month",
            "Share of each first-visit cohort active in later months",
            y_key="cohort",
        ),
        _chart(
            "ltv-by-channel",
            "LTV by Channel",
            "bar",
            [_series("ltv", "Revenue per client", ltv)],
            "channel",
            "Revenue per client by acquisition channel",
        ),
    ]


def _staff_performance(ctx: ReportContext) -> List[ChartData]:
    hourly = (
        ctx.frames.appointments.group_by("staff_name")
        .agg(
            pl.col("revenue_cents").sum().alias("revenue"),
            pl.col("contribution_cents").sum().alias("margin"),
            pl.col("completed_minutes").sum().alias("minutes"),
        )
        .sort("staff_name")
        .select(
            pl.col("staff_name"),
            (safe_ratio_expr(pl.col("revenue"), pl.col("minutes")) * 60).alias("revenue"),
            (safe_ratio_expr(pl.col("margin"), pl.col("minutes")) * 60).alias("margin"),
        )
        .to_dicts()
    )
    staff_names = sorted(set(ctx.frames.appointments.get_column("staff_name").to_list()))
    rebook = [
        {
            "staff_name": name,
            "rate": rebook_rate([gap for gap in ctx.gaps if gap.staff_name == name], 7),
        }
        for name in staff_names
    ]
    return [
        _chart(
            "revenue-per-hour",
            "Revenue per Hour",
            "bar",
            [
                _series("revenue", "Revenue/hr", _points(hourly, "staff_name", "revenue")),
                _series("margin", "Margin/hr", _points(hourly, "staff_name", "margin")),
            ],
            "staff_name",
            "Revenue and margin per booked hour by staff member",
        ),
        _chart(
            "rebook-by-staff",
            "Rebook Rate by Staff",
            "bar",
            [_series("rate", "Rebook 7d", rebook)],
            "staff_name",
            "Seven day rebook rate by staff member",
        ),
    ]


def _service_totals(ctx: ReportContext) -> pl.DataFrame:
    return (
        ctx.frames.service_lines.group_by("service")
        .agg(
            pl.col("revenue_cents").sum().alias("revenue"),
            pl.col("price_cents").sum().alias("price"),
            pl.col("discount_cents").sum().alias("discount"),
            pl.col("contribution_cents").sum().alias("contribution"),
        )
        .sort("service")
    )


def _service_mix(ctx: ReportContext) -> List[ChartData]:
    totals = _service_totals(ctx)
    revenue_rows = totals.select("service", "revenue", pl.col("contribution").round(0).alias("margin")).to_dicts()
    scatter = totals.select(
        pl.col("service").alias("label"),
        safe_ratio_expr(pl.col("discount"), pl.col("price")).alias("discount"),
        safe_ratio_expr(pl.col("contribution"), pl.col("revenue")).alias("margin"),
    ).to_dicts()
    return [
        _chart(
            "revenue-vs-margin",
            "Revenue vs Margin",
            "bar",
            [
                _series("revenue", "Revenue", _points(revenue_rows, "service", "revenue")),
                _series("margin", "Margin", _points(revenue_rows, "service", "margin")),
            ],
            "service",
            "Revenue and contribution margin by service",
        ),
        _chart(
            "discount-vs-margin",
            "Discount vs Margin",
            "scatter",
            [_series("margin", "Services", scatter)],
            "discount",
            "Discount rate against contribution margin percent per service",
            y_key="margin",
        ),
    ]


def _inventory(ctx: ReportContext) -> List[ChartData]:
    usage = frame_from_rows(
        [
            {"category": item.category, "usage": item.usage_cost_cents}
            for item in ctx.data.inventory_items
        ],
        {"category": pl.Utf8, "usage": pl.Int64},
    )
    by_category = _sum_by(usage, "category", "usage", "usage")
    per_appointment = _ratio_by(
        ctx.frames.appointments,
        "date",
        pl.col("cogs_cents").sum(),
        pl.col("completed").sum(),
        "cost",
    )
    return [
        _chart(
            "usage-trend",
            "Usage by Category",
            "bar",
            [_series("usage", "Usage cost", by_category)],
            "category",
            "Estimated inventory usage cost by category",
        ),
        _chart(
            "cost-per-appt",
            "Cost per Appointment",
            "line",
            [_series("cost", "COGS per appointment", per_appointment)],
            "date",
            "Estimated cost of goods per completed appointment by day",
        ),
    ]


def channel_attribution(ctx: ReportContext) -> List[Dict[str, Any]]:
    """Message totals per channel with revenue from the appointments those messages reference."""
    revenue_by_appointment = dict(ctx.frames.appointments.select("id", "revenue_cents").iter_rows())
    completed = dict(ctx.frames.appointments.select("id", "completed").iter_rows())
    rows: Dict[str, Dict[str, Any]] = {}
    linked: Dict[str, set[str]] = {}
    for message in ctx.frames.messages.sort("id").to_dicts():
        channel = message["channel"]
        row = rows.setdefault(
            channel,
            {"channel": channel, "sent": 0, "delivered": 0, "confirmed": 0, "cost": 0},
        )
        row["sent"] += 1
        row["delivered"] += int(bool(message["delivered"]))
        row["confirmed"] += int(bool(message["confirmed"]))
        row["cost"] += message["cost_cents"] or 0
        if message["appointment_id"] in revenue_by_appointment:
            linked.setdefault(channel, set()).add(message["appointment_id"])

    result = []
    for channel in sorted(rows):
        row = rows[channel]
        appointment_ids = linked.get(channel, set())
        row["show_ups"] = sum(1 for key in appointment_ids if completed.get(key))
        row["revenue"] = sum(revenue_by_appointment[key] for key in appointment_ids)
        row["roi"] = safe_ratio(row["revenue"] - row["cost"], row["cost"])
        result.append(row)
    return result


def _marketing_roi(ctx: ReportContext) -> List[ChartData]:
    roi = [{"channel": row["channel"], "roi": row["roi"]} for row in channel_attribution(ctx)]
    frame = ctx.frames.appointments
    lift = []
    if not frame.is_empty():
        show_ups = dict(
            frame.group_by("confirmed")
            .agg(pl.col("completed").sum().alias("_num"), pl.len().alias("_den"))
            .select(pl.col("confirmed"), safe_ratio_expr(pl.col("_num"), pl.col("_den")).alias("rate"))
            .iter_rows()
        )
        lift = [
            {"segment": "Confirmed", "rate": show_ups.get(True, 0.0)},
            {"segment": "Unconfirmed", "rate": show_ups.get(False, 0.0)},
        ]
    return [
        _chart(
            "roi-by-channel",
            "ROI by Channel",
            "bar",
            [_series("roi", "ROI", roi)],
            "channel",
            "Return on messaging spend by channel",
        ),
        _chart(
            "confirmation-lift",
            "Confirmation Lift",
            "bar",
            [_series("rate", "Show-up rate", lift)],
            "segment",
            "Show-up rate for confirmed and unconfirmed appointments",
        ),
    ]


def _tips(ctx: ReportContext) -> List[ChartData]:
    by_service = _ratio_by(
        ctx.frames.service_lines,
        "service",
        pl.col("tip_cents").sum(),
        pl.col("price_cents").sum(),
        "tip_percent",
    )
    daily = _sum_by(ctx.frames.transactions, "date", "tip_cents", "tips")
    return [
        _chart(
            "tip-percent-by-service",
            "Tip % by Service",
            "bar",
            [_series("tip_percent", "Tip %", by_service)],
            "service",
            "Tips as a share of service price by service",
        ),
        _chart(
            "tip-trend",
            "Tip Trend",
            "line",
            [_series("tips", "Tips", daily)],
            "date",
            "Tips collected by day",
        ),
    ]


def _no_charts(ctx: ReportContext) -> List[ChartData]:
    return []


CHART_BUILDERS: Dict[str, ChartBuilder] = {
    "owner-overview": _owner_overview,
    "true-profit": _true_profit,
    "sales-summary": _sales_summary,
    "finance-recon": _finance_recon,
    "appointments-capacity": _appointments_capacity,
    "no-shows": _no_shows,
    "retention": _retention,
    "cohorts-ltv": _cohorts_ltv,
    "staff-performance": _staff_performance,
    "payroll": _no_charts,
    "service-mix": _service_mix,
    "inventory": _inventory,
    "marketing-roi": _marketing_roi,
    "tips": _tips,
    "taxes": _no_charts,
}


def build_charts(ctx: ReportContext) -> List[ChartData]:
    return CHART_BUILDERS[ctx.report_id](ctx)
