"""Per-report breakdown tables with grouping, column selection and drill requests."""

from __future__ import annotations

from datetime import date, timedelta
from typing import Any, Callable, Dict, List, Sequence, Tuple

import polars as pl

from grooming_reports.application.reporting.aggregates import rebook_rate
from grooming_reports.application.reporting.charts import channel_attribution
from grooming_reports.application.reporting.context import ReportContext
from grooming_reports.application.reporting.metrics import (
    average,
    fmt_day,
    round_half_up,
    safe_ratio,
    to_float,
)
from grooming_reports.config import STANDARD_SLOT_MINUTES
from grooming_reports.domain.report_types import DrillRequest, TableColumn, TableData, TableRow

TableBuilder = Callable[[ReportContext], TableData]
# option name -> (group column, label column, drill filter key)
Grouping = Tuple[str, str, str]

APPOINTMENT_GROUPINGS: Dict[str, Grouping] = {
    "Service": ("service", "service", "service"),
    "Staff": ("staff_id", "staff_name", "staff"),
    "Channel": ("channel", "channel", "channel"),
    "Client Type": ("client_type", "client_type", "clientType"),
    "Pet Size": ("pet_size", "pet_size", "petSize"),
    "Day": ("date", "date", "date"),
}
TRANSACTION_GROUPINGS: Dict[str, Grouping] = {
    "Day": ("date", "date", "date"),
    "Week": ("week", "week", "week"),
    "Month": ("month", "month", "month"),
    "Payment Method": ("payment_method", "payment_method", "paymentMethod"),
}
SERVICE_LINE_GROUPINGS: Dict[str, Grouping] = {
    "Service": ("service", "service", "service"),
    "Category": ("category", "category", "serviceCategory"),
}
LAPSED_AFTER_DAYS = 90


def _column(column_id: str, label: str, fmt: str | None = None) -> TableColumn:
    return TableColumn(id=column_id, label=label, format=fmt, align="right" if fmt else None)


def _choose(ctx: ReportContext, options: Sequence[str]) -> str:
    if ctx.filters.group_by in options:
        return ctx.filters.group_by
    return options[0]


def _label_text(option: str, value: Any) -> str:
    if value is None or value == "":
        return "Unknown"
    text = str(value)
    if option == "Day":
        return fmt_day(text)
    if option == "Week":
        return f"Week of {fmt_day(text)}"
    if option == "Month":
        try:
            return f"{date.fromisoformat(f'{text}-01'):%b %Y}"
        except ValueError:
            return text
    return text


def _grouped(frame: pl.DataFrame, grouping: Grouping, aggs: Sequence[pl.Expr]) -> List[Dict[str, Any]]:
    key, label, _ = grouping
    extra = [] if key == label else [pl.col(label).first().alias("_label")]
    rows = frame.group_by(key).agg([*extra, *aggs]).sort(key).to_dicts()
    for row in rows:
        row.setdefault("_label", row[key])
    return rows


def _drill(option: str, grouping: Grouping, row: Dict[str, Any], row_types: Tuple[str, ...]) -> DrillRequest:
    key, _, filter_key = grouping
    return DrillRequest(
        title=f"{option}: {_label_text(option, row['_label'])}",
        row_types=row_types,
        filters={filter_key: row[key]},
    )


def _table_row(option: str, grouping: Grouping, row: Dict[str, Any], values: Dict[str, Any], row_types: Tuple[str, ...]) -> TableRow:
    key = grouping[0]
    return TableRow(
        id=str(row[key]),
        label=_label_text(option, row["_label"]),
        values=values,
        drill=_drill(option, grouping, row, row_types),
    )


def _finish(
    ctx: ReportContext,
    columns: Sequence[TableColumn],
    rows: Sequence[TableRow],
    options: Sequence[str] = (),
) -> TableData:
    visible = ctx.filters.visible_columns
    selected = [column for column in columns if visible and column.id in visible]
    if selected:
        keep = {column.id for column in selected}
        columns = selected
        rows = [
            TableRow(
                id=row.id,
                label=row.label,
                values={key: value for key, value in row.values.items() if key in keep},
                drill=row.drill,
            )
            for row in rows
        ]
    return TableData(columns=tuple(columns), rows=tuple(rows), group_by_options=tuple(options))


def _owner_overview(ctx: ReportContext) -> TableData:
    options = ("Service", "Staff", "Channel")
    option = _choose(ctx, options)
    grouping = APPOINTMENT_GROUPINGS[option]
    rows = _grouped(
        ctx.frames.appointments,
        grouping,
        [
            pl.col("revenue_cents").sum().alias("revenue"),
            pl.col("contribution_cents").sum().alias("margin"),
            pl.col("no_show").sum().alias("no_shows"),
            pl.len().alias("count"),
        ],
    )
    columns = [
        _column("revenue", "Revenue", "money"),
        _column("margin", "Margin", "money"),
        _column("noShow", "No-Show %", "percent"),
        _column("impact", "Impact"),
    ]
    table_rows = [
        _table_row(
            option,
            grouping,
            row,
            {
                "revenue": row["revenue"],
                "margin": row["margin"],
                "noShow": safe_ratio(row["no_shows"], row["count"]),
                "impact": "Positive" if row["margin"] >= 0 else "Negative",
            },
            ("appointments", "transactions"),
        )
        for row in rows
    ]
    return _finish(ctx, columns, table_rows, options)


def _true_profit(ctx: ReportContext) -> TableData:
    options = ("Staff", "Service", "Channel", "Client Type", "Pet Size")
    option = _choose(ctx, options)
    grouping = APPOINTMENT_GROUPINGS[option]
    rows = _grouped(
        ctx.frames.appointments,
        grouping,
        [
            pl.col("revenue_cents").sum().alias("net"),
            pl.col("cogs_cents").sum().alias("cogs"),
            pl.col("fee_cents").sum().alias("fees"),
            pl.col("labor_cents").sum().alias("labor"),
            pl.col("contribution_cents").sum().alias("contribution"),
            pl.col("discount_cents").sum().alias("discounts"),
            pl.col("completed").sum().alias("completed"),
            pl.len().alias("appts"),
            (pl.col("duration_minutes") - STANDARD_SLOT_MINUTES).mean().alias("duration_var"),
        ],
    )
    columns = [
        _column("net", "Net Sales", "money"),
        _column("cogs", "COGS", "money"),
        _column("fees", "Fees", "money"),
        _column("labor", "Labor", "money"),
        _column("contribution", "Contribution", "money"),
        _column("contributionPct", "Contribution %", "percent"),
        _column("appts", "Appointments", "int"),
        _column("avgTicket", "Avg Ticket", "money"),
        _column("durationVar", "Duration Var", "minutes"),
        _column("discountPct", "Discount %", "percent"),
    ]
    table_rows = [
        _table_row(
            option,
            grouping,
            row,
            {
                "net": row["net"],
                "cogs": row["cogs"],
                "fees": row["fees"],
                "labor": row["labor"],
                "contribution": row["contribution"],
                "contributionPct": safe_ratio(row["contribution"], row["net"]),
                "appts": row["appts"],
                "avgTicket": safe_ratio(row["net"], row["completed"]),
                "durationVar": to_float(row["duration_var"]),
                "discountPct": safe_ratio(row["discounts"], row["net"] + row["discounts"]),
            },
            ("appointments",),
        )
        for row in rows
    ]
    return _finish(ctx, columns, table_rows, options)


def _sales_summary(ctx: ReportContext) -> TableData:
    options = tuple(TRANSACTION_GROUPINGS)
    option = _choose(ctx, options)
    grouping = TRANSACTION_GROUPINGS[option]
    rows = _grouped(
        ctx.frames.transactions,
        grouping,
        [
            pl.col("subtotal_cents").sum().alias("gross"),
            pl.col("discount_cents").sum().alias("discounts"),
            pl.col("refund_cents").sum().alias("refunds"),
            pl.col("net_cents").sum().alias("net"),
            pl.col("tax_cents").sum().alias("tax"),
            pl.col("tip_cents").sum().alias("tips"),
            pl.len().alias("invoices"),
        ],
    )
    columns = [
        _column("gross", "Gross", "money"),
        _column("discounts", "Discounts", "money"),
        _column("refunds", "Refunds", "money"),
        _column("net", "Net", "money"),
        _column("tax", "Tax", "money"),
        _column("tips", "Tips", "money"),
        _column("invoices", "Invoices", "int"),
        _column("avgTicket", "Avg Ticket", "money"),
    ]
    table_rows = [
        _table_row(
            option,
            grouping,
            row,
            {
                "gross": row["gross"],
                "discounts": row["discounts"],
                "refunds": row["refunds"],
                "net": row["net"],
                "tax": row["tax"],
                "tips": row["tips"],
                "invoices": row["invoices"],
                "avgTicket": safe_ratio(row["net"], row["invoices"]),
            },
            ("transactions",),
        )
        for row in rows
    ]
    return _finish(ctx, columns, table_rows, options)


def _finance_recon(ctx: ReportContext) -> TableData:
    columns = [
        _column("date", "Date"),
        _column("method", "Method"),
        _column("collected", "Collected", "money"),
        _column("fee", "Fee", "money"),
        _column("net", "Net Deposit", "money"),
        _column("status", "Status"),
    ]
    table_rows = [
        TableRow(
            id=row["id"],
            label=row["id"],
            values={
                "date": fmt_day(row["date"]),
                "method": row["payment_method"],
                "collected": row["total_cents"],
                "fee": row["fee_cents"],
                "net": row["total_cents"] - row["fee_cents"],
                "status": row["status"],
            },
            drill=DrillRequest(
                title=f"Transaction {row['id']}",
                row_types=("transactions",),
                filters={"transactionId": row["id"]},
            ),
        )
        for row in ctx.frames.transactions.sort(["date", "id"]).to_dicts()
    ]
    return _finish(ctx, columns, table_rows)


def _appointments_capacity(ctx: ReportContext) -> TableData:
    options = ("Staff", "Day")
    option = _choose(ctx, options)
    grouping = APPOINTMENT_GROUPINGS[option]
    active = ~pl.col("cancelled")
    rows = _grouped(
        ctx.frames.appointments,
        grouping,
        [
            active.sum().alias("booked"),
            pl.col("completed").sum().alias("completed"),
            pl.col("no_show").sum().alias("no_shows"),
            pl.len().alias("count"),
            pl.col("duration_minutes").filter(active).mean().alias("avg_duration"),
            (pl.col("duration_minutes") - STANDARD_SLOT_MINUTES).clip(lower_bound=0).filter(active).mean().alias("overrun"),
            pl.col("completed_minutes").sum().alias("completed_minutes"),
        ],
    )
    if option == "Staff":
        capacity = ctx.settings.workday_minutes * ctx.filters.day_count
    else:
        capacity = ctx.day_capacity_minutes
    columns = [
        _column("capacity", "Capacity (min)", "minutes"),
        _column("booked", "Booked", "int"),
        _column("completed", "Completed", "int"),
        _column("noShow", "No-Show %", "percent"),
        _column("avgDuration", "Avg Duration", "minutes"),
        _column("overrun", "Overrun", "minutes"),
        _column("utilization", "Utilization", "percent"),
    ]
    table_rows = [
        _table_row(
            option,
            grouping,
            row,
            {
                "capacity": capacity,
                "booked": row["booked"],
                "completed": row["completed"],
                "noShow": safe_ratio(row["no_shows"], row["count"]),
                "avgDuration": to_float(row["avg_duration"]),
                "overrun": to_float(row["overrun"]),
                "utilization": safe_ratio(row["completed_minutes"], capacity),
            },
            ("appointments",),
        )
        for row in rows
    ]
    return _finish(ctx, columns, table_rows, options)


def _no_shows(ctx: ReportContext) -> TableData:
    options = ("Channel", "Staff", "Service", "Client Type")
    option = _choose(ctx, options)
    grouping = APPOINTMENT_GROUPINGS[option]
    rows = _grouped(
        ctx.frames.appointments,
        grouping,
        [
            pl.len().alias("appts"),
            pl.col("no_show").sum().alias("no_shows"),
            (pl.col("cancelled") & ~pl.col("no_show")).sum().alias("cancellations"),
            pl.col("lead_days").mean().alias("lead_time"),
            pl.col("confirmed").sum().alias("confirmed"),
            pl.col("recovered").sum().alias("recovered"),
        ],
    )
    columns = [
        _column("appts", "Appointments", "int"),
        _column("noShows", "No-Shows", "int"),
        _column("cancellations", "Cancellations", "int"),
        _column("rate", "No-Show %", "percent"),
        _column("leadTime", "Lead Time (days)", "int"),
        _column("confirmed", "Confirmed", "int"),
        _column("recovery", "Recovery %", "percent"),
    ]
    table_rows = [
        _table_row(
            option,
            grouping,
            row,
            {
                "appts": row["appts"],
                "noShows": row["no_shows"],
                "cancellations": row["cancellations"],
                "rate": safe_ratio(row["no_shows"], row["appts"]),
                "leadTime": to_float(row["lead_time"]),
                "confirmed": row["confirmed"],
                "recovery": safe_ratio(row["recovered"], row["no_shows"]),
            },
            ("appointments",),
        )
        for row in rows
    ]
    return _finish(ctx, columns, table_rows, options)


def _staff_rows(ctx: ReportContext) -> List[Tuple[str, str]]:
    pairs = ctx.frames.appointments.select("staff_id", "staff_name").unique().sort("staff_name", "staff_id")
    return list(pairs.iter_rows())


def _staff_drill(staff_id: str, staff_name: str) -> DrillRequest:
    return DrillRequest(title=f"Staff: {staff_name}", row_types=("appointments",), filters={"staff": staff_id})


def _lapsed_clients(ctx: ReportContext, staff_id: str) -> int:
    cutoff = (ctx.filters.end - timedelta(days=LAPSED_AFTER_DAYS)).isoformat()
    clients = {
        appointment.client_id
        for appointment in ctx.appointments
        if appointment.staff_id == staff_id and appointment.is_completed
    }
    lapsed = 0
    for client_id in clients:
        recent = ctx.history.window_visits(client_id, cutoff, ctx.filters.end_date)
        if not recent:
            lapsed += 1
    return lapsed


def _retention(ctx: ReportContext) -> TableData:
    columns = [
        _column("clients", "Returning Clients", "int"),
        _column("rebook24", "Rebook 24h", "percent"),
        _column("rebook7", "Rebook 7d", "percent"),
        _column("rebook30", "Rebook 30d", "percent"),
        _column("avgInterval", "Avg Interval (days)", "int"),
        _column("lapsed", "Lapsed 90d+", "int"),
    ]
    table_rows = []
    for staff_id, staff_name in _staff_rows(ctx):
        gaps = ctx.gaps_for_staff(staff_id)
        table_rows.append(
            TableRow(
                id=staff_id,
                label=staff_name,
                values={
                    "clients": len(gaps),
                    "rebook24": rebook_rate(gaps, 1),
                    "rebook7": rebook_rate(gaps, 7),
                    "rebook30": rebook_rate(gaps, 30),
                    "avgInterval": average(gap.days for gap in gaps),
                    "lapsed": _lapsed_clients(ctx, staff_id),
                },
                drill=_staff_drill(staff_id, staff_name),
            )
        )
    return _finish(ctx, columns, table_rows, ("Staff",))


def _cohorts_ltv(ctx: ReportContext) -> TableData:
    cohorts: Dict[str, List[str]] = {}
    for client_id in sorted({item.client_id for item in ctx.appointments if item.is_completed}):
        first = ctx.history.first_visits.get(client_id)
        if first:
            cohorts.setdefault(first[:7], []).append(client_id)

    columns = [
        _column("cohortSize", "Cohort Size", "int"),
        _column("retention90", "90d Retention", "percent"),
        _column("avgVisits", "Avg Visits", "int"),
        _column("revenueClient", "Revenue/Client", "money"),
    ]
    table_rows = []
    for cohort in sorted(cohorts):
        members = cohorts[cohort]
        retained = sum(
            1
            for client_id in members
            if ctx.history.returned_within(client_id, ctx.history.first_visits[client_id], 90)
        )
        table_rows.append(
            TableRow(
                id=cohort,
                label=_label_text("Month", cohort),
                values={
                    "cohortSize": len(members),
                    "retention90": safe_ratio(retained, len(members)),
                    "avgVisits": average(len(ctx.history.visits(client_id)) for client_id in members),
                    "revenueClient": average(
                        sum(total for _, total in ctx.history.visits(client_id)) for client_id in members
                    ),
                },
                drill=DrillRequest(
                    title=f"Cohort: {_label_text('Month', cohort)}",
                    row_types=("clients",),
                    filters={"cohort": cohort},
                ),
            )
        )
    return _finish(ctx, columns, table_rows)


def _staff_performance(ctx: ReportContext) -> TableData:
    grouping = APPOINTMENT_GROUPINGS["Staff"]
    rows = _grouped(
        ctx.frames.appointments,
        grouping,
        [
            pl.len().alias("appts"),
            pl.col("no_show").sum().alias("no_shows"),
            pl.col("completed_minutes").sum().alias("minutes"),
            pl.col("revenue_cents").sum().alias("revenue"),
            pl.col("contribution_cents").sum().alias("margin"),
            pl.col("tip_cents").sum().alias("tips"),
        ],
    )
    columns = [
        _column("appts", "Appointments", "int"),
        _column("hours", "Hours", "int"),
        _column("revenue", "Revenue", "money"),
        _column("margin", "Margin", "money"),
        _column("revenueHour", "Revenue/Hr", "money"),
        _column("tips", "Tips", "money"),
        _column("rebook7", "Rebook 7d", "percent"),
        _column("noShow", "No-Show %", "percent"),
    ]
    table_rows = [
        _table_row(
            "Staff",
            grouping,
            row,
            {
                "appts": row["appts"],
                "hours": round(row["minutes"] / 60, 1),
                "revenue": row["revenue"],
                "margin": row["margin"],
                "revenueHour": safe_ratio(row["revenue"], row["minutes"]) * 60,
                "tips": row["tips"],
                "rebook7": rebook_rate(ctx.gaps_for_staff(row["staff_id"]), 7),
                "noShow": safe_ratio(row["no_shows"], row["appts"]),
            },
            ("appointments",),
        )
        for row in rows
    ]
    return _finish(ctx, columns, table_rows, ("Staff",))


def _payroll(ctx: ReportContext) -> TableData:
    rates = {member.id: member.hourly_rate_cents or 0 for member in ctx.data.staff}
    grouping = APPOINTMENT_GROUPINGS["Staff"]
    rows = _grouped(
        ctx.frames.appointments,
        grouping,
        [
            pl.col("completed_minutes").sum().alias("minutes"),
            pl.col("labor_cents").sum().alias("labor"),
            pl.col("tip_cents").sum().alias("tips"),
        ],
    )
    columns = [
        _column("hours", "Hours", "int"),
        _column("hourly", "Hourly Rate", "money"),
        _column("labor", "Wages", "money"),
        _column("tips", "Tips", "money"),
        _column("total", "Total Comp", "money"),
    ]
    table_rows = [
        _table_row(
            "Staff",
            grouping,
            row,
            {
                "hours": round(row["minutes"] / 60, 1),
                "hourly": rates.get(row["staff_id"], 0),
                "labor": row["labor"],
                "tips": row["tips"],
                "total": row["labor"] + row["tips"],
            },
            ("appointments",),
        )
        for row in rows
    ]
    return _finish(ctx, columns, table_rows, ("Staff",))


def _service_mix(ctx: ReportContext) -> TableData:
    options = tuple(SERVICE_LINE_GROUPINGS)
    option = _choose(ctx, options)
    grouping = SERVICE_LINE_GROUPINGS[option]
    rows = _grouped(
        ctx.frames.service_lines,
        grouping,
        [
            pl.len().alias("appts"),
            pl.col("revenue_cents").sum().alias("revenue"),
            pl.col("price_cents").sum().alias("price"),
            pl.col("price_cents").mean().alias("avg_price"),
            pl.col("discount_cents").sum().alias("discounts"),
            pl.col("duration_minutes").mean().alias("avg_duration"),
            pl.col("cogs_cents").sum().alias("cogs"),
            pl.col("contribution_cents").sum().alias("margin"),
            pl.col("no_show").sum().alias("no_shows"),
        ],
    )
    columns = [
        _column("appts", "Bookings", "int"),
        _column("revenue", "Revenue", "money"),
        _column("avgPrice", "Avg Price", "money"),
        _column("discountPct", "Discount %", "percent"),
        _column("avgDuration", "Avg Duration", "minutes"),
        _column("cogs", "COGS", "money"),
        _column("margin", "Margin", "money"),
        _column("marginPct", "Margin %", "percent"),
        _column("noShow", "No-Show %", "percent"),
    ]
    table_rows = [
        _table_row(
            option,
            grouping,
            row,
            {
                "appts": row["appts"],
                "revenue": row["revenue"],
                "avgPrice": to_float(row["avg_price"]),
                "discountPct": safe_ratio(row["discounts"], row["price"]),
                "avgDuration": to_float(row["avg_duration"]),
                "cogs": round_half_up(row["cogs"]),
                "margin": round_half_up(row["margin"]),
                "marginPct": safe_ratio(row["margin"], row["revenue"]),
                "noShow": safe_ratio(row["no_shows"], row["appts"]),
            },
            ("appointments",),
        )
        for row in rows
    ]
    return _finish(ctx, columns, table_rows, options)


def _inventory(ctx: ReportContext) -> TableData:
    columns = [
        _column("onHand", "On Hand", "int"),
        _column("reorderLevel", "Reorder Level", "int"),
        _column("unitCost", "Unit Cost", "money"),
        _column("costUsed", "Cost Used", "money"),
        _column("status", "Status"),
        _column("linked", "Linked Services"),
    ]
    table_rows = [
        TableRow(
            id=item.id,
            label=item.name,
            values={
                "onHand": item.quantity,
                "reorderLevel": item.reorder_level,
                "unitCost": item.unit_cost_cents,
                "costUsed": item.usage_cost_cents,
                "status": "Reorder" if item.quantity <= item.reorder_level else "OK",
                "linked": ", ".join(item.linked_services) or "None",
            },
            drill=DrillRequest(title=f"Item: {item.name}", row_types=("inventory",), filters={"itemId": item.id}),
        )
        for item in sorted(ctx.data.inventory_items, key=lambda entry: (entry.name, entry.id))
    ]
    return _finish(ctx, columns, table_rows)


def _marketing_roi(ctx: ReportContext) -> TableData:
    columns = [
        _column("sent", "Sent", "int"),
        _column("delivered", "Delivered", "int"),
        _column("confirmed", "Confirmed", "int"),
        _column("showUps", "Show-Ups", "int"),
        _column("cost", "Cost", "money"),
        _column("costPer", "Cost/Message", "money"),
        _column("revenue", "Attributed Revenue", "money"),
        _column("roi", "ROI", "percent"),
    ]
    table_rows = [
        TableRow(
            id=row["channel"],
            label=row["channel"],
            values={
                "sent": row["sent"],
                "delivered": row["delivered"],
                "confirmed": row["confirmed"],
                "showUps": row["show_ups"],
                "cost": row["cost"],
                "costPer": safe_ratio(row["cost"], row["sent"]),
                "revenue": row["revenue"],
                "roi": row["roi"],
            },
            drill=DrillRequest(
                title=f"Channel: {row['channel']}",
                row_types=("messages",),
                filters={"channel": row["channel"]},
            ),
        )
        for row in channel_attribution(ctx)
    ]
    return _finish(ctx, columns, table_rows)


def _tips(ctx: ReportContext) -> TableData:
    options = ("Staff", "Service")
    option = _choose(ctx, options)
    if option == "Staff":
        frame, grouping = ctx.frames.appointments, APPOINTMENT_GROUPINGS["Staff"]
    else:
        frame, grouping = ctx.frames.service_lines, SERVICE_LINE_GROUPINGS["Service"]
    rows = _grouped(
        frame,
        grouping,
        [pl.col("tip_cents").sum().alias("tips"), pl.col("revenue_cents").sum().alias("revenue")],
    )
    columns = [
        _column("tips", "Tips", "money"),
        _column("revenue", "Service Revenue", "money"),
        _column("tipPercent", "Tip %", "percent"),
        _column("feeCost", "Card Fees on Tips", "money"),
        _column("netToStaff", "Net to Staff", "money"),
    ]
    table_rows = []
    for row in rows:
        tips = round_half_up(row["tips"])
        fee_cost = round_half_up(tips * ctx.settings.card_fee_rate)
        table_rows.append(
            _table_row(
                option,
                grouping,
                row,
                {
                    "tips": tips,
                    "revenue": row["revenue"],
                    "tipPercent": safe_ratio(tips, row["revenue"]),
                    "feeCost": fee_cost,
                    "netToStaff": tips - fee_cost,
                },
                ("appointments",),
            )
        )
    return _finish(ctx, columns, table_rows, options)


def _taxes(ctx: ReportContext) -> TableData:
    aggregates = ctx.aggregates
    columns = [
        _column("taxable", "Taxable Sales", "money"),
        _column("nontaxable", "Non-Taxable Sales", "money"),
        _column("tax", "Tax Collected", "money"),
        _column("rate", "Effective Rate", "percent"),
    ]
    row = TableRow(
        id="local",
        label="Local",
        values={
            "taxable": aggregates.taxable_sales,
            "nontaxable": aggregates.nontaxable_sales,
            "tax": aggregates.taxes,
            "rate": safe_ratio(aggregates.taxes, aggregates.taxable_sales),
        },
        drill=DrillRequest(title="Taxable transactions", row_types=("transactions",), filters={"taxable": True}),
    )
    return _finish(ctx, columns, [row])


TABLE_BUILDERS: Dict[str, TableBuilder] = {
    "owner-overview": _owner_overview,
    "true-profit": _true_profit,
    "sales-summary": _sales_summary,
    "finance-recon": _finance_recon,
    "appointments-capacity": _appointments_capacity,
    "no-shows": _no_shows,
    "retention": _retention,
    "cohorts-ltv": _cohorts_ltv,
    "staff-performance": _staff_performance,
    "payroll": _payroll,
    "service-mix": _service_mix,
    "inventory": _inventory,
    "marketing-roi": _marketing_roi,
    "tips": _tips,
    "taxes": _taxes,
}


def build_table(ctx: ReportContext) -> TableData:
    return TABLE_BUILDERS[ctx.report_id](ctx)
