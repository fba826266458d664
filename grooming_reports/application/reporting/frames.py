"""Polars frames over filtered report records, with per-row cost estimates."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Mapping, Sequence

import polars as pl

from grooming_reports.application.reporting.history import ClientHistory
from grooming_reports.application.reporting.metrics import days_between, round_half_up
from grooming_reports.config import Settings
from grooming_reports.domain.models import Appointment, Message, NormalizedData, Transaction
from grooming_reports.domain.report_types import FilterState

WEEKDAYS: tuple[str, ...] = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")

APPOINTMENT_SCHEMA: Dict[str, Any] = {
    "id": pl.Utf8,
    "client_id": pl.Utf8,
    "staff_id": pl.Utf8,
    "staff_name": pl.Utf8,
    "date": pl.Utf8,
    "weekday": pl.Utf8,
    "start_hour": pl.Utf8,
    "status": pl.Utf8,
    "channel": pl.Utf8,
    "client_type": pl.Utf8,
    "pet_size": pl.Utf8,
    "service": pl.Utf8,
    "total_cents": pl.Int64,
    "revenue_cents": pl.Int64,
    "tip_cents": pl.Int64,
    "duration_minutes": pl.Int64,
    "completed_minutes": pl.Int64,
    "labor_cents": pl.Int64,
    "cogs_cents": pl.Int64,
    "fee_cents": pl.Int64,
    "discount_cents": pl.Int64,
    "contribution_cents": pl.Int64,
    "lead_days": pl.Int64,
    "completed": pl.Boolean,
    "cancelled": pl.Boolean,
    "no_show": pl.Boolean,
    "recovered": pl.Boolean,
    "confirmed": pl.Boolean,
}
SERVICE_LINE_SCHEMA: Dict[str, Any] = {
    "appointment_id": pl.Utf8,
    "service_id": pl.Utf8,
    "service": pl.Utf8,
    "category": pl.Utf8,
    "kind": pl.Utf8,
    "price_cents": pl.Int64,
    "revenue_cents": pl.Int64,
    "duration_minutes": pl.Int64,
    "cogs_cents": pl.Float64,
    "labor_cents": pl.Float64,
    "fee_cents": pl.Float64,
    "discount_cents": pl.Float64,
    "tip_cents": pl.Float64,
    "contribution_cents": pl.Float64,
    "completed": pl.Boolean,
    "no_show": pl.Boolean,
}
TRANSACTION_SCHEMA: Dict[str, Any] = {
    "id": pl.Utf8,
    "appointment_id": pl.Utf8,
    "date": pl.Utf8,
    "week": pl.Utf8,
    "month": pl.Utf8,
    "status": pl.Utf8,
    "payment_method": pl.Utf8,
    "subtotal_cents": pl.Int64,
    "discount_cents": pl.Int64,
    "refund_cents": pl.Int64,
    "tax_cents": pl.Int64,
    "tip_cents": pl.Int64,
    "total_cents": pl.Int64,
    "net_cents": pl.Int64,
    "fee_cents": pl.Int64,
    "taxable": pl.Boolean,
}
ITEM_SCHEMA: Dict[str, Any] = {
    "transaction_id": pl.Utf8,
    "category": pl.Utf8,
    "total_cents": pl.Int64,
}
MESSAGE_SCHEMA: Dict[str, Any] = {
    "id": pl.Utf8,
    "channel": pl.Utf8,
    "cost_cents": pl.Int64,
    "delivered": pl.Boolean,
    "confirmed": pl.Boolean,
    "appointment_id": pl.Utf8,
}


def frame_from_rows(rows: Sequence[Mapping[str, Any]], schema: Mapping[str, Any]) -> pl.DataFrame:
    columns = {name: [row.get(name) for row in rows] for name in schema}
    return pl.DataFrame(columns, schema=dict(schema))


def card_fee_cents(transaction: Transaction, settings: Settings) -> int:
    if not transaction.is_card:
        return 0
    return round_half_up(transaction.total_cents * settings.card_fee_rate + settings.card_fee_fixed_cents)


def labor_cents(appointment: Appointment, hourly_rate_cents: int) -> int:
    return round_half_up(hourly_rate_cents * appointment.duration_minutes / 60)


def week_start(iso_day: str) -> str:
    try:
        day = date.fromisoformat(iso_day)
    except ValueError:
        return iso_day
    return date.fromordinal(day.toordinal() - day.weekday()).isoformat()


def weekday_name(iso_day: str) -> str:
    try:
        return WEEKDAYS[date.fromisoformat(iso_day).weekday()]
    except ValueError:
        return "Unknown"


def _start_hour(start_time: str) -> str:
    hour = start_time.split(":")[0].strip()
    if not hour.isdigit():
        return "Unknown"
    return f"{int(hour):02d}:00"


def _shares(prices: Sequence[int]) -> List[float]:
    total = sum(prices)
    if total > 0:
        return [price / total for price in prices]
    return [1 / len(prices)] * len(prices) if prices else []


@dataclass(frozen=True)
class ReportFrames:
    appointments: pl.DataFrame
    service_lines: pl.DataFrame
    transactions: pl.DataFrame
    items: pl.DataFrame
    messages: pl.DataFrame


def _transaction_row(transaction: Transaction, filters: FilterState, settings: Settings) -> Dict[str, Any]:
    discount = transaction.discount_cents if filters.include_discounts else 0
    refund = transaction.refund_cents if filters.include_refunds else 0
    return {
        "id": transaction.id,
        "appointment_id": transaction.appointment_id,
        "date": transaction.date,
        "week": week_start(transaction.date),
        "month": transaction.date[:7],
        "status": transaction.status,
        "payment_method": transaction.payment_method,
        "subtotal_cents": transaction.subtotal_cents,
        "discount_cents": discount,
        "refund_cents": refund,
        "tax_cents": transaction.tax_cents if filters.include_taxes else 0,
        "tip_cents": transaction.tip_cents if filters.include_tips else 0,
        "total_cents": transaction.total_cents,
        "net_cents": transaction.subtotal_cents - discount - refund,
        "fee_cents": card_fee_cents(transaction, settings),
        "taxable": transaction.tax_cents > 0,
    }


def build_frames(
    appointments: Sequence[Appointment],
    transactions: Sequence[Transaction],
    messages: Sequence[Message],
    data: NormalizedData,
    history: ClientHistory,
    filters: FilterState,
    settings: Settings,
) -> ReportFrames:
    rates = {member.id: member.hourly_rate_cents or 0 for member in data.staff}
    linked_fees: Dict[str, int] = {}
    linked_discounts: Dict[str, int] = {}
    for transaction in data.transactions:
        if not transaction.appointment_id:
            continue
        key = transaction.appointment_id
        linked_fees[key] = linked_fees.get(key, 0) + card_fee_cents(transaction, settings)
        linked_discounts[key] = linked_discounts.get(key, 0) + transaction.discount_cents
    confirmed_appointments = {message.appointment_id for message in data.messages if message.confirmed}

    appointment_rows: List[Dict[str, Any]] = []
    line_rows: List[Dict[str, Any]] = []
    for appointment in appointments:
        completed = appointment.is_completed
        revenue = appointment.total_cents if completed else 0
        labor = labor_cents(appointment, rates.get(appointment.staff_id, 0)) if completed else 0
        cogs = round_half_up(revenue * settings.cogs_rate)
        fee = linked_fees.get(appointment.id, 0)
        discount = linked_discounts.get(appointment.id, 0) if filters.include_discounts else 0
        tip = appointment.tip_cents if filters.include_tips else 0
        appointment_rows.append(
            {
                "id": appointment.id,
                "client_id": appointment.client_id,
                "staff_id": appointment.staff_id,
                "staff_name": appointment.staff_name,
                "date": appointment.date,
                "weekday": weekday_name(appointment.date),
                "start_hour": _start_hour(appointment.start_time),
                "status": appointment.status,
                "channel": appointment.channel,
                "client_type": appointment.client_type,
                "pet_size": appointment.pet_size,
                "service": appointment.first_service_name,
                "total_cents": appointment.total_cents,
                "revenue_cents": revenue,
                "tip_cents": tip,
                "duration_minutes": appointment.duration_minutes,
                "completed_minutes": appointment.duration_minutes if completed else 0,
                "labor_cents": labor,
                "cogs_cents": cogs,
                "fee_cents": fee,
                "discount_cents": discount,
                "contribution_cents": revenue - cogs - labor - fee,
                "lead_days": days_between(appointment.created_at, appointment.date) if appointment.created_at else None,
                "completed": completed,
                "cancelled": appointment.is_cancelled,
                "no_show": appointment.is_no_show,
                "recovered": history.recovered(appointment),
                "confirmed": appointment.id in confirmed_appointments,
            }
        )
        shares = _shares([service.price_cents for service in appointment.services])
        for service, share in zip(appointment.services, shares):
            line_revenue = service.price_cents if completed else 0
            line_cogs = line_revenue * settings.cogs_rate
            line_labor = labor * share
            line_fee = fee * share
            line_rows.append(
                {
                    "appointment_id": appointment.id,
                    "service_id": service.id,
                    "service": service.name or "Service",
                    "category": service.category,
                    "kind": service.kind,
                    "price_cents": service.price_cents,
                    "revenue_cents": line_revenue,
                    "duration_minutes": service.duration_minutes,
                    "cogs_cents": line_cogs,
                    "labor_cents": line_labor,
                    "fee_cents": line_fee,
                    "discount_cents": discount * share,
                    "tip_cents": tip * share,
                    "contribution_cents": line_revenue - line_cogs - line_labor - line_fee,
                    "completed": completed,
                    "no_show": appointment.is_no_show,
                }
            )

    item_rows = [
        {"transaction_id": transaction.id, "category": item.category or "Other", "total_cents": item.total_cents}
        for transaction in transactions
        for item in transaction.items
    ]
    message_rows = [
        {
            "id": message.id,
            "channel": message.channel,
            "cost_cents": message.cost_cents,
            "delivered": message.delivered,
            "confirmed": message.confirmed,
            "appointment_id": message.appointment_id,
        }
        for message in messages
    ]
    return ReportFrames(
        appointments=frame_from_rows(appointment_rows, APPOINTMENT_SCHEMA),
        service_lines=frame_from_rows(line_rows, SERVICE_LINE_SCHEMA),
        transactions=frame_from_rows(
            [_transaction_row(transaction, filters, settings) for transaction in transactions],
            TRANSACTION_SCHEMA,
        ),
        items=frame_from_rows(item_rows, ITEM_SCHEMA),
        messages=frame_from_rows(message_rows, MESSAGE_SCHEMA),
    )

