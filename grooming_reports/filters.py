"""Filter resolution: date presets, comparison windows, predicates and query codec."""

from __future__ import annotations

import json
from dataclasses import replace
from datetime import date, datetime, timedelta, tzinfo
from typing import Any, Callable, Dict, List, Mapping, Tuple
from urllib.parse import parse_qs, urlencode
from zoneinfo import ZoneInfo

from grooming_reports.domain.models import Appointment, Transaction
from grooming_reports.domain.report_types import DATE_PRESETS, TIME_BASES, FilterState, validate_report_id

AppointmentPredicate = Callable[[Appointment], bool]
TransactionPredicate = Callable[[Transaction], bool]

REPORT_DEFAULTS: Dict[str, Dict[str, Any]] = {
    "owner-overview": {"time_basis": "checkout"},
    "true-profit": {"time_basis": "checkout"},
    "sales-summary": {"time_basis": "checkout"},
    "finance-recon": {"time_basis": "transaction"},
    "appointments-capacity": {"time_basis": "service", "appointment_statuses": ()},
    "no-shows": {"time_basis": "service", "appointment_statuses": ()},
    "retention": {"time_basis": "service"},
    "cohorts-ltv": {"time_basis": "service"},
    "staff-performance": {"time_basis": "checkout"},
    "payroll": {"time_basis": "checkout", "date_preset": "thisMonth"},
    "service-mix": {"time_basis": "checkout"},
    "inventory": {"time_basis": "service"},
    "marketing-roi": {"time_basis": "service", "appointment_statuses": ()},
    "tips": {"time_basis": "checkout"},
    "taxes": {"time_basis": "checkout"},
}

QUERY_LIST_KEYS: Tuple[Tuple[str, str], ...] = (
    ("locations", "locations"),
    ("staff", "staff"),
    ("services", "services"),
    ("serviceCategories", "service_categories"),
    ("petSizes", "pet_sizes"),
    ("channels", "channels"),
    ("clientTypes", "client_types"),
    ("statuses", "appointment_statuses"),
    ("paymentMethods", "payment_methods"),
)
QUERY_BOOL_KEYS: Tuple[Tuple[str, str], ...] = (
    ("discounts", "include_discounts"),
    ("refunds", "include_refunds"),
    ("tips", "include_tips"),
    ("taxes", "include_taxes"),
    ("giftCards", "include_gift_cards"),
    ("compare", "compare_mode"),
)


def business_today(timezone: str | tzinfo | None = None) -> date:
    if timezone is None:
        zone: tzinfo = ZoneInfo("UTC")
    elif isinstance(timezone, str):
        zone = ZoneInfo(timezone)
    else:
        zone = timezone
    return datetime.now(zone).date()


def _month_start(day: date) -> date:
    return day.replace(day=1)


def _shift_months(day: date, months: int) -> date:
    index = day.year * 12 + (day.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


def _month_end(day: date) -> date:
    return _shift_months(day, 1) - timedelta(days=1)


def resolve_date_range(preset: str, today: date) -> Tuple[str, str]:
    """Concrete [start, end] ISO days for a named preset relative to ``today``."""
    if preset == "yesterday":
        start = end = today - timedelta(days=1)
    elif preset == "last7":
        start, end = today - timedelta(days=6), today
    elif preset == "thisWeek":
        start = today - timedelta(days=today.weekday())
        end = start + timedelta(days=6)
    elif preset == "last30":
        start, end = today - timedelta(days=29), today
    elif preset == "last90":
        start, end = today - timedelta(days=89), today
    elif preset == "thisMonth":
        start, end = _month_start(today), _month_end(today)
    elif preset == "lastMonth":
        start = _shift_months(today, -1)
        end = _month_end(start)
    elif preset == "quarter":
        start, end = _shift_months(today, -2), _month_end(today)
    elif preset == "ytd":
        start, end = date(today.year, 1, 1), today
    else:
        start = end = today
    return start.isoformat(), end.isoformat()


def comparison_window(start_date: str, end_date: str) -> Tuple[str, str]:
    start = date.fromisoformat(start_date)
    end = date.fromisoformat(end_date)
    diff_days = (end - start).days
    compare_end = start - timedelta(days=1)
    compare_start = compare_end - timedelta(days=diff_days)
    return compare_start.isoformat(), compare_end.isoformat()


def comparison_filters(filters: FilterState) -> FilterState:
    return filters.with_window(*comparison_window(filters.start_date, filters.end_date))


def default_filters(today: date) -> FilterState:
    start_date, end_date = resolve_date_range("last30", today)
    return FilterState(
        date_preset="last30",
        start_date=start_date,
        end_date=end_date,
        time_basis="checkout",
        appointment_statuses=("completed",),
    )


def apply_report_defaults(report_id: str, base: FilterState, today: date) -> FilterState:
    defaults = REPORT_DEFAULTS[validate_report_id(report_id)]
    preset = defaults.get("date_preset", base.date_preset)
    if preset == "custom":
        start_date, end_date = base.start_date, base.end_date
    else:
        start_date, end_date = resolve_date_range(preset, today)
    return replace(base, **{**defaults, "date_preset": preset, "start_date": start_date, "end_date": end_date})


def report_filters(report_id: str, today: date) -> FilterState:
    return apply_report_defaults(report_id, default_filters(today), today)


def _within(day: str, filters: FilterState) -> bool:
    return filters.start_date <= day <= filters.end_date


def appointment_predicate(filters: FilterState) -> AppointmentPredicate:
    staff = set(filters.staff)
    services = set(filters.services)
    categories = set(filters.service_categories)
    pet_sizes = set(filters.pet_sizes)
    channels = set(filters.channels)
    client_types = set(filters.client_types)
    statuses = set(filters.appointment_statuses)
    locations = set(filters.locations)

    def _matches(appointment: Appointment) -> bool:
        # Appointments always filter on service date; time basis only moves transactions.
        if not _within(appointment.date, filters):
            return False
        if staff and appointment.staff_id not in staff:
            return False
        if services and not any(service.id in services for service in appointment.services):
            return False
        if categories and not any(service.category in categories for service in appointment.services):
            return False
        if pet_sizes and appointment.pet_size not in pet_sizes:
            return False
        if channels and appointment.channel not in channels:
            return False
        if client_types and appointment.client_type not in client_types:
            return False
        if statuses and appointment.status not in statuses:
            return False
        if locations and appointment.location and appointment.location not in locations:
            return False
        return True

    return _matches


def transaction_date_for_basis(
    transaction: Transaction,
    appointment_lookup: Mapping[str, Appointment],
    time_basis: str,
) -> str:
    if time_basis == "service" and transaction.appointment_id:
        appointment = appointment_lookup.get(transaction.appointment_id)
        if appointment is not None and appointment.date:
            return appointment.date
    return transaction.date


def transaction_predicate(
    filters: FilterState,
    appointment_lookup: Mapping[str, Appointment],
) -> TransactionPredicate:
    payment_methods = set(filters.payment_methods)
    client_types = set(filters.client_types)
    locations = set(filters.locations)

    def _matches(transaction: Transaction) -> bool:
        day = transaction_date_for_basis(transaction, appointment_lookup, filters.time_basis)
        if not _within(day, filters):
            return False
        if payment_methods and transaction.payment_method not in payment_methods:
            return False
        if client_types and transaction.appointment_id:
            appointment = appointment_lookup.get(transaction.appointment_id)
            if appointment is not None and appointment.client_type not in client_types:
                return False
        if locations and transaction.location and transaction.location not in locations:
            return False
        return True

    return _matches


def serialize_filters_to_query(filters: FilterState) -> str:
    params: List[Tuple[str, str]] = [
        ("preset", filters.date_preset),
        ("start", filters.start_date),
        ("end", filters.end_date),
        ("basis", filters.time_basis),
    ]
    for key, attr in QUERY_LIST_KEYS:
        values = getattr(filters, attr)
        if values:
            params.append((key, ",".join(values)))
    if filters.visible_columns:
        params.append(("columns", ",".join(filters.visible_columns)))
    if filters.group_by:
        params.append(("groupBy", filters.group_by))
    for key, attr in QUERY_BOOL_KEYS:
        params.append((key, "true" if getattr(filters, attr) else "false"))
    return urlencode(params)


def _query_params(query: str | Mapping[str, Any] | None) -> Dict[str, str]:
    if query is None:
        return {}
    if isinstance(query, str):
        parsed = parse_qs(query.lstrip("?"), keep_blank_values=True)
        return {key: values[-1] for key, values in parsed.items() if values}
    params: Dict[str, str] = {}
    for key, value in query.items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            value = ",".join(str(item) for item in value)
        params[str(key)] = str(value)
    return params


def _valid_day(value: str | None) -> str | None:
    if not value:
        return None
    try:
        return date.fromisoformat(value).isoformat()
    except ValueError:
        return None


def parse_filters_from_query(
    query: str | Mapping[str, Any] | None,
    report_id: str,
    today: date,
) -> FilterState:
    """Decode a query string, falling back to the report's defaults for anything missing."""
    base = report_filters(report_id, today)
    params = _query_params(query)

    def _list(key: str) -> Tuple[str, ...]:
        return tuple(item for item in params.get(key, "").split(",") if item)

    def _bool(key: str, fallback: bool) -> bool:
        if key not in params:
            return fallback
        return params[key] == "true"

    preset = params.get("preset") or base.date_preset
    if preset not in DATE_PRESETS:
        preset = base.date_preset
    if preset == "custom":
        preset_start, preset_end = base.start_date, base.end_date
    else:
        preset_start, preset_end = resolve_date_range(preset, today)
    start_date = _valid_day(params.get("start")) or preset_start
    end_date = _valid_day(params.get("end")) or preset_end
    if start_date > end_date:
        start_date, end_date = preset_start, preset_end

    time_basis = params.get("basis") or base.time_basis
    if time_basis not in TIME_BASES:
        time_basis = base.time_basis

    overrides: Dict[str, Any] = {
        attr: _list(key) for key, attr in QUERY_LIST_KEYS if attr != "appointment_statuses"
    }
    overrides.update({attr: _bool(key, getattr(base, attr)) for key, attr in QUERY_BOOL_KEYS})
    statuses = _list("statuses")
    columns = _list("columns")
    return replace(
        base,
        date_preset=preset,
        start_date=start_date,
        end_date=end_date,
        time_basis=time_basis,
        appointment_statuses=statuses or base.appointment_statuses,
        group_by=params.get("groupBy") or base.group_by,
        visible_columns=columns or base.visible_columns,
        **overrides,
    )


def filter_hash(filters: FilterState) -> str:
    payload = filters.as_dict()
    return "|".join(f"{key}:{json.dumps(payload[key])}" for key in sorted(payload))
