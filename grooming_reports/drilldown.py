"""Drill-down resolver: re-filters normalized collections for a drill request."""

from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, List, Mapping

from grooming_reports.application.reporting.frames import week_start
from grooming_reports.application.reporting.metrics import fmt_currency, fmt_day
from grooming_reports.domain.models import (
    Appointment,
    Client,
    InventoryItem,
    Message,
    NormalizedData,
    Transaction,
)
from grooming_reports.domain.report_types import DrillRequest

Accessor = Callable[[Any], Iterable[Any]]


def _key(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return "" if value is None else str(value)


def _wanted(value: Any) -> set[str]:
    if isinstance(value, (list, tuple, set, frozenset)):
        return {_key(item) for item in value}
    return {_key(value)}


def _appointment_accessors() -> Dict[str, Accessor]:
    return {
        "staff": lambda item: (item.staff_id, item.staff_name),
        "service": lambda item: [service.id for service in item.services]
        + [service.name for service in item.services],
        "serviceCategory": lambda item: [service.category for service in item.services],
        "status": lambda item: (item.status,),
        "channel": lambda item: (item.channel,),
        "clientId": lambda item: (item.client_id,),
        "clientType": lambda item: (item.client_type,),
        "petSize": lambda item: (item.pet_size,),
        "date": lambda item: (item.date,),
    }


def _transaction_accessors(appointments: Mapping[str, Appointment]) -> Dict[str, Accessor]:
    def _linked(transaction: Transaction) -> Appointment | None:
        if not transaction.appointment_id:
            return None
        return appointments.get(transaction.appointment_id)

    def _service(transaction: Transaction) -> Iterable[str]:
        appointment = _linked(transaction)
        if appointment is None:
            return [item.name for item in transaction.items if item.kind == "service"]
        return [service.id for service in appointment.services] + [service.name for service in appointment.services]

    def _via_appointment(read: Callable[[Appointment], Iterable[Any]]) -> Accessor:
        def _accessor(transaction: Transaction) -> Iterable[Any]:
            appointment = _linked(transaction)
            return () if appointment is None else read(appointment)

        return _accessor

    linked = _appointment_accessors()
    return {
        "transactionId": lambda item: (item.id,),
        "paymentMethod": lambda item: (item.payment_method,),
        "status": lambda item: (item.status,),
        "clientId": lambda item: (item.client_id,),
        "date": lambda item: (item.date,),
        "week": lambda item: (week_start(item.date),),
        "month": lambda item: (item.date[:7],),
        "taxable": lambda item: (item.tax_cents > 0,),
        "staff": _via_appointment(linked["staff"]),
        "service": _service,
        "serviceCategory": _via_appointment(linked["serviceCategory"]),
        "channel": _via_appointment(linked["channel"]),
        "clientType": _via_appointment(linked["clientType"]),
        "petSize": _via_appointment(linked["petSize"]),
    }


def _client_accessors(first_visits: Mapping[str, str]) -> Dict[str, Accessor]:
    return {
        "clientId": lambda item: (item.id,),
        "clientType": lambda item: (item.type,),
        "cohort": lambda item: (first_visits.get(item.id, "")[:7],),
    }


def _inventory_accessors() -> Dict[str, Accessor]:
    return {
        "category": lambda item: (item.category,),
        "itemId": lambda item: (item.id,),
    }


def _message_accessors() -> Dict[str, Accessor]:
    return {
        "channel": lambda item: (item.channel,),
        "clientId": lambda item: (item.client_id,),
        "appointmentId": lambda item: (item.appointment_id,),
    }


def _select(records: Iterable[Any], accessors: Mapping[str, Accessor], filters: Mapping[str, Any]) -> List[Any]:
    applicable = {key: _wanted(value) for key, value in filters.items() if key in accessors and value is not None}
    selected = []
    for record in records:
        if all(
            any(_key(candidate) in wanted for candidate in accessors[key](record))
            for key, wanted in applicable.items()
        ):
            selected.append(record)
    return selected


def appointment_row(appointment: Appointment) -> Dict[str, Any]:
    return {
        "id": appointment.id,
        "date": fmt_day(appointment.date),
        "time": appointment.start_time,
        "client": appointment.client_name,
        "pet": appointment.pet_name,
        "staff": appointment.staff_name,
        "services": ", ".join(service.name for service in appointment.services),
        "status": appointment.status,
        "channel": appointment.channel,
        "total": fmt_currency(appointment.total_cents),
        "tip": fmt_currency(appointment.tip_cents),
    }


def transaction_row(transaction: Transaction) -> Dict[str, Any]:
    return {
        "id": transaction.id,
        "date": fmt_day(transaction.date),
        "client": transaction.client_name,
        "method": transaction.payment_method,
        "status": transaction.status,
        "subtotal": fmt_currency(transaction.subtotal_cents),
        "discount": fmt_currency(transaction.discount_cents),
        "refund": fmt_currency(transaction.refund_cents),
        "tax": fmt_currency(transaction.tax_cents),
        "tip": fmt_currency(transaction.tip_cents),
        "total": fmt_currency(transaction.total_cents),
    }


def client_row(client: Client, first_visits: Mapping[str, str]) -> Dict[str, Any]:
    first_visit = first_visits.get(client.id)
    return {
        "id": client.id,
        "name": client.name,
        "type": client.type,
        "firstVisit": fmt_day(first_visit) if first_visit else "",
        "city": client.city or "",
        "referralSource": client.referral_source or "",
    }


def inventory_row(item: InventoryItem) -> Dict[str, Any]:
    return {
        "id": item.id,
        "name": item.name,
        "category": item.category,
        "quantity": item.quantity,
        "reorderLevel": item.reorder_level,
        "unitCost": fmt_currency(item.unit_cost_cents),
        "linkedServices": ", ".join(item.linked_services),
    }


def message_row(message: Message) -> Dict[str, Any]:
    return {
        "id": message.id,
        "channel": message.channel,
        "sentAt": fmt_day(message.sent_at),
        "cost": fmt_currency(message.cost_cents),
        "delivered": message.delivered,
        "confirmed": message.confirmed,
        "clientId": message.client_id or "",
        "appointmentId": message.appointment_id or "",
    }


def resolve_drill_rows(request: DrillRequest, data: NormalizedData) -> Dict[str, List[Dict[str, Any]]]:
    """Rows behind a drill request, keyed by requested row type.

    Filter keys are ANDed; a key only constrains row types it is meaningful for.
    """
    filters = dict(request.filters)
    result: Dict[str, List[Dict[str, Any]]] = {}
    for row_type in request.row_types:
        if row_type == "appointments":
            records = _select(data.appointments, _appointment_accessors(), filters)
            records.sort(key=lambda item: (item.date, item.start_time, item.id))
            result[row_type] = [appointment_row(item) for item in records]
        elif row_type == "transactions":
            records = _select(data.transactions, _transaction_accessors(data.appointment_lookup()), filters)
            records.sort(key=lambda item: (item.date, item.id))
            result[row_type] = [transaction_row(item) for item in records]
        elif row_type == "clients":
            records = _select(data.clients, _client_accessors(data.first_visits), filters)
            records.sort(key=lambda item: (item.name, item.id))
            result[row_type] = [client_row(item, data.first_visits) for item in records]
        elif row_type == "inventory":
            records = _select(data.inventory_items, _inventory_accessors(), filters)
            records.sort(key=lambda item: (item.name, item.id))
            result[row_type] = [inventory_row(item) for item in records]
        elif row_type == "messages":
            records = _select(data.messages, _message_accessors(), filters)
            records.sort(key=lambda item: (item.sent_at, item.id))
            result[row_type] = [message_row(item) for item in records]
        else:
            raise ValueError(f"Unknown drill row type: {row_type}")
    return result
