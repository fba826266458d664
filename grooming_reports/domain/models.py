"""Normalized record types produced from raw operational data."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Tuple

from grooming_reports.config import MIN_SERVICE_MINUTES

COMPLETED_STATUSES: frozenset[str] = frozenset({"completed", "paid"})


def _clock_minutes(value: str) -> int | None:
    parts = str(value or "").strip().split(":")
    if len(parts) < 2:
        return None
    try:
        return int(parts[0]) * 60 + int(parts[1])
    except ValueError:
        return None


def slot_minutes(start_time: str, end_time: str) -> int:
    start = _clock_minutes(start_time)
    end = _clock_minutes(end_time)
    if start is None or end is None:
        return MIN_SERVICE_MINUTES
    return max(MIN_SERVICE_MINUTES, end - start)


@dataclass(frozen=True)
class ServiceLine:
    id: str
    name: str
    category: str
    kind: str
    price_cents: int
    duration_minutes: int


@dataclass(frozen=True)
class Appointment:
    id: str
    client_id: str
    client_name: str
    pet_id: str
    pet_name: str
    pet_size: str
    staff_id: str
    staff_name: str
    date: str
    start_time: str
    end_time: str
    status: str
    channel: str
    client_type: str
    services: Tuple[ServiceLine, ...]
    total_cents: int
    tip_cents: int
    created_at: str
    location: str | None = None
    is_no_show: bool = False

    @property
    def duration_minutes(self) -> int:
        return slot_minutes(self.start_time, self.end_time)

    @property
    def is_completed(self) -> bool:
        return self.status in COMPLETED_STATUSES

    @property
    def is_cancelled(self) -> bool:
        return self.status == "cancelled"

    @property
    def first_service_name(self) -> str:
        if not self.services:
            return "Service"
        return self.services[0].name or "Service"


@dataclass(frozen=True)
class LineItem:
    id: str
    name: str
    kind: str
    quantity: int
    total_cents: int
    category: str


@dataclass(frozen=True)
class Transaction:
    id: str
    appointment_id: str | None
    client_id: str
    client_name: str
    date: str
    status: str
    payment_method: str
    subtotal_cents: int
    discount_cents: int
    refund_cents: int
    tax_cents: int
    tip_cents: int
    total_cents: int
    items: Tuple[LineItem, ...] = ()
    location: str | None = None

    @property
    def is_card(self) -> bool:
        return "card" in self.payment_method.lower()


@dataclass(frozen=True)
class Client:
    id: str
    name: str
    type: str
    created_at: str | None = None
    city: str | None = None
    zip: str | None = None
    referral_source: str | None = None


@dataclass(frozen=True)
class StaffMember:
    id: str
    name: str
    role: str | None = None
    hourly_rate_cents: int | None = None
    status: str | None = None


@dataclass(frozen=True)
class InventoryItem:
    id: str
    name: str
    category: str
    unit_cost_cents: int
    quantity: int
    reorder_level: int
    linked_services: Tuple[str, ...] = ()

    @property
    def usage_cost_cents(self) -> int:
        # One unit of every stocked item is treated as consumed per period.
        return self.unit_cost_cents * max(0, min(self.quantity, 1))


@dataclass(frozen=True)
class Message:
    id: str
    channel: str
    sent_at: str
    cost_cents: int
    delivered: bool = True
    confirmed: bool = False
    client_id: str | None = None
    appointment_id: str | None = None


@dataclass(frozen=True)
class CatalogService:
    id: str
    name: str
    category: str


@dataclass(frozen=True)
class NormalizedData:
    appointments: Tuple[Appointment, ...] = ()
    transactions: Tuple[Transaction, ...] = ()
    clients: Tuple[Client, ...] = ()
    staff: Tuple[StaffMember, ...] = ()
    inventory_items: Tuple[InventoryItem, ...] = ()
    messages: Tuple[Message, ...] = ()
    locations: Tuple[str, ...] = ()
    service_catalog: Tuple[CatalogService, ...] = ()
    first_visits: Dict[str, str] = field(default_factory=dict)

    def appointment_lookup(self) -> Dict[str, Appointment]:
        return {appointment.id: appointment for appointment in self.appointments}
