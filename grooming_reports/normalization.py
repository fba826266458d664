"""Raw operational records to canonical report records."""

from __future__ import annotations

import logging
import math
import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Mapping, Sequence

from grooming_reports.config import MIN_SERVICE_MINUTES
from grooming_reports.domain.models import (
    Appointment,
    CatalogService,
    Client,
    InventoryItem,
    LineItem,
    Message,
    NormalizedData,
    ServiceLine,
    StaffMember,
    Transaction,
    slot_minutes,
)

logger = logging.getLogger(__name__)

UNKNOWN = "Unknown"
NO_SHOW_MARKERS: tuple[str, ...] = ("no-show", "no show", "noshow", "no_show")
CATEGORY_KEYWORDS: tuple[tuple[str, str], ...] = (
    ("bath", "Bath"),
    ("trim", "Trim"),
    ("full", "Full Groom"),
)
_MONEY_NOISE = re.compile(r"[,$\s]")
_RATE_NOISE = re.compile(r"[^0-9.]")


def _field(raw: Mapping[str, Any], *names: str, default: Any = None) -> Any:
    for name in names:
        value = raw.get(name)
        if value is not None:
            return value
    return default


def _text(value: Any, default: str = "") -> str:
    if value is None:
        return default
    text = str(value).strip()
    return text or default


def _optional_text(value: Any) -> str | None:
    text = _text(value)
    return text or None


def _to_int(value: Any, default: int = 0) -> int:
    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(number) or math.isinf(number):
        return default
    return int(number)


def _to_bool(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in {"true", "1", "yes", "y"}
    return bool(value)


def to_cents(value: Any) -> int:
    """Decimal currency to integer minor units; malformed values become 0."""
    if value is None or isinstance(value, bool):
        return 0
    text = _MONEY_NOISE.sub("", str(value))
    if not text:
        return 0
    try:
        amount = Decimal(text)
    except InvalidOperation:
        return 0
    if not amount.is_finite():
        return 0
    try:
        return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    except InvalidOperation:
        return 0


def parse_hourly_rate(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return to_cents(value)
    text = _RATE_NOISE.sub("", str(value))
    if not text:
        return None
    try:
        Decimal(text)
    except InvalidOperation:
        return None
    return to_cents(text)


def derive_service_category(name: str, kind: str) -> str:
    if kind == "addon":
        return "Add-ons"
    lowered = name.lower()
    for keyword, category in CATEGORY_KEYWORDS:
        if keyword in lowered:
            return category
    return "Grooming"


def derive_channel(notes: str) -> str:
    lowered = notes.lower()
    if "online" in lowered:
        return "online"
    if "walk" in lowered:
        return "walk-in"
    return "phone"


def normalize_status(value: Any) -> str:
    status = _text(value, "unknown").lower()
    if status.replace(" ", "-").replace("_", "-") in {"no-show", "noshow"}:
        return "no-show"
    return status


def is_no_show(status: str, notes: str) -> bool:
    if status == "no-show":
        return True
    lowered = notes.lower()
    return status == "cancelled" and any(marker in lowered for marker in NO_SHOW_MARKERS)


def first_visit_dates(appointments: Iterable[Mapping[str, Any]]) -> Dict[str, str]:
    """Earliest non-cancelled visit date per client id."""
    first_visits: Dict[str, str] = {}
    for raw in appointments:
        if normalize_status(raw.get("status")) == "cancelled":
            continue
        client_id = _text(_field(raw, "clientId", "client_id"))
        visit_date = _text(raw.get("date"))[:10]
        if not client_id or not visit_date:
            continue
        current = first_visits.get(client_id)
        if current is None or visit_date < current:
            first_visits[client_id] = visit_date
    return first_visits


def _last_visit_dates(appointments: Iterable[Mapping[str, Any]]) -> Dict[str, str]:
    last_visits: Dict[str, str] = {}
    for raw in appointments:
        if normalize_status(raw.get("status")) == "cancelled":
            continue
        client_id = _text(_field(raw, "clientId", "client_id"))
        visit_date = _text(raw.get("date"))[:10]
        if not client_id or not visit_date:
            continue
        if visit_date > last_visits.get(client_id, ""):
            last_visits[client_id] = visit_date
    return last_visits


def client_type_for(client_id: str, visit_date: str, first_visits: Mapping[str, str]) -> str:
    return "new" if first_visits.get(client_id) == visit_date else "returning"


def _normalize_service(raw: Mapping[str, Any], duration: int) -> ServiceLine:
    kind = "addon" if _text(_field(raw, "type", "kind")).lower() == "addon" else "main"
    name = _text(_field(raw, "serviceName", "name"))
    return ServiceLine(
        id=_text(_field(raw, "serviceId", "id")),
        name=name,
        category=derive_service_category(name, kind),
        kind=kind,
        price_cents=to_cents(raw.get("price")),
        duration_minutes=max(MIN_SERVICE_MINUTES, duration),
    )


def normalize_appointment(raw: Mapping[str, Any], first_visits: Mapping[str, str]) -> Appointment:
    client_id = _text(_field(raw, "clientId", "client_id"))
    visit_date = _text(raw.get("date"))[:10]
    start_time = _text(_field(raw, "startTime", "start_time"))
    end_time = _text(_field(raw, "endTime", "end_time"))
    notes = _text(raw.get("notes"))
    status = normalize_status(raw.get("status"))
    duration = slot_minutes(start_time, end_time)
    services = tuple(
        _normalize_service(service, duration)
        for service in (raw.get("services") or [])
        if isinstance(service, Mapping)
    )
    return Appointment(
        id=_text(raw.get("id")),
        client_id=client_id,
        client_name=_text(_field(raw, "clientName", "client_name")),
        pet_id=_text(_field(raw, "petId", "pet_id")),
        pet_name=_text(_field(raw, "petName", "pet_name")),
        pet_size=_text(_field(raw, "petWeightCategory", "petSize", "pet_size"), UNKNOWN),
        staff_id=_text(_field(raw, "groomerId", "staffId", "staff_id")),
        staff_name=_text(_field(raw, "groomerName", "staffName", "staff_name"), UNKNOWN),
        date=visit_date,
        start_time=start_time,
        end_time=end_time,
        status=status,
        channel=derive_channel(notes),
        client_type=client_type_for(client_id, visit_date, first_visits),
        services=services,
        total_cents=to_cents(_field(raw, "totalPrice", "total")),
        tip_cents=to_cents(_field(raw, "tipAmount", "tip")),
        created_at=_text(_field(raw, "createdAt", "created_at")),
        location=_optional_text(_field(raw, "location", "locationId")),
        is_no_show=is_no_show(status, notes),
    )


def _normalize_line_item(raw: Mapping[str, Any]) -> LineItem:
    kind = "product" if _text(_field(raw, "type", "kind")).lower() == "product" else "service"
    return LineItem(
        id=_text(raw.get("id")),
        name=_text(raw.get("name")),
        kind=kind,
        quantity=_to_int(raw.get("quantity"), 1),
        total_cents=to_cents(raw.get("total")),
        category=_text(raw.get("category"), "Retail" if kind == "product" else "Service"),
    )


def normalize_transaction(raw: Mapping[str, Any]) -> Transaction:
    status = normalize_status(raw.get("status"))
    total = to_cents(raw.get("total"))
    return Transaction(
        id=_text(raw.get("id")),
        appointment_id=_optional_text(_field(raw, "appointmentId", "appointment_id")),
        client_id=_text(_field(raw, "clientId", "client_id")),
        client_name=_text(_field(raw, "clientName", "client_name")),
        date=_text(raw.get("date"))[:10],
        status=status,
        payment_method=_text(_field(raw, "paymentMethod", "payment_method"), UNKNOWN),
        subtotal_cents=to_cents(raw.get("subtotal")),
        discount_cents=to_cents(raw.get("discount")),
        refund_cents=total if status == "refunded" else 0,
        tax_cents=to_cents(_field(raw, "additionalFees", "tax")),
        tip_cents=to_cents(_field(raw, "tipAmount", "tip")),
        total_cents=total,
        items=tuple(_normalize_line_item(item) for item in (raw.get("items") or []) if isinstance(item, Mapping)),
        location=_optional_text(_field(raw, "location", "locationId")),
    )


def normalize_client(
    raw: Mapping[str, Any],
    first_visits: Mapping[str, str],
    last_visits: Mapping[str, str],
) -> Client:
    client_id = _text(raw.get("id"))
    address = raw.get("address") if isinstance(raw.get("address"), Mapping) else {}
    first_visit = first_visits.get(client_id)
    # A client stays new until a visit lands after the first-visit day.
    client_type = "new" if first_visit is None or last_visits.get(client_id) == first_visit else "returning"
    return Client(
        id=client_id,
        name=_text(raw.get("name")),
        type=client_type,
        created_at=_optional_text(_field(raw, "createdAt", "created_at")),
        city=_optional_text(_field(address, "city") or raw.get("city")),
        zip=_optional_text(_field(address, "zip") or raw.get("zip")),
        referral_source=_optional_text(_field(raw, "referralSource", "referral_source")),
    )


def normalize_staff_member(raw: Mapping[str, Any]) -> StaffMember:
    return StaffMember(
        id=_text(raw.get("id")),
        name=_text(raw.get("name"), UNKNOWN),
        role=_optional_text(raw.get("role")),
        hourly_rate_cents=parse_hourly_rate(_field(raw, "hourlyRate", "hourly_rate")),
        status=_optional_text(raw.get("status")),
    )


def normalize_inventory_item(raw: Mapping[str, Any]) -> InventoryItem:
    linked = raw.get("linkedServices") or raw.get("linked_services") or []
    return InventoryItem(
        id=_text(raw.get("id")),
        name=_text(raw.get("name"), UNKNOWN),
        category=_text(raw.get("category"), UNKNOWN),
        unit_cost_cents=to_cents(_field(raw, "cost", "unitCost")),
        quantity=_to_int(raw.get("quantity")),
        reorder_level=_to_int(_field(raw, "reorderLevel", "reorder_level")),
        linked_services=tuple(_text(item) for item in linked if _text(item)),
    )


def normalize_message(raw: Mapping[str, Any]) -> Message:
    return Message(
        id=_text(raw.get("id")),
        channel=_text(raw.get("channel"), UNKNOWN),
        sent_at=_text(_field(raw, "sentAt", "sent_at")),
        cost_cents=to_cents(raw.get("cost")),
        delivered=_to_bool(raw.get("delivered"), True),
        confirmed=_to_bool(raw.get("confirmed"), False),
        client_id=_optional_text(_field(raw, "clientId", "client_id")),
        appointment_id=_optional_text(_field(raw, "appointmentId", "appointment_id")),
    )


def _records(rows: Sequence[Any] | None) -> List[Mapping[str, Any]]:
    return [row for row in (rows or []) if isinstance(row, Mapping)]


def _service_catalog(appointments: Sequence[Appointment]) -> tuple[CatalogService, ...]:
    catalog: Dict[str, CatalogService] = {}
    for appointment in appointments:
        for service in appointment.services:
            catalog[service.id] = CatalogService(id=service.id, name=service.name, category=service.category)
    return tuple(catalog.values())


def _locations(appointments: Sequence[Appointment], transactions: Sequence[Transaction]) -> tuple[str, ...]:
    seen: Dict[str, None] = {}
    for record in [*appointments, *transactions]:
        if record.location:
            seen.setdefault(record.location, None)
    return tuple(seen)


def normalize_reports_data(
    appointments: Sequence[Mapping[str, Any]] | None = None,
    transactions: Sequence[Mapping[str, Any]] | None = None,
    clients: Sequence[Mapping[str, Any]] | None = None,
    staff: Sequence[Mapping[str, Any]] | None = None,
    inventory: Sequence[Mapping[str, Any]] | None = None,
    messages: Sequence[Mapping[str, Any]] | None = None,
) -> NormalizedData:
    raw_appointments = _records(appointments)
    first_visits = first_visit_dates(raw_appointments)
    last_visits = _last_visit_dates(raw_appointments)

    normalized_appointments = tuple(normalize_appointment(raw, first_visits) for raw in raw_appointments)
    normalized_transactions = tuple(normalize_transaction(raw) for raw in _records(transactions))
    data = NormalizedData(
        appointments=normalized_appointments,
        transactions=normalized_transactions,
        clients=tuple(normalize_client(raw, first_visits, last_visits) for raw in _records(clients)),
        staff=tuple(normalize_staff_member(raw) for raw in _records(staff)),
        inventory_items=tuple(normalize_inventory_item(raw) for raw in _records(inventory)),
        messages=tuple(normalize_message(raw) for raw in _records(messages)),
        locations=_locations(normalized_appointments, normalized_transactions),
        service_catalog=_service_catalog(normalized_appointments),
        first_visits=first_visits,
    )
    logger.debug(
        "normalized %d appointments, %d transactions, %d clients",
        len(data.appointments),
        len(data.transactions),
        len(data.clients),
    )
    return data
