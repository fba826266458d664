"""Raw record builders shared by the test modules."""

from datetime import date

from grooming_reports.domain.report_types import FilterState

TODAY = date(2024, 3, 31)


def raw_appointment(
    appt_id,
    client_id="c1",
    day="2024-03-05",
    status="completed",
    total=100,
    staff_id="s1",
    staff_name="Avery",
    notes="",
    start="09:00",
    end="10:00",
    services=None,
    tip=0,
    created_at=None,
    pet_size="medium",
):
    if services is None:
        services = [{"serviceId": "svc-full", "serviceName": "Full Groom", "price": total, "type": "main"}]
    return {
        "id": appt_id,
        "clientId": client_id,
        "clientName": f"Client {client_id}",
        "petId": f"pet-{client_id}",
        "petName": "Biscuit",
        "petWeightCategory": pet_size,
        "groomerId": staff_id,
        "groomerName": staff_name,
        "date": day,
        "startTime": start,
        "endTime": end,
        "services": services,
        "totalPrice": total,
        "tipAmount": tip,
        "status": status,
        "notes": notes,
        "createdAt": created_at or day,
    }


def raw_transaction(
    tx_id,
    appointment_id=None,
    day="2024-03-05",
    subtotal=100,
    discount=0,
    total=None,
    status="paid",
    method="card",
    tax=0,
    tip=0,
    client_id="c1",
    items=None,
):
    return {
        "id": tx_id,
        "appointmentId": appointment_id,
        "clientId": client_id,
        "clientName": f"Client {client_id}",
        "date": day,
        "subtotal": subtotal,
        "discount": discount,
        "additionalFees": tax,
        "tipAmount": tip,
        "total": subtotal - discount + tax + tip if total is None else total,
        "status": status,
        "paymentMethod": method,
        "items": items or [],
    }


def march_filters(**overrides):
    params = {
        "date_preset": "custom",
        "start_date": "2024-03-01",
        "end_date": "2024-03-31",
        "appointment_statuses": (),
    }
    params.update(overrides)
    return FilterState(**params)
