import pytest

from grooming_reports.config import Settings
from grooming_reports.normalization import normalize_reports_data
from tests.helpers import raw_appointment, raw_transaction


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def sales_data():
    """Three $100 appointments: one discounted by $10, one cancelled."""
    return normalize_reports_data(
        appointments=[
            raw_appointment("a1", client_id="c1", day="2024-03-05"),
            raw_appointment("a2", client_id="c2", day="2024-03-06", staff_id="s2", staff_name="Blair"),
            raw_appointment("a3", client_id="c3", day="2024-03-07", status="cancelled"),
        ],
        transactions=[
            raw_transaction("t1", "a1", day="2024-03-05", client_id="c1"),
            raw_transaction("t2", "a2", day="2024-03-06", discount=10, client_id="c2"),
            raw_transaction("t3", "a3", day="2024-03-07", method="cash", client_id="c3"),
        ],
        clients=[{"id": "c1", "name": "Client c1"}, {"id": "c2", "name": "Client c2"}, {"id": "c3", "name": "Client c3"}],
        staff=[
            {"id": "s1", "name": "Avery", "hourlyRate": "$20.00"},
            {"id": "s2", "name": "Blair", "hourlyRate": "18"},
        ],
        inventory=[
            {"id": "i1", "name": "Shampoo", "category": "Bath", "cost": 12.5, "quantity": 3, "reorderLevel": 5},
            {"id": "i2", "name": "Clipper Blades", "category": "Tools", "cost": 30, "quantity": 10, "reorderLevel": 2},
        ],
        messages=[
            {"id": "m1", "channel": "sms", "sentAt": "2024-03-04T10:00:00", "cost": 0.05, "confirmed": True, "appointmentId": "a1", "clientId": "c1"},
            {"id": "m2", "channel": "email", "sentAt": "2024-03-05T08:00:00", "cost": 0.01, "appointmentId": "a3", "clientId": "c3"},
        ],
    )


@pytest.fixture
def rebook_data():
    """Client c1 returns after 5 days, client c2 after 40 days."""
    return normalize_reports_data(
        appointments=[
            raw_appointment("r1", client_id="c1", day="2024-03-01"),
            raw_appointment("r2", client_id="c1", day="2024-03-06"),
            raw_appointment("r3", client_id="c2", day="2024-03-01", staff_id="s2", staff_name="Blair"),
            raw_appointment("r4", client_id="c2", day="2024-04-10", staff_id="s2", staff_name="Blair"),
        ],
        staff=[{"id": "s1", "name": "Avery"}, {"id": "s2", "name": "Blair"}],
    )
