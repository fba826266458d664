from grooming_reports.normalization import (
    derive_channel,
    derive_service_category,
    is_no_show,
    normalize_reports_data,
    normalize_status,
    normalize_transaction,
    parse_hourly_rate,
    to_cents,
)
from tests.helpers import raw_appointment, raw_transaction


class TestMoney:
    def test_fractional_cents_round_to_integer(self):
        assert to_cents(12.345) == 1235
        assert isinstance(to_cents("12.345"), int)

    def test_currency_strings(self):
        assert to_cents("$1,234.50") == 123450
        assert to_cents(" 7 ") == 700

    def test_garbage_is_zero(self):
        assert to_cents(None) == 0
        assert to_cents("n/a") == 0
        assert to_cents(float("nan")) == 0
        assert to_cents(1e30) == 0
        assert normalize_reports_data(appointments=[raw_appointment("a1", total="1e40")]).appointments[0].total_cents == 0

    def test_hourly_rate(self):
        assert parse_hourly_rate("$22.50/hr") == 2250
        assert parse_hourly_rate(None) is None
        assert parse_hourly_rate("") is None


class TestDerivedFields:
    def test_service_category_keywords(self):
        assert derive_service_category("Full Groom Deluxe", "main") == "Full Groom"
        assert derive_service_category("Nail Trim", "main") == "Trim"
        assert derive_service_category("Bath & Brush", "main") == "Bath"
        assert derive_service_category("De-shed", "main") == "Grooming"
        assert derive_service_category("Teeth Brushing", "addon") == "Add-ons"

    def test_channel_from_notes(self):
        assert derive_channel("Booked online via portal") == "online"
        assert derive_channel("Walk-in customer") == "walk-in"
        assert derive_channel("") == "phone"

    def test_status_variants(self):
        assert normalize_status("No Show") == "no-show"
        assert normalize_status("NO_SHOW") == "no-show"
        assert normalize_status(" Completed ") == "completed"
        assert normalize_status(None) == "unknown"

    def test_no_show_from_cancelled_notes(self):
        assert is_no_show("no-show", "")
        assert is_no_show("cancelled", "Client was a no show")
        assert not is_no_show("cancelled", "Rescheduled by phone")


class TestNormalizeReportsData:
    def test_client_type_consistency(self):
        data = normalize_reports_data(
            appointments=[
                raw_appointment("a1", client_id="c1", day="2024-03-01"),
                raw_appointment("a2", client_id="c1", day="2024-03-10"),
                raw_appointment("a3", client_id="c2", day="2024-03-04"),
                raw_appointment("a4", client_id="c3", day="2024-02-20", status="cancelled"),
                raw_appointment("a5", client_id="c3", day="2024-03-02"),
            ],
            clients=[{"id": "c1", "name": "Ana"}, {"id": "c2", "name": "Ben"}, {"id": "c3", "name": "Cy"}, {"id": "c4", "name": "Di"}],
        )
        appointments = {item.id: item for item in data.appointments}
        clients = {item.id: item for item in data.clients}

        assert appointments["a1"].client_type == "new"
        assert appointments["a2"].client_type == "returning"
        assert clients["c1"].type == "returning"

        assert appointments["a3"].client_type == "new"
        assert clients["c2"].type == "new"

        # cancelled visits never set the first-visit date
        assert data.first_visits["c3"] == "2024-03-02"
        assert appointments["a5"].client_type == "new"
        assert clients["c4"].type == "new"

    def test_appointment_fields(self):
        data = normalize_reports_data(
            appointments=[
                raw_appointment(
                    "a1",
                    start="09:00",
                    end="10:30",
                    notes="booked online",
                    services=[
                        {"serviceId": "svc-bath", "serviceName": "Bath", "price": "45.00", "type": "main"},
                        {"serviceId": "svc-nails", "serviceName": "Nail Grind", "price": 15, "type": "addon"},
                    ],
                    total=60,
                )
            ]
        )
        appointment = data.appointments[0]
        assert appointment.duration_minutes == 90
        assert appointment.channel == "online"
        assert [service.category for service in appointment.services] == ["Bath", "Add-ons"]
        assert appointment.total_cents == 6000
        assert {service.id for service in data.service_catalog} == {"svc-bath", "svc-nails"}

    def test_short_or_unparsable_slots_floor_at_fifteen_minutes(self):
        data = normalize_reports_data(
            appointments=[
                raw_appointment("a1", start="09:00", end="09:05"),
                raw_appointment("a2", start="", end=""),
            ]
        )
        assert [item.duration_minutes for item in data.appointments] == [15, 15]

    def test_refunded_transaction_refunds_total(self):
        transaction = normalize_transaction(raw_transaction("t1", subtotal=80, tax=5, status="refunded"))
        assert transaction.refund_cents == 8500
        assert normalize_transaction(raw_transaction("t2")).refund_cents == 0

    def test_line_item_categories(self):
        transaction = normalize_transaction(
            raw_transaction(
                "t1",
                items=[
                    {"id": "li1", "name": "Shampoo", "type": "product", "total": 12},
                    {"id": "li2", "name": "Bath", "type": "service", "total": 40},
                ],
            )
        )
        assert [item.category for item in transaction.items] == ["Retail", "Service"]

    def test_non_mapping_records_are_skipped(self):
        data = normalize_reports_data(appointments=[raw_appointment("a1"), "junk", None])
        assert len(data.appointments) == 1
