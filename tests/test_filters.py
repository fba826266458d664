from datetime import date

import pytest

from grooming_reports.domain.report_types import FilterState
from grooming_reports.filters import (
    appointment_predicate,
    comparison_window,
    filter_hash,
    parse_filters_from_query,
    report_filters,
    resolve_date_range,
    serialize_filters_to_query,
    transaction_predicate,
)
from grooming_reports.normalization import normalize_reports_data
from tests.helpers import TODAY, march_filters, raw_appointment, raw_transaction


class TestDatePresets:
    @pytest.mark.parametrize(
        "preset, expected",
        [
            ("today", ("2024-03-15", "2024-03-15")),
            ("yesterday", ("2024-03-14", "2024-03-14")),
            ("last7", ("2024-03-09", "2024-03-15")),
            ("thisWeek", ("2024-03-11", "2024-03-17")),
            ("last30", ("2024-02-15", "2024-03-15")),
            ("thisMonth", ("2024-03-01", "2024-03-31")),
            ("lastMonth", ("2024-02-01", "2024-02-29")),
            ("quarter", ("2024-01-01", "2024-03-31")),
            ("ytd", ("2024-01-01", "2024-03-15")),
        ],
    )
    def test_resolve_date_range(self, preset, expected):
        assert resolve_date_range(preset, date(2024, 3, 15)) == expected

    def test_last_month_across_year_boundary(self):
        assert resolve_date_range("lastMonth", date(2024, 1, 10)) == ("2023-12-01", "2023-12-31")


class TestComparisonWindow:
    def test_immediately_preceding_equal_length_window(self):
        assert comparison_window("2023-03-01", "2023-03-10") == ("2023-02-19", "2023-02-28")

    def test_leap_year_february(self):
        assert comparison_window("2024-03-01", "2024-03-10") == ("2024-02-20", "2024-02-29")

    def test_single_day(self):
        assert comparison_window("2024-03-01", "2024-03-01") == ("2024-02-29", "2024-02-29")


class TestFilterState:
    def test_rejects_reversed_range(self):
        with pytest.raises(ValueError):
            FilterState(date_preset="custom", start_date="2024-03-10", end_date="2024-03-01")

    def test_rejects_unknown_preset_and_basis(self):
        with pytest.raises(ValueError):
            FilterState(date_preset="fortnight", start_date="2024-03-01", end_date="2024-03-02")
        with pytest.raises(ValueError):
            FilterState(date_preset="custom", start_date="2024-03-01", end_date="2024-03-02", time_basis="booking")

    def test_lists_become_tuples(self):
        filters = march_filters(staff=["s1", "s2"])
        assert filters.staff == ("s1", "s2")
        assert filters.day_count == 31


class TestReportDefaults:
    def test_base_defaults(self):
        filters = report_filters("owner-overview", TODAY)
        assert filters.date_preset == "last30"
        assert (filters.start_date, filters.end_date) == ("2024-03-02", "2024-03-31")
        assert filters.appointment_statuses == ("completed",)
        assert filters.time_basis == "checkout"

    def test_per_report_overrides(self):
        assert report_filters("finance-recon", TODAY).time_basis == "transaction"
        assert report_filters("no-shows", TODAY).appointment_statuses == ()
        payroll = report_filters("payroll", TODAY)
        assert payroll.date_preset == "thisMonth"
        assert (payroll.start_date, payroll.end_date) == ("2024-03-01", "2024-03-31")

    def test_unknown_report(self):
        with pytest.raises(ValueError):
            report_filters("weather", TODAY)


class TestQueryCodec:
    def test_round_trip(self):
        filters = march_filters(
            staff=("s1", "s2"),
            channels=("online",),
            appointment_statuses=("completed", "paid"),
            include_tips=False,
            compare_mode=True,
            group_by="Channel",
            visible_columns=("revenue", "margin"),
        )
        query = serialize_filters_to_query(filters)
        parsed = parse_filters_from_query(query, "owner-overview", TODAY)
        assert parsed == filters
        assert filter_hash(parsed) == filter_hash(filters)

    def test_booleans_encode_as_literal_strings(self):
        query = serialize_filters_to_query(march_filters(include_tips=False))
        assert "tips=false" in query
        assert "discounts=true" in query

    def test_empty_lists_are_omitted(self):
        query = serialize_filters_to_query(march_filters())
        assert "staff=" not in query
        assert "statuses=" not in query

    def test_missing_parameters_fall_back_to_report_defaults(self):
        parsed = parse_filters_from_query("", "finance-recon", TODAY)
        assert parsed == report_filters("finance-recon", TODAY)

    def test_invalid_values_fall_back(self):
        parsed = parse_filters_from_query(
            {"preset": "fortnight", "start": "2024-13-40", "basis": "booking"},
            "owner-overview",
            TODAY,
        )
        assert parsed.date_preset == "last30"
        assert parsed.start_date == "2024-03-02"
        assert parsed.time_basis == "checkout"

    def test_swapped_range_uses_preset_window(self):
        parsed = parse_filters_from_query("preset=thisMonth&start=2024-03-20&end=2024-03-01", "sales-summary", TODAY)
        assert (parsed.start_date, parsed.end_date) == ("2024-03-01", "2024-03-31")


class TestPredicates:
    def test_appointment_filters_are_anded(self):
        data = normalize_reports_data(
            appointments=[
                raw_appointment("a1", staff_id="s1", notes="online"),
                raw_appointment("a2", staff_id="s2", notes="online"),
                raw_appointment("a3", staff_id="s1", notes=""),
                raw_appointment("a4", staff_id="s1", notes="online", day="2024-04-02"),
            ]
        )
        keep = appointment_predicate(march_filters(staff=("s1",), channels=("online",)))
        assert [item.id for item in data.appointments if keep(item)] == ["a1"]

    def test_service_filter_matches_any_line(self):
        data = normalize_reports_data(
            appointments=[
                raw_appointment(
                    "a1",
                    services=[
                        {"serviceId": "bath", "serviceName": "Bath", "price": 40},
                        {"serviceId": "nails", "serviceName": "Nails", "price": 10, "type": "addon"},
                    ],
                ),
                raw_appointment("a2"),
            ]
        )
        keep = appointment_predicate(march_filters(services=("nails",)))
        assert [item.id for item in data.appointments if keep(item)] == ["a1"]

    def test_service_time_basis_uses_linked_appointment_date(self):
        data = normalize_reports_data(
            appointments=[raw_appointment("a1", day="2024-02-28")],
            transactions=[raw_transaction("t1", "a1", day="2024-03-02")],
        )
        lookup = data.appointment_lookup()
        checkout = transaction_predicate(march_filters(), lookup)
        service = transaction_predicate(march_filters(time_basis="service"), lookup)
        assert checkout(data.transactions[0])
        assert not service(data.transactions[0])

    def test_payment_method_filter(self):
        data = normalize_reports_data(
            transactions=[raw_transaction("t1", method="card"), raw_transaction("t2", method="cash")]
        )
        keep = transaction_predicate(march_filters(payment_methods=("cash",)), {})
        assert [item.id for item in data.transactions if keep(item)] == ["t2"]
