import pytest

from grooming_reports.application.reporting.kpis import REPORT_KPIS
from grooming_reports.config import Settings
from grooming_reports.domain.models import NormalizedData
from grooming_reports.domain.report_types import CHART_TYPES, REPORT_IDS
from grooming_reports.normalization import normalize_reports_data
from grooming_reports.report_engine import ReportEngine, compute_report_data
from tests.helpers import march_filters, raw_appointment, raw_transaction


def kpi_values(report):
    return {item.id: item.value for item in report.kpis}


class TestSalesScenario:
    def test_owner_overview_totals(self, sales_data):
        report = compute_report_data("owner-overview", sales_data, march_filters(appointment_statuses=("completed",)))
        values = kpi_values(report)
        assert values["gross-sales"] == 30000
        assert values["net-sales"] == 29000
        assert values["appointments-completed"] == 2
        assert values["avg-ticket"] == 14500
        assert [item.id for item in report.kpis] == list(REPORT_KPIS["owner-overview"])

    def test_sales_summary_discounts(self, sales_data):
        report = compute_report_data("sales-summary", sales_data, march_filters())
        values = kpi_values(report)
        assert values["discounts"] == 1000
        assert values["refunds"] == 0
        assert values["total-collected"] == 29000

    def test_toggle_excludes_discounts(self, sales_data):
        report = compute_report_data("sales-summary", sales_data, march_filters(include_discounts=False))
        values = kpi_values(report)
        assert values["discounts"] == 0
        assert values["net-sales"] == 30000

    def test_processing_fees_only_for_card(self, sales_data, settings):
        report = compute_report_data("finance-recon", sales_data, march_filters(time_basis="transaction"), settings)
        # two card payments: $100 and $90
        expected = round(10000 * 0.029 + 30) + round(9000 * 0.029 + 30)
        assert kpi_values(report)["processing-fees"] == expected
        assert [row.id for row in report.table.rows] == ["t1", "t2", "t3"]
        assert report.table.rows[0].drill.filters == {"transactionId": "t1"}

    def test_contribution_uses_cost_model(self, sales_data):
        settings = Settings(cogs_rate=0.1, card_fee_rate=0.0, card_fee_fixed_cents=0)
        report = compute_report_data("true-profit", sales_data, march_filters(appointment_statuses=("completed",)), settings)
        values = kpi_values(report)
        # COGS: 10% of $200 service revenue plus one unit of each stocked item
        assert values["estimated-cogs"] == 2000 + 1250 + 3000
        # labor: one hour each at $20 and $18
        assert values["direct-labor"] == 3800
        assert values["contribution-margin"] == 29000 - 6250 - 3800
        assert values["contribution-margin-percent"] == pytest.approx((29000 - 6250 - 3800) / 29000)

    def test_ratios_over_negative_net_keep_their_sign(self):
        data = normalize_reports_data(
            appointments=[raw_appointment("a1", day="2024-03-05")],
            transactions=[raw_transaction("t1", "a1", day="2024-03-05", status="refunded", method="cash", tax=20)],
        )
        report = compute_report_data("true-profit", data, march_filters())
        # net is $100 less a $120 refund
        values = kpi_values(report)
        assert values["contribution-margin"] == -3500
        assert values["contribution-margin-percent"] == pytest.approx(1.75)
        assert values["gross-margin-percent"] == pytest.approx(1.75)

    def test_no_show_report_counts_cancellations(self):
        data = normalize_reports_data(
            appointments=[
                raw_appointment("a1", client_id="c1", day="2024-03-04", status="no-show", total=80),
                raw_appointment("a2", client_id="c1", day="2024-03-08"),
                raw_appointment("a3", client_id="c2", day="2024-03-09"),
                raw_appointment("a4", client_id="c3", day="2024-03-10", status="cancelled", notes="no show"),
            ]
        )
        report = compute_report_data("no-shows", data, march_filters())
        values = kpi_values(report)
        assert values["no-show-rate"] == 0.5
        assert values["no-show-lost-revenue"] == 8000 + 10000
        # c1 came back four days after missing, c3 never did
        assert values["recovery-rate"] == 0.5

    def test_utilization(self, sales_data):
        filters = march_filters(start_date="2024-03-05", end_date="2024-03-06", appointment_statuses=("completed",))
        report = compute_report_data("appointments-capacity", sales_data, filters)
        # two completed hours over two staff * 8h * 2 days
        assert kpi_values(report)["utilization"] == pytest.approx(120 / (2 * 480 * 2))


class TestRebooking:
    def test_first_return_gaps(self, rebook_data):
        filters = march_filters(end_date="2024-04-30")
        report = compute_report_data("retention", rebook_data, filters)
        values = kpi_values(report)
        assert values["rebook-7d"] == 0.5
        assert values["rebook-30d-window"] == 0.5
        assert values["rebook-24h"] == 0
        assert values["return-90d"] == 1.0
        assert values["avg-days-to-return"] == 22.5

    def test_retention_table_by_staff(self, rebook_data):
        report = compute_report_data("retention", rebook_data, march_filters(end_date="2024-04-30"))
        rows = {row.id: row.values for row in report.table.rows}
        assert rows["s1"]["rebook7"] == 1.0
        assert rows["s2"]["rebook7"] == 0.0
        assert rows["s2"]["avgInterval"] == 40

    def test_cohort_kpis(self, rebook_data):
        report = compute_report_data("cohorts-ltv", rebook_data, march_filters(end_date="2024-04-30"))
        values = kpi_values(report)
        assert values["new-clients"] == 2
        assert values["retention-90"] == 1.0
        assert values["median-visits-12m"] == 2


class TestCompareMode:
    def test_deltas_against_previous_window(self, sales_data):
        data = normalize_reports_data(
            appointments=[raw_appointment("p1", client_id="c9", day="2024-02-10")],
            transactions=[raw_transaction("p-t1", "p1", day="2024-02-10", subtotal=200, client_id="c9")],
        )
        merged = NormalizedData(
            appointments=sales_data.appointments + data.appointments,
            transactions=sales_data.transactions + data.transactions,
            staff=sales_data.staff,
            first_visits={**sales_data.first_visits, **data.first_visits},
        )
        report = compute_report_data("owner-overview", merged, march_filters(compare_mode=True))
        gross = report.kpi("gross-sales")
        assert gross.delta == 10000
        assert gross.delta_formatted == "+$100"
        assert gross.trend == "up"
        assert all(item.delta is not None for item in report.kpis)

    def test_no_deltas_without_compare_mode(self, sales_data):
        report = compute_report_data("owner-overview", sales_data, march_filters())
        assert all(item.delta is None and item.trend == "flat" for item in report.kpis)

    def test_sales_chart_carries_comparison_series(self, sales_data):
        report = compute_report_data("sales-summary", sales_data, march_filters(compare_mode=True))
        chart = report.charts[0]
        assert chart.id == "sales-by-day"
        assert chart.compare_series is not None


class TestEngineContract:
    @pytest.mark.parametrize("report_id", REPORT_IDS)
    def test_empty_data_gives_zero_kpis(self, report_id):
        report = ReportEngine().compute(report_id, NormalizedData(), march_filters(compare_mode=True))
        assert [item.id for item in report.kpis] == list(REPORT_KPIS[report_id])
        for item in report.kpis:
            assert item.value == 0
        assert report.insights == () or all(item.id in {"inventory-risk", "campaign-roi"} for item in report.insights)

    @pytest.mark.parametrize("report_id", REPORT_IDS)
    def test_deterministic_output(self, report_id, sales_data):
        engine = ReportEngine()
        filters = march_filters(compare_mode=True)
        first = engine.compute(report_id, sales_data, filters).to_dict()
        second = engine.compute(report_id, sales_data, filters).to_dict()
        assert first == second

    @pytest.mark.parametrize("report_id", REPORT_IDS)
    def test_chart_kinds(self, report_id, sales_data):
        report = compute_report_data(report_id, sales_data, march_filters())
        for chart in report.charts:
            assert chart.type in CHART_TYPES
            assert chart.aria_label

    def test_unknown_report_id_raises(self, sales_data):
        with pytest.raises(ValueError):
            compute_report_data("weather", sales_data, march_filters())

    def test_group_by_and_visible_columns(self, sales_data):
        filters = march_filters(group_by="Staff", visible_columns=("revenue",))
        table = compute_report_data("owner-overview", sales_data, filters).table
        assert [column.id for column in table.columns] == ["revenue"]
        assert [row.label for row in table.rows] == ["Avery", "Blair"]
        assert all(set(row.values) == {"revenue"} for row in table.rows)
        assert table.rows[0].drill.filters == {"staff": "s1"}
        assert table.group_by_options == ("Service", "Staff", "Channel")

    def test_unknown_group_by_falls_back_to_first_option(self, sales_data):
        table = compute_report_data("owner-overview", sales_data, march_filters(group_by="Planet")).table
        assert [row.label for row in table.rows] == ["Full Groom"]

    def test_to_dict_uses_camel_case(self, sales_data):
        payload = compute_report_data("owner-overview", sales_data, march_filters()).to_dict()
        assert set(payload) == {"kpis", "charts", "table", "insights"}
        assert "formattedValue" in payload["kpis"][0]
        assert "groupByOptions" in payload["table"]
        assert "xKey" in payload["charts"][0]


def chart_series(report, chart_id, series_key):
    chart = next(item for item in report.charts if item.id == chart_id)
    return next(series.data for series in chart.series if series.key == series_key)


class TestChartValues:
    def test_booked_minutes_by_weekday(self, sales_data):
        report = compute_report_data("appointments-capacity", sales_data, march_filters())
        booked = {point["weekday"]: point["booked"] for point in chart_series(report, "booked-vs-capacity", "booked")}
        # a1 on Tuesday and a2 on Wednesday; the cancelled a3 is not booked time
        assert booked == {"Mon": 0, "Tue": 60, "Wed": 60, "Thu": 0, "Fri": 0, "Sat": 0, "Sun": 0}
        capacity = {point["weekday"]: point["capacity"] for point in chart_series(report, "booked-vs-capacity", "capacity")}
        # four Tuesdays in March 2024, two staff at eight hours
        assert capacity["Tue"] == 4 * 2 * 480
        assert capacity["Fri"] == 5 * 2 * 480

    def test_no_show_rate_by_channel(self):
        data = normalize_reports_data(
            appointments=[
                raw_appointment("a1", client_id="c1", day="2024-03-04", status="no-show", notes="booked online"),
                raw_appointment("a2", client_id="c2", day="2024-03-05", notes="online"),
                raw_appointment("a3", client_id="c3", day="2024-03-06", notes="walk in"),
            ]
        )
        report = compute_report_data("no-shows", data, march_filters())
        assert list(chart_series(report, "rates-by-channel", "rate")) == [
            {"channel": "online", "rate": 0.5},
            {"channel": "walk-in", "rate": 0.0},
        ]

    def test_rebook_rate_by_staff(self, rebook_data):
        report = compute_report_data("staff-performance", rebook_data, march_filters(end_date="2024-04-30"))
        assert list(chart_series(report, "rebook-by-staff", "rate")) == [
            {"staff_name": "Avery", "rate": 1.0},
            {"staff_name": "Blair", "rate": 0.0},
        ]
