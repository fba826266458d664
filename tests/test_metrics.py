import pytest

from grooming_reports.application.reporting.kpis import KPI_SOURCES, REPORT_KPIS, build_kpi
from grooming_reports.application.reporting.metrics import (
    fmt_currency,
    fmt_day,
    format_delta,
    format_metric,
    safe_ratio,
    trend,
)
from grooming_reports.domain.metric_registry import METRIC_LOOKUP, METRIC_REGISTRY, get_metric, metric_label, metric_tooltip
from grooming_reports.domain.report_types import DRILL_ROW_TYPES, METRIC_FORMATS, REPORT_IDS


class TestFormatting:
    @pytest.mark.parametrize(
        "value, fmt, expected",
        [
            (123456, "money", "$1,235"),
            (-5000, "money", "-$50"),
            (0.1234, "percent", "12.3%"),
            (45.6, "minutes", "46 min"),
            (12345, "int", "12,345"),
        ],
    )
    def test_format_metric(self, value, fmt, expected):
        assert format_metric(value, fmt) == expected

    def test_format_delta_is_signed(self):
        assert format_delta(1000, "money") == "+$10"
        assert format_delta(-0.05, "percent") == "-5.0%"
        assert format_delta(0, "int") == "+0"

    def test_trend(self):
        assert trend(None) == "flat"
        assert trend(0) == "flat"
        assert trend(0.2) == "up"
        assert trend(-3) == "down"

    def test_row_formatters(self):
        assert fmt_currency(1250) == "$12.50"
        assert fmt_day("2024-03-01") == "Mar 1, 2024"

    def test_safe_ratio_guards_zero(self):
        assert safe_ratio(5, 0) == 0.0
        assert safe_ratio(1, 4) == 0.25
        assert safe_ratio(-3500, -2000) == 1.75


class TestRegistry:
    def test_ids_are_unique(self):
        assert len(METRIC_LOOKUP) == len(METRIC_REGISTRY)

    def test_every_report_kpi_is_registered(self):
        assert set(REPORT_KPIS) == set(REPORT_IDS)
        for metric_ids in REPORT_KPIS.values():
            for metric_id in metric_ids:
                assert metric_id in METRIC_LOOKUP
                assert metric_id in KPI_SOURCES

    def test_definitions_are_well_formed(self):
        for metric in METRIC_REGISTRY:
            assert metric.format in METRIC_FORMATS
            assert set(metric.drill_row_types) <= set(DRILL_ROW_TYPES)
            assert metric.definition and metric.formula

    def test_tooltip(self):
        tooltip = metric_tooltip("net-sales", "service")
        metric = get_metric("net-sales")
        assert tooltip.startswith(metric.definition)
        assert f"Formula: {metric.formula}" in tooltip
        assert tooltip.endswith("Time basis: service")
        assert metric_tooltip("unknown-metric", "service") == ""

    def test_label_falls_back_to_id(self):
        assert metric_label("net-sales") == get_metric("net-sales").label
        assert metric_label("unknown-metric") == "unknown-metric"

    def test_cost_formulas_name_completed_appointments(self):
        assert "completed appointments" in get_metric("direct-labor").formula
        assert get_metric("estimated-cogs").formula.startswith("Completed service revenue")

    def test_build_kpi_with_previous(self):
        kpi = build_kpi("gross-sales", 30000, "checkout", previous=20000)
        assert kpi.formatted_value == "$300"
        assert kpi.delta == 10000
        assert kpi.delta_formatted == "+$100"
        assert kpi.trend == "up"

    def test_build_kpi_without_previous(self):
        kpi = build_kpi("no-show-rate", 0.25, "service")
        assert kpi.formatted_value == "25.0%"
        assert kpi.delta is None
        assert kpi.trend == "flat"
        assert "deltaFormatted" not in kpi.to_dict()
