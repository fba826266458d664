from grooming_reports.application.reporting.kpis import build_kpi
from grooming_reports.domain.insights import INSIGHT_RULES, InsightContext, generate_insights, no_show_growth
from grooming_reports.normalization import normalize_reports_data
from tests.helpers import raw_appointment


def _cancelled(count, day):
    raw = [raw_appointment(f"x{day}-{index}", client_id=f"c{index}", day=day, status="cancelled") for index in range(count)]
    return normalize_reports_data(appointments=raw).appointments


def _kpis(margin_delta=None, rebook_delta=None):
    return [
        build_kpi("contribution-margin-percent", 0.3, "checkout", None if margin_delta is None else 0.3 - margin_delta),
        build_kpi("rebook-7d", 0.4, "service", None if rebook_delta is None else 0.4 - rebook_delta),
    ]


class TestInsights:
    def test_rule_order(self):
        assert [rule.id for rule in INSIGHT_RULES] == [
            "no-show-spike",
            "margin-drop",
            "rebook-weakness",
            "inventory-risk",
            "campaign-roi",
        ]

    def test_capped_at_three_in_rule_order(self):
        insights = generate_insights(
            "inventory",
            _kpis(margin_delta=-0.1, rebook_delta=-0.2),
            _cancelled(6, "2024-03-05"),
            _cancelled(2, "2024-02-05"),
        )
        assert [item.id for item in insights] == ["no-show-spike", "margin-drop", "rebook-weakness"]

    def test_no_show_spike_details(self):
        insights = generate_insights("no-shows", [], _cancelled(6, "2024-03-05"), _cancelled(4, "2024-02-05"))
        spike = insights[0]
        assert spike.id == "no-show-spike"
        assert spike.delta == 0.5
        assert spike.description == "No-shows are up 50% vs prior period."
        assert spike.drill.filters == {"status": "cancelled"}

    def test_no_show_spike_needs_five_and_a_baseline(self):
        assert generate_insights("no-shows", [], _cancelled(4, "2024-03-05"), _cancelled(1, "2024-02-05")) == []
        assert generate_insights("no-shows", [], _cancelled(8, "2024-03-05"), ()) == []
        ctx = InsightContext("no-shows", (), tuple(_cancelled(8, "2024-03-05")), ())
        assert no_show_growth(ctx) == 0.0

    def test_small_deltas_do_not_fire(self):
        assert generate_insights("owner-overview", _kpis(margin_delta=-0.04, rebook_delta=-0.05), (), ()) == []

    def test_static_report_insights(self):
        assert [item.id for item in generate_insights("inventory", [], (), ())] == ["inventory-risk"]
        assert [item.id for item in generate_insights("marketing-roi", [], (), ())] == ["campaign-roi"]
