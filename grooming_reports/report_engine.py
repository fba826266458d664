"""Report computation engine: filtered records in, KPIs/charts/table/insights out."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from time import perf_counter
from typing import Tuple

from grooming_reports.application.reporting.aggregates import (
    ReportAggregates,
    compute_aggregates,
    first_return_gaps,
)
from grooming_reports.application.reporting.charts import build_charts
from grooming_reports.application.reporting.context import ReportContext
from grooming_reports.application.reporting.frames import ReportFrames, build_frames
from grooming_reports.application.reporting.history import ClientHistory
from grooming_reports.application.reporting.kpis import build_report_kpis
from grooming_reports.application.reporting.tables import build_table
from grooming_reports.config import Settings
from grooming_reports.domain.insights import generate_insights
from grooming_reports.domain.models import Appointment, Message, NormalizedData, Transaction
from grooming_reports.domain.report_types import FilterState, ReportData, validate_report_id
from grooming_reports.filters import appointment_predicate, comparison_filters, transaction_predicate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FilteredRecords:
    appointments: Tuple[Appointment, ...]
    transactions: Tuple[Transaction, ...]
    messages: Tuple[Message, ...]


def select_records(data: NormalizedData, filters: FilterState) -> FilteredRecords:
    """Apply the filter predicates to the normalized collections."""
    lookup = data.appointment_lookup()
    keep_appointment = appointment_predicate(filters)
    keep_transaction = transaction_predicate(filters, lookup)
    return FilteredRecords(
        appointments=tuple(item for item in data.appointments if keep_appointment(item)),
        transactions=tuple(item for item in data.transactions if keep_transaction(item)),
        messages=tuple(
            item for item in data.messages if filters.start_date <= item.sent_at[:10] <= filters.end_date
        ),
    )


class ReportEngine:
    """Computes `ReportData` for one report id over a normalized dataset snapshot."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or Settings()

    def _frames_and_aggregates(
        self,
        records: FilteredRecords,
        data: NormalizedData,
        history: ClientHistory,
        filters: FilterState,
    ) -> Tuple[ReportFrames, ReportAggregates]:
        frames = build_frames(
            records.appointments,
            records.transactions,
            records.messages,
            data,
            history,
            filters,
            self.settings,
        )
        aggregates = compute_aggregates(frames, records.appointments, data, history, filters, self.settings)
        return frames, aggregates

    def compute(self, report_id: str, data: NormalizedData, filters: FilterState) -> ReportData:
        started = perf_counter()
        validate_report_id(report_id)
        history = ClientHistory(data)

        records = select_records(data, filters)
        frames, aggregates = self._frames_and_aggregates(records, data, history, filters)

        compare_records = None
        compare_frames = None
        compare_aggregates = None
        if filters.compare_mode:
            previous_filters = comparison_filters(filters)
            compare_records = select_records(data, previous_filters)
            compare_frames, compare_aggregates = self._frames_and_aggregates(
                compare_records, data, history, previous_filters
            )

        ctx = ReportContext(
            report_id=report_id,
            data=data,
            filters=filters,
            settings=self.settings,
            appointments=records.appointments,
            transactions=records.transactions,
            frames=frames,
            aggregates=aggregates,
            gaps=tuple(first_return_gaps(records.appointments)),
            history=history,
            compare_frames=compare_frames,
            compare_aggregates=compare_aggregates,
        )
        kpis = build_report_kpis(report_id, aggregates, filters.time_basis, compare_aggregates)
        charts = build_charts(ctx)
        table = build_table(ctx)
        insights = generate_insights(
            report_id,
            kpis,
            records.appointments,
            () if compare_records is None else compare_records.appointments,
        )
        logger.debug("[reports] %s computed in %.1fms", report_id, (perf_counter() - started) * 1000)
        return ReportData(kpis=tuple(kpis), charts=tuple(charts), table=table, insights=tuple(insights))


def compute_report_data(
    report_id: str,
    data: NormalizedData,
    filters: FilterState,
    settings: Settings | None = None,
) -> ReportData:
    return ReportEngine(settings).compute(report_id, data, filters)
