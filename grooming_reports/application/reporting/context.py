"""Inputs shared by the per-report chart and table builders."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple

from grooming_reports.application.reporting.aggregates import ReportAggregates, ReturnGap
from grooming_reports.application.reporting.frames import ReportFrames
from grooming_reports.application.reporting.history import ClientHistory
from grooming_reports.config import Settings
from grooming_reports.domain.models import Appointment, NormalizedData, Transaction
from grooming_reports.domain.report_types import FilterState


@dataclass(frozen=True)
class ReportContext:
    report_id: str
    data: NormalizedData
    filters: FilterState
    settings: Settings
    appointments: Tuple[Appointment, ...]
    transactions: Tuple[Transaction, ...]
    frames: ReportFrames
    aggregates: ReportAggregates
    gaps: Tuple[ReturnGap, ...]
    history: ClientHistory
    compare_frames: ReportFrames | None = None
    compare_aggregates: ReportAggregates | None = None

    @property
    def day_capacity_minutes(self) -> float:
        return max(1, len(self.data.staff)) * self.settings.workday_minutes

    def gaps_for_staff(self, staff_id: str) -> List[ReturnGap]:
        return [gap for gap in self.gaps if gap.staff_id == staff_id]
