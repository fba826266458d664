"""Foundational report aggregates shared by every report type."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, List, Sequence, Tuple

import polars as pl

from grooming_reports.application.reporting.frames import ReportFrames
from grooming_reports.application.reporting.history import ClientHistory
from grooming_reports.application.reporting.metrics import (
    average,
    days_between,
    median,
    round_half_up,
    safe_ratio,
    to_float,
)
from grooming_reports.config import Settings
from grooming_reports.domain.models import Appointment, NormalizedData
from grooming_reports.domain.report_types import FilterState

REBOOK_WINDOWS: Tuple[int, ...] = (1, 7, 30, 90)
RETENTION_WINDOWS: Tuple[int, ...] = (90, 180, 360)
LTV_WINDOW_DAYS = 365


@dataclass(frozen=True)
class ReturnGap:
    """Days between a client's first two completed visits."""

    client_id: str
    staff_id: str
    staff_name: str
    days: int


def first_return_gaps(appointments: Sequence[Appointment]) -> List[ReturnGap]:
    by_client: Dict[str, List[Appointment]] = {}
    for appointment in appointments:
        if appointment.is_completed:
            by_client.setdefault(appointment.client_id, []).append(appointment)

    gaps: List[ReturnGap] = []
    for client_id, visits in by_client.items():
        if len(visits) < 2:
            continue
        ordered = sorted(visits, key=lambda item: (item.date, item.id))
        days = days_between(ordered[0].date, ordered[1].date)
        if days is None:
            continue
        gaps.append(
            ReturnGap(
                client_id=client_id,
                staff_id=ordered[0].staff_id,
                staff_name=ordered[0].staff_name,
                days=days,
            )
        )
    return gaps


def rebook_rate(gaps: Sequence[ReturnGap], window_days: int) -> float:
    return safe_ratio(sum(1 for gap in gaps if gap.days <= window_days), len(gaps))


@dataclass(frozen=True)
class ReportAggregates:
    gross_sales: int
    discounts: int
    refunds: int
    taxes: int
    tips: int
    net_sales: int
    total_collected: int
    processing_fees: int
    cogs: int
    labor: int
    contribution: int
    contribution_pct: float
    gross_margin_pct: float
    avg_ticket: float
    appointment_count: int
    completed_count: int
    booked_count: int
    cancelled_count: int
    no_show_count: int
    no_show_rate: float
    no_show_lost_revenue: int
    recovery_rate: float
    avg_lead_time: float
    completed_minutes: int
    available_minutes: float
    utilization: float
    revenue_per_hour: float
    margin_per_hour: float
    rebook_24h: float
    rebook_7d: float
    rebook_30d: float
    return_90d: float
    avg_days_to_return: float
    avg_ltv_12m: float
    median_visits_12m: float
    new_clients: int
    retention_90: float
    retention_180: float
    retention_360: float
    tip_percent: float
    tip_fee_cost: int
    net_to_staff: int
    taxable_sales: int
    nontaxable_sales: int
    inventory_usage: int
    transaction_count: int


def _ltv(appointments: Sequence[Appointment], history: ClientHistory, end_date: str) -> Tuple[float, float]:
    clients = sorted({appointment.client_id for appointment in appointments if appointment.is_completed})
    if not clients:
        return 0.0, 0.0
    window_start = (date.fromisoformat(end_date) - timedelta(days=LTV_WINDOW_DAYS - 1)).isoformat()
    revenue = 0
    visit_counts: List[int] = []
    for client_id in clients:
        visits = history.window_visits(client_id, window_start, end_date)
        revenue += sum(total for _, total in visits)
        visit_counts.append(len(visits))
    return safe_ratio(revenue, len(clients)), median(visit_counts)


def _cohort_retention(appointments: Sequence[Appointment], history: ClientHistory) -> Tuple[int, Dict[int, float]]:
    cohort = sorted(
        {
            appointment.client_id
            for appointment in appointments
            if appointment.client_type == "new" and not appointment.is_cancelled
        }
    )
    retention: Dict[int, float] = {}
    for window in RETENTION_WINDOWS:
        retained = sum(
            1
            for client_id in cohort
            if history.returned_within(client_id, history.first_visits.get(client_id, ""), window)
        )
        retention[window] = safe_ratio(retained, len(cohort))
    return len(cohort), retention


def compute_aggregates(
    frames: ReportFrames,
    appointments: Sequence[Appointment],
    data: NormalizedData,
    history: ClientHistory,
    filters: FilterState,
    settings: Settings,
) -> ReportAggregates:
    tx = frames.transactions.select(
        pl.len().alias("count"),
        pl.col("subtotal_cents").sum().alias("gross"),
        pl.col("discount_cents").sum().alias("discounts"),
        pl.col("refund_cents").sum().alias("refunds"),
        pl.col("tax_cents").sum().alias("taxes"),
        pl.col("tip_cents").sum().alias("tips"),
        pl.col("fee_cents").sum().alias("fees"),
        pl.col("net_cents").filter(pl.col("taxable")).sum().alias("taxable"),
    ).row(0, named=True)
    appts = frames.appointments.select(
        pl.len().alias("count"),
        pl.col("completed").sum().alias("completed"),
        (~pl.col("cancelled")).sum().alias("booked"),
        pl.col("cancelled").sum().alias("cancelled"),
        pl.col("no_show").sum().alias("no_shows"),
        pl.col("recovered").sum().alias("recovered"),
        pl.col("total_cents").filter(pl.col("no_show")).sum().alias("lost_revenue"),
        pl.col("revenue_cents").sum().alias("service_revenue"),
        pl.col("labor_cents").sum().alias("labor"),
        pl.col("completed_minutes").sum().alias("completed_minutes"),
        pl.col("lead_days").mean().alias("lead_days"),
    ).row(0, named=True)

    gross = int(tx["gross"] or 0)
    discounts = int(tx["discounts"] or 0)
    refunds = int(tx["refunds"] or 0)
    taxes = int(tx["taxes"] or 0)
    tips = int(tx["tips"] or 0)
    net = gross - discounts - refunds
    fees = int(tx["fees"] or 0)
    inventory_usage = sum(item.usage_cost_cents for item in data.inventory_items)
    cogs = round_half_up(int(appts["service_revenue"] or 0) * settings.cogs_rate) + inventory_usage
    labor = int(appts["labor"] or 0)
    contribution = net - cogs - labor - fees

    appointment_count = int(appts["count"] or 0)
    completed_count = int(appts["completed"] or 0)
    no_show_count = int(appts["no_shows"] or 0)
    completed_minutes = int(appts["completed_minutes"] or 0)
    available_minutes = max(1, len(data.staff)) * settings.workday_minutes * filters.day_count

    gaps = first_return_gaps(appointments)
    avg_ltv, median_visits = _ltv(appointments, history, filters.end_date)
    new_clients, retention = _cohort_retention(appointments, history)
    tip_fee_cost = round_half_up(tips * settings.card_fee_rate)
    taxable = int(tx["taxable"] or 0)

    return ReportAggregates(
        gross_sales=gross,
        discounts=discounts,
        refunds=refunds,
        taxes=taxes,
        tips=tips,
        net_sales=net,
        total_collected=net + taxes + tips,
        processing_fees=fees,
        cogs=cogs,
        labor=labor,
        contribution=contribution,
        contribution_pct=safe_ratio(contribution, net),
        gross_margin_pct=safe_ratio(net - cogs, net),
        avg_ticket=safe_ratio(net, completed_count),
        appointment_count=appointment_count,
        completed_count=completed_count,
        booked_count=int(appts["booked"] or 0),
        cancelled_count=int(appts["cancelled"] or 0),
        no_show_count=no_show_count,
        no_show_rate=safe_ratio(no_show_count, appointment_count),
        no_show_lost_revenue=int(appts["lost_revenue"] or 0),
        recovery_rate=safe_ratio(int(appts["recovered"] or 0), no_show_count),
        avg_lead_time=to_float(appts["lead_days"]),
        completed_minutes=completed_minutes,
        available_minutes=available_minutes,
        utilization=safe_ratio(completed_minutes, available_minutes),
        revenue_per_hour=safe_ratio(net, completed_minutes) * 60,
        margin_per_hour=safe_ratio(contribution, completed_minutes) * 60,
        rebook_24h=rebook_rate(gaps, 1),
        rebook_7d=rebook_rate(gaps, 7),
        rebook_30d=rebook_rate(gaps, 30),
        return_90d=rebook_rate(gaps, 90),
        avg_days_to_return=average(gap.days for gap in gaps),
        avg_ltv_12m=avg_ltv,
        median_visits_12m=median_visits,
        new_clients=new_clients,
        retention_90=retention[90],
        retention_180=retention[180],
        retention_360=retention[360],
        tip_percent=safe_ratio(tips, net),
        tip_fee_cost=tip_fee_cost,
        net_to_staff=tips - tip_fee_cost,
        taxable_sales=taxable,
        nontaxable_sales=net - taxable,
        inventory_usage=inventory_usage,
        transaction_count=int(tx["count"] or 0),
    )
