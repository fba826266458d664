"""Shared numeric/formatting utilities for reporting."""

from __future__ import annotations

import math
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Sequence

import polars as pl


def to_float(value: Any, default: float = 0.0) -> float:
    if value is None:
        return default
    result = float(value)
    if math.isnan(result) or math.isinf(result):
        return default
    return result


def round_half_up(value: float) -> int:
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def safe_ratio(num: float, den: float) -> float:
    if den == 0:
        return 0.0
    return num / den


def safe_ratio_expr(num: pl.Expr, den: pl.Expr) -> pl.Expr:
    return pl.when(den != 0).then(num / den).otherwise(pl.lit(0.0))


def average(values: Iterable[float]) -> float:
    items = list(values)
    if not items:
        return 0.0
    return sum(items) / len(items)


def median(values: Sequence[float]) -> float:
    items = sorted(values)
    if not items:
        return 0.0
    middle = len(items) // 2
    if len(items) % 2:
        return float(items[middle])
    return (items[middle - 1] + items[middle]) / 2


def days_between(start: str, end: str) -> int | None:
    try:
        return (date.fromisoformat(end[:10]) - date.fromisoformat(start[:10])).days
    except (TypeError, ValueError):
        return None


def fmt_money(cents: float) -> str:
    dollars = round_half_up(abs(cents) / 100)
    sign = "-" if cents < 0 and dollars else ""
    return f"{sign}${dollars:,}"


def fmt_currency(cents: float) -> str:
    sign = "-" if cents < 0 else ""
    return f"{sign}${abs(cents) / 100:,.2f}"


def fmt_pct(value: float) -> str:
    return f"{value * 100:.1f}%"


def fmt_day(iso_day: str) -> str:
    try:
        day = date.fromisoformat(iso_day[:10])
    except (TypeError, ValueError):
        return str(iso_day or "")
    return f"{day:%b} {day.day}, {day.year}"


def format_metric(value: float, fmt: str) -> str:
    if fmt == "money":
        return fmt_money(value)
    if fmt == "percent":
        return fmt_pct(value)
    if fmt == "minutes":
        return f"{round_half_up(value)} min"
    return f"{round_half_up(value):,}"


def format_delta(value: float, fmt: str) -> str:
    sign = "-" if value < 0 else "+"
    return f"{sign}{format_metric(abs(value), fmt)}"


def trend(delta: float | None) -> str:
    if delta is None or delta == 0:
        return "flat"
    return "up" if delta > 0 else "down"
