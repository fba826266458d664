"""Environment-driven settings for the reporting cost model and calendar."""

from __future__ import annotations

import os
from dataclasses import dataclass


DEFAULT_COGS_RATE = 0.15
DEFAULT_CARD_FEE_RATE = 0.029
DEFAULT_CARD_FEE_FIXED_CENTS = 30
DEFAULT_WORKDAY_HOURS = 8.0
DEFAULT_TIMEZONE = "UTC"
STANDARD_SLOT_MINUTES = 60
MIN_SERVICE_MINUTES = 15


def _parse_rate(name: str, default: float) -> float:
    raw = os.getenv(name, str(default))
    try:
        rate = float(raw)
    except ValueError as exc:
        raise ValueError(f"Invalid {name}: {raw}") from exc
    if rate < 0 or rate > 1:
        raise ValueError(f"{name} must be in [0, 1], got {rate}")
    return rate


def _parse_non_negative_int(name: str, default: int) -> int:
    raw = os.getenv(name, str(default))
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"Invalid {name}: {raw}") from exc
    if value < 0:
        raise ValueError(f"{name} must be >= 0, got {value}")
    return value


def _parse_workday_hours(name: str, default: float) -> float:
    raw = os.getenv(name, str(default))
    try:
        hours = float(raw)
    except ValueError as exc:
        raise ValueError(f"Invalid {name}: {raw}") from exc
    if hours <= 0 or hours > 24:
        raise ValueError(f"{name} must be in (0, 24], got {hours}")
    return hours


@dataclass(frozen=True)
class Settings:
    """Cost heuristics and business calendar used by the report engine."""

    cogs_rate: float = DEFAULT_COGS_RATE
    card_fee_rate: float = DEFAULT_CARD_FEE_RATE
    card_fee_fixed_cents: int = DEFAULT_CARD_FEE_FIXED_CENTS
    workday_hours: float = DEFAULT_WORKDAY_HOURS
    timezone: str = DEFAULT_TIMEZONE

    @property
    def workday_minutes(self) -> float:
        return self.workday_hours * 60

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            cogs_rate=_parse_rate("GROOMING_REPORTS_COGS_RATE", DEFAULT_COGS_RATE),
            card_fee_rate=_parse_rate("GROOMING_REPORTS_CARD_FEE_RATE", DEFAULT_CARD_FEE_RATE),
            card_fee_fixed_cents=_parse_non_negative_int(
                "GROOMING_REPORTS_CARD_FEE_FIXED_CENTS", DEFAULT_CARD_FEE_FIXED_CENTS
            ),
            workday_hours=_parse_workday_hours("GROOMING_REPORTS_WORKDAY_HOURS", DEFAULT_WORKDAY_HOURS),
            timezone=os.getenv("GROOMING_REPORTS_TIMEZONE", DEFAULT_TIMEZONE) or DEFAULT_TIMEZONE,
        )
