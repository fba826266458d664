"""Client visit history across the full normalized dataset."""

from __future__ import annotations

from typing import Dict, List, Tuple

from grooming_reports.application.reporting.metrics import days_between
from grooming_reports.domain.models import Appointment, NormalizedData

RECOVERY_WINDOW_DAYS = 7

class ClientHistory:
    """Completed visits per client, sorted by date, regardless of the active filters."""

    def __init__(self, data: NormalizedData) -> None:
        self.first_visits = data.first_visits
        self._visits: Dict[str, List[Tuple[str, int]]] = {}
        for appointment in data.appointments:
            if appointment.is_completed:
                self._visits.setdefault(appointment.client_id, []).append(
                    (appointment.date, appointment.total_cents)
                )
        for visits in self._visits.values():
            visits.sort()

    def visits(self, client_id: str) -> List[Tuple[str, int]]:
        return self._visits.get(client_id, [])

    def last_visit(self, client_id: str) -> str | None:
        visits = self.visits(client_id)
        return visits[-1][0] if visits else None

    def returned_within(self, client_id: str, since: str, window_days: int, inclusive: bool = False) -> bool:
        for visit_date, _ in self.visits(client_id):
            gap = days_between(since, visit_date)
            if gap is None:
                continue
            after = gap >= 0 if inclusive else gap > 0
            if after and gap <= window_days:
                return True
        return False

    def recovered(self, appointment: Appointment) -> bool:
        """A no-show is recovered when the client completes a visit within a week of it."""
        if not appointment.is_no_show:
            return False
        return self.returned_within(appointment.client_id, appointment.date, RECOVERY_WINDOW_DAYS, inclusive=True)

    def window_visits(self, client_id: str, start: str, end: str) -> List[Tuple[str, int]]:
        return [visit for visit in self.visits(client_id) if start <= visit[0] <= end]
