"""Report identifiers, filter specification and report output types."""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from datetime import date
from typing import Any, Dict, Mapping, Tuple

REPORT_TITLES: Dict[str, str] = {
    "owner-overview": "Owner Overview",
    "true-profit": "True Profit & Margin",
    "sales-summary": "Sales Summary",
    "finance-recon": "Finance & Reconciliation",
    "appointments-capacity": "Appointments & Capacity",
    "no-shows": "No-Shows & Cancellations",
    "retention": "Retention & Rebooking",
    "cohorts-ltv": "Client Cohorts & LTV",
    "staff-performance": "Staff Performance",
    "payroll": "Payroll / Compensation",
    "service-mix": "Service Mix & Pricing",
    "inventory": "Inventory Usage & Reorder",
    "marketing-roi": "Marketing & Messaging ROI",
    "tips": "Tips & Gratuities",
    "taxes": "Taxes Summary",
}
REPORT_IDS: Tuple[str, ...] = tuple(REPORT_TITLES)

DATE_PRESETS: Tuple[str, ...] = (
    "today",
    "yesterday",
    "last7",
    "thisWeek",
    "last30",
    "last90",
    "thisMonth",
    "lastMonth",
    "quarter",
    "ytd",
    "custom",
)
TIME_BASES: Tuple[str, ...] = ("service", "checkout", "transaction")
METRIC_FORMATS: Tuple[str, ...] = ("money", "percent", "int", "minutes")
CHART_TYPES: Tuple[str, ...] = ("line", "bar", "stacked", "donut", "scatter", "heatmap")
DRILL_ROW_TYPES: Tuple[str, ...] = ("appointments", "transactions", "clients", "inventory", "messages")

_LIST_FIELDS: Tuple[str, ...] = (
    "locations",
    "staff",
    "services",
    "service_categories",
    "pet_sizes",
    "channels",
    "client_types",
    "appointment_statuses",
    "payment_methods",
)


def validate_report_id(report_id: str) -> str:
    if report_id not in REPORT_TITLES:
        raise ValueError(f"Unknown report id: {report_id}")
    return report_id


def _parse_iso_day(name: str, value: str) -> date:
    try:
        return date.fromisoformat(str(value))
    except ValueError as exc:
        raise ValueError(f"Invalid {name}: {value!r}") from exc


@dataclass(frozen=True)
class FilterState:
    """Immutable filter specification shared by every report."""

    date_preset: str
    start_date: str
    end_date: str
    time_basis: str = "checkout"
    locations: Tuple[str, ...] = ()
    staff: Tuple[str, ...] = ()
    services: Tuple[str, ...] = ()
    service_categories: Tuple[str, ...] = ()
    pet_sizes: Tuple[str, ...] = ()
    channels: Tuple[str, ...] = ()
    client_types: Tuple[str, ...] = ()
    appointment_statuses: Tuple[str, ...] = ()
    payment_methods: Tuple[str, ...] = ()
    include_discounts: bool = True
    include_refunds: bool = True
    include_tips: bool = True
    include_taxes: bool = True
    include_gift_cards: bool = True
    compare_mode: bool = False
    group_by: str | None = None
    visible_columns: Tuple[str, ...] | None = None

    def __post_init__(self) -> None:
        for name in _LIST_FIELDS:
            object.__setattr__(self, name, tuple(str(value) for value in getattr(self, name) or ()))
        if self.visible_columns is not None:
            object.__setattr__(self, "visible_columns", tuple(str(value) for value in self.visible_columns))
        if self.date_preset not in DATE_PRESETS:
            raise ValueError(f"Unknown date preset: {self.date_preset}")
        if self.time_basis not in TIME_BASES:
            raise ValueError(f"Unknown time basis: {self.time_basis}")
        start = _parse_iso_day("start_date", self.start_date)
        end = _parse_iso_day("end_date", self.end_date)
        if start > end:
            raise ValueError(f"start_date must be <= end_date, got {self.start_date} > {self.end_date}")

    @property
    def start(self) -> date:
        return date.fromisoformat(self.start_date)

    @property
    def end(self) -> date:
        return date.fromisoformat(self.end_date)

    @property
    def day_count(self) -> int:
        return (self.end - self.start).days + 1

    def with_window(self, start_date: str, end_date: str) -> "FilterState":
        return replace(self, start_date=start_date, end_date=end_date)

    def as_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        for item in fields(self):
            value = getattr(self, item.name)
            result[item.name] = list(value) if isinstance(value, tuple) else value
        return result


def _drop_none(payload: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in payload.items() if value is not None}


@dataclass(frozen=True)
class DrillRequest:
    title: str
    row_types: Tuple[str, ...]
    filters: Mapping[str, Any] = field(default_factory=dict)
    value: float | None = None
    metric_id: str | None = None

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none(
            {
                "title": self.title,
                "rowTypes": list(self.row_types),
                "filters": dict(self.filters),
                "value": self.value,
                "metricId": self.metric_id,
            }
        )


@dataclass(frozen=True)
class KPIValue:
    id: str
    label: str
    value: float
    formatted_value: str
    format: str
    delta: float | None = None
    delta_formatted: str | None = None
    tooltip: str | None = None
    trend: str = "flat"
    drill_row_types: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none(
            {
                "id": self.id,
                "label": self.label,
                "value": self.value,
                "formattedValue": self.formatted_value,
                "delta": self.delta,
                "deltaFormatted": self.delta_formatted,
                "tooltip": self.tooltip,
                "trend": self.trend,
                "format": self.format,
                "drillRowTypes": list(self.drill_row_types),
            }
        )


@dataclass(frozen=True)
class ChartSeries:
    key: str
    label: str
    data: Tuple[Dict[str, Any], ...] = ()
    color: str | None = None

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none(
            {
                "key": self.key,
                "label": self.label,
                "color": self.color,
                "data": [dict(point) for point in self.data],
            }
        )


@dataclass(frozen=True)
class ChartData:
    id: str
    title: str
    type: str
    series: Tuple[ChartSeries, ...]
    x_key: str
    aria_label: str
    y_key: str | None = None
    compare_series: Tuple[ChartSeries, ...] | None = None

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none(
            {
                "id": self.id,
                "title": self.title,
                "type": self.type,
                "series": [item.to_dict() for item in self.series],
                "xKey": self.x_key,
                "yKey": self.y_key,
                "compareSeries": None
                if self.compare_series is None
                else [item.to_dict() for item in self.compare_series],
                "ariaLabel": self.aria_label,
            }
        )


@dataclass(frozen=True)
class TableColumn:
    id: str
    label: str
    format: str | None = None
    align: str | None = None
    is_delta: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none(
            {
                "id": self.id,
                "label": self.label,
                "format": self.format,
                "align": self.align,
                "isDelta": self.is_delta or None,
            }
        )


@dataclass(frozen=True)
class TableRow:
    id: str
    label: str
    values: Mapping[str, Any]
    drill: DrillRequest | None = None

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none(
            {
                "id": self.id,
                "label": self.label,
                "values": dict(self.values),
                "drill": None if self.drill is None else self.drill.to_dict(),
            }
        )


@dataclass(frozen=True)
class TableData:
    columns: Tuple[TableColumn, ...]
    rows: Tuple[TableRow, ...]
    group_by_options: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "columns": [column.to_dict() for column in self.columns],
            "rows": [row.to_dict() for row in self.rows],
            "groupByOptions": list(self.group_by_options),
        }


@dataclass(frozen=True)
class InsightsItem:
    id: str
    title: str
    description: str
    metric_id: str | None = None
    delta: float | None = None
    action: str | None = None
    drill: DrillRequest | None = None

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none(
            {
                "id": self.id,
                "title": self.title,
                "description": self.description,
                "metricId": self.metric_id,
                "delta": self.delta,
                "action": self.action,
                "drill": None if self.drill is None else self.drill.to_dict(),
            }
        )


@dataclass(frozen=True)
class ReportData:
    kpis: Tuple[KPIValue, ...]
    charts: Tuple[ChartData, ...]
    table: TableData
    insights: Tuple[InsightsItem, ...] = ()

    def kpi(self, metric_id: str) -> KPIValue | None:
        for item in self.kpis:
            if item.id == metric_id:
                return item
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kpis": [item.to_dict() for item in self.kpis],
            "charts": [item.to_dict() for item in self.charts],
            "table": self.table.to_dict(),
            "insights": [item.to_dict() for item in self.insights],
        }
