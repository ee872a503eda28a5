from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from ..core.enums import EntryStatus


def _zero_by_status() -> dict[EntryStatus, float]:
    return {s: 0.0 for s in EntryStatus}


@dataclass(frozen=True)
class MonthSummary:
    """Read-model: hours per status for one employee in one calendar month."""

    employee_id: str
    year_month: str
    hours_by_status: dict[EntryStatus, float] = field(default_factory=_zero_by_status)
    days_count: int = 0
    employee_name: Optional[str] = None
    position: Optional[str] = None

    @property
    def total_hours(self) -> float:
        return sum(self.hours_by_status.values())

    def hours(self, status: EntryStatus) -> float:
        return self.hours_by_status.get(status, 0.0)

    def to_dict(self) -> dict:
        return {
            "employee_id": self.employee_id,
            "employee_name": self.employee_name,
            "position": self.position,
            "month": self.year_month,
            "hours": {s.value: h for s, h in self.hours_by_status.items()},
            "total_hours": self.total_hours,
            "days_count": self.days_count,
        }


@dataclass(frozen=True)
class DailySummary:
    work_date: date
    employees_count: int
    hours_by_status: dict[EntryStatus, float] = field(default_factory=_zero_by_status)

    @property
    def total_hours(self) -> float:
        return sum(self.hours_by_status.values())

    def to_dict(self) -> dict:
        return {
            "date": self.work_date.isoformat(),
            "employees_count": self.employees_count,
            "hours": {s.value: h for s, h in self.hours_by_status.items()},
            "total_hours": self.total_hours,
        }


@dataclass(frozen=True)
class EntryStats:
    total_entries: int
    total_hours: float
    hours_by_status: dict[EntryStatus, float]
    average_hours_per_day: float


@dataclass(frozen=True)
class ExportRow:
    employee_id: str
    employee_name: str
    position: str
    work_date: date
    hours: float
    status: EntryStatus
    note: Optional[str] = None


@dataclass(frozen=True)
class ExportSnapshot:
    """Read-only view handed to external CSV/PDF formatters."""

    year_month: str
    rows: list[ExportRow]
    summaries: list[MonthSummary]
