from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Tuple

from ..core.enums import EntryStatus

EntryKey = Tuple[str, date]


@dataclass(frozen=True)
class TimeEntry:
    """Domain entity: hours booked for one employee on one calendar day.

    A cleared entry keeps its key with ``status=None`` and zero hours, so it
    stays distinguishable from a day that was never entered.
    """

    employee_id: str
    work_date: date
    hours: float
    status: Optional[EntryStatus]
    revision: int
    updated_at: datetime
    note: Optional[str] = None

    @property
    def key(self) -> EntryKey:
        return (self.employee_id, self.work_date)

    @property
    def is_cleared(self) -> bool:
        return self.status is None

    def same_values(self, other: "TimeEntry") -> bool:
        return (self.hours, self.status, self.note) == (other.hours, other.status, other.note)

    def describe(self) -> str:
        if self.is_cleared:
            return "cleared"
        return f"{self.hours:g}h ({self.status.label})"
