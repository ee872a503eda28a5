from __future__ import annotations

from datetime import date
from typing import Optional

from ..common.datetime_utils import YearMonth, as_date, format_year_month, month_bounds
from ..core.enums import EntryStatus
from ..employees.model import Employee
from ..ledger.service import LedgerStore
from .model import DailySummary, EntryStats, MonthSummary


class AggregationService:
    """Monthly and daily totals computed from current ledger state on every call."""

    def __init__(self, store: LedgerStore):
        self._store = store

    def month_summary(self, employee_id: str, year_month: YearMonth) -> MonthSummary:
        employee = self._store.get_employee(employee_id)
        return self._summarize(employee, year_month)

    def crew_month_summaries(self, year_month: YearMonth, *, include_inactive: bool = False) -> list[MonthSummary]:
        employees = self._store.list_employees(include_inactive=include_inactive)
        return [self._summarize(e, year_month) for e in employees]

    def _summarize(self, employee: Employee, year_month: YearMonth) -> MonthSummary:
        start, end = month_bounds(year_month)
        by_status = {s: 0.0 for s in EntryStatus}
        days = 0
        for entry in self._store.list_entries(employee.employee_id, start, end):
            if entry.is_cleared:
                continue
            by_status[entry.status] += entry.hours
            days += 1
        return MonthSummary(
            employee_id=employee.employee_id,
            year_month=format_year_month(year_month),
            hours_by_status=by_status,
            days_count=days,
            employee_name=employee.name,
            position=employee.position,
        )

    def daily_summary(self, work_date: date | str) -> DailySummary:
        day = as_date(work_date)
        by_status = {s: 0.0 for s in EntryStatus}
        employees: set[str] = set()
        for entry in self._store.list_entries(None, day, day):
            if entry.is_cleared:
                continue
            by_status[entry.status] += entry.hours
            employees.add(entry.employee_id)
        return DailySummary(work_date=day, employees_count=len(employees), hours_by_status=by_status)

    def entry_stats(
        self,
        employee_id: Optional[str] = None,
        start: Optional[date | str] = None,
        end: Optional[date | str] = None,
    ) -> EntryStats:
        by_status = {s: 0.0 for s in EntryStatus}
        total_entries = 0
        days: set[date] = set()
        for entry in self._store.list_entries(employee_id, start, end):
            if entry.is_cleared:
                continue
            total_entries += 1
            by_status[entry.status] += entry.hours
            days.add(entry.work_date)

        total = sum(by_status.values())
        return EntryStats(
            total_entries=total_entries,
            total_hours=total,
            hours_by_status=by_status,
            average_hours_per_day=total / len(days) if days else 0.0,
        )

