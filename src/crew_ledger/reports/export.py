from __future__ import annotations

from typing import Optional

from ..common.datetime_utils import YearMonth, format_year_month, month_bounds
from ..core.enums import ChangeAction
from ..history.service import AuditTrail
from ..ledger.service import LedgerStore
from .model import ExportRow, ExportSnapshot
from .service import AggregationService


class ExportService:
    """Builds the read-only month snapshot consumed by file formatters.

    Knows nothing about CSV or PDF; each snapshot taken is recorded in the
    change history as an ``export`` action.
    """

    def __init__(self, store: LedgerStore, aggregation: AggregationService, audit: AuditTrail):
        self._store = store
        self._aggregation = aggregation
        self._audit = audit

    def snapshot(self, year_month: YearMonth, *, employee_id: Optional[str] = None) -> ExportSnapshot:
        month = format_year_month(year_month)
        start, end = month_bounds(year_month)

        if employee_id is not None:
            employees = [self._store.get_employee(employee_id)]
        else:
            employees = list(self._store.list_employees())

        rows: list[ExportRow] = []
        for employee in employees:
            for entry in self._store.list_entries(employee.employee_id, start, end):
                if entry.is_cleared:
                    continue
                rows.append(
                    ExportRow(
                        employee_id=employee.employee_id,
                        employee_name=employee.name,
                        position=employee.position,
                        work_date=entry.work_date,
                        hours=entry.hours,
                        status=entry.status,
                        note=entry.note,
                    )
                )
        summaries = [self._aggregation.month_summary(e.employee_id, month) for e in employees]

        if employee_id is not None:
            description = f"Export {month} for {employees[0].name}"
        else:
            description = f"Export {month} for all employees"
        self._audit.record(ChangeAction.EXPORT, description, employee_id=employee_id)

        return ExportSnapshot(year_month=month, rows=rows, summaries=summaries)
