from __future__ import annotations

from datetime import date

from crew_ledger.core.enums import ChangeAction
from crew_ledger.history.service import AuditTrail
from crew_ledger.reports.export import ExportService
from crew_ledger.reports.service import AggregationService


def _export_service(store) -> ExportService:
    return ExportService(store, AggregationService(store), AuditTrail(store))


def test_snapshot_rows_are_ordered_by_name_then_date(store, crew):
    jan, piotr = crew["jan"], crew["piotr"]
    store.upsert_entry(piotr.employee_id, "2024-03-02", 8, "work")
    store.upsert_entry(jan.employee_id, "2024-03-03", 8, "work")
    store.upsert_entry(jan.employee_id, "2024-03-01", 6, "sick", note="L4")
    store.upsert_entry(jan.employee_id, "2024-04-01", 8, "work")

    snapshot = _export_service(store).snapshot("2024-03")

    assert [(r.employee_name, r.work_date) for r in snapshot.rows] == [
        ("Jan Kowalski", date(2024, 3, 1)),
        ("Jan Kowalski", date(2024, 3, 3)),
        ("Piotr Nowak", date(2024, 3, 2)),
    ]
    assert snapshot.rows[0].note == "L4"
    assert [s.total_hours for s in snapshot.summaries] == [14.0, 8.0]


def test_snapshot_is_recorded_in_history(store, crew):
    audit = AuditTrail(store)
    before = audit.count()

    _export_service(store).snapshot("2024-03", employee_id=crew["jan"].employee_id)

    assert audit.count() == before + 1
    latest = audit.query().first()
    assert latest.action == ChangeAction.EXPORT
    assert latest.description == "Export 2024-03 for Jan Kowalski"
