from __future__ import annotations

from datetime import date

import pytest

from crew_ledger.core.enums import ChangeAction, SyncState
from crew_ledger.core.exceptions import AuditWriteError
from crew_ledger.history.service import AuditTrail
from crew_ledger.ledger.memory_repository import InMemoryLedgerRepository
from crew_ledger.ledger.service import LedgerStore


class FailingHistoryRepository(InMemoryLedgerRepository):
    """History storage that can be switched to fail on append."""

    def __init__(self):
        super().__init__()
        self.fail = False

    def _append_history(self, draft):
        if self.fail:
            raise OSError("disk full")
        return super()._append_history(draft)


def test_history_is_totally_ordered_and_read_newest_first(store, crew):
    audit = AuditTrail(store)
    store.upsert_entry(crew["jan"].employee_id, "2024-03-05", 8, "work")
    store.upsert_entry(crew["piotr"].employee_id, "2024-03-05", 8, "work")

    items = audit.query().to_list()

    assert [h.seq for h in items] == [4, 3, 2, 1]
    assert items[-1].action == ChangeAction.ADD_EMPLOYEE
    assert items[0].created_at > items[-1].created_at


def test_record_appends_exactly_one_entry(store):
    audit = AuditTrail(store)
    before = audit.count()

    record = audit.record(ChangeAction.EXPORT, "Export 2024-03 for all employees")

    assert audit.count() == before + 1
    assert record.actor == "Administrator"
    assert audit.query().first() == record


def test_query_filters_by_employee_and_day(store, crew):
    audit = AuditTrail(store)
    store.upsert_entry(crew["jan"].employee_id, "2024-03-05", 8, "work")

    jan_items = audit.query(employee_id=crew["jan"].employee_id).to_list()
    assert {h.employee_id for h in jan_items} == {crew["jan"].employee_id}
    assert len(jan_items) == 2

    # FakeClock stays on 2024-03-01
    assert audit.query(start=date(2024, 3, 2)).to_list() == []
    assert len(audit.query(start="2024-03-01", end="2024-03-01").to_list()) == 3


def test_failed_history_write_rolls_back_the_mutation(clock):
    repo = FailingHistoryRepository()
    store = LedgerStore(repo, clock=clock)
    jan = store.add_employee("Jan Kowalski", "Cieśla")
    store.upsert_entry(jan.employee_id, "2024-03-05", 8, "work")
    pending_before = repo.list_changes(state=SyncState.PENDING)
    revision_before = repo.get_sync_meta().local_revision

    repo.fail = True
    with pytest.raises(AuditWriteError):
        store.upsert_entry(jan.employee_id, "2024-03-05", 4, "sick")

    entry = store.get_entry(jan.employee_id, "2024-03-05")
    assert entry.hours == 8.0
    assert repo.count_history() == 2
    assert repo.list_changes(state=SyncState.PENDING) == pending_before
    assert repo.get_sync_meta().local_revision >= revision_before


def test_failed_history_write_leaves_new_employee_absent(clock):
    repo = FailingHistoryRepository()
    store = LedgerStore(repo, clock=clock)
    repo.fail = True

    with pytest.raises(AuditWriteError):
        store.add_employee("Jan Kowalski", "Cieśla")

    assert store.list_employees(include_inactive=True) == []
    assert repo.list_changes() == []
