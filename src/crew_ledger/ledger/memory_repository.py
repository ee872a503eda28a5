from __future__ import annotations

import threading
import uuid
from dataclasses import replace
from datetime import date, datetime
from typing import Iterator, Optional, Sequence

from ..core.enums import SyncState
from ..core.exceptions import AuditWriteError
from ..employees.model import Employee
from ..entries.model import EntryKey, TimeEntry
from ..history.model import ChangeHistoryEntry, HistoryDraft
from ..sync.model import PendingChange, SyncMeta
from .model import LedgerMutation
from .repository import LedgerRepository


class InMemoryLedgerRepository(LedgerRepository):
    """Process-local ledger backend (tests, throwaway runs).

    Nothing survives a restart; use MySQLLedgerRepository for that.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._employees: dict[str, Employee] = {}
        self._entries: dict[EntryKey, TimeEntry] = {}
        self._history: list[ChangeHistoryEntry] = []
        self._changes: list[PendingChange] = []
        self._meta = SyncMeta()

    def get_employee(self, employee_id: str) -> Optional[Employee]:
        return self._employees.get(employee_id)

    def list_employees(self, *, active: Optional[bool] = None) -> Sequence[Employee]:
        with self._lock:
            items = [e for e in self._employees.values() if active is None or e.active == active]
        items.sort(key=lambda e: (e.name.lower(), e.employee_id))
        return items

    def get_entry(self, employee_id: str, work_date: date) -> Optional[TimeEntry]:
        return self._entries.get((employee_id, work_date))

    def iter_entries(
        self,
        *,
        employee_id: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Iterator[TimeEntry]:
        with self._lock:
            items = [
                e
                for e in self._entries.values()
                if (employee_id is None or e.employee_id == employee_id)
                and (start_date is None or e.work_date >= start_date)
                and (end_date is None or e.work_date <= end_date)
            ]
        items.sort(key=lambda e: (e.work_date, e.employee_id))
        return iter(items)

    def iter_history(
        self,
        *,
        employee_id: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Iterator[ChangeHistoryEntry]:
        with self._lock:
            items = list(self._history)
        for h in reversed(items):
            if employee_id is not None and h.employee_id != employee_id:
                continue
            day = h.created_at.date()
            if start_date is not None and day < start_date:
                continue
            if end_date is not None and day > end_date:
                continue
            yield h

    def count_history(self) -> int:
        return len(self._history)

    def _append_history(self, draft: HistoryDraft) -> ChangeHistoryEntry:
        record = ChangeHistoryEntry(
            history_id=uuid.uuid4().hex,
            seq=len(self._history) + 1,
            action=draft.action,
            description=draft.description,
            actor=draft.actor,
            created_at=draft.created_at,
            employee_id=draft.employee_id,
            old_value=draft.old_value,
            new_value=draft.new_value,
        )
        self._history.append(record)
        return record

    def _enqueue(self, change: PendingChange) -> None:
        # One pending item per key: the newest local state is all that needs pushing.
        self._changes = [
            c for c in self._changes if not (c.state == SyncState.PENDING and c.key == change.key)
        ]
        self._changes.append(change)

    def commit(self, mutation: LedgerMutation) -> ChangeHistoryEntry:
        with self._lock:
            saved = (dict(self._employees), dict(self._entries), list(self._changes))
            try:
                if mutation.employee is not None:
                    self._employees[mutation.employee.employee_id] = mutation.employee
                if mutation.entry is not None:
                    self._entries[mutation.entry.key] = mutation.entry
                if mutation.change is not None:
                    self._enqueue(mutation.change)
                try:
                    return self._append_history(mutation.history)
                except Exception as exc:
                    raise AuditWriteError(f"Could not write change history: {exc}") from exc
            except Exception:
                self._employees, self._entries, self._changes = saved
                raise

    def next_revision(self) -> int:
        with self._lock:
            self._meta = replace(self._meta, local_revision=self._meta.local_revision + 1)
            return self._meta.local_revision

    def observe_revision(self, revision: int) -> None:
        with self._lock:
            if revision > self._meta.local_revision:
                self._meta = replace(self._meta, local_revision=int(revision))

    def get_sync_meta(self) -> SyncMeta:
        return self._meta

    def set_sync_cursor(self, *, last_synced_revision: int, last_synced_at: datetime) -> None:
        with self._lock:
            self._meta = replace(
                self._meta,
                last_synced_revision=int(last_synced_revision),
                last_synced_at=last_synced_at,
            )

    def list_changes(self, *, state: Optional[SyncState] = None) -> Sequence[PendingChange]:
        with self._lock:
            items = [c for c in self._changes if state is None or c.state == state]
        items.sort(key=lambda c: (c.revision, c.created_at))
        return items

    def update_change(
        self,
        change_id: str,
        *,
        state: SyncState,
        error_message: Optional[str] = None,
        synced_at: Optional[datetime] = None,
        retry_increment: bool = False,
    ) -> bool:
        with self._lock:
            for i, c in enumerate(self._changes):
                if c.change_id == change_id:
                    self._changes[i] = replace(
                        c,
                        state=state,
                        error_message=error_message,
                        synced_at=synced_at if synced_at is not None else c.synced_at,
                        retry_count=c.retry_count + (1 if retry_increment else 0),
                    )
                    return True
        return False

    def delete_changes(self, *, state: SyncState) -> int:
        with self._lock:
            before = len(self._changes)
            self._changes = [c for c in self._changes if c.state != state]
            return before - len(self._changes)
