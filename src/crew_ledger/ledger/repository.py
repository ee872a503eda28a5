from __future__ import annotations

from datetime import date, datetime
from typing import Iterator, Optional, Protocol, Sequence

from ..core.enums import SyncState
from ..employees.model import Employee
from ..entries.model import TimeEntry
from ..history.model import ChangeHistoryEntry
from ..sync.model import PendingChange, SyncMeta
from .model import LedgerMutation


class LedgerRepository(Protocol):
    """Repository interface for the local ledger.

    Note (DIP): services depend on this interface, not on a concrete database.
    """

    # Employees
    def get_employee(self, employee_id: str) -> Optional[Employee]:
        raise NotImplementedError

    def list_employees(self, *, active: Optional[bool] = None) -> Sequence[Employee]:
        raise NotImplementedError

    # Entries
    def get_entry(self, employee_id: str, work_date: date) -> Optional[TimeEntry]:
        raise NotImplementedError

    def iter_entries(
        self,
        *,
        employee_id: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Iterator[TimeEntry]:
        """Yield entries ordered by date ascending, then employee id."""

        raise NotImplementedError

    # Change history
    def iter_history(
        self,
        *,
        employee_id: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Iterator[ChangeHistoryEntry]:
        """Yield history records newest first."""

        raise NotImplementedError

    def count_history(self) -> int:
        raise NotImplementedError

    def commit(self, mutation: LedgerMutation) -> ChangeHistoryEntry:
        """Atomically write state, history record and sync change.

        A mutation without employee/entry/change only appends history.
        Raises AuditWriteError (and writes nothing) when the history record
        cannot be stored.
        """

        raise NotImplementedError

    # Sync metadata and queue
    def next_revision(self) -> int:
        raise NotImplementedError

    def observe_revision(self, revision: int) -> None:
        raise NotImplementedError

    def get_sync_meta(self) -> SyncMeta:
        raise NotImplementedError

    def set_sync_cursor(self, *, last_synced_revision: int, last_synced_at: datetime) -> None:
        raise NotImplementedError

    def list_changes(self, *, state: Optional[SyncState] = None) -> Sequence[PendingChange]:
        """Return queued changes ordered by revision ascending."""

        raise NotImplementedError

    def update_change(
        self,
        change_id: str,
        *,
        state: SyncState,
        error_message: Optional[str] = None,
        synced_at: Optional[datetime] = None,
        retry_increment: bool = False,
    ) -> bool:
        raise NotImplementedError

    def delete_changes(self, *, state: SyncState) -> int:
        raise NotImplementedError
