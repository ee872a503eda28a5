from __future__ import annotations

from datetime import date
from typing import Any, Optional

from ..common.datetime_utils import as_date
from ..common.views import LazyView
from ..core.enums import ChangeAction
from ..ledger.model import LedgerMutation
from ..ledger.service import LedgerStore
from .model import ChangeHistoryEntry, HistoryDraft


class AuditTrail:
    """Append-only change history, read newest first."""

    def __init__(self, store: LedgerStore):
        self._store = store
        self._repo = store.repository

    def record(
        self,
        action: ChangeAction,
        description: str,
        *,
        employee_id: Optional[str] = None,
        old_value: Optional[dict[str, Any]] = None,
        new_value: Optional[dict[str, Any]] = None,
        actor: Optional[str] = None,
    ) -> ChangeHistoryEntry:
        """Append a standalone record; raises AuditWriteError on storage failure."""

        with self._store.lock:
            draft = HistoryDraft(
                action=ChangeAction(action),
                description=description,
                actor=actor or self._store.default_actor,
                created_at=self._store.now(),
                employee_id=employee_id,
                old_value=old_value,
                new_value=new_value,
            )
            return self._repo.commit(LedgerMutation(history=draft))

    def query(
        self,
        employee_id: Optional[str] = None,
        start: Optional[date | str] = None,
        end: Optional[date | str] = None,
    ) -> LazyView[ChangeHistoryEntry]:
        start_date = as_date(start) if start is not None else None
        end_date = as_date(end) if end is not None else None
        return LazyView(
            lambda: self._repo.iter_history(employee_id=employee_id, start_date=start_date, end_date=end_date)
        )

    def count(self) -> int:
        return self._repo.count_history()
