from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..employees.model import Employee
from ..entries.model import TimeEntry
from ..history.model import HistoryDraft
from ..sync.model import PendingChange


@dataclass(frozen=True)
class LedgerMutation:
    """One unit of work: new state, its audit record and its sync change.

    Repositories commit all parts together or none of them.
    """

    history: HistoryDraft
    employee: Optional[Employee] = None
    entry: Optional[TimeEntry] = None
    change: Optional[PendingChange] = None
