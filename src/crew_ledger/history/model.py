from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from ..core.enums import ChangeAction


@dataclass(frozen=True)
class HistoryDraft:
    """A change history record before the repository assigns id and sequence."""

    action: ChangeAction
    description: str
    actor: str
    created_at: datetime
    employee_id: Optional[str] = None
    old_value: Optional[dict[str, Any]] = None
    new_value: Optional[dict[str, Any]] = None


@dataclass(frozen=True)
class ChangeHistoryEntry:
    """Immutable audit record. ``seq`` defines the total order of the trail."""

    history_id: str
    seq: int
    action: ChangeAction
    description: str
    actor: str
    created_at: datetime
    employee_id: Optional[str] = None
    old_value: Optional[dict[str, Any]] = None
    new_value: Optional[dict[str, Any]] = None
