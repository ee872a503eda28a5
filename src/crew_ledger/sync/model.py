from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Optional, Union

from ..core.enums import ChangeKind, SyncPhase, SyncState
from ..employees.model import Employee
from ..entries.model import TimeEntry

SyncRecord = Union[Employee, TimeEntry]


@dataclass(frozen=True)
class PendingChange:
    """Queued local mutation waiting to be pushed to the remote store."""

    change_id: str
    kind: ChangeKind
    employee_id: str
    work_date: Optional[date]
    revision: int
    payload: dict[str, Any]
    state: SyncState
    created_at: datetime
    retry_count: int = 0
    error_message: Optional[str] = None
    synced_at: Optional[datetime] = None

    @property
    def key(self) -> tuple:
        return (self.kind, self.employee_id, self.work_date)


@dataclass(frozen=True)
class SyncMeta:
    local_revision: int = 0
    last_synced_revision: int = 0
    last_synced_at: Optional[datetime] = None


@dataclass(frozen=True)
class PushOutcome:
    accepted: bool
    current: Optional[SyncRecord] = None


@dataclass(frozen=True)
class ChangeBatch:
    employees: list[Employee]
    entries: list[TimeEntry]
    cursor: int


@dataclass(frozen=True)
class ConflictResolved:
    """Informational outcome: a local change lost to a remote one (or won)."""

    kind: ChangeKind
    employee_id: str
    work_date: Optional[date]
    local: SyncRecord
    remote: SyncRecord
    winner: str = "remote"


@dataclass
class SyncResult:
    phase: SyncPhase = SyncPhase.IDLE
    pushed: int = 0
    pulled: int = 0
    applied: int = 0
    conflicts: list[ConflictResolved] = field(default_factory=list)
    errors: list[dict] = field(default_factory=list)
    cancelled: bool = False
    cursor_held: bool = False

    @property
    def success(self) -> bool:
        return self.phase == SyncPhase.IDLE and not self.errors and not self.cancelled


@dataclass(frozen=True)
class SyncStats:
    pending: int
    synced: int
    conflicted: int
    total: int
    last_sync: Optional[datetime]
    failed: int = 0
