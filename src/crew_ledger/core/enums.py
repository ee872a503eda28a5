from __future__ import annotations

from enum import Enum


class EntryStatus(str, Enum):
    """Closed set of day categories an entry can be booked under."""

    WORK = "work"
    SICK = "sick"
    VACATION = "vacation"
    FORCE_MAJEURE = "fza"

    @property
    def label(self) -> str:
        return _STATUS_LABELS[self]


_STATUS_LABELS = {
    EntryStatus.WORK: "Praca",
    EntryStatus.SICK: "Chorobowe",
    EntryStatus.VACATION: "Urlop",
    EntryStatus.FORCE_MAJEURE: "FZA",
}


class ChangeAction(str, Enum):
    """Kinds of audited changes kept in the change history."""

    ADD_EMPLOYEE = "add_employee"
    DELETE_EMPLOYEE = "delete_employee"
    ADD_HOURS = "add_hours"
    EDIT_HOURS = "edit_hours"
    DELETE_HOURS = "delete_hours"
    EXPORT = "export"


class ChangeKind(str, Enum):
    EMPLOYEE = "employee"
    ENTRY = "entry"


class SyncState(str, Enum):
    """Lifecycle of a queued local change."""

    PENDING = "pending"
    SYNCED = "synced"
    CONFLICTED = "conflicted"
    FAILED = "failed"


class SyncPhase(str, Enum):
    IDLE = "idle"
    PUSHING = "pushing"
    PULLING = "pulling"
    RECONCILING = "reconciling"
    FAILED = "failed"
