from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import replace
from datetime import date, datetime
from typing import Any, Callable, Optional, Sequence

from ..common.datetime_utils import as_date, now_utc
from ..common.validators import optional_text, require_hours, require_length, require_non_empty, require_status
from ..common.views import LazyView
from ..core.constants import (
    DEFAULT_ACTOR,
    MAX_NAME_LENGTH,
    MAX_POSITION_LENGTH,
    MIN_NAME_LENGTH,
    SYNC_ACTOR,
)
from ..core.enums import ChangeAction, ChangeKind, SyncState
from ..core.exceptions import NotFoundError
from ..employees.model import Employee
from ..entries.model import TimeEntry
from ..history.model import ChangeHistoryEntry, HistoryDraft
from ..sync.model import PendingChange
from ..sync.payload import employee_to_payload, entry_to_payload
from .model import LedgerMutation
from .repository import LedgerRepository

logger = logging.getLogger(__name__)


class LedgerStore:
    """Authoritative local ledger of employees and time entries.

    All mutations go through here and are serialised by one lock, so the
    change history is written in a strict total order. Every successful
    mutation commits its new state, exactly one history record and (for
    local edits) one pending sync change as a single unit.
    """

    def __init__(
        self,
        repo: LedgerRepository,
        *,
        actor: str = DEFAULT_ACTOR,
        clock: Callable[[], datetime] = now_utc,
    ):
        self._repo = repo
        self._actor = actor
        self._clock = clock
        self._lock = threading.RLock()

    @property
    def repository(self) -> LedgerRepository:
        return self._repo

    @property
    def default_actor(self) -> str:
        return self._actor

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    def now(self) -> datetime:
        return self._clock()

    # Employees
    def add_employee(self, name: str, position: str, *, actor: Optional[str] = None) -> Employee:
        name = require_length(
            require_non_empty(name, "Name"), "Name", min_len=MIN_NAME_LENGTH, max_len=MAX_NAME_LENGTH
        )
        position = require_length(require_non_empty(position, "Position"), "Position", max_len=MAX_POSITION_LENGTH)

        with self._lock:
            now = self._clock()
            employee = Employee(
                employee_id=uuid.uuid4().hex,
                name=name,
                position=position,
                active=True,
                revision=self._repo.next_revision(),
                updated_at=now,
            )
            payload = employee_to_payload(employee)
            self._repo.commit(
                LedgerMutation(
                    history=HistoryDraft(
                        action=ChangeAction.ADD_EMPLOYEE,
                        description=f"Added employee: {name} ({position})",
                        actor=actor or self._actor,
                        created_at=now,
                        employee_id=employee.employee_id,
                        new_value=payload,
                    ),
                    employee=employee,
                    change=self._new_change(ChangeKind.EMPLOYEE, employee.employee_id, None, employee.revision, payload, now),
                )
            )
        logger.info("employee added id=%s revision=%s", employee.employee_id, employee.revision)
        return employee

    def deactivate_employee(self, employee_id: str, *, actor: Optional[str] = None) -> Employee:
        with self._lock:
            current = self.get_employee(employee_id)
            if not current.active:
                return current

            now = self._clock()
            employee = replace(current, active=False, revision=self._repo.next_revision(), updated_at=now)
            payload = employee_to_payload(employee)
            self._repo.commit(
                LedgerMutation(
                    history=HistoryDraft(
                        action=ChangeAction.DELETE_EMPLOYEE,
                        description=f"Deactivated employee: {current.name}",
                        actor=actor or self._actor,
                        created_at=now,
                        employee_id=employee_id,
                        old_value=employee_to_payload(current),
                        new_value=payload,
                    ),
                    employee=employee,
                    change=self._new_change(ChangeKind.EMPLOYEE, employee_id, None, employee.revision, payload, now),
                )
            )
        logger.info("employee deactivated id=%s revision=%s", employee_id, employee.revision)
        return employee

    def find_employee(self, employee_id: str) -> Optional[Employee]:
        return self._repo.get_employee(employee_id)

    def get_employee(self, employee_id: str) -> Employee:
        employee = self._repo.get_employee(employee_id)
        if not employee:
            raise NotFoundError(f"Unknown employee: {employee_id}")
        return employee

    def list_employees(self, *, include_inactive: bool = False) -> Sequence[Employee]:
        return self._repo.list_employees(active=None if include_inactive else True)

    # Entries
    def upsert_entry(
        self,
        employee_id: str,
        work_date: date | str,
        hours: Any,
        status: Any,
        *,
        note: Optional[str] = None,
        actor: Optional[str] = None,
    ) -> Optional[TimeEntry]:
        """Write hours/status for one (employee, day); returns the replaced entry."""

        hours = require_hours(hours)
        status = require_status(status)
        work_date = as_date(work_date)
        note = optional_text(note, "Note")

        with self._lock:
            employee = self.get_employee(employee_id)
            prior = self._repo.get_entry(employee_id, work_date)
            now = self._clock()
            entry = TimeEntry(
                employee_id=employee_id,
                work_date=work_date,
                hours=hours,
                status=status,
                revision=self._repo.next_revision(),
                updated_at=now,
                note=note,
            )
            if prior is None or prior.is_cleared:
                action = ChangeAction.ADD_HOURS
                description = f"{employee.name} {work_date.isoformat()}: added {entry.describe()}"
            else:
                action = ChangeAction.EDIT_HOURS
                description = f"{employee.name} {work_date.isoformat()}: {prior.describe()} → {entry.describe()}"

            self._commit_entry(entry, prior, action, description, actor=actor or self._actor, now=now)
        logger.debug("entry written employee=%s date=%s revision=%s", employee_id, work_date, entry.revision)
        return prior

    def clear_entry(self, employee_id: str, work_date: date | str, *, actor: Optional[str] = None) -> TimeEntry:
        """Clear a day by writing an explicit cleared record; returns the prior entry.

        A day that was never entered stays absent and raises NotFoundError.
        """

        work_date = as_date(work_date)
        with self._lock:
            employee = self.get_employee(employee_id)
            prior = self._repo.get_entry(employee_id, work_date)
            if prior is None:
                raise NotFoundError(f"No entry for {employee_id} on {work_date.isoformat()}")
            if prior.is_cleared:
                return prior

            now = self._clock()
            entry = TimeEntry(
                employee_id=employee_id,
                work_date=work_date,
                hours=0.0,
                status=None,
                revision=self._repo.next_revision(),
                updated_at=now,
            )
            description = f"{employee.name} {work_date.isoformat()}: {prior.describe()} → cleared"
            self._commit_entry(entry, prior, ChangeAction.DELETE_HOURS, description, actor=actor or self._actor, now=now)
        return prior

    def get_entry(self, employee_id: str, work_date: date | str) -> Optional[TimeEntry]:
        return self._repo.get_entry(employee_id, as_date(work_date))

    def list_entries(
        self,
        employee_id: Optional[str] = None,
        start: Optional[date | str] = None,
        end: Optional[date | str] = None,
    ) -> LazyView[TimeEntry]:
        """Lazy, restartable view of entries ordered by date ascending."""

        start_date = as_date(start) if start is not None else None
        end_date = as_date(end) if end is not None else None
        return LazyView(
            lambda: self._repo.iter_entries(employee_id=employee_id, start_date=start_date, end_date=end_date)
        )

    # Remote state applied by the sync reconciler
    def apply_remote_employee(self, remote: Employee, *, superseded: Optional[dict] = None) -> ChangeHistoryEntry:
        with self._lock:
            local = self._repo.get_employee(remote.employee_id)
            if not remote.active and (local is None or local.active):
                action = ChangeAction.DELETE_EMPLOYEE
            else:
                action = ChangeAction.ADD_EMPLOYEE
            description = f"Employee {remote.name} updated from remote (revision {remote.revision})"
            if superseded is not None:
                description = f"Conflict: local change to {remote.name} superseded by remote revision {remote.revision}"

            record = self._repo.commit(
                LedgerMutation(
                    history=HistoryDraft(
                        action=action,
                        description=description,
                        actor=SYNC_ACTOR,
                        created_at=self._clock(),
                        employee_id=remote.employee_id,
                        old_value=superseded if superseded is not None else (employee_to_payload(local) if local else None),
                        new_value=employee_to_payload(remote),
                    ),
                    employee=remote,
                )
            )
            self._repo.observe_revision(remote.revision)
        return record

    def apply_remote_entry(self, remote: TimeEntry, *, superseded: Optional[dict] = None) -> ChangeHistoryEntry:
        with self._lock:
            local = self._repo.get_entry(remote.employee_id, remote.work_date)
            employee = self._repo.get_employee(remote.employee_id)
            who = employee.name if employee else remote.employee_id
            if remote.is_cleared:
                action = ChangeAction.DELETE_HOURS
            elif local is None or local.is_cleared:
                action = ChangeAction.ADD_HOURS
            else:
                action = ChangeAction.EDIT_HOURS

            before = local.describe() if local else "none"
            description = f"{who} {remote.work_date.isoformat()}: {before} → {remote.describe()} (remote revision {remote.revision})"
            if superseded is not None:
                description = f"Conflict: {description}; local change superseded"

            record = self._repo.commit(
                LedgerMutation(
                    history=HistoryDraft(
                        action=action,
                        description=description,
                        actor=SYNC_ACTOR,
                        created_at=self._clock(),
                        employee_id=remote.employee_id,
                        old_value=superseded if superseded is not None else (entry_to_payload(local) if local else None),
                        new_value=entry_to_payload(remote),
                    ),
                    entry=remote,
                )
            )
            self._repo.observe_revision(remote.revision)
        return record

    def _commit_entry(
        self,
        entry: TimeEntry,
        prior: Optional[TimeEntry],
        action: ChangeAction,
        description: str,
        *,
        actor: str,
        now: datetime,
    ) -> ChangeHistoryEntry:
        payload = entry_to_payload(entry)
        return self._repo.commit(
            LedgerMutation(
                history=HistoryDraft(
                    action=action,
                    description=description,
                    actor=actor,
                    created_at=now,
                    employee_id=entry.employee_id,
                    old_value=entry_to_payload(prior) if prior else None,
                    new_value=payload,
                ),
                entry=entry,
                change=self._new_change(ChangeKind.ENTRY, entry.employee_id, entry.work_date, entry.revision, payload, now),
            )
        )

    @staticmethod
    def _new_change(
        kind: ChangeKind,
        employee_id: str,
        work_date: Optional[date],
        revision: int,
        payload: dict,
        now: datetime,
    ) -> PendingChange:
        return PendingChange(
            change_id=uuid.uuid4().hex,
            kind=kind,
            employee_id=employee_id,
            work_date=work_date,
            revision=revision,
            payload=payload,
            state=SyncState.PENDING,
            created_at=now,
        )
