from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Any, Iterator, Optional, Sequence

import mysql.connector

from ..core.enums import ChangeAction, ChangeKind, EntryStatus, SyncState
from ..core.exceptions import AuditWriteError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import (
    db_cursor,
    fetchall,
    fetchone,
    from_db_datetime,
    from_db_json,
    to_db_datetime,
    to_db_json,
)
from ..employees.model import Employee
from ..entries.model import TimeEntry
from ..history.model import ChangeHistoryEntry
from ..sync.model import PendingChange, SyncMeta
from .model import LedgerMutation
from .repository import LedgerRepository

_EMPLOYEE_COLUMNS = "employee_id, name, position, active, revision, updated_at"
_ENTRY_COLUMNS = "employee_id, work_date, hours, status, note, revision, updated_at"
_HISTORY_COLUMNS = "seq, history_id, action, employee_id, description, old_value, new_value, actor, created_at"
_CHANGE_COLUMNS = (
    "change_id, kind, employee_id, work_date, revision, payload, state, "
    "retry_count, error_message, created_at, synced_at"
)


def _row_to_employee(r: dict[str, Any]) -> Employee:
    return Employee(
        employee_id=str(r["employee_id"]),
        name=r["name"],
        position=r["position"],
        active=bool(r["active"]),
        revision=int(r["revision"]),
        updated_at=from_db_datetime(r["updated_at"]),
    )


def _row_to_entry(r: dict[str, Any]) -> TimeEntry:
    return TimeEntry(
        employee_id=str(r["employee_id"]),
        work_date=r["work_date"],
        hours=float(r["hours"]),
        status=EntryStatus(r["status"]) if r.get("status") else None,
        revision=int(r["revision"]),
        updated_at=from_db_datetime(r["updated_at"]),
        note=r.get("note"),
    )


def _row_to_history(r: dict[str, Any]) -> ChangeHistoryEntry:
    return ChangeHistoryEntry(
        history_id=r["history_id"],
        seq=int(r["seq"]),
        action=ChangeAction(r["action"]),
        description=r["description"],
        actor=r["actor"],
        created_at=from_db_datetime(r["created_at"]),
        employee_id=r.get("employee_id"),
        old_value=from_db_json(r.get("old_value")),
        new_value=from_db_json(r.get("new_value")),
    )


def _row_to_change(r: dict[str, Any]) -> PendingChange:
    return PendingChange(
        change_id=r["change_id"],
        kind=ChangeKind(r["kind"]),
        employee_id=str(r["employee_id"]),
        work_date=r.get("work_date"),
        revision=int(r["revision"]),
        payload=from_db_json(r["payload"]) or {},
        state=SyncState(r["state"]),
        created_at=from_db_datetime(r["created_at"]),
        retry_count=int(r.get("retry_count") or 0),
        error_message=r.get("error_message"),
        synced_at=from_db_datetime(r.get("synced_at")),
    )


class MySQLLedgerRepository(LedgerRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    # Employees
    def get_employee(self, employee_id: str) -> Optional[Employee]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_EMPLOYEE_COLUMNS} FROM employees WHERE employee_id=%s", (employee_id,))
            r = fetchone(cur)
            return _row_to_employee(r) if r else None

    def list_employees(self, *, active: Optional[bool] = None) -> Sequence[Employee]:
        sql = f"SELECT {_EMPLOYEE_COLUMNS} FROM employees"
        params: list[object] = []
        if active is not None:
            sql += " WHERE active=%s"
            params.append(1 if active else 0)
        sql += " ORDER BY name ASC, employee_id ASC"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [_row_to_employee(r) for r in fetchall(cur)]

    # Entries
    def get_entry(self, employee_id: str, work_date: date) -> Optional[TimeEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_ENTRY_COLUMNS} FROM time_entries WHERE employee_id=%s AND work_date=%s",
                (employee_id, work_date),
            )
            r = fetchone(cur)
            return _row_to_entry(r) if r else None

    def iter_entries(
        self,
        *,
        employee_id: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Iterator[TimeEntry]:
        clauses: list[str] = []
        params: list[object] = []
        if employee_id is not None:
            clauses.append("employee_id=%s")
            params.append(employee_id)
        if start_date is not None:
            clauses.append("work_date >= %s")
            params.append(start_date)
        if end_date is not None:
            clauses.append("work_date <= %s")
            params.append(end_date)

        sql = f"SELECT {_ENTRY_COLUMNS} FROM time_entries"
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY work_date ASC, employee_id ASC"

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            rows = fetchall(cur)
        return (_row_to_entry(r) for r in rows)

    # Change history
    def iter_history(
        self,
        *,
        employee_id: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Iterator[ChangeHistoryEntry]:
        clauses: list[str] = []
        params: list[object] = []
        if employee_id is not None:
            clauses.append("employee_id=%s")
            params.append(employee_id)
        if start_date is not None:
            clauses.append("DATE(created_at) >= %s")
            params.append(start_date)
        if end_date is not None:
            clauses.append("DATE(created_at) <= %s")
            params.append(end_date)

        sql = f"SELECT {_HISTORY_COLUMNS} FROM change_history"
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY seq DESC"

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            rows = fetchall(cur)
        return (_row_to_history(r) for r in rows)

    def count_history(self) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS n FROM change_history")
            r = fetchone(cur)
            return int(r["n"]) if r else 0

    def commit(self, mutation: LedgerMutation) -> ChangeHistoryEntry:
        h = mutation.history
        history_id = uuid.uuid4().hex

        with db_cursor(self._conn_factory) as (_, cur):
            if mutation.employee is not None:
                e = mutation.employee
                cur.execute(
                    """
                    INSERT INTO employees(employee_id, name, position, active, revision, updated_at)
                    VALUES(%s,%s,%s,%s,%s,%s)
                    ON DUPLICATE KEY UPDATE
                        name=VALUES(name), position=VALUES(position), active=VALUES(active),
                        revision=VALUES(revision), updated_at=VALUES(updated_at)
                    """,
                    (e.employee_id, e.name, e.position, 1 if e.active else 0, e.revision, to_db_datetime(e.updated_at)),
                )
            if mutation.entry is not None:
                t = mutation.entry
                cur.execute(
                    """
                    INSERT INTO time_entries(employee_id, work_date, hours, status, note, revision, updated_at)
                    VALUES(%s,%s,%s,%s,%s,%s,%s)
                    ON DUPLICATE KEY UPDATE
                        hours=VALUES(hours), status=VALUES(status), note=VALUES(note),
                        revision=VALUES(revision), updated_at=VALUES(updated_at)
                    """,
                    (
                        t.employee_id,
                        t.work_date,
                        t.hours,
                        t.status.value if t.status else None,
                        t.note,
                        t.revision,
                        to_db_datetime(t.updated_at),
                    ),
                )
            if mutation.change is not None:
                c = mutation.change
                if c.work_date is None:
                    cur.execute(
                        "DELETE FROM sync_queue WHERE state=%s AND kind=%s AND employee_id=%s AND work_date IS NULL",
                        (SyncState.PENDING.value, c.kind.value, c.employee_id),
                    )
                else:
                    cur.execute(
                        "DELETE FROM sync_queue WHERE state=%s AND kind=%s AND employee_id=%s AND work_date=%s",
                        (SyncState.PENDING.value, c.kind.value, c.employee_id, c.work_date),
                    )
                cur.execute(
                    f"""
                    INSERT INTO sync_queue({_CHANGE_COLUMNS})
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        c.change_id,
                        c.kind.value,
                        c.employee_id,
                        c.work_date,
                        c.revision,
                        to_db_json(c.payload),
                        c.state.value,
                        c.retry_count,
                        c.error_message,
                        to_db_datetime(c.created_at),
                        to_db_datetime(c.synced_at),
                    ),
                )

            try:
                cur.execute(
                    """
                    INSERT INTO change_history(history_id, action, employee_id, description, old_value, new_value, actor, created_at)
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        history_id,
                        h.action.value,
                        h.employee_id,
                        h.description,
                        to_db_json(h.old_value),
                        to_db_json(h.new_value),
                        h.actor,
                        to_db_datetime(h.created_at),
                    ),
                )
                seq = int(cur.lastrowid)
            except mysql.connector.Error as exc:
                # Propagating rolls back the state written above.
                raise AuditWriteError(f"Could not write change history: {exc}") from exc

        return ChangeHistoryEntry(
            history_id=history_id,
            seq=seq,
            action=h.action,
            description=h.description,
            actor=h.actor,
            created_at=h.created_at,
            employee_id=h.employee_id,
            old_value=h.old_value,
            new_value=h.new_value,
        )

    # Sync metadata and queue
    def next_revision(self) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE sync_meta SET local_revision=LAST_INSERT_ID(local_revision + 1) WHERE id=1")
            cur.execute("SELECT LAST_INSERT_ID() AS rev")
            r = fetchone(cur)
            return int(r["rev"])

    def observe_revision(self, revision: int) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE sync_meta SET local_revision=GREATEST(local_revision, %s) WHERE id=1",
                (int(revision),),
            )

    def get_sync_meta(self) -> SyncMeta:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT local_revision, last_synced_revision, last_synced_at FROM sync_meta WHERE id=1")
            r = fetchone(cur)
        if not r:
            return SyncMeta()
        return SyncMeta(
            local_revision=int(r["local_revision"]),
            last_synced_revision=int(r["last_synced_revision"]),
            last_synced_at=from_db_datetime(r.get("last_synced_at")),
        )

    def set_sync_cursor(self, *, last_synced_revision: int, last_synced_at: datetime) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE sync_meta SET last_synced_revision=%s, last_synced_at=%s WHERE id=1",
                (int(last_synced_revision), to_db_datetime(last_synced_at)),
            )

    def list_changes(self, *, state: Optional[SyncState] = None) -> Sequence[PendingChange]:
        sql = f"SELECT {_CHANGE_COLUMNS} FROM sync_queue"
        params: tuple = ()
        if state is not None:
            sql += " WHERE state=%s"
            params = (state.value,)
        sql += " ORDER BY revision ASC, created_at ASC"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, params)
            return [_row_to_change(r) for r in fetchall(cur)]

    def update_change(
        self,
        change_id: str,
        *,
        state: SyncState,
        error_message: Optional[str] = None,
        synced_at: Optional[datetime] = None,
        retry_increment: bool = False,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE sync_queue
                SET state=%s, error_message=%s, synced_at=COALESCE(%s, synced_at), retry_count=retry_count + %s
                WHERE change_id=%s
                """,
                (state.value, error_message, to_db_datetime(synced_at), 1 if retry_increment else 0, change_id),
            )
            return cur.rowcount > 0

    def delete_changes(self, *, state: SyncState) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM sync_queue WHERE state=%s", (state.value,))
            return int(cur.rowcount)
