"""Plain-dict encoding of employees and entries.

Used for the sync queue payloads, the remote wire format and the MySQL
``payload`` column, so the three always agree.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from ..common.datetime_utils import parse_iso_date
from ..core.enums import EntryStatus
from ..employees.model import Employee
from ..entries.model import TimeEntry


def _parse_ts(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def employee_to_payload(employee: Employee) -> dict[str, Any]:
    return {
        "id": employee.employee_id,
        "name": employee.name,
        "position": employee.position,
        "active": employee.active,
        "revision": employee.revision,
        "updated_at": employee.updated_at.isoformat(),
    }


def employee_from_payload(data: dict[str, Any]) -> Employee:
    return Employee(
        employee_id=str(data["id"]),
        name=str(data["name"]),
        position=str(data["position"]),
        active=bool(data.get("active", True)),
        revision=int(data["revision"]),
        updated_at=_parse_ts(data["updated_at"]),
    )


def entry_to_payload(entry: TimeEntry) -> dict[str, Any]:
    return {
        "employee_id": entry.employee_id,
        "date": entry.work_date.isoformat(),
        "hours": entry.hours,
        "status": entry.status.value if entry.status else None,
        "notes": entry.note,
        "revision": entry.revision,
        "updated_at": entry.updated_at.isoformat(),
    }


def entry_from_payload(data: dict[str, Any]) -> TimeEntry:
    status = data.get("status")
    return TimeEntry(
        employee_id=str(data["employee_id"]),
        work_date=parse_iso_date(str(data["date"])),
        hours=float(data["hours"]),
        status=EntryStatus(status) if status else None,
        revision=int(data["revision"]),
        updated_at=_parse_ts(data["updated_at"]),
        note=data.get("notes"),
    )
