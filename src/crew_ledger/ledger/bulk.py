from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Optional, Sequence

from ..common.validators import optional_text, require_id_list
from ..core.exceptions import DomainError, NotFoundError, ValidationError
from .service import LedgerStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BulkFailure:
    employee_id: str
    reason: str
    error_type: str


@dataclass
class BulkResult:
    succeeded: list[str] = field(default_factory=list)
    failed: list[BulkFailure] = field(default_factory=list)

    @property
    def all_succeeded(self) -> bool:
        return not self.failed

    def to_dict(self) -> dict:
        return {
            "succeeded": list(self.succeeded),
            "failed": [
                {"employee_id": f.employee_id, "reason": f.reason, "error_type": f.error_type} for f in self.failed
            ],
        }


class BulkMutationEngine:
    """Apply one (hours, status) pair to many employees for one day.

    Each employee's write is atomic on its own; a failure for one employee
    never rolls back writes already made for the others.
    """

    def __init__(self, store: LedgerStore):
        self._store = store

    def apply_bulk(
        self,
        employee_ids: Sequence[str],
        work_date: date | str,
        hours: Any,
        status: Any,
        *,
        note: Optional[str] = None,
        actor: Optional[str] = None,
    ) -> BulkResult:
        ids = list(dict.fromkeys(require_id_list(employee_ids)))
        if not ids:
            raise ValidationError("Select at least one employee")
        note = optional_text(note, "Note")

        result = BulkResult()
        with self._store.lock:
            for employee_id in ids:
                try:
                    employee = self._store.find_employee(employee_id)
                    if employee is None:
                        raise NotFoundError(f"Unknown employee: {employee_id}")
                    if not employee.active:
                        raise ValidationError(f"Employee {employee.name} is inactive")
                    self._store.upsert_entry(employee_id, work_date, hours, status, note=note, actor=actor)
                except (ValidationError, NotFoundError) as exc:
                    result.failed.append(BulkFailure(employee_id, str(exc), type(exc).__name__))
                except DomainError as exc:
                    # AuditWriteError and friends: this employee's write was not committed.
                    logger.error("bulk write failed employee=%s: %s", employee_id, exc)
                    result.failed.append(BulkFailure(employee_id, str(exc), type(exc).__name__))
                else:
                    result.succeeded.append(employee_id)

        if result.failed:
            logger.warning(
                "bulk write date=%s: %d succeeded, %d failed (%s)",
                work_date,
                len(result.succeeded),
                len(result.failed),
                ", ".join(f"{f.employee_id}: {f.reason}" for f in result.failed),
            )
        return result

    def apply_to_crew(
        self,
        work_date: date | str,
        hours: Any,
        status: Any,
        *,
        note: Optional[str] = None,
        actor: Optional[str] = None,
    ) -> BulkResult:
        """Book the same day for every active employee."""

        ids = [e.employee_id for e in self._store.list_employees()]
        return self.apply_bulk(ids, work_date, hours, status, note=note, actor=actor)
