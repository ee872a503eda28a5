from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class Employee:
    """Domain entity: a crew member.

    Inactive employees are soft-deleted: they keep their history but are
    left out of bulk operations and default listings.
    """

    employee_id: str
    name: str
    position: str
    active: bool
    revision: int
    updated_at: datetime

    def same_values(self, other: "Employee") -> bool:
        return (self.name, self.position, self.active) == (other.name, other.position, other.active)
