from __future__ import annotations

import math
from numbers import Real
from typing import Any

from ..core.constants import MAX_HOURS_PER_DAY, MIN_HOURS_PER_DAY
from ..core.enums import EntryStatus
from ..core.exceptions import ValidationError


def require_non_empty(value: str, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


def require_length(value: str, field_name: str, *, min_len: int = 0, max_len: int | None = None) -> str:
    if len(value) < min_len:
        raise ValidationError(f"{field_name} must have at least {min_len} characters")
    if max_len is not None and len(value) > max_len:
        raise ValidationError(f"{field_name} may have at most {max_len} characters")
    return value


def require_hours(value: Any) -> float:
    # bool is a Real subclass; True must not book one hour.
    if isinstance(value, bool) or not isinstance(value, Real):
        raise ValidationError("Hours must be a number")
    hours = float(value)
    if not math.isfinite(hours):
        raise ValidationError("Hours must be a finite number")
    if hours < MIN_HOURS_PER_DAY:
        raise ValidationError("Hours cannot be negative")
    if hours > MAX_HOURS_PER_DAY:
        raise ValidationError(f"Hours cannot exceed {MAX_HOURS_PER_DAY:g}")
    return hours


def require_status(value: Any) -> EntryStatus:
    if isinstance(value, EntryStatus):
        return value
    if isinstance(value, str):
        try:
            return EntryStatus(value.strip().lower())
        except ValueError:
            pass
    raise ValidationError(f"Invalid status: {value!r}")


def optional_text(value: Any, field_name: str) -> str | None:
    """Strip free text; blank becomes None."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field_name} must be text")
    return value.strip() or None


def require_id_list(value: Any, field_name: str = "employee_ids") -> list[str]:
    # A bare string is iterable too; "abc" must not become three ids.
    if isinstance(value, (str, bytes)) or not isinstance(value, (list, tuple)):
        raise ValidationError(f"{field_name} must be a list of ids")
    if not all(isinstance(item, str) for item in value):
        raise ValidationError(f"{field_name} may only contain string ids")
    return list(value)
