from __future__ import annotations

import calendar
from datetime import date, datetime, timezone
from typing import Union

from ..core.exceptions import ValidationError

YearMonth = Union[str, date]


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid date (YYYY-MM-DD): {value!r}")


def as_date(value: date | str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return parse_iso_date(value)


def parse_year_month(value: YearMonth) -> tuple[int, int]:
    """Accept 'YYYY-MM' or any date inside the month."""
    if isinstance(value, date):
        return value.year, value.month
    try:
        parsed = datetime.strptime(str(value).strip(), "%Y-%m")
    except ValueError:
        raise ValidationError(f"Invalid month (YYYY-MM): {value!r}")
    return parsed.year, parsed.month


def month_bounds(value: YearMonth) -> tuple[date, date]:
    year, month = parse_year_month(value)
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def format_year_month(value: YearMonth) -> str:
    year, month = parse_year_month(value)
    return f"{year:04d}-{month:02d}"


def now_utc() -> datetime:
    """Current UTC time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now(timezone.utc)
