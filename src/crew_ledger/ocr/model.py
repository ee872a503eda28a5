from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional


@dataclass(frozen=True)
class OcrFields:
    """Best-effort guesses read off a scanned slip. Any field may be missing."""

    candidate_text: str = ""
    candidate_date: Optional[date] = None
    candidate_hours: Optional[float] = None
