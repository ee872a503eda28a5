from __future__ import annotations

import re
from datetime import date, datetime
from typing import Callable, Optional, Protocol

from .model import OcrFields


class OcrEngine(Protocol):
    """Black-box OCR service."""

    def extract_fields(self, image_data: bytes) -> OcrFields:
        raise NotImplementedError


_DATE_PATTERNS = (
    (re.compile(r"\b(\d{4}-\d{2}-\d{2})\b"), "%Y-%m-%d"),
    (re.compile(r"\b(\d{2}\.\d{2}\.\d{4})\b"), "%d.%m.%Y"),
    (re.compile(r"\b(\d{2}/\d{2}/\d{4})\b"), "%d/%m/%Y"),
)

# "8h", "7,5 h", "8 godz", "Stunden: 7.5", "hours 6"
_HOURS_PATTERNS = (
    re.compile(r"\b(\d{1,2}(?:[.,]\d{1,2})?)\s*(?:h|godz\w*|std\w*|hours?)\b", re.IGNORECASE),
    re.compile(r"(?:godz\w*|stunden|std|hours?)\s*[:=]?\s*(\d{1,2}(?:[.,]\d{1,2})?)", re.IGNORECASE),
)


def find_date(text: str) -> Optional[date]:
    for pattern, fmt in _DATE_PATTERNS:
        for match in pattern.finditer(text):
            try:
                return datetime.strptime(match.group(1), fmt).date()
            except ValueError:
                continue
    return None


def find_hours(text: str) -> Optional[float]:
    for pattern in _HOURS_PATTERNS:
        match = pattern.search(text)
        if match:
            return float(match.group(1).replace(",", "."))
    return None


class SlipTextExtractor(OcrEngine):
    """Turns raw recognised text into field guesses.

    ``recognize`` is the actual character recognition (an external service);
    this class only does the parsing on top of it.
    """

    def __init__(self, recognize: Callable[[bytes], str]):
        self._recognize = recognize

    def extract_fields(self, image_data: bytes) -> OcrFields:
        text = self._recognize(image_data) or ""
        lines = [line.strip() for line in text.splitlines() if line.strip()]
        joined = "\n".join(lines)
        return OcrFields(
            candidate_text=joined,
            candidate_date=find_date(joined),
            candidate_hours=find_hours(joined),
        )
