from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Optional

from ..core.enums import EntryStatus
from ..core.exceptions import ValidationError
from ..entries.model import TimeEntry
from ..ledger.service import LedgerStore
from .extractor import OcrEngine
from .model import OcrFields

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OcrProposal:
    fields: OcrFields
    prior: Optional[TimeEntry]
    entry: Optional[TimeEntry]


class OcrProposalService:
    """Feeds OCR guesses into the ledger through the normal validated write."""

    def __init__(self, store: LedgerStore, engine: OcrEngine):
        self._store = store
        self._engine = engine

    def read(self, image_data: bytes) -> OcrFields:
        return self._engine.extract_fields(image_data)

    def propose_entry(
        self,
        employee_id: str,
        image_data: bytes,
        *,
        status: Any = EntryStatus.WORK,
        fallback_date: Optional[date] = None,
        actor: Optional[str] = None,
    ) -> OcrProposal:
        fields = self.read(image_data)
        work_date = fields.candidate_date or fallback_date
        if work_date is None:
            raise ValidationError("No date could be read from the document")
        if fields.candidate_hours is None:
            raise ValidationError("No hours could be read from the document")

        prior = self._store.upsert_entry(
            employee_id,
            work_date,
            fields.candidate_hours,
            status,
            note="OCR",
            actor=actor,
        )
        logger.info("OCR proposal booked employee=%s date=%s hours=%s", employee_id, work_date, fields.candidate_hours)
        return OcrProposal(fields=fields, prior=prior, entry=self._store.get_entry(employee_id, work_date))
