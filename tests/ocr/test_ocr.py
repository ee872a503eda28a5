from __future__ import annotations

from datetime import date

import pytest

from crew_ledger.core.enums import EntryStatus
from crew_ledger.core.exceptions import ValidationError
from crew_ledger.ocr.extractor import SlipTextExtractor, find_date, find_hours
from crew_ledger.ocr.model import OcrFields
from crew_ledger.ocr.service import OcrProposalService


class FakeOcrEngine:
    def __init__(self, fields: OcrFields):
        self.fields = fields
        self.calls = 0

    def extract_fields(self, image_data: bytes) -> OcrFields:
        self.calls += 1
        return self.fields


@pytest.mark.parametrize(
    "text, expected",
    [
        ("Data: 2024-03-05", date(2024, 3, 5)),
        ("Dzień 05.03.2024 budowa", date(2024, 3, 5)),
        ("05/03/2024", date(2024, 3, 5)),
        ("31.02.2024 then 2024-03-01", date(2024, 3, 1)),
        ("no date here", None),
    ],
)
def test_find_date(text, expected):
    assert find_date(text) == expected


@pytest.mark.parametrize(
    "text, expected",
    [
        ("Praca 8h", 8.0),
        ("7,5 godz.", 7.5),
        ("Stunden: 7.5", 7.5),
        ("hours 6", 6.0),
        ("Nr 12345", None),
    ],
)
def test_find_hours(text, expected):
    assert find_hours(text) == expected


def test_slip_extractor_parses_recognised_text():
    extractor = SlipTextExtractor(lambda data: "  Budowa A \n\n 05.03.2024 \n Czas: 8h  ")

    fields = extractor.extract_fields(b"jpeg")

    assert fields.candidate_text == "Budowa A\n05.03.2024\nCzas: 8h"
    assert fields.candidate_date == date(2024, 3, 5)
    assert fields.candidate_hours == 8.0


def test_proposal_goes_through_validated_upsert(store, crew):
    engine = FakeOcrEngine(OcrFields(candidate_text="8h", candidate_date=date(2024, 3, 5), candidate_hours=8.0))
    service = OcrProposalService(store, engine)

    proposal = service.propose_entry(crew["jan"].employee_id, b"jpeg")

    assert proposal.prior is None
    assert proposal.entry.hours == 8.0
    assert proposal.entry.status == EntryStatus.WORK
    assert proposal.entry.note == "OCR"


def test_proposal_uses_fallback_date(store, crew):
    engine = FakeOcrEngine(OcrFields(candidate_text="4h", candidate_hours=4.0))
    service = OcrProposalService(store, engine)

    proposal = service.propose_entry(crew["jan"].employee_id, b"jpeg", status="sick", fallback_date=date(2024, 3, 7))

    assert proposal.entry.work_date == date(2024, 3, 7)
    assert proposal.entry.status == EntryStatus.SICK


def test_proposal_without_hours_or_with_invalid_hours_is_rejected(store, crew):
    missing = OcrProposalService(store, FakeOcrEngine(OcrFields(candidate_date=date(2024, 3, 5))))
    with pytest.raises(ValidationError):
        missing.propose_entry(crew["jan"].employee_id, b"jpeg")

    too_many = OcrProposalService(
        store, FakeOcrEngine(OcrFields(candidate_date=date(2024, 3, 5), candidate_hours=30.0))
    )
    with pytest.raises(ValidationError):
        too_many.propose_entry(crew["jan"].employee_id, b"jpeg")

    assert store.get_entry(crew["jan"].employee_id, "2024-03-05") is None
