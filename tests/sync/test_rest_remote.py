from __future__ import annotations

from datetime import date, datetime, timezone

import pytest
import requests

from crew_ledger.core.enums import ChangeKind, EntryStatus, SyncState
from crew_ledger.core.exceptions import TransportError
from crew_ledger.entries.model import TimeEntry
from crew_ledger.sync.model import PendingChange
from crew_ledger.sync.payload import entry_to_payload
from crew_ledger.sync.rest_remote import RestRemoteStore

TS = datetime(2024, 3, 5, 9, 0, tzinfo=timezone.utc)


class FakeResponse:
    def __init__(self, status_code: int, body=None):
        self.status_code = status_code
        self._body = body

    def json(self):
        if self._body is None:
            raise ValueError("no JSON body")
        return self._body


class FakeSession:
    def __init__(self, *responses):
        self._responses = list(responses)
        self.calls = []

    def request(self, method, url, **kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        item = self._responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


def _entry(hours=8.0, status=EntryStatus.WORK, revision=5) -> TimeEntry:
    return TimeEntry(
        employee_id="jan",
        work_date=date(2024, 3, 5),
        hours=hours,
        status=status,
        revision=revision,
        updated_at=TS,
    )


def _change(entry: TimeEntry) -> PendingChange:
    return PendingChange(
        change_id="c1",
        kind=ChangeKind.ENTRY,
        employee_id=entry.employee_id,
        work_date=entry.work_date,
        revision=entry.revision,
        payload=entry_to_payload(entry),
        state=SyncState.PENDING,
        created_at=TS,
    )


def test_push_puts_entry_with_token_and_timeout():
    session = FakeSession(FakeResponse(201, {}))
    store = RestRemoteStore("https://remote.example/api/", api_token="secret", timeout=7, session=session)

    outcome = store.push(_change(_entry()))

    assert outcome.accepted
    call = session.calls[0]
    assert call["method"] == "PUT"
    assert call["url"] == "https://remote.example/api/time-entries/jan/2024-03-05"
    assert call["headers"]["Authorization"] == "Bearer secret"
    assert call["timeout"] == 7.0
    assert call["json"]["hours"] == 8.0


def test_push_refusal_returns_remote_current():
    current = entry_to_payload(_entry(hours=7.0, status=EntryStatus.VACATION, revision=7))
    store = RestRemoteStore("https://remote.example", session=FakeSession(FakeResponse(409, {"current": current})))

    outcome = store.push(_change(_entry()))

    assert not outcome.accepted
    assert outcome.current.revision == 7
    assert outcome.current.status == EntryStatus.VACATION


@pytest.mark.parametrize(
    "response, retryable",
    [
        (FakeResponse(503), True),
        (requests.Timeout("slow"), True),
        (requests.ConnectionError("refused"), True),
        (FakeResponse(400, {"error": "bad"}), False),
        (FakeResponse(409, {"current": {"employee_id": "jan"}}), False),
    ],
)
def test_push_failures_map_to_transport_error(response, retryable):
    store = RestRemoteStore("https://remote.example", session=FakeSession(response))

    with pytest.raises(TransportError) as exc_info:
        store.push(_change(_entry()))

    assert exc_info.value.retryable is retryable


def test_pull_decodes_change_batch():
    body = {
        "employees": [
            {
                "id": "jan",
                "name": "Jan Kowalski",
                "position": "Cieśla",
                "active": True,
                "revision": 1,
                "updated_at": "2024-03-01T08:00:00Z",
            }
        ],
        "entries": [entry_to_payload(_entry())],
        "cursor": 42,
    }
    session = FakeSession(FakeResponse(200, body))
    store = RestRemoteStore("https://remote.example", session=session)

    batch = store.pull(10)

    assert session.calls[0]["params"] == {"since": 10}
    assert session.calls[0]["url"] == "https://remote.example/changes"
    assert batch.cursor == 42
    assert batch.employees[0].updated_at == datetime(2024, 3, 1, 8, 0, tzinfo=timezone.utc)
    assert batch.entries[0] == _entry()


def test_pull_with_malformed_batch_is_not_retryable():
    store = RestRemoteStore("https://remote.example", session=FakeSession(FakeResponse(200, {"entries": [{"x": 1}]})))

    with pytest.raises(TransportError) as exc_info:
        store.pull(0)

    assert exc_info.value.retryable is False
