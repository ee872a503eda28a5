from __future__ import annotations

from datetime import datetime, timedelta, timezone
import pytest

from crew_ledger.core.enums import ChangeKind
from crew_ledger.employees.model import Employee
from crew_ledger.ledger.bulk import BulkMutationEngine
from crew_ledger.ledger.memory_repository import InMemoryLedgerRepository
from crew_ledger.ledger.service import LedgerStore
from crew_ledger.sync.model import ChangeBatch, PendingChange, PushOutcome
from crew_ledger.sync.payload import employee_from_payload, entry_from_payload


class FakeClock:
    """Deterministic clock: every call moves one minute forward."""

    def __init__(self, start: datetime = datetime(2024, 3, 1, 8, 0, tzinfo=timezone.utc)):
        self._now = start

    def __call__(self) -> datetime:
        current = self._now
        self._now = self._now + timedelta(minutes=1)
        return current


class FakeRemoteStore:
    """In-memory stand-in for the shared remote store.

    Accepts a push unless it already holds a higher revision for the key,
    or the same revision with different values; every accepted write gets
    the next change sequence number, which is what ``pull`` pages by.
    ``rejections`` and ``bare_refusals`` make it turn down single keys.
    """

    def __init__(self):
        self.records: dict[tuple, object] = {}
        self.log: list[tuple[int, tuple]] = []
        self.pushed: list[PendingChange] = []
        self.push_failures: list[Exception] = []
        self.pull_failures: list[Exception] = []
        self.rejections: dict[tuple, Exception] = {}
        self.bare_refusals: set[tuple] = set()
        self._seq = 0

    @staticmethod
    def _key(record) -> tuple:
        if isinstance(record, Employee):
            return (ChangeKind.EMPLOYEE, record.employee_id, None)
        return (ChangeKind.ENTRY, record.employee_id, record.work_date)

    def put_remote(self, record) -> None:
        """Simulate a write made by another device."""
        key = self._key(record)
        self.records[key] = record
        self._seq += 1
        self.log.append((self._seq, key))

    def push(self, change: PendingChange) -> PushOutcome:
        if self.push_failures:
            raise self.push_failures.pop(0)
        if change.key in self.rejections:
            raise self.rejections[change.key]
        if change.key in self.bare_refusals:
            return PushOutcome(accepted=False)
        self.pushed.append(change)

        if change.kind == ChangeKind.EMPLOYEE:
            record = employee_from_payload(change.payload)
        else:
            record = entry_from_payload(change.payload)
        current = self.records.get(change.key)
        if current is not None:
            if current.revision > record.revision:
                return PushOutcome(accepted=False, current=current)
            if current.revision == record.revision and not current.same_values(record):
                return PushOutcome(accepted=False, current=current)
        self.put_remote(record)
        return PushOutcome(accepted=True)

    def pull(self, since: int) -> ChangeBatch:
        if self.pull_failures:
            raise self.pull_failures.pop(0)
        keys = list(dict.fromkeys(key for seq, key in self.log if seq > since))
        records = [self.records[k] for k in keys]
        return ChangeBatch(
            employees=[r for r in records if isinstance(r, Employee)],
            entries=[r for r in records if not isinstance(r, Employee)],
            cursor=self._seq,
        )

@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def repo() -> InMemoryLedgerRepository:
    return InMemoryLedgerRepository()


@pytest.fixture
def store(repo, clock) -> LedgerStore:
    return LedgerStore(repo, clock=clock)


@pytest.fixture
def bulk(store) -> BulkMutationEngine:
    return BulkMutationEngine(store)


@pytest.fixture
def remote() -> FakeRemoteStore:
    return FakeRemoteStore()


@pytest.fixture
def crew(store) -> dict[str, Employee]:
    jan = store.add_employee("Jan Kowalski", "Cieśla")
    piotr = store.add_employee("Piotr Nowak", "Murarz")
    return {"jan": jan, "piotr": piotr}
