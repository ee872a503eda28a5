from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Optional

from ..core.constants import SYNC_BACKOFF_SECONDS, SYNC_MAX_RETRIES
from ..core.enums import ChangeKind, SyncPhase, SyncState
from ..core.exceptions import SyncCancelled, TransportError
from ..employees.model import Employee
from ..ledger.service import LedgerStore
from .model import ChangeBatch, ConflictResolved, PendingChange, SyncRecord, SyncResult, SyncStats
from .payload import employee_from_payload, entry_from_payload
from .remote import RemoteStore

logger = logging.getLogger(__name__)

# Refusals that concern the whole session rather than one change.
_SESSION_STATUS = (401, 403)


def _record_key(record: SyncRecord) -> tuple:
    if isinstance(record, Employee):
        return (ChangeKind.EMPLOYEE, record.employee_id, None)
    return (ChangeKind.ENTRY, record.employee_id, record.work_date)


def _same_values(a: SyncRecord, b: SyncRecord) -> bool:
    return type(a) is type(b) and a.same_values(b)


class SyncReconciler:
    """Push local changes, pull remote ones, settle conflicts last-writer-wins.

    One cycle runs ``idle -> pushing -> pulling -> reconciling -> idle``;
    a retryable or session-wide TransportError ends it in ``failed`` with the
    ledger untouched by the failed phase and unsent changes still pending.
    A change the remote refuses on its own is reported in the result and
    retried on later cycles; after ``max_item_retries`` attempts it is set
    aside as ``failed`` so it no longer holds up the queue.
    """

    def __init__(self, store: LedgerStore, remote: RemoteStore, *, max_item_retries: int = SYNC_MAX_RETRIES):
        self._store = store
        self._repo = store.repository
        self._remote = remote
        self._max_item_retries = max(1, max_item_retries)
        self._phase = SyncPhase.IDLE
        self._cycle_lock = threading.Lock()

    @property
    def phase(self) -> SyncPhase:
        return self._phase

    def _set_phase(self, phase: SyncPhase) -> None:
        if phase != self._phase:
            logger.debug("sync phase %s -> %s", self._phase.value, phase.value)
        self._phase = phase

    @staticmethod
    def _check_cancel(cancel: Optional[threading.Event]) -> None:
        if cancel is not None and cancel.is_set():
            raise SyncCancelled("sync cancelled")

    def run_cycle(self, cancel: Optional[threading.Event] = None) -> SyncResult:
        result = SyncResult()
        if not self._cycle_lock.acquire(blocking=False):
            result.phase = self._phase
            result.errors.append({"item_id": "global", "error": "sync already running", "retryable": True})
            return result

        try:
            try:
                refused = self._push(result, cancel)
                batch = self._pull(result, cancel)
                self._reconcile(batch, refused, result)
                self._set_phase(SyncPhase.IDLE)
            except SyncCancelled:
                logger.info("sync cycle cancelled after %d pushed", result.pushed)
                result.cancelled = True
                self._set_phase(SyncPhase.IDLE)
            except TransportError as exc:
                logger.warning("sync cycle failed in %s: %s", self._phase.value, exc)
                result.errors.append({"item_id": "global", "error": str(exc), "retryable": exc.retryable})
                self._set_phase(SyncPhase.FAILED)
            result.phase = self._phase
            return result
        finally:
            self._cycle_lock.release()

    def _push(self, result: SyncResult, cancel: Optional[threading.Event]) -> dict[tuple, tuple[PendingChange, SyncRecord]]:
        self._set_phase(SyncPhase.PUSHING)
        refused: dict[tuple, tuple[PendingChange, SyncRecord]] = {}

        for change in self._repo.list_changes(state=SyncState.PENDING):
            self._check_cancel(cancel)
            try:
                outcome = self._remote.push(change)
            except TransportError as exc:
                if exc.retryable or exc.status_code in _SESSION_STATUS:
                    self._repo.update_change(
                        change.change_id,
                        state=SyncState.PENDING,
                        error_message=str(exc),
                        retry_increment=True,
                    )
                    result.errors.append({"item_id": change.change_id, "error": str(exc), "retryable": exc.retryable})
                    raise
                self._item_failed(change, str(exc), result)
                continue

            if outcome.accepted:
                self._repo.update_change(change.change_id, state=SyncState.SYNCED, synced_at=self._store.now())
                result.pushed += 1
            elif outcome.current is not None:
                # Stays pending until the remote copy is applied below.
                refused[change.key] = (change, outcome.current)
            else:
                self._item_failed(change, "remote refused the change without its current record", result)
        return refused

    def _item_failed(self, change: PendingChange, message: str, result: SyncResult) -> None:
        attempts = change.retry_count + 1
        state = SyncState.FAILED if attempts >= self._max_item_retries else SyncState.PENDING
        self._repo.update_change(change.change_id, state=state, error_message=message, retry_increment=True)
        result.errors.append({"item_id": change.change_id, "error": message, "retryable": state == SyncState.PENDING})
        logger.warning(
            "push of %s %s %s refused (attempt %d): %s",
            change.kind.value,
            change.employee_id,
            change.work_date,
            attempts,
            message,
        )
        if state == SyncState.FAILED:
            logger.error("change %s set aside after %d attempts", change.change_id, attempts)

    def _pull(self, result: SyncResult, cancel: Optional[threading.Event]) -> ChangeBatch:
        self._check_cancel(cancel)
        self._set_phase(SyncPhase.PULLING)
        since = self._repo.get_sync_meta().last_synced_revision
        batch = self._remote.pull(since)
        result.pulled = len(batch.employees) + len(batch.entries)
        self._check_cancel(cancel)
        return batch

    def _reconcile(
        self,
        batch: ChangeBatch,
        refused: dict[tuple, tuple[PendingChange, SyncRecord]],
        result: SyncResult,
    ) -> None:
        self._set_phase(SyncPhase.RECONCILING)

        incoming: dict[tuple, SyncRecord] = {key: current for key, (_, current) in refused.items()}
        for record in [*batch.employees, *batch.entries]:
            key = _record_key(record)
            seen = incoming.get(key)
            if seen is None or record.revision >= seen.revision:
                incoming[key] = record

        # Employees first so their entries always have a local owner.
        ordered = sorted(incoming.items(), key=lambda kv: 0 if kv[0][0] == ChangeKind.EMPLOYEE else 1)

        with self._store.lock:
            pending = {c.key: c for c in self._repo.list_changes(state=SyncState.PENDING)}
            for key, remote in ordered:
                change = pending.get(key)
                if change is not None:
                    self._settle_conflict(change, remote, result)
                else:
                    self._apply_if_newer(key, remote, result)

            meta = self._repo.get_sync_meta()
            if incoming:
                self._repo.observe_revision(max(r.revision for r in incoming.values()))
            cursor = meta.last_synced_revision if result.cursor_held else max(meta.last_synced_revision, batch.cursor)
            self._repo.set_sync_cursor(last_synced_revision=cursor, last_synced_at=self._store.now())

        if result.conflicts:
            logger.info("sync reconciled %d conflict(s)", len(result.conflicts))

    def _settle_conflict(self, change: PendingChange, remote: SyncRecord, result: SyncResult) -> None:
        local = self._decode(change)

        if remote.revision == change.revision and _same_values(local, remote):
            # Our own write already reached the remote (e.g. response lost).
            self._repo.update_change(change.change_id, state=SyncState.SYNCED, synced_at=self._store.now())
            return

        if remote.revision < change.revision:
            # Local is newer; it stays pending and goes out next cycle.
            logger.debug("local change %s wins over remote revision %s", change.change_id, remote.revision)
            return

        if change.kind == ChangeKind.EMPLOYEE:
            self._store.apply_remote_employee(remote, superseded=change.payload)
        else:
            self._store.apply_remote_entry(remote, superseded=change.payload)
        self._repo.update_change(
            change.change_id,
            state=SyncState.CONFLICTED,
            error_message=f"superseded by remote revision {remote.revision}",
        )
        result.applied += 1
        result.conflicts.append(
            ConflictResolved(
                kind=change.kind,
                employee_id=change.employee_id,
                work_date=change.work_date,
                local=local,
                remote=remote,
                winner="remote",
            )
        )
        logger.info(
            "conflict on %s %s %s: local revision %s superseded by remote revision %s",
            change.kind.value,
            change.employee_id,
            change.work_date,
            change.revision,
            remote.revision,
        )

    def _apply_if_newer(self, key: tuple, remote: SyncRecord, result: SyncResult) -> None:
        kind, employee_id, work_date = key
        if kind == ChangeKind.EMPLOYEE:
            local = self._repo.get_employee(employee_id)
        else:
            if self._repo.get_employee(employee_id) is None:
                # Pulled again next cycle, once the owner has arrived.
                logger.warning("holding remote entry for unknown employee %s", employee_id)
                result.cursor_held = True
                return
            local = self._repo.get_entry(employee_id, work_date)

        if local is not None and local.revision >= remote.revision:
            return

        if kind == ChangeKind.EMPLOYEE:
            self._store.apply_remote_employee(remote)
        else:
            self._store.apply_remote_entry(remote)
        result.applied += 1

    @staticmethod
    def _decode(change: PendingChange) -> SyncRecord:
        if change.kind == ChangeKind.EMPLOYEE:
            return employee_from_payload(change.payload)
        return entry_from_payload(change.payload)

    def run_with_retry(
        self,
        *,
        max_attempts: int = SYNC_MAX_RETRIES,
        base_delay: float = SYNC_BACKOFF_SECONDS,
        cancel: Optional[threading.Event] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> SyncResult:
        """Run cycles until one does not fail, backing off exponentially."""

        attempt = 0
        while True:
            attempt += 1
            result = self.run_cycle(cancel)
            if result.phase != SyncPhase.FAILED:
                return result
            if attempt >= max_attempts or not all(e.get("retryable") for e in result.errors):
                return result

            delay = base_delay * (2 ** (attempt - 1))
            logger.warning("sync attempt %d failed, retrying in %.1fs", attempt, delay)
            if cancel is not None:
                if cancel.wait(delay):
                    result.cancelled = True
                    return result
            else:
                sleep(delay)

    def stats(self) -> SyncStats:
        changes = self._repo.list_changes()
        meta = self._repo.get_sync_meta()
        return SyncStats(
            pending=sum(1 for c in changes if c.state == SyncState.PENDING),
            synced=sum(1 for c in changes if c.state == SyncState.SYNCED),
            conflicted=sum(1 for c in changes if c.state == SyncState.CONFLICTED),
            total=len(changes),
            last_sync=meta.last_synced_at,
            failed=sum(1 for c in changes if c.state == SyncState.FAILED),
        )

    def has_pending(self) -> bool:
        return bool(self._repo.list_changes(state=SyncState.PENDING))

    def cleanup_synced(self) -> int:
        return self._repo.delete_changes(state=SyncState.SYNCED)


class BackgroundSync:
    """Runs sync off the caller's thread; the Future is the completion signal."""

    def __init__(
        self,
        reconciler: SyncReconciler,
        *,
        max_attempts: int = SYNC_MAX_RETRIES,
        base_delay: float = SYNC_BACKOFF_SECONDS,
    ):
        self._reconciler = reconciler
        self._max_attempts = max_attempts
        self._base_delay = base_delay
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="crew-ledger-sync")
        self._cancel = threading.Event()
        self._future: Optional[Future] = None
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._future is not None and not self._future.done()

    def start(self) -> Future:
        with self._lock:
            if self.running:
                return self._future
            self._cancel = threading.Event()
            self._future = self._executor.submit(
                self._reconciler.run_with_retry,
                max_attempts=self._max_attempts,
                base_delay=self._base_delay,
                cancel=self._cancel,
            )
            return self._future

    def cancel(self) -> None:
        self._cancel.set()

    def shutdown(self, *, wait: bool = True) -> None:
        self._cancel.set()
        self._executor.shutdown(wait=wait)
