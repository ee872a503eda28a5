from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .core.constants import DEFAULT_ACTOR, REMOTE_TIMEOUT_SECONDS, SYNC_BACKOFF_SECONDS, SYNC_MAX_RETRIES
from .core.exceptions import ValidationError
from .database.connection import DBConfig, DatabaseConnection
from .history.service import AuditTrail
from .ledger.bulk import BulkMutationEngine
from .ledger.memory_repository import InMemoryLedgerRepository
from .ledger.mysql_ledger_repository import MySQLLedgerRepository
from .ledger.repository import LedgerRepository
from .ledger.service import LedgerStore
from .ocr.extractor import OcrEngine
from .ocr.service import OcrProposalService
from .reports.export import ExportService
from .reports.service import AggregationService
from .sync.remote import RemoteStore
from .sync.rest_remote import RestRemoteStore
from .sync.service import BackgroundSync, SyncReconciler


@dataclass(frozen=True)
class Container:
    repo: LedgerRepository

    store: LedgerStore
    bulk: BulkMutationEngine
    audit: AuditTrail
    aggregation: AggregationService
    export: ExportService

    # None while no remote / OCR engine is configured
    reconciler: Optional[SyncReconciler] = None
    background_sync: Optional[BackgroundSync] = None
    ocr: Optional[OcrProposalService] = None


def build_repository(*, backend: str, db_config: Optional[dict] = None) -> LedgerRepository:
    backend = (backend or "mysql").lower()
    if backend == "memory":
        return InMemoryLedgerRepository()
    if backend == "mysql":
        conn = DatabaseConnection(DBConfig.from_dict(db_config or {}))
        return MySQLLedgerRepository(conn)
    raise ValidationError(f"Unknown LEDGER_BACKEND: {backend}")


def build_container(
    *,
    backend: str = "mysql",
    db_config: Optional[dict] = None,
    repo: Optional[LedgerRepository] = None,
    remote: Optional[RemoteStore] = None,
    remote_base_url: str = "",
    remote_api_token: str = "",
    remote_timeout: float = REMOTE_TIMEOUT_SECONDS,
    sync_max_retries: int = SYNC_MAX_RETRIES,
    sync_backoff_seconds: float = SYNC_BACKOFF_SECONDS,
    ocr_engine: Optional[OcrEngine] = None,
    actor: str = DEFAULT_ACTOR,
) -> Container:
    if repo is None:
        repo = build_repository(backend=backend, db_config=db_config)

    store = LedgerStore(repo, actor=actor)
    audit = AuditTrail(store)
    aggregation = AggregationService(store)
    export = ExportService(store, aggregation, audit)

    if remote is None and remote_base_url:
        remote = RestRemoteStore(remote_base_url, api_token=remote_api_token or None, timeout=remote_timeout)

    reconciler = None
    background_sync = None
    if remote is not None:
        reconciler = SyncReconciler(store, remote, max_item_retries=sync_max_retries)
        background_sync = BackgroundSync(
            reconciler,
            max_attempts=sync_max_retries,
            base_delay=sync_backoff_seconds,
        )

    return Container(
        repo=repo,
        store=store,
        bulk=BulkMutationEngine(store),
        audit=audit,
        aggregation=aggregation,
        export=export,
        reconciler=reconciler,
        background_sync=background_sync,
        ocr=OcrProposalService(store, ocr_engine) if ocr_engine is not None else None,
    )


def build_container_from_settings(settings, **overrides) -> Container:
    """Wire the container from a settings module (see crew_ledger.config)."""

    kwargs = dict(
        backend=getattr(settings, "LEDGER_BACKEND", "mysql"),
        db_config=getattr(settings, "DB_CONFIG", None),
        remote_base_url=getattr(settings, "REMOTE_BASE_URL", ""),
        remote_api_token=getattr(settings, "REMOTE_API_TOKEN", ""),
        remote_timeout=float(getattr(settings, "REMOTE_TIMEOUT_SECONDS", REMOTE_TIMEOUT_SECONDS)),
        sync_max_retries=int(getattr(settings, "SYNC_MAX_RETRIES", SYNC_MAX_RETRIES)),
        sync_backoff_seconds=float(getattr(settings, "SYNC_BACKOFF_SECONDS", SYNC_BACKOFF_SECONDS)),
        actor=getattr(settings, "DEFAULT_ACTOR", DEFAULT_ACTOR),
    )
    kwargs.update(overrides)
    return build_container(**kwargs)
