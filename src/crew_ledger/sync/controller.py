from __future__ import annotations

from flask import Flask, jsonify, request

from ..container import Container
from ..core.enums import SyncPhase
from ..employees.model import Employee
from .model import ConflictResolved, SyncResult
from .payload import employee_to_payload, entry_to_payload


def _record_json(record) -> dict:
    if isinstance(record, Employee):
        return employee_to_payload(record)
    return entry_to_payload(record)


def _conflict_json(conflict: ConflictResolved) -> dict:
    return {
        "kind": conflict.kind.value,
        "employee_id": conflict.employee_id,
        "date": conflict.work_date.isoformat() if conflict.work_date else None,
        "local": _record_json(conflict.local),
        "remote": _record_json(conflict.remote),
        "winner": conflict.winner,
    }


def _result_json(result: SyncResult) -> dict:
    return {
        "success": result.success,
        "phase": result.phase.value,
        "pushed": result.pushed,
        "pulled": result.pulled,
        "applied": result.applied,
        "conflicts": [_conflict_json(c) for c in result.conflicts],
        "errors": list(result.errors),
        "cancelled": result.cancelled,
        "cursor_held": result.cursor_held,
    }


def register(app: Flask, container: Container) -> None:
    def _not_configured():
        return jsonify({"success": False, "message": "Sync is not configured (REMOTE_BASE_URL)"}), 503

    @app.route("/api/sync", methods=["POST"], endpoint="run_sync")
    def run_sync():
        if container.reconciler is None:
            return _not_configured()

        wait = request.args.get("wait", "1").lower() in {"1", "true", "yes"}
        if not wait and container.background_sync is not None:
            container.background_sync.start()
            return jsonify({"success": True, "message": "Sync started", "phase": container.reconciler.phase.value}), 202

        result = container.reconciler.run_cycle()
        if result.success:
            status = 200
        elif result.phase == SyncPhase.IDLE and not result.cancelled:
            # cycle completed, some changes were refused
            status = 207
        else:
            status = 502
        return jsonify(_result_json(result)), status

    @app.route("/api/sync/cancel", methods=["POST"], endpoint="cancel_sync")
    def cancel_sync():
        if container.background_sync is None:
            return _not_configured()
        container.background_sync.cancel()
        return jsonify({"success": True, "message": "Cancellation requested"})

    @app.route("/api/sync/status", methods=["GET"], endpoint="sync_status")
    def sync_status():
        if container.reconciler is None:
            return _not_configured()
        stats = container.reconciler.stats()
        return jsonify(
            {
                "success": True,
                "phase": container.reconciler.phase.value,
                "running": container.background_sync.running if container.background_sync else False,
                "pending": stats.pending,
                "synced": stats.synced,
                "conflicted": stats.conflicted,
                "failed": stats.failed,
                "total": stats.total,
                "last_sync": stats.last_sync.isoformat() if stats.last_sync else None,
            }
        )
