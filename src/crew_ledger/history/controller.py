from __future__ import annotations

from itertools import islice

from flask import Flask, jsonify, request

from ..container import Container
from ..core.constants import DEFAULT_HISTORY_LIMIT
from ..core.exceptions import ValidationError
from .model import ChangeHistoryEntry


def _to_json(item: ChangeHistoryEntry) -> dict:
    return {
        "id": item.history_id,
        "seq": item.seq,
        "action": item.action.value,
        "description": item.description,
        "actor": item.actor,
        "created_at": item.created_at.isoformat(),
        "employee_id": item.employee_id,
        "old_value": item.old_value,
        "new_value": item.new_value,
    }


def register(app: Flask, container: Container) -> None:
    audit = container.audit

    @app.route("/api/history", methods=["GET"], endpoint="list_history")
    def list_history():
        try:
            limit = int(request.args.get("limit", DEFAULT_HISTORY_LIMIT))
        except ValueError:
            raise ValidationError("limit must be an integer")
        if limit < 1:
            raise ValidationError("limit must be positive")

        view = audit.query(
            request.args.get("employee_id") or None,
            request.args.get("start") or None,
            request.args.get("end") or None,
        )
        items = [_to_json(h) for h in islice(view, limit)]
        return jsonify({"success": True, "total": audit.count(), "history": items})
