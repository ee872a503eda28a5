from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.http import json_body
from ..container import Container
from ..sync.payload import entry_to_payload


def register(app: Flask, container: Container) -> None:
    store = container.store

    @app.route("/api/entries", methods=["GET"], endpoint="list_entries")
    def list_entries():
        view = store.list_entries(
            request.args.get("employee_id") or None,
            request.args.get("start") or None,
            request.args.get("end") or None,
        )
        include_cleared = request.args.get("include_cleared", "0").lower() in {"1", "true", "yes"}
        entries = [entry_to_payload(e) for e in view if include_cleared or not e.is_cleared]
        return jsonify({"success": True, "entries": entries})

    @app.route("/api/entries/<employee_id>/<work_date>", methods=["PUT"], endpoint="upsert_entry")
    def upsert_entry(employee_id: str, work_date: str):
        data = json_body()
        prior = store.upsert_entry(
            employee_id,
            work_date,
            data.get("hours"),
            data.get("status"),
            note=data.get("notes"),
            actor=data.get("actor"),
        )
        entry = store.get_entry(employee_id, work_date)
        return jsonify(
            {
                "success": True,
                "entry": entry_to_payload(entry),
                "previous": entry_to_payload(prior) if prior else None,
            }
        )

    @app.route("/api/entries/<employee_id>/<work_date>", methods=["DELETE"], endpoint="clear_entry")
    def clear_entry(employee_id: str, work_date: str):
        data = request.get_json(silent=True) or {}
        prior = store.clear_entry(employee_id, work_date, actor=data.get("actor"))
        return jsonify({"success": True, "previous": entry_to_payload(prior)})

    @app.route("/api/entries/bulk", methods=["POST"], endpoint="bulk_entries")
    def bulk_entries():
        data = json_body()
        employee_ids = data.get("employee_ids")
        if employee_ids == "all":
            result = container.bulk.apply_to_crew(
                data.get("date", ""),
                data.get("hours"),
                data.get("status"),
                note=data.get("notes"),
                actor=data.get("actor"),
            )
        else:
            result = container.bulk.apply_bulk(
                employee_ids or [],
                data.get("date", ""),
                data.get("hours"),
                data.get("status"),
                note=data.get("notes"),
                actor=data.get("actor"),
            )
        # 207 when some employees failed and others were written
        status = 200 if result.all_succeeded else 207
        return jsonify({"success": result.all_succeeded, **result.to_dict()}), status
