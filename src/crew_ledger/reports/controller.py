from __future__ import annotations

import io

import pandas as pd
from flask import Flask, jsonify, request, send_file

from ..container import Container
from ..core.exceptions import ValidationError
from .model import ExportSnapshot

_XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _rows_frame(snapshot: ExportSnapshot) -> pd.DataFrame:
    data = [
        {
            "employee_id": row.employee_id,
            "employee_name": row.employee_name,
            "position": row.position,
            "date": row.work_date.isoformat(),
            "hours": row.hours,
            "status": row.status.value,
            "status_label": row.status.label,
            "notes": row.note or "",
        }
        for row in snapshot.rows
    ]
    columns = ["employee_id", "employee_name", "position", "date", "hours", "status", "status_label", "notes"]
    return pd.DataFrame(data, columns=columns)


def _summary_frame(snapshot: ExportSnapshot) -> pd.DataFrame:
    data = []
    for summary in snapshot.summaries:
        item = {"employee_id": summary.employee_id, "employee_name": summary.employee_name, "month": summary.year_month}
        item.update({status.label: hours for status, hours in summary.hours_by_status.items()})
        item["total_hours"] = summary.total_hours
        item["days_count"] = summary.days_count
        data.append(item)
    return pd.DataFrame(data)


def register(app: Flask, container: Container) -> None:
    aggregation = container.aggregation

    @app.route("/api/summary/<employee_id>/<year_month>", methods=["GET"], endpoint="month_summary")
    def month_summary(employee_id: str, year_month: str):
        summary = aggregation.month_summary(employee_id, year_month)
        return jsonify({"success": True, "summary": summary.to_dict()})

    @app.route("/api/summary/crew/<year_month>", methods=["GET"], endpoint="crew_summary")
    def crew_summary(year_month: str):
        summaries = aggregation.crew_month_summaries(year_month)
        return jsonify({"success": True, "summaries": [s.to_dict() for s in summaries]})

    @app.route("/api/summary/daily/<work_date>", methods=["GET"], endpoint="daily_summary")
    def daily_summary(work_date: str):
        return jsonify({"success": True, "summary": aggregation.daily_summary(work_date).to_dict()})

    @app.route("/api/stats", methods=["GET"], endpoint="entry_stats")
    def entry_stats():
        stats = aggregation.entry_stats(
            request.args.get("employee_id") or None,
            request.args.get("start") or None,
            request.args.get("end") or None,
        )
        return jsonify(
            {
                "success": True,
                "stats": {
                    "total_entries": stats.total_entries,
                    "total_hours": stats.total_hours,
                    "hours": {s.value: h for s, h in stats.hours_by_status.items()},
                    "average_hours_per_day": stats.average_hours_per_day,
                },
            }
        )

    @app.route("/api/export/<year_month>.<fmt>", methods=["GET"], endpoint="export_month")
    def export_month(year_month: str, fmt: str):
        fmt = fmt.lower()
        if fmt not in {"csv", "xlsx"}:
            raise ValidationError(f"Unsupported export format: {fmt}")

        snapshot = container.export.snapshot(year_month, employee_id=request.args.get("employee_id") or None)
        rows = _rows_frame(snapshot)
        filename = f"crew_ledger_{snapshot.year_month}.{fmt}"

        if fmt == "csv":
            csv_bytes = rows.to_csv(index=False).encode("utf-8-sig")
            return app.response_class(
                csv_bytes,
                mimetype="text/csv",
                headers={"Content-Disposition": f"attachment; filename={filename}"},
            )

        # Excel is built in memory, never written to disk
        output = io.BytesIO()
        with pd.ExcelWriter(output, engine="openpyxl") as writer:
            rows.to_excel(writer, index=False, sheet_name="Entries")
            _summary_frame(snapshot).to_excel(writer, index=False, sheet_name="Summary")
        output.seek(0)
        return send_file(output, download_name=filename, as_attachment=True, mimetype=_XLSX_MIMETYPE)
