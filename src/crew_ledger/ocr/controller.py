from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.datetime_utils import as_date
from ..container import Container
from ..core.enums import EntryStatus
from ..core.exceptions import ValidationError
from ..sync.payload import entry_to_payload


def register(app: Flask, container: Container) -> None:
    @app.route("/api/ocr/proposal", methods=["POST"], endpoint="ocr_proposal")
    def ocr_proposal():
        if container.ocr is None:
            return jsonify({"success": False, "message": "No OCR engine configured"}), 503

        upload = request.files.get("image")
        if upload is None:
            raise ValidationError("Upload the document as 'image'")
        employee_id = request.form.get("employee_id", "")
        if not employee_id:
            raise ValidationError("employee_id is required")
        fallback = request.form.get("date") or None

        proposal = container.ocr.propose_entry(
            employee_id,
            upload.read(),
            status=request.form.get("status") or EntryStatus.WORK,
            fallback_date=as_date(fallback) if fallback else None,
            actor=request.form.get("actor") or None,
        )
        return jsonify(
            {
                "success": True,
                "text": proposal.fields.candidate_text,
                "entry": entry_to_payload(proposal.entry) if proposal.entry else None,
                "previous": entry_to_payload(proposal.prior) if proposal.prior else None,
            }
        )
