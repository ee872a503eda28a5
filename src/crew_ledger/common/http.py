from __future__ import annotations

import logging

from flask import Flask, jsonify, request

from ..core.exceptions import AuditWriteError, DomainError, NotFoundError, TransportError, ValidationError

logger = logging.getLogger(__name__)


def json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def error_status(exc: DomainError) -> int:
    if isinstance(exc, ValidationError):
        return 400
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, TransportError):
        return 503 if exc.retryable else 502
    if isinstance(exc, AuditWriteError):
        return 500
    return 400


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(exc: DomainError):
        status = error_status(exc)
        if status >= 500:
            logger.error("%s %s failed: %s", request.method, request.path, exc)
        return jsonify({"success": False, "message": str(exc)}), status
