from __future__ import annotations

import importlib
import logging
from typing import Optional

from dotenv import load_dotenv
from flask import Flask

from .common.http import register_error_handlers
from .config import get_settings_module
from .container import Container, build_container_from_settings
from .database.bootstrap import apply_schema, list_tables
from .employees.controller import register as register_employees
from .entries.controller import register as register_entries
from .history.controller import register as register_history
from .logging_setup import configure_logging
from .ocr.controller import register as register_ocr
from .reports.controller import register as register_reports
from .sync.controller import register as register_sync

logger = logging.getLogger(__name__)


def create_app(settings_module: Optional[str] = None, *, container: Optional[Container] = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = settings_module or get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"), log_file=getattr(settings, "LOG_FILE", "") or None)

    backend = str(getattr(settings, "LEDGER_BACKEND", "mysql")).lower()
    db_config = getattr(settings, "DB_CONFIG", {})
    logger.info("settings=%s backend=%s", settings_module, backend)

    if container is None:
        if backend == "mysql" and bool(getattr(settings, "AUTO_INIT_DB", False)):
            apply_schema(db_config)
            logger.info("schema ready (tables=%d)", len(list_tables(db_config)))
        container = build_container_from_settings(settings)

    app.extensions["crew_ledger"] = container

    register_error_handlers(app)
    register_employees(app, container)
    register_entries(app, container)
    register_history(app, container)
    register_reports(app, container)
    register_sync(app, container)
    register_ocr(app, container)

    return app
