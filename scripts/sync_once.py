"""Run one sync (with retries) against REMOTE_BASE_URL and print the outcome."""

from __future__ import annotations

import importlib
import sys

from dotenv import load_dotenv

from crew_ledger.config import get_settings_module
from crew_ledger.container import build_container_from_settings
from crew_ledger.logging_setup import configure_logging


def main() -> int:
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"), log_file=getattr(settings, "LOG_FILE", "") or None)

    container = build_container_from_settings(settings)
    if container.reconciler is None:
        print("REMOTE_BASE_URL is not set, nothing to sync", file=sys.stderr)
        return 2

    result = container.reconciler.run_with_retry(
        max_attempts=int(getattr(settings, "SYNC_MAX_RETRIES", 3)),
        base_delay=float(getattr(settings, "SYNC_BACKOFF_SECONDS", 2.0)),
    )
    print(
        f"phase={result.phase.value} pushed={result.pushed} pulled={result.pulled} "
        f"applied={result.applied} conflicts={len(result.conflicts)} errors={len(result.errors)}"
    )
    for conflict in result.conflicts:
        print(f"  conflict {conflict.kind.value} {conflict.employee_id} {conflict.work_date or ''}: remote wins")
    return 0 if result.success else 1


if __name__ == "__main__":
    sys.exit(main())
