import os

SECRET_KEY = "test-secret"

LEDGER_BACKEND = "memory"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "crew_ledger_test"),
}

REMOTE_BASE_URL = ""
REMOTE_API_TOKEN = ""
REMOTE_TIMEOUT_SECONDS = 5.0
SYNC_MAX_RETRIES = 1
SYNC_BACKOFF_SECONDS = 0.0

DEFAULT_ACTOR = "Administrator"

LOG_LEVEL = "WARNING"
LOG_FILE = ""

DEBUG = False
TESTING = True

AUTO_INIT_DB = False
