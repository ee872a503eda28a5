import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

# "mysql" keeps the ledger across restarts, "memory" is throwaway
LEDGER_BACKEND = os.getenv("LEDGER_BACKEND", "mysql")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "crew_ledger"),
}

# Remote source of truth; sync is disabled while unset
REMOTE_BASE_URL = os.getenv("REMOTE_BASE_URL", "")
REMOTE_API_TOKEN = os.getenv("REMOTE_API_TOKEN", "")
REMOTE_TIMEOUT_SECONDS = float(os.getenv("REMOTE_TIMEOUT_SECONDS", "20"))
SYNC_MAX_RETRIES = int(os.getenv("SYNC_MAX_RETRIES", "3"))
SYNC_BACKOFF_SECONDS = float(os.getenv("SYNC_BACKOFF_SECONDS", "2"))

DEFAULT_ACTOR = os.getenv("DEFAULT_ACTOR", "Administrator")

LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")
LOG_FILE = os.getenv("LOG_FILE", "")

DEBUG = True

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))
