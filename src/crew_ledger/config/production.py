import os

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

LEDGER_BACKEND = os.getenv("LEDGER_BACKEND", "mysql")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "crew_ledger"),
}

REMOTE_BASE_URL = os.getenv("REMOTE_BASE_URL", "")
REMOTE_API_TOKEN = os.getenv("REMOTE_API_TOKEN", "")
REMOTE_TIMEOUT_SECONDS = float(os.getenv("REMOTE_TIMEOUT_SECONDS", "20"))
SYNC_MAX_RETRIES = int(os.getenv("SYNC_MAX_RETRIES", "3"))
SYNC_BACKOFF_SECONDS = float(os.getenv("SYNC_BACKOFF_SECONDS", "2"))

DEFAULT_ACTOR = os.getenv("DEFAULT_ACTOR", "Administrator")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE", "/var/log/crew-ledger/app.log")

DEBUG = False

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
