"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

MIN_HOURS_PER_DAY = 0.0
MAX_HOURS_PER_DAY = 24.0
DEFAULT_WORK_HOURS = 8.0

MIN_NAME_LENGTH = 2
MAX_NAME_LENGTH = 255
MAX_POSITION_LENGTH = 100

DEFAULT_ACTOR = "Administrator"
SYNC_ACTOR = "sync"

SYNC_MAX_RETRIES = 3
SYNC_BACKOFF_SECONDS = 2.0
REMOTE_TIMEOUT_SECONDS = 20.0

DEFAULT_HISTORY_LIMIT = 200
