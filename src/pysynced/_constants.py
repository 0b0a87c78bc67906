"""Internal constants shared across the library."""

BASE_URL = "http://localhost:3000"
USER_AGENT = "pysynced/1"

UPDATE_ENDPOINT = "/transactions/update"
INSERT_ENDPOINT = "/transactions/insert"
RECORDS_ENDPOINT = "/records"

# ------------------------------------------------------------------
# Retry policy defaults (seconds)
# ------------------------------------------------------------------

DEFAULT_INITIAL_DELAY = 0.25
DEFAULT_MAX_DELAY = 10.0
DEFAULT_MAX_ATTEMPTS = 3
# Grace period before a failed creation disappears, so observers can render FAILED.
DEFAULT_REMOVAL_DELAY = 1.0

# Jitter factor range applied to every backoff delay: [0.9, 1.1).
JITTER_LOW = 0.9
JITTER_SPAN = 0.2

DEFAULT_CLIENT_ID_LENGTH = 8

# Failed operations kept per kind for retry_failed_*; older ones are dropped.
DEFAULT_MAX_FAILED_REQUESTS = 100
