"""Application constants."""

USER_AGENT = "address-ingest/1.0 (+bulk loader)"
STAGES = (
    "fetch",
    "stage",
    "index",
    "load",
)
EXIT_SUCCESS = 0
EXIT_HARD_FAIL = 20

INDEX_NAME = "addIdx"
DOC_PREFIX = "account:"
FULL_DICTIONARY = "fAdd"
PARTIAL_DICTIONARY = "pAdd"
COMPLETION_FLAG = "load-complete"
SUGGESTION_WEIGHT = 1.0
SEARCH_LIMIT = 3
SUGGEST_LIMIT = 5

STAGING_KEY = "accounts"
PROGRESS_INTERVAL = 1000

# Column positions in the address CSV schema.
ID_COLUMN = 3
STREET_NUMBER_COLUMN = 13
STREET_NAME_COLUMN = 14

JSON_LOG_FIELDS = (
    "timestamp",
    "level",
    "run_id",
    "stage",
    "region",
    "source",
    "event",
    "status",
    "duration_ms",
    "rows_in",
    "rows_out",
    "error_code",
    "message",
)
