"""Application constants."""

USER_AGENT = "trailfinder/0.3 (+hiking directory; contact: configured-email)"
STAGES = (
    "harvest",
    "normalise",
    "preprocess-postcodes",
    "indexes",
    "stats",
    "enrich",
)
OFFLINE_STAGES = (
    "preprocess-postcodes",
    "normalise",
    "indexes",
    "stats",
)
QUERIES = (
    "lookup",
    "near-postcode",
    "nearby",
)
EXIT_SUCCESS = 0
EXIT_PARTIAL = 10
EXIT_HARD_FAIL = 20
EXIT_NOT_FOUND = 30
EXIT_INVALID_INPUT = 40

EARTH_RADIUS_KM = 6371.0

DIFFICULTIES = ("easy", "moderate", "hard")
THEMES = ("coastal", "waterfalls", "lakes", "ridges")
TRANSPORT_TAGS = ("train-accessible", "bus-accessible", "car-free-possible")

TRUE_FLAGS = frozenset({"y", "yes", "1", "true", "t"})
FALSE_FLAGS = frozenset({"n", "no", "0", "false", "f"})

JSON_LOG_FIELDS = (
    "timestamp",
    "run_id",
    "stage",
    "event",
    "status",
    "duration_ms",
    "rows_in",
    "rows_out",
    "error_code",
    "postcode",
    "slug",
    "message",
)
