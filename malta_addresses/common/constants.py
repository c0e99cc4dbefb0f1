"""Application constants."""

USER_AGENT = "malta-addresses/1.0 (+address directory harvest)"
PLACEHOLDER_API_KEY = "your_google_api_key_here"
API_KEY_ENV_VAR = "GOOGLE_API_KEY"
EXIT_SUCCESS = 0
EXIT_HARD_FAIL = 20
RECORD_FIELDS = (
    "id",
    "houseName",
    "houseAlpha",
    "houseNo",
    "flatNo",
    "street",
    "postCode",
    "locality",
    "country",
    "latitude",
    "longitude",
)
JSON_LOG_FIELDS = (
    "timestamp",
    "level",
    "run_id",
    "stage",
    "event",
    "status",
    "attempt",
    "duration_ms",
    "rows_out",
    "error_code",
    "message",
)
