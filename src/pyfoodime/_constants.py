"""Internal constants shared across the library."""

BASE_URL = "http://localhost/wp-json/foodime/v1"
WEBSOCKET_URL = "ws://localhost:3001"
USER_AGENT = "pyfoodime/1"
AUTH_HEADER = "X-WP-Nonce"
AUTH_FAILURE_STATUSES: frozenset[int] = frozenset({401, 403})

# ------------------------------------------------------------------
# REST endpoints (relative to base_url)
# ------------------------------------------------------------------

LOGIN_ENDPOINT = "/delivery-login"
ORDERS_ENDPOINT = "/delivery-orders"
ORDER_STATUS_ENDPOINT = "/delivery-order-status"
LOCATION_ENDPOINT = "/delivery-location"

# ------------------------------------------------------------------
# Persisted session record
# ------------------------------------------------------------------

SESSION_STORAGE_KEY = "foodimeDeliveryUser"

# ------------------------------------------------------------------
# Timing defaults (seconds)
# ------------------------------------------------------------------

LOCATION_INTERVAL = 15.0
LOCATION_TIMEOUT = 5.0
BACKOFF_INITIAL = 1.0
BACKOFF_MAX = 30.0
BACKOFF_JITTER = 0.2
BACKOFF_STABLE_PERIOD = 60.0
DEGRADED_AFTER_FAILURES = 5
FALLBACK_POLL_INTERVAL = 30.0
