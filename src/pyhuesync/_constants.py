"""Internal constants shared across the library."""

USER_AGENT = "pyhuesync"

#: Lowest accepted poll interval in seconds. Bounds the request rate against
#: the bridge, which starts dropping requests well before 10 req/s.
MIN_POLL_INTERVAL: float = 0.5
DEFAULT_POLL_INTERVAL: float = 1.0
DEFAULT_REQUEST_TIMEOUT: float = 10.0

#: Seconds a locally written field stays masked against poll results.
DEFAULT_SUPPRESS_MARGIN: float = 1.0

#: Seconds :meth:`SyncHub.stop` waits for in-flight writes before cancelling them.
STOP_WRITE_GRACE: float = 2.0

# Bridge error type for "unauthorized user".
HUE_ERROR_UNAUTHORIZED = 1

# ------------------------------------------------------------------
# Hue value ranges
# ------------------------------------------------------------------

BRI_MIN = 1
BRI_MAX = 254
HUE_MAX = 65535
SAT_MAX = 254
MIRED_MIN = 153
MIRED_MAX = 500

#: ``transitiontime`` is expressed in multiples of 100 ms.
TRANSITION_UNIT_MS = 100
