"""Constants and configuration for closestrpc."""

# Default measurement settings
DEFAULT_INTERVAL = 10.0        # seconds between rounds
PROBE_TIMEOUT_FRACTION = 0.5   # per-probe timeout as a share of the interval
DEFAULT_WATCH_ROUNDS = 3

# JSON-RPC probe request
PROBE_RPC_METHOD = "web3_clientVersion"
PROBE_RPC_ID = 1

# User agent for HTTP requests
USER_AGENT = "closestrpc/0.1.0"

# Probe failure kinds
ERROR_TIMEOUT = "timeout"
ERROR_CONNECTION = "connection"
ERROR_HTTP_STATUS = "http_status"
ERROR_RPC = "rpc_error"
ERROR_INVALID_RESPONSE = "invalid_response"
ERROR_UNEXPECTED = "unexpected"

# Latency color thresholds (milliseconds)
LATENCY_THRESHOLDS = {"fast": 100.0, "medium": 300.0}
