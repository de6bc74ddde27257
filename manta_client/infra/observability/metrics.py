from prometheus_client import Counter, Histogram

# Low-cardinality labels only: object paths never become label values.
REQUESTS = Counter(
    "manta_client_requests_total",
    "Total object store requests",
    ["method", "status"],
)

LATENCY = Histogram(
    "manta_client_request_duration_seconds",
    "Object store request latency in seconds",
    ["method"],
)

TRANSPORT_ERRORS = Counter(
    "manta_client_transport_errors_total",
    "Object store requests that failed without a response",
    ["method"],
)
