"""Prometheus collectors shared by the HTTP layer and the auth service"""

from prometheus_client import Counter, Histogram

REQUEST_COUNT = Counter(
    "health_reminder_http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)
REQUEST_LATENCY = Histogram(
    "health_reminder_http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
)

# One increment per completed register/login/refresh/logout.
SESSION_EVENTS = Counter(
    "health_reminder_session_events_total",
    "Completed session operations",
    ["operation"],
)
AUTH_FAILURES = Counter(
    "health_reminder_auth_failures_total",
    "Rejected authentication attempts by error kind",
    ["kind"],
)
