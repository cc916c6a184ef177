from __future__ import annotations

from prometheus_client import Counter, Histogram

_HTTP_REQUESTS_TOTAL = Counter(
    "casemetrics_http_requests_total",
    "Total HTTP requests handled by the API.",
    labelnames=("method", "path", "status_code"),
)
_HTTP_REQUEST_DURATION_SECONDS = Histogram(
    "casemetrics_http_request_duration_seconds",
    "HTTP request duration in seconds.",
    labelnames=("method", "path"),
)
_INGEST_EVENTS_TOTAL = Counter(
    "casemetrics_ingest_events_total",
    "Webhook events by kind and ingestion outcome.",
    labelnames=("event", "outcome"),
)
_CASE_TRANSITIONS_TOTAL = Counter(
    "casemetrics_case_transitions_total",
    "Conversation case lifecycle transitions.",
    labelnames=("transition",),
)
# Buckets span quick replies up to a full working day.
_FIRST_RESPONSE_SECONDS = Histogram(
    "casemetrics_case_first_response_seconds",
    "Seconds from case opening to the first outbound reply.",
    buckets=(15, 30, 60, 120, 300, 600, 1800, 3600, 7200, 14400, 28800, 86400),
)


def observe_http_request(
    *,
    method: str,
    path: str,
    status_code: int,
    duration_ms: int,
) -> None:
    safe_path = path or "unknown"
    safe_method = method or "UNKNOWN"

    _HTTP_REQUESTS_TOTAL.labels(
        method=safe_method,
        path=safe_path,
        status_code=str(status_code),
    ).inc()
    _HTTP_REQUEST_DURATION_SECONDS.labels(method=safe_method, path=safe_path).observe(
        max(0.0, duration_ms / 1000.0)
    )


def observe_ingest_outcome(*, event: str, outcome: str) -> None:
    _INGEST_EVENTS_TOTAL.labels(event=event or "unknown", outcome=outcome).inc()


def observe_case_transition(*, transition: str, count: int = 1) -> None:
    if count > 0:
        _CASE_TRANSITIONS_TOTAL.labels(transition=transition).inc(count)


def observe_first_response(*, seconds: int) -> None:
    _FIRST_RESPONSE_SECONDS.observe(max(0, seconds))
