"""Prometheus metric inventory for learning-service.

Every metric the service exposes is declared here; the modules that own a
behaviour import the metric and increment it at the point of action.

  HTTP metrics          filled in by MetricsMiddleware for every request.
  CACHE_OPERATIONS      keyed-cache lookups by outcome (hit/miss).
  CERTIFICATES_ISSUED   certificate page visits by outcome: minted (new id),
                        reused (id and record present), healed (record or
                        map link recreated after a partial write).
  QUESTION_IMPORTS      bulk question uploads by result.
  NEWS_FETCHES          where a news response came from (api/cache).
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics (populated by the MetricsMiddleware)
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, endpoint, and status code",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    # Most handlers are one or two document round-trips; certificate
    # rendering and the news fan-out sit in the upper buckets.
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Application-specific metrics
# ---------------------------------------------------------------------------

CACHE_OPERATIONS = Counter(
    "cache_operations_total",
    "Keyed cache lookups by result",
    ["operation"],  # "hit" or "miss"
)

CERTIFICATES_ISSUED = Counter(
    "certificates_issued_total",
    "Certificate issuance requests by outcome",
    ["outcome"],  # "minted", "reused", "healed"
)

QUESTION_IMPORTS = Counter(
    "question_imports_total",
    "Bulk question imports by result",
    ["result"],  # "accepted" or "rejected"
)

NEWS_FETCHES = Counter(
    "news_fetches_total",
    "Education news responses by source",
    ["source"],  # "api" or "cache"
)
