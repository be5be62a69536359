"""
Prometheus Metrics
==================
Counters and histograms exposed on /metrics.
"""

from prometheus_client import Counter, Histogram

UPSTREAM_REQUESTS = Counter(
    "flexdash_upstream_requests_total",
    "Upstream usage API attempts by method and outcome",
    ["method", "outcome"],
)

UPSTREAM_RETRIES = Counter(
    "flexdash_upstream_retries_total",
    "Upstream usage API retries by reason",
    ["reason"],
)

QUERY_POLLS = Counter(
    "flexdash_query_polls_total",
    "Query status polls by outcome (done, pending, other, error)",
    ["status"],
)

BATCH_DURATION = Histogram(
    "flexdash_batch_duration_seconds",
    "Time to submit and collect one usage query batch",
    buckets=(1, 2, 5, 10, 30, 60, 120, 300, 600),
)
