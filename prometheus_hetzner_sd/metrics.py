"""
Metrics about the discovery itself, exposed on the web.path of the server.

Everything is registered on prometheus_client's default registry, which also
carries the process and platform collectors.
"""
from prometheus_client import Counter, Gauge, Histogram, Info

from . import __version__

NAMESPACE = "prometheus_hetzner_sd"

REQUEST_DURATION = Histogram(
    "request_duration_seconds",
    "Histogram of latencies for requests to the Hetzner API",
    ["project"],
    namespace=NAMESPACE,
    buckets=(0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)

REQUEST_FAILURES = Counter(
    "request_failures_total",
    "Total number of failed requests to the Hetzner API",
    ["project"],
    namespace=NAMESPACE,
)

TARGETS = Gauge(
    "targets",
    "Number of targets discovered per project",
    ["project"],
    namespace=NAMESPACE,
)

LAST_REFRESH = Gauge(
    "last_refresh_timestamp_seconds",
    "UNIX timestamp of the last completed refresh of the output file",
    namespace=NAMESPACE,
)

BUILD_INFO = Info("build", "Build information", namespace=NAMESPACE)
BUILD_INFO.info({"version": __version__})
