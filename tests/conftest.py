"""Shared fixtures: a sample exposition document and a local metrics server."""

import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest

TEXT_CONTENT_TYPE = "text/plain; version=0.0.4; charset=utf-8"

# Mock Prometheus metrics data in the standard exposition format
MOCK_METRICS = """# HELP http_requests_total The total number of HTTP requests.
# TYPE http_requests_total counter
http_requests_total{method="post",code="200"} 1027
http_requests_total{method="post",code="400"} 3
http_requests_total{method="get",code="200"} 1027
http_requests_total{method="get",code="400"} 3

# HELP http_request_duration_seconds The HTTP request latencies in seconds.
# TYPE http_request_duration_seconds histogram
http_request_duration_seconds_bucket{le="0.1"} 24054
http_request_duration_seconds_bucket{le="0.2"} 33444
http_request_duration_seconds_bucket{le="0.4"} 100392
http_request_duration_seconds_bucket{le="1"} 129389
http_request_duration_seconds_bucket{le="3"} 133988
http_request_duration_seconds_bucket{le="8"} 134331
http_request_duration_seconds_bucket{le="20"} 134332
http_request_duration_seconds_bucket{le="60"} 134333
http_request_duration_seconds_bucket{le="120"} 134334
http_request_duration_seconds_bucket{le="+Inf"} 134335
http_request_duration_seconds_sum 53423
http_request_duration_seconds_count 134335

# HELP rpc_duration_seconds A summary of the RPC duration in seconds.
# TYPE rpc_duration_seconds summary
rpc_duration_seconds{quantile="0.01"} 3102
rpc_duration_seconds{quantile="0.05"} 3272
rpc_duration_seconds{quantile="0.5"} 4773
rpc_duration_seconds{quantile="0.9"} 9001
rpc_duration_seconds{quantile="0.99"} 76656
rpc_duration_seconds_sum 1.7560473e+07
rpc_duration_seconds_count 2693

# HELP process_cpu_seconds_total Total user and system CPU time spent in seconds.
# TYPE process_cpu_seconds_total counter
process_cpu_seconds_total 12.34

# HELP go_memstats_alloc_bytes Number of bytes allocated and still in use.
# TYPE go_memstats_alloc_bytes gauge
go_memstats_alloc_bytes 4.478424e+06
"""

# Samples in MOCK_METRICS: 4 counters, 1 histogram, 1 summary, 1 counter, 1 gauge
MOCK_SAMPLE_COUNT = 8

MALFORMED_METRICS = 'broken_metric{code="200" 1\n'

ROUTES = {
    "/metrics": (200, TEXT_CONTENT_TYPE, MOCK_METRICS),
    "/unavailable": (503, "text/plain", "service unavailable\n"),
    "/broken": (200, TEXT_CONTENT_TYPE, MALFORMED_METRICS),
}

REDIRECTS = {
    "/old": "/metrics",
}


class _MetricsHandler(BaseHTTPRequestHandler):
    def do_GET(self):
        if self.path in REDIRECTS:
            self.send_response(302)
            self.send_header("Location", REDIRECTS[self.path])
            self.send_header("Content-Length", "0")
            self.end_headers()
            return
        status, content_type, body = ROUTES.get(self.path, (404, "text/plain", "not found\n"))
        payload = body.encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(payload)))
        self.end_headers()
        self.wfile.write(payload)

    def log_message(self, format, *args):
        pass


@pytest.fixture
def mock_metrics_text():
    return MOCK_METRICS


@pytest.fixture
def metrics_server():
    """Serve ROUTES on an ephemeral local port; yields the base URL."""
    server = ThreadingHTTPServer(("127.0.0.1", 0), _MetricsHandler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield f"http://127.0.0.1:{server.server_address[1]}"
    finally:
        server.shutdown()
        server.server_close()
        thread.join(timeout=5)


@pytest.fixture
def closed_port_url():
    """A URL on a local port with nothing listening."""
    server = ThreadingHTTPServer(("127.0.0.1", 0), _MetricsHandler)
    port = server.server_address[1]
    server.server_close()
    return f"http://127.0.0.1:{port}/metrics"
