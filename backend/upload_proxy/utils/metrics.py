"""
Prometheus metrics definitions for the upload proxy.
All metrics are registered here and can be imported by other modules.
"""
from prometheus_client import Counter, Histogram

# HTTP request metrics
# No path label: the upload endpoint answers on every path.
upload_requests_total = Counter(
    'upload_requests_total',
    'Total requests handled by the proxy',
    ['method', 'status']
)

http_request_duration_seconds = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method'],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
)

# Upload metrics
uploads_stored_total = Counter(
    'uploads_stored_total',
    'Total images written to storage',
    ['content_type']
)

upload_bytes_total = Counter(
    'upload_bytes_total',
    'Total bytes written to storage'
)

uploads_rejected_total = Counter(
    'uploads_rejected_total',
    'Total uploads refused by validation',
    ['reason']
)

rate_limited_total = Counter(
    'rate_limited_total',
    'Total requests refused by the rate limiter'
)

# Storage metrics
storage_write_duration_seconds = Histogram(
    'storage_write_duration_seconds',
    'Storage put duration in seconds',
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
)

storage_errors_total = Counter(
    'storage_errors_total',
    'Total failed storage writes',
    ['error_type']
)

# Error metrics
errors_total = Counter(
    'errors_total',
    'Total errors',
    ['error_type']
)
