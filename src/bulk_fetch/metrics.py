"""
Prometheus metrics for transfer monitoring.

Provides instrumentation for:
- Items processed per operation and outcome
- Bytes written to local disk
- Per-item processing time histograms
- Open FTP sessions and running decompressions
"""

from prometheus_client import Counter, Gauge, Histogram

# Item outcomes
items_processed_total = Counter(
    "bulk_fetch_items_processed_total",
    "Total number of items processed",
    ["operation", "status"],  # operation: download, decompress; status: success, failed, cancelled
)

item_errors_total = Counter(
    "bulk_fetch_item_errors_total",
    "Total number of item failures by error category",
    ["operation", "error_category"],
)

bytes_written_total = Counter(
    "bulk_fetch_bytes_written_total",
    "Total bytes written to local files",
    ["operation"],
)

# Processing time metrics
item_processing_duration_seconds = Histogram(
    "bulk_fetch_item_processing_duration_seconds",
    "Time spent processing individual items",
    ["operation"],
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 300.0),
)

# Concurrency
active_sessions = Gauge(
    "bulk_fetch_active_sessions",
    "Number of FTP sessions currently open",
)

active_decompressions = Gauge(
    "bulk_fetch_active_decompressions",
    "Number of decompressions currently running",
)


def record_item_result(operation: str, result) -> None:
    """Update counters for one finished ItemResult."""
    items_processed_total.labels(operation=operation, status=result.status).inc()
    item_processing_duration_seconds.labels(operation=operation).observe(
        result.processing_time_ms / 1000
    )
    if result.bytes_written:
        bytes_written_total.labels(operation=operation).inc(result.bytes_written)
    if result.status != "success":
        item_errors_total.labels(
            operation=operation, error_category=result.error_category or "unknown"
        ).inc()
