"""Prometheus metrics for the NF-e extraction API.

Upload counters separate accepted invoices from rejected ones (wrong type,
empty, too large). Extraction counters are labelled with the failing stage
tag, so inference_call_failed and response_parse_failed can be alerted on
independently. Naming follows https://prometheus.io/docs/practices/naming/
"""

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

# Request metrics
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=(0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0),
)

# Document upload metrics
documents_uploaded_total = Counter(
    "documents_uploaded_total",
    "Total documents uploaded",
    ["status"],  # accepted, rejected
)

document_upload_size_bytes = Histogram(
    "document_upload_size_bytes",
    "Document upload size in bytes",
    buckets=(10240, 102400, 1048576, 5242880, 15728640),  # 10KB to 15MB
)

# Extraction metrics
extraction_requests_total = Counter(
    "extraction_requests_total",
    "Total invoice extraction requests",
    ["status", "stage"],  # success/failed, failing stage or "none"
)

extraction_processing_duration_seconds = Histogram(
    "extraction_processing_duration_seconds",
    "Invoice extraction duration in seconds",
    buckets=(1.0, 2.5, 5.0, 10.0, 20.0, 40.0, 80.0, 160.0),
)


def get_metrics() -> tuple[bytes, str]:
    """Generate Prometheus metrics in text format.

    Returns:
        Tuple of (metrics bytes, content type)
    """
    return generate_latest(), CONTENT_TYPE_LATEST
