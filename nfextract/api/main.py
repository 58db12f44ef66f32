"""FastAPI application for invoice extraction.

Thin HTTP layer over the extraction core:
- Health and readiness checks for Kubernetes
- Invoice upload validation (type, size, emptiness)
- Extraction runs in the threadpool, one inference call per upload
- Structured, stage-tagged error responses
- Prometheus metrics for monitoring

Based on FastAPI best practices:
https://fastapi.tiangolo.com/
"""

import logging
import time
from datetime import UTC, datetime

from fastapi import FastAPI, File, HTTPException, Request, Response, UploadFile, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from nfextract.api import metrics
from nfextract.extraction.base import ExtractionMetadata
from nfextract.extraction.factory import create_extraction_service
from nfextract.extraction.schema import InvoiceRecord
from nfextract.shared.config import get_settings

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)

app = FastAPI(
    title="NF-e Extraction Service",
    description="Extracts structured data from Brazilian invoice (NF-e) PDFs",
    version=settings.service_version,
)

extraction_service = create_extraction_service(settings)
logger.info(
    f"Serving {settings.service_name} with provider '{settings.extraction_provider}' "
    f"({settings.environment})"
)

# Client-side failures map to 400, backend failures to 502
ERROR_STATUS = {
    "InvalidInputError": status.HTTP_400_BAD_REQUEST,
    "InferenceCallError": status.HTTP_502_BAD_GATEWAY,
    "MalformedResponseError": status.HTTP_502_BAD_GATEWAY,
}


@app.middleware("http")
async def metrics_middleware(request: Request, call_next):  # type: ignore[no-untyped-def]
    """Middleware to collect request metrics.

    Tracks:
    - Request count by method, endpoint, and status
    - Request duration by method and endpoint
    """
    # Skip metrics for /metrics endpoint itself
    if request.url.path == "/metrics":
        return await call_next(request)

    start_time = time.time()
    response = await call_next(request)
    duration = time.time() - start_time

    metrics.http_requests_total.labels(
        method=request.method,
        endpoint=request.url.path,
        status=response.status_code,
    ).inc()

    metrics.http_request_duration_seconds.labels(
        method=request.method,
        endpoint=request.url.path,
    ).observe(duration)

    return response


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    service: str


class ReadinessResponse(BaseModel):
    """Readiness check response."""

    ready: bool


class ExtractionResponse(BaseModel):
    """Successful extraction response."""

    success: bool
    method: str | None
    data: InvoiceRecord
    metadata: ExtractionMetadata


class ExtractionErrorResponse(BaseModel):
    """Failed extraction response."""

    success: bool = False
    error: str
    error_type: str | None = None
    stage: str | None = None
    details: str | None = None
    processing_time_seconds: float
    timestamp: datetime


class CategoryListing(BaseModel):
    """One expense category with its example terms."""

    id: int
    name: str
    examples: list[str]


class CategoriesResponse(BaseModel):
    """Expense category listing."""

    success: bool
    categories: list[CategoryListing]


class StatusResponse(BaseModel):
    """Extraction backend status."""

    provider: str
    provider_available: bool
    model: str | None
    supported_formats: list[str]
    categories: list[str]
    template_version: str
    timestamp: datetime


@app.get("/health", response_model=HealthResponse, tags=["Health"])
def health_check() -> HealthResponse:
    """Health check endpoint for liveness probe."""
    return HealthResponse(
        status="healthy", version=settings.service_version, service=settings.service_name
    )


@app.get("/ready", response_model=ReadinessResponse, tags=["Health"])
def readiness_check() -> ReadinessResponse:
    """Readiness check endpoint for Kubernetes readiness probe."""
    return ReadinessResponse(ready=True)


@app.get("/metrics", tags=["Monitoring"])
def get_metrics() -> Response:
    """Prometheus metrics endpoint."""
    metrics_data, content_type = metrics.get_metrics()
    return Response(content=metrics_data, media_type=content_type)


@app.get("/api/v1/categories", response_model=CategoriesResponse, tags=["Invoices"])
def list_categories() -> CategoriesResponse:
    """List the expense categories an extraction may assign.

    Returns:
        Categories in listing order with 1-based ids and example terms
    """
    listing = extraction_service.taxonomy.as_listing()
    return CategoriesResponse(
        success=True,
        categories=[CategoryListing(**entry) for entry in listing],
    )


@app.get("/api/v1/status", response_model=StatusResponse, tags=["Invoices"])
def extraction_status() -> StatusResponse:
    """Report which inference backend is configured and whether it is usable."""
    provider = extraction_service.provider
    return StatusResponse(
        provider=provider.provider_name,
        provider_available=provider.is_available(),
        model=provider.model_name,
        supported_formats=settings.allowed_media_types,
        categories=[category.value for category in extraction_service.taxonomy.list_categories()],
        template_version=extraction_service.config.template.version,
        timestamp=datetime.now(UTC),
    )


@app.post(
    "/api/v1/invoices/extract",
    response_model=ExtractionResponse,
    responses={
        400: {"model": ExtractionErrorResponse},
        502: {"model": ExtractionErrorResponse},
    },
    tags=["Invoices"],
)
async def extract_invoice(
    invoice: UploadFile = File(..., description="Invoice PDF (NF-e)"),  # noqa: B008
) -> Response | ExtractionResponse:
    """Upload an invoice document and extract its structured data.

    ## Usage Example

    ```bash
    curl -X POST "http://localhost:8000/api/v1/invoices/extract" \\
      -F "invoice=@nota.pdf;type=application/pdf"
    ```

    ## Requirements

    - **File Types**: PDF (configurable via APP_ALLOWED_MEDIA_TYPES)
    - **Max Size**: 15MB (configurable via APP_MAX_UPLOAD_BYTES)
    - **Backend**: GEMINI_API_KEY for the default gemini provider

    ## Error Handling

    - Returns 400 if the file is missing, empty, or of the wrong type
    - Returns 413 if the file is too large
    - Returns 502 with a stage tag if the backend call or reply parsing fails

    Args:
        invoice: Invoice document to process

    Returns:
        Extracted invoice record with processing metadata

    Raises:
        HTTPException: If the upload is invalid
    """
    if not invoice.filename:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No filename provided")

    if invoice.content_type not in settings.allowed_media_types:
        metrics.documents_uploaded_total.labels(status="rejected").inc()
        allowed = ", ".join(settings.allowed_media_types)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid file type: {invoice.content_type}. Allowed types: {allowed}.",
        )

    content = await invoice.read()
    if not content:
        metrics.documents_uploaded_total.labels(status="rejected").inc()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Empty file")

    if len(content) > settings.max_upload_bytes:
        metrics.documents_uploaded_total.labels(status="rejected").inc()
        limit_mb = settings.max_upload_bytes / (1024 * 1024)
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File too large. Maximum {limit_mb:.0f}MB allowed.",
        )

    metrics.documents_uploaded_total.labels(status="accepted").inc()
    metrics.document_upload_size_bytes.observe(len(content))

    result = await run_in_threadpool(
        extraction_service.extract, content, invoice.content_type, invoice.filename
    )

    metrics.extraction_processing_duration_seconds.observe(
        result.metadata.processing_time_seconds
    )

    if result.success and result.record is not None:
        metrics.extraction_requests_total.labels(status="success", stage="none").inc()
        return ExtractionResponse(
            success=True,
            method=result.metadata.method,
            data=result.record,
            metadata=result.metadata,
        )

    metrics.extraction_requests_total.labels(status="failed", stage=result.stage or "unknown").inc()
    body = ExtractionErrorResponse(
        error=result.error or "Extraction failed",
        error_type=result.error_type,
        stage=result.stage,
        details=result.details,
        processing_time_seconds=result.metadata.processing_time_seconds,
        timestamp=result.metadata.timestamp,
    )
    status_code = ERROR_STATUS.get(result.error_type or "", status.HTTP_500_INTERNAL_SERVER_ERROR)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))
