"""Invoice field extraction core.

For provider selection, import from nfextract.extraction.factory:
- create_extraction_service() for configuration-based wiring
- ProviderRegistry to register additional backends
"""

from nfextract.extraction.base import (
    ExtractionMetadata,
    ExtractionResult,
    ExtractionState,
    InferenceProvider,
)
from nfextract.extraction.errors import (
    ExtractionError,
    ExtractionStage,
    InferenceCallError,
    InvalidInputError,
    MalformedResponseError,
)
from nfextract.extraction.instructions import ExtractionConfig
from nfextract.extraction.request_builder import DocumentPayload, ExtractionRequest, RequestBuilder
from nfextract.extraction.response_parser import ResponseParser
from nfextract.extraction.schema import BilledParty, InvoiceRecord, Supplier
from nfextract.extraction.service import InvoiceExtractionService
from nfextract.extraction.taxonomy import DEFAULT_TAXONOMY, Category, Taxonomy

__all__ = [
    "BilledParty",
    "Category",
    "DEFAULT_TAXONOMY",
    "DocumentPayload",
    "ExtractionConfig",
    "ExtractionError",
    "ExtractionMetadata",
    "ExtractionRequest",
    "ExtractionResult",
    "ExtractionStage",
    "ExtractionState",
    "InferenceCallError",
    "InferenceProvider",
    "InvalidInputError",
    "InvoiceExtractionService",
    "InvoiceRecord",
    "MalformedResponseError",
    "RequestBuilder",
    "ResponseParser",
    "Supplier",
    "Taxonomy",
]
