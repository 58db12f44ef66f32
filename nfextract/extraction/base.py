"""Abstract base class for inference providers and extraction result models.

Enables switching between inference backends (Gemini, OpenAI, Ollama) while
the request building and reply validation stay shared.

Based on Strategy Pattern:
https://refactoring.guru/design-patterns/strategy/python
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import datetime
from enum import Enum
from typing import Any, TypeVar

from pydantic import BaseModel, Field
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential_jitter

from nfextract.extraction.request_builder import ExtractionRequest
from nfextract.extraction.schema import InvoiceRecord
from nfextract.shared.config import Settings

T = TypeVar("T")


class ExtractionState(str, Enum):
    """Per-request pipeline states. FAILED is reachable from every non-terminal state."""

    RECEIVED = "received"
    VALIDATED = "validated"
    REQUEST_BUILT = "request_built"
    INFERENCE_IN_FLIGHT = "inference_in_flight"
    RESPONSE_PARSED = "response_parsed"
    COMPLETED = "completed"
    FAILED = "failed"


class ExtractionMetadata(BaseModel):
    """Facts about one extraction run, returned next to the record.

    Attributes:
        filename: Original filename
        file_size: Document size in bytes
        media_type: Declared media type
        method: direct_pdf_processing or text_processing
        processing_time_seconds: Wall time from receipt to completion/failure
        timestamp: Completion time (UTC)
        provider: Inference provider name
        model: Backend model identifier, if the provider has one
        template_version: Instruction template version used
    """

    filename: str | None = None
    file_size: int = 0
    media_type: str | None = None
    method: str | None = None
    processing_time_seconds: float = 0.0
    timestamp: datetime
    provider: str
    model: str | None = None
    template_version: str | None = None


class ExtractionResult(BaseModel):
    """Result of extraction operation.

    Attributes:
        record: Extracted invoice record or None if extraction failed
        success: Whether operation succeeded
        error: Human-readable error message if operation failed
        error_type: Failure class name (InvalidInputError, InferenceCallError, ...)
        stage: Stage tag of the failure
        details: Diagnostic payload (raw backend reply or cause message)
        state: Final pipeline state
        state_history: Every state the request went through, in order
        metadata: Run metadata
        provider: Name of provider that performed extraction
    """

    record: InvoiceRecord | None
    success: bool
    error: str | None = None
    error_type: str | None = None
    stage: str | None = None
    details: str | None = None
    state: ExtractionState
    state_history: list[ExtractionState] = Field(default_factory=list)
    metadata: ExtractionMetadata
    provider: str


class InferenceProvider(ABC):
    """Abstract base class for inference backends.

    A provider performs one inference call per infer() from the caller's
    point of view. Any retry it does internally is its own business.

    Example implementations:
    - GeminiInferenceProvider: Google Gemini API (reads PDFs directly)
    - OpenAIInferenceProvider: OpenAI API (cloud-based)
    - OllamaInferenceProvider: self-hosted Ollama server (text only)
    """

    # Backoff between attempts; tests swap in tenacity.wait_none()
    retry_wait = wait_exponential_jitter(initial=1, max=30)

    def __init__(self, settings: Settings) -> None:
        """Initialize provider with settings.

        Args:
            settings: Application settings
        """
        self.settings = settings

    @abstractmethod
    def infer(self, request: ExtractionRequest) -> str:
        """Run the extraction request against the backend.

        Args:
            request: Instructions plus document text or bytes

        Returns:
            Raw reply text from the backend

        Raises:
            Exception: Any backend failure; the orchestrator wraps it
        """
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """Check if this provider is available/configured.

        Returns:
            True if provider can be used, False otherwise
        """
        pass

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Get provider name for logging/metrics.

        Returns:
            Provider identifier (e.g., 'gemini', 'openai')
        """
        pass

    @property
    def model_name(self) -> str | None:
        """Backend model identifier, if any."""
        return None

    def _call_with_retry(
        self,
        retry_on: tuple[type[BaseException], ...],
        func: Callable[..., T],
        *args: Any,
        **kwargs: Any,
    ) -> T:
        """Call a backend function with retry on transient errors.

        Uses exponential backoff with jitter, up to settings.inference_max_attempts
        attempts (the default of 1 means a single attempt, no retry).

        Args:
            retry_on: Exception types considered transient
            func: Function performing the backend call

        Returns:
            Whatever func returns

        Raises:
            Exception: The last error once all attempts are exhausted
        """
        retryer = Retrying(
            retry=retry_if_exception_type(retry_on),
            wait=self.retry_wait,
            stop=stop_after_attempt(self.settings.inference_max_attempts),
            reraise=True,
        )
        return retryer(func, *args, **kwargs)
