"""Invoice extraction orchestration.

Runs one document through the pipeline:

    RECEIVED -> VALIDATED -> REQUEST_BUILT -> INFERENCE_IN_FLIGHT
             -> RESPONSE_PARSED -> COMPLETED

Any stage may end in FAILED. The provider is called at most once per
request; nothing is retried here.
"""

import logging
import time
from datetime import UTC, datetime

from nfextract.extraction.base import (
    ExtractionMetadata,
    ExtractionResult,
    ExtractionState,
    InferenceProvider,
)
from nfextract.extraction.errors import (
    ExtractionError,
    InferenceCallError,
    InvalidInputError,
    MalformedResponseError,
)
from nfextract.extraction.instructions import ExtractionConfig
from nfextract.extraction.request_builder import (
    TEXT_MEDIA_TYPE,
    DocumentPayload,
    ExtractionRequest,
    RequestBuilder,
)
from nfextract.extraction.response_parser import ResponseParser
from nfextract.extraction.schema import InvoiceRecord
from nfextract.extraction.taxonomy import Taxonomy

logger = logging.getLogger(__name__)

DEFAULT_MEDIA_TYPE = "application/pdf"


class InvoiceExtractionService:
    """Extracts invoice records from documents with an injected provider.

    The request builder and response parser share one ExtractionConfig.
    The service holds no per-request state, so one instance can serve
    concurrent requests.
    """

    def __init__(self, provider: InferenceProvider, config: ExtractionConfig) -> None:
        """Initialize the service.

        Args:
            provider: Inference backend adapter
            config: Shared taxonomy and instruction template
        """
        self.provider = provider
        self.config = config
        self.builder = RequestBuilder(config)
        self.parser = ResponseParser(config)

    @property
    def taxonomy(self) -> Taxonomy:
        return self.config.taxonomy

    def is_available(self) -> bool:
        return self.provider.is_available()

    def extract(
        self,
        document: bytes,
        media_type: str | None = DEFAULT_MEDIA_TYPE,
        filename: str | None = None,
    ) -> ExtractionResult:
        """Extract an invoice record from a document.

        Args:
            document: Raw document bytes (PDF) or UTF-8 text
            media_type: Declared media type of the document
            filename: Original filename, reported in metadata

        Returns:
            ExtractionResult with the record, or with a stage-tagged error
        """
        start_time = time.perf_counter()
        history = [ExtractionState.RECEIVED]
        size = len(document) if isinstance(document, bytes | bytearray) else 0
        media_type = media_type or DEFAULT_MEDIA_TYPE
        method: str | None = None
        template_version: str | None = None

        logger.info(f"Processing {filename or '<unnamed>'} ({size / 1024:.1f}KB, {media_type})")

        try:
            payload = self._validate(document, media_type, filename)
            method = "text_processing" if payload.is_text else "direct_pdf_processing"
            self._advance(history, ExtractionState.VALIDATED)

            request = self.builder.build_request(payload)
            template_version = request.template_version
            self._advance(history, ExtractionState.REQUEST_BUILT)

            self._advance(history, ExtractionState.INFERENCE_IN_FLIGHT)
            raw_reply = self._infer(request)

            record = self._parse(raw_reply)
            self._advance(history, ExtractionState.RESPONSE_PARSED)

        except ExtractionError as e:
            elapsed = time.perf_counter() - start_time
            metadata = self._metadata(filename, size, media_type, method, elapsed, template_version)
            e.elapsed_seconds = elapsed
            self._advance(history, ExtractionState.FAILED)
            logger.error(
                f"Extraction failed at {e.stage.value} after {elapsed:.1f}s "
                f"({type(e).__name__}): {e.message}"
            )
            return ExtractionResult(
                record=None,
                success=False,
                error=e.message,
                error_type=type(e).__name__,
                stage=e.stage.value,
                details=e.details,
                state=ExtractionState.FAILED,
                state_history=history,
                metadata=metadata,
                provider=self.provider.provider_name,
            )

        elapsed = time.perf_counter() - start_time
        self._advance(history, ExtractionState.COMPLETED)
        logger.info(f"Extraction completed in {elapsed:.1f}s")

        return self._success(
            record,
            history,
            self._metadata(filename, size, media_type, method, elapsed, template_version),
        )

    def extract_text(self, text: str, filename: str | None = None) -> ExtractionResult:
        """Extract an invoice record from already-extracted document text."""
        return self.extract(text.encode("utf-8"), TEXT_MEDIA_TYPE, filename)

    def _validate(self, document: bytes, media_type: str, filename: str | None) -> DocumentPayload:
        if not isinstance(document, bytes | bytearray):
            raise InvalidInputError(f"Document must be bytes, got {type(document).__name__}")
        if not document:
            raise InvalidInputError("Empty document payload provided")
        return DocumentPayload(content=bytes(document), media_type=media_type, filename=filename)

    def _infer(self, request: ExtractionRequest) -> str:
        """Call the provider once, wrapping any failure as InferenceCallError."""
        try:
            return self.provider.infer(request)
        except InferenceCallError:
            raise
        except Exception as e:
            raise InferenceCallError(
                f"Inference call to {self.provider.provider_name} failed: {e}", details=str(e)
            ) from e

    def _parse(self, raw_reply: str) -> InvoiceRecord:
        """Validate the reply, reporting any unexpected failure as a parse error."""
        try:
            return self.parser.parse_and_validate(raw_reply)
        except MalformedResponseError:
            raise
        except Exception as e:
            raise MalformedResponseError(
                f"Reply validation failed: {type(e).__name__}: {e}", str(raw_reply)
            ) from e

    def _success(
        self, record: InvoiceRecord, history: list[ExtractionState], metadata: ExtractionMetadata
    ) -> ExtractionResult:
        return ExtractionResult(
            record=record,
            success=True,
            state=ExtractionState.COMPLETED,
            state_history=history,
            metadata=metadata,
            provider=self.provider.provider_name,
        )

    def _metadata(
        self,
        filename: str | None,
        size: int,
        media_type: str,
        method: str | None,
        elapsed: float,
        template_version: str | None,
    ) -> ExtractionMetadata:
        return ExtractionMetadata(
            filename=filename,
            file_size=size,
            media_type=media_type,
            method=method,
            processing_time_seconds=round(elapsed, 3),
            timestamp=datetime.now(UTC),
            provider=self.provider.provider_name,
            model=self.provider.model_name,
            template_version=template_version,
        )

    @staticmethod
    def _advance(history: list[ExtractionState], state: ExtractionState) -> None:
        logger.debug(f"State {history[-1].value} -> {state.value}")
        history.append(state)
