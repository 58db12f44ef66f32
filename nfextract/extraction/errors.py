"""Typed failures of the extraction pipeline.

Each error carries the stage it happened in and, once the orchestrator has
seen it, the elapsed processing time.
"""

from enum import Enum


class ExtractionStage(str, Enum):
    """Stage tags reported with failures."""

    EXTRACTION_REQUEST = "extraction_request_failed"
    INFERENCE_CALL = "inference_call_failed"
    RESPONSE_PARSE = "response_parse_failed"


class ExtractionError(Exception):
    """Base class for extraction failures.

    Attributes:
        message: Human-readable description
        stage: Pipeline stage that failed
        details: Diagnostic payload (cause message or raw reply)
        elapsed_seconds: Processing time at failure, set by the orchestrator
    """

    stage: ExtractionStage = ExtractionStage.EXTRACTION_REQUEST

    def __init__(self, message: str, details: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details
        self.elapsed_seconds: float | None = None


class InvalidInputError(ExtractionError):
    """Document payload is empty or missing. Client-side, never retried."""

    stage = ExtractionStage.EXTRACTION_REQUEST


class InferenceCallError(ExtractionError):
    """The inference backend did not produce a reply."""

    stage = ExtractionStage.INFERENCE_CALL


class MalformedResponseError(ExtractionError):
    """The backend reply holds no usable invoice JSON object."""

    stage = ExtractionStage.RESPONSE_PARSE

    def __init__(self, message: str, raw_reply: str) -> None:
        super().__init__(message, details=raw_reply)
        self.raw_reply = raw_reply
