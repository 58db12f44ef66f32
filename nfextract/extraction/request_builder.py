"""Builds the extraction request handed to an inference provider."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from nfextract.extraction.errors import InvalidInputError
from nfextract.extraction.instructions import ExtractionConfig

TEXT_MEDIA_TYPE = "text/plain"


class DocumentPayload(BaseModel):
    """Raw document received from the caller.

    Attributes:
        content: Document bytes (PDF) or UTF-8 encoded text
        media_type: Declared media type, e.g. application/pdf
        filename: Original filename, if known
    """

    model_config = ConfigDict(frozen=True)

    content: bytes
    media_type: str = "application/pdf"
    filename: str | None = None

    @classmethod
    def from_text(cls, text: str, filename: str | None = None) -> "DocumentPayload":
        """Wrap text that was already extracted from a document."""
        return cls(content=text.encode("utf-8"), media_type=TEXT_MEDIA_TYPE, filename=filename)

    @property
    def is_text(self) -> bool:
        return self.media_type.split(";")[0].strip().lower().startswith("text/")


class ExtractionRequest(BaseModel):
    """Self-contained instruction payload for one inference call.

    Exactly one of ``text`` and ``document`` is set.
    """

    model_config = ConfigDict(frozen=True)

    instructions: str
    template_version: str
    text: str | None = None
    document: bytes | None = None
    media_type: str
    filename: str | None = None
    response_schema: dict[str, Any] = Field(default_factory=dict)

    @property
    def has_document(self) -> bool:
        return self.document is not None

    def prompt(self) -> str:
        """Instructions followed by the document text, for text-only backends."""
        if self.text is None:
            return self.instructions
        return f"{self.instructions}\n\nCONTEÚDO DO DOCUMENTO:\n{self.text}"


class RequestBuilder:
    """Turns a document payload into an ExtractionRequest.

    Deterministic: the same payload and configuration always produce an
    equal request.
    """

    def __init__(self, config: ExtractionConfig) -> None:
        self.config = config
        self._instructions = config.template.render(config.taxonomy)
        self._response_schema = config.template.response_schema(config.taxonomy)

    def build_request(self, payload: DocumentPayload) -> ExtractionRequest:
        """Build the request for one document.

        Args:
            payload: Document bytes or pre-extracted text

        Returns:
            ExtractionRequest ready for InferenceProvider.infer()

        Raises:
            InvalidInputError: If the payload is empty
        """
        if not payload.content:
            raise InvalidInputError("Empty document payload provided")

        text: str | None = None
        document: bytes | None = None
        if payload.is_text:
            text = payload.content.decode("utf-8", errors="replace")
            if not text.strip():
                raise InvalidInputError("Empty document text provided")
        else:
            document = payload.content

        return ExtractionRequest(
            instructions=self._instructions,
            template_version=self.config.template.version,
            text=text,
            document=document,
            media_type=payload.media_type,
            filename=payload.filename,
            response_schema=self._response_schema,
        )
