"""Gemini-based inference provider.

Sends PDFs to Gemini as inline document parts, so no local text extraction
is needed. Text payloads are sent as plain prompt text.
Requires GEMINI_API_KEY environment variable.

Based on the google-genai SDK:
https://googleapis.github.io/python-genai/
"""

import logging
import os

from google import genai
from google.genai import errors, types

from nfextract.extraction.base import InferenceProvider
from nfextract.extraction.errors import InferenceCallError
from nfextract.extraction.request_builder import ExtractionRequest
from nfextract.shared.config import Settings

logger = logging.getLogger(__name__)


class GeminiInferenceProvider(InferenceProvider):
    """Google Gemini provider, reading PDF documents directly."""

    def __init__(self, settings: Settings) -> None:
        """Initialize Gemini inference provider.

        Args:
            settings: Application settings
        """
        super().__init__(settings)
        self._client: genai.Client | None = None
        self._client_key: str | None = None

    @property
    def provider_name(self) -> str:
        return "gemini"

    @property
    def model_name(self) -> str:
        return self.settings.gemini_model

    def is_available(self) -> bool:
        """Check if GEMINI_API_KEY is configured."""
        return os.getenv("GEMINI_API_KEY") is not None

    def infer(self, request: ExtractionRequest) -> str:
        """Send the request to Gemini and return the reply text.

        Args:
            request: Extraction request with document bytes or text

        Returns:
            Raw reply text

        Raises:
            InferenceCallError: If no API key is set or the reply is empty
            errors.APIError: If the API call fails after all attempts
        """
        api_key = os.getenv("GEMINI_API_KEY")
        if not api_key:
            raise InferenceCallError("GEMINI_API_KEY environment variable not set")

        if self._client is None or self._client_key != api_key:
            self._client = genai.Client(
                api_key=api_key,
                http_options=types.HttpOptions(
                    timeout=int(self.settings.inference_timeout_seconds * 1000)
                ),
            )
            self._client_key = api_key

        if request.has_document:
            logger.info(
                f"Sending {len(request.document or b'')} byte document to {self.model_name}"
            )
            contents: list[str | types.Part] = [
                request.instructions,
                types.Part.from_bytes(data=request.document, mime_type=request.media_type),
            ]
        else:
            contents = [request.prompt()]

        response = self._call_with_retry((errors.APIError,), self._generate, contents)

        text = response.text
        if not text:
            raise InferenceCallError(f"Empty reply from {self.model_name}")
        return text

    def _generate(self, contents: list[str | types.Part]) -> types.GenerateContentResponse:
        if self._client is None:
            raise RuntimeError("Gemini client not initialized")

        return self._client.models.generate_content(
            model=self.model_name,
            contents=contents,
            config=types.GenerateContentConfig(
                temperature=0,  # Deterministic output
                response_mime_type="application/json",
            ),
        )
