"""OpenAI-based inference provider.

Uses the OpenAI chat completions API in JSON mode. PDFs are attached as
base64 file content parts; text payloads are sent inline.
Requires OPENAI_API_KEY environment variable.
"""

import base64
import os
from typing import Any

import openai
from openai import OpenAI

from nfextract.extraction.base import InferenceProvider
from nfextract.extraction.errors import InferenceCallError
from nfextract.extraction.request_builder import ExtractionRequest
from nfextract.shared.config import Settings

SYSTEM_PROMPT = "Você é um assistente de extração de dados de notas fiscais."

# SDK errors worth another attempt
TRANSIENT_ERRORS = (
    openai.APIConnectionError,
    openai.RateLimitError,
    openai.InternalServerError,
)


class OpenAIInferenceProvider(InferenceProvider):
    """OpenAI provider using chat completions with a JSON object reply."""

    def __init__(self, settings: Settings) -> None:
        """Initialize OpenAI inference provider.

        Args:
            settings: Application settings
        """
        super().__init__(settings)
        self._client: OpenAI | None = None

    @property
    def provider_name(self) -> str:
        """Get provider name for logging/metrics.

        Returns:
            Provider identifier 'openai'
        """
        return "openai"

    @property
    def model_name(self) -> str:
        return self.settings.openai_model

    def is_available(self) -> bool:
        """Check if OpenAI API key is configured.

        Returns:
            True if OPENAI_API_KEY environment variable is set
        """
        return os.getenv("OPENAI_API_KEY") is not None

    def infer(self, request: ExtractionRequest) -> str:
        """Send the request to OpenAI and return the reply text.

        Args:
            request: Extraction request with document bytes or text

        Returns:
            Raw reply text

        Raises:
            InferenceCallError: If no API key is set or the reply has no content
            openai.OpenAIError: If the API call fails after all attempts
        """
        api_key = os.getenv("OPENAI_API_KEY")
        if not api_key:
            raise InferenceCallError("OPENAI_API_KEY environment variable not set")

        if self._client is None or self._client.api_key != api_key:
            # Retries are handled by _call_with_retry, not by the SDK
            self._client = OpenAI(
                api_key=api_key,
                timeout=self.settings.inference_timeout_seconds,
                max_retries=0,
            )

        response = self._call_with_retry(
            TRANSIENT_ERRORS, self._create_completion, self._build_messages(request)
        )

        content = response.choices[0].message.content
        if not content:
            raise InferenceCallError("No content in API response")
        return str(content)

    def _build_messages(self, request: ExtractionRequest) -> list[dict[str, Any]]:
        """Build chat messages, attaching the document as a file part when present."""
        if request.has_document:
            encoded = base64.b64encode(request.document or b"").decode("ascii")
            user_content: Any = [
                {"type": "text", "text": request.instructions},
                {
                    "type": "file",
                    "file": {
                        "filename": request.filename or "nota_fiscal.pdf",
                        "file_data": f"data:{request.media_type};base64,{encoded}",
                    },
                },
            ]
        else:
            user_content = request.prompt()

        return [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": user_content},
        ]

    def _create_completion(self, messages: list[dict[str, Any]]) -> Any:
        if self._client is None:
            raise RuntimeError("OpenAI client not initialized")

        return self._client.chat.completions.create(  # type: ignore[call-overload]
            model=self.model_name,
            messages=messages,
            response_format={"type": "json_object"},
            temperature=0,  # Deterministic output
        )
