"""Ollama-based inference provider for self-hosted LLM inference.

Uses a local Ollama server for extraction from pre-extracted document text.
Supports data sovereignty requirements by running entirely on-premises.
Ollama models cannot read PDF bytes, so document requests are refused.

Requires Ollama server running on localhost:11434.
See: https://ollama.ai/
"""

import logging

import httpx

from nfextract.extraction.base import InferenceProvider
from nfextract.extraction.errors import InferenceCallError
from nfextract.extraction.request_builder import ExtractionRequest
from nfextract.shared.config import Settings

logger = logging.getLogger(__name__)


class OllamaInferenceProvider(InferenceProvider):
    """Ollama-based provider for self-hosted LLM inference.

    Uses local Ollama server running on localhost:11434.
    Supports models like Qwen2.5, Llama3, Mistral.
    """

    def __init__(self, settings: Settings) -> None:
        """Initialize Ollama inference provider.

        Args:
            settings: Application settings
        """
        super().__init__(settings)
        self._base_url = settings.ollama_base_url
        self._model = settings.ollama_model
        self._client = httpx.Client(timeout=settings.inference_timeout_seconds)

    @property
    def provider_name(self) -> str:
        """Get provider name for logging/metrics.

        Returns:
            Provider identifier 'ollama'
        """
        return "ollama"

    @property
    def model_name(self) -> str:
        return self._model

    def is_available(self) -> bool:
        """Check if Ollama server is running and model is available.

        Returns:
            True if Ollama server responds and model is loaded
        """
        try:
            response = self._client.get(f"{self._base_url}/api/tags")
            if response.status_code != 200:
                return False
            # Check if configured model is available
            models = response.json().get("models", [])
            model_names = [m.get("name", "").split(":")[0] for m in models]
            return self._model.split(":")[0] in model_names
        except httpx.HTTPError as e:
            logger.debug(f"Ollama server not reachable: {e}")
            return False

    def infer(self, request: ExtractionRequest) -> str:
        """Send the request text to Ollama and return the reply text.

        Args:
            request: Extraction request carrying document text

        Returns:
            Raw reply text

        Raises:
            InferenceCallError: If the request carries binary document bytes
            httpx.HTTPError: After all attempts are exhausted
        """
        if request.has_document:
            raise InferenceCallError(
                f"Ollama provider accepts text only, got {request.media_type} document"
            )

        return self._call_with_retry((httpx.HTTPError,), self._generate, request)

    def _generate(self, request: ExtractionRequest) -> str:
        response = self._client.post(
            f"{self._base_url}/api/generate",
            json={
                "model": self._model,
                "prompt": request.prompt(),
                "stream": False,
                "format": request.response_schema or "json",
                "options": {
                    "temperature": 0,  # Deterministic output
                    "num_predict": 1024,  # Max tokens
                },
            },
        )
        response.raise_for_status()
        result: str = response.json().get("response", "")
        return result
