"""Unit tests for OllamaInferenceProvider.

Tests the Ollama-based inference provider with mocked HTTP calls.
"""

from unittest.mock import MagicMock, patch

import httpx
import pytest
from tenacity import wait_none

from nfextract.extraction.errors import InferenceCallError
from nfextract.extraction.instructions import ExtractionConfig
from nfextract.extraction.ollama_provider import OllamaInferenceProvider
from nfextract.extraction.request_builder import (
    DocumentPayload,
    ExtractionRequest,
    RequestBuilder,
)
from nfextract.shared.config import Settings


@pytest.fixture
def settings() -> Settings:
    """Create test settings with Ollama provider."""
    return Settings(
        extraction_provider="ollama",
        ollama_base_url="http://localhost:11434",
        ollama_model="qwen2.5:7b",
    )


@pytest.fixture
def provider(settings: Settings) -> OllamaInferenceProvider:
    """Create Ollama provider instance."""
    provider = OllamaInferenceProvider(settings)
    provider.retry_wait = wait_none()
    return provider


@pytest.fixture
def text_request() -> ExtractionRequest:
    """Request carrying document text."""
    builder = RequestBuilder(ExtractionConfig.default())
    return builder.build_request(DocumentPayload.from_text("NF-e N°: 000.207.590"))


def _generate_response(reply: str) -> MagicMock:
    mock_response = MagicMock()
    mock_response.status_code = 200
    mock_response.raise_for_status = MagicMock()
    mock_response.json.return_value = {"response": reply}
    return mock_response


class TestOllamaProviderProperties:
    """Test provider properties and availability."""

    def test_provider_name(self, provider: OllamaInferenceProvider) -> None:
        """Provider name should be 'ollama'."""
        assert provider.provider_name == "ollama"
        assert provider.model_name == "qwen2.5:7b"

    def test_is_available_when_server_running(self, provider: OllamaInferenceProvider) -> None:
        """Should return True when Ollama server responds with model."""
        mock_response = MagicMock()
        mock_response.status_code = 200
        mock_response.json.return_value = {"models": [{"name": "qwen2.5:7b"}]}

        with patch.object(provider._client, "get", return_value=mock_response):
            assert provider.is_available() is True

    def test_is_available_when_server_down(self, provider: OllamaInferenceProvider) -> None:
        """Should return False when Ollama server is unreachable."""
        with patch.object(
            provider._client, "get", side_effect=httpx.ConnectError("Connection refused")
        ):
            assert provider.is_available() is False

    def test_is_available_when_model_not_found(self, provider: OllamaInferenceProvider) -> None:
        """Should return False when configured model is not available."""
        mock_response = MagicMock()
        mock_response.status_code = 200
        mock_response.json.return_value = {"models": [{"name": "llama3.1:8b"}]}  # Different model

        with patch.object(provider._client, "get", return_value=mock_response):
            assert provider.is_available() is False

    def test_is_available_when_server_errors(self, provider: OllamaInferenceProvider) -> None:
        """Should return False on a non-200 response."""
        mock_response = MagicMock()
        mock_response.status_code = 500

        with patch.object(provider._client, "get", return_value=mock_response):
            assert provider.is_available() is False


class TestOllamaInference:
    """Test inference calls."""

    def test_infer_returns_reply_text(
        self, provider: OllamaInferenceProvider, text_request: ExtractionRequest
    ) -> None:
        """Should return the raw reply from /api/generate."""
        with patch.object(
            provider._client, "post", return_value=_generate_response('{"a": 1}')
        ) as mock_post:
            reply = provider.infer(text_request)

        assert reply == '{"a": 1}'
        url = mock_post.call_args.args[0]
        assert url == "http://localhost:11434/api/generate"
        payload = mock_post.call_args.kwargs["json"]
        assert payload["model"] == "qwen2.5:7b"
        assert payload["prompt"] == text_request.prompt()
        assert payload["stream"] is False
        assert payload["format"] == text_request.response_schema
        assert payload["options"]["temperature"] == 0

    def test_infer_rejects_document_bytes(self, provider: OllamaInferenceProvider) -> None:
        """PDF bytes cannot be sent to Ollama."""
        builder = RequestBuilder(ExtractionConfig.default())
        pdf_request = builder.build_request(DocumentPayload(content=b"%PDF-1.4 fake"))

        with patch.object(provider._client, "post") as mock_post:
            with pytest.raises(InferenceCallError, match="accepts text only"):
                provider.infer(pdf_request)

        mock_post.assert_not_called()

    def test_infer_http_error_propagates(
        self, provider: OllamaInferenceProvider, text_request: ExtractionRequest
    ) -> None:
        """HTTP errors propagate after a single attempt by default."""
        with patch.object(
            provider._client, "post", side_effect=httpx.ConnectError("Connection refused")
        ) as mock_post:
            with pytest.raises(httpx.ConnectError):
                provider.infer(text_request)

        assert mock_post.call_count == 1

    def test_infer_http_error_retried_when_configured(
        self, text_request: ExtractionRequest
    ) -> None:
        """HTTP errors are retried up to inference_max_attempts."""
        provider = OllamaInferenceProvider(Settings(inference_max_attempts=2))
        provider.retry_wait = wait_none()

        with patch.object(
            provider._client,
            "post",
            side_effect=[httpx.ReadTimeout("timed out"), _generate_response("{}")],
        ) as mock_post:
            assert provider.infer(text_request) == "{}"

        assert mock_post.call_count == 2

    def test_infer_missing_response_field(
        self, provider: OllamaInferenceProvider, text_request: ExtractionRequest
    ) -> None:
        """A body without 'response' yields an empty reply."""
        mock_response = _generate_response("")
        mock_response.json.return_value = {}

        with patch.object(provider._client, "post", return_value=mock_response):
            assert provider.infer(text_request) == ""
