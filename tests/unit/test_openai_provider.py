"""Unit tests for OpenAIInferenceProvider.

Tests the OpenAI provider with a mocked SDK client.
"""

import base64
from collections.abc import Generator
from unittest.mock import MagicMock, patch

import httpx
import openai
import pytest
from tenacity import wait_none

from nfextract.extraction.errors import InferenceCallError
from nfextract.extraction.instructions import ExtractionConfig
from nfextract.extraction.openai_provider import SYSTEM_PROMPT, OpenAIInferenceProvider
from nfextract.extraction.request_builder import (
    DocumentPayload,
    ExtractionRequest,
    RequestBuilder,
)
from nfextract.shared.config import Settings


def _completion(content: str | None) -> MagicMock:
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = content
    return response


def _connection_error() -> openai.APIConnectionError:
    return openai.APIConnectionError(
        request=httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    )


@pytest.fixture
def provider() -> OpenAIInferenceProvider:
    """Create OpenAI provider instance with no backoff between attempts."""
    provider = OpenAIInferenceProvider(Settings(extraction_provider="openai"))
    provider.retry_wait = wait_none()
    return provider


@pytest.fixture
def pdf_request() -> ExtractionRequest:
    """Request carrying PDF bytes."""
    builder = RequestBuilder(ExtractionConfig.default())
    return builder.build_request(DocumentPayload(content=b"%PDF-1.4 fake", filename="nota.pdf"))


@pytest.fixture
def text_request() -> ExtractionRequest:
    """Request carrying document text."""
    builder = RequestBuilder(ExtractionConfig.default())
    return builder.build_request(DocumentPayload.from_text("NF-e N°: 000.207.590"))


@pytest.fixture
def mock_client(monkeypatch: pytest.MonkeyPatch) -> Generator[MagicMock, None, None]:
    """Patch the OpenAI client class and set an API key."""
    monkeypatch.setenv("OPENAI_API_KEY", "test-key")
    with patch("nfextract.extraction.openai_provider.OpenAI") as mock_openai:
        client = MagicMock()
        client.api_key = "test-key"
        client.chat.completions.create.return_value = _completion('{"numero_nota_fiscal": "1"}')
        mock_openai.return_value = client
        yield client


def test_provider_properties(provider: OpenAIInferenceProvider) -> None:
    """Provider name and model come from settings."""
    assert provider.provider_name == "openai"
    assert provider.model_name == "gpt-4o-mini"


def test_is_available(provider: OpenAIInferenceProvider, monkeypatch: pytest.MonkeyPatch) -> None:
    """Availability follows OPENAI_API_KEY."""
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    assert provider.is_available() is False

    monkeypatch.setenv("OPENAI_API_KEY", "test-key")
    assert provider.is_available() is True


def test_infer_without_key_raises(
    provider: OpenAIInferenceProvider,
    text_request: ExtractionRequest,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """A missing API key is an inference call failure."""
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)

    with pytest.raises(InferenceCallError, match="OPENAI_API_KEY"):
        provider.infer(text_request)


def test_infer_text_request(
    provider: OpenAIInferenceProvider, text_request: ExtractionRequest, mock_client: MagicMock
) -> None:
    """Text requests are sent inline in JSON mode."""
    reply = provider.infer(text_request)

    assert reply == '{"numero_nota_fiscal": "1"}'
    call_kwargs = mock_client.chat.completions.create.call_args.kwargs
    assert call_kwargs["model"] == "gpt-4o-mini"
    assert call_kwargs["response_format"] == {"type": "json_object"}
    assert call_kwargs["temperature"] == 0
    assert call_kwargs["messages"] == [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": text_request.prompt()},
    ]


def test_infer_pdf_request_attaches_file(
    provider: OpenAIInferenceProvider, pdf_request: ExtractionRequest, mock_client: MagicMock
) -> None:
    """PDF bytes are attached as a base64 file content part."""
    provider.infer(pdf_request)

    user_content = mock_client.chat.completions.create.call_args.kwargs["messages"][1]["content"]
    assert user_content[0] == {"type": "text", "text": pdf_request.instructions}
    file_part = user_content[1]
    assert file_part["type"] == "file"
    assert file_part["file"]["filename"] == "nota.pdf"
    encoded = base64.b64encode(b"%PDF-1.4 fake").decode("ascii")
    assert file_part["file"]["file_data"] == f"data:application/pdf;base64,{encoded}"


def test_infer_empty_content_raises(
    provider: OpenAIInferenceProvider, text_request: ExtractionRequest, mock_client: MagicMock
) -> None:
    """A reply without content is an inference call failure."""
    mock_client.chat.completions.create.return_value = _completion(None)

    with pytest.raises(InferenceCallError, match="No content in API response"):
        provider.infer(text_request)


def test_infer_transient_error_single_attempt(
    provider: OpenAIInferenceProvider, text_request: ExtractionRequest, mock_client: MagicMock
) -> None:
    """With default settings a connection error propagates after one call."""
    mock_client.chat.completions.create.side_effect = _connection_error()

    with pytest.raises(openai.APIConnectionError):
        provider.infer(text_request)

    assert mock_client.chat.completions.create.call_count == 1


def test_infer_transient_error_retried_when_configured(
    text_request: ExtractionRequest, mock_client: MagicMock
) -> None:
    """Connection errors are retried up to inference_max_attempts."""
    provider = OpenAIInferenceProvider(Settings(inference_max_attempts=3))
    provider.retry_wait = wait_none()
    mock_client.chat.completions.create.side_effect = [
        _connection_error(),
        _connection_error(),
        _completion("{}"),
    ]

    assert provider.infer(text_request) == "{}"
    assert mock_client.chat.completions.create.call_count == 3


def test_client_created_without_sdk_retries(
    provider: OpenAIInferenceProvider, text_request: ExtractionRequest
) -> None:
    """The SDK's own retries are disabled."""
    with patch.dict("os.environ", {"OPENAI_API_KEY": "test-key"}):
        with patch("nfextract.extraction.openai_provider.OpenAI") as mock_openai:
            mock_openai.return_value.api_key = "test-key"
            mock_openai.return_value.chat.completions.create.return_value = _completion("{}")
            provider.infer(text_request)

    mock_openai.assert_called_once_with(api_key="test-key", timeout=120.0, max_retries=0)
