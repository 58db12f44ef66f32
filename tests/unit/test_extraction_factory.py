"""Unit tests for inference provider factory.

Tests cover:
- Provider registry lookups
- Factory function provider creation
- Configuration-based selection
- Error handling for unknown providers
"""

import logging

import pytest

from nfextract.extraction.base import InferenceProvider
from nfextract.extraction.factory import (
    ProviderRegistry,
    create_extraction_service,
    create_inference_provider,
)
from nfextract.extraction.gemini_provider import GeminiInferenceProvider
from nfextract.extraction.instructions import ExtractionConfig
from nfextract.extraction.ollama_provider import OllamaInferenceProvider
from nfextract.extraction.openai_provider import OpenAIInferenceProvider
from nfextract.extraction.request_builder import ExtractionRequest
from nfextract.extraction.service import InvoiceExtractionService
from nfextract.shared.config import Settings


def test_provider_registry_default_providers() -> None:
    """Test that registry contains default providers."""
    providers = ProviderRegistry.list_providers()

    assert {"gemini", "openai", "ollama"} <= set(providers)


@pytest.mark.parametrize(
    ("name", "provider_class"),
    [
        ("gemini", GeminiInferenceProvider),
        ("openai", OpenAIInferenceProvider),
        ("ollama", OllamaInferenceProvider),
    ],
)
def test_provider_registry_get_provider_class(
    name: str, provider_class: type[InferenceProvider]
) -> None:
    """Test getting providers from registry."""
    assert ProviderRegistry.get_provider_class(name) is provider_class


def test_provider_registry_unknown_provider() -> None:
    """Unknown backend names raise ValueError listing the registered ones."""
    with pytest.raises(ValueError, match="Unknown inference provider") as exc_info:
        ProviderRegistry.get_provider_class("nonexistent")

    assert "APP_EXTRACTION_PROVIDER must be one of" in str(exc_info.value)
    assert "gemini" in str(exc_info.value)


def test_provider_registry_register_custom_provider() -> None:
    """Test registering a new provider at runtime."""

    class CustomProvider(InferenceProvider):
        def infer(self, request: ExtractionRequest) -> str:
            return "{}"

        def is_available(self) -> bool:
            return True

        @property
        def provider_name(self) -> str:
            return "custom"

    ProviderRegistry.register("custom", CustomProvider)
    try:
        assert ProviderRegistry.get_provider_class("custom") is CustomProvider
        assert "custom" in ProviderRegistry.list_providers()
    finally:
        ProviderRegistry._providers.pop("custom", None)


def test_create_inference_provider_default_gemini(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test that the default configuration creates the Gemini provider."""
    monkeypatch.setenv("GEMINI_API_KEY", "test-key")

    provider = create_inference_provider(Settings(_env_file=None))

    assert isinstance(provider, GeminiInferenceProvider)
    assert provider.provider_name == "gemini"


def test_create_inference_provider_openai(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test configuration-based selection of OpenAI."""
    monkeypatch.setenv("OPENAI_API_KEY", "test-key")

    provider = create_inference_provider(Settings(extraction_provider="openai"))

    assert isinstance(provider, OpenAIInferenceProvider)


def test_create_inference_provider_warns_when_unavailable(
    monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    """Test warning when provider is not available."""
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)

    with caplog.at_level(logging.WARNING):
        create_inference_provider(Settings(extraction_provider="gemini"))

    assert "is not ready" in caplog.text


def test_create_extraction_service(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test wiring the service with the default config."""
    monkeypatch.setenv("OPENAI_API_KEY", "test-key")

    service = create_extraction_service(Settings(extraction_provider="openai"))

    assert isinstance(service, InvoiceExtractionService)
    assert isinstance(service.provider, OpenAIInferenceProvider)
    assert service.config == ExtractionConfig.default()


def test_create_extraction_service_with_custom_config(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test that an injected config is used by reference."""
    monkeypatch.setenv("GEMINI_API_KEY", "test-key")
    config = ExtractionConfig.default()

    service = create_extraction_service(Settings(), config)

    assert service.config is config
    assert service.builder.config is config
    assert service.parser.config is config
