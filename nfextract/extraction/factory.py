"""Wiring for the invoice extraction service.

The backend that reads NF-e documents is chosen by name from
APP_EXTRACTION_PROVIDER; gemini is the default, openai and ollama are the
alternatives. The CLI offers the same names for --provider.
"""

import logging

from nfextract.extraction.base import InferenceProvider
from nfextract.extraction.gemini_provider import GeminiInferenceProvider
from nfextract.extraction.instructions import ExtractionConfig
from nfextract.extraction.ollama_provider import OllamaInferenceProvider
from nfextract.extraction.openai_provider import OpenAIInferenceProvider
from nfextract.extraction.service import InvoiceExtractionService
from nfextract.shared.config import Settings

logger = logging.getLogger(__name__)


class ProviderRegistry:
    """Backends able to turn an invoice request into a JSON reply, by name."""

    _providers: dict[str, type[InferenceProvider]] = {
        "gemini": GeminiInferenceProvider,
        "openai": OpenAIInferenceProvider,
        "ollama": OllamaInferenceProvider,
    }

    @classmethod
    def register(cls, name: str, provider_class: type[InferenceProvider]) -> None:
        """Make an extra invoice backend selectable as APP_EXTRACTION_PROVIDER=name."""
        cls._providers[name] = provider_class
        logger.info(f"Invoice backend '{name}' registered ({provider_class.__name__})")

    @classmethod
    def get_provider_class(cls, name: str) -> type[InferenceProvider]:
        """Look up the backend class for an APP_EXTRACTION_PROVIDER value.

        Raises:
            ValueError: If no invoice backend is registered under name
        """
        try:
            return cls._providers[name]
        except KeyError:
            known = ", ".join(sorted(cls._providers))
            raise ValueError(
                f"Unknown inference provider '{name}' for invoice extraction "
                f"(APP_EXTRACTION_PROVIDER must be one of: {known})"
            ) from None

    @classmethod
    def list_providers(cls) -> list[str]:
        return list(cls._providers)


def create_inference_provider(settings: Settings) -> InferenceProvider:
    """Instantiate the invoice backend named by settings.extraction_provider.

    A backend that cannot serve yet (no API key, Ollama server down) is still
    returned; extraction requests then fail at the inference stage.
    """
    provider_name = settings.extraction_provider
    provider = ProviderRegistry.get_provider_class(provider_name)(settings)

    if not provider.is_available():
        logger.warning(
            f"Invoice backend '{provider_name}' is not ready; extractions will fail "
            f"until its API key or server URL is configured"
        )

    logger.info(f"Using invoice backend '{provider_name}' (model {provider.model_name})")
    return provider


def create_extraction_service(
    settings: Settings, config: ExtractionConfig | None = None
) -> InvoiceExtractionService:
    """Wire the extraction service for the configured provider.

    Args:
        settings: Application settings
        config: Shared extraction configuration; the default taxonomy and
            template when omitted

    Returns:
        Ready-to-use InvoiceExtractionService

    Example:
        >>> settings = Settings(extraction_provider="gemini")
        >>> service = create_extraction_service(settings)
        >>> result = service.extract(pdf_bytes, "application/pdf", "nota.pdf")
    """
    provider = create_inference_provider(settings)
    return InvoiceExtractionService(provider, config or ExtractionConfig.default())
