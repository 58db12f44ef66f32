"""Integration tests for invoice extraction against the Gemini API.

These tests require:
- GEMINI_API_KEY environment variable set
- Internet connection to the Gemini API

Tests are skipped if GEMINI_API_KEY is not available.
Use pytest -v -m slow to run only these tests.
"""

import os

import pytest

from nfextract.extraction.factory import create_extraction_service
from nfextract.extraction.service import InvoiceExtractionService
from nfextract.extraction.taxonomy import DEFAULT_TAXONOMY
from nfextract.shared.config import Settings

# Skip all tests in this module if no API key available
pytestmark = [
    pytest.mark.skipif(
        not os.getenv("GEMINI_API_KEY"),
        reason="GEMINI_API_KEY not set - skipping integration tests",
    ),
    pytest.mark.slow,
]

INVOICE_TEXT = """
DANFE - DOCUMENTO AUXILIAR DA NOTA FISCAL ELETRÔNICA
NF-e N°: 000.207.590  SÉRIE: 001

EMITENTE
AGRO INSUMOS COMERCIO DE FERTILIZANTES LTDA
CNPJ: 18.944.113/0002-91

DESTINATÁRIO/REMETENTE
NOME/RAZÃO SOCIAL: JOSE DA SILVA
CPF: 709.046.011-88
DATA DA EMISSÃO: 15/01/2024

FATURA/DUPLICATAS
001  VENC. 15/02/2024  R$ 3.449,00

DADOS DOS PRODUTOS/SERVIÇOS
FERTILIZANTE NPK 10-10-10 SACO 50KG  QTD 20

CÁLCULO DO IMPOSTO
VALOR TOTAL DA NOTA: 3.449,00
"""


@pytest.fixture
def extraction_service() -> InvoiceExtractionService:
    """Create extraction service for integration tests."""
    return create_extraction_service(Settings(extraction_provider="gemini"))


def test_extract_invoice_from_text(extraction_service: InvoiceExtractionService) -> None:
    """Test extraction with realistic DANFE text."""
    result = extraction_service.extract_text(INVOICE_TEXT, filename="danfe.txt")

    assert result.success is True, result.error
    record = result.record
    assert record is not None
    assert record.invoice_number == "000207590"
    assert record.supplier.tax_id == "18944113000291"
    assert record.billed_to.tax_id == "70904601188"
    assert record.total_amount is not None
    assert float(record.total_amount) == pytest.approx(3449.00)
    assert record.installment_count >= 1
    if record.expense_category is not None:
        assert DEFAULT_TAXONOMY.is_member(record.expense_category)


def test_extraction_metadata_from_live_call(
    extraction_service: InvoiceExtractionService,
) -> None:
    """Test that metadata reports the live backend."""
    result = extraction_service.extract_text(INVOICE_TEXT)

    assert result.metadata.provider == "gemini"
    assert result.metadata.model == extraction_service.provider.model_name
    assert result.metadata.processing_time_seconds > 0
