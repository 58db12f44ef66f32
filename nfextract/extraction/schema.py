"""Invoice record models for structured extraction.

Attribute names are English; the serialized JSON uses the Portuguese keys
consumers of the original service already rely on (see FIELD aliases).
"""

from datetime import date
from decimal import Decimal
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer

from nfextract.extraction.taxonomy import Category

# Amounts are Decimal in Python and plain JSON numbers on the wire.
JsonDecimal = Annotated[
    Decimal,
    PlainSerializer(lambda value: float(value), return_type=float, when_used="json"),
]

DIGITS_PATTERN = r"^\d+$"


class Supplier(BaseModel):
    """Issuing party (emitente) of the invoice."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    legal_name: str | None = Field(None, alias="razao_social", description="Razão social")
    trade_name: str | None = Field(None, alias="fantasia", description="Nome fantasia")
    tax_id: str | None = Field(
        None, alias="cnpj", pattern=DIGITS_PATTERN, description="Supplier CNPJ, digits only"
    )


class BilledParty(BaseModel):
    """Recipient (destinatário) of the invoice."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    full_name: str | None = Field(None, alias="nome_completo", description="Recipient name")
    tax_id: str | None = Field(
        None, alias="cpf", pattern=DIGITS_PATTERN, description="Recipient CPF/CNPJ, digits only"
    )


class InvoiceRecord(BaseModel):
    """Normalized structured data extracted from one invoice document.

    Every field is optional on its own; a record with only some fields set
    is a valid extraction outcome.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    supplier: Supplier = Field(default_factory=Supplier, alias="fornecedor")
    billed_to: BilledParty = Field(default_factory=BilledParty, alias="faturado")
    invoice_number: str | None = Field(
        None,
        alias="numero_nota_fiscal",
        pattern=DIGITS_PATTERN,
        description="NF-e number, digits only",
    )
    issue_date: date | None = Field(None, alias="data_emissao", description="Issue date")
    product_description: str | None = Field(
        None, alias="descricao_produtos", description="Products/services description"
    )
    installment_count: int = Field(
        1, alias="quantidade_parcelas", ge=1, description="Number of installments"
    )
    due_date: date | None = Field(None, alias="data_vencimento", description="Payment due date")
    total_amount: JsonDecimal | None = Field(
        None, alias="valor_total", ge=0, description="Invoice total in reais"
    )
    expense_category: Category | None = Field(
        None, alias="classificacao_despesa", description="Expense category"
    )

    def to_json_dict(self) -> dict[str, Any]:
        """Serialize with the public Portuguese keys and JSON-native values."""
        return self.model_dump(mode="json", by_alias=True)
