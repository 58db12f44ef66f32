"""Parses inference backend replies into validated invoice records.

Backends are asked for a bare JSON object but still wrap it in markdown
fences or commentary now and then. The parser isolates the first balanced
object, normalizes each field on its own, and only fails the whole reply
when no object can be recovered or the installment count is non-positive.
"""

import json
import logging
import re
from typing import Any

from nfextract.extraction import normalizer
from nfextract.extraction.errors import MalformedResponseError
from nfextract.extraction.instructions import ExtractionConfig
from nfextract.extraction.schema import BilledParty, InvoiceRecord, Supplier
from nfextract.extraction.taxonomy import Category

logger = logging.getLogger(__name__)

_CODE_FENCE = re.compile(r"```(?:json)?", re.IGNORECASE)


def strip_code_fences(text: str) -> str:
    """Remove markdown code-fence markers, keeping what they enclose."""
    return _CODE_FENCE.sub("", text).strip()


def extract_json_object(text: str) -> str | None:
    """Find the first top-level balanced {...} substring.

    Braces inside JSON string literals are ignored, so a value such as
    "a {b}" does not end the object early.

    Args:
        text: Reply text, possibly with leading/trailing commentary

    Returns:
        The candidate object text, or None if no balanced object exists
    """
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for index in range(start, len(text)):
            char = text[index]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
                continue
            if char == '"':
                in_string = True
            elif char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    return text[start : index + 1]
        # Unbalanced from this brace on; try the next opening brace.
        start = text.find("{", start + 1)
    return None


class ResponseParser:
    """Validates raw backend replies against the invoice record schema."""

    def __init__(self, config: ExtractionConfig) -> None:
        self.config = config

    def parse_and_validate(self, raw_reply: str) -> InvoiceRecord:
        """Produce a validated record from a raw backend reply.

        Args:
            raw_reply: Free-form text returned by the backend

        Returns:
            InvoiceRecord with every field normalized

        Raises:
            MalformedResponseError: If the reply holds no JSON object, the
                object does not parse, or the installment count is not positive
        """
        if not isinstance(raw_reply, str):
            raise MalformedResponseError("Backend reply is not text", raw_reply=repr(raw_reply))

        candidate = extract_json_object(strip_code_fences(raw_reply))
        if candidate is None:
            raise MalformedResponseError("No JSON object found in backend reply", raw_reply)

        try:
            payload = json.loads(candidate)
        except json.JSONDecodeError as e:
            raise MalformedResponseError(
                f"JSON parsing failed: {e.msg} (line {e.lineno}, column {e.colno})", raw_reply
            ) from e
        except RecursionError as e:
            raise MalformedResponseError("JSON object is nested too deeply", raw_reply) from e

        return self.validate_payload(payload, raw_reply)

    def validate_payload(self, payload: dict[str, Any], raw_reply: str = "") -> InvoiceRecord:
        """Normalize an already-decoded reply object into a record."""
        installments = normalizer.normalize_installments(payload.get("quantidade_parcelas"))
        if installments is not None and installments < 1:
            raise MalformedResponseError(
                f"Installment count must be positive, got {installments}", raw_reply
            )

        supplier_raw = _as_dict(payload.get("fornecedor"))
        billed_raw = _as_dict(payload.get("faturado"))

        return InvoiceRecord(
            supplier=Supplier(
                legal_name=normalizer.normalize_text(supplier_raw.get("razao_social")),
                trade_name=normalizer.normalize_text(supplier_raw.get("fantasia")),
                tax_id=normalizer.normalize_tax_id(supplier_raw.get("cnpj")),
            ),
            billed_to=BilledParty(
                full_name=normalizer.normalize_text(billed_raw.get("nome_completo")),
                tax_id=normalizer.normalize_tax_id(billed_raw.get("cpf")),
            ),
            invoice_number=normalizer.normalize_digits(payload.get("numero_nota_fiscal")),
            issue_date=normalizer.normalize_date(payload.get("data_emissao")),
            product_description=normalizer.normalize_text(payload.get("descricao_produtos")),
            installment_count=installments if installments is not None else 1,
            due_date=normalizer.normalize_date(payload.get("data_vencimento")),
            total_amount=normalizer.normalize_amount(payload.get("valor_total")),
            expense_category=self._validate_category(payload.get("classificacao_despesa")),
        )

    def _validate_category(self, value: Any) -> Category | None:
        category = self.config.taxonomy.parse(value)
        if category is None and normalizer.normalize_text(value) is not None:
            logger.warning(f"Dropping expense category not in taxonomy: {value!r}")
        return category


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}
