"""Expense category taxonomy for Brazilian invoices.

The category set is closed: extraction never produces a category that is not
listed here. Example terms are illustrative (shown in prompts and listings)
and play no part in classification logic.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class Category(str, Enum):
    """Expense categories, in listing order."""

    INSUMOS_AGRICOLAS = "INSUMOS AGRÍCOLAS"
    MANUTENCAO_E_OPERACAO = "MANUTENÇÃO E OPERAÇÃO"
    RECURSOS_HUMANOS = "RECURSOS HUMANOS"
    SERVICOS_OPERACIONAIS = "SERVIÇOS OPERACIONAIS"
    INFRAESTRUTURA_E_UTILIDADES = "INFRAESTRUTURA E UTILIDADES"
    ADMINISTRATIVAS = "ADMINISTRATIVAS"
    SEGUROS_E_PROTECAO = "SEGUROS E PROTEÇÃO"
    IMPOSTOS_E_TAXAS = "IMPOSTOS E TAXAS"
    INVESTIMENTOS = "INVESTIMENTOS"


@dataclass(frozen=True)
class CategoryEntry:
    """A category together with its example terms."""

    category: Category
    examples: tuple[str, ...]


@dataclass(frozen=True)
class Taxonomy:
    """Immutable, ordered collection of expense categories.

    Attributes:
        entries: Categories with their example terms, in listing order
    """

    entries: tuple[CategoryEntry, ...]

    def list_categories(self) -> tuple[Category, ...]:
        """Return the categories in listing order."""
        return tuple(entry.category for entry in self.entries)

    def examples_for(self, category: Category | str) -> tuple[str, ...]:
        """Return the example terms for a category.

        Args:
            category: Category member or its exact name

        Returns:
            Ordered example terms, empty if the category is unknown
        """
        found = self.parse(category)
        for entry in self.entries:
            if entry.category is found:
                return entry.examples
        return ()

    def parse(self, value: Any) -> Category | None:
        """Resolve a value to a category by exact name match.

        No case folding or fuzzy matching: near-miss names resolve to None.
        """
        if isinstance(value, Category):
            return value if value in self.list_categories() else None
        if not isinstance(value, str):
            return None
        for entry in self.entries:
            if entry.category.value == value:
                return entry.category
        return None

    def is_member(self, value: Any) -> bool:
        return self.parse(value) is not None

    def as_listing(self) -> list[dict[str, Any]]:
        """Build the public category listing.

        Returns:
            List of {"id": 1-based index, "name": str, "examples": list[str]}
        """
        return [
            {"id": index, "name": entry.category.value, "examples": list(entry.examples)}
            for index, entry in enumerate(self.entries, start=1)
        ]


DEFAULT_TAXONOMY = Taxonomy(
    entries=(
        CategoryEntry(
            Category.INSUMOS_AGRICOLAS,
            ("Sementes", "Fertilizantes", "Defensivos Agrícolas", "Corretivos"),
        ),
        CategoryEntry(
            Category.MANUTENCAO_E_OPERACAO,
            ("Combustíveis", "Lubrificantes", "Peças", "Manutenção de Máquinas"),
        ),
        CategoryEntry(
            Category.RECURSOS_HUMANOS,
            ("Mão de Obra Temporária", "Salários e Encargos"),
        ),
        CategoryEntry(
            Category.SERVICOS_OPERACIONAIS,
            ("Frete", "Transporte", "Colheita Terceirizada"),
        ),
        CategoryEntry(
            Category.INFRAESTRUTURA_E_UTILIDADES,
            ("Energia Elétrica", "Arrendamento", "Construções"),
        ),
        CategoryEntry(
            Category.ADMINISTRATIVAS,
            ("Honorários Contábeis", "Despesas Bancárias"),
        ),
        CategoryEntry(
            Category.SEGUROS_E_PROTECAO,
            ("Seguro Agrícola", "Seguro de Ativos"),
        ),
        CategoryEntry(
            Category.IMPOSTOS_E_TAXAS,
            ("ITR", "IPTU", "IPVA", "INCRA-CCIR"),
        ),
        CategoryEntry(
            Category.INVESTIMENTOS,
            ("Máquinas", "Implementos", "Veículos", "Imóveis"),
        ),
    )
)
