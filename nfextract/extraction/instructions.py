"""Versioned instruction template sent to the inference backend.

The prompt is assembled from independent parts (task, output rules,
disambiguation rules, document layout, taxonomy, schema, examples) so each
part can be reviewed and tested on its own. Bump TEMPLATE_VERSION whenever
the rendered text changes.
"""

import json
from dataclasses import dataclass
from typing import Any

from nfextract.extraction.taxonomy import DEFAULT_TAXONOMY, Taxonomy

TEMPLATE_VERSION = "nfe-extraction/1.0"


@dataclass(frozen=True)
class FieldSpec:
    """One key of the expected reply object.

    Attributes:
        key: JSON key, exactly as consumers read it
        description: Meaning of the value, shown to the model
        json_type: JSON schema type(s) of a leaf value
        children: Nested keys for object-valued fields
        from_taxonomy: Restrict the value to taxonomy names
    """

    key: str
    description: str
    json_type: tuple[str, ...] = ("string", "null")
    children: tuple["FieldSpec", ...] = ()
    from_taxonomy: bool = False

    def describe(self) -> Any:
        if self.children:
            return {child.key: child.describe() for child in self.children}
        return self.description

    def json_schema(self, taxonomy: Taxonomy) -> dict[str, Any]:
        if self.children:
            return {
                "type": "object",
                "properties": {child.key: child.json_schema(taxonomy) for child in self.children},
                "required": [child.key for child in self.children],
            }
        schema: dict[str, Any] = {"type": list(self.json_type)}
        if self.from_taxonomy:
            schema["enum"] = [category.value for category in taxonomy.list_categories()] + [None]
        return schema


RECORD_FIELDS: tuple[FieldSpec, ...] = (
    FieldSpec(
        "fornecedor",
        "Emitente da nota",
        children=(
            FieldSpec("razao_social", "string ou null (nome da empresa emitente)"),
            FieldSpec("fantasia", "string ou null (nome fantasia se houver)"),
            FieldSpec("cnpj", "apenas números ou null (CNPJ da empresa EMITENTE/FORNECEDORA)"),
        ),
    ),
    FieldSpec(
        "faturado",
        "Destinatário da nota",
        children=(
            FieldSpec("nome_completo", "string ou null (nome do DESTINATÁRIO)"),
            FieldSpec("cpf", "apenas números ou null (CPF/CNPJ do DESTINATÁRIO)"),
        ),
    ),
    FieldSpec(
        "numero_nota_fiscal",
        "apenas números ou null (número que aparece após 'N°:' ou 'NF-e N°:')",
    ),
    FieldSpec("data_emissao", "YYYY-MM-DD ou null"),
    FieldSpec("descricao_produtos", "descrição detalhada dos produtos/serviços ou null"),
    FieldSpec(
        "quantidade_parcelas",
        "inteiro maior ou igual a 1 (use 1 quando não houver parcelamento)",
        json_type=("integer",),
    ),
    FieldSpec("data_vencimento", "YYYY-MM-DD ou null"),
    FieldSpec(
        "valor_total",
        "número ou null (valor em reais com ponto decimal, ex: 3449.00 para R$ 3.449,00)",
        json_type=("number", "null"),
    ),
    FieldSpec(
        "classificacao_despesa",
        "uma das categorias acima, escrita exatamente como listada, ou null",
        from_taxonomy=True,
    ),
)


@dataclass(frozen=True)
class InstructionTemplate:
    """Structured extraction instructions.

    Attributes:
        version: Template identifier reported with every result
        task: Opening task description
        output_rules: Formatting constraints on the reply
        disambiguation_rules: Rules separating look-alike fields
        document_layout: Typical NF-e sections, in order
        examples: (seen on the document, expected value) pairs
        fields: Reply schema
    """

    version: str
    task: str
    output_rules: tuple[str, ...]
    disambiguation_rules: tuple[str, ...]
    document_layout: tuple[str, ...]
    examples: tuple[tuple[str, str], ...]
    fields: tuple[FieldSpec, ...] = RECORD_FIELDS

    def render_output_rules(self) -> str:
        lines = ["INSTRUÇÕES CRÍTICAS:"]
        lines.extend(f"- {rule}" for rule in self.output_rules)
        return "\n".join(lines)

    def render_disambiguation_rules(self) -> str:
        lines = ["ATENÇÃO ESPECIAL - NÃO CONFUNDA ESTES CAMPOS:"]
        lines.extend(f"- {rule}" for rule in self.disambiguation_rules)
        return "\n".join(lines)

    def render_document_layout(self) -> str:
        lines = ["ESTRUTURA TÍPICA DE UMA NFe:"]
        lines.extend(f"{index}. {section}" for index, section in enumerate(self.document_layout, 1))
        return "\n".join(lines)

    def render_taxonomy(self, taxonomy: Taxonomy) -> str:
        lines = ["CATEGORIAS DE DESPESAS DISPONÍVEIS:"]
        for index, category in enumerate(taxonomy.list_categories(), 1):
            examples = ", ".join(taxonomy.examples_for(category))
            lines.append(f"{index}. {category.value} (ex.: {examples})")
        return "\n".join(lines)

    def render_schema(self) -> str:
        skeleton = {spec.key: spec.describe() for spec in self.fields}
        return "FORMATO DE RESPOSTA (JSON):\n" + json.dumps(skeleton, indent=4, ensure_ascii=False)

    def render_examples(self) -> str:
        lines = ["EXEMPLOS PARA EVITAR CONFUSÃO:"]
        lines.extend(f"- Se vir {seen}, então {expected}" for seen, expected in self.examples)
        return "\n".join(lines)

    def render(self, taxonomy: Taxonomy) -> str:
        """Render the full instruction text for a taxonomy."""
        sections = [
            self.task,
            self.render_output_rules(),
            self.render_disambiguation_rules(),
            self.render_document_layout(),
            self.render_taxonomy(taxonomy),
            self.render_schema(),
            self.render_examples(),
            "RESPOSTA: Retorne APENAS o JSON válido, sem comentários, "
            "explicações ou formatação markdown.",
        ]
        return "\n\n".join(sections)

    def response_schema(self, taxonomy: Taxonomy) -> dict[str, Any]:
        """JSON schema of the reply, for backends that accept one."""
        return {
            "type": "object",
            "properties": {spec.key: spec.json_schema(taxonomy) for spec in self.fields},
            "required": [spec.key for spec in self.fields],
        }


DEFAULT_TEMPLATE = InstructionTemplate(
    version=TEMPLATE_VERSION,
    task=(
        "Você é um especialista em análise de notas fiscais brasileiras (NFe). "
        "Analise o documento de uma nota fiscal e extraia EXATAMENTE os seguintes "
        "dados em formato JSON válido."
    ),
    output_rules=(
        "Responda com um único objeto JSON, sem texto antes ou depois",
        "Não use blocos de código markdown",
        "Use null se a informação não for encontrada",
        "Para datas, use formato YYYY-MM-DD",
        "Para valores monetários, use apenas números (sem R$ e sem separador de milhar, "
        "use ponto como separador decimal, exemplo: 3012,00 vira 3012.00)",
        "Para CNPJ/CPF e número da nota, mantenha apenas números",
        "Para classificação de despesa, analise os produtos/serviços e escolha UMA "
        "categoria da lista, escrita exatamente como listada",
    ),
    disambiguation_rules=(
        "NÚMERO DA NOTA FISCAL: aparece como \"NF-e N°:\" ou \"N°:\" seguido de números "
        "(exemplo: \"000.207.590\") e não deve ser confundido com um CNPJ ou CPF",
        "CNPJ DO FORNECEDOR: formato XX.XXX.XXX/XXXX-XX (exemplo: \"18.944.113/0002-91\"), "
        "pertence à seção do emitente/fornecedor, nunca à seção do destinatário",
        "CNPJ/CPF DO DESTINATÁRIO: pertence à seção \"DESTINATÁRIO/REMETENTE\"",
        "DATA DE VENCIMENTO: vem da seção de fatura/duplicatas; não use a data de emissão",
    ),
    document_layout=(
        "CABEÇALHO: contém o número da NFe (N°:)",
        "EMITENTE/FORNECEDOR: razão social, CNPJ do fornecedor",
        "DESTINATÁRIO: nome e CNPJ/CPF de quem recebe",
        "PRODUTOS/SERVIÇOS: descrição e valores",
        "TOTAIS: valor total da nota",
    ),
    examples=(
        ("\"N°: 000.207.590\"", "numero_nota_fiscal = \"000207590\""),
        (
            "CNPJ \"18.944.113/0002-91\" na seção do emitente",
            "fornecedor.cnpj = \"18944113000291\"",
        ),
        ("CPF \"709.046.011-88\" na seção destinatário", "faturado.cpf = \"70904601188\""),
        ("\"VALOR TOTAL DA NOTA 3.449,00\"", "valor_total = 3449.00"),
    ),
)


@dataclass(frozen=True)
class ExtractionConfig:
    """Process-wide extraction configuration, built once at startup.

    Shared by reference between the request builder and the response
    parser; never re-derived per request.
    """

    taxonomy: Taxonomy = DEFAULT_TAXONOMY
    template: InstructionTemplate = DEFAULT_TEMPLATE

    @classmethod
    def default(cls) -> "ExtractionConfig":
        return cls()
