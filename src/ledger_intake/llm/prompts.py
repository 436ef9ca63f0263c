"""Prompt templates for model-assisted parsing.

Two prompts:
- ToonPrompt: informal notes -> TOON block (line oriented, Spanish)
- DocumentAnalysisPrompt: document text -> JSON array of transactions
"""

from __future__ import annotations

from dataclasses import dataclass, field

from ..classification import CATEGORY_RULES, DEFAULT_CATEGORY

# Prompt version, bump when the expected output shape changes
PROMPT_VERSION = "v1.0"

TOON_HEADER_FIELDS = "fecha,monto,moneda,origen,destino,categoria,nota"


def standard_categories() -> list[str]:
    """Category labels offered to the model, in keyword-table order."""
    return [label for _, label in CATEGORY_RULES] + [DEFAULT_CATEGORY]


@dataclass
class ToonPrompt:
    """Prompt template for parsing informal notes.

    Attributes:
        version: Prompt version.
        system_template: System message with placeholders for the defaults.
    """

    version: str = PROMPT_VERSION

    system_template: str = """ROL: Eres un motor de procesamiento de logs financieros (Parser). Tu único objetivo es convertir texto informal en formato estructurado TOON.

DEFINICIÓN TOON:
tx[N]{{{fields}}}:

REGLAS DE NEGOCIO Y DEFAULT:

1. Valores por defecto (¡IMPORTANTE!). Si el usuario no especifica, asume:
   - Fecha: {today}
   - Moneda: {currency}
   - Origen: '{origin}'
   - Tipo: Gasto

2. Inferencia:
   - Detecta montos automáticamente (ej: "1k" = 1000, "1.5k" = 1500, "50usd" indica USD).
   - Si solo hay un monto y un texto, asume que el texto es la nota/destino.
   - "ayer" y "anteayer" se calculan desde la fecha de hoy.
   - Si dice "compra", "gasto" o "pago", es una salida.

3. Destino: si no se nombra un comercio específico, usa '{destination}' o infiérelo de la nota (ej: "nafta" -> destino: 'Estación de servicio').

4. Categorías válidas: {categories}.

5. Monedas válidas: {currencies}.

ENTRADA DEL USUARIO: Un texto corto informal.
SALIDA: Únicamente el bloque TOON. Nada de charla previa ni explicaciones.

FORMATO DE SALIDA EXACTO:
tx[N]{{{fields}}}:
  YYYY-MM-DD,MONTO.00,MONEDA,ORIGEN,DESTINO,CATEGORIA,NOTA

Ejemplo de salida para "1000 palito de agua":
tx[1]{{{fields}}}:
  {today},1000.00,{currency},{origin},Kiosco,Alimentación,Palito de agua"""

    def format_system_prompt(
        self,
        today: str,
        currency: str = "ARS",
        secondary_currency: str = "USD",
        origin: str = "Efectivo",
        destination: str = "Varios",
        categories: list[str] | None = None,
    ) -> str:
        """Format the system message with today's date and the defaults.

        Args:
            today: Today's date (YYYY-MM-DD).
            currency: Default currency code.
            secondary_currency: The other accepted currency code.
            origin: Default source account label.
            destination: Default destination label.
            categories: Category labels (defaults to the keyword-table labels).

        Returns:
            Formatted system message.
        """
        return self.system_template.format(
            fields=TOON_HEADER_FIELDS,
            today=today,
            currency=currency,
            currencies=f"{currency}, {secondary_currency}",
            origin=origin,
            destination=destination,
            categories=", ".join(categories or standard_categories()),
        )


@dataclass
class DocumentAnalysisPrompt:
    """Prompt template for extracting transactions from document text."""

    version: str = PROMPT_VERSION

    system_prompt: str = """You are a financial document parser.
You extract transactions from bank statements, receipts and card statements.
Respond ONLY with a JSON array, no explanations."""

    user_template: str = """Analyze the following bank statement or financial document and extract all transactions.
For each transaction, provide:
- date (in YYYY-MM-DD format)
- description (brief description of the transaction)
- amount (positive number)
- type (income, expense, or transfer)

Respond ONLY with a JSON array of transactions. Example format:
[{{"date": "2024-01-15", "description": "Grocery store purchase", "amount": 50.00, "type": "expense"}}]

Document content:
{document}"""

    max_document_chars: int = field(default=4000)

    def format_user_message(self, document: str) -> str:
        """Format the user message, truncating the document text."""
        return self.user_template.format(document=document[: self.max_document_chars])


def build_batch_prompt(entries: list[str]) -> str:
    """User message asking for one TOON block covering several notes."""
    numbered = "\n".join(f"{i}. {entry}" for i, entry in enumerate(entries, start=1))
    return (
        "Procesa los siguientes logs financieros y devuelve todas las transacciones "
        f"en formato TOON:\n\n{numbered}\n\n"
        "Devuelve un único bloque TOON con todas las transacciones detectadas."
    )
