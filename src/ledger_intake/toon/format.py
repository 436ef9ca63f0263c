"""
TOON block serialisation.

    tx[2]{fecha,monto,moneda,origen,destino,categoria,nota}:
      2025-12-01,1000.00,ARS,Efectivo,Kiosco,Alimentación,Palito de agua
      2025-12-01,50.00,USD,Uala,Amazon,Compras,Compra online, cargador

The note is the last field and may itself contain commas.
"""

import re
from decimal import Decimal, InvalidOperation
from typing import Optional

from ..schemas import Currency, ToonTransaction

TOON_FIELDS = "fecha,monto,moneda,origen,destino,categoria,nota"

TOON_FIELD_COUNT = 7

ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def toon_header(count: int) -> str:
    return f"tx[{count}]{{{TOON_FIELDS}}}:"


def format_toon(transactions: list[ToonTransaction]) -> str:
    """Render transactions as a TOON block ("" for an empty list)."""
    if not transactions:
        return ""

    lines = [toon_header(len(transactions))]
    for tx in transactions:
        lines.append(
            f"  {tx.date},{tx.amount:.2f},{tx.currency.value},{tx.source},"
            f"{tx.destination},{tx.category},{tx.note}"
        )
    return "\n".join(lines)


def is_toon_header(line: str) -> bool:
    """Header and brace lines carry no transaction data."""
    stripped = line.strip()
    return stripped.startswith("tx[") or "{" in stripped


def parse_toon_line(
    line: str,
    default_source: str = "Efectivo",
    default_destination: str = "Varios",
    default_category: str = "Otros",
) -> Optional[ToonTransaction]:
    """
    Parse one 7-field TOON data line.

    Returns None when the line has fewer than seven fields, no ISO date, a
    non-positive or unparseable amount, or an unknown currency. Empty
    label fields take the defaults.
    """
    parts = line.strip().split(",")
    if len(parts) < TOON_FIELD_COUNT:
        return None

    raw_date, raw_amount, raw_currency, source, destination, category = (
        p.strip() for p in parts[:6]
    )
    note = ",".join(parts[6:]).strip()

    if not ISO_DATE_RE.match(raw_date):
        return None
    try:
        amount = Decimal(raw_amount)
    except InvalidOperation:
        return None
    if not amount.is_finite() or amount <= 0:
        return None
    currency = Currency.parse(raw_currency)
    if currency is None:
        return None

    return ToonTransaction(
        date=raw_date,
        amount=amount,
        currency=currency,
        source=source or default_source,
        destination=destination or default_destination,
        category=category or default_category,
        note=note,
    )


def parse_toon_block(text: str) -> list[ToonTransaction]:
    """Read a block produced by ``format_toon``. Invalid data lines are skipped."""
    transactions = []
    for line in text.splitlines():
        if not line.strip() or is_toon_header(line):
            continue
        transaction = parse_toon_line(line)
        if transaction:
            transactions.append(transaction)
    return transactions
