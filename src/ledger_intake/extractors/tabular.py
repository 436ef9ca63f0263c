"""
Tabular transaction extraction.

Two layouts:
- Delimited text (CSV): delimiter sniffing, optional header, per-cell
  classification into date / amount / description.
- Workbook sheets: a card-statement layout with labelled columns
  (FECHA / DESCRIPCION / NRO. CUPON / PESOS / DOLARES) or, failing the
  labels, structural detection of serial-date rows.

Sign conventions differ between the two and are kept as-is:
- CSV: negative amount => expense, otherwise income
- Statement sheets: negative amount => income (credit / refund),
  positive => expense
"""

import logging
import unicodedata
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from ..schemas import CandidateTransaction, Currency, Direction, generate_candidate_id
from .base import BaseTransactionExtractor, ContentLayout, ExtractedContent
from .scalars import (
    is_serial_date,
    looks_like_amount,
    looks_like_date,
    parse_amount,
    parse_cell_amount,
    parse_date,
    serial_to_date,
    today_iso,
)

logger = logging.getLogger(__name__)

# Checked in order on the first non-empty line
DELIMITER_PREFERENCE = [";", "\t", ","]

HEADER_KEYWORDS = ["date", "fecha", "amount", "monto", "description", "descripcion"]

# Fields shorter than this are noise (flags, codes) rather than description
MIN_DESCRIPTION_FIELD_LENGTH = 3

DEFAULT_DESCRIPTION = "Imported transaction"

# Header rows are only searched near the top of a sheet
HEADER_SCAN_ROWS = 10

SUMMARY_ROW_MARKERS = ["TOTAL", "SALDO"]

# Upper-cased, accent-stripped header labels (substring match)
DATE_LABELS = ["FECHA", "DATE"]
DESCRIPTION_LABELS = ["DESCRIPCION", "DESCRIPTION", "CONCEPTO"]
PRIMARY_AMOUNT_LABELS = ["PESOS"]
SECONDARY_AMOUNT_LABELS = ["DOLARES", "DOLLARS"]
REFERENCE_LABELS = ["CUPON", "NRO", "VOUCHER"]
# Short currency codes must match the whole cell
PRIMARY_AMOUNT_CODES = ["ARS"]
SECONDARY_AMOUNT_CODES = ["USD", "U$S"]


def sniff_delimiter(text: str) -> str:
    """Pick the delimiter from the first non-empty line (; then tab then ,)."""
    first_line = next((line for line in text.splitlines() if line.strip()), "")
    for delimiter in DELIMITER_PREFERENCE:
        if delimiter in first_line:
            return delimiter
    return ","


def has_header(line: str) -> bool:
    """Check if a line carries column labels."""
    lowered = line.lower()
    return any(keyword in lowered for keyword in HEADER_KEYWORDS)


def split_delimited_line(line: str, delimiter: str) -> list[str]:
    """
    Split one line on ``delimiter`` outside double quotes.

    Quote characters toggle the quoted state and are dropped; every field
    is trimmed.
    """
    values = []
    current: list[str] = []
    in_quotes = False

    for char in line:
        if char == '"':
            in_quotes = not in_quotes
        elif char == delimiter and not in_quotes:
            values.append("".join(current).strip())
            current = []
        else:
            current.append(char)

    values.append("".join(current).strip())
    return values


def row_to_transaction(
    values: list[str],
    position: int,
    today: Optional[date] = None,
) -> Optional[CandidateTransaction]:
    """
    Map one CSV row to a candidate.

    The first date-like cell is the date, the first non-zero amount-like
    cell the amount; remaining cells longer than two characters form the
    description in order. A row without a non-zero amount yields nothing.
    """
    tx_date = ""
    amount: Optional[Decimal] = None
    description_parts = []

    for value in values:
        is_date = looks_like_date(value)
        is_amount = looks_like_amount(value)

        if not tx_date and is_date:
            tx_date = parse_date(value, today)
        if not amount and is_amount:
            amount = parse_amount(value)
        if not is_date and not is_amount and len(value) >= MIN_DESCRIPTION_FIELD_LENGTH:
            description_parts.append(value)

    if not amount:
        return None

    tx_date = tx_date or today_iso(today)
    description = " ".join(description_parts) or DEFAULT_DESCRIPTION

    return CandidateTransaction(
        id=generate_candidate_id("csv", position, abs(amount), tx_date, description),
        date=tx_date,
        description=description,
        amount=abs(amount),
        direction=Direction.EXPENSE if amount < 0 else Direction.INCOME,
    )


def extract_csv_transactions(text: str, today: Optional[date] = None) -> list[CandidateTransaction]:
    """Extract candidates from delimited text. Rows with fewer than two fields are skipped."""
    lines = [line for line in text.splitlines() if line.strip()]
    if not lines:
        return []

    delimiter = sniff_delimiter(text)
    start = 1 if has_header(lines[0]) else 0
    logger.debug(
        "CSV: delimiter=%r, header=%s, %d data lines", delimiter, start == 1, len(lines) - start
    )

    transactions = []
    for position in range(start, len(lines)):
        values = split_delimited_line(lines[position], delimiter)
        if len(values) < 2:
            continue
        transaction = row_to_transaction(values, position, today)
        if transaction:
            transactions.append(transaction)
    return transactions


def _normalize_label(cell: Any) -> str:
    """Upper-case a header cell and strip accents (DESCRIPCIÓN -> DESCRIPCION)."""
    if cell is None:
        return ""
    decomposed = unicodedata.normalize("NFKD", str(cell))
    return "".join(c for c in decomposed if not unicodedata.combining(c)).strip().upper()


@dataclass
class StatementColumns:
    """Column roles of a statement sheet. -1 means absent."""

    header_row: int = -1
    date_col: int = -1
    description_col: int = -1
    primary_col: int = -1
    secondary_col: int = -1
    reference_col: int = -1

    @property
    def found(self) -> bool:
        return self.header_row >= 0 and self.date_col >= 0


def detect_labelled_columns(rows: list[list[Any]]) -> StatementColumns:
    """Find the header row by its labels within the first rows of a sheet."""
    columns = StatementColumns()
    for row_index, row in enumerate(rows[:HEADER_SCAN_ROWS]):
        if not row:
            continue
        for col_index, cell in enumerate(row):
            label = _normalize_label(cell)
            if not label:
                continue
            if any(marker in label for marker in DATE_LABELS):
                columns.header_row = row_index
                columns.date_col = col_index
            elif any(marker in label for marker in DESCRIPTION_LABELS):
                columns.description_col = col_index
            elif any(marker in label for marker in PRIMARY_AMOUNT_LABELS) or label in PRIMARY_AMOUNT_CODES:
                columns.primary_col = col_index
            elif (
                any(marker in label for marker in SECONDARY_AMOUNT_LABELS)
                or label in SECONDARY_AMOUNT_CODES
            ):
                columns.secondary_col = col_index
            elif any(marker in label for marker in REFERENCE_LABELS):
                columns.reference_col = col_index
        if columns.found:
            break
    return columns


def detect_structural_columns(rows: list[list[Any]]) -> StatementColumns:
    """
    Find the first row that starts with a serial date.

    The row before it is taken as the (unlabelled) header; date is column
    0, description column 1, numeric cells after that are the primary and
    secondary amount columns in order.
    """
    columns = StatementColumns()
    for row_index, row in enumerate(rows):
        if not row or len(row) < 3:
            continue
        if is_serial_date(row[0]):
            columns.header_row = row_index - 1
            columns.date_col = 0
            columns.description_col = 1
            for col_index in range(2, len(row)):
                cell = row[col_index]
                if isinstance(cell, (int, float)) and not isinstance(cell, bool):
                    if columns.primary_col < 0:
                        columns.primary_col = col_index
                    elif columns.secondary_col < 0:
                        columns.secondary_col = col_index
            break
    return columns


def _cell(row: list[Any], index: int) -> Any:
    if 0 <= index < len(row):
        return row[index]
    return None


def _cell_date(value: Any, today: Optional[date]) -> Optional[str]:
    """Date of a statement row, or None if the row has no usable date."""
    if is_serial_date(value):
        return serial_to_date(value)
    if isinstance(value, (datetime, date)):
        return parse_date(value)
    if isinstance(value, str) and looks_like_date(value):
        return parse_date(value, today)
    return None


def _reference(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip() or None


def extract_sheet_transactions(
    rows: list[list[Any]],
    sheet_name: str = "",
    today: Optional[date] = None,
) -> list[CandidateTransaction]:
    """
    Extract candidates from one statement sheet.

    A row can produce two candidates, one per currency column with a
    non-zero amount. Summary rows (TOTAL / SALDO) are skipped.
    """
    columns = detect_labelled_columns(rows)
    if not columns.found:
        columns = detect_structural_columns(rows)
    logger.debug("Sheet %r columns: %s", sheet_name, columns)

    date_col = columns.date_col if columns.date_col >= 0 else 0
    description_col = columns.description_col if columns.description_col >= 0 else 1

    transactions = []
    for position in range(columns.header_row + 1, len(rows)):
        row = rows[position]
        if not row:
            continue

        tx_date = _cell_date(_cell(row, date_col), today)
        if tx_date is None:
            continue

        raw_description = _cell(row, description_col)
        description = str(raw_description).strip() if raw_description is not None else ""
        upper_description = description.upper()
        if not description or any(marker in upper_description for marker in SUMMARY_ROW_MARKERS):
            continue

        reference = (
            _reference(_cell(row, columns.reference_col)) if columns.reference_col >= 0 else None
        )

        for col, currency in (
            (columns.primary_col, Currency.ARS),
            (columns.secondary_col, Currency.USD),
        ):
            if col < 0:
                continue
            amount = parse_cell_amount(_cell(row, col))
            if not amount:
                continue
            suffix = currency.value.lower()
            transactions.append(
                CandidateTransaction(
                    id=generate_candidate_id(
                        "excel", position, abs(amount), tx_date, description, suffix
                    ),
                    date=tx_date,
                    description=description,
                    amount=abs(amount),
                    # Statement credits/refunds are negative
                    direction=Direction.INCOME if amount < 0 else Direction.EXPENSE,
                    currency=currency,
                    reference=reference,
                )
            )
    return transactions


class DelimitedTransactionExtractor(BaseTransactionExtractor):
    """CSV rows -> candidates."""

    def __init__(self, today: Optional[date] = None):
        self.today = today

    @property
    def name(self) -> str:
        return "csv"

    def extract(self, content: ExtractedContent) -> list[CandidateTransaction]:
        return extract_csv_transactions(content.text, self.today)


class StatementSheetExtractor(BaseTransactionExtractor):
    """Workbook sheets -> candidates, all sheets in workbook order."""

    def __init__(self, today: Optional[date] = None):
        self.today = today

    @property
    def name(self) -> str:
        return "excel"

    def extract(self, content: ExtractedContent) -> list[CandidateTransaction]:
        if content.layout != ContentLayout.SPREADSHEET:
            return []
        transactions = []
        for sheet_name, rows in content.sheets.items():
            sheet_transactions = extract_sheet_transactions(rows, sheet_name, self.today)
            logger.debug("Sheet %r: %d transactions", sheet_name, len(sheet_transactions))
            transactions.extend(sheet_transactions)
        return transactions
