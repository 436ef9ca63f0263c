"""
Informal-note parser.

Turns short notes such as "1000 palito de agua" or
"ayer 50usd amazon con uala" into TOON transactions.

Strategy:
1. Language model (when enabled): TOON system prompt + the note, then
   parse the returned block.
2. Deterministic patterns: used when the model is disabled, fails, or
   yields nothing. Never silently empty when a pattern can match.
"""

import logging
import re
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Optional

from ..classification import extract_source_account, infer_category, infer_destination
from ..config import ToonConfig
from ..extractors.scalars import (
    RELATIVE_DATE_WORDS,
    parse_amount,
    parse_date,
    today_iso,
)
from ..llm import LLMError, LLMService, ToonPrompt, build_batch_prompt
from ..schemas import Currency, ToonParseResult, ToonTransaction
from .format import format_toon, is_toon_header, parse_toon_line

logger = logging.getLogger(__name__)

# Amount patterns, checked in priority order; the number part may be
# grouped ("1.500") and goes through the same separator rules as statements
# "50usd", "100 u$s", "20 dólares": forces USD
FOREIGN_AMOUNT_RE = re.compile(
    r"(\d+(?:[.,]\d+)*)\s*(?:usd|u\$d|u\$s|d[oó]lar(?:es)?)\b", re.IGNORECASE
)
# "1k", "1.5k", "50 k": thousands shorthand
THOUSANDS_AMOUNT_RE = re.compile(r"(\d+(?:[.,]\d+)*)\s*k\b", re.IGNORECASE)
# Plain number, with optional grouping / decimals
PLAIN_AMOUNT_RE = re.compile(r"\b\d+(?:[.,]\d+)*\b")

# Numbers as counted for segment splitting; unlike PLAIN_AMOUNT_RE this
# also sees the "1" of "1k" and "50usd"
NOTE_NUMBER_RE = re.compile(r"\b\d+(?:[.,]\d+)*")
# "1k pan y 500 taxi": several purchases joined by "y"
CONJUNCTION_RE = re.compile(r"\s+y\s+", re.IGNORECASE)

# Short-form date embedded in a note: DD/MM/YY or DD-MM-YYYY
NOTE_DATE_RE = re.compile(r"\b\d{1,2}[/-]\d{1,2}[/-](?:\d{4}|\d{2})\b")

# Lenient model-output line: an ISO date and a number anywhere
LENIENT_DATE_RE = re.compile(r"\d{4}-\d{2}-\d{2}")
LENIENT_AMOUNT_RE = re.compile(r"\d+(?:\.\d+)?")

THOUSAND = Decimal("1000")

DEFAULT_NOTE = "Transacción"
DEFAULT_IMPORTED_NOTE = "Transacción importada"


def _collapse(text: str) -> str:
    return " ".join(text.split())


def _cut(text: str, match: re.Match) -> str:
    return _collapse(text[: match.start()] + " " + text[match.end():])


def _decimal(number: str) -> Decimal:
    try:
        return Decimal(number.replace(",", "."))
    except InvalidOperation:
        return Decimal("0")


def _currency(code: str, fallback: Currency = Currency.ARS) -> Currency:
    return Currency.parse(code) or fallback


def extract_note_amount(
    text: str, default_currency: Currency
) -> tuple[Decimal, Currency, str]:
    """
    Find the amount of a note.

    Returns:
        (amount, currency, text with the amount removed); amount is 0 when
        nothing matched
    """
    match = FOREIGN_AMOUNT_RE.search(text)
    if match:
        return parse_amount(match.group(1)), Currency.USD, _cut(text, match)

    match = THOUSANDS_AMOUNT_RE.search(text)
    if match:
        return parse_amount(match.group(1)) * THOUSAND, default_currency, _cut(text, match)

    match = PLAIN_AMOUNT_RE.search(text)
    if match:
        return parse_amount(match.group(0)), default_currency, _cut(text, match)

    return Decimal("0"), default_currency, text


def extract_note_date(text: str, today: Optional[date] = None) -> tuple[str, str]:
    """
    Find the date of a note: DD/MM/YY(YY), then hoy/ayer/anteayer, else today.

    Returns:
        (ISO date, text with the date removed)
    """
    match = NOTE_DATE_RE.search(text)
    if match:
        return parse_date(match.group(0), today), _cut(text, match)

    for pattern, _ in RELATIVE_DATE_WORDS:
        match = pattern.search(text)
        if match:
            return parse_date(match.group(0), today), _cut(text, match)

    return today_iso(today), text


def split_note_segments(text: str) -> list[str]:
    """
    Split a note holding several purchases into one segment per purchase.

    Only splits on "y" when the note has more than one number; a piece
    without a number stays with the piece before it
    ("1k pan y queso y 500 taxi" -> ["1k pan y queso", "500 taxi"]).
    """
    if len(NOTE_NUMBER_RE.findall(text)) < 2 or not CONJUNCTION_RE.search(text):
        return [text]

    segments: list[str] = []
    for piece in CONJUNCTION_RE.split(text):
        if segments and not NOTE_NUMBER_RE.search(piece):
            segments[-1] = f"{segments[-1]} y {piece}"
        else:
            segments.append(piece)
    if len(segments) > 1 and not NOTE_NUMBER_RE.search(segments[0]):
        lead = segments.pop(0)
        segments[0] = f"{lead} y {segments[0]}"
    return segments


def _note_transaction(
    text: str, tx_date: str, config: ToonConfig
) -> Optional[ToonTransaction]:
    amount, currency, description = extract_note_amount(
        text, _currency(config.primary_currency)
    )
    if amount <= 0:
        return None

    category = infer_category(description, config.default_category)
    source, clean_description = extract_source_account(description)
    destination = infer_destination(description) or config.default_destination

    return ToonTransaction(
        date=tx_date,
        amount=amount,
        currency=currency,
        source=source or config.default_origin,
        destination=destination,
        category=category,
        note=clean_description or description or DEFAULT_NOTE,
    )


def parse_note_line(
    line: str,
    config: ToonConfig,
    today: Optional[date] = None,
) -> list[ToonTransaction]:
    """
    Deterministic parse of one note line.

    The line's date applies to every segment; segments without a positive
    amount are dropped.
    """
    text = _collapse(line)
    if not text:
        return []

    tx_date, text = extract_note_date(text, today)
    transactions = []
    for segment in split_note_segments(text):
        transaction = _note_transaction(_collapse(segment), tx_date, config)
        if transaction:
            transactions.append(transaction)
    return transactions


def parse_text_without_llm(
    text: str,
    config: Optional[ToonConfig] = None,
    today: Optional[date] = None,
) -> list[ToonTransaction]:
    """Pattern-based parse, line by line."""
    config = config or ToonConfig()
    transactions = []
    for line in text.splitlines():
        transactions.extend(parse_note_line(line, config, today))
    return transactions


def _parse_lenient_line(line: str, config: ToonConfig) -> Optional[ToonTransaction]:
    """Short model line: ISO date plus a number somewhere, currency by keyword."""
    date_match = LENIENT_DATE_RE.search(line)
    if not date_match:
        return None
    remainder = line.replace(date_match.group(0), " ", 1)
    amount_match = LENIENT_AMOUNT_RE.search(remainder)
    if not amount_match:
        return None

    amount = _decimal(amount_match.group(0))
    if amount <= 0:
        return None

    currency = (
        Currency.USD if "usd" in line.lower() else _currency(config.primary_currency)
    )
    note = _collapse(_cut(remainder, amount_match).replace(",", " "))

    return ToonTransaction(
        date=date_match.group(0),
        amount=amount,
        currency=currency,
        source=config.default_origin,
        destination=config.default_destination,
        category=config.default_category,
        note=note or DEFAULT_IMPORTED_NOTE,
    )


def parse_toon_response(
    response: str, config: Optional[ToonConfig] = None
) -> list[ToonTransaction]:
    """
    Parse a model's TOON block.

    Lines with seven or more fields are read positionally; shorter lines
    with at least two fields go through the lenient reader.
    """
    config = config or ToonConfig()
    transactions = []
    for line in response.splitlines():
        stripped = line.strip()
        if not stripped or is_toon_header(stripped):
            continue

        field_count = len(stripped.split(","))
        if field_count >= 7:
            transaction = parse_toon_line(
                stripped,
                default_source=config.default_origin,
                default_destination=config.default_destination,
                default_category=config.default_category,
            )
        elif field_count >= 2:
            transaction = _parse_lenient_line(stripped, config)
        else:
            transaction = None

        if transaction:
            transactions.append(transaction)
    return transactions


class ToonParser:
    """
    Informal notes -> TOON transactions.

    The model path is only attempted when a client is given and enabled.
    """

    def __init__(
        self,
        config: Optional[ToonConfig] = None,
        llm: Optional[LLMService] = None,
        today: Optional[date] = None,
    ):
        self.config = config or ToonConfig()
        self.llm = llm
        self.today = today
        self._prompt = ToonPrompt()

    @property
    def uses_llm(self) -> bool:
        return self.llm is not None and self.llm.is_enabled

    def system_prompt(self) -> str:
        """TOON system prompt for today's date and the configured defaults."""
        return self._prompt.format_system_prompt(
            today=today_iso(self.today),
            currency=self.config.primary_currency,
            secondary_currency=self.config.secondary_currency,
            origin=self.config.default_origin,
            destination=self.config.default_destination,
        )

    def parse_text(self, text: str) -> ToonParseResult:
        """
        Parse one or more notes (one per line).

        Never raises; errors come back as a failed result.
        """
        return self._parse(text, user_message=text)

    def parse_entries(self, entries: list[str]) -> ToonParseResult:
        """Parse several notes with a single numbered model request."""
        entries = [entry.strip() for entry in entries if entry.strip()]
        return self._parse("\n".join(entries), user_message=build_batch_prompt(entries))

    def _parse(self, text: str, user_message: str) -> ToonParseResult:
        if not text.strip():
            return ToonParseResult.failure("No text to parse")

        logger.info("Parsing notes (%d chars, llm=%s)", len(text), self.uses_llm)
        try:
            transactions: list[ToonTransaction] = []
            raw_response = ""

            if self.uses_llm:
                try:
                    raw_response = self.llm.chat(self.system_prompt(), user_message)
                    transactions = parse_toon_response(raw_response, self.config)
                except LLMError as e:
                    logger.warning("Model parsing failed, using pattern fallback: %s", e)
                    raw_response = ""
                except Exception as e:
                    logger.warning(
                        "Unexpected model failure (%s), using pattern fallback: %s",
                        type(e).__name__,
                        e,
                    )
                    raw_response = ""
                else:
                    if transactions:
                        result = ToonParseResult.from_transactions(
                            transactions, raw_response, "llm"
                        )
                        logger.info("Parsed %d transactions (llm)", len(transactions))
                        return result
                    logger.warning("Model returned no transactions, using pattern fallback")

            transactions = parse_text_without_llm(text, self.config, self.today)
            result = ToonParseResult.from_transactions(
                transactions, raw_response or format_toon(transactions), "pattern"
            )
            logger.info("Parsed %d transactions (pattern)", len(transactions))
            return result
        except Exception as e:
            logger.error("Note parsing failed: %s", e)
            return ToonParseResult.failure(str(e))
