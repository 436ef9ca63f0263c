"""
Free-text heuristics extractor.

Sweeps OCR, PDF and plain text line by line for a date and an amount on
the same line. This is the most widely applicable and least precise
strategy.

Per line:
- date: first date-shaped substring (today if none)
- amount: the LAST amount-shaped substring; statement lines often show a
  balance before the movement
- description: what is left after removing the date and the amounts
"""

import logging
import re
from datetime import date
from typing import Optional

from ..classification import infer_category
from ..config import ImportConfig
from ..schemas import CandidateTransaction, Direction, generate_candidate_id
from .base import BaseTransactionExtractor, ExtractedContent
from .scalars import parse_amount, parse_date, today_iso

logger = logging.getLogger(__name__)

# ISO first so 2025-11-15 is not read as 25-11-15
LINE_DATE_RE = re.compile(r"(\d{4}-\d{2}-\d{2}|\d{1,2}[/-]\d{1,2}[/-]\d{2,4})")

# Optional currency symbol, optional minus, at least one digit; or (123.45)
LINE_AMOUNT_RE = re.compile(r"[$€£¥₿]?\s*-?\d[\d,.]*|\(-?\d[\d,.]*\)")

PIPE_RE = re.compile(r"\|")
WHITESPACE_RE = re.compile(r"\s+")

DEFAULT_DESCRIPTION = "Imported transaction"


def line_to_transaction(
    line: str,
    position: int,
    max_description_length: int = 200,
    today: Optional[date] = None,
) -> Optional[CandidateTransaction]:
    """Map one text line to a candidate, or None when it has no usable amount."""
    date_match = LINE_DATE_RE.search(line)
    remainder = line.replace(date_match.group(0), " ", 1) if date_match else line

    amount_matches = LINE_AMOUNT_RE.findall(remainder)
    if not amount_matches:
        return None

    amount = parse_amount(amount_matches[-1])
    if not amount:
        return None

    tx_date = parse_date(date_match.group(1), today) if date_match else today_iso(today)

    description = LINE_AMOUNT_RE.sub(" ", remainder)
    description = PIPE_RE.sub(" ", description)
    description = WHITESPACE_RE.sub(" ", description).strip()[:max_description_length].strip()
    if not description:
        description = DEFAULT_DESCRIPTION

    return CandidateTransaction(
        id=generate_candidate_id("text", position, abs(amount), tx_date, description),
        date=tx_date,
        description=description,
        amount=abs(amount),
        direction=Direction.EXPENSE if amount < 0 else Direction.INCOME,
        category=infer_category(description),
    )


def extract_text_transactions(
    text: str,
    max_description_length: int = 200,
    today: Optional[date] = None,
) -> list[CandidateTransaction]:
    """Extract candidates from every non-empty line of ``text``."""
    lines = [line for line in text.splitlines() if line.strip()]
    transactions = []
    for position, line in enumerate(lines):
        transaction = line_to_transaction(line, position, max_description_length, today)
        if transaction:
            transactions.append(transaction)
    logger.debug("Free text: %d lines, %d transactions", len(lines), len(transactions))
    return transactions


class FreeTextExtractor(BaseTransactionExtractor):
    """
    Extract candidates from unstructured text using pattern matching.

    Used for PDF, image (OCR), plain text and unknown formats.
    """

    def __init__(self, config: Optional[ImportConfig] = None, today: Optional[date] = None):
        self.config = config or ImportConfig()
        self.today = today

    @property
    def name(self) -> str:
        return "text"

    def extract(self, content: ExtractedContent) -> list[CandidateTransaction]:
        return extract_text_transactions(
            content.text, self.config.max_description_length, self.today
        )
