"""
Model-assisted document analysis.

Last stage of the free-text and CSV chains: sends the (truncated) document
text to the language model and reads back a JSON array of
{date, description, amount, type} objects.

Any model or parse failure yields no transactions; the deterministic
result of the earlier stages then stands.
"""

import json
import logging
import re
from datetime import date
from typing import Any, Optional

from ..llm import DocumentAnalysisPrompt, LLMError, LLMService
from ..schemas import CandidateTransaction, Direction, generate_candidate_id
from .base import BaseTransactionExtractor, ExtractedContent
from .scalars import parse_amount, parse_date, today_iso

logger = logging.getLogger(__name__)

# First "[" to last "]", across lines
JSON_ARRAY_RE = re.compile(r"\[[\s\S]*\]")

DEFAULT_DESCRIPTION = "Imported transaction"


def parse_analysis_response(
    response: str, today: Optional[date] = None
) -> list[CandidateTransaction]:
    """Turn a model response into candidates. Malformed items are skipped."""
    match = JSON_ARRAY_RE.search(response)
    if not match:
        logger.warning("Model response contained no JSON array (%d chars)", len(response))
        return []

    try:
        items = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        logger.warning("Could not parse model JSON: %s", e)
        return []
    if not isinstance(items, list):
        return []

    transactions = []
    for index, item in enumerate(items):
        transaction = _item_to_transaction(item, index, today)
        if transaction:
            transactions.append(transaction)
    return transactions


def _item_to_transaction(
    item: Any, index: int, today: Optional[date]
) -> Optional[CandidateTransaction]:
    if not isinstance(item, dict):
        return None

    amount = abs(parse_amount(item.get("amount")))
    if not amount:
        return None

    raw_date = item.get("date")
    tx_date = parse_date(raw_date, today) if isinstance(raw_date, str) else today_iso(today)
    description = str(item.get("description") or "").strip() or DEFAULT_DESCRIPTION
    raw_type = item.get("type")

    return CandidateTransaction(
        id=generate_candidate_id("llm", index, amount, tx_date, description),
        date=tx_date,
        description=description,
        amount=amount,
        direction=Direction.from_label(
            raw_type if isinstance(raw_type, str) else None, Direction.EXPENSE
        ),
    )


class LLMDocumentExtractor(BaseTransactionExtractor):
    """Extract candidates by asking the language model."""

    def __init__(
        self,
        llm: Optional[LLMService],
        prompt: Optional[DocumentAnalysisPrompt] = None,
        today: Optional[date] = None,
    ):
        self.llm = llm
        self.prompt = prompt or DocumentAnalysisPrompt(
            max_document_chars=llm.llm_config.max_document_chars if llm else 4000
        )
        self.today = today

    @property
    def name(self) -> str:
        return "llm"

    @property
    def available(self) -> bool:
        return self.llm is not None and self.llm.is_enabled

    def extract(self, content: ExtractedContent) -> list[CandidateTransaction]:
        if not self.available or not content.text.strip():
            return []

        try:
            response = self.llm.chat(
                self.prompt.system_prompt, self.prompt.format_user_message(content.text)
            )
        except LLMError as e:
            logger.warning("Document analysis failed, keeping pattern result: %s", e)
            return []

        transactions = parse_analysis_response(response, self.today)
        logger.debug("Document analysis produced %d transactions", len(transactions))
        return transactions
