"""
Fallback chain of extraction stages.

A chain is an ordered list of transaction extractors run against the same
content. The first stage that returns a non-empty list wins; a stage that
raises is logged and treated as empty.
"""

import logging
from dataclasses import dataclass, field

from ..schemas import CandidateTransaction
from .base import BaseTransactionExtractor, ExtractedContent

logger = logging.getLogger(__name__)


@dataclass
class ChainOutcome:
    """Transactions of the winning stage (empty if none produced any)."""

    transactions: list[CandidateTransaction] = field(default_factory=list)
    strategy: str = ""  # name of the winning stage
    attempted: list[str] = field(default_factory=list)


def run_chain(
    stages: list[BaseTransactionExtractor], content: ExtractedContent
) -> ChainOutcome:
    """Run stages in order until one yields transactions."""
    outcome = ChainOutcome()
    for stage in stages:
        outcome.attempted.append(stage.name)
        try:
            transactions = stage.extract(content)
        except Exception as e:
            logger.warning("Extraction stage %s failed: %s", stage.name, e)
            continue

        if transactions:
            outcome.transactions = transactions
            outcome.strategy = stage.name
            logger.debug("Stage %s produced %d transactions", stage.name, len(transactions))
            return outcome
        logger.debug("Stage %s produced no transactions", stage.name)
    return outcome
