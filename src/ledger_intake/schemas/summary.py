"""
Statement summary over a batch of candidate transactions.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from .transactions import CandidateTransaction, Currency


@dataclass
class StatementSummary:
    """Totals and date range of an extraction batch."""

    total_transactions: int = 0
    totals: dict[str, Decimal] = field(default_factory=dict)  # currency code -> sum
    start_date: Optional[str] = None
    end_date: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "total_transactions": self.total_transactions,
            "totals": {code: str(amount) for code, amount in self.totals.items()},
            "date_range": {"start": self.start_date, "end": self.end_date},
        }


def summarize(
    transactions: list[CandidateTransaction],
    default_currency: Currency = Currency.ARS,
) -> StatementSummary:
    """
    Summarize candidates: count, per-currency totals, date range.

    Totals are sums of the (non-negative) amounts. Candidates without a
    currency are counted under ``default_currency``. ISO dates sort
    lexically, so min/max give the range.
    """
    summary = StatementSummary(total_transactions=len(transactions))
    for currency in Currency:
        summary.totals[currency.value] = Decimal("0")

    for tx in transactions:
        code = (tx.currency or default_currency).value
        summary.totals[code] += tx.amount

    dates = sorted(tx.date for tx in transactions if tx.date)
    if dates:
        summary.start_date = dates[0]
        summary.end_date = dates[-1]
    return summary
