"""
Canonical transaction value objects (SSOT).

Every extractor in the pipeline maps into these types. They have no
persistence identity: a result is created by one pipeline call and is owned
by the caller once returned.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Optional


class Direction(str, Enum):
    """Money flow of a candidate transaction."""

    INCOME = "income"
    EXPENSE = "expense"
    TRANSFER = "transfer"

    @classmethod
    def from_label(cls, label: Optional[str], default: "Direction") -> "Direction":
        """Map a free-text type label (e.g. from a model response) to a direction."""
        if not label:
            return default
        try:
            return cls(label.strip().lower())
        except ValueError:
            return default


class Currency(str, Enum):
    """The two currencies recognised by the pipeline.

    ARS is the primary (local) currency, USD the secondary (foreign) one.
    """

    ARS = "ARS"
    USD = "USD"

    @classmethod
    def parse(cls, code: Optional[str]) -> Optional["Currency"]:
        """Return the currency for a code, or None if it is not recognised."""
        if not code:
            return None
        try:
            return cls(code.strip().upper())
        except ValueError:
            return None


@dataclass
class CandidateTransaction:
    """
    Transiently extracted transaction from a document.

    Invariant: amount is never negative. Sign information lives in
    ``direction``.
    """

    id: str
    date: str  # ISO format YYYY-MM-DD
    description: str
    amount: Decimal
    direction: Direction
    currency: Optional[Currency] = None
    selected: bool = True
    reference: Optional[str] = None  # e.g. voucher / coupon number
    category: Optional[str] = None  # inferred label, not a registry id

    def __post_init__(self) -> None:
        if self.amount < 0:
            raise ValueError(f"Candidate amount must be non-negative, got {self.amount}")

    def to_dict(self) -> dict:
        """Serialize to dictionary for JSON output."""
        return {
            "id": self.id,
            "date": self.date,
            "description": self.description,
            "amount": str(self.amount),
            "direction": self.direction.value,
            "currency": self.currency.value if self.currency else None,
            "selected": self.selected,
            "reference": self.reference,
            "category": self.category,
        }


@dataclass
class ExtractionResult:
    """
    Envelope returned by the document pipeline.

    ``succeeded`` is derived from the transactions (or, in raw-text-only
    mode, from the extracted text) so it can never disagree with them.
    Use the ``from_transactions`` / ``raw_text_only`` / ``failure``
    constructors instead of setting it by hand.
    """

    succeeded: bool
    transactions: list[CandidateTransaction] = field(default_factory=list)
    raw_text: str = ""
    format_tag: str = ""
    error: Optional[str] = None
    strategy: str = ""  # name of the stage that produced the transactions

    @classmethod
    def from_transactions(
        cls,
        transactions: list[CandidateTransaction],
        raw_text: str,
        format_tag: str,
        strategy: str = "",
    ) -> "ExtractionResult":
        return cls(
            succeeded=len(transactions) > 0,
            transactions=list(transactions),
            raw_text=raw_text,
            format_tag=format_tag,
            strategy=strategy,
        )

    @classmethod
    def raw_text_only(cls, raw_text: str, format_tag: str) -> "ExtractionResult":
        return cls(
            succeeded=bool(raw_text.strip()),
            raw_text=raw_text,
            format_tag=format_tag,
            strategy="raw_text",
        )

    @classmethod
    def failure(cls, format_tag: str, error: str) -> "ExtractionResult":
        return cls(succeeded=False, format_tag=format_tag, error=error)

    def to_dict(self) -> dict:
        """Serialize to dictionary for JSON output."""
        return {
            "succeeded": self.succeeded,
            "format": self.format_tag,
            "strategy": self.strategy,
            "error": self.error,
            "transactions": [tx.to_dict() for tx in self.transactions],
        }


@dataclass
class ToonTransaction:
    """
    Structured transaction parsed from an informal note.

    Field order matches the TOON line layout:
    fecha,monto,moneda,origen,destino,categoria,nota
    """

    date: str  # YYYY-MM-DD
    amount: Decimal  # always positive
    currency: Currency
    source: str
    destination: str
    category: str
    note: str

    def to_dict(self) -> dict:
        return {
            "date": self.date,
            "amount": str(self.amount),
            "currency": self.currency.value,
            "source": self.source,
            "destination": self.destination,
            "category": self.category,
            "note": self.note,
        }


@dataclass
class ToonParseResult:
    """Result of parsing informal notes. Same success rule as ExtractionResult."""

    succeeded: bool
    transactions: list[ToonTransaction] = field(default_factory=list)
    raw_response: str = ""
    strategy: str = ""  # "llm" or "pattern"
    error: Optional[str] = None

    @classmethod
    def from_transactions(
        cls, transactions: list[ToonTransaction], raw_response: str, strategy: str
    ) -> "ToonParseResult":
        return cls(
            succeeded=len(transactions) > 0,
            transactions=list(transactions),
            raw_response=raw_response,
            strategy=strategy,
        )

    @classmethod
    def failure(cls, error: str) -> "ToonParseResult":
        return cls(succeeded=False, error=error)


@dataclass
class PreparedTransaction:
    """TOON transaction with registry ids resolved, ready to be persisted by the caller."""

    source_account_id: int
    destination_account_id: int
    amount: Decimal
    date: str
    category_id: Optional[int]
    description: str
    currency: Currency

    def to_dict(self) -> dict:
        return {
            "source_account_id": self.source_account_id,
            "destination_account_id": self.destination_account_id,
            "amount": str(self.amount),
            "date": self.date,
            "category_id": self.category_id,
            "description": self.description,
            "currency": self.currency.value,
        }


@dataclass(frozen=True)
class AccountRecord:
    """Read-only account snapshot supplied by the caller."""

    id: int
    name: str
    alias: Optional[str] = None
    institution: Optional[str] = None


@dataclass(frozen=True)
class CategoryRecord:
    """Read-only category snapshot supplied by the caller."""

    id: int
    name: str
