"""
Candidate id generation.

Candidate ids are opaque to callers but deterministic: the same row of the
same document always gets the same id, so a caller can dedupe re-imports.

Format: import-{strategy}-{position}-{hash[:12]}
- strategy = extraction stage tag (e.g. "csv", "excel", "text", "llm")
- position = row / line index inside the document
- hash = SHA256(amount|date|description|suffix)
"""

import hashlib
from decimal import Decimal

CANDIDATE_ID_PREFIX = "import"

HASH_PREFIX_LENGTH = 12


def _normalize_amount(amount: Decimal) -> str:
    """Normalize amount to 2 decimal places for hashing."""
    return f"{amount:.2f}"


def _normalize_string(value: str | None) -> str:
    if not value:
        return ""
    return value.strip().lower()


def compute_candidate_hash(
    amount: Decimal,
    date: str,
    description: str | None = None,
    suffix: str | None = None,
) -> str:
    """Compute the SHA256 hex digest identifying a candidate's content."""
    canonical = (
        f"{_normalize_amount(amount)}|{date.strip()}|"
        f"{_normalize_string(description)}|{_normalize_string(suffix)}"
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def generate_candidate_id(
    strategy: str,
    position: int,
    amount: Decimal,
    date: str,
    description: str | None = None,
    suffix: str | None = None,
) -> str:
    """
    Generate a deterministic candidate id.

    Examples:
        >>> generate_candidate_id("csv", 3, Decimal("500"), "2025-11-15", "Coffee shop")
        'import-csv-3-...'
    """
    digest = compute_candidate_hash(amount, date, description, suffix)
    parts = [CANDIDATE_ID_PREFIX, strategy, str(position)]
    if suffix:
        parts.append(suffix.lower())
    parts.append(digest[:HASH_PREFIX_LENGTH])
    return "-".join(parts)
