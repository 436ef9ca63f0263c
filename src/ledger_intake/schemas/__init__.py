"""
SSOT schemas for the intake pipeline.

These value objects are the ONLY models used across extractors, the TOON
parser and registry resolution.
"""

from .identifiers import compute_candidate_hash, generate_candidate_id
from .summary import StatementSummary, summarize
from .transactions import (
    AccountRecord,
    CandidateTransaction,
    CategoryRecord,
    Currency,
    Direction,
    ExtractionResult,
    PreparedTransaction,
    ToonParseResult,
    ToonTransaction,
)

__all__ = [
    # Document pipeline
    "CandidateTransaction",
    "ExtractionResult",
    "Direction",
    "Currency",
    # Informal notes
    "ToonTransaction",
    "ToonParseResult",
    "PreparedTransaction",
    # Registry snapshots
    "AccountRecord",
    "CategoryRecord",
    # Summary
    "StatementSummary",
    "summarize",
    # Ids
    "generate_candidate_id",
    "compute_candidate_hash",
]
