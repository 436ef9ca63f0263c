"""
Base extractor interfaces and common types.

Two kinds of strategy objects:
- content extractors turn file bytes into text and/or spreadsheet rows
- transaction extractors turn that content into candidate transactions
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..schemas import CandidateTransaction


class ContentLayout(str, Enum):
    """How extracted content should be read for transactions."""

    DELIMITED = "delimited"
    SPREADSHEET = "spreadsheet"
    FREE_TEXT = "free_text"


@dataclass
class ExtractedContent:
    """Output of a content extractor."""

    layout: ContentLayout
    text: str = ""
    # sheet name -> rows of raw cell values (spreadsheets only)
    sheets: dict[str, list[list[Any]]] = field(default_factory=dict)


class BaseContentExtractor(ABC):
    """
    Base class for format-specific content extractors.

    Each extractor handles a set of lower-cased file suffixes.
    """

    suffixes: tuple[str, ...] = ()

    @property
    @abstractmethod
    def name(self) -> str:
        """Extractor name for logging and the result's format tag."""
        pass

    def can_extract(self, suffix: str) -> bool:
        """Check if this extractor handles the given file suffix."""
        return suffix in self.suffixes

    @abstractmethod
    def extract(self, data: bytes) -> ExtractedContent:
        """
        Extract content from raw file bytes.

        Args:
            data: Original file bytes

        Returns:
            ExtractedContent with text and/or rows
        """
        pass


class BaseTransactionExtractor(ABC):
    """Base class for content -> candidate transaction strategies."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Strategy name for logging and candidate ids."""
        pass

    @abstractmethod
    def extract(self, content: ExtractedContent) -> list[CandidateTransaction]:
        """
        Extract candidate transactions.

        Must not raise on malformed rows or lines; such items are skipped.
        """
        pass
