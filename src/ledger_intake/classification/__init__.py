"""
Keyword-table classification and registry resolution.
"""

from .keywords import (
    CATEGORY_RULES,
    DEFAULT_CATEGORY,
    extract_source_account,
    infer_category,
    infer_destination,
)
from .resolver import RegistryResolver

__all__ = [
    "CATEGORY_RULES",
    "DEFAULT_CATEGORY",
    "infer_category",
    "infer_destination",
    "extract_source_account",
    "RegistryResolver",
]
