"""
Informal-note (TOON) parsing and serialisation.
"""

from .format import TOON_FIELDS, format_toon, parse_toon_block, parse_toon_line
from .parser import ToonParser, parse_text_without_llm, parse_toon_response

__all__ = [
    "ToonParser",
    "parse_toon_response",
    "parse_text_without_llm",
    "format_toon",
    "parse_toon_block",
    "parse_toon_line",
    "TOON_FIELDS",
]
