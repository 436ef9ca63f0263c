"""
Document extraction strategies.
"""

from .base import BaseContentExtractor, BaseTransactionExtractor, ContentLayout, ExtractedContent
from .chain import ChainOutcome, run_chain
from .content import (
    DelimitedTextExtractor,
    ImageOCRExtractor,
    LegacySpreadsheetExtractor,
    PdfByteScanExtractor,
    PlainTextExtractor,
    SpreadsheetExtractor,
)
from .llm_extractor import LLMDocumentExtractor
from .ocr_session import OCRError, OCRSession, TesseractEngine
from .router import ImportRouter
from .tabular import DelimitedTransactionExtractor, StatementSheetExtractor
from .text_extractor import FreeTextExtractor

__all__ = [
    "BaseContentExtractor",
    "BaseTransactionExtractor",
    "ContentLayout",
    "ExtractedContent",
    "DelimitedTextExtractor",
    "SpreadsheetExtractor",
    "LegacySpreadsheetExtractor",
    "PdfByteScanExtractor",
    "ImageOCRExtractor",
    "PlainTextExtractor",
    "DelimitedTransactionExtractor",
    "StatementSheetExtractor",
    "FreeTextExtractor",
    "LLMDocumentExtractor",
    "OCRSession",
    "OCRError",
    "TesseractEngine",
    "ChainOutcome",
    "run_chain",
    "ImportRouter",
]
