"""
Import router - picks a content extractor by file suffix and runs the
matching transaction chain.

Dispatch (lower-cased suffix):
- csv                         -> delimited text -> [csv rows, model]
- xlsx (openpyxl), xls (xlrd) -> workbook rows  -> [statement sheets]
- pdf                         -> byte scan      -> [free text, model]
- jpg/jpeg/png/gif/webp       -> OCR            -> [free text, model]
- txt and anything else       -> raw text       -> [free text, model]

The router is the pipeline boundary: it never raises. Unreadable input
comes back as a failed ExtractionResult with ``error`` set.
"""

import logging
from datetime import date
from pathlib import Path
from typing import Optional, Union

from ..config import IntakeConfig
from ..llm import LLMService
from ..schemas import ExtractionResult
from .base import BaseContentExtractor, BaseTransactionExtractor, ContentLayout, ExtractedContent
from .chain import run_chain
from .content import (
    DelimitedTextExtractor,
    ImageOCRExtractor,
    LegacySpreadsheetExtractor,
    PdfByteScanExtractor,
    PlainTextExtractor,
    SpreadsheetExtractor,
)
from .llm_extractor import LLMDocumentExtractor
from .ocr_session import OCRSession
from .tabular import DelimitedTransactionExtractor, StatementSheetExtractor
from .text_extractor import FreeTextExtractor

logger = logging.getLogger(__name__)


def file_suffix(file_name: str) -> str:
    """Lower-cased suffix without the dot ("" if there is none)."""
    name = Path(file_name).name
    if "." not in name:
        return ""
    return name.rsplit(".", 1)[-1].lower()


class ImportRouter:
    """
    Routes a document to the appropriate extraction strategy.

    Owns the OCR session and the model client it creates itself; ones
    passed in stay owned by the caller. Call ``close()`` (or use a
    ``with`` block) to release them.
    """

    def __init__(
        self,
        config: Optional[IntakeConfig] = None,
        llm: Optional[LLMService] = None,
        ocr_session: Optional[OCRSession] = None,
        today: Optional[date] = None,
    ):
        self.config = config or IntakeConfig()
        self.today = today

        self._owns_llm = llm is None and self.config.llm.enabled
        self.llm = llm if llm is not None else (
            LLMService(self.config.llm) if self._owns_llm else None
        )
        self._owns_ocr = ocr_session is None
        self.ocr_session = ocr_session or OCRSession(self.config.ocr)

        self._fallback_extractor = PlainTextExtractor()
        self.content_extractors: list[BaseContentExtractor] = [
            DelimitedTextExtractor(),
            SpreadsheetExtractor(self.config.imports),
            LegacySpreadsheetExtractor(self.config.imports),
            PdfByteScanExtractor(),
            ImageOCRExtractor(self.ocr_session),
            self._fallback_extractor,
        ]

        model_stage = LLMDocumentExtractor(self.llm, today=today)
        self.chains: dict[ContentLayout, list[BaseTransactionExtractor]] = {
            ContentLayout.DELIMITED: [DelimitedTransactionExtractor(today), model_stage],
            ContentLayout.SPREADSHEET: [StatementSheetExtractor(today)],
            ContentLayout.FREE_TEXT: [FreeTextExtractor(self.config.imports, today), model_stage],
        }

    def select_extractor(self, suffix: str) -> BaseContentExtractor:
        """Content extractor for a suffix; raw text for unknown suffixes."""
        for extractor in self.content_extractors:
            if extractor.can_extract(suffix):
                return extractor
        return self._fallback_extractor

    def analyze_file(
        self, path: Union[str, Path], raw_text_only: bool = False
    ) -> ExtractionResult:
        """
        Analyze a file on disk.

        Args:
            path: File to read
            raw_text_only: Return the extracted text without transactions

        Returns:
            ExtractionResult (failed, with error, if the file is unreadable)
        """
        path = Path(path)
        try:
            data = path.read_bytes()
        except OSError as e:
            logger.error("Could not read %s: %s", path, e)
            return ExtractionResult.failure(file_suffix(path.name), str(e))
        return self.analyze_bytes(path.name, data, raw_text_only=raw_text_only)

    def analyze_bytes(
        self, file_name: str, data: bytes, raw_text_only: bool = False
    ) -> ExtractionResult:
        """Analyze file content already in memory. ``file_name`` selects the format."""
        suffix = file_suffix(file_name)
        extractor = self.select_extractor(suffix)
        logger.info(
            "Analyzing %s (%d bytes) with %s extractor", file_name, len(data), extractor.name
        )

        try:
            content = extractor.extract(data)
        except Exception as e:
            logger.error("Failed to extract %s: %s", file_name, e)
            return ExtractionResult.failure(suffix, str(e))

        logger.debug("Extracted %d characters of text", len(content.text))
        if raw_text_only:
            return ExtractionResult.raw_text_only(content.text, suffix)

        result = self._run(content, suffix)
        logger.info(
            "Analysis of %s complete: %d transactions (strategy=%s)",
            file_name,
            len(result.transactions),
            result.strategy or "none",
        )
        return result

    def analyze_text(self, text: str, format_tag: str = "txt") -> ExtractionResult:
        """Run the free-text chain over a string."""
        content = ExtractedContent(layout=ContentLayout.FREE_TEXT, text=text)
        return self._run(content, format_tag)

    def _run(self, content: ExtractedContent, format_tag: str) -> ExtractionResult:
        outcome = run_chain(self.chains[content.layout], content)
        return ExtractionResult.from_transactions(
            outcome.transactions,
            raw_text=content.text,
            format_tag=format_tag,
            strategy=outcome.strategy,
        )

    def close(self) -> None:
        """Release the OCR engine and model client this router created."""
        if self._owns_ocr:
            self.ocr_session.close()
        if self._owns_llm and self.llm is not None:
            self.llm.close()

    def __enter__(self) -> "ImportRouter":
        return self

    def __exit__(self, *args) -> None:
        self.close()
