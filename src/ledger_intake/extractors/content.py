"""
Format-specific content extractors.

Each variant turns file bytes into text (and, for workbooks, raw rows).
None of them interpret transactions; see tabular.py and text_extractor.py.
"""

import io
import logging
import re
from typing import Any, Optional

import xlrd
from openpyxl import load_workbook

from ..config import ImportConfig
from .base import BaseContentExtractor, ContentLayout, ExtractedContent
from .ocr_session import OCRSession

logger = logging.getLogger(__name__)

IMAGE_SUFFIXES = ("jpg", "jpeg", "png", "gif", "webp")

# Printable ASCII range kept by the PDF byte scan
PRINTABLE_MIN = 32
PRINTABLE_MAX = 126

HORIZONTAL_WHITESPACE_RE = re.compile(r"[ \t]+")


def decode_text(data: bytes) -> str:
    """Decode file bytes as UTF-8 (BOM tolerated), falling back to Latin-1."""
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError:
        return data.decode("latin-1")


class PlainTextExtractor(BaseContentExtractor):
    """Raw text read; also the fallback for unknown suffixes."""

    suffixes = ("txt",)

    @property
    def name(self) -> str:
        return "text"

    def extract(self, data: bytes) -> ExtractedContent:
        return ExtractedContent(layout=ContentLayout.FREE_TEXT, text=decode_text(data))


class DelimitedTextExtractor(BaseContentExtractor):
    """CSV files. Rows are split later, after delimiter sniffing."""

    suffixes = ("csv",)

    @property
    def name(self) -> str:
        return "csv"

    def extract(self, data: bytes) -> ExtractedContent:
        return ExtractedContent(layout=ContentLayout.DELIMITED, text=decode_text(data))


class PdfByteScanExtractor(BaseContentExtractor):
    """
    Lossy PDF text recovery without parsing the PDF object model.

    Keeps printable ASCII bytes and line breaks, replaces everything else
    with a space, then collapses whitespace runs and blank lines. Compressed
    content streams come out as noise; only uncompressed text survives.
    """

    suffixes = ("pdf",)

    @property
    def name(self) -> str:
        return "pdf"

    def extract(self, data: bytes) -> ExtractedContent:
        return ExtractedContent(layout=ContentLayout.FREE_TEXT, text=scan_printable_text(data))


def scan_printable_text(data: bytes) -> str:
    """Recover printable ASCII lines from arbitrary bytes."""
    chars = []
    for byte in data:
        if byte == 0x0A or byte == 0x0D:
            chars.append("\n")
        elif PRINTABLE_MIN <= byte <= PRINTABLE_MAX:
            chars.append(chr(byte))
        else:
            chars.append(" ")

    lines = []
    for line in "".join(chars).split("\n"):
        collapsed = HORIZONTAL_WHITESPACE_RE.sub(" ", line).strip()
        if collapsed:
            lines.append(collapsed)
    return "\n".join(lines)


class SpreadsheetExtractor(BaseContentExtractor):
    """
    Workbook reader for .xlsx (openpyxl).

    Returns every sheet's rows as raw cell values plus a text preview of the
    first rows of each sheet. Date-formatted cells arrive as datetimes.
    """

    suffixes = ("xlsx",)

    def __init__(self, config: Optional[ImportConfig] = None):
        self.config = config or ImportConfig()

    @property
    def name(self) -> str:
        return "excel"

    def extract(self, data: bytes) -> ExtractedContent:
        return self._content(self._read_sheets(data))

    def _read_sheets(self, data: bytes) -> dict[str, list[list[Any]]]:
        workbook = load_workbook(io.BytesIO(data), read_only=True, data_only=True)
        try:
            return {
                worksheet.title: [list(row) for row in worksheet.iter_rows(values_only=True)]
                for worksheet in workbook.worksheets
            }
        finally:
            workbook.close()

    def _content(self, sheets: dict[str, list[list[Any]]]) -> ExtractedContent:
        logger.debug("Read workbook with %d sheets", len(sheets))
        return ExtractedContent(
            layout=ContentLayout.SPREADSHEET,
            text=self._preview(sheets),
            sheets=sheets,
        )

    def _preview(self, sheets: dict[str, list[list[Any]]]) -> str:
        parts = []
        for title, rows in sheets.items():
            parts.append(f"=== Sheet: {title} ===")
            for row in rows[: self.config.sheet_preview_rows]:
                parts.append(" | ".join("" if cell is None else str(cell) for cell in row))
        return "\n".join(parts)


class LegacySpreadsheetExtractor(SpreadsheetExtractor):
    """
    Workbook reader for legacy binary .xls (xlrd).

    Cells are normalised to what openpyxl yields for .xlsx: empty cells
    become None and date-formatted cells become datetimes, so the statement
    extractor sees one shape for both formats.
    """

    suffixes = ("xls",)

    def _read_sheets(self, data: bytes) -> dict[str, list[list[Any]]]:
        book = xlrd.open_workbook(file_contents=data, on_demand=True)
        try:
            sheets = {}
            for index in range(book.nsheets):
                sheet = book.sheet_by_index(index)
                sheets[sheet.name] = [
                    [self._cell_value(cell, book.datemode) for cell in sheet.row(row)]
                    for row in range(sheet.nrows)
                ]
                book.unload_sheet(index)
            return sheets
        finally:
            book.release_resources()

    @staticmethod
    def _cell_value(cell, datemode: int) -> Any:
        if cell.ctype in (xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK, xlrd.XL_CELL_ERROR):
            return None
        if cell.ctype == xlrd.XL_CELL_DATE:
            return xlrd.xldate_as_datetime(cell.value, datemode)
        if cell.ctype == xlrd.XL_CELL_BOOLEAN:
            return bool(cell.value)
        if cell.ctype == xlrd.XL_CELL_NUMBER and float(cell.value).is_integer():
            return int(cell.value)
        return cell.value


class ImageOCRExtractor(BaseContentExtractor):
    """Photographed receipts and screenshots, via the session's OCR engine."""

    suffixes = IMAGE_SUFFIXES

    def __init__(self, session: OCRSession):
        self.session = session

    @property
    def name(self) -> str:
        return "image"

    def extract(self, data: bytes) -> ExtractedContent:
        text = self.session.recognize(data)
        return ExtractedContent(layout=ContentLayout.FREE_TEXT, text=text)
