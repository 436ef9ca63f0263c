"""Tests for the import router and extraction chains."""

from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from ledger_intake.config import IntakeConfig, LLMConfig
from ledger_intake.extractors.base import ContentLayout, ExtractedContent
from ledger_intake.extractors.chain import run_chain
from ledger_intake.extractors.content import (
    DelimitedTextExtractor,
    ImageOCRExtractor,
    LegacySpreadsheetExtractor,
    PdfByteScanExtractor,
    PlainTextExtractor,
    SpreadsheetExtractor,
)
from ledger_intake.extractors.ocr_session import OCRSession
from ledger_intake.extractors.router import ImportRouter, file_suffix
from ledger_intake.llm import LLMError
from ledger_intake.schemas import Currency, Direction, ExtractionResult

TODAY = date(2025, 12, 1)

MODEL_RESPONSE = (
    "Here are the transactions:\n"
    '[{"date": "2025-11-20", "description": "Netflix", "amount": "4.500,00", "type": "expense"}]'
)


def assert_consistent(result: ExtractionResult) -> None:
    """A result reports success exactly when it carries transactions."""
    assert result.succeeded == (len(result.transactions) > 0)


@pytest.fixture
def ocr_engine() -> MagicMock:
    engine = MagicMock()
    engine.recognize.return_value = "15/11/2025 SUPERMERCADO COTTO 4.500,00"
    return engine


@pytest.fixture
def router(ocr_engine):
    session = OCRSession(engine_factory=lambda: ocr_engine)
    with ImportRouter(IntakeConfig(), ocr_session=session, today=TODAY) as router:
        yield router


@pytest.fixture
def mock_llm() -> MagicMock:
    llm = MagicMock()
    llm.is_enabled = True
    llm.llm_config = LLMConfig(enabled=True, max_document_chars=4000)
    llm.chat.return_value = MODEL_RESPONSE
    return llm


class TestFileSuffix:
    """Tests for suffix normalization."""

    def test_lower_cased(self) -> None:
        assert file_suffix("Resumen.XLSX") == "xlsx"

    def test_last_suffix(self) -> None:
        assert file_suffix("/tmp/archive.tar.csv") == "csv"

    def test_no_suffix(self) -> None:
        assert file_suffix("README") == ""


class TestSelectExtractor:
    """Tests for dispatch by suffix."""

    @pytest.mark.parametrize(
        "suffix,expected",
        [
            ("csv", DelimitedTextExtractor),
            ("xlsx", SpreadsheetExtractor),
            ("xls", LegacySpreadsheetExtractor),
            ("pdf", PdfByteScanExtractor),
            ("jpg", ImageOCRExtractor),
            ("jpeg", ImageOCRExtractor),
            ("png", ImageOCRExtractor),
            ("gif", ImageOCRExtractor),
            ("webp", ImageOCRExtractor),
            ("txt", PlainTextExtractor),
            ("md", PlainTextExtractor),
            ("", PlainTextExtractor),
        ],
    )
    def test_dispatch(self, router, suffix: str, expected: type) -> None:
        assert isinstance(router.select_extractor(suffix), expected)


class TestAnalyzeBytes:
    """Tests for the full pipeline over in-memory files."""

    def test_csv(self, router, sample_csv) -> None:
        result = router.analyze_bytes("statement.csv", sample_csv.encode("utf-8"))

        assert_consistent(result)
        assert result.succeeded
        assert result.format_tag == "csv"
        assert result.strategy == "csv"
        assert len(result.transactions) == 3
        assert result.raw_text == sample_csv

    def test_csv_without_rows(self, router) -> None:
        result = router.analyze_bytes("empty.csv", b"Date,Amount,Description\n")

        assert_consistent(result)
        assert not result.succeeded
        assert result.transactions == []
        assert result.error is None

    def test_workbook(self, router, workbook_bytes, statement_rows) -> None:
        data = workbook_bytes({"Movimientos": statement_rows})

        result = router.analyze_bytes("resumen.xlsx", data)

        assert_consistent(result)
        assert result.format_tag == "xlsx"
        assert result.strategy == "excel"
        assert len(result.transactions) == 4
        assert {tx.currency for tx in result.transactions} == {Currency.ARS, Currency.USD}
        assert "=== Sheet: Movimientos ===" in result.raw_text

    def test_legacy_workbook(self, router, legacy_workbook_bytes, statement_rows) -> None:
        data = legacy_workbook_bytes({"Movimientos": statement_rows})

        result = router.analyze_bytes("resumen.xls", data)

        assert_consistent(result)
        assert result.succeeded
        assert result.format_tag == "xls"
        assert result.strategy == "excel"
        assert [(tx.description[:12], tx.currency) for tx in result.transactions] == [
            ("AMAZON PRIME", Currency.ARS),
            ("MERPAGO*SAFE", Currency.ARS),
            ("Patreon* Mem", Currency.USD),
            ("DEVOLUCION C", Currency.ARS),
        ]
        assert result.transactions[0].date == "2025-11-03"
        assert result.transactions[3].direction == Direction.INCOME

    def test_legacy_workbook_serial_dates(self, router, legacy_workbook_bytes) -> None:
        data = legacy_workbook_bytes(
            {
                "Hoja1": [
                    ["FECHA", "DESCRIPCION", "PESOS"],
                    [45971, "SUPERMERCADO COTTO", 4500],
                ]
            }
        )

        result = router.analyze_bytes("resumen.xls", data)

        [tx] = result.transactions
        assert tx.date == "2025-11-09"
        assert tx.amount == Decimal("4500")
        assert tx.direction == Direction.EXPENSE

    def test_invalid_workbook(self, router) -> None:
        result = router.analyze_bytes("broken.xls", b"not a workbook")

        assert_consistent(result)
        assert not result.succeeded
        assert result.error
        assert result.format_tag == "xls"

    def test_pdf(self, router) -> None:
        data = b"%PDF-1.4\nBT\n(15/11/2025 Coffee shop -45.50) Tj\nET\n\x00\xff"

        result = router.analyze_bytes("statement.pdf", data)

        assert_consistent(result)
        assert result.format_tag == "pdf"
        coffee = [tx for tx in result.transactions if tx.date == "2025-11-15"]
        assert len(coffee) == 1
        assert coffee[0].amount == Decimal("45.50")
        assert coffee[0].direction == Direction.EXPENSE

    def test_image(self, router, ocr_engine) -> None:
        result = router.analyze_bytes("ticket.jpg", b"\xff\xd8\xff")

        assert_consistent(result)
        assert result.succeeded
        assert result.format_tag == "jpg"
        assert result.strategy == "text"
        assert result.transactions[0].amount == Decimal("4500.00")
        ocr_engine.recognize.assert_called_once()

    def test_image_ocr_failure(self, router, ocr_engine) -> None:
        ocr_engine.recognize.side_effect = RuntimeError("engine crashed")

        result = router.analyze_bytes("ticket.png", b"\x89PNG")

        assert_consistent(result)
        assert not result.succeeded
        assert "engine crashed" in result.error

    def test_unknown_suffix_read_as_text(self, router) -> None:
        result = router.analyze_bytes("notes.md", b"15/11/2025 Pharmacy -1.250,00\n")

        assert_consistent(result)
        assert result.format_tag == "md"
        assert result.transactions[0].amount == Decimal("1250.00")

    def test_raw_text_only(self, router, sample_csv) -> None:
        result = router.analyze_bytes(
            "statement.csv", sample_csv.encode("utf-8"), raw_text_only=True
        )

        assert result.succeeded
        assert result.transactions == []
        assert result.raw_text == sample_csv
        assert result.strategy == "raw_text"

    def test_raw_text_only_empty(self, router) -> None:
        result = router.analyze_bytes("blank.txt", b"   \n", raw_text_only=True)
        assert not result.succeeded

    def test_no_transactions_in_text(self, router) -> None:
        result = router.analyze_bytes("letter.txt", b"Estimado cliente, gracias.")

        assert_consistent(result)
        assert not result.succeeded
        assert result.raw_text == "Estimado cliente, gracias."


class TestAnalyzeFile:
    """Tests for reading from disk."""

    def test_reads_file(self, router, tmp_path, sample_csv) -> None:
        path = tmp_path / "Statement.CSV"
        path.write_text(sample_csv, encoding="utf-8")

        result = router.analyze_file(path)

        assert result.succeeded
        assert result.format_tag == "csv"

    def test_missing_file(self, router, tmp_path) -> None:
        result = router.analyze_file(tmp_path / "missing.csv")

        assert_consistent(result)
        assert not result.succeeded
        assert result.error
        assert result.format_tag == "csv"

    def test_analyze_text(self, router, sample_statement_text) -> None:
        result = router.analyze_text(sample_statement_text)

        assert_consistent(result)
        assert result.format_tag == "txt"
        assert len(result.transactions) == 3


class TestModelStage:
    """Tests for the language-model fallback stage."""

    def test_model_used_when_patterns_find_nothing(self, mock_llm) -> None:
        router = ImportRouter(IntakeConfig(), llm=mock_llm, today=TODAY)

        result = router.analyze_bytes("letter.txt", b"Resumen sin movimientos legibles")

        assert_consistent(result)
        assert result.succeeded
        assert result.strategy == "llm"
        assert result.transactions[0].description == "Netflix"
        assert result.transactions[0].amount == Decimal("4500.00")
        mock_llm.chat.assert_called_once()

    def test_patterns_win_over_model(self, mock_llm, sample_csv) -> None:
        router = ImportRouter(IntakeConfig(), llm=mock_llm, today=TODAY)

        result = router.analyze_bytes("statement.csv", sample_csv.encode("utf-8"))

        assert result.strategy == "csv"
        mock_llm.chat.assert_not_called()

    def test_model_failure_keeps_empty_result(self, mock_llm) -> None:
        mock_llm.chat.side_effect = LLMError("connection refused")
        router = ImportRouter(IntakeConfig(), llm=mock_llm, today=TODAY)

        result = router.analyze_bytes("letter.txt", b"Resumen sin movimientos legibles")

        assert_consistent(result)
        assert not result.succeeded
        assert result.error is None

    def test_model_not_used_for_workbooks(self, mock_llm, workbook_bytes) -> None:
        router = ImportRouter(IntakeConfig(), llm=mock_llm, today=TODAY)

        result = router.analyze_bytes("empty.xlsx", workbook_bytes({"Sheet1": [["Random", "Data"]]}))

        assert not result.succeeded
        mock_llm.chat.assert_not_called()

    def test_passed_llm_not_closed(self, mock_llm) -> None:
        router = ImportRouter(IntakeConfig(), llm=mock_llm, today=TODAY)
        router.close()
        mock_llm.close.assert_not_called()


class TestRunChain:
    """Tests for the stage fallback chain."""

    @staticmethod
    def _stage(name: str, result=None, error: Exception | None = None) -> MagicMock:
        stage = MagicMock()
        stage.name = name
        if error:
            stage.extract.side_effect = error
        else:
            stage.extract.return_value = result or []
        return stage

    def test_first_non_empty_wins(self) -> None:
        content = ExtractedContent(layout=ContentLayout.FREE_TEXT, text="x")
        first = self._stage("a")
        second = self._stage("b", result=["tx"])
        third = self._stage("c", result=["other"])

        outcome = run_chain([first, second, third], content)

        assert outcome.strategy == "b"
        assert outcome.transactions == ["tx"]
        assert outcome.attempted == ["a", "b"]
        third.extract.assert_not_called()

    def test_failing_stage_skipped(self) -> None:
        content = ExtractedContent(layout=ContentLayout.FREE_TEXT, text="x")
        outcome = run_chain(
            [self._stage("a", error=ValueError("boom")), self._stage("b", result=["tx"])],
            content,
        )

        assert outcome.strategy == "b"

    def test_all_empty(self) -> None:
        content = ExtractedContent(layout=ContentLayout.FREE_TEXT, text="x")
        outcome = run_chain([self._stage("a"), self._stage("b")], content)

        assert outcome.transactions == []
        assert outcome.strategy == ""
        assert outcome.attempted == ["a", "b"]
