"""Test fixtures and utilities."""

import io
from datetime import date, datetime
from typing import Any, Callable

import pytest
import xlwt
from openpyxl import Workbook

from ledger_intake.classification import RegistryResolver
from ledger_intake.config import IntakeConfig
from ledger_intake.schemas import AccountRecord, CategoryRecord

TODAY = date(2025, 12, 1)

SAMPLE_CSV = """Date,Amount,Description
15/11/2025,-500.00,Coffee shop
16/11/2025,"1.200,00",Salary November
17/11/2025,-45.90,Uber trip
"""

SAMPLE_SEMICOLON_CSV = """fecha;monto;descripcion
01/11/2025;-1.234,56;Supermercado Cotto
02/11/2025;80000;Transferencia recibida
"""

# OCR output of a card receipt
SAMPLE_RECEIPT_TEXT = """
SUPERMERCADO COTTO
15/11/2025 SUPERMERCADO COTTO 4.500,00
Gracias por su compra
"""

SAMPLE_STATEMENT_TEXT = """
Banco Ejemplo - Resumen de cuenta
2025-11-03 NETFLIX.COM -8.999,00
2025-11-05 TRANSFERENCIA RECIBIDA 150.000,00
10/11/2025 FARMACIA DEL CENTRO -12.350,50
"""

STATEMENT_HEADER = ["FECHA", "DESCRIPCIÓN", "NRO. CUPÓN", "PESOS", "DÓLARES"]

STATEMENT_ROWS: list[list[Any]] = [
    ["BBVA - Resumen Visa", None, None, None, None],
    [],
    STATEMENT_HEADER,
    [datetime(2025, 11, 3), "AMAZON PRIME", "266095", 7993.77, None],
    [datetime(2025, 11, 4), "MERPAGO*SAFERAZOR          C.06/06", "001122", 15817.5, None],
    [datetime(2025, 11, 5), "Patreon* Members         USD       7,00", "662625", None, 7],
    [datetime(2025, 11, 6), "DEVOLUCION COMPRA", "001200", -2500, None],
    [None, "SALDO ANTERIOR", None, 100000, None],
    [datetime(2025, 11, 30), "TOTAL CONSUMOS", None, 21311.27, 7],
]


@pytest.fixture
def config() -> IntakeConfig:
    """Default configuration (language model disabled)."""
    return IntakeConfig()


@pytest.fixture
def sample_csv() -> str:
    return SAMPLE_CSV


@pytest.fixture
def sample_semicolon_csv() -> str:
    return SAMPLE_SEMICOLON_CSV


@pytest.fixture
def sample_receipt_text() -> str:
    return SAMPLE_RECEIPT_TEXT


@pytest.fixture
def sample_statement_text() -> str:
    return SAMPLE_STATEMENT_TEXT


@pytest.fixture
def statement_rows() -> list[list[Any]]:
    return [list(row) for row in STATEMENT_ROWS]


@pytest.fixture
def workbook_bytes() -> Callable[..., bytes]:
    """Factory: {sheet title: rows} -> .xlsx bytes."""

    def _build(sheets: dict[str, list[list[Any]]]) -> bytes:
        workbook = Workbook()
        workbook.remove(workbook.active)
        for title, rows in sheets.items():
            worksheet = workbook.create_sheet(title)
            for row in rows:
                worksheet.append(row)
        buffer = io.BytesIO()
        workbook.save(buffer)
        return buffer.getvalue()

    return _build


@pytest.fixture
def legacy_workbook_bytes() -> Callable[..., bytes]:
    """Factory: {sheet title: rows} -> legacy binary .xls bytes."""
    date_style = xlwt.easyxf(num_format_str="DD/MM/YYYY")

    def _build(sheets: dict[str, list[list[Any]]]) -> bytes:
        workbook = xlwt.Workbook(encoding="utf-8")
        for title, rows in sheets.items():
            worksheet = workbook.add_sheet(title)
            for row_index, row in enumerate(rows):
                for col_index, value in enumerate(row):
                    if value is None:
                        continue
                    if isinstance(value, datetime):
                        worksheet.write(row_index, col_index, value, date_style)
                    else:
                        worksheet.write(row_index, col_index, value)
        buffer = io.BytesIO()
        workbook.save(buffer)
        return buffer.getvalue()

    return _build


@pytest.fixture
def accounts() -> list[AccountRecord]:
    return [
        AccountRecord(id=1, name="BBVA", alias="Visa BBVA", institution="BBVA Argentina"),
        AccountRecord(id=2, name="Efectivo"),
        AccountRecord(id=3, name="Uala"),
    ]


@pytest.fixture
def categories() -> list[CategoryRecord]:
    return [
        CategoryRecord(id=10, name="Alimentación"),
        CategoryRecord(id=11, name="Transporte"),
        CategoryRecord(id=12, name="Compras"),
    ]


@pytest.fixture
def resolver(accounts, categories) -> RegistryResolver:
    return RegistryResolver(accounts, categories)


@pytest.fixture
def clean_env(monkeypatch) -> None:
    """Remove environment overrides that would leak into load_config."""
    for name in (
        "INTAKE_LLM_ENABLED",
        "INTAKE_LLM_PROVIDER",
        "OLLAMA_URL",
        "OLLAMA_MODEL",
        "OLLAMA_MODEL_FALLBACK",
        "OLLAMA_TIMEOUT",
        "OPENAI_API_KEY",
        "INTAKE_OCR_LANGUAGES",
        "TESSERACT_CMD",
        "INTAKE_DEFAULT_CURRENCY",
        "INTAKE_DEFAULT_ORIGIN",
    ):
        monkeypatch.delenv(name, raising=False)
