"""
Statements, receipts and notes → candidate transactions

A deterministic, testable pipeline that turns CSV exports, card-statement
workbooks, PDFs, photographed receipts and short informal notes into
normalized transaction records, with an optional language-model step that
always falls back to pattern matching.
"""

__version__ = "0.1.0"
