"""Ingest pipeline: text extraction, classification and statement parsing."""

from .adapters import parse_chase_statement, parse_generic_statement
from .classify import FormInfo, detect_bank, detect_document_type, detect_form
from .extract import (
    PAGE_BREAK,
    PdfTextExtractor,
    SourceFile,
    TextExtractor,
    extract_text,
    is_pdf,
)

__all__ = [
    "FormInfo",
    "PAGE_BREAK",
    "PdfTextExtractor",
    "SourceFile",
    "TextExtractor",
    "detect_bank",
    "detect_document_type",
    "detect_form",
    "extract_text",
    "is_pdf",
    "parse_chase_statement",
    "parse_generic_statement",
]
