"""Text extraction adapter over ``pdfplumber``.

Produces one text blob per document: each page's text (pdfplumber joins the
words of a line with spaces and lines with newlines), pages separated by
:data:`PAGE_BREAK`. No positional information survives, so table columns
collapse into token streams. Any extraction failure surfaces as
:class:`~statement_analyzer.errors.DocumentReadError`.
"""

from __future__ import annotations

import mimetypes
from dataclasses import dataclass
from io import BytesIO
from os import PathLike
from pathlib import Path
from typing import Protocol

import pdfplumber

from ..errors import DocumentReadError
from ..logging_setup import get_logger

PAGE_BREAK = "\n\n--- PAGE BREAK ---\n\n"
PDF_MIME_TYPE = "application/pdf"

_logger = get_logger("statement_analyzer.ingest.extract")


@dataclass(frozen=True, slots=True)
class SourceFile:
    """An uploaded document: its display name and raw bytes."""

    name: str
    data: bytes

    @classmethod
    def from_path(cls, path: str | PathLike[str]) -> SourceFile:
        p = Path(path)
        return cls(name=p.name, data=p.read_bytes())


def is_pdf(filename: str) -> bool:
    mime, _encoding = mimetypes.guess_type(filename)
    return mime == PDF_MIME_TYPE


def extract_text(source: SourceFile) -> str:
    """Return the concatenated page text of ``source``.

    Raises
    ------
    DocumentReadError
        When the bytes cannot be opened or read as a PDF.
    """

    try:
        with pdfplumber.open(BytesIO(source.data)) as pdf:
            pages = [page.extract_text() or "" for page in pdf.pages]
    except Exception as e:  # noqa: BLE001 - pdfminer raises a wide variety of types
        raise DocumentReadError(source.name, f"{e.__class__.__name__}: {e}") from e

    _logger.debug("extract_text:done file=%s pages=%d", source.name, len(pages))
    return PAGE_BREAK.join(pages)


class TextExtractor(Protocol):
    """Anything that can turn a :class:`SourceFile` into text, asynchronously."""

    async def extract(self, source: SourceFile) -> str: ...


class PdfTextExtractor:
    """Default extractor used by the store.

    Extraction runs inline on the event loop; the store awaits one document
    at a time, so only one document's text is held in memory per step.
    """

    async def extract(self, source: SourceFile) -> str:
        return extract_text(source)


__all__ = [
    "PAGE_BREAK",
    "PDF_MIME_TYPE",
    "PdfTextExtractor",
    "SourceFile",
    "TextExtractor",
    "extract_text",
    "is_pdf",
]
