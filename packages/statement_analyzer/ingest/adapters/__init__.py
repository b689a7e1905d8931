"""Bank-specific statement adapters (extracted text → :class:`ParseResult`)."""

from .chase_pdf import parse_chase_statement
from .generic_pdf import parse_generic_statement

__all__ = ["parse_chase_statement", "parse_generic_statement"]
