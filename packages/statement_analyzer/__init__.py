"""Public interface for the ``statement_analyzer`` package.

Re-exports the store, the entity models and the export helpers as the stable
import surface. There is no runtime logic here, only symbol re-exports.
"""

from .categorization import Categorizer, clean_description, detect_channel
from .errors import (
    AnalyzerError,
    DocumentReadError,
    ProcessingInProgressError,
    SnapshotVersionError,
    UnknownProjectError,
)
from .export import (
    export_category_summary_to_csv,
    export_transactions_to_csv,
    export_transfers_detail_to_csv,
)
from .ingest import PdfTextExtractor, SourceFile, TextExtractor
from .models import (
    AnalyzerSnapshot,
    DashboardFilters,
    DateRange,
    FormDoc,
    MatchingRule,
    Project,
    Statement,
    StatementDoc,
    Transaction,
)
from .persistence import SqlSnapshotStorage
from .store import AnalyzerStore

__all__ = [
    # Store
    "AnalyzerStore",
    "SqlSnapshotStorage",
    # Ingest
    "PdfTextExtractor",
    "SourceFile",
    "TextExtractor",
    "Categorizer",
    "clean_description",
    "detect_channel",
    # Models / types
    "AnalyzerSnapshot",
    "DashboardFilters",
    "DateRange",
    "FormDoc",
    "MatchingRule",
    "Project",
    "Statement",
    "StatementDoc",
    "Transaction",
    # Export
    "export_category_summary_to_csv",
    "export_transactions_to_csv",
    "export_transfers_detail_to_csv",
    # Errors
    "AnalyzerError",
    "DocumentReadError",
    "ProcessingInProgressError",
    "SnapshotVersionError",
    "UnknownProjectError",
]
