"""Exception hierarchy for ``statement_analyzer``.

Parse incompleteness is never raised; it is reported as warning strings on the
resulting statement. The exceptions below cover the cases a caller must be
able to tell apart.
"""

from __future__ import annotations


class AnalyzerError(Exception):
    """Base class for all analyzer errors."""


class DocumentReadError(AnalyzerError):
    """Text could not be extracted from a document (corrupt or not a PDF)."""

    def __init__(self, filename: str, reason: str) -> None:
        self.filename = filename
        self.reason = reason
        super().__init__(f"{filename}: {reason}")


class ProcessingInProgressError(AnalyzerError):
    """``process_files`` was called while a previous batch is still running."""


class UnknownProjectError(AnalyzerError, KeyError):
    """An operation referenced a project id that does not exist."""

    def __init__(self, project_id: str) -> None:
        self.project_id = project_id
        super().__init__(f"unknown project: {project_id!r}")

    def __str__(self) -> str:  # KeyError would otherwise repr() the message
        return self.args[0]


class SnapshotVersionError(AnalyzerError):
    """A persisted snapshot was written by a newer, unsupported schema."""

    def __init__(self, found: int, supported: int) -> None:
        self.found = found
        self.supported = supported
        super().__init__(
            f"snapshot schema_version={found} is newer than supported version {supported}"
        )


__all__ = [
    "AnalyzerError",
    "DocumentReadError",
    "ProcessingInProgressError",
    "SnapshotVersionError",
    "UnknownProjectError",
]
