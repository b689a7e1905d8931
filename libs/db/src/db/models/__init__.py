"""Shared SQLAlchemy models registry for the workspace database.

Currently includes the local-storage table used by ``statement_analyzer``.
"""

from .storage import Base, LocalStorageEntry

__all__ = [
    "Base",
    "LocalStorageEntry",
]
