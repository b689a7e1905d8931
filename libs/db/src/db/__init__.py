"""db: shared database library (SQLAlchemy).

Public exports
--------------
- ``Base`` and ``metadata`` for schema creation
- ORM models in ``db.models.storage`` (re-exported for convenience)
- Engine/session helpers in ``db.client``
"""

from __future__ import annotations

from .models.storage import Base, LocalStorageEntry

metadata = Base.metadata

__all__ = [
    "Base",
    "metadata",
    "LocalStorageEntry",
]
