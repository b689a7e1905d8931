from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


# ---------------------------
# Local storage: sa_local_storage
# ---------------------------


class LocalStorageEntry(Base):
    """One named local-storage entry holding a JSON snapshot.

    ``name`` plays the role of a browser local-storage key; the analyzer keeps
    exactly one entry per storage key. ``schema_version`` mirrors the version
    embedded in ``payload`` so readers can refuse snapshots they do not
    understand without decoding the whole document.
    """

    __tablename__ = "sa_local_storage"

    name: Mapped[str] = mapped_column(String, primary_key=True)
    schema_version: Mapped[int] = mapped_column(Integer, nullable=False)
    payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
