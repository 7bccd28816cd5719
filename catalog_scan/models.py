from __future__ import annotations

import enum
import uuid
from datetime import datetime, timezone
from typing import Optional

from catalog_scan import db

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    Index,
    Integer,
    LargeBinary,
    String,
)
from sqlalchemy.dialects.sqlite import JSON
from sqlalchemy.orm import (
    Mapped,
    mapped_column,
)

# ----------------------------
# Helpers
# ----------------------------

def utcnow() -> datetime:
    # SQLite has no real TZ; store UTC consistently.
    return datetime.now(timezone.utc)


def new_uuid() -> str:
    return str(uuid.uuid4())

# ----------------------------
# Enums
# ----------------------------

class UploadOutcome(str, enum.Enum):
    success = "success"
    schema_error = "schema_error"   # required columns missing
    parse_error = "parse_error"     # tokenizer reported row errors
    empty_result = "empty_result"   # no row had a barcode


# ----------------------------
# Models
# ----------------------------

class BlobEntry(db.Model):
    """
    Key/value blob storage. The catalog lives under a single fixed key.
    """
    __tablename__ = "blob_entry"

    key: Mapped[str] = mapped_column(String(128), primary_key=True)
    value: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)


class CatalogUpload(db.Model):
    """
    Audit trail of catalog CSV uploads and how each ingestion attempt ended.
    """
    __tablename__ = "catalog_upload"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    file_name: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    outcome: Mapped[UploadOutcome] = mapped_column(Enum(UploadOutcome), nullable=False, index=True)
    item_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Only set for schema errors
    missing_columns: Mapped[Optional[list[str]]] = mapped_column(JSON, nullable=True)

    # False when the catalog loaded but could not be written to the blob store
    persisted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    __table_args__ = (
        Index("ix_upload_created_outcome", "created_at", "outcome"),
    )
