from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError

from catalog_scan import db
from catalog_scan.models import CatalogUpload, UploadOutcome
from catalog_scan.service import LoadReport

logger = logging.getLogger(__name__)


def record_upload(report: LoadReport) -> None:
    """Write one catalog_upload row for an ingestion attempt."""
    try:
        db.session.add(
            CatalogUpload(
                file_name=report.file_name,
                outcome=UploadOutcome(report.outcome),
                item_count=report.item_count,
                missing_columns=report.missing_columns or None,
                persisted=report.persisted,
            )
        )
        db.session.commit()
    except SQLAlchemyError:
        # The catalog itself is already loaded; only the audit row is lost.
        db.session.rollback()
        logger.exception("Failed to record catalog upload")
