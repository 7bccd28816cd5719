"""CSV tokenizing and catalog ingestion."""

from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass, field
from typing import Mapping, Optional, Sequence

from catalog_scan.catalog import NOT_AVAILABLE, Catalog, CatalogStore, ProductRecord, parse_price
from catalog_scan.errors import EmptyResultError, ParseError, PersistError, SchemaError

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("BARCODE", "PRODUCTNAME", "UOM", "SELLPRICE")

# Per-row warnings for skipped rows stop after this many
_SKIP_WARNING_LIMIT = 10


@dataclass
class TokenizedCsv:
    headers: list[str] = field(default_factory=list)
    rows: list[dict[str, str]] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class IngestSuccess:
    item_count: int
    persisted: bool
    persist_error: Optional[str] = None


def tokenize_csv(text: str) -> TokenizedCsv:
    """Split CSV text into header names and header-keyed rows.

    The first line is the header. Fully empty lines are skipped. A row whose
    field count differs from the header is reported as an error.
    """
    result = TokenizedCsv()
    if text.startswith("\ufeff"):
        text = text[1:]

    reader = csv.reader(io.StringIO(text, newline=""), strict=True)
    try:
        for raw in reader:
            if not raw:
                continue
            if not result.headers:
                result.headers = raw
                continue

            row_number = len(result.rows) + 1
            if len(raw) > len(result.headers):
                result.errors.append(
                    f"Row {row_number}: TooManyFields (expected {len(result.headers)}, got {len(raw)})"
                )
            elif len(raw) < len(result.headers):
                result.errors.append(
                    f"Row {row_number}: TooFewFields (expected {len(result.headers)}, got {len(raw)})"
                )
            result.rows.append(dict(zip(result.headers, raw)))
    except csv.Error as e:
        result.errors.append(f"Line {reader.line_num}: {e}")

    return result


def _clean(value: Optional[str]) -> str:
    return (value or "").strip()


def build_catalog(rows: Sequence[Mapping[str, Optional[str]]]) -> Catalog:
    """Normalise data rows into a fresh catalog; later duplicates win."""
    catalog: Catalog = {}
    for index, row in enumerate(rows):
        barcode = _clean(row.get("BARCODE"))
        if not barcode:
            if index < _SKIP_WARNING_LIMIT:
                logger.warning("Skipping row %d due to empty barcode: %r", index + 1, dict(row))
            elif index == _SKIP_WARNING_LIMIT:
                logger.warning("Further empty barcode warnings suppressed.")
            continue

        catalog[barcode] = ProductRecord(
            name=_clean(row.get("PRODUCTNAME")) or NOT_AVAILABLE,
            uom=_clean(row.get("UOM")) or NOT_AVAILABLE,
            price=parse_price(row.get("SELLPRICE")),
        )
    return catalog


def ingest(
    store: CatalogStore,
    headers: Sequence[str],
    rows: Sequence[Mapping[str, Optional[str]]],
    errors: Sequence[str] = (),
) -> IngestSuccess:
    """Replace the store's catalog with the given rows.

    Raises ParseError, SchemaError or EmptyResultError after clearing the
    store (memory and persisted copy). A failed save does not fail the
    ingestion: the catalog stays loaded and IngestSuccess.persisted is False.
    """
    if errors:
        logger.error("CSV tokenizer reported %d row error(s): %s", len(errors), errors[:5])
        store.clear()
        raise ParseError(errors)

    missing = [column for column in REQUIRED_COLUMNS if column not in headers]
    if missing:
        logger.error("CSV headers missing required columns: %s", ", ".join(missing))
        store.clear()
        raise SchemaError(missing, headers)

    catalog = build_catalog(rows)
    logger.info("Finished processing rows. %d valid products stored.", len(catalog))

    if not catalog:
        store.clear()
        raise EmptyResultError()

    store.replace(catalog)
    try:
        store.save()
    except PersistError as e:
        logger.error("Error saving product data (maybe size limit exceeded?): %s", e)
        store.discard_persisted()
        return IngestSuccess(item_count=len(catalog), persisted=False, persist_error=str(e))

    return IngestSuccess(item_count=len(catalog), persisted=True)


def ingest_text(store: CatalogStore, text: str) -> IngestSuccess:
    tokens = tokenize_csv(text)
    return ingest(store, tokens.headers, tokens.rows, tokens.errors)
