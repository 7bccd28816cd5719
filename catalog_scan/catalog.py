"""Product catalog: records, lookup and the persisted catalog store."""

from __future__ import annotations

import json
import logging
import math
import re
from dataclasses import asdict, dataclass
from typing import Iterator, Mapping, Optional

from catalog_scan.errors import PersistError
from catalog_scan.storage import BlobStore

logger = logging.getLogger(__name__)

# Placeholder for a blank product name or unit of measure
NOT_AVAILABLE = "N/A"

# Leading-number grammar of a browser parseFloat()
_FLOAT_PREFIX = re.compile(
    r"[+-]?(?:Infinity|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)"
)


@dataclass(frozen=True)
class ProductRecord:
    name: str
    uom: str
    price: float

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping) -> "ProductRecord":
        name = data["name"]
        uom = data["uom"]
        price = data["price"]
        if not isinstance(name, str) or not isinstance(uom, str):
            raise ValueError("name and uom must be strings")
        if isinstance(price, bool) or not isinstance(price, (int, float)):
            raise ValueError("price must be a number")
        try:
            price = float(price)
        except (OverflowError, TypeError) as e:
            raise ValueError(f"price out of range: {e}") from e
        return cls(name=name, uom=uom, price=price)


Catalog = dict[str, ProductRecord]


def parse_price(raw: Optional[str]) -> float:
    """Parse a SELLPRICE cell, falling back to 0.

    Only the leading numeric part is read ("2.50 EUR" is 2.5). No range check
    is applied, so negative prices are kept.
    """
    if raw is None:
        return 0.0
    match = _FLOAT_PREFIX.match(raw.lstrip())
    if not match:
        return 0.0
    value = float(match.group(0).replace("Infinity", "inf"))
    if not math.isfinite(value) or value == 0:
        return 0.0
    return value


def lookup(catalog: Mapping[str, ProductRecord], barcode: str) -> Optional[ProductRecord]:
    """Exact-match lookup. Returns None when the barcode is unknown."""
    return catalog.get(barcode)


def serialize_catalog(catalog: Mapping[str, ProductRecord]) -> bytes:
    payload = {barcode: record.to_dict() for barcode, record in catalog.items()}
    return json.dumps(payload, ensure_ascii=False).encode("utf-8")


def deserialize_catalog(blob: bytes) -> Catalog:
    """Decode a persisted catalog. Raises ValueError on any malformed content."""
    try:
        payload = json.loads(blob.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError, RecursionError) as e:
        raise ValueError(f"Persisted catalog is not valid JSON: {e}") from e

    if not isinstance(payload, dict):
        raise ValueError("Persisted catalog must be a JSON object")

    catalog: Catalog = {}
    for barcode, data in payload.items():
        if not barcode or not isinstance(data, dict):
            raise ValueError(f"Malformed persisted entry for {barcode!r}")
        try:
            catalog[barcode] = ProductRecord.from_dict(data)
        except KeyError as e:
            raise ValueError(f"Persisted entry {barcode!r} is missing {e}") from e
    return catalog


class CatalogStore:
    """The live catalog and its persisted copy under one fixed blob key."""

    def __init__(self, blob_store: BlobStore, storage_key: str = "barcodeScannerProductData") -> None:
        self._blob_store = blob_store
        self._storage_key = storage_key
        self._catalog: Catalog = {}

    @property
    def storage_key(self) -> str:
        return self._storage_key

    def __len__(self) -> int:
        return len(self._catalog)

    def __contains__(self, barcode: object) -> bool:
        return barcode in self._catalog

    def is_empty(self) -> bool:
        return not self._catalog

    def get(self, barcode: str) -> Optional[ProductRecord]:
        return lookup(self._catalog, barcode)

    def records(self) -> Iterator[tuple[str, ProductRecord]]:
        return iter(list(self._catalog.items()))

    def snapshot(self) -> Catalog:
        return dict(self._catalog)

    def replace(self, catalog: Mapping[str, ProductRecord]) -> None:
        """Swap the live catalog for a new one in a single assignment."""
        self._catalog = dict(catalog)

    def restore(self) -> Optional[Catalog]:
        """Load the persisted catalog into memory.

        Returns None when nothing usable is stored. Unreadable data is deleted.
        """
        blob = self._blob_store.get(self._storage_key)
        if blob is None:
            logger.info("No persisted catalog found under %r", self._storage_key)
            self._catalog = {}
            return None

        try:
            catalog = deserialize_catalog(blob)
        except ValueError:
            logger.exception("Discarding corrupted persisted catalog")
            self._delete_persisted()
            self._catalog = {}
            return None

        self._catalog = catalog
        if not catalog:
            logger.info("Persisted catalog is empty")
            return None

        logger.info("Product data loaded from storage: %d items", len(catalog))
        return dict(catalog)

    def save(self) -> None:
        """Persist the live catalog. Raises PersistError if the write fails."""
        if not self._catalog:
            logger.warning("Attempted to save empty product data. Skipping.")
            return

        blob = serialize_catalog(self._catalog)
        self._blob_store.set(self._storage_key, blob)
        logger.info("Product data (%d items) saved to storage.", len(self._catalog))

    def _delete_persisted(self) -> bool:
        try:
            self._blob_store.delete(self._storage_key)
        except PersistError:
            logger.exception("Could not remove persisted catalog %r", self._storage_key)
            return False
        return True

    def discard_persisted(self) -> bool:
        """Delete the persisted copy. Returns False if the delete failed."""
        return self._delete_persisted()

    def clear(self) -> None:
        """Empty the live catalog. A failed delete of the persisted copy is logged."""
        self._catalog = {}
        self._delete_persisted()
