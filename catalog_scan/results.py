"""The running list of identified items, newest first."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Optional

from catalog_scan.catalog import ProductRecord


@dataclass(frozen=True)
class ResultEntry:
    barcode: str
    record: ProductRecord

    def to_dict(self) -> dict:
        return {
            "barcode": self.barcode,
            "name": self.record.name,
            "uom": self.record.uom,
            "price": self.record.price,
            "price_display": f"${self.record.price:.2f}",
        }


class ResultList:
    """Distinct entries keyed by barcode. Index 0 is the most recent."""

    def __init__(self) -> None:
        self._entries: list[ResultEntry] = []
        self._by_barcode: dict[str, ResultEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[ResultEntry]:
        return iter(list(self._entries))

    def __contains__(self, barcode: object) -> bool:
        return barcode in self._by_barcode

    def get(self, barcode: str) -> Optional[ResultEntry]:
        return self._by_barcode.get(barcode)

    def add(self, barcode: str, record: ProductRecord) -> bool:
        """Insert at the front. Returns False if the barcode is already listed."""
        if barcode in self._by_barcode:
            return False
        entry = ResultEntry(barcode=barcode, record=record)
        self._entries.insert(0, entry)
        self._by_barcode[barcode] = entry
        return True

    def clear(self) -> None:
        self._entries = []
        self._by_barcode = {}

    def entries(self) -> list[ResultEntry]:
        return list(self._entries)

    def to_dicts(self) -> list[dict]:
        return [entry.to_dict() for entry in self._entries]
