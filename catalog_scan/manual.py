"""Manual barcode entry."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from catalog_scan.catalog import CatalogStore
from catalog_scan.results import ResultList
from catalog_scan.status import StatusBoard, StatusLevel

logger = logging.getLogger(__name__)


class ManualAddResult(str, enum.Enum):
    empty_input = "empty_input"
    catalog_not_loaded = "catalog_not_loaded"
    added = "added"
    already_in_list = "already_in_list"
    not_found = "not_found"


_MESSAGES = {
    ManualAddResult.empty_input: ("Please enter a barcode.", StatusLevel.warning),
    ManualAddResult.catalog_not_loaded: ("Product data not loaded.", StatusLevel.error),
    ManualAddResult.added: ("Added!", StatusLevel.success),
    ManualAddResult.already_in_list: ("Already in list!", StatusLevel.warning),
    ManualAddResult.not_found: ("Barcode not found!", StatusLevel.error),
}


@dataclass(frozen=True)
class ManualAddOutcome:
    result: ManualAddResult
    barcode: str
    message: str
    level: StatusLevel

    @property
    def clear_input(self) -> bool:
        return self.result is ManualAddResult.added

    def to_dict(self) -> dict:
        return {
            "result": self.result.value,
            "barcode": self.barcode,
            "message": self.message,
            "level": self.level.value,
            "clear_input": self.clear_input,
        }


class ManualEntry:
    """Looks up typed barcodes and adds them to the result list."""

    def __init__(
        self,
        catalog: CatalogStore,
        results: ResultList,
        status: StatusBoard,
        *,
        status_seconds: float = 3.0,
        on_highlight: Optional[Callable[[str], Any]] = None,
    ) -> None:
        self._catalog = catalog
        self._results = results
        self._status = status
        self._status_seconds = status_seconds
        self._on_highlight = on_highlight

    def add(self, raw_input: Optional[str]) -> ManualAddOutcome:
        barcode = (raw_input or "").strip()
        self._status.reset()

        if not barcode:
            result = ManualAddResult.empty_input
        elif self._catalog.is_empty():
            result = ManualAddResult.catalog_not_loaded
        else:
            logger.info("Manual lookup for barcode: %s", barcode)
            record = self._catalog.get(barcode)
            if record is None:
                logger.info("Manual barcode %s not found.", barcode)
                result = ManualAddResult.not_found
            elif self._results.add(barcode, record):
                result = ManualAddResult.added
            else:
                result = ManualAddResult.already_in_list
                if self._on_highlight is not None:
                    self._on_highlight(barcode)

        message, level = _MESSAGES[result]
        self._status.show(message, level, self._status_seconds)
        return ManualAddOutcome(result=result, barcode=barcode, message=message, level=level)
