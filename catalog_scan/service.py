"""
Scanner service: the single owner of the catalog, result list and scan
session. The web views and CLI commands go through this object.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional

from catalog_scan.catalog import CatalogStore
from catalog_scan.decoder import CameraDecoder, Decoder, RelayDecoder, event_from_payload
from catalog_scan.errors import (
    CatalogEmptyError,
    DecoderSetupError,
    EmptyResultError,
    ParseError,
    SchemaError,
)
from catalog_scan.ingest import ingest_text
from catalog_scan.manual import ManualAddOutcome, ManualEntry
from catalog_scan.results import ResultList
from catalog_scan.session import IDLE_PROMPT, ScanOutcome, ScanResult, ScanSession
from catalog_scan.status import StatusBoard, StatusLevel
from catalog_scan.storage import BlobStore

logger = logging.getLogger(__name__)

NO_DATA_STATUS = "(No data loaded - Please upload CSV)"


@dataclass(frozen=True)
class LoadReport:
    ok: bool
    outcome: str
    message: str
    level: StatusLevel
    file_name: Optional[str] = None
    item_count: int = 0
    persisted: bool = False
    missing_columns: list[str] = field(default_factory=list)
    warning: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "ok": self.ok,
            "outcome": self.outcome,
            "message": self.message,
            "level": self.level.value,
            "item_count": self.item_count,
            "persisted": self.persisted,
            "missing_columns": self.missing_columns,
            "warning": self.warning,
        }


@dataclass(frozen=True)
class StartReport:
    ok: bool
    scan_id: Optional[str] = None
    alert: Optional[str] = None

    def to_dict(self) -> dict:
        return {"ok": self.ok, "scan_id": self.scan_id, "alert": self.alert}


class ScannerService:
    def __init__(
        self,
        blob_store: BlobStore,
        *,
        storage_key: str = "barcodeScannerProductData",
        scan_status_seconds: float = 2.0,
        decoder_error_status_seconds: float = 3.0,
        manual_status_seconds: float = 3.0,
        highlight_seconds: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
        on_upload: Optional[Callable[[LoadReport], Any]] = None,
    ) -> None:
        self._lock = threading.RLock()
        self._clock = clock
        self._highlight_seconds = highlight_seconds
        self._on_upload = on_upload

        self.catalog = CatalogStore(blob_store, storage_key=storage_key)
        self.results = ResultList()
        self.scan_status = StatusBoard(IDLE_PROMPT, clock=clock)
        self.manual_status = StatusBoard("", clock=clock)
        self.relay = RelayDecoder()

        self.session = ScanSession(
            self.catalog,
            self.results,
            self.scan_status,
            scan_status_seconds=scan_status_seconds,
            error_status_seconds=decoder_error_status_seconds,
            on_feedback=self._queue_feedback,
            on_highlight=self._highlight,
        )
        self.manual = ManualEntry(
            self.catalog,
            self.results,
            self.manual_status,
            status_seconds=manual_status_seconds,
            on_highlight=self._highlight,
        )

        self._data_status = (NO_DATA_STATUS, StatusLevel.error)
        self._highlighted: Optional[tuple[str, float]] = None
        self._pending_feedback = False

    @classmethod
    def from_config(cls, config: Mapping[str, Any], blob_store: BlobStore, **kwargs) -> "ScannerService":
        return cls(
            blob_store,
            storage_key=config.get("CATALOG_STORAGE_KEY", "barcodeScannerProductData"),
            scan_status_seconds=float(config.get("SCAN_STATUS_SECONDS", 2)),
            decoder_error_status_seconds=float(config.get("DECODER_ERROR_STATUS_SECONDS", 3)),
            manual_status_seconds=float(config.get("MANUAL_STATUS_SECONDS", 3)),
            highlight_seconds=float(config.get("HIGHLIGHT_SECONDS", 1)),
            **kwargs,
        )

    # ----------------------------
    # Side-effect hooks
    # ----------------------------

    def _queue_feedback(self, barcode: str) -> None:
        self._pending_feedback = True

    def _highlight(self, barcode: str) -> None:
        self._highlighted = (barcode, self._clock() + self._highlight_seconds)

    def _current_highlight(self) -> Optional[str]:
        if self._highlighted is None:
            return None
        barcode, until = self._highlighted
        if self._clock() >= until:
            self._highlighted = None
            return None
        return barcode

    # ----------------------------
    # Catalog
    # ----------------------------

    def _refresh_data_status(self) -> None:
        count = len(self.catalog)
        if count:
            self._data_status = (f"({count} items loaded)", StatusLevel.success)
        else:
            self._data_status = (NO_DATA_STATUS, StatusLevel.error)

    def restore_catalog(self) -> int:
        """Load the persisted catalog at startup. Returns the item count."""
        with self._lock:
            restored = self.catalog.restore()
            if not restored:
                logger.info("No valid data found in storage under %r.", self.catalog.storage_key)
            self._refresh_data_status()
            return len(self.catalog)

    def load_csv(self, text: str, file_name: Optional[str] = None) -> LoadReport:
        source = file_name or "the file"
        with self._lock:
            logger.info("Attempting to parse CSV data from %s...", file_name or "uploaded file")
            try:
                success = ingest_text(self.catalog, text)
            except ParseError as e:
                self._data_status = ("(Error parsing CSV)", StatusLevel.error)
                report = LoadReport(
                    ok=False,
                    outcome="parse_error",
                    message=f"Errors found while parsing {source}. Check the log for details.",
                    level=StatusLevel.error,
                    file_name=file_name,
                    warning="; ".join(e.errors[:5]),
                )
            except SchemaError as e:
                self._data_status = ("(CSV missing columns)", StatusLevel.error)
                report = LoadReport(
                    ok=False,
                    outcome="schema_error",
                    message=f"Error processing CSV: {e}",
                    level=StatusLevel.error,
                    file_name=file_name,
                    missing_columns=e.missing,
                )
            except EmptyResultError:
                self._data_status = ("(Loaded file was empty or invalid)", StatusLevel.warning)
                report = LoadReport(
                    ok=False,
                    outcome="empty_result",
                    message="The CSV file seems empty or had no valid product rows.",
                    level=StatusLevel.warning,
                    file_name=file_name,
                )
            else:
                self._refresh_data_status()
                warning = None
                if not success.persisted:
                    warning = "Could not save data for next time. Local storage might be full."
                report = LoadReport(
                    ok=True,
                    outcome="success",
                    message=f"Successfully loaded {success.item_count} products from {source}.",
                    level=StatusLevel.success,
                    file_name=file_name,
                    item_count=success.item_count,
                    persisted=success.persisted,
                    warning=warning,
                )

            if self._on_upload is not None:
                self._on_upload(report)
            return report

    def clear_catalog(self) -> None:
        with self._lock:
            self.catalog.clear()
            self._refresh_data_status()
            logger.info("Product catalog cleared.")

    # ----------------------------
    # Scanning
    # ----------------------------

    def start_scan(self, surface: Any = None, decoder: Optional[Decoder] = None) -> StartReport:
        with self._lock:
            try:
                token = self.session.start(decoder or self.relay, surface)
            except CatalogEmptyError as e:
                return StartReport(ok=False, alert=str(e))
            except DecoderSetupError as e:
                return StartReport(ok=False, alert=f"Error accessing camera or starting scan: {e}")
            return StartReport(ok=True, scan_id=token.id)

    def stop_scan(self) -> None:
        with self._lock:
            self.session.stop()

    def relay_event(self, scan_id: Optional[str], payload: Mapping[str, Any]) -> dict:
        """Feed one browser-decoded event into the session."""
        with self._lock:
            token = self.relay.token
            if token is None or token.id != scan_id or self.session.decoder is not self.relay:
                logger.info("Ignoring event for stale scan %s", scan_id)
                outcome: Optional[ScanOutcome] = None
            else:
                outcome = self.relay.push(event_from_payload(payload))

            if outcome is None:
                outcome = ScanOutcome(ScanResult.ignored)

            vibrate, self._pending_feedback = self._pending_feedback, False
            data = outcome.to_dict()
            data["vibrate"] = vibrate
            return data

    def poll_camera(self, decoder: CameraDecoder) -> ScanOutcome:
        """Pull one frame from a local camera decoder into the session."""
        with self._lock:
            self._pending_feedback = False
            outcome = decoder.poll()
            return outcome if outcome is not None else ScanOutcome(ScanResult.ignored)

    # ----------------------------
    # Manual entry and result list
    # ----------------------------

    def manual_add(self, raw_input: Optional[str]) -> ManualAddOutcome:
        with self._lock:
            return self.manual.add(raw_input)

    def clear_list(self) -> None:
        with self._lock:
            self.results.clear()
            self._highlighted = None
            logger.info("Displayed list cleared.")

    def snapshot(self) -> dict:
        with self._lock:
            data_text, data_level = self._data_status
            has_catalog = not self.catalog.is_empty()
            token = self.session.token
            return {
                "catalog": {
                    "item_count": len(self.catalog),
                    "status": data_text,
                    "level": data_level.value,
                },
                "scan": {
                    "state": self.session.state.value,
                    "scan_id": token.id if token else None,
                    "status": self.scan_status.current().to_dict(),
                },
                "manual": {"status": self.manual_status.current().to_dict()},
                "items": self.results.to_dicts(),
                "highlight": self._current_highlight(),
                "can_scan": has_catalog and not self.session.active,
                "can_manual_add": has_catalog,
            }
