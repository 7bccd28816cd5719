"""Scan session state machine."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from catalog_scan.catalog import CatalogStore, ProductRecord
from catalog_scan.decoder import (
    CancellationToken,
    DecodeEvent,
    Decoded,
    Decoder,
    DecoderErrorKind,
    DecoderFault,
    NothingDetected,
)
from catalog_scan.errors import CatalogEmptyError, DecoderRuntimeError, DecoderSetupError
from catalog_scan.results import ResultList
from catalog_scan.status import StatusBoard, StatusLevel

logger = logging.getLogger(__name__)

IDLE_PROMPT = "Point camera at barcode..."
STARTING_PROMPT = "Starting scanner... Point camera at barcode."
SETUP_FAILED = "Camera setup failed."

# kind -> (status line, alert text)
_FAULT_MESSAGES = {
    DecoderErrorKind.permission_denied: (
        "Camera permission denied.",
        "Camera permission was denied. Please allow camera access in your browser settings.",
    ),
    DecoderErrorKind.no_camera: (
        "No suitable camera found.",
        "Could not find a suitable camera on this device.",
    ),
    DecoderErrorKind.device_busy: (
        "Camera is already in use or cannot be read.",
        "Could not start the camera. It might be used by another application or browser tab.",
    ),
    DecoderErrorKind.setup: (
        SETUP_FAILED,
        "Error accessing camera or starting scan.",
    ),
    DecoderErrorKind.other: (
        "Scanning error. Try again.",
        "An unexpected scanning error occurred",
    ),
}


class SessionState(str, enum.Enum):
    idle = "idle"
    active = "active"


class ScanResult(str, enum.Enum):
    found = "found"
    duplicate = "duplicate"
    not_found = "not_found"
    nothing = "nothing"       # no barcode in this frame
    fault = "fault"           # decoder error; session stopped
    ignored = "ignored"       # stale or out-of-session event


@dataclass(frozen=True)
class ScanOutcome:
    result: ScanResult
    barcode: Optional[str] = None
    record: Optional[ProductRecord] = None
    message: str = ""
    alert: Optional[str] = None
    error: Optional[DecoderRuntimeError] = None

    def to_dict(self) -> dict:
        return {
            "result": self.result.value,
            "barcode": self.barcode,
            "name": self.record.name if self.record else None,
            "message": self.message,
            "alert": self.alert,
        }


_IGNORED = ScanOutcome(ScanResult.ignored)


class ScanSession:
    """
    Idle/Active state machine that consumes decoder events.

    Each start() issues a fresh CancellationToken; events are acted on only
    while their token is the live one, so callbacks still in flight after
    stop() are dropped.
    """

    def __init__(
        self,
        catalog: CatalogStore,
        results: ResultList,
        status: StatusBoard,
        *,
        scan_status_seconds: float = 2.0,
        error_status_seconds: float = 3.0,
        on_feedback: Optional[Callable[[str], Any]] = None,
        on_highlight: Optional[Callable[[str], Any]] = None,
    ) -> None:
        self._catalog = catalog
        self._results = results
        self._status = status
        self._scan_status_seconds = scan_status_seconds
        self._error_status_seconds = error_status_seconds
        self._on_feedback = on_feedback
        self._on_highlight = on_highlight

        self._state = SessionState.idle
        self._decoder: Optional[Decoder] = None
        self._token: Optional[CancellationToken] = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def active(self) -> bool:
        return self._state is SessionState.active

    @property
    def token(self) -> Optional[CancellationToken]:
        return self._token

    @property
    def decoder(self) -> Optional[Decoder]:
        return self._decoder

    def start(self, decoder: Decoder, surface: Any = None) -> CancellationToken:
        """Idle -> Active.

        Raises CatalogEmptyError when there is nothing to look up, and
        DecoderSetupError when the decoder cannot be started; in both cases
        the session stays Idle.
        """
        if self.active and self._token is not None:
            logger.info("Scan already active; ignoring start")
            return self._token

        if self._catalog.is_empty():
            raise CatalogEmptyError()

        token = CancellationToken()
        self._status.show("Requesting camera access...")
        try:
            decoder.start(surface, lambda event: self.handle(event, token), token)
        except Exception as e:
            token.cancel()
            logger.exception("Error setting up scanner")
            try:
                decoder.stop()
            except Exception:
                logger.exception("Error releasing decoder after failed setup")
            self._status.show(SETUP_FAILED, StatusLevel.error, self._error_status_seconds)
            if isinstance(e, DecoderSetupError):
                raise
            raise DecoderSetupError(str(e)) from e

        self._decoder = decoder
        self._token = token
        self._state = SessionState.active
        self._status.show(STARTING_PROMPT)
        logger.info("Scan session started (%s)", token.id)
        return token

    def stop(self) -> None:
        """Active -> Idle. Safe to call in any state."""
        token, decoder = self._token, self._decoder
        self._token = None
        self._decoder = None
        self._state = SessionState.idle

        if token is not None:
            token.cancel()
        if decoder is not None:
            decoder.stop()
            logger.info("Scan session stopped (%s)", token.id if token else "-")
        self._status.reset()

    def handle(self, event: DecodeEvent, token: Optional[CancellationToken]) -> ScanOutcome:
        if (
            not self.active
            or token is None
            or token is not self._token
            or token.cancelled
        ):
            logger.debug("Dropping stale decoder event %r", event)
            return _IGNORED

        if isinstance(event, NothingDetected):
            return ScanOutcome(ScanResult.nothing)
        if isinstance(event, DecoderFault):
            return self._handle_fault(event)
        if isinstance(event, Decoded):
            return self._handle_barcode(event.text)
        raise TypeError(f"Unknown decode event: {event!r}")

    def _handle_barcode(self, barcode: str) -> ScanOutcome:
        logger.info("Scan successful: %s", barcode)
        record = self._catalog.get(barcode)
        if record is None:
            message = f"Barcode {barcode} not found."
            logger.info("Barcode %s not found in data.", barcode)
            self._status.show(message, StatusLevel.warning, self._scan_status_seconds)
            return ScanOutcome(ScanResult.not_found, barcode=barcode, message=message)

        if not self._results.add(barcode, record):
            message = f"Already scanned: {record.name}"
            logger.info("Barcode %s already in list.", barcode)
            self._status.show(message, StatusLevel.warning, self._scan_status_seconds)
            self._fire(self._on_highlight, barcode)
            return ScanOutcome(ScanResult.duplicate, barcode=barcode, record=record, message=message)

        message = f"Scanned: {record.name}"
        self._status.show(message, StatusLevel.success, self._scan_status_seconds)
        self._fire(self._on_feedback, barcode)
        return ScanOutcome(ScanResult.found, barcode=barcode, record=record, message=message)

    def _handle_fault(self, fault: DecoderFault) -> ScanOutcome:
        logger.error("Scan error: %s %s (%s)", fault.name, fault.message, fault.kind.value)
        status_text, alert = _FAULT_MESSAGES[fault.kind]
        if fault.kind is DecoderErrorKind.other and fault.name:
            alert = f"{alert}: {fault.name}"

        self.stop()
        self._status.show(status_text, StatusLevel.error, self._error_status_seconds)
        return ScanOutcome(
            ScanResult.fault,
            message=status_text,
            alert=alert,
            error=fault.to_error(),
        )

    @staticmethod
    def _fire(hook: Optional[Callable[[str], Any]], barcode: str) -> None:
        if hook is None:
            return
        try:
            hook(barcode)
        except Exception:
            logger.warning("Feedback hook failed for %s", barcode, exc_info=True)
