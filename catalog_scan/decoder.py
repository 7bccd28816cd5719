"""Barcode decoder boundary: decode events, cancellation and decoders."""

from __future__ import annotations

import enum
import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Union

from catalog_scan.errors import DecoderRuntimeError, DecoderSetupError

logger = logging.getLogger(__name__)


class DecoderErrorKind(str, enum.Enum):
    permission_denied = "permission_denied"
    no_camera = "no_camera"
    device_busy = "device_busy"
    setup = "setup"
    other = "other"


# ----------------------------
# Events
# ----------------------------

@dataclass(frozen=True)
class Decoded:
    text: str
    symbology: Optional[str] = None


@dataclass(frozen=True)
class NothingDetected:
    """No barcode visible in the current frame. Not an error."""


@dataclass(frozen=True)
class DecoderFault:
    kind: DecoderErrorKind
    name: str = ""
    message: str = ""

    def to_error(self) -> DecoderRuntimeError:
        return DecoderRuntimeError(self.kind.value, self.message or self.name)


DecodeEvent = Union[Decoded, NothingDetected, DecoderFault]
DecoderCallback = Callable[[DecodeEvent], Any]


# Error names reported by browser camera/decoder stacks
_ERROR_KINDS = {
    "NotAllowedError": DecoderErrorKind.permission_denied,
    "PermissionDeniedError": DecoderErrorKind.permission_denied,
    "NotFoundError": DecoderErrorKind.no_camera,
    "DevicesNotFoundError": DecoderErrorKind.no_camera,
    "NotReadableError": DecoderErrorKind.device_busy,
    "TrackStartError": DecoderErrorKind.device_busy,
    "SetupError": DecoderErrorKind.setup,
}

_NOTHING_DETECTED = {"NotFoundException"}


def classify_error(name: str, message: str = "") -> DecodeEvent:
    if name in _NOTHING_DETECTED:
        return NothingDetected()
    kind = _ERROR_KINDS.get(name, DecoderErrorKind.other)
    return DecoderFault(kind=kind, name=name, message=message)


def event_from_payload(payload: Mapping[str, Any]) -> DecodeEvent:
    """Build an event from a relayed JSON payload.

    Accepts {"text": ..., "format": ...} or {"error": <name>, "message": ...}.
    """
    error = payload.get("error")
    if error:
        return classify_error(str(error), str(payload.get("message") or ""))

    text = payload.get("text")
    if isinstance(text, str) and text:
        return Decoded(text=text, symbology=payload.get("format") or None)
    return NothingDetected()


# ----------------------------
# Cancellation
# ----------------------------

class CancellationToken:
    """Issued per scan run; events carrying a cancelled token are dropped."""

    def __init__(self) -> None:
        self.id = str(uuid.uuid4())
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    def __repr__(self) -> str:
        state = "cancelled" if self._cancelled else "live"
        return f"<CancellationToken {self.id} {state}>"


# ----------------------------
# Decoders
# ----------------------------

class Decoder(ABC):
    """Observes a video surface and reports DecodeEvents through a callback."""

    @abstractmethod
    def start(self, surface: Any, callback: DecoderCallback, token: CancellationToken) -> None:
        """Acquire the camera. Raises DecoderSetupError when that fails."""
        ...

    @abstractmethod
    def stop(self) -> None:
        """Release the camera. Safe to call more than once."""
        ...


class RelayDecoder(Decoder):
    """Decoder whose events are decoded elsewhere (the browser) and pushed in."""

    def __init__(self) -> None:
        self._callback: Optional[DecoderCallback] = None
        self._token: Optional[CancellationToken] = None

    @property
    def token(self) -> Optional[CancellationToken]:
        return self._token

    def start(self, surface: Any, callback: DecoderCallback, token: CancellationToken) -> None:
        self._callback = callback
        self._token = token
        logger.info("Relay decoder started for surface %r", surface)

    def push(self, event: DecodeEvent) -> Any:
        """Deliver an event. Returns the callback's result, or None if not running."""
        if self._callback is None or self._token is None or self._token.cancelled:
            return None
        return self._callback(event)

    def stop(self) -> None:
        self._callback = None
        self._token = None


class CameraDecoder(Decoder):
    """Decode barcodes from a local camera with OpenCV and pyzbar.

    Frames are pulled on the caller's thread, one per poll().
    """

    def __init__(self, camera_index: int = 0) -> None:
        self._camera_index = camera_index
        self._cap = None
        self._open_index = camera_index
        self._cv2 = None
        self._pyzbar = None
        self._callback: Optional[DecoderCallback] = None
        self._token: Optional[CancellationToken] = None

    @property
    def running(self) -> bool:
        return self._cap is not None

    def start(self, surface: Any, callback: DecoderCallback, token: CancellationToken) -> None:
        try:
            import cv2
            from pyzbar import pyzbar
        except ImportError as e:
            raise DecoderSetupError(
                f"opencv-python and pyzbar are required for camera scanning: {e}"
            ) from e

        index = self._camera_index if surface is None else int(surface)
        cap = cv2.VideoCapture(index)
        if not cap.isOpened():
            cap.release()
            raise DecoderSetupError(f"Cannot open camera {index}")

        self._cv2 = cv2
        self._pyzbar = pyzbar
        self._cap = cap
        self._open_index = index
        self._callback = callback
        self._token = token
        logger.info("Camera %d opened for scanning", index)

    def poll(self) -> Any:
        """Read one frame and dispatch its event.

        Returns the callback's result, or None if the camera is not running.
        """
        if self._cap is None:
            return None

        ret, frame = self._cap.read()
        if not ret or frame is None:
            event: DecodeEvent = DecoderFault(
                kind=DecoderErrorKind.device_busy,
                name="NotReadableError",
                message="Could not read a frame from the camera.",
            )
        else:
            gray = self._cv2.cvtColor(frame, self._cv2.COLOR_BGR2GRAY)
            found = self._pyzbar.decode(gray)
            if found:
                event = Decoded(text=found[0].data.decode("utf-8"), symbology=found[0].type)
            else:
                event = NothingDetected()

        callback, token = self._callback, self._token
        if callback is None or token is None or token.cancelled:
            return None
        return callback(event)

    def stop(self) -> None:
        if self._cap is not None:
            self._cap.release()
            logger.info("Camera %d released", self._open_index)
        self._cap = None
        self._callback = None
        self._token = None
