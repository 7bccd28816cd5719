"""Tests for decode events, the relay decoder and the OpenCV camera decoder."""

import sys
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from catalog_scan.decoder import (
    CameraDecoder,
    CancellationToken,
    Decoded,
    DecoderErrorKind,
    DecoderFault,
    NothingDetected,
    RelayDecoder,
    classify_error,
    event_from_payload,
)
from catalog_scan.errors import DecoderSetupError


@pytest.mark.parametrize(
    "name, kind",
    [
        ("NotAllowedError", DecoderErrorKind.permission_denied),
        ("PermissionDeniedError", DecoderErrorKind.permission_denied),
        ("NotFoundError", DecoderErrorKind.no_camera),
        ("NotReadableError", DecoderErrorKind.device_busy),
        ("SetupError", DecoderErrorKind.setup),
        ("ChecksumException", DecoderErrorKind.other),
    ],
)
def test_classify_error(name, kind):
    event = classify_error(name, "boom")
    assert event == DecoderFault(kind=kind, name=name, message="boom")


def test_not_found_exception_means_nothing_detected():
    assert classify_error("NotFoundException") == NothingDetected()


def test_event_from_payload():
    assert event_from_payload({"text": "123", "format": "EAN_13"}) == Decoded("123", "EAN_13")
    assert event_from_payload({"text": ""}) == NothingDetected()
    assert event_from_payload({}) == NothingDetected()
    assert event_from_payload({"error": "NotAllowedError"}).kind is DecoderErrorKind.permission_denied


def test_fault_to_error_keeps_kind():
    error = DecoderFault(DecoderErrorKind.device_busy, "NotReadableError", "in use").to_error()
    assert error.kind == "device_busy"


class TestRelayDecoder:
    def test_push_delivers_to_callback(self):
        received = []
        relay = RelayDecoder()
        token = CancellationToken()
        relay.start(None, lambda event: received.append(event) or "handled", token)

        assert relay.token is token
        assert relay.push(Decoded("123")) == "handled"
        assert received == [Decoded("123")]

    def test_push_after_stop_or_cancel_is_dropped(self):
        callback = MagicMock()
        relay = RelayDecoder()
        token = CancellationToken()
        relay.start(None, callback, token)

        token.cancel()
        assert relay.push(Decoded("123")) is None

        relay.stop()
        assert relay.token is None
        assert relay.push(Decoded("123")) is None
        callback.assert_not_called()


def _fake_cv2(opened=True, frames=()):
    cv2 = MagicMock()
    cap = MagicMock()
    cap.isOpened.return_value = opened
    cap.read.side_effect = list(frames)
    cv2.VideoCapture.return_value = cap
    cv2.cvtColor.side_effect = lambda frame, code: frame.mean(axis=2)
    return cv2, cap


def _fake_pyzbar(results):
    pyzbar_module = MagicMock()
    pyzbar_module.decode.side_effect = list(results)
    package = MagicMock()
    package.pyzbar = pyzbar_module
    return package, pyzbar_module


class TestCameraDecoder:
    def test_poll_decodes_frames(self):
        frame = np.zeros((4, 4, 3), dtype=np.uint8)
        cv2, cap = _fake_cv2(frames=[(True, frame), (True, frame)])
        package, pyzbar_module = _fake_pyzbar(
            [[SimpleNamespace(data=b"0123456789", type="EAN13")], []]
        )
        events = []

        with patch.dict(sys.modules, {"cv2": cv2, "pyzbar": package, "pyzbar.pyzbar": pyzbar_module}):
            decoder = CameraDecoder(camera_index=2)
            decoder.start(None, lambda event: events.append(event) or event, CancellationToken())

            assert decoder.running
            assert decoder.poll() == Decoded("0123456789", "EAN13")
            assert decoder.poll() == NothingDetected()

        cv2.VideoCapture.assert_called_once_with(2)
        assert len(events) == 2

        decoder.stop()
        cap.release.assert_called_once()
        assert not decoder.running
        assert decoder.poll() is None

    def test_surface_overrides_camera_index(self):
        cv2, _ = _fake_cv2()
        package, pyzbar_module = _fake_pyzbar([])

        with patch.dict(sys.modules, {"cv2": cv2, "pyzbar": package, "pyzbar.pyzbar": pyzbar_module}):
            decoder = CameraDecoder(camera_index=0)
            decoder.start(1, MagicMock(), CancellationToken())

        cv2.VideoCapture.assert_called_once_with(1)

    def test_unopened_camera_is_setup_error(self):
        cv2, cap = _fake_cv2(opened=False)
        package, pyzbar_module = _fake_pyzbar([])

        with patch.dict(sys.modules, {"cv2": cv2, "pyzbar": package, "pyzbar.pyzbar": pyzbar_module}):
            decoder = CameraDecoder()
            with pytest.raises(DecoderSetupError):
                decoder.start(None, MagicMock(), CancellationToken())

        cap.release.assert_called_once()
        assert not decoder.running

    def test_failed_read_is_device_busy_fault(self):
        cv2, _ = _fake_cv2(frames=[(False, None)])
        package, pyzbar_module = _fake_pyzbar([])

        with patch.dict(sys.modules, {"cv2": cv2, "pyzbar": package, "pyzbar.pyzbar": pyzbar_module}):
            decoder = CameraDecoder()
            decoder.start(None, lambda event: event, CancellationToken())
            event = decoder.poll()

        assert isinstance(event, DecoderFault)
        assert event.kind is DecoderErrorKind.device_busy

    def test_cancelled_token_drops_events(self):
        frame = np.zeros((2, 2, 3), dtype=np.uint8)
        cv2, _ = _fake_cv2(frames=[(True, frame)])
        package, pyzbar_module = _fake_pyzbar([[]])
        callback = MagicMock()
        token = CancellationToken()

        with patch.dict(sys.modules, {"cv2": cv2, "pyzbar": package, "pyzbar.pyzbar": pyzbar_module}):
            decoder = CameraDecoder()
            decoder.start(None, callback, token)
            token.cancel()
            assert decoder.poll() is None

        callback.assert_not_called()
