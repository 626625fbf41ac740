"""Tests for SoundDeviceCapture."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from capture import SoundDeviceCapture
from errors import DEVICE_UNAVAILABLE, PERMISSION_DENIED, CaptureUnavailableError


def _window(n_samples: int = 4096, value: float = 0.1) -> np.ndarray:
    """What the sounddevice callback hands over: (frames, channels) float32."""
    return np.full((n_samples, 1), value, dtype=np.float32)


# ---------------------------------------------------------------
# Basic start / stop
# ---------------------------------------------------------------

@patch("capture.sd")
def test_start_creates_stream_and_runs(mock_sd: MagicMock) -> None:
    mock_stream = MagicMock()
    mock_sd.InputStream.return_value = mock_stream

    capture = SoundDeviceCapture(sample_rate=16000, window_size=4096)
    capture.start(lambda samples: None)

    mock_sd.InputStream.assert_called_once()
    kwargs = mock_sd.InputStream.call_args.kwargs
    assert kwargs["samplerate"] == 16000
    assert kwargs["blocksize"] == 4096
    assert kwargs["channels"] == 1
    assert kwargs["dtype"] == "float32"
    mock_stream.start.assert_called_once()

    capture.stop()
    mock_stream.stop.assert_called_once()
    mock_stream.close.assert_called_once()


@patch("capture.sd")
def test_start_is_idempotent(mock_sd: MagicMock) -> None:
    mock_sd.InputStream.return_value = MagicMock()

    capture = SoundDeviceCapture()
    capture.start(lambda samples: None)
    capture.start(lambda samples: None)  # second call should be no-op

    assert mock_sd.InputStream.call_count == 1
    capture.stop()


@patch("capture.sd")
def test_stop_is_idempotent(mock_sd: MagicMock) -> None:
    mock_stream = MagicMock()
    mock_sd.InputStream.return_value = mock_stream

    capture = SoundDeviceCapture()
    capture.start(lambda samples: None)
    capture.stop()
    capture.stop()

    mock_stream.stop.assert_called_once()


def test_stop_before_start_is_noop() -> None:
    SoundDeviceCapture().stop()


# ---------------------------------------------------------------
# Audio callback delivers windows
# ---------------------------------------------------------------

@patch("capture.sd")
def test_callback_delivers_mono_windows_in_order(mock_sd: MagicMock) -> None:
    mock_sd.InputStream.return_value = MagicMock()
    windows: list[np.ndarray] = []

    capture = SoundDeviceCapture(window_size=4096)
    capture.start(windows.append)
    capture._on_audio(_window(value=0.1), frames=4096, time_info=None, status=None)
    capture._on_audio(_window(value=0.2), frames=4096, time_info=None, status=None)

    assert len(windows) == 2
    assert windows[0].shape == (4096,)
    assert windows[0].dtype == np.float32
    assert windows[0][0] == pytest.approx(0.1)
    assert windows[1][0] == pytest.approx(0.2)
    assert capture.windows_captured == 2

    capture.stop()


@patch("capture.sd")
def test_window_is_copied_out_of_driver_buffer(mock_sd: MagicMock) -> None:
    mock_sd.InputStream.return_value = MagicMock()
    windows: list[np.ndarray] = []
    capture = SoundDeviceCapture(window_size=8)
    capture.start(windows.append)

    indata = _window(8, 0.5)
    capture._on_audio(indata, frames=8, time_info=None, status=None)
    indata.fill(0.0)

    assert windows[0][0] == pytest.approx(0.5)
    capture.stop()


@patch("capture.sd")
def test_callback_after_stop_is_noop(mock_sd: MagicMock) -> None:
    mock_sd.InputStream.return_value = MagicMock()
    windows: list[np.ndarray] = []

    capture = SoundDeviceCapture()
    capture.start(windows.append)
    capture.stop()
    capture._on_audio(_window(), frames=4096, time_info=None, status=None)

    assert windows == []


# ---------------------------------------------------------------
# Failures
# ---------------------------------------------------------------

@patch("capture.sd")
def test_permission_failure_maps_to_permission_denied(mock_sd: MagicMock) -> None:
    mock_sd.InputStream.side_effect = Exception("Error opening InputStream: Permission denied")

    capture = SoundDeviceCapture()
    with pytest.raises(CaptureUnavailableError) as info:
        capture.start(lambda samples: None)

    assert info.value.code == PERMISSION_DENIED
    # a failed start leaves the adapter restartable
    mock_sd.InputStream.side_effect = None
    mock_sd.InputStream.return_value = MagicMock()
    capture.start(lambda samples: None)
    capture.stop()


@patch("capture.sd")
def test_missing_device_maps_to_device_unavailable(mock_sd: MagicMock) -> None:
    mock_sd.query_devices.side_effect = ValueError("No input device matching ''")

    with pytest.raises(CaptureUnavailableError) as info:
        SoundDeviceCapture().start(lambda samples: None)

    assert info.value.code == DEVICE_UNAVAILABLE
    mock_sd.InputStream.assert_not_called()


def test_start_raises_without_sounddevice(monkeypatch) -> None:  # noqa: ANN001
    import capture as capture_mod
    monkeypatch.setattr(capture_mod, "sd", None)

    with pytest.raises(CaptureUnavailableError, match="sounddevice is not installed"):
        SoundDeviceCapture().start(lambda samples: None)


@patch("capture.sd")
def test_start_raises_without_numpy(mock_sd: MagicMock, monkeypatch) -> None:  # noqa: ANN001
    import capture as capture_mod
    monkeypatch.setattr(capture_mod, "np", None)

    with pytest.raises(CaptureUnavailableError) as excinfo:
        SoundDeviceCapture().start(lambda samples: None)

    assert excinfo.value.code == DEVICE_UNAVAILABLE
    mock_sd.InputStream.assert_not_called()
