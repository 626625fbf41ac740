"""Microphone capture adapter."""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Optional

from errors import DEVICE_UNAVAILABLE, PERMISSION_DENIED, CaptureUnavailableError

try:
    import numpy as np
except Exception:  # pragma: no cover
    np = None  # type: ignore

try:
    import sounddevice as sd
except Exception:  # pragma: no cover
    sd = None  # type: ignore

logger = logging.getLogger(__name__)


class SoundDeviceCapture:
    """Delivers fixed-size float32 mono windows from the default microphone.

    ``on_window`` runs on the PortAudio callback thread, once per window.
    """

    def __init__(self, sample_rate: int = 16000, window_size: int = 4096) -> None:
        self.sample_rate = sample_rate
        self.window_size = window_size
        self._stream: Any = None
        self._running = False
        self._lock = threading.Lock()
        self._on_window: Optional[Callable[[Any], None]] = None
        self.windows_captured = 0

    def start(self, on_window: Callable[[Any], None]) -> None:
        with self._lock:
            if self._running:
                return
            if sd is None or np is None:
                raise CaptureUnavailableError(DEVICE_UNAVAILABLE, "sounddevice is not installed")
            self._on_window = on_window
            try:
                sd.query_devices(kind="input")
                stream = sd.InputStream(
                    samplerate=self.sample_rate,
                    channels=1,
                    dtype="float32",
                    blocksize=self.window_size,
                    callback=self._on_audio,
                )
                self._running = True
                stream.start()
            except Exception as exc:
                self._running = False
                self._on_window = None
                raise CaptureUnavailableError(_capture_error_code(exc), str(exc)) from exc
            self._stream = stream
            self.windows_captured = 0
        logger.info("microphone capture started at %d Hz", self.sample_rate)

    def stop(self) -> None:
        with self._lock:
            if not self._running:
                return
            self._running = False
            self._on_window = None
            stream = self._stream
            self._stream = None
        if stream is not None:
            stream.stop()
            stream.close()
        logger.info("microphone capture stopped after %d window(s)", self.windows_captured)

    def _on_audio(self, indata: Any, frames: int, time_info: Any, status: Any) -> None:
        callback = self._on_window
        if not self._running or callback is None:
            return
        if status:
            logger.debug("capture status: %s", status)
        samples = np.asarray(indata, dtype=np.float32)
        if samples.ndim > 1:
            samples = samples[:, 0]
        self.windows_captured += 1
        callback(samples.copy())


def _capture_error_code(exc: BaseException) -> str:
    low = str(exc).lower()
    if "permission" in low or "denied" in low or "not authorized" in low:
        return PERMISSION_DENIED
    return DEVICE_UNAVAILABLE
