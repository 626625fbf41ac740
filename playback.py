"""Gapless playback scheduling and the sounddevice output device."""

from __future__ import annotations

import itertools
import logging
import threading
from typing import Any, Callable, Optional

import numpy as np

from audio_codec import PcmBuffer
from errors import DEVICE_UNAVAILABLE, CaptureUnavailableError
from interfaces import AudioOutput

try:
    import sounddevice as sd
except Exception:  # pragma: no cover
    sd = None  # type: ignore

logger = logging.getLogger(__name__)

_source_ids = itertools.count(1)


class PlaybackSource:
    """One scheduled buffer on the output clock."""

    def __init__(self, buffer: PcmBuffer, start_time: float) -> None:
        self.id = next(_source_ids)
        self.buffer = buffer
        self.start_time = start_time
        self.duration = buffer.duration
        self.stopped = False
        self.ended = False
        self._lock = threading.Lock()
        self._callbacks: list[Callable[["PlaybackSource"], None]] = []

    def add_done_callback(self, callback: Callable[["PlaybackSource"], None]) -> None:
        self._callbacks.append(callback)

    def stop(self) -> None:
        with self._lock:
            if self.stopped or self.ended:
                return
            self.stopped = True
        self._fire()

    def mark_ended(self) -> None:
        with self._lock:
            if self.stopped or self.ended:
                return
            self.ended = True
        self._fire()

    def _fire(self) -> None:
        for callback in list(self._callbacks):
            try:
                callback(self)
            except Exception:  # pragma: no cover
                logger.exception("playback source callback failed")

    def __repr__(self) -> str:
        return f"PlaybackSource(id={self.id}, start={self.start_time:.3f}, duration={self.duration:.3f})"


class PlaybackScheduler:
    """Schedules arriving buffers back to back on the output clock.

    Buffers play in enqueue order; each one starts exactly where the previous
    one ends, or at the current clock time when the queue has drained.
    ``interrupt()`` drops everything scheduled so far.
    """

    def __init__(self, output: AudioOutput) -> None:
        self._output = output
        self._lock = threading.RLock()
        self._next_start_time = 0.0
        self._active: set[PlaybackSource] = set()

    @property
    def next_start_time(self) -> float:
        return self._next_start_time

    @property
    def active_count(self) -> int:
        with self._lock:
            return len(self._active)

    def active_sources(self) -> list[PlaybackSource]:
        with self._lock:
            return sorted(self._active, key=lambda s: s.start_time)

    def enqueue(self, buffer: Any) -> Optional[PlaybackSource]:
        if not isinstance(buffer, PcmBuffer) or buffer.frames <= 0 or buffer.duration <= 0:
            logger.debug("ignoring empty or malformed playback buffer")
            return None

        with self._lock:
            now = self._output.current_time()
            self._next_start_time = max(self._next_start_time, now)
            source = PlaybackSource(buffer, self._next_start_time)
            self._next_start_time += source.duration
            self._active.add(source)
            source.add_done_callback(self._discard)
            try:
                self._output.play(source)
            except Exception as exc:
                logger.warning("output rejected playback source: %s", exc)
                self._active.discard(source)
                return None
        return source

    def interrupt(self) -> int:
        """Stop every scheduled source; returns how many were dropped."""
        with self._lock:
            sources = list(self._active)
            self._active.clear()
            self._next_start_time = 0.0
            for source in sources:
                self._output.stop_source(source)
                source.stop()
        if sources:
            logger.info("playback interrupted, dropped %d source(s)", len(sources))
        return len(sources)

    def _discard(self, source: PlaybackSource) -> None:
        with self._lock:
            self._active.discard(source)


class SoundDeviceOutput:
    """Float32 output stream whose rendered-frame counter is the output clock."""

    def __init__(self, sample_rate: int = 24000, channels: int = 1, blocksize: int = 1024) -> None:
        self.sample_rate = sample_rate
        self.channels = channels
        self.blocksize = blocksize
        self._stream: Any = None
        self._lock = threading.Lock()
        self._frames_rendered = 0
        self._sources: list[tuple[int, PlaybackSource]] = []

    def open(self) -> None:
        with self._lock:
            if self._stream is not None:
                return
            if sd is None:
                raise CaptureUnavailableError(DEVICE_UNAVAILABLE, "sounddevice is not installed")
            try:
                stream = sd.OutputStream(
                    samplerate=self.sample_rate,
                    channels=self.channels,
                    dtype="float32",
                    blocksize=self.blocksize,
                    callback=self._on_output,
                )
                stream.start()
            except Exception as exc:
                raise CaptureUnavailableError(DEVICE_UNAVAILABLE, f"output device: {exc}") from exc
            self._stream = stream
        logger.info("output stream opened at %d Hz", self.sample_rate)

    def close(self) -> None:
        with self._lock:
            stream = self._stream
            self._stream = None
            pending = [src for _, src in self._sources]
            self._sources = []
        if stream is not None:
            stream.stop()
            stream.close()
            logger.info("output stream closed")
        for src in pending:
            src.stop()

    def current_time(self) -> float:
        with self._lock:
            return self._frames_rendered / float(self.sample_rate)

    def play(self, source: PlaybackSource) -> None:
        if source.stopped:
            return
        start_frame = int(round(source.start_time * self.sample_rate))
        with self._lock:
            start_frame = max(start_frame, self._frames_rendered)
            self._sources.append((start_frame, source))

    def stop_source(self, source: PlaybackSource) -> None:
        with self._lock:
            self._sources = [(start, src) for start, src in self._sources if src is not source]

    def _on_output(self, outdata: Any, frames: int, time_info: Any, status: Any) -> None:
        outdata.fill(0)
        finished: list[PlaybackSource] = []
        with self._lock:
            block_start = self._frames_rendered
            block_end = block_start + frames
            keep: list[tuple[int, PlaybackSource]] = []
            for start, src in self._sources:
                data = src.buffer.channels_data
                end = start + data.shape[1]
                if start < block_end and end > block_start:
                    lo = max(start, block_start)
                    hi = min(end, block_end)
                    chunk = data[:, lo - start:hi - start].T
                    if chunk.shape[1] >= outdata.shape[1]:
                        outdata[lo - block_start:hi - block_start, :] += chunk[:, :outdata.shape[1]]
                    else:
                        outdata[lo - block_start:hi - block_start, :] += chunk[:, :1]
                if end <= block_end:
                    finished.append(src)
                else:
                    keep.append((start, src))
            self._sources = keep
            self._frames_rendered = block_end
        for src in finished:
            src.mark_ended()
