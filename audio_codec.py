"""PCM16 <-> base64 / float conversions for the live audio path.

``float_to_pcm16`` scales by 32768 without dithering. Samples at or beyond
full scale wrap around (1.0 becomes -32768) unless ``clip=True`` is passed;
the wraparound is the default behaviour of the capture path.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass

import numpy as np

from models import AudioFrame

BYTES_PER_SAMPLE = 2


@dataclass
class PcmBuffer:
    """Decoded audio, one float32 row per channel, normalized to [-1, 1)."""

    channels_data: np.ndarray
    sample_rate: int

    @property
    def channels(self) -> int:
        return int(self.channels_data.shape[0])

    @property
    def frames(self) -> int:
        return int(self.channels_data.shape[1])

    @property
    def duration(self) -> float:
        if self.sample_rate <= 0:
            return 0.0
        return self.frames / float(self.sample_rate)


def encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def decode(text: str) -> bytes:
    return base64.b64decode(text)


def float_to_pcm16(samples, clip: bool = False) -> np.ndarray:
    """Convert float samples in [-1, 1] to int16 by scaling with 32768."""
    scaled = np.asarray(samples, dtype=np.float64).reshape(-1) * 32768.0
    if clip:
        scaled = np.clip(scaled, -32768, 32767)
    # float -> int32 truncates toward zero; int32 -> int16 wraps modulo 2**16
    return np.trunc(scaled).astype(np.int32).astype(np.int16)


def pcm16_to_bytes(samples: np.ndarray) -> bytes:
    return np.asarray(samples, dtype="<i2").tobytes()


def pcm16_to_buffer(data: bytes, sample_rate: int, channels: int = 1) -> PcmBuffer:
    """De-interleave little-endian PCM16 into per-channel float arrays.

    A trailing partial frame is dropped.
    """
    channels = max(1, int(channels))
    frame_bytes = BYTES_PER_SAMPLE * channels
    usable = len(data) - (len(data) % frame_bytes)
    ints = np.frombuffer(data[:usable], dtype="<i2")
    frames = ints.size // channels
    interleaved = ints.reshape(frames, channels)
    channels_data = (interleaved.T.astype(np.float32) / 32768.0).copy()
    return PcmBuffer(channels_data=channels_data, sample_rate=sample_rate)


def to_frame(samples, sample_rate: int, sequence: int, clip: bool = False) -> AudioFrame:
    """Wrap one mono capture window as a PCM16 frame."""
    return AudioFrame(
        pcm16_bytes=pcm16_to_bytes(float_to_pcm16(samples, clip=clip)),
        sample_rate=sample_rate,
        channels=1,
        sequence=sequence,
    )
