from __future__ import annotations

import threading
from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class SampleBuffer:
    """Immutable decoded PCM audio.

    samples is shaped (frames, channels), float32, and marked read-only.
    """

    samples: np.ndarray
    sample_rate: int

    def __post_init__(self) -> None:
        arr = np.asarray(self.samples, dtype=np.float32)
        if arr.ndim == 1:
            arr = arr[:, None]
        if arr.ndim != 2:
            raise ValueError("samples must be shaped (frames, channels)")
        if arr.shape[1] < 1:
            raise ValueError("samples must have at least one channel")
        if int(self.sample_rate) <= 0:
            raise ValueError(f"sample_rate must be > 0: {self.sample_rate}")
        # Never alias caller memory: a buffer must not change after decode.
        arr = np.array(arr, dtype=np.float32, copy=True)
        arr.flags.writeable = False
        object.__setattr__(self, "samples", arr)
        object.__setattr__(self, "sample_rate", int(self.sample_rate))

    @staticmethod
    def from_channels(channels: list[np.ndarray], sample_rate: int) -> "SampleBuffer":
        n = max((len(c) for c in channels), default=0)
        arr = np.zeros((n, max(1, len(channels))), dtype=np.float32)
        for i, c in enumerate(channels):
            arr[: len(c), i] = c
        return SampleBuffer(samples=arr, sample_rate=sample_rate)

    @staticmethod
    def silence(seconds: float, sample_rate: int, channels: int = 2) -> "SampleBuffer":
        n = max(0, int(round(seconds * sample_rate)))
        return SampleBuffer(samples=np.zeros((n, channels), dtype=np.float32), sample_rate=sample_rate)

    @property
    def channels(self) -> int:
        return int(self.samples.shape[1])

    @property
    def frames(self) -> int:
        return int(self.samples.shape[0])

    @property
    def duration(self) -> float:
        return self.frames / float(self.sample_rate)

    def as_stereo(self) -> np.ndarray:
        """Return a (frames, 2) view: mono is duplicated, extra channels dropped."""
        if self.channels == 2:
            return self.samples
        if self.channels == 1:
            return np.repeat(self.samples, 2, axis=1)
        return self.samples[:, :2]


class SampleStore:
    """Buffer id -> decoded buffer. Shared read-mostly; last writer wins."""

    def __init__(self) -> None:
        self._buffers: dict[str, SampleBuffer] = {}
        self._lock = threading.Lock()

    def put(self, buffer_id: str, buffer: SampleBuffer) -> None:
        if not isinstance(buffer, SampleBuffer):
            raise TypeError("buffer must be a SampleBuffer")
        with self._lock:
            self._buffers[str(buffer_id)] = buffer

    def get(self, buffer_id: str) -> SampleBuffer | None:
        with self._lock:
            return self._buffers.get(str(buffer_id))

    def remove(self, buffer_id: str) -> bool:
        with self._lock:
            return self._buffers.pop(str(buffer_id), None) is not None

    def ids(self) -> list[str]:
        with self._lock:
            return sorted(self._buffers)

    def __contains__(self, buffer_id: object) -> bool:
        with self._lock:
            return str(buffer_id) in self._buffers

    def __len__(self) -> int:
        with self._lock:
            return len(self._buffers)
