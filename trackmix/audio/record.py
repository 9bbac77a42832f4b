from __future__ import annotations

import logging
import threading
from typing import Any, Callable

import numpy as np

from trackmix.audio.store import SampleBuffer
from trackmix.errors import RecordingError

logger = logging.getLogger(__name__)


def _sounddevice_input(**kwargs: Any) -> Any:
    import sounddevice as sd

    return sd.InputStream(**kwargs)


class Recorder:
    """Captures an input device into a SampleBuffer.

    start() either opens the stream or raises RecordingError with nothing
    captured; stop() returns everything captured since start().
    """

    def __init__(
        self,
        *,
        sample_rate: int = 44100,
        channels: int = 1,
        device: int | str | None = None,
        stream_factory: Callable[..., Any] | None = None,
    ) -> None:
        self.sample_rate = int(sample_rate)
        self.channels = max(1, int(channels))
        self.device = device
        self._factory = stream_factory or _sounddevice_input
        self._stream: Any = None
        self._chunks: list[np.ndarray] = []
        self._lock = threading.Lock()

    @property
    def recording(self) -> bool:
        return self._stream is not None

    def _callback(self, indata: Any, frames: int, time_info: Any, status: Any) -> None:
        if status:
            logger.debug("input stream status: %s", status)
        with self._lock:
            self._chunks.append(np.array(indata, dtype=np.float32, copy=True))

    def start(self) -> None:
        if self._stream is not None:
            raise RecordingError("already recording")
        with self._lock:
            self._chunks = []
        stream = None
        try:
            stream = self._factory(
                samplerate=self.sample_rate,
                channels=self.channels,
                dtype="float32",
                device=self.device,
                callback=self._callback,
            )
            stream.start()
        except Exception as e:
            if stream is not None:
                stream.close()
            raise RecordingError(f"could not open input device ({e})") from e
        self._stream = stream
        logger.info("recording started (%d Hz, %d ch)", self.sample_rate, self.channels)

    def stop(self) -> SampleBuffer:
        stream, self._stream = self._stream, None
        if stream is None:
            raise RecordingError("not recording")
        stream.stop()
        stream.close()

        with self._lock:
            chunks, self._chunks = self._chunks, []
        if chunks:
            samples = np.concatenate([c.reshape(len(c), -1) for c in chunks], axis=0)
        else:
            samples = np.zeros((0, self.channels), dtype=np.float32)
        buf = SampleBuffer(samples=samples, sample_rate=self.sample_rate)
        logger.info("recording stopped: %.2fs captured", buf.duration)
        return buf
