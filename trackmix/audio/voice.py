from __future__ import annotations

import math
import threading

import numpy as np

from trackmix.audio.store import SampleBuffer


class Voice:
    """One scheduled, sounding instance of a slice of a buffer.

    Positions are in output frames on the bus clock. The voice reads
    [offset, offset + duration) of the buffer (seconds, buffer time) at
    playback_rate; buffers at a different sample rate are read through the
    same linear interpolation path.

    finished is set when the voice has played to its end or was stopped.
    """

    def __init__(
        self,
        buffer: SampleBuffer,
        *,
        track_id: str,
        start_frame: int,
        offset: float,
        duration: float,
        output_rate: int,
        playback_rate: float = 1.0,
        clip_id: str | None = None,
    ) -> None:
        self.track_id = str(track_id)
        self.clip_id = clip_id
        self.start_frame = int(start_frame)
        self.finished = threading.Event()
        self._stopped = False
        self._rendered = False

        self._data = buffer.as_stereo()
        sr = float(buffer.sample_rate)
        self._step = float(playback_rate) * sr / float(output_rate)
        self._pos0 = max(0.0, float(offset)) * sr
        end = min((float(offset) + max(0.0, float(duration))) * sr, float(buffer.frames))
        span = max(0.0, end - self._pos0)
        self.length_frames = int(math.ceil(span / self._step)) if span > 0 else 0
        self.end_frame = self.start_frame + self.length_frames
        if self.length_frames == 0:
            self.finished.set()

    @property
    def stopped(self) -> bool:
        return self._stopped

    @property
    def done(self) -> bool:
        return self.finished.is_set()

    def stop(self) -> None:
        """Halt the voice. Stopping a finished voice is a no-op."""
        self._stopped = True
        self.finished.set()

    def wait(self, timeout: float | None = None) -> bool:
        return self.finished.wait(timeout)

    def render(self, block_start: int, n: int) -> np.ndarray | None:
        """Return this voice's (n, 2) contribution to a block, or None if silent."""
        if self._stopped:
            return None
        if not self._rendered:
            self._rendered = True
            if block_start > self.start_frame:
                # Added while that block was already being mixed: start whole, one block late.
                self.end_frame += block_start - self.start_frame
                self.start_frame = block_start
        block_end = block_start + n
        if block_start >= self.end_frame:
            self.finished.set()
            return None
        i0 = max(self.start_frame, block_start)
        i1 = min(self.end_frame, block_end)
        if i1 <= i0:
            return None

        out = np.zeros((n, 2), dtype=np.float64)
        rel = np.arange(i0, i1) - self.start_frame
        pos = self._pos0 + rel * self._step
        if self._step == 1.0 and self._pos0.is_integer():
            a = int(self._pos0) + int(rel[0])
            seg = self._data[a : a + len(rel)]
            out[i0 - block_start : i0 - block_start + len(seg)] = seg
        else:
            # Only the frames this block touches; the last frame holds past the end.
            last = len(self._data) - 1
            base = np.floor(pos).astype(np.int64)
            frac = (pos - base)[:, None]
            lo = int(base[0])
            hi = min(last, int(base[-1]) + 1)
            win = self._data[lo : hi + 1]
            i = np.minimum(base - lo, hi - lo)
            j = np.minimum(i + 1, hi - lo)
            out[i0 - block_start : i1 - block_start] = win[i] * (1.0 - frac) + win[j] * frac

        if block_end >= self.end_frame:
            self.finished.set()
        return out
