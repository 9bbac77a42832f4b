from __future__ import annotations

import math

import numpy as np
from scipy.signal import sosfilt

from trackmix.util.limits import DELAY_FEEDBACK_MAX, DELAY_TIME_MAX


# -----------------------------
# Biquad design (RBJ cookbook, shelf slope S=1)
# -----------------------------


def _shelf_terms(f0: float, gain_db: float, sample_rate: int) -> tuple[float, float, float]:
    A = 10.0 ** (gain_db / 40.0)
    w0 = 2.0 * math.pi * f0 / float(sample_rate)
    # With S=1 the general alpha reduces to sin(w0)/2 * sqrt(2).
    alpha = math.sin(w0) / 2.0 * math.sqrt(2.0)
    return A, math.cos(w0), 2.0 * math.sqrt(A) * alpha


def lowshelf_sos(f0: float, gain_db: float, sample_rate: int) -> tuple[float, ...]:
    A, cos_w0, k = _shelf_terms(f0, gain_db, sample_rate)
    b0 = A * ((A + 1) - (A - 1) * cos_w0 + k)
    b1 = 2 * A * ((A - 1) - (A + 1) * cos_w0)
    b2 = A * ((A + 1) - (A - 1) * cos_w0 - k)
    a0 = (A + 1) + (A - 1) * cos_w0 + k
    a1 = -2 * ((A - 1) + (A + 1) * cos_w0)
    a2 = (A + 1) + (A - 1) * cos_w0 - k
    return (b0 / a0, b1 / a0, b2 / a0, 1.0, a1 / a0, a2 / a0)


def highshelf_sos(f0: float, gain_db: float, sample_rate: int) -> tuple[float, ...]:
    A, cos_w0, k = _shelf_terms(f0, gain_db, sample_rate)
    b0 = A * ((A + 1) + (A - 1) * cos_w0 + k)
    b1 = -2 * A * ((A - 1) + (A + 1) * cos_w0)
    b2 = A * ((A + 1) + (A - 1) * cos_w0 - k)
    a0 = (A + 1) - (A - 1) * cos_w0 + k
    a1 = 2 * ((A - 1) - (A + 1) * cos_w0)
    a2 = (A + 1) - (A - 1) * cos_w0 - k
    return (b0 / a0, b1 / a0, b2 / a0, 1.0, a1 / a0, a2 / a0)


def peaking_sos(f0: float, gain_db: float, q: float, sample_rate: int) -> tuple[float, ...]:
    A = 10.0 ** (gain_db / 40.0)
    w0 = 2.0 * math.pi * f0 / float(sample_rate)
    cos_w0 = math.cos(w0)
    alpha = math.sin(w0) / (2.0 * q)

    b0 = 1.0 + alpha * A
    b1 = -2.0 * cos_w0
    b2 = 1.0 - alpha * A
    a0 = 1.0 + alpha / A
    a1 = -2.0 * cos_w0
    a2 = 1.0 - alpha / A
    return (b0 / a0, b1 / a0, b2 / a0, 1.0, a1 / a0, a2 / a0)


# -----------------------------
# Parameter smoothing
# -----------------------------


class LinearRamp:
    """Per-sample linear ramp toward a target, restarted on every target change.

    Only the render thread calls next_block(); targets come from an immutable
    parameter snapshot so there is nothing to lock.
    """

    def __init__(self, value: float, *, ramp_frames: int) -> None:
        self.ramp_frames = max(0, int(ramp_frames))
        self._current = float(value)
        self._target = float(value)
        self._step = 0.0
        self._remaining = 0

    @property
    def value(self) -> float:
        return self._current

    def next_block(self, target: float, n: int) -> np.ndarray:
        target = float(target)
        if target != self._target:
            self._target = target
            if self.ramp_frames <= 0:
                self._current = target
                self._remaining = 0
            else:
                self._remaining = self.ramp_frames
                self._step = (target - self._current) / self.ramp_frames

        if self._remaining <= 0:
            return np.full(n, self._current)

        out = np.empty(n)
        k = min(n, self._remaining)
        out[:k] = self._current + self._step * np.arange(1, k + 1)
        self._remaining -= k
        if self._remaining == 0:
            out[k - 1] = self._target
            self._current = self._target
        else:
            self._current = float(out[k - 1])
        out[k:] = self._current
        return out


# -----------------------------
# 3-band EQ
# -----------------------------


class ThreeBandEQ:
    """lowshelf 320 Hz -> peaking 1 kHz (Q=1) -> highshelf 3.2 kHz.

    Filter state carries across blocks. Gain changes glide toward the target at
    block rate (time constant smoothing_seconds); None applies them at once.
    """

    LOW_HZ = 320.0
    MID_HZ = 1000.0
    MID_Q = 1.0
    HIGH_HZ = 3200.0

    def __init__(
        self,
        sample_rate: int,
        *,
        channels: int = 2,
        gains_db: tuple[float, float, float] = (0.0, 0.0, 0.0),
        smoothing_seconds: float | None = 0.02,
    ) -> None:
        self.sample_rate = int(sample_rate)
        self.smoothing_seconds = smoothing_seconds
        self._gains = np.array(gains_db, dtype=np.float64)
        self._sos = self._design(self._gains)
        self._zi = np.zeros((3, 2, int(channels)), dtype=np.float64)

    @property
    def gains_db(self) -> tuple[float, float, float]:
        return (float(self._gains[0]), float(self._gains[1]), float(self._gains[2]))

    def _design(self, gains: np.ndarray) -> np.ndarray:
        sr = self.sample_rate
        return np.array(
            [
                lowshelf_sos(self.LOW_HZ, float(gains[0]), sr),
                peaking_sos(self.MID_HZ, float(gains[1]), self.MID_Q, sr),
                highshelf_sos(self.HIGH_HZ, float(gains[2]), sr),
            ],
            dtype=np.float64,
        )

    def _advance(self, target: np.ndarray, n: int) -> None:
        if self.smoothing_seconds is None or self.smoothing_seconds <= 0:
            self._gains = target.copy()
        else:
            coef = 1.0 - math.exp(-n / (self.smoothing_seconds * self.sample_rate))
            self._gains = self._gains + (target - self._gains) * coef
            if np.max(np.abs(target - self._gains)) < 0.01:
                self._gains = target.copy()
        self._sos = self._design(self._gains)

    def process(self, x: np.ndarray, gains_db: tuple[float, float, float]) -> np.ndarray:
        if len(x) == 0:
            return x
        target = np.array(gains_db, dtype=np.float64)
        if not np.array_equal(target, self._gains):
            self._advance(target, len(x))
        y, self._zi = sosfilt(self._sos, x, axis=0, zi=self._zi)
        return y


# -----------------------------
# Feedback delay
# -----------------------------


class FeedbackDelay:
    """Delay line with its output fed back into its input.

    process() returns the delay output (the wet signal before the wet gain):
    an impulse comes back after delay_time, then again scaled by feedback at
    every multiple of delay_time.
    """

    def __init__(
        self,
        sample_rate: int,
        *,
        channels: int = 2,
        delay_seconds: float = 0.2,
        max_seconds: float = DELAY_TIME_MAX,
        crossfade: bool = True,
    ) -> None:
        self.sample_rate = int(sample_rate)
        self._max_frames = max(1, int(round(max_seconds * self.sample_rate)))
        self._size = self._max_frames + 1
        self._ring = np.zeros((self._size, int(channels)), dtype=np.float64)
        self._write = 0
        self._delay = self.frames_for(delay_seconds)
        self._crossfade = crossfade

    @property
    def delay_frames(self) -> int:
        return self._delay

    def frames_for(self, seconds: float) -> int:
        return int(min(self._max_frames, max(1, round(float(seconds) * self.sample_rate))))

    def reset(self) -> None:
        self._ring.fill(0.0)

    def process(self, x: np.ndarray, delay_seconds: float, feedback: float | np.ndarray) -> np.ndarray:
        n = len(x)
        out = np.empty_like(x, dtype=np.float64)
        if n == 0:
            return out

        fb = np.clip(np.broadcast_to(np.asarray(feedback, dtype=np.float64), (n,)), 0.0, DELAY_FEEDBACK_MAX)

        new_d = self.frames_for(delay_seconds)
        old_d = self._delay
        fade = None
        if new_d != old_d:
            if self._crossfade:
                fade = np.arange(1, n + 1, dtype=np.float64) / n
            else:
                old_d = new_d
            self._delay = new_d

        # Within a chunk no longer than the delay every tap was written by an
        # earlier chunk, so a whole chunk is read before it is written.
        chunk = min(old_d, new_d)
        pos = 0
        while pos < n:
            k = min(chunk, n - pos)
            idx = (self._write + np.arange(k)) % self._size
            tap = self._ring[(idx - new_d) % self._size]
            if fade is not None:
                old = self._ring[(idx - old_d) % self._size]
                f = fade[pos : pos + k, None]
                tap = old * (1.0 - f) + tap * f
            out[pos : pos + k] = tap
            self._ring[idx] = x[pos : pos + k] + fb[pos : pos + k, None] * tap
            self._write = (self._write + k) % self._size
            pos += k
        return out
