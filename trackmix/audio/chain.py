from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from trackmix.audio.dsp import FeedbackDelay, LinearRamp, ThreeBandEQ
from trackmix.model.types import Track
from trackmix.util.limits import (
    DELAY_FEEDBACK_MAX,
    DELAY_MIX_MAX,
    DELAY_MIX_MIN,
    DELAY_TIME_MAX,
    DELAY_TIME_MIN,
    EQ_GAIN_DB_MAX,
    EQ_GAIN_DB_MIN,
    VOLUME_MAX,
    VOLUME_MIN,
)
from trackmix.util.validate import clamp


@dataclass(frozen=True)
class ChainParams:
    """One consistent set of chain parameters.

    Chains hold a single reference to a ChainParams and the render path reads
    it once per block; swapping the reference is the only way to update.
    """

    volume: float = 0.8
    eq_low: float = 0.0
    eq_mid: float = 0.0
    eq_high: float = 0.0
    delay_time: float = 0.2
    delay_feedback: float = 0.0
    delay_mix: float = 0.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "volume", clamp(self.volume, VOLUME_MIN, VOLUME_MAX))
        object.__setattr__(self, "eq_low", clamp(self.eq_low, EQ_GAIN_DB_MIN, EQ_GAIN_DB_MAX))
        object.__setattr__(self, "eq_mid", clamp(self.eq_mid, EQ_GAIN_DB_MIN, EQ_GAIN_DB_MAX))
        object.__setattr__(self, "eq_high", clamp(self.eq_high, EQ_GAIN_DB_MIN, EQ_GAIN_DB_MAX))
        object.__setattr__(self, "delay_time", clamp(self.delay_time, DELAY_TIME_MIN, DELAY_TIME_MAX))
        # Enforced here too: the loop is only stable below unity gain.
        object.__setattr__(self, "delay_feedback", clamp(self.delay_feedback, 0.0, DELAY_FEEDBACK_MAX))
        object.__setattr__(self, "delay_mix", clamp(self.delay_mix, DELAY_MIX_MIN, DELAY_MIX_MAX))

    @staticmethod
    def from_track(track: Track) -> "ChainParams":
        fx = track.effects
        return ChainParams(
            volume=0.0 if track.muted else track.volume,
            eq_low=fx.eq_low,
            eq_mid=fx.eq_mid,
            eq_high=fx.eq_high,
            delay_time=fx.delay_time,
            delay_feedback=fx.delay_feedback,
            delay_mix=fx.delay_mix,
        )


class TrackChain:
    """Fixed per-track graph.

        input -> EQ -> volume -> out
                  \\-> delay <-> feedback
                        \\-> wet -> volume

    ramp_seconds=None builds a static chain (offline render): every parameter
    takes effect on the next block with no smoothing.
    """

    def __init__(
        self,
        sample_rate: int,
        *,
        params: ChainParams | None = None,
        ramp_seconds: float | None = 0.05,
        channels: int = 2,
    ) -> None:
        if int(sample_rate) <= 0:
            raise ValueError(f"chain needs a running audio context (sample_rate={sample_rate})")
        self.sample_rate = int(sample_rate)
        self.channels = int(channels)
        self.static = ramp_seconds is None
        p = params or ChainParams()
        self._params = p

        ramp_frames = 0 if ramp_seconds is None else int(round(ramp_seconds * self.sample_rate))
        self.eq = ThreeBandEQ(
            self.sample_rate,
            channels=self.channels,
            gains_db=(p.eq_low, p.eq_mid, p.eq_high),
            smoothing_seconds=None if self.static else 0.02,
        )
        self.delay = FeedbackDelay(
            self.sample_rate,
            channels=self.channels,
            delay_seconds=p.delay_time,
            crossfade=not self.static,
        )
        self._volume = LinearRamp(p.volume, ramp_frames=ramp_frames)
        self._feedback = LinearRamp(p.delay_feedback, ramp_frames=ramp_frames)
        self._wet = LinearRamp(p.delay_mix, ramp_frames=ramp_frames)

    @property
    def params(self) -> ChainParams:
        return self._params

    def set_params(self, params: ChainParams) -> None:
        self._params = params

    def process(self, x: np.ndarray) -> np.ndarray:
        """Run one block (frames, channels) through the chain."""
        p = self._params
        n = len(x)
        eq_out = self.eq.process(x, (p.eq_low, p.eq_mid, p.eq_high))
        fb = self._feedback.next_block(p.delay_feedback, n)
        wet_gain = self._wet.next_block(p.delay_mix, n)
        delayed = self.delay.process(eq_out, p.delay_time, fb)
        vol = self._volume.next_block(p.volume, n)
        return (eq_out + delayed * wet_gain[:, None]) * vol[:, None]
