from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any

from trackmix.util.limits import (
    DELAY_FEEDBACK_MAX,
    DELAY_MIX_MAX,
    DELAY_MIX_MIN,
    DELAY_TIME_MAX,
    DELAY_TIME_MIN,
    EQ_GAIN_DB_MAX,
    EQ_GAIN_DB_MIN,
    MAX_TIMELINE_SECONDS,
    PLAYBACK_RATE_MAX,
    PLAYBACK_RATE_MIN,
    VOLUME_MAX,
    VOLUME_MIN,
)


def _flt(x: Any, default: float) -> float:
    try:
        v = float(x)
    except (TypeError, ValueError):
        return float(default)
    if not math.isfinite(v):
        return float(default)
    return v


def _clampf(x: Any, lo: float, hi: float, default: float) -> float:
    return max(lo, min(hi, _flt(x, default)))


def _pick(d: dict[str, Any], *keys: str, default: Any = None) -> Any:
    # Documents written by older front ends use camelCase keys.
    for k in keys:
        if k in d and d[k] is not None:
            return d[k]
    return default


@dataclass
class EffectSettings:
    """Per-track effect parameters.

    EQ gains are in dB; delay time in seconds; feedback and mix are linear.
    Out-of-range values are clamped rather than rejected.
    """

    eq_low: float = 0.0
    eq_mid: float = 0.0
    eq_high: float = 0.0
    delay_time: float = 0.2
    delay_feedback: float = 0.0
    delay_mix: float = 0.0

    def __post_init__(self) -> None:
        self.eq_low = _clampf(self.eq_low, EQ_GAIN_DB_MIN, EQ_GAIN_DB_MAX, 0.0)
        self.eq_mid = _clampf(self.eq_mid, EQ_GAIN_DB_MIN, EQ_GAIN_DB_MAX, 0.0)
        self.eq_high = _clampf(self.eq_high, EQ_GAIN_DB_MIN, EQ_GAIN_DB_MAX, 0.0)
        self.delay_time = _clampf(self.delay_time, DELAY_TIME_MIN, DELAY_TIME_MAX, 0.2)
        self.delay_feedback = _clampf(self.delay_feedback, 0.0, DELAY_FEEDBACK_MAX, 0.0)
        self.delay_mix = _clampf(self.delay_mix, DELAY_MIX_MIN, DELAY_MIX_MAX, 0.0)

    def to_dict(self) -> dict[str, Any]:
        return {
            "eq_low": self.eq_low,
            "eq_mid": self.eq_mid,
            "eq_high": self.eq_high,
            "delay_time": self.delay_time,
            "delay_feedback": self.delay_feedback,
            "delay_mix": self.delay_mix,
        }

    @staticmethod
    def from_dict(d: dict[str, Any] | None) -> "EffectSettings":
        d = dict(d or {})
        # Early documents nest these as {"eq": {low, mid, high}, "echo": {amount, time, feedback}}.
        eq = d.get("eq") if isinstance(d.get("eq"), dict) else {}
        echo = d.get("echo") if isinstance(d.get("echo"), dict) else {}
        return EffectSettings(
            eq_low=_pick(d, "eq_low", "eqLow", default=eq.get("low", 0.0)),
            eq_mid=_pick(d, "eq_mid", "eqMid", default=eq.get("mid", 0.0)),
            eq_high=_pick(d, "eq_high", "eqHigh", default=eq.get("high", 0.0)),
            delay_time=_pick(d, "delay_time", "delayTime", default=echo.get("time", 0.2)),
            delay_feedback=_pick(d, "delay_feedback", "delayFeedback", default=echo.get("feedback", 0.0)),
            delay_mix=_pick(d, "delay_mix", "delayMix", default=echo.get("amount", 0.0)),
        )


@dataclass
class Clip:
    """A time-bounded reference into a decoded buffer, placed on a track.

    start_time is the timeline position (seconds). offset/duration are in
    buffer time and are independent of the track playback rate.
    """

    id: str
    buffer_id: str
    track_id: str
    start_time: float = 0.0
    offset: float = 0.0
    duration: float = 0.0
    name: str = ""
    color: str | None = None

    def __post_init__(self) -> None:
        self.id = str(self.id)
        self.buffer_id = str(self.buffer_id)
        self.track_id = str(self.track_id)
        self.start_time = _clampf(self.start_time, 0.0, MAX_TIMELINE_SECONDS, 0.0)
        self.offset = _clampf(self.offset, 0.0, MAX_TIMELINE_SECONDS, 0.0)
        self.duration = _clampf(self.duration, 0.0, MAX_TIMELINE_SECONDS, 0.0)
        self.name = str(self.name or "")

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "id": self.id,
            "buffer_id": self.buffer_id,
            "track_id": self.track_id,
            "start_time": self.start_time,
            "offset": self.offset,
            "duration": self.duration,
            "name": self.name,
        }
        if self.color:
            d["color"] = self.color
        return d

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "Clip":
        return Clip(
            id=str(d["id"]),
            # Some older documents keyed the asset by the clip id itself.
            buffer_id=str(_pick(d, "buffer_id", "bufferId", default=d["id"])),
            track_id=str(_pick(d, "track_id", "trackId", default="")),
            start_time=_pick(d, "start_time", "startTime", default=0.0),
            offset=_pick(d, "offset", default=0.0),
            duration=_pick(d, "duration", default=0.0),
            name=str(d.get("name", "") or ""),
            color=(str(d["color"]) if d.get("color") else None),
        )


@dataclass
class Track:
    id: str
    name: str = ""
    volume: float = 0.8  # linear gain
    muted: bool = False
    soloed: bool = False

    # Timeline seconds per buffer second; clips play faster/shorter above 1.0.
    playback_rate: float = 1.0

    color: str = ""
    effects: EffectSettings = field(default_factory=EffectSettings)

    def __post_init__(self) -> None:
        self.id = str(self.id)
        self.name = str(self.name or "")
        self.volume = _clampf(self.volume, VOLUME_MIN, VOLUME_MAX, 0.8)
        self.muted = bool(self.muted)
        self.soloed = bool(self.soloed)
        rate = _flt(self.playback_rate, 1.0)
        if rate <= 0:
            rate = 1.0
        self.playback_rate = max(PLAYBACK_RATE_MIN, min(PLAYBACK_RATE_MAX, rate))
        if isinstance(self.effects, dict):
            self.effects = EffectSettings.from_dict(self.effects)
        elif not isinstance(self.effects, EffectSettings):
            self.effects = EffectSettings()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "volume": self.volume,
            "muted": self.muted,
            "soloed": self.soloed,
            "playback_rate": self.playback_rate,
            "color": self.color,
            "effects": self.effects.to_dict(),
        }

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "Track":
        return Track(
            id=str(d["id"]),
            name=str(d.get("name", "") or ""),
            volume=_pick(d, "volume", default=0.8),
            muted=bool(_pick(d, "muted", "isMuted", default=False)),
            soloed=bool(_pick(d, "soloed", "isSolo", default=False)),
            playback_rate=_pick(d, "playback_rate", "playbackRate", default=1.0),
            color=str(d.get("color", "") or ""),
            effects=EffectSettings.from_dict(d.get("effects")),
        )
