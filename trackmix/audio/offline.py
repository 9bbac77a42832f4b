from __future__ import annotations

import math

import numpy as np

from trackmix.audio.bus import MixBus
from trackmix.audio.scheduler import schedule_clips
from trackmix.audio.store import SampleStore
from trackmix.audio.voice import Voice
from trackmix.model.types import Clip, Track


def render_offline(
    clips: list[Clip],
    tracks: list[Track],
    store: SampleStore,
    total_duration: float,
    *,
    sample_rate: int = 44100,
    block_size: int = 1024,
) -> np.ndarray:
    """Render the whole timeline to a float32 (frames, 2) array.

    Builds a private bus with static chain parameters, schedules every audible
    clip at its absolute start time, and renders block by block. Nothing here
    reads a wall clock, so identical inputs give identical output.
    """

    sr = int(sample_rate)
    if sr <= 0:
        raise ValueError(f"sample_rate must be > 0: {sample_rate}")
    frames = int(math.ceil(max(0.0, float(total_duration)) * sr))
    out = np.zeros((frames, 2), dtype=np.float32)
    if frames == 0:
        return out

    bus = MixBus(sr, ramp_seconds=None)
    for t in tracks:
        bus.update_track(t)

    for s in schedule_clips(clips, tracks, store, at=0.0, now=0.0):
        start_frame = int(round(s.when * sr))
        if start_frame >= frames:
            continue
        buffer = store.get(s.buffer_id)
        if buffer is None:
            continue
        bus.add_voice(
            Voice(
                buffer,
                track_id=s.track_id,
                start_frame=start_frame,
                offset=s.offset,
                duration=s.duration,
                output_rate=sr,
                playback_rate=s.playback_rate,
                clip_id=s.clip_id,
            )
        )

    block = max(1, int(block_size))
    pos = 0
    while pos < frames:
        n = min(block, frames - pos)
        out[pos : pos + n] = bus.render(n)
        pos += n
    return out
