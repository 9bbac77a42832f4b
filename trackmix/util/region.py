from __future__ import annotations

from dataclasses import replace

from trackmix.model.types import Clip, Track
from trackmix.util.derived import clip_end_time


def split_clip(clip: Clip, track: Track | None, at: float, new_id: str) -> tuple[Clip, Clip] | None:
    """Split a clip at timeline position `at`.

    Returns (left, right) where right starts at `at` and reads on from where
    left stops, or None when `at` is not strictly inside the clip.
    """

    at = float(at)
    if not (clip.start_time < at < clip_end_time(clip, track)):
        return None

    rate = track.playback_rate if track is not None else 1.0
    left_duration = (at - clip.start_time) * rate

    left = replace(clip, duration=left_duration)
    right = replace(
        clip,
        id=str(new_id),
        start_time=at,
        offset=clip.offset + left_duration,
        duration=clip.duration - left_duration,
    )
    return left, right
