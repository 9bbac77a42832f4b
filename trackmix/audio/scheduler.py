from __future__ import annotations

import logging
from dataclasses import dataclass

from trackmix.audio.store import SampleStore
from trackmix.model.types import Clip, Track
from trackmix.util.derived import audible_track_ids

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScheduledStart:
    """A source-start command: play buffer[offset : offset + duration] at `when`.

    `when` is on the engine clock; offset/duration are buffer seconds.
    """

    clip_id: str
    track_id: str
    buffer_id: str
    when: float
    offset: float
    duration: float
    playback_rate: float = 1.0


def clip_window(clip: Clip, buffer_duration: float) -> tuple[float, float]:
    """Clamp a clip's (offset, duration) into its buffer."""
    offset = max(0.0, clip.offset)
    duration = min(max(0.0, clip.duration), buffer_duration - offset)
    return offset, duration


def schedule_clips(
    clips: list[Clip],
    tracks: list[Track],
    store: SampleStore,
    *,
    at: float,
    now: float,
) -> list[ScheduledStart]:
    """Turn a timeline position into start commands for every clip still ahead.

    Clips that start at or after `at` are delayed by their distance from it.
    Clips straddling `at` start immediately, reading from the point reached.
    Clips entirely before `at`, on silent tracks, or with a missing buffer or
    track are skipped.
    """

    at = float(at)
    now = float(now)
    by_id = {t.id: t for t in tracks}
    audible = audible_track_ids(tracks)

    out: list[ScheduledStart] = []
    for clip in clips:
        track = by_id.get(clip.track_id)
        if track is None:
            logger.debug("clip %s: unknown track %s; skipped", clip.id, clip.track_id)
            continue
        if track.id not in audible:
            continue
        buffer = store.get(clip.buffer_id)
        if buffer is None:
            logger.debug("clip %s: missing buffer %s; skipped", clip.id, clip.buffer_id)
            continue

        rate = track.playback_rate
        offset, duration = clip_window(clip, buffer.duration)

        if clip.start_time >= at:
            when = now + (clip.start_time - at)
        elif clip.start_time + duration / rate > at:
            elapsed = (at - clip.start_time) * rate
            when = now
            offset += elapsed
            duration -= elapsed
        else:
            continue

        if duration <= 0 or offset >= buffer.duration:
            continue

        out.append(
            ScheduledStart(
                clip_id=clip.id,
                track_id=track.id,
                buffer_id=clip.buffer_id,
                when=when,
                offset=offset,
                duration=duration,
                playback_rate=rate,
            )
        )
    return out
