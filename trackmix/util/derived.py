from __future__ import annotations

from trackmix.model.types import Clip, Track


def audible_track_ids(tracks: list[Track]) -> set[str]:
    """Track ids that should sound: soloed tracks if any are soloed, never muted ones."""
    soloed = {t.id for t in tracks if t.soloed and not t.muted}
    if soloed:
        return soloed
    return {t.id for t in tracks if not t.muted}


def clip_end_time(clip: Clip, track: Track | None = None) -> float:
    """Timeline end of a clip; duration is buffer time, scaled by the track rate."""
    rate = track.playback_rate if track is not None else 1.0
    return clip.start_time + clip.duration / rate


def project_end_time(clips: list[Clip], tracks: list[Track]) -> float:
    by_id = {t.id: t for t in tracks}
    end = 0.0
    for c in clips:
        end = max(end, clip_end_time(c, by_id.get(c.track_id)))
    return float(end)
