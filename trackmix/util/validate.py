from __future__ import annotations

import logging
from typing import Any

from trackmix.errors import ProjectFormatError
from trackmix.model.types import Clip, Track
from trackmix.util.limits import MAX_CLIPS, MAX_TRACKS

logger = logging.getLogger(__name__)


def clamp(v: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, float(v)))


CURRENT_PROJECT_VERSION = 1


def check_project_version(d: dict[str, Any]) -> int:
    """Return the document version, or raise if it is not one we can read.

    Older exports wrote the version as a string ("1", "1.0").
    """

    raw = d.get("version")
    if raw is None:
        raise ProjectFormatError("project document has no version")
    try:
        v = float(raw)
    except (TypeError, ValueError) as e:
        raise ProjectFormatError(f"unreadable project version: {raw!r}") from e
    if v != CURRENT_PROJECT_VERSION:
        raise ProjectFormatError(f"unsupported project version: {raw!r}")
    return CURRENT_PROJECT_VERSION


def validate_document(tracks: list[Track], clips: list[Clip]) -> tuple[list[Track], list[Clip]]:
    """Best-effort cleanup of loaded tracks and clips.

    Field values are already clamped by the model constructors; this enforces
    the document-level rules: unique ids, count limits, and clips that point
    at an existing track.
    """

    seen: set[str] = set()
    kept_tracks: list[Track] = []
    for t in tracks:
        if t.id in seen:
            logger.warning("duplicate track id %s dropped", t.id)
            continue
        seen.add(t.id)
        kept_tracks.append(t)
    if len(kept_tracks) > MAX_TRACKS:
        logger.warning("project has %d tracks; keeping %d", len(kept_tracks), MAX_TRACKS)
        kept_tracks = kept_tracks[:MAX_TRACKS]

    track_ids = {t.id for t in kept_tracks}
    clip_ids: set[str] = set()
    kept_clips: list[Clip] = []
    for c in clips:
        if c.id in clip_ids:
            logger.warning("duplicate clip id %s dropped", c.id)
            continue
        if c.track_id not in track_ids:
            logger.warning("clip %s references unknown track %s; dropped", c.id, c.track_id)
            continue
        clip_ids.add(c.id)
        kept_clips.append(c)
    if len(kept_clips) > MAX_CLIPS:
        logger.warning("project has %d clips; keeping %d", len(kept_clips), MAX_CLIPS)
        kept_clips = kept_clips[:MAX_CLIPS]

    return kept_tracks, kept_clips
