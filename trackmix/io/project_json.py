from __future__ import annotations

import base64
import binascii
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from trackmix.audio.store import SampleStore
from trackmix.audio.wav import encode_wav
from trackmix.errors import ProjectFormatError
from trackmix.model.types import Clip, Track
from trackmix.util.validate import CURRENT_PROJECT_VERSION, check_project_version, clamp, validate_document

logger = logging.getLogger(__name__)

DEFAULT_ZOOM = 50.0  # pixels per second


@dataclass
class ProjectDocument:
    """A saved project: timeline state plus the encoded audio it references.

    assets maps buffer id -> encoded audio bytes (WAV when written by us).
    """

    name: str = "untitled"
    tracks: list[Track] = field(default_factory=list)
    clips: list[Clip] = field(default_factory=list)
    zoom: float = DEFAULT_ZOOM
    assets: dict[str, bytes] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": CURRENT_PROJECT_VERSION,
            "name": self.name,
            "state": {
                "tracks": [t.to_dict() for t in self.tracks],
                "clips": [c.to_dict() for c in self.clips],
                "zoom": self.zoom,
            },
            "assets": {k: base64.b64encode(v).decode("ascii") for k, v in sorted(self.assets.items())},
        }


def decode_asset(value: str) -> bytes:
    """Base64 asset string -> bytes. Accepts data: URLs."""
    s = str(value).strip()
    if s.startswith("data:"):
        _, _, s = s.partition(",")
    return base64.b64decode(s, validate=True)


def _clip_buffer_id(c: dict[str, Any]) -> Any:
    return c.get("buffer_id") or c.get("bufferId") or c.get("id")


def _legacy_state(d: dict[str, Any]) -> tuple[dict[str, Any], dict[str, Any]]:
    # Early saves kept tracks/clips at the top level and inlined each clip's
    # audio as dataBase64, keyed by the clip id.
    clips = []
    assets: dict[str, Any] = {}
    for c in d.get("clips", []) or []:
        c = dict(c)
        data = c.pop("dataBase64", None)
        if data:
            assets[str(_clip_buffer_id(c))] = data
        clips.append(c)
    return {"tracks": d.get("tracks", []) or [], "clips": clips, "zoom": d.get("zoom")}, assets


def project_from_dict(d: dict[str, Any], *, name: str = "untitled") -> ProjectDocument:
    if not isinstance(d, dict):
        raise ProjectFormatError("project document must be a JSON object")
    check_project_version(d)

    if isinstance(d.get("state"), dict):
        state = d["state"]
        raw_assets = d.get("assets") or {}
    else:
        state, raw_assets = _legacy_state(d)
    if not isinstance(raw_assets, dict):
        raise ProjectFormatError("assets must be a mapping of buffer id -> base64 audio")

    try:
        tracks = [Track.from_dict(t) for t in state.get("tracks", []) or []]
        clips = [Clip.from_dict(c) for c in state.get("clips", []) or []]
    except (KeyError, TypeError, AttributeError) as e:
        raise ProjectFormatError(f"malformed track or clip entry: {e}") from e
    tracks, clips = validate_document(tracks, clips)

    assets: dict[str, bytes] = {}
    for buffer_id, value in raw_assets.items():
        try:
            assets[str(buffer_id)] = decode_asset(value)
        except (binascii.Error, ValueError):
            logger.warning("asset %s is not valid base64; dropped", buffer_id)

    zoom = state.get("zoom")
    try:
        zoom_f = clamp(float(zoom), 1.0, 10000.0) if zoom is not None else DEFAULT_ZOOM
    except (TypeError, ValueError):
        zoom_f = DEFAULT_ZOOM

    return ProjectDocument(
        name=str(d.get("name") or name),
        tracks=tracks,
        clips=clips,
        zoom=zoom_f,
        assets=assets,
    )


def load_project(path: str | Path) -> ProjectDocument:
    p = Path(path)
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ProjectFormatError(f"not a JSON document: {p} ({e})") from e
    return project_from_dict(data, name=p.stem)


def save_project(doc: ProjectDocument, path: str | Path) -> str:
    out_path = Path(path).expanduser()
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(json.dumps(doc.to_dict(), indent=2, sort_keys=True) + "\n", encoding="utf-8")
    return str(out_path)


def build_document(
    tracks: list[Track],
    clips: list[Clip],
    store: SampleStore,
    *,
    name: str = "untitled",
    zoom: float = DEFAULT_ZOOM,
) -> ProjectDocument:
    """Snapshot timeline state, encoding each referenced buffer once as WAV."""
    assets: dict[str, bytes] = {}
    for c in clips:
        if c.buffer_id in assets:
            continue
        buf = store.get(c.buffer_id)
        if buf is None:
            logger.warning("clip %s: buffer %s not loaded; saved without audio", c.id, c.buffer_id)
            continue
        assets[c.buffer_id] = encode_wav(buf.samples, buf.sample_rate)
    return ProjectDocument(name=name, tracks=list(tracks), clips=list(clips), zoom=float(zoom), assets=assets)
