from __future__ import annotations

import numpy as np

from trackmix.audio.offline import render_offline
from trackmix.audio.store import SampleBuffer, SampleStore
from trackmix.audio.wav import encode_wav
from trackmix.model.types import Clip, EffectSettings, Track

SR = 8000


def _store() -> SampleStore:
    store = SampleStore()
    rng = np.random.default_rng(7)
    store.put("noise", SampleBuffer(samples=rng.uniform(-0.5, 0.5, size=(SR, 2)), sample_rate=SR))
    store.put("dc", SampleBuffer(samples=np.full((2 * SR, 1), 0.5, dtype=np.float32), sample_rate=SR))
    return store


def test_render_is_deterministic() -> None:
    store = _store()
    tracks = [
        Track(id="a", volume=0.9, effects=EffectSettings(eq_low=6, eq_high=-4, delay_time=0.25, delay_feedback=0.6, delay_mix=0.4)),
        Track(id="b", volume=0.5, playback_rate=1.5),
    ]
    clips = [
        Clip(id="c1", buffer_id="noise", track_id="a", start_time=0.1, duration=1.0),
        Clip(id="c2", buffer_id="dc", track_id="b", start_time=0.7, offset=0.3, duration=1.2),
    ]

    first = render_offline(clips, tracks, store, 3.0, sample_rate=SR)
    second = render_offline(clips, tracks, store, 3.0, sample_rate=SR, block_size=333)
    assert first.shape == (3 * SR, 2)
    assert first.dtype == np.float32
    assert np.array_equal(first, render_offline(clips, tracks, store, 3.0, sample_rate=SR))
    assert encode_wav(first, SR) == encode_wav(render_offline(clips, tracks, store, 3.0, sample_rate=SR), SR)
    # Block size only affects float rounding inside the filters.
    assert np.allclose(first, second, atol=1e-6)


def test_empty_timeline_renders_silence() -> None:
    out = render_offline([], [], SampleStore(), 5.0)
    assert out.shape == (220500, 2)
    assert not np.any(out)


def test_clip_lands_at_its_start_time() -> None:
    store = _store()
    tracks = [Track(id="t", volume=1.0)]
    clips = [Clip(id="c", buffer_id="dc", track_id="t", start_time=0.5, duration=1.0)]

    out = render_offline(clips, tracks, store, 2.0, sample_rate=SR)
    start = SR // 2
    assert not np.any(out[:start])
    assert np.allclose(out[start + 10 : start + SR - 10], 0.5, atol=1e-6)
    assert float(np.max(np.abs(out[start + SR + 10 :]))) < 1e-6


def test_playback_rate_shortens_clip() -> None:
    store = _store()
    tracks = [Track(id="t", volume=1.0, playback_rate=2.0)]
    clips = [Clip(id="c", buffer_id="dc", track_id="t", start_time=0.0, duration=2.0)]

    out = render_offline(clips, tracks, store, 2.0, sample_rate=SR)
    assert np.allclose(out[10 : SR - 10], 0.5, atol=1e-6)
    assert float(np.max(np.abs(out[SR + 10 :]))) < 1e-6


def test_clips_past_end_and_muted_tracks_are_silent() -> None:
    store = _store()
    tracks = [Track(id="on"), Track(id="off", muted=True)]
    clips = [
        Clip(id="late", buffer_id="dc", track_id="on", start_time=5.0, duration=1.0),
        Clip(id="muted", buffer_id="dc", track_id="off", start_time=0.0, duration=1.0),
        Clip(id="missing", buffer_id="nope", track_id="on", start_time=0.0, duration=1.0),
    ]
    out = render_offline(clips, tracks, store, 5.0, sample_rate=SR)
    assert out.shape == (5 * SR, 2)
    assert not np.any(out)


def test_solo_excludes_other_tracks() -> None:
    store = _store()
    clips = [
        Clip(id="x", buffer_id="dc", track_id="x", start_time=0.0, duration=1.0),
        Clip(id="y", buffer_id="dc", track_id="y", start_time=0.0, duration=1.0),
    ]
    solo = render_offline(clips, [Track(id="x", volume=1.0, soloed=True), Track(id="y", volume=1.0)], store, 1.0, sample_rate=SR)
    both = render_offline(clips, [Track(id="x", volume=1.0), Track(id="y", volume=1.0)], store, 1.0, sample_rate=SR)
    assert np.allclose(solo[100:-100], 0.5, atol=1e-6)
    assert np.allclose(both[100:-100], 1.0, atol=1e-6)
