from __future__ import annotations

import pytest

from trackmix.audio.scheduler import schedule_clips
from trackmix.audio.store import SampleBuffer, SampleStore
from trackmix.model.types import Clip, Track


def _store(seconds: float = 2.0) -> SampleStore:
    store = SampleStore()
    store.put("b", SampleBuffer.silence(seconds, 8000))
    return store


def test_future_clip_is_delayed_by_distance_from_seek() -> None:
    store = _store()
    clips = [Clip(id="c", buffer_id="b", track_id="t", start_time=3.0, duration=2.0)]
    tracks = [Track(id="t")]

    (s,) = schedule_clips(clips, tracks, store, at=1.0, now=10.0)
    assert s.when == pytest.approx(12.0)
    assert s.offset == 0.0
    assert s.duration == pytest.approx(2.0)


def test_repeated_seeks_do_not_drift() -> None:
    store = _store()
    clips = [Clip(id="c", buffer_id="b", track_id="t", start_time=4.0, duration=2.0)]
    tracks = [Track(id="t")]

    now = 0.0
    for at in (0.3, 1.7, 0.9, 3.99):
        now += 0.37
        (s,) = schedule_clips(clips, tracks, store, at=at, now=now)
        assert s.when - now == pytest.approx(4.0 - at)


def test_straddling_clip_reads_from_elapsed_point() -> None:
    store = _store()
    clips = [Clip(id="c", buffer_id="b", track_id="t", start_time=1.0, offset=0.5, duration=1.5)]
    tracks = [Track(id="t")]

    (s,) = schedule_clips(clips, tracks, store, at=1.5, now=7.0)
    assert s.when == 7.0
    assert s.offset == pytest.approx(1.0)
    assert s.duration == pytest.approx(1.0)


def test_straddle_scales_elapsed_by_playback_rate() -> None:
    store = _store()
    clips = [Clip(id="c", buffer_id="b", track_id="t", start_time=0.0, duration=2.0)]
    tracks = [Track(id="t", playback_rate=2.0)]

    (s,) = schedule_clips(clips, tracks, store, at=0.5, now=0.0)
    assert s.offset == pytest.approx(1.0)
    assert s.duration == pytest.approx(1.0)
    assert s.playback_rate == 2.0

    # Ends at 1.0 on the timeline, so a seek there finds nothing left.
    assert schedule_clips(clips, tracks, store, at=1.0, now=0.0) == []


def test_past_clip_is_skipped() -> None:
    store = _store()
    clips = [Clip(id="c", buffer_id="b", track_id="t", start_time=0.0, duration=1.0)]
    assert schedule_clips(clips, [Track(id="t")], store, at=2.0, now=0.0) == []


def test_window_is_clamped_to_buffer() -> None:
    store = _store(2.0)
    clips = [
        Clip(id="long", buffer_id="b", track_id="t", start_time=0.0, offset=1.5, duration=5.0),
        Clip(id="beyond", buffer_id="b", track_id="t", start_time=0.0, offset=2.5, duration=1.0),
    ]

    starts = schedule_clips(clips, [Track(id="t")], store, at=0.0, now=0.0)
    assert [s.clip_id for s in starts] == ["long"]
    assert starts[0].duration == pytest.approx(0.5)


def test_missing_buffer_and_track_are_skipped() -> None:
    store = _store()
    clips = [
        Clip(id="no-buf", buffer_id="missing", track_id="t", duration=1.0),
        Clip(id="no-track", buffer_id="b", track_id="gone", duration=1.0),
        Clip(id="ok", buffer_id="b", track_id="t", duration=1.0),
    ]
    starts = schedule_clips(clips, [Track(id="t")], store, at=0.0, now=0.0)
    assert [s.clip_id for s in starts] == ["ok"]


def test_mute_and_solo() -> None:
    store = _store()
    clips = [
        Clip(id="a", buffer_id="b", track_id="ta", duration=1.0),
        Clip(id="b", buffer_id="b", track_id="tb", duration=1.0),
        Clip(id="c", buffer_id="b", track_id="tc", duration=1.0),
    ]

    tracks = [Track(id="ta", muted=True), Track(id="tb"), Track(id="tc")]
    assert {s.clip_id for s in schedule_clips(clips, tracks, store, at=0.0, now=0.0)} == {"b", "c"}

    tracks = [Track(id="ta"), Track(id="tb", soloed=True), Track(id="tc")]
    assert {s.clip_id for s in schedule_clips(clips, tracks, store, at=0.0, now=0.0)} == {"b"}
