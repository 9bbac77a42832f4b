from __future__ import annotations

import numpy as np
import pytest

from trackmix.audio.store import SampleBuffer, SampleStore


def test_buffer_is_immutable_copy() -> None:
    src = np.zeros((100, 2), dtype=np.float32)
    buf = SampleBuffer(samples=src, sample_rate=8000)

    src[:] = 1.0
    assert float(np.max(np.abs(buf.samples))) == 0.0
    assert buf.samples.flags.writeable is False
    with pytest.raises(ValueError):
        buf.samples[0, 0] = 1.0


def test_buffer_shape_and_duration() -> None:
    mono = SampleBuffer(samples=np.ones(4000, dtype=np.float32), sample_rate=8000)
    assert mono.channels == 1
    assert mono.frames == 4000
    assert mono.duration == pytest.approx(0.5)

    st = mono.as_stereo()
    assert st.shape == (4000, 2)
    assert np.array_equal(st[:, 0], st[:, 1])


def test_buffer_rejects_bad_rate() -> None:
    with pytest.raises(ValueError):
        SampleBuffer(samples=np.zeros((10, 2)), sample_rate=0)


def test_store_put_get_replace_remove() -> None:
    store = SampleStore()
    a = SampleBuffer.silence(1.0, 8000)
    b = SampleBuffer.silence(2.0, 8000)

    assert store.get("x") is None
    store.put("x", a)
    assert "x" in store
    assert store.get("x") is a

    store.put("x", b)
    assert store.get("x") is b
    assert len(store) == 1
    assert store.ids() == ["x"]

    assert store.remove("x") is True
    assert store.remove("x") is False
    assert store.get("x") is None


def test_store_rejects_raw_arrays() -> None:
    store = SampleStore()
    with pytest.raises(TypeError):
        store.put("x", np.zeros((10, 2)))  # type: ignore[arg-type]
