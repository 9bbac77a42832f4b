from __future__ import annotations

import numpy as np
import pytest

from trackmix.audio.chain import ChainParams, TrackChain
from trackmix.audio.dsp import FeedbackDelay, LinearRamp, ThreeBandEQ, highshelf_sos, lowshelf_sos, peaking_sos
from trackmix.model.types import EffectSettings, Track


def _dc_gain(sos: tuple[float, ...]) -> float:
    b0, b1, b2, _, a1, a2 = sos
    return (b0 + b1 + b2) / (1.0 + a1 + a2)


def _nyquist_gain(sos: tuple[float, ...]) -> float:
    b0, b1, b2, _, a1, a2 = sos
    return (b0 - b1 + b2) / (1.0 - a1 + a2)


def test_shelf_and_peak_gains() -> None:
    g = 10.0 ** (6.0 / 20.0)
    assert _dc_gain(lowshelf_sos(320.0, 6.0, 44100)) == pytest.approx(g)
    assert _nyquist_gain(lowshelf_sos(320.0, 6.0, 44100)) == pytest.approx(1.0, abs=1e-3)
    assert _nyquist_gain(highshelf_sos(3200.0, 6.0, 44100)) == pytest.approx(g)
    assert _dc_gain(highshelf_sos(3200.0, 6.0, 44100)) == pytest.approx(1.0)
    assert _dc_gain(peaking_sos(1000.0, 6.0, 1.0, 44100)) == pytest.approx(1.0)


def test_flat_eq_is_identity() -> None:
    rng = np.random.default_rng(0)
    x = rng.uniform(-1.0, 1.0, size=(2048, 2))
    eq = ThreeBandEQ(44100)
    y = eq.process(x, (0.0, 0.0, 0.0))
    assert np.allclose(y, x, atol=1e-9)


def test_delay_impulse_echoes() -> None:
    sr = 8000
    chain = TrackChain(
        sr,
        params=ChainParams(volume=1.0, delay_time=0.3, delay_feedback=0.5, delay_mix=0.5),
        ramp_seconds=None,
    )
    x = np.zeros((sr, 2))
    x[0] = 1.0
    y = chain.process(x)

    d = round(0.3 * sr)
    assert y[0, 0] == pytest.approx(1.0)
    assert y[d, 0] == pytest.approx(0.5)
    assert y[2 * d, 0] == pytest.approx(0.25)
    assert y[3 * d, 0] == pytest.approx(0.125)
    assert float(np.max(np.abs(y[1:d]))) < 1e-9
    assert float(np.max(np.abs(y[d + 1 : 2 * d]))) < 1e-9


def test_delay_echoes_cross_block_boundaries() -> None:
    delay = FeedbackDelay(1000, channels=1, delay_seconds=0.1)
    x = np.zeros((64, 1))
    x[0] = 1.0
    out = [delay.process(x, 0.1, 0.5)]
    silence = np.zeros((64, 1))
    for _ in range(4):
        out.append(delay.process(silence, 0.1, 0.5))
    y = np.concatenate(out)[:, 0]
    assert y[100] == pytest.approx(1.0)
    assert y[200] == pytest.approx(0.5)
    assert y[300] == pytest.approx(0.25)
    assert np.count_nonzero(y) == 3


def test_feedback_is_capped_below_unity() -> None:
    fx = EffectSettings(delay_feedback=1.5)
    assert fx.delay_feedback == 0.9
    assert ChainParams(delay_feedback=3.0).delay_feedback == 0.9


def test_linear_ramp_reaches_target_without_jumps() -> None:
    r = LinearRamp(0.0, ramp_frames=100)
    a = r.next_block(1.0, 50)
    b = r.next_block(1.0, 80)
    v = np.concatenate([[0.0], a, b])
    assert a[-1] == pytest.approx(0.5)
    assert b[-1] == 1.0
    assert float(np.max(np.abs(np.diff(v)))) <= 0.01 + 1e-12


def test_volume_change_is_ramped() -> None:
    sr = 8000
    track = Track(id="t", volume=0.8)
    chain = TrackChain(sr, params=ChainParams.from_track(track))
    x = np.ones((512, 2))
    first = chain.process(x)
    assert np.allclose(first, 0.8)

    track.volume = 0.0
    chain.set_params(ChainParams.from_track(track))
    second = chain.process(x)[:, 0]
    joined = np.concatenate([first[-1:, 0], second])
    assert second[-1] == 0.0
    assert float(np.max(np.abs(np.diff(joined)))) < 0.01


def test_mute_zeroes_chain_volume() -> None:
    params = ChainParams.from_track(Track(id="t", volume=1.5, muted=True))
    assert params.volume == 0.0


def test_chain_requires_sample_rate() -> None:
    with pytest.raises(ValueError):
        TrackChain(0)
