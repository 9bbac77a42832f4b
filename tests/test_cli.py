from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest

from trackmix.__main__ import main
from trackmix.audio.store import SampleBuffer, SampleStore
from trackmix.audio.wav import decode_wav
from trackmix.io.project_json import build_document, save_project
from trackmix.model.types import Clip, Track
from trackmix.util.config import CONFIG_ENV


def _project(tmp_path: Path) -> Path:
    store = SampleStore()
    store.put("b", SampleBuffer(samples=np.full((4000, 2), 0.3, dtype=np.float32), sample_rate=8000))
    doc = build_document(
        [Track(id="t", volume=1.0)],
        [Clip(id="c", buffer_id="b", track_id="t", start_time=0.25, duration=0.5)],
        store,
        name="cli",
    )
    return Path(save_project(doc, tmp_path / "cli.json"))


@pytest.fixture(autouse=True)
def _no_user_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(CONFIG_ENV, str(tmp_path / "absent.json"))


def test_render_writes_wav(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    proj = _project(tmp_path)
    out = tmp_path / "renders" / "mix.wav"

    main(["render", str(proj), "-o", str(out), "--sample-rate", "8000"])

    buf = decode_wav(out.read_bytes())
    assert buf.sample_rate == 8000
    # project end (0.75s) + default 1s tail
    assert buf.frames == 14000
    assert float(np.max(np.abs(buf.samples[2000:6000]))) > 0.25
    assert "wrote" in capsys.readouterr().out


def test_render_explicit_duration(tmp_path: Path) -> None:
    proj = _project(tmp_path)
    out = tmp_path / "short.wav"
    main(["render", str(proj), "-o", str(out), "--duration", "0.5", "--sample-rate", "8000", "--codec", "wav"])
    assert decode_wav(out.read_bytes()).frames == 4000


def test_render_missing_project_exits(tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as ei:
        main(["render", str(tmp_path / "nope.json"), "-o", str(tmp_path / "x.wav")])
    assert "ERROR" in str(ei.value)


def test_render_mp3_without_ffmpeg_exits(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("trackmix.audio.encode.shutil.which", lambda _cmd: None)
    proj = _project(tmp_path)
    with pytest.raises(SystemExit) as ei:
        main(["render", str(proj), "-o", str(tmp_path / "x.mp3")])
    assert "mp3" in str(ei.value)


def test_version(capsys: pytest.CaptureFixture[str]) -> None:
    main(["--version"])
    assert capsys.readouterr().out.startswith("trackmix ")
