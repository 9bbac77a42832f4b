from __future__ import annotations

from pathlib import Path

import pytest

from trackmix.errors import ConfigError
from trackmix.util.config import CONFIG_ENV, EngineConfig, default_config_path, load_config, save_config


def test_missing_file_gives_defaults(tmp_path: Path) -> None:
    cfg = load_config(tmp_path / "nope.json")
    assert cfg == EngineConfig()
    assert cfg.sample_rate == 44100
    assert cfg.ramp_seconds == 0.05


def test_json_round_trip(tmp_path: Path) -> None:
    cfg = EngineConfig(sample_rate=48000, block_size=256, output_device="USB", export_codec="MP3")
    p = save_config(cfg, tmp_path / "cfg" / "config.json")
    assert p.read_text(encoding="utf-8").endswith("\n")

    loaded = load_config(p)
    assert loaded == cfg
    assert loaded.export_codec == "mp3"


def test_yaml_config(tmp_path: Path) -> None:
    p = tmp_path / "config.yaml"
    p.write_text("sample_rate: 22050\ninput_channels: 2\nexport_tail_seconds: 0.5\n", encoding="utf-8")
    cfg = load_config(p)
    assert cfg.sample_rate == 22050
    assert cfg.input_channels == 2
    assert cfg.export_tail_seconds == 0.5

    save_config(cfg, p)
    assert load_config(p) == cfg


def test_env_overrides_default_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    p = tmp_path / "env.json"
    p.write_text('{"block_size": 1024}', encoding="utf-8")
    monkeypatch.setenv(CONFIG_ENV, str(p))
    assert default_config_path() == p
    assert load_config().block_size == 1024


def test_values_are_clamped() -> None:
    cfg = EngineConfig.from_dict({"sample_rate": 10, "block_size": 10**6, "input_channels": 9, "ramp_seconds": -1})
    assert cfg.sample_rate == 8000
    assert cfg.block_size == 8192
    assert cfg.input_channels == 2
    assert cfg.ramp_seconds == 0.0


def test_non_mapping_is_rejected(tmp_path: Path) -> None:
    p = tmp_path / "config.yml"
    p.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(p)

    bad = tmp_path / "bad.json"
    bad.write_text('{"sample_rate": "fast"}', encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(bad)
