from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from trackmix.errors import ConfigError

CONFIG_ENV = "TRACKMIX_CONFIG"


def default_config_dir() -> Path:
    return Path.home() / ".config" / "trackmix"


def default_config_path() -> Path:
    env = os.environ.get(CONFIG_ENV)
    if env:
        return Path(env).expanduser()
    return default_config_dir() / "config.json"


def _is_yaml(p: Path) -> bool:
    return p.suffix.lower() in {".yaml", ".yml"}


@dataclass
class EngineConfig:
    sample_rate: int = 44100
    block_size: int = 512
    output_device: str | None = None  # sounddevice name or index; None = system default
    input_device: str | None = None
    input_channels: int = 1
    ramp_seconds: float = 0.05
    export_codec: str = "wav"
    export_tail_seconds: float = 1.0

    def __post_init__(self) -> None:
        self.sample_rate = max(8000, min(192000, int(self.sample_rate)))
        self.block_size = max(16, min(8192, int(self.block_size)))
        self.input_channels = max(1, min(2, int(self.input_channels)))
        self.ramp_seconds = max(0.0, min(1.0, float(self.ramp_seconds)))
        self.export_codec = str(self.export_codec or "wav").strip().lower()
        self.export_tail_seconds = max(0.0, min(60.0, float(self.export_tail_seconds)))

    def to_dict(self) -> dict[str, Any]:
        return {
            "sample_rate": self.sample_rate,
            "block_size": self.block_size,
            "output_device": self.output_device,
            "input_device": self.input_device,
            "input_channels": self.input_channels,
            "ramp_seconds": self.ramp_seconds,
            "export_codec": self.export_codec,
            "export_tail_seconds": self.export_tail_seconds,
        }

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "EngineConfig":
        try:
            return EngineConfig(
                sample_rate=int(d.get("sample_rate", 44100)),
                block_size=int(d.get("block_size", 512)),
                output_device=d.get("output_device") or None,
                input_device=d.get("input_device") or None,
                input_channels=int(d.get("input_channels", 1)),
                ramp_seconds=float(d.get("ramp_seconds", 0.05)),
                export_codec=str(d.get("export_codec") or "wav"),
                export_tail_seconds=float(d.get("export_tail_seconds", 1.0)),
            )
        except (TypeError, ValueError) as e:
            raise ConfigError(f"invalid config value: {e}") from e


def load_config(path: Path | None = None) -> EngineConfig:
    p = path or default_config_path()
    if not p.exists():
        return EngineConfig()
    text = p.read_text(encoding="utf-8")
    try:
        data = yaml.safe_load(text) if _is_yaml(p) else json.loads(text)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ConfigError(f"could not parse config {p}: {e}") from e
    data = data or {}
    if not isinstance(data, dict):
        raise ConfigError(f"config must be a mapping/object: {p}")
    return EngineConfig.from_dict(data)


def save_config(cfg: EngineConfig, path: Path | None = None) -> Path:
    p = path or default_config_path()
    p.parent.mkdir(parents=True, exist_ok=True)
    if _is_yaml(p):
        p.write_text(yaml.safe_dump(cfg.to_dict(), sort_keys=True), encoding="utf-8")
    else:
        p.write_text(json.dumps(cfg.to_dict(), indent=2, sort_keys=True) + "\n", encoding="utf-8")
    return p
