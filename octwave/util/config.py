from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from octwave.util.limits import DEFAULT_TEMPO, MIN_TEMPO, SUPPORTED_BIT_DEPTHS


def default_config_dir() -> Path:
    return Path.home() / ".config" / "octwave"


def default_config_path() -> Path:
    return default_config_dir() / "config.json"


def validate_tempo(tempo: Any) -> int:
    """Return `tempo` as a positive whole BPM or raise ValueError."""
    if isinstance(tempo, bool) or (isinstance(tempo, float) and not tempo.is_integer()):
        raise ValueError(f"tempo must be a whole number of BPM: {tempo!r}")
    try:
        t = int(tempo)
    except (TypeError, ValueError) as e:
        raise ValueError(f"tempo must be a whole number of BPM: {tempo!r}") from e
    if t < MIN_TEMPO:
        raise ValueError(f"tempo must be >= {MIN_TEMPO}: {tempo}")
    return t


@dataclass(frozen=True)
class SynthConfig:
    """Output format and pitch reference for a render.

    `amplitude` is the fraction of full scale used for every note.
    """

    sample_rate: int = 44100
    bit_depth: int = 16
    starting_frequency: float = 440.0  # A4
    amplitude: float = 0.5

    def __post_init__(self) -> None:
        if int(self.sample_rate) <= 0:
            raise ValueError(f"sample_rate must be > 0: {self.sample_rate}")
        if int(self.bit_depth) not in SUPPORTED_BIT_DEPTHS:
            raise ValueError(f"unsupported bit_depth: {self.bit_depth}")
        if float(self.starting_frequency) <= 0:
            raise ValueError(f"starting_frequency must be > 0: {self.starting_frequency}")

    @property
    def sample_width(self) -> int:
        return self.bit_depth // 8

    @property
    def max_amplitude(self) -> int:
        return 2 ** (self.bit_depth - 1)

    def to_dict(self) -> dict[str, Any]:
        return {
            "sample_rate": int(self.sample_rate),
            "bit_depth": int(self.bit_depth),
            "starting_frequency": float(self.starting_frequency),
            "amplitude": float(self.amplitude),
        }

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "SynthConfig":
        return SynthConfig(
            sample_rate=int(d.get("sample_rate", 44100)),
            bit_depth=int(d.get("bit_depth", 16)),
            starting_frequency=float(d.get("starting_frequency", 440.0)),
            amplitude=float(d.get("amplitude", 0.5)),
        )


@dataclass
class AppConfig:
    tempo: int = DEFAULT_TEMPO
    synth: SynthConfig = field(default_factory=SynthConfig)

    def __post_init__(self) -> None:
        self.tempo = validate_tempo(self.tempo)

    def to_dict(self) -> dict[str, Any]:
        return {"tempo": self.tempo, "synth": self.synth.to_dict()}

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "AppConfig":
        return AppConfig(
            tempo=DEFAULT_TEMPO if d.get("tempo") is None else d["tempo"],
            synth=SynthConfig.from_dict(d.get("synth") or {}),
        )


def load_config(path: Path | None = None) -> AppConfig:
    p = path or default_config_path()
    if not p.exists():
        return AppConfig()
    data = json.loads(p.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError("config must be a JSON object")
    return AppConfig.from_dict(data)


def save_config(cfg: AppConfig, path: Path | None = None) -> Path:
    p = path or default_config_path()
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(json.dumps(cfg.to_dict(), indent=2, sort_keys=True) + "\n", encoding="utf-8")
    return p
