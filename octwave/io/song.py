from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, BinaryIO

import yaml

from octwave.audio.wav import FinishResult
from octwave.notation.octave import OctaveDecoder
from octwave.util.config import SynthConfig, validate_tempo
from octwave.util.limits import DEFAULT_TEMPO

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Song:
    """A named melody in octave notation.

    YAML format:

    name: scale
    tempo: 90
    starting_frequency: 440
    notes: "31323334"

    `notes` may also be a list of strings; they are joined without separators
    so long melodies can be split one bar per line.
    """

    name: str
    notes: str
    tempo: int = DEFAULT_TEMPO
    starting_frequency: float = 440.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "tempo": int(self.tempo),
            "starting_frequency": float(self.starting_frequency),
            "notes": self.notes,
        }


DEMO_SONGS: dict[str, Song] = {
    "scale": Song(name="scale", notes="31323334", tempo=90),
    "octaves": Song(name="octaves", notes="2-C202C", tempo=120),
    "arpeggio": Song(name="arpeggio", notes="3034373C2_", tempo=100),
    "fanfare": Song(name="fanfare", notes="3-53-53034402_", tempo=132),
}


def _as_notes(x: Any) -> str:
    if x is None:
        raise ValueError("song missing required field: notes")
    # Unquoted YAML such as 01020304 or 1_20 loads as an int.
    parts = list(x) if isinstance(x, (list, tuple)) else [x]
    if not all(isinstance(v, str) for v in parts):
        raise ValueError(f"notes must be quoted strings, got: {x!r}")
    return "".join(v.strip() for v in parts)


def song_from_dict(data: dict[str, Any], *, default_name: str = "untitled") -> Song:
    raw_tempo = data.get("tempo")
    tempo = validate_tempo(DEFAULT_TEMPO if raw_tempo is None else raw_tempo)
    raw_freq = data.get("starting_frequency")
    try:
        freq = float(440.0 if raw_freq is None else raw_freq)
    except (TypeError, ValueError) as e:
        raise ValueError(f"expected a number for starting_frequency, got: {data.get('starting_frequency')!r}") from e
    if freq <= 0:
        raise ValueError(f"starting_frequency must be > 0: {freq}")
    return Song(
        name=str(data.get("name") or default_name),
        notes=_as_notes(data.get("notes")),
        tempo=tempo,
        starting_frequency=freq,
    )


def load_song(path: str | Path) -> Song:
    p = Path(path)
    raw = p.read_text(encoding="utf-8")

    if p.suffix.lower() in {".json"}:
        data = json.loads(raw)
    else:
        data = yaml.safe_load(raw) or {}

    if not isinstance(data, dict):
        raise ValueError("song file must be a mapping at top-level")

    return song_from_dict(data, default_name=p.stem)


def save_song(song: Song, path: str | Path) -> str:
    out = Path(path).expanduser()
    out.parent.mkdir(parents=True, exist_ok=True)
    if out.suffix.lower() == ".json":
        out.write_text(json.dumps(song.to_dict(), indent=2, sort_keys=True) + "\n", encoding="utf-8")
    else:
        out.write_text(yaml.safe_dump(song.to_dict(), sort_keys=False), encoding="utf-8")
    return str(out)


def get_demo_song(name: str) -> Song:
    key = name.strip().lower()
    if key not in DEMO_SONGS:
        raise KeyError(f"unknown demo song: {name}")
    return DEMO_SONGS[key]


def decode_song(song: Song, *, config: SynthConfig | None = None) -> OctaveDecoder:
    """Decode `song` into a fresh stream without touching any output."""
    base = config or SynthConfig()
    cfg = SynthConfig(
        sample_rate=base.sample_rate,
        bit_depth=base.bit_depth,
        starting_frequency=song.starting_frequency,
        amplitude=base.amplitude,
    )
    dec = OctaveDecoder(song.tempo, config=cfg)
    count = dec.read(song.notes)
    logger.info("decoded %r: %d notes at %d bpm", song.name, count, song.tempo)
    return dec


def render_song(song: Song, sink: BinaryIO, *, config: SynthConfig | None = None) -> FinishResult:
    return decode_song(song, config=config).finish(sink)
