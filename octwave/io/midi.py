from __future__ import annotations

import math
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:  # pragma: no cover
    import mido

from octwave.notation.octave import tokenize
from octwave.util.config import validate_tempo
from octwave.util.limits import BEATS_PER_MEASURE

A4_PITCH = 69
DEFAULT_PPQ = 480


@dataclass
class MidiExportResult:
    path: str
    ticks_per_beat: int
    notes: int


def reference_pitch(starting_frequency: float) -> int:
    """MIDI pitch closest to the starting note."""
    return A4_PITCH + int(round(12.0 * math.log2(float(starting_frequency) / 440.0)))


def _iter_note_events(
    text: str, *, starting_frequency: float, ppq: int, velocity: int
) -> tuple[list[tuple[int, Any]], int]:
    """Return absolute-tick note events and the tick where the melody ends."""
    import mido  # type: ignore

    base = reference_pitch(starting_frequency)
    ticks_per_measure = ppq * BEATS_PER_MEASURE

    events: list[tuple[int, Any]] = []
    tick = 0
    for tok in tokenize(text):
        dur = int(round(tok.measures * ticks_per_measure))
        if tok.is_silence:
            tick += dur
            continue
        pitch = base + int(tok.offset)  # type: ignore[arg-type]
        if not (0 <= pitch <= 127):
            raise ValueError(f"pitch out of range: {pitch} (cluster {tok.text!r} at {tok.position})")
        # Very short notes still need a note_off after the note_on.
        dur = max(1, dur)
        events.append((tick, mido.Message("note_on", note=pitch, velocity=velocity, channel=0)))
        events.append((tick + dur, mido.Message("note_off", note=pitch, velocity=0, channel=0)))
        tick += dur

    return events, tick


def notes_to_midifile(
    text: str,
    *,
    tempo: int,
    starting_frequency: float = 440.0,
    ppq: int = DEFAULT_PPQ,
    name: str = "octwave",
    velocity: int = 100,
) -> Any:
    import mido  # type: ignore

    tempo = validate_tempo(tempo)
    mf = mido.MidiFile(ticks_per_beat=ppq)

    tempo_track = mido.MidiTrack()
    tempo_track.append(mido.MetaMessage("set_tempo", tempo=mido.bpm2tempo(tempo), time=0))
    tempo_track.append(mido.MetaMessage("track_name", name=name, time=0))
    mf.tracks.append(tempo_track)

    mt = mido.MidiTrack()
    mt.append(mido.MetaMessage("track_name", name="melody", time=0))
    events, end_tick = _iter_note_events(text, starting_frequency=starting_frequency, ppq=ppq, velocity=velocity)
    last_t = 0
    for t, msg in events:
        msg.time = t - last_t
        last_t = t
        mt.append(msg)
    # A trailing rest still counts towards the track length.
    mt.append(mido.MetaMessage("end_of_track", time=end_tick - last_t))
    mf.tracks.append(mt)

    return mf


def export_midi(
    text: str,
    path: str | Path,
    *,
    tempo: int,
    starting_frequency: float = 440.0,
    ppq: int = DEFAULT_PPQ,
    name: str = "octwave",
) -> MidiExportResult:
    out = Path(path).expanduser()
    out.parent.mkdir(parents=True, exist_ok=True)
    mf = notes_to_midifile(text, tempo=tempo, starting_frequency=starting_frequency, ppq=ppq, name=name)
    mf.save(out)
    n = sum(1 for m in mf.tracks[1] if m.type == "note_on")
    return MidiExportResult(path=str(out), ticks_per_beat=mf.ticks_per_beat, notes=n)
