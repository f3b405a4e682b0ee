from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class WaveformSegment:
    """A run of sine samples appended to a WAV stream.

    `amplitude` is in output sample units (e.g. 16384 for half scale at
    16 bits). `samples` may be 0: the segment is kept but writes nothing.
    """

    amplitude: float
    frequency: float
    samples: int

    def __post_init__(self) -> None:
        if self.samples < 0:
            raise ValueError(f"samples must be >= 0: {self.samples}")

    @property
    def silent(self) -> bool:
        return self.frequency == 0 or self.amplitude == 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "amplitude": float(self.amplitude),
            "frequency": float(self.frequency),
            "samples": int(self.samples),
        }


@dataclass(frozen=True)
class NoteToken:
    """One decoded cluster of octave notation.

    `offset` is the semitone distance from the starting note, or None for
    silence. `position` is where the cluster starts in the source string.
    """

    length: int
    offset: int | None
    position: int = 0
    text: str = ""

    @property
    def is_silence(self) -> bool:
        return self.offset is None

    @property
    def measures(self) -> float:
        return 2.0 ** (1 - self.length)
