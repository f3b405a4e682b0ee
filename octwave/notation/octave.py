from __future__ import annotations

"""Octave notation: a melody as a flat string of <L><N> clusters.

Each cluster is two characters, or three when N is negative:

    L   length, hex digit 0-F: the note lasts 2^(1 - L) measures (4/4)
    N   semitones away from the starting note, hex digit 0-F, or '_' for silence
    -N  the same, below the starting note

"31323334" at A4 is A#4, B4, C5, C#5 as quarter notes.
"""

import logging
from collections.abc import Iterator
from typing import BinaryIO

from octwave.audio.wav import FinishResult, WavStream
from octwave.errors import DecodeError
from octwave.model.types import NoteToken
from octwave.util.config import SynthConfig, validate_tempo
from octwave.util.limits import BEATS_PER_MEASURE

logger = logging.getLogger(__name__)

HEX_DIGITS = "0123456789abcdefABCDEF"
SIGN = "-"
SILENCE = "_"


def length_to_measures(length: int) -> float:
    return 2.0 ** (1 - int(length))


def offset_to_frequency(offset: int, starting_frequency: float = 440.0) -> float:
    return float(starting_frequency) * 2.0 ** (int(offset) / 12.0)


def measure_seconds(tempo: int) -> float:
    return 60.0 * BEATS_PER_MEASURE / float(tempo)


def tokenize(text: str) -> Iterator[NoteToken]:
    """Yield one NoteToken per cluster; raise DecodeError at the first bad one."""
    i = 0
    n = len(text)
    while i < n:
        start = i
        l_ch = text[i]
        if l_ch not in HEX_DIGITS:
            raise DecodeError("invalid_length", position=i, text=text)

        # The cluster width is known once the second char is visible.
        width = 3 if i + 1 < n and text[i + 1] == SIGN else 2
        if n - i < width:
            raise DecodeError("unexpected_end", position=n, text=text)

        n_ch = text[i + width - 1]
        if n_ch == SILENCE:
            offset = None
        elif n_ch in HEX_DIGITS:
            offset = int(n_ch, 16)
            if width == 3:
                offset = -offset
        else:
            raise DecodeError("invalid_offset", position=i + width - 1, text=text)

        i += width
        yield NoteToken(length=int(l_ch, 16), offset=offset, position=start, text=text[start:i])


def parse_notes(text: str) -> list[NoteToken]:
    """Decode the whole string up front (nothing is emitted on error)."""
    return list(tokenize(text))


def notes_duration_seconds(text: str, tempo: int) -> float:
    m = measure_seconds(validate_tempo(tempo))
    return sum(t.measures for t in tokenize(text)) * m


class OctaveDecoder:
    """Decode octave notation into a WAV stream.

    Uses octaves relative to a starting note instead of raw frequencies.
    """

    def __init__(self, tempo: int, *, config: SynthConfig | None = None, stream: WavStream | None = None) -> None:
        self.tempo = validate_tempo(tempo)
        self.config = config or (stream.config if stream is not None else SynthConfig())
        self.stream = stream if stream is not None else WavStream(self.config)

    @property
    def starting_frequency(self) -> float:
        return self.config.starting_frequency

    def measure_seconds(self) -> float:
        return measure_seconds(self.tempo)

    def _wave(self, frequency: float, length: float) -> None:
        self.stream.wave(self.config.amplitude, frequency, self.measure_seconds() * length)

    def note(self, offset: int, length: float) -> None:
        """Add the note `offset` semitones away from the starting note.

        `length` is a fraction of one measure.
        """
        self._wave(offset_to_frequency(offset, self.starting_frequency), length)

    def rest(self, length: float) -> None:
        self._wave(0.0, length)

    def emit(self, token: NoteToken) -> None:
        if token.is_silence:
            self.rest(token.measures)
        else:
            self.note(int(token.offset), token.measures)  # type: ignore[arg-type]

    def read(self, text: str) -> int:
        """Decode `text` into the stream and return the number of notes added.

        Notes decoded before an error stay in the stream.
        """
        count = 0
        for token in tokenize(text):
            self.emit(token)
            count += 1
        logger.debug("decoded %d clusters at %d bpm (%d bytes of audio)", count, self.tempo, self.stream.data_size)
        return count

    def finish(self, sink: BinaryIO) -> FinishResult:
        return self.stream.finish(sink)
