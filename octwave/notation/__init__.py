"""Octave notation decoding.

Core pipeline:
- tokenize(text) -> NoteToken clusters (fails on the first bad cluster)
- OctaveDecoder(tempo).read(text) -> segments in a WavStream
- OctaveDecoder.finish(sink) -> the WAV bytes
"""

from .octave import OctaveDecoder, length_to_measures, offset_to_frequency, parse_notes, tokenize

__all__ = [
    "OctaveDecoder",
    "length_to_measures",
    "offset_to_frequency",
    "parse_notes",
    "tokenize",
]
