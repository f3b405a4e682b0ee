from __future__ import annotations

import io
import struct
import wave
from pathlib import Path

import pytest

from octwave.audio.wav import WavStream, _ascii
from octwave.errors import EncodeError, StreamClosedError
from octwave.notation.octave import OctaveDecoder
from octwave.util.config import SynthConfig

HEADER = struct.Struct("<4sI4s4sIHHIIHH4sI")


def _header(data: bytes) -> tuple:
    return HEADER.unpack(data[:44])


def test_empty_stream_is_bare_header() -> None:
    data = WavStream().to_bytes()
    assert len(data) == 44
    riff, riff_size, wave_tag, fmt, fmt_size, pcm, ch, sr, byte_rate, align, bits, data_tag, data_size = _header(data)
    assert (riff, wave_tag, fmt, data_tag) == (b"RIFF", b"WAVE", b"fmt ", b"data")
    assert riff_size == 36
    assert (fmt_size, pcm, ch, sr, byte_rate, align, bits) == (16, 1, 1, 44100, 88200, 2, 16)
    assert data_size == 0


def test_data_size_tracks_appends() -> None:
    s = WavStream()
    s.wave_abs(1000, 440, 10)
    s.wave_abs(1000, 0, 0)
    s.wave_abs(-500, 220.5, 7)
    assert len(s.segments) == 3
    assert s.data_size == 2 * (10 + 0 + 7)
    assert s.total_samples == 17


def test_relative_wave_converts_seconds_and_amplitude() -> None:
    s = WavStream()
    seg = s.wave(0.5, 440, 0.25)
    assert seg.samples == 11025
    assert seg.amplitude == 16384
    assert seg.frequency == 440.0
    assert s.data_size == 22050


def test_negative_inputs_rejected() -> None:
    s = WavStream()
    with pytest.raises(ValueError):
        s.wave(0.5, 440, -1.0)
    with pytest.raises(ValueError):
        s.wave_abs(1, 440, -3)


def test_header_sizes_and_payload() -> None:
    s = WavStream()
    s.wave_abs(16384, 1, 4)
    s.wave_abs(16384, 440, 0)
    s.wave_abs(16384, 0, 3)
    data = s.to_bytes()

    fields = _header(data)
    assert fields[1] == 44 + 14 - 8
    assert fields[-1] == 14
    assert data[44:] == struct.pack("<4h", 0, 16384, 0, -16384) + b"\x00" * 6


def test_odd_data_size_gets_padding_byte() -> None:
    s = WavStream(SynthConfig(bit_depth=24))
    s.wave_abs(1000, 0, 3)
    data = s.to_bytes()
    assert s.data_size == 9
    assert len(data) == 44 + 9 + 1
    assert data[-1] == 0
    fields = _header(data)
    assert fields[8] == 44100 * 3
    assert fields[9] == 3
    assert fields[10] == 24


def test_output_reads_back_with_stdlib_wave(tmp_path: Path) -> None:
    s = WavStream()
    s.wave(0.5, 440, 0.1)
    out = tmp_path / "x.wav"
    with out.open("wb") as f:
        res = s.finish(f)

    assert res.bytes_written == out.stat().st_size
    with wave.open(str(out), "rb") as wf:
        assert wf.getnchannels() == 1
        assert wf.getsampwidth() == 2
        assert wf.getframerate() == 44100
        assert wf.getnframes() == 4410


def test_finish_closes_stream() -> None:
    s = WavStream()
    s.wave_abs(1, 1, 1)
    res = s.finish(io.BytesIO())
    assert res.segments == 1
    assert s.closed

    with pytest.raises(StreamClosedError):
        s.wave_abs(1, 1, 1)
    with pytest.raises(StreamClosedError):
        s.wave(0.5, 440, 1.0)
    with pytest.raises(StreamClosedError):
        s.finish(io.BytesIO())


class _ClosingPipe:
    """Accepts `limit` writes, then behaves like a pipe whose reader exited."""

    def __init__(self, limit: int) -> None:
        self.limit = limit
        self.calls = 0
        self.buf = bytearray()

    def write(self, data: bytes) -> int:
        self.calls += 1
        if self.calls > self.limit:
            raise BrokenPipeError(32, "Broken pipe")
        self.buf += data
        return len(data)


def test_broken_pipe_stops_output_quietly() -> None:
    s = WavStream()
    for _ in range(5):
        s.wave_abs(1000, 440, 100)
    sink = _ClosingPipe(limit=2)

    res = s.finish(sink)

    assert res.truncated
    assert res.bytes_written == 44 + 200
    assert bytes(sink.buf[:44]) == s.header_bytes()
    # One failed write, then nothing more.
    assert sink.calls == 3


class _FullDisk:
    def write(self, data: bytes) -> int:
        raise OSError(28, "No space left on device")


def test_other_write_errors_are_fatal() -> None:
    s = WavStream()
    with pytest.raises(EncodeError) as ei:
        s.finish(_FullDisk())
    assert ei.value.kind == "io"
    assert isinstance(ei.value.__cause__, OSError)


def test_non_ascii_tag_is_rejected() -> None:
    assert _ascii("fmt ") == b"fmt "
    with pytest.raises(EncodeError) as ei:
        _ascii("dätä")
    assert ei.value.kind == "non_ascii_tag"


def test_append_past_riff_size_limit_rejected() -> None:
    s = WavStream()
    # Largest payload whose RIFF size (data + 36) still fits in a u32.
    s.wave_abs(0, 0, (0xFFFFFFFF - 36) // 2)
    with pytest.raises(EncodeError) as ei:
        s.wave_abs(0, 0, 1)
    assert ei.value.kind == "too_large"
    assert len(s.segments) == 1
    assert s.data_size == 0xFFFFFFFF - 37

    riff_size, = struct.unpack("<I", s.header_bytes()[4:8])
    assert riff_size == 0xFFFFFFFF - 1


def test_decoder_stops_at_riff_size_limit() -> None:
    # Tempo 1: a double-measure rest is 480 s, 42336000 bytes at 16-bit.
    dec = OctaveDecoder(1)
    with pytest.raises(EncodeError) as ei:
        dec.read("0_" * 110)
    assert ei.value.kind == "too_large"
    assert len(dec.stream.segments) == 101
    assert len(dec.stream.header_bytes()) == 44
