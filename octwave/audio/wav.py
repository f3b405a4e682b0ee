from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from typing import BinaryIO

from octwave.audio.synth import WaveSampler, round_half_away
from octwave.errors import EncodeError, StreamClosedError
from octwave.model.types import WaveformSegment
from octwave.util.config import SynthConfig
from octwave.util.limits import MAX_RIFF_SIZE, WAV_HEADER_SIZE

logger = logging.getLogger(__name__)

PCM_FORMAT = 1
CHANNELS = 1
FMT_CHUNK_SIZE = 16


@dataclass
class FinishResult:
    bytes_written: int
    data_size: int
    segments: int
    # True when the sink closed its end of the pipe before everything was written.
    truncated: bool = False


def _ascii(tag: str) -> bytes:
    try:
        return tag.encode("ascii")
    except UnicodeEncodeError as e:
        raise EncodeError("non_ascii_tag", f"not an ASCII character in tag {tag!r}") from e


class _SinkWriter:
    """Best-effort writer: a broken pipe silently drops all further output."""

    def __init__(self, sink: BinaryIO) -> None:
        self.sink = sink
        self.bytes_written = 0
        self.broken = False

    def write(self, data: bytes) -> None:
        if self.broken or not data:
            return
        try:
            self.sink.write(data)
        except BrokenPipeError:
            # e.g. `aplay` closed the pipe early.
            self.broken = True
            return
        except OSError as e:
            raise EncodeError("io", f"write failed: {e}") from e
        self.bytes_written += len(data)

    def flush(self) -> None:
        flush = getattr(self.sink, "flush", None)
        if self.broken or flush is None:
            return
        try:
            flush()
        except BrokenPipeError:
            self.broken = True
        except OSError as e:
            raise EncodeError("io", f"flush failed: {e}") from e


class WavStream:
    """Accumulate mono sine segments, then write them as one PCM WAV file.

    Nothing is rendered until `finish`, which consumes the stream.
    """

    def __init__(self, config: SynthConfig | None = None) -> None:
        self.config = config or SynthConfig()
        self.data_size = 0
        self.segments: list[WaveformSegment] = []
        self.closed = False

    @property
    def bit_depth(self) -> int:
        return self.config.bit_depth

    @property
    def sample_rate(self) -> int:
        return self.config.sample_rate

    @property
    def total_samples(self) -> int:
        return sum(s.samples for s in self.segments)

    @property
    def duration_seconds(self) -> float:
        return self.total_samples / float(self.sample_rate)

    def _require_open(self) -> None:
        if self.closed:
            raise StreamClosedError("WAV stream already finished")

    def wave_abs(self, amplitude: float, frequency: float, samples: int) -> WaveformSegment:
        """Add a wave with an absolute amplitude and a sample count."""
        self._require_open()
        seg = WaveformSegment(amplitude=float(amplitude), frequency=float(frequency), samples=int(samples))
        grown = self.data_size + self.bit_depth // 8 * seg.samples
        if grown + WAV_HEADER_SIZE - 8 > MAX_RIFF_SIZE:
            raise EncodeError("too_large", f"WAV data would exceed {MAX_RIFF_SIZE - WAV_HEADER_SIZE + 8} bytes ({grown} requested)")
        self.segments.append(seg)
        # One channel.
        self.data_size = grown
        logger.debug("segment %d: amp=%.1f freq=%.3f samples=%d", len(self.segments), seg.amplitude, seg.frequency, seg.samples)
        return seg

    def wave(self, amplitude: float, frequency: float, seconds: float) -> WaveformSegment:
        """Add a wave with relative values.

        `amplitude` is a fraction of full scale; the sample count comes from `seconds`.
        """
        if seconds < 0:
            raise ValueError(f"seconds must be >= 0: {seconds}")
        samples = round_half_away(float(seconds) * self.sample_rate)
        return self.wave_abs(self.config.max_amplitude * float(amplitude), frequency, samples)

    def header_bytes(self) -> bytes:
        file_size = self.data_size + WAV_HEADER_SIZE
        width = self.bit_depth // 8

        out = bytearray()
        out += _ascii("RIFF")
        out += int.to_bytes(file_size - 8, 4, "little")
        out += _ascii("WAVE")
        out += _ascii("fmt ")
        out += int.to_bytes(FMT_CHUNK_SIZE, 4, "little")
        out += int.to_bytes(PCM_FORMAT, 2, "little")
        out += int.to_bytes(CHANNELS, 2, "little")
        out += int.to_bytes(self.sample_rate, 4, "little")
        out += int.to_bytes(self.sample_rate * width * CHANNELS, 4, "little")
        out += int.to_bytes(width * CHANNELS, 2, "little")
        out += int.to_bytes(self.bit_depth, 2, "little")
        out += _ascii("data")
        out += int.to_bytes(self.data_size, 4, "little")
        return bytes(out)

    def finish(self, sink: BinaryIO) -> FinishResult:
        """Write header, samples and padding to `sink` and close the stream."""
        self._require_open()
        self.closed = True
        segments, self.segments = self.segments, []

        w = _SinkWriter(sink)
        w.write(self.header_bytes())
        for seg in segments:
            if seg.samples == 0:
                continue
            w.write(WaveSampler(seg, bit_depth=self.bit_depth).to_bytes())
            if w.broken:
                break
        if self.data_size % 2 == 1:
            w.write(b"\x00")
        w.flush()

        if w.broken:
            logger.info("output pipe closed after %d bytes; stopped writing", w.bytes_written)
        else:
            logger.debug("wrote %d bytes (%d segments, data=%d)", w.bytes_written, len(segments), self.data_size)

        return FinishResult(
            bytes_written=w.bytes_written,
            data_size=self.data_size,
            segments=len(segments),
            truncated=w.broken,
        )

    def to_bytes(self) -> bytes:
        """Finish into memory and return the whole file."""
        buf = io.BytesIO()
        self.finish(buf)
        return buf.getvalue()
