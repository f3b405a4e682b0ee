from __future__ import annotations

import wave
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from octwave.util.limits import WAV_HEADER_SIZE


@dataclass(frozen=True)
class WavInfo:
    """Header fields of a canonical PCM WAV file."""

    channels: int
    sample_width: int
    sample_rate: int
    frames: int
    riff_size: int
    data_size: int

    @property
    def bit_depth(self) -> int:
        return self.sample_width * 8

    @property
    def duration_seconds(self) -> float:
        if self.sample_rate <= 0:
            return 0.0
        return self.frames / float(self.sample_rate)

    def to_dict(self) -> dict[str, Any]:
        return {
            "channels": self.channels,
            "bit_depth": self.bit_depth,
            "sample_rate": self.sample_rate,
            "frames": self.frames,
            "duration_seconds": round(self.duration_seconds, 6),
            "riff_size": self.riff_size,
            "data_size": self.data_size,
        }


def read_size_fields(header: bytes) -> tuple[int, int]:
    """Return (RIFF size, data size) from a 44-byte canonical header."""
    if len(header) < WAV_HEADER_SIZE or header[0:4] != b"RIFF" or header[8:12] != b"WAVE":
        raise ValueError("not a RIFF/WAVE header")
    if header[36:40] != b"data":
        raise ValueError("not a canonical 44-byte header (no data chunk at offset 36)")
    riff_size = int.from_bytes(header[4:8], "little")
    data_size = int.from_bytes(header[40:44], "little")
    return riff_size, data_size


def inspect_wav(path: str | Path) -> WavInfo:
    p = Path(path)
    with p.open("rb") as f:
        riff_size, data_size = read_size_fields(f.read(WAV_HEADER_SIZE))

    with wave.open(str(p), "rb") as wf:
        return WavInfo(
            channels=wf.getnchannels(),
            sample_width=wf.getsampwidth(),
            sample_rate=wf.getframerate(),
            frames=wf.getnframes(),
            riff_size=riff_size,
            data_size=data_size,
        )
