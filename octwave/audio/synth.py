from __future__ import annotations

import math
from collections.abc import Iterator
from dataclasses import dataclass

from octwave.model.types import WaveformSegment

TAU = 2.0 * math.pi


def round_half_away(x: float) -> int:
    """Round to nearest integer, halves away from zero (not banker's rounding)."""
    return int(math.copysign(math.floor(abs(x) + 0.5), x))


def clamp_sample(v: int, bit_depth: int = 16) -> int:
    hi = (1 << (bit_depth - 1)) - 1
    lo = -(1 << (bit_depth - 1))
    return max(lo, min(hi, v))


@dataclass(frozen=True)
class Wave:
    amplitude: float
    frequency: float

    def plot(self, t: float) -> float:
        """Return the wave value at normalized time `t`."""
        omega = self.frequency * TAU
        return self.amplitude * math.sin(omega * t)

    def modulate(self, index: int, total: int) -> float:
        """Spread the wave over `total` samples and return sample `index`."""
        return self.plot(index / total)


def sample_at(amplitude: float, frequency: float, index: int, total: int, *, bit_depth: int = 16) -> int:
    """Integer sample `index` of a sine spread over `total` samples.

    `total` must be > 0; callers skip empty segments.
    """
    v = Wave(amplitude, frequency).modulate(index, total)
    return clamp_sample(round_half_away(v), bit_depth)


class WaveSampler:
    """Render the samples of one segment at a fixed bit depth."""

    def __init__(self, segment: WaveformSegment, *, bit_depth: int = 16) -> None:
        self.segment = segment
        self.bit_depth = int(bit_depth)
        self._wave = Wave(segment.amplitude, segment.frequency)

    def __len__(self) -> int:
        return self.segment.samples

    def sample(self, i: int) -> int:
        v = self._wave.modulate(i, self.segment.samples)
        return clamp_sample(round_half_away(v), self.bit_depth)

    def samples(self) -> Iterator[int]:
        n = self.segment.samples
        if self.segment.silent:
            # sin(0) == 0 everywhere; skip the trig.
            for _ in range(n):
                yield 0
            return
        for i in range(n):
            yield self.sample(i)

    def to_bytes(self) -> bytes:
        width = self.bit_depth // 8
        frames = bytearray()
        for s in self.samples():
            frames += int.to_bytes(s, width, "little", signed=True)
        return bytes(frames)
