from __future__ import annotations

"""Hard limits for synthesis parameters.

Enforced by SynthConfig/AppConfig, the song loader and WavStream.
"""

DEFAULT_TEMPO = 120
MIN_TEMPO = 1

# Fixed 4/4 time signature.
BEATS_PER_MEASURE = 4

SUPPORTED_BIT_DEPTHS = (16, 24, 32)

# Canonical PCM WAV header size in bytes.
WAV_HEADER_SIZE = 44

# The RIFF size field is a u32.
MAX_RIFF_SIZE = 0xFFFFFFFF
