"""Audio synthesis and WAV encoding.

Everything here is pure Python and deterministic:
- synth: sine samples for one waveform segment
- wav: the mono PCM WAV stream builder
- inspect: header readback for written files
"""
