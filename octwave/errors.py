from __future__ import annotations

from typing import Literal

DecodeErrorKind = Literal["invalid_length", "invalid_offset", "unexpected_end"]
EncodeErrorKind = Literal["non_ascii_tag", "io", "too_large"]


class OctwaveError(Exception):
    """Base class for every error raised by octwave."""


class DecodeError(OctwaveError, ValueError):
    """Octave notation could not be decoded.

    `position` is the 0-based index of the offending character (for
    "unexpected_end" it is the index where the missing character should be).
    """

    _MESSAGES: dict[str, str] = {
        "invalid_length": "length is not a hexadecimal digit",
        "invalid_offset": "offset is not a hexadecimal digit nor '_'",
        "unexpected_end": "unexpected end of input",
    }

    def __init__(self, kind: DecodeErrorKind, *, position: int, text: str = "") -> None:
        self.kind: DecodeErrorKind = kind
        self.position = int(position)
        self.text = text
        super().__init__(f"{self._MESSAGES[kind]} at position {self.position}")


class EncodeError(OctwaveError):
    """The WAV stream could not be written."""

    def __init__(self, kind: EncodeErrorKind, message: str) -> None:
        self.kind: EncodeErrorKind = kind
        super().__init__(message)


class StreamClosedError(OctwaveError, RuntimeError):
    """A finished WAV stream was used again."""
