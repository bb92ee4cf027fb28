"""Error types raised by the SSTV modulator.

Each exception carries the context needed to diagnose the failure without
retrying: the requested rate, the offending image shape or the mode being
encoded.
"""

from __future__ import annotations

from typing import Optional


class SSTVError(Exception):
    """Base class for recoverable modulator errors."""


class InvalidSampleRate(SSTVError, ValueError):
    """Requested sample rate is outside the supported range."""

    def __init__(self, sample_rate: int, min_rate: int, max_rate: int):
        self.sample_rate = sample_rate
        self.min_rate = min_rate
        self.max_rate = max_rate
        super().__init__(
            f"Invalid sample rate {sample_rate} Hz "
            f"(supported range: {min_rate}-{max_rate} Hz)"
        )


class UnsupportedImageInput(SSTVError):
    """Raster layout (rank, channel count or pixel format) is not recognized."""

    def __init__(self, reason: str, shape: Optional[tuple] = None):
        self.reason = reason
        self.shape = shape
        message = f"Unsupported image input: {reason}"
        if shape is not None:
            message += f" (shape={shape})"
        super().__init__(message)


class EmptyImage(SSTVError):
    """Source raster has a zero width or height."""

    def __init__(self, width: int, height: int):
        self.width = width
        self.height = height
        super().__init__(f"Empty image: {width}x{height}")


class EncodingFailure(SSTVError):
    """Internal invariant violated while building the tone stream."""

    def __init__(self, message: str, mode: Optional[str] = None):
        self.message = message
        self.mode = mode
        if mode:
            message = f"{mode}: {message}"
        super().__init__(f"Encoding failed: {message}")
