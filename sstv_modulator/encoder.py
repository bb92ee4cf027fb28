"""Scan-line encoder.

Turns a processed image into the ordered stream of (frequency, duration)
tone segments for one transmission: silence, VOX tones and VIS header,
the per-line sync/porch/pixel tones from the mode table, then the closing
tones. Lines are produced lazily as numpy blocks because high resolution
modes run to hundreds of thousands of segments.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, NamedTuple

import numpy as np

from .constants import (
    FREQ_BREAK,
    FREQ_LEADER,
    FREQ_SILENCE,
    FREQ_SYNC,
    FREQ_VIS_BIT_0,
    FREQ_VIS_BIT_1,
    SILENCE_MS,
    TRAILER_SEQUENCE,
    VIS_BIT_MS,
    VIS_BREAK_MS,
    VIS_LEADER_MS,
    VIS_START_BIT_MS,
    VIS_STOP_BIT_MS,
    VOX_SEQUENCE,
)
from .dsp import pixel_to_freq
from .errors import EncodingFailure
from .image import ProcessedImage
from .modes import Pulse, SSTVMode


class ToneSegment(NamedTuple):
    """A single tone instruction. Frequency 0 is silence."""
    frequency_hz: float
    duration_ms: float


@dataclass(frozen=True)
class ToneBlock:
    """Consecutive tone segments stored column-wise."""
    frequencies: np.ndarray
    durations_ms: np.ndarray

    def __len__(self) -> int:
        return len(self.frequencies)

    @property
    def duration_ms(self) -> float:
        return float(self.durations_ms.sum())

    def segments(self) -> Iterator[ToneSegment]:
        for freq, dur in zip(self.frequencies.tolist(), self.durations_ms.tolist()):
            yield ToneSegment(freq, dur)

    @classmethod
    def from_segments(cls, segments) -> ToneBlock:
        segments = list(segments)
        return cls(
            frequencies=np.array([s[0] for s in segments], dtype=np.float64),
            durations_ms=np.array([s[1] for s in segments], dtype=np.float64),
        )


def vis_bit_freq(bit: int) -> float:
    return FREQ_VIS_BIT_1 if bit else FREQ_VIS_BIT_0


def header_segments(spec: SSTVMode) -> list[ToneSegment]:
    """Leading silence, VOX tones and the VIS header for ``spec``.

    VIS: leader, break, leader, start bit, 7 data bits LSB first, even
    parity bit, stop bit.
    """
    segments = [ToneSegment(FREQ_SILENCE, SILENCE_MS)]
    segments += [ToneSegment(f, d) for f, d in VOX_SEQUENCE]
    segments += [
        ToneSegment(FREQ_LEADER, VIS_LEADER_MS),
        ToneSegment(FREQ_BREAK, VIS_BREAK_MS),
        ToneSegment(FREQ_LEADER, VIS_LEADER_MS),
        ToneSegment(FREQ_SYNC, VIS_START_BIT_MS),
    ]
    segments += [ToneSegment(vis_bit_freq(bit), VIS_BIT_MS) for bit in spec.vis_bits]
    segments.append(ToneSegment(vis_bit_freq(spec.parity_bit), VIS_BIT_MS))
    segments.append(ToneSegment(FREQ_SYNC, VIS_STOP_BIT_MS))
    return segments


def trailer_segments() -> list[ToneSegment]:
    """Closing tones and trailing silence."""
    segments = [ToneSegment(f, d) for f, d in TRAILER_SEQUENCE]
    segments.append(ToneSegment(FREQ_SILENCE, SILENCE_MS))
    return segments


def header_seconds(spec: SSTVMode) -> float:
    return sum(s.duration_ms for s in header_segments(spec)) / 1000.0


def trailer_seconds() -> float:
    return sum(s.duration_ms for s in trailer_segments()) / 1000.0


def transmission_seconds(spec: SSTVMode) -> float:
    """Exact length of the full tone stream for ``spec`` (s)."""
    return header_seconds(spec) + spec.scan_seconds + trailer_seconds()


class ScanLineEncoder:
    """Build the tone stream for one processed image under one mode.

    Usage::

        encoder = ScanLineEncoder(processed, spec)
        for block in encoder.iter_blocks():
            ...

    Each call to ``iter_blocks`` or ``iter_segments`` regenerates the stream
    from the image; a returned iterator is single-pass.
    """

    def __init__(self, image: ProcessedImage, spec: SSTVMode):
        if (image.width, image.height) != (spec.width, spec.height):
            raise EncodingFailure(
                f"image is {image.width}x{image.height}, expected "
                f"{spec.width}x{spec.height}", spec.name)
        if image.color_model != spec.color_model:
            raise EncodingFailure(
                f"image planes are {image.color_model.value}, expected "
                f"{spec.color_model.value}", spec.name)

        self._image = image
        self._spec = spec

        # Line durations never change between lines
        self._line_durations = np.concatenate([
            np.full(1 if isinstance(el, Pulse) else spec.width,
                    el.duration_ms if isinstance(el, Pulse) else el.pixel_ms,
                    dtype=np.float64)
            for el in spec.layout
        ])
        self._line_durations.setflags(write=False)
        self._check_durations(self._line_durations)

    @property
    def spec(self) -> SSTVMode:
        return self._spec

    @property
    def segment_count(self) -> int:
        """Total number of tone segments in the stream."""
        return (len(header_segments(self._spec)) + len(self._spec.preamble)
                + len(self._line_durations) * self._spec.line_count
                + len(trailer_segments()))

    def _check_durations(self, durations: np.ndarray) -> None:
        if not np.all(np.isfinite(durations)) or np.any(durations < 0):
            raise EncodingFailure("negative or non-finite tone duration", self._spec.name)

    def _check_frequencies(self, frequencies: np.ndarray) -> None:
        if not np.all(np.isfinite(frequencies)) or np.any(frequencies < 0):
            raise EncodingFailure("negative or non-finite tone frequency", self._spec.name)

    def _line_frequencies(self, first_row: int) -> np.ndarray:
        planes = self._image.planes
        last_row = self._spec.height - 1
        parts = []
        for element in self._spec.layout:
            if isinstance(element, Pulse):
                parts.append(np.array([element.frequency], dtype=np.float64))
                continue
            rows = [min(first_row + offset, last_row) for offset in element.rows]
            values = planes[rows, :, element.channel.plane].astype(np.float64)
            parts.append(pixel_to_freq(values.mean(axis=0)))
        return np.concatenate(parts)

    def iter_blocks(self) -> Iterator[ToneBlock]:
        """Yield the stream as blocks: header, preamble, one per line, trailer."""
        header = ToneBlock.from_segments(header_segments(self._spec))
        self._check_durations(header.durations_ms)
        yield header

        if self._spec.preamble:
            preamble = ToneBlock.from_segments(
                (p.frequency, p.duration_ms) for p in self._spec.preamble)
            self._check_durations(preamble.durations_ms)
            yield preamble

        for line in range(self._spec.line_count):
            frequencies = self._line_frequencies(line * self._spec.rows_per_line)
            self._check_frequencies(frequencies)
            yield ToneBlock(frequencies, self._line_durations)

        yield ToneBlock.from_segments(trailer_segments())

    def iter_segments(self) -> Iterator[ToneSegment]:
        """Yield every tone segment in transmission order."""
        for block in self.iter_blocks():
            yield from block.segments()

    def __iter__(self) -> Iterator[ToneSegment]:
        return self.iter_segments()
