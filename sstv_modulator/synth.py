"""Phase-continuous tone synthesis.

Renders tone segments into 16-bit PCM at any supported sample rate. The
oscillator phase carries across segment boundaries, and the fractional
part of every segment's ideal sample count is accumulated so that the
whole transmission is never more than one sample away from its exact
length.
"""

from __future__ import annotations

import math
from typing import Iterable

import numpy as np

from .constants import AMPLITUDE, FULL_SCALE, MAX_SAMPLE_RATE, MIN_SAMPLE_RATE
from .encoder import ToneBlock, ToneSegment
from .errors import InvalidSampleRate

TWO_PI = 2.0 * math.pi


def validate_sample_rate(sample_rate: int) -> int:
    """Return ``sample_rate`` as an int if it lies in the supported range.

    Raises:
        InvalidSampleRate: Rate is not an integer in
            [MIN_SAMPLE_RATE, MAX_SAMPLE_RATE].
    """
    if isinstance(sample_rate, bool) or not isinstance(sample_rate, (int, np.integer)):
        if isinstance(sample_rate, float) and sample_rate.is_integer():
            sample_rate = int(sample_rate)
        else:
            raise InvalidSampleRate(sample_rate, MIN_SAMPLE_RATE, MAX_SAMPLE_RATE)
    sample_rate = int(sample_rate)
    if not MIN_SAMPLE_RATE <= sample_rate <= MAX_SAMPLE_RATE:
        raise InvalidSampleRate(sample_rate, MIN_SAMPLE_RATE, MAX_SAMPLE_RATE)
    return sample_rate


def quantize(waveform: np.ndarray, amplitude: float = AMPLITUDE) -> np.ndarray:
    """Scale a [-1, 1] waveform to int16 at ``amplitude`` of full scale, rounding."""
    return np.rint(waveform * (amplitude * FULL_SCALE)).astype(np.int16)


class ToneSynthesizer:
    """Stateful oscillator for one synthesis run.

    Usage::

        synth = ToneSynthesizer(sample_rate)
        samples = synth.render(encoder.iter_blocks())

    Phase and fractional-sample debt persist across ``render_block`` calls
    until ``reset`` is called.
    """

    def __init__(self, sample_rate: int, amplitude: float = AMPLITUDE):
        self._sample_rate = validate_sample_rate(sample_rate)
        self._amplitude = amplitude
        self._phase = 0.0
        self._debt = 0.0

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    @property
    def phase(self) -> float:
        """Phase (radians, in [0, 2pi)) of the next sample to be generated."""
        return self._phase

    @property
    def debt(self) -> float:
        """Accumulated fractional samples not yet emitted, in [0, 1)."""
        return self._debt

    def reset(self) -> None:
        self._phase = 0.0
        self._debt = 0.0

    def sample_counts(self, durations_ms: np.ndarray) -> np.ndarray:
        """Whole samples per segment, advancing the fractional debt.

        Each segment gets floor(rate * duration / 1000) samples, plus one
        extra whenever the running sum of discarded fractions crosses 1.0.
        """
        durations_ms = np.asarray(durations_ms, dtype=np.float64)
        if len(durations_ms) == 0:
            return np.zeros(0, dtype=np.int64)

        exact = durations_ms * self._sample_rate / 1000.0
        whole = np.floor(exact)
        running = self._debt + np.cumsum(exact - whole)
        carried = np.floor(running)
        extra = np.diff(carried, prepend=0.0)

        self._debt = float(running[-1] - carried[-1])
        return (whole + extra).astype(np.int64)

    def render_block(self, frequencies: np.ndarray, durations_ms: np.ndarray) -> np.ndarray:
        """Render consecutive segments to int16 samples.

        Args:
            frequencies: Tone frequency per segment (Hz); 0 is silence.
            durations_ms: Duration per segment (ms).
        """
        frequencies = np.asarray(frequencies, dtype=np.float64)
        counts = self.sample_counts(durations_ms)
        total = int(counts.sum())
        if total == 0:
            return np.zeros(0, dtype=np.int16)

        steps = np.repeat(TWO_PI * frequencies / self._sample_rate, counts)
        phases = np.empty(total, dtype=np.float64)
        phases[0] = 0.0
        np.cumsum(steps[:-1], out=phases[1:])
        phases += self._phase

        self._phase = float(np.mod(phases[-1] + steps[-1], TWO_PI))

        waveform = np.sin(phases)
        waveform[np.repeat(frequencies <= 0, counts)] = 0.0
        return quantize(waveform, self._amplitude)

    def render_tone(self, frequency: float, duration_ms: float) -> np.ndarray:
        """Render a single segment."""
        return self.render_block(np.array([frequency]), np.array([duration_ms]))

    def render_segments(self, segments: Iterable[ToneSegment]) -> np.ndarray:
        block = ToneBlock.from_segments(segments)
        return self.render_block(block.frequencies, block.durations_ms)

    def render(self, blocks: Iterable[ToneBlock]) -> np.ndarray:
        """Render a whole stream of blocks into one int16 array."""
        chunks = [self.render_block(b.frequencies, b.durations_ms) for b in blocks]
        if not chunks:
            return np.zeros(0, dtype=np.int16)
        return np.concatenate(chunks)
