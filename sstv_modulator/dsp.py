"""Intensity-to-frequency mapping for SSTV picture tones."""

from __future__ import annotations

from .constants import COLOR_FREQ_MULT, FREQ_PIXEL_LOW


def pixel_to_freq(value):
    """Map channel intensity (0-255) onto the picture band.

    Linear mapping: 0 = 1500 Hz (black), 255 = 2300 Hz (white). Accepts a
    scalar or a numpy array; values are not rounded, so averaged chroma
    keeps its fractional part.
    """
    return FREQ_PIXEL_LOW + value * COLOR_FREQ_MULT
