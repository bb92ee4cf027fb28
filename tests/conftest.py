"""Shared test helpers: reading the VIS code back out of generated audio."""

import numpy as np
import pytest

from sstv_modulator.constants import (
    FREQ_LEADER,
    FREQ_PIXEL_LOW,
    FREQ_SYNC,
    FREQ_VIS_BIT_0,
    FREQ_VIS_BIT_1,
    FREQ_WHITE,
    VIS_BIT_MS,
    VIS_DATA_BITS,
)

HEADER_TONES = np.array([FREQ_VIS_BIT_1, FREQ_SYNC, FREQ_VIS_BIT_0,
                         FREQ_PIXEL_LOW, FREQ_LEADER, FREQ_WHITE], dtype=np.float64)


def tone_energy(frames, frequencies, sample_rate):
    """Single-bin DFT energy of each row of ``frames`` at each frequency."""
    n = np.arange(frames.shape[-1])
    basis = np.exp(-2j * np.pi * np.outer(n, frequencies) / sample_rate)
    return np.abs(frames @ basis) ** 2


def read_header_code(samples, sample_rate, search_s=4.0):
    """Return the VIS code carried by ``samples``, or None.

    Classifies 5 ms frames (1 ms hop) by their strongest header tone, takes
    the first leader run of at least 200 ms followed by at least 20 ms of
    something else as the start bit, then compares 1100 Hz against 1300 Hz
    energy in the middle 20 ms of each following 30 ms bit.
    """
    audio = np.asarray(samples, dtype=np.float64)[:int(search_s * sample_rate)] / 32768.0
    window = max(8, round(0.005 * sample_rate))
    hop = max(1, round(0.001 * sample_rate))
    if len(audio) < window:
        return None

    frames = np.lib.stride_tricks.sliding_window_view(audio, window)[::hop]
    strongest = HEADER_TONES[np.argmax(tone_energy(frames, HEADER_TONES, sample_rate), axis=1)]
    is_leader = strongest == FREQ_LEADER

    edges = np.flatnonzero(np.diff(is_leader.astype(np.int8))) + 1
    starts = np.concatenate(([0], edges))
    lengths = np.diff(np.concatenate((starts, [len(is_leader)])))

    start_bit = None
    for i in range(len(starts) - 1):
        leader_long = is_leader[starts[i]] and lengths[i] * hop >= 0.200 * sample_rate
        gap_long = lengths[i + 1] * hop >= 0.020 * sample_rate
        if leader_long and gap_long:
            start_bit = starts[i + 1] * hop + window // 2
            break
    if start_bit is None:
        return None

    bit_len = VIS_BIT_MS / 1000.0 * sample_rate
    half = round(0.010 * sample_rate)
    bits = []
    for i in range(VIS_DATA_BITS + 1):
        center = int(start_bit + bit_len * (i + 1.5))
        chunk = audio[center - half:center + half]
        if len(chunk) < 2 * half:
            return None
        one, zero = tone_energy(chunk[np.newaxis, :], [FREQ_VIS_BIT_1, FREQ_VIS_BIT_0],
                                sample_rate)[0]
        bits.append(1 if one > zero else 0)

    if sum(bits) % 2:
        return None
    return sum(bit << i for i, bit in enumerate(bits[:VIS_DATA_BITS]))


@pytest.fixture
def header_code():
    """VIS read-back helper: ``header_code(samples, sample_rate)``."""
    return read_header_code
