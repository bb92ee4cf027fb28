"""Tests for phase-continuous tone synthesis."""

import math

import numpy as np
import pytest

from sstv_modulator.constants import MAX_SAMPLE_RATE, MIN_SAMPLE_RATE
from sstv_modulator.encoder import ToneSegment
from sstv_modulator.errors import InvalidSampleRate
from sstv_modulator.synth import ToneSynthesizer, quantize, validate_sample_rate


@pytest.fixture
def synth():
    return ToneSynthesizer(11025)


class TestSampleRateValidation:
    """Supported rate range is inclusive at both ends."""

    @pytest.mark.parametrize('rate', [MIN_SAMPLE_RATE, 8000, 44100, MAX_SAMPLE_RATE])
    def test_accepted(self, rate):
        """Rates inside the range are returned unchanged."""
        assert validate_sample_rate(rate) == rate

    @pytest.mark.parametrize('rate', [0, -44100, 5999, 192001])
    def test_rejected(self, rate):
        """Rates outside the range raise InvalidSampleRate."""
        with pytest.raises(InvalidSampleRate) as excinfo:
            validate_sample_rate(rate)
        assert excinfo.value.sample_rate == rate
        assert excinfo.value.min_rate == MIN_SAMPLE_RATE
        assert excinfo.value.max_rate == MAX_SAMPLE_RATE

    @pytest.mark.parametrize('rate', [True, 44100.5, '44100', None])
    def test_non_integer_rejected(self, rate):
        """Booleans, fractional floats and strings are not rates."""
        with pytest.raises(InvalidSampleRate):
            validate_sample_rate(rate)

    def test_integral_float_and_numpy(self):
        """Integral floats and numpy integers are coerced to int."""
        assert validate_sample_rate(48000.0) == 48000
        assert type(validate_sample_rate(np.int32(22050))) is int

    def test_is_value_error(self):
        """Callers catching ValueError also see bad rates."""
        with pytest.raises(ValueError):
            ToneSynthesizer(1000)


class TestSampleCounts:
    """Fractional sample debt accounting."""

    def test_whole_sample_durations(self):
        """Durations that are whole samples carry no debt."""
        synth = ToneSynthesizer(6000)
        counts = synth.sample_counts(np.array([200.0, 30.0, 10.0]))
        assert counts.tolist() == [1200, 180, 60]
        assert synth.debt == 0.0

    def test_fractions_accumulate(self):
        """0.5-sample remainders turn into an extra sample every other segment."""
        synth = ToneSynthesizer(6000)
        counts = synth.sample_counts(np.full(4, 0.25))  # 1.5 samples each
        assert counts.tolist() == [1, 2, 1, 2]
        assert synth.debt == pytest.approx(0.0)

    def test_debt_stays_below_one(self, synth):
        """Debt is always in [0, 1) across calls."""
        rng = np.random.default_rng(0)
        for _ in range(50):
            synth.sample_counts(rng.uniform(0.01, 5.0, size=37))
            assert 0.0 <= synth.debt < 1.0

    def test_total_within_one_sample(self, synth):
        """Many short segments never drift more than one sample."""
        durations = np.full(100000, 0.1375)
        total = 0
        for chunk in np.split(durations, 100):
            total += int(synth.sample_counts(chunk).sum())
        assert abs(total - 11025 * durations.sum() / 1000.0) <= 1.0

    def test_empty(self, synth):
        """No segments, no samples."""
        assert len(synth.sample_counts(np.array([]))) == 0
        assert synth.debt == 0.0


class TestRendering:
    """Waveform generation."""

    def test_tone_length_and_dtype(self, synth):
        """A 100 ms tone at 11025 Hz is 1102 samples of int16."""
        samples = synth.render_tone(1900, 100)
        assert samples.dtype == np.int16
        assert len(samples) == 1102

    def test_first_sample_is_zero_phase(self, synth):
        """Synthesis starts at phase 0."""
        samples = synth.render_tone(1500, 10)
        assert samples[0] == 0

    def test_amplitude(self):
        """Peaks reach 80% of full scale."""
        synth = ToneSynthesizer(48000)
        samples = synth.render_tone(1000, 100)
        assert samples.max() == pytest.approx(round(0.8 * 32767), abs=2)
        assert samples.min() == pytest.approx(-round(0.8 * 32767), abs=2)

    def test_silence_is_zero(self, synth):
        """Frequency 0 renders digital silence."""
        samples = synth.render_tone(0, 200)
        assert len(samples) == 2205
        assert not samples.any()

    def test_silence_holds_phase(self, synth):
        """Silence does not advance the oscillator."""
        synth.render_tone(1900, 3)
        phase = synth.phase
        synth.render_tone(0, 50)
        assert synth.phase == pytest.approx(phase)

    def test_phase_continuity_across_blocks(self):
        """The next block starts at the phase where the last one ended."""
        synth = ToneSynthesizer(8000)
        synth.render_tone(1200, 9.3)
        phase = synth.phase
        nxt = synth.render_tone(2300, 5)
        assert nxt[0] == pytest.approx(round(0.8 * 32767 * math.sin(phase)), abs=1)

    def test_split_equals_single_block(self):
        """Rendering segments one by one equals rendering them together."""
        freqs = np.array([1200, 1500, 1900, 2300, 0, 1100])
        durs = np.array([4.862, 0.572, 0.4576, 146.432, 3.0, 30.0])

        together = ToneSynthesizer(44100).render_block(freqs, durs)
        split_synth = ToneSynthesizer(44100)
        split = np.concatenate([split_synth.render_tone(f, d) for f, d in zip(freqs, durs)])

        assert len(together) == len(split)
        assert np.max(np.abs(together.astype(int) - split.astype(int))) <= 1

    def test_render_segments(self, synth):
        """ToneSegment sequences render like blocks."""
        samples = synth.render_segments([ToneSegment(1900, 100), ToneSegment(0, 100)])
        assert len(samples) == 2205
        assert not samples[1103:].any()

    def test_reset(self, synth):
        """Reset returns phase and debt to zero."""
        synth.render_tone(1900, 0.37)
        synth.reset()
        assert synth.phase == 0.0
        assert synth.debt == 0.0

    def test_render_no_blocks(self, synth):
        """An empty stream yields an empty array."""
        samples = synth.render([])
        assert samples.dtype == np.int16
        assert len(samples) == 0


class TestQuantize:
    """Float to int16 conversion."""

    def test_rounding(self):
        """Values are rounded, not truncated."""
        waveform = np.array([1.0, -1.0, 0.5, 0.0])
        assert quantize(waveform).tolist() == [26214, -26214, 13107, 0]
