"""Tests for the SSTV mode catalog."""

import pytest

from sstv_modulator.constants import FREQ_BLACK, FREQ_LEADER, FREQ_SYNC, FREQ_WHITE
from sstv_modulator.modes import (
    ALL_MODES,
    MARTIN_M1,
    MODE_SPECS,
    PD_120,
    ROBOT_36,
    SCOTTIE_DX,
    Channel,
    ColorModel,
    Mode,
    Pulse,
    Scan,
    get_mode_by_name,
    get_mode_by_vis,
    get_mode_spec,
    get_supported_modes,
)


class TestCatalogCompleteness:
    """Every mode has exactly one consistent table entry."""

    def test_every_mode_has_a_spec(self):
        """Each Mode member should resolve to its own spec."""
        assert set(MODE_SPECS) == set(Mode)
        for mode in Mode:
            assert get_mode_spec(mode).mode is mode

    def test_vis_codes_are_unique(self):
        """No two modes share a VIS code."""
        assert len(ALL_MODES) == len(Mode)

    @pytest.mark.parametrize('mode', list(Mode))
    def test_scans_match_color_model(self, mode):
        """Scans only read planes that exist in the mode's colour model."""
        spec = get_mode_spec(mode)
        scans = [el for el in spec.layout if isinstance(el, Scan)]
        assert scans
        for scan in scans:
            assert scan.channel.color_model == spec.color_model
            assert all(0 <= row < spec.rows_per_line for row in scan.rows)

    @pytest.mark.parametrize('mode', list(Mode))
    def test_height_divides_into_lines(self, mode):
        """Line pairs must cover the image exactly."""
        spec = get_mode_spec(mode)
        assert spec.height % spec.rows_per_line == 0

    def test_missing_entry_is_fatal(self):
        """A lookup miss is a programming error, not a recoverable one."""
        with pytest.raises(KeyError):
            get_mode_spec('Robot36')


class TestPublishedParameters:
    """Table values against the published mode definitions."""

    @pytest.mark.parametrize('spec, vis, size, nominal', [
        (ROBOT_36, 8, (320, 240), 36.0),
        (SCOTTIE_DX, 76, (320, 256), 269.6),
        (MARTIN_M1, 44, (320, 256), 114.7),
        (PD_120, 95, (640, 496), 120.0),
    ])
    def test_identity(self, spec, vis, size, nominal):
        """VIS code, resolution and nominal duration."""
        assert spec.vis_code == vis
        assert spec.dimensions == size
        assert spec.nominal_duration_s == nominal

    def test_robot36_vis_bits(self):
        """Robot-36 VIS 8 = 0001000, sent LSB first with even parity 1."""
        assert ROBOT_36.vis_bits == (0, 0, 0, 1, 0, 0, 0)
        assert ROBOT_36.parity_bit == 1

    def test_pd120_vis_bits(self):
        """PD-120 VIS 95 = 1011111 has six ones, so parity is 0."""
        assert PD_120.vis_bits == (1, 1, 1, 1, 1, 0, 1)
        assert PD_120.parity_bit == 0

    def test_scottie_dx_parity(self):
        """Scottie-DX VIS 76 = 1001100 has three ones."""
        assert SCOTTIE_DX.vis_bits == (0, 0, 1, 1, 0, 0, 1)
        assert SCOTTIE_DX.parity_bit == 1

    def test_robot36_line_timing(self):
        """Robot-36 rows are 150 ms each, 36.0 s for the whole image."""
        assert ROBOT_36.line_duration_ms == pytest.approx(300.0)
        assert ROBOT_36.scan_seconds == pytest.approx(36.0)

    def test_robot36_alternating_chroma(self):
        """R-Y follows the even row and B-Y the odd row, both pair-averaged."""
        scans = [el for el in ROBOT_36.layout if isinstance(el, Scan)]
        assert [s.channel for s in scans] == [
            Channel.LUMA, Channel.CHROMA_RY, Channel.LUMA, Channel.CHROMA_BY]
        assert scans[1].rows == (0, 1)
        assert scans[3].rows == (0, 1)

        separators = [el for el in ROBOT_36.layout
                      if isinstance(el, Pulse) and el.duration_ms == 4.5]
        assert [p.frequency for p in separators] == [FREQ_BLACK, FREQ_WHITE]
        porches = [el for el in ROBOT_36.layout
                   if isinstance(el, Pulse) and el.duration_ms == 1.5]
        assert all(p.frequency == FREQ_LEADER for p in porches)

    def test_martin_m1_line_timing(self):
        """Martin-M1: 4.862 ms sync, 0.572 ms gaps, 146.432 ms per colour."""
        assert MARTIN_M1.line_duration_ms == pytest.approx(446.446)
        assert MARTIN_M1.layout[0] == Pulse(FREQ_SYNC, 4.862)
        order = [el.channel for el in MARTIN_M1.layout if isinstance(el, Scan)]
        assert order == [Channel.GREEN, Channel.BLUE, Channel.RED]

    def test_scottie_dx_sync_between_blue_and_red(self):
        """Scottie-DX sends its line sync mid-line plus one leading sync."""
        assert SCOTTIE_DX.preamble == (Pulse(FREQ_SYNC, 9.0),)
        assert SCOTTIE_DX.layout[4] == Pulse(FREQ_SYNC, 9.0)
        assert SCOTTIE_DX.line_duration_ms == pytest.approx(1050.3)

    def test_pd120_line_timing(self):
        """PD-120 sends Y1, R-Y, B-Y, Y2 per 508.48 ms line pair."""
        assert PD_120.rows_per_line == 2
        assert PD_120.line_count == 248
        assert PD_120.line_duration_ms == pytest.approx(508.48)

    def test_rgb_and_ycrcb_models(self):
        """Martin and Scottie send RGB; Robot and PD send luma/chroma."""
        assert MARTIN_M1.color_model == ColorModel.RGB
        assert SCOTTIE_DX.color_model == ColorModel.RGB
        assert ROBOT_36.color_model == ColorModel.YCRCB
        assert PD_120.color_model == ColorModel.YCRCB


class TestLookups:
    """Tests for name and VIS lookups."""

    @pytest.mark.parametrize('name', ['Robot36', 'Robot-36', 'robot_36', 'ROBOT 36'])
    def test_name_variants(self, name):
        """Spelling and separators should not matter."""
        assert get_mode_by_name(name) is ROBOT_36

    def test_enum_name(self):
        """Enum member names resolve too."""
        assert get_mode_by_name('PD_120') is PD_120
        assert get_mode_by_name('MartinM1') is MARTIN_M1

    def test_unknown_name(self):
        """Unknown names return None."""
        assert get_mode_by_name('Scottie1') is None

    def test_vis_lookup(self):
        """VIS lookups return the matching spec or None."""
        assert get_mode_by_vis(76) is SCOTTIE_DX
        assert get_mode_by_vis(60) is None

    def test_supported_modes(self):
        """Supported mode listing mirrors the catalog."""
        modes = get_supported_modes()
        assert len(modes) == 4
        for mode, name, size, seconds in modes:
            spec = get_mode_spec(mode)
            assert name == spec.name
            assert size == spec.dimensions
            assert seconds == spec.nominal_duration_s
