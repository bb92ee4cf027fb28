"""SSTV mode specifications.

Dataclass definitions for each supported SSTV mode: resolution, VIS code,
colour model and the ordered tone layout of one transmitted line. The
encoder walks these tables; nothing mode-specific lives in code.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Union

from .constants import (
    FREQ_BLACK,
    FREQ_LEADER,
    FREQ_SYNC,
    FREQ_WHITE,
    VIS_DATA_BITS,
)


class Mode(enum.Enum):
    """Supported SSTV protocol variants."""
    ROBOT_36 = 'Robot36'
    SCOTTIE_DX = 'ScottieDX'
    MARTIN_M1 = 'MartinM1'
    PD_120 = 'PD120'

    def __str__(self) -> str:
        return self.value


class ColorModel(enum.Enum):
    """Color encoding models used by SSTV modes."""
    RGB = 'rgb'          # Independent R, G, B scans per line (Martin, Scottie)
    YCRCB = 'ycrcb'      # Luminance + colour difference (Robot, PD)


class Channel(enum.Enum):
    """Pixel plane a scan reads its intensities from."""
    RED = 'red'
    GREEN = 'green'
    BLUE = 'blue'
    LUMA = 'y'
    CHROMA_RY = 'r-y'
    CHROMA_BY = 'b-y'

    @property
    def plane(self) -> int:
        """Index of this channel in the processed pixel buffer."""
        return _CHANNEL_PLANES[self]

    @property
    def color_model(self) -> ColorModel:
        if self in (Channel.RED, Channel.GREEN, Channel.BLUE):
            return ColorModel.RGB
        return ColorModel.YCRCB


_CHANNEL_PLANES = {
    Channel.RED: 0,
    Channel.GREEN: 1,
    Channel.BLUE: 2,
    Channel.LUMA: 0,
    Channel.CHROMA_RY: 1,
    Channel.CHROMA_BY: 2,
}


@dataclass(frozen=True)
class Pulse:
    """Fixed tone inside a line (sync, porch or separator).

    Attributes:
        frequency: Tone frequency (Hz).
        duration_ms: Tone duration (ms).
    """
    frequency: float
    duration_ms: float


@dataclass(frozen=True)
class Scan:
    """One tone per pixel across the image width.

    Attributes:
        channel: Plane the intensities are read from.
        pixel_ms: Duration of each pixel tone (ms).
        rows: Row offsets (relative to the first row of the line) whose
            values are averaged. ``(0, 1)`` sends the mean of a row pair.
    """
    channel: Channel
    pixel_ms: float
    rows: tuple[int, ...] = (0,)


LineElement = Union[Pulse, Scan]


@dataclass(frozen=True)
class SSTVMode:
    """Complete specification of an SSTV mode.

    Attributes:
        mode: Enum member this entry describes.
        name: Human-readable mode name (e.g. 'Robot-36').
        vis_code: VIS code that identifies this mode.
        width: Image width in pixels.
        height: Image height in lines.
        color_model: Color encoding model.
        nominal_duration_s: Published transmission time (s).
        layout: Ordered pulses and scans making up one table line.
        rows_per_line: Image rows covered by one pass over ``layout``.
        preamble: Pulses sent once, before the first line.
    """
    mode: Mode
    name: str
    vis_code: int
    width: int
    height: int
    color_model: ColorModel
    nominal_duration_s: float
    layout: tuple[LineElement, ...]
    rows_per_line: int = 1
    preamble: tuple[Pulse, ...] = field(default_factory=tuple)

    @property
    def dimensions(self) -> tuple[int, int]:
        return self.width, self.height

    @property
    def vis_bits(self) -> tuple[int, ...]:
        """VIS data bits in transmission order (LSB first)."""
        return tuple((self.vis_code >> i) & 1 for i in range(VIS_DATA_BITS))

    @property
    def parity_bit(self) -> int:
        """Even parity over the VIS data bits."""
        return sum(self.vis_bits) % 2

    @property
    def line_count(self) -> int:
        """Number of passes over ``layout`` for one image."""
        return self.height // self.rows_per_line

    @property
    def line_duration_ms(self) -> float:
        """Duration of one pass over ``layout`` (ms)."""
        total = 0.0
        for element in self.layout:
            if isinstance(element, Pulse):
                total += element.duration_ms
            else:
                total += element.pixel_ms * self.width
        return total

    @property
    def scan_seconds(self) -> float:
        """Exact duration of the image part of the transmission (s)."""
        preamble_ms = sum(p.duration_ms for p in self.preamble)
        return (preamble_ms + self.line_duration_ms * self.line_count) / 1000.0


# ---------------------------------------------------------------------------
# Robot family
# ---------------------------------------------------------------------------

# Two rows per table line. Chroma alternates: R-Y of the row pair after the
# even row, B-Y of the row pair after the odd row.
ROBOT_36 = SSTVMode(
    mode=Mode.ROBOT_36,
    name='Robot-36',
    vis_code=8,
    width=320,
    height=240,
    color_model=ColorModel.YCRCB,
    nominal_duration_s=36.0,
    rows_per_line=2,
    layout=(
        Pulse(FREQ_SYNC, 9.0),
        Pulse(FREQ_BLACK, 3.0),
        Scan(Channel.LUMA, 0.275, rows=(0,)),
        Pulse(FREQ_BLACK, 4.5),     # even separator
        Pulse(FREQ_LEADER, 1.5),
        Scan(Channel.CHROMA_RY, 0.1375, rows=(0, 1)),
        Pulse(FREQ_SYNC, 9.0),
        Pulse(FREQ_BLACK, 3.0),
        Scan(Channel.LUMA, 0.275, rows=(1,)),
        Pulse(FREQ_WHITE, 4.5),     # odd separator
        Pulse(FREQ_LEADER, 1.5),
        Scan(Channel.CHROMA_BY, 0.1375, rows=(0, 1)),
    ),
)

# ---------------------------------------------------------------------------
# Scottie family
# ---------------------------------------------------------------------------

# Sync sits between the blue and red scans; a single leading sync pulse
# precedes the first line.
SCOTTIE_DX = SSTVMode(
    mode=Mode.SCOTTIE_DX,
    name='Scottie-DX',
    vis_code=76,
    width=320,
    height=256,
    color_model=ColorModel.RGB,
    nominal_duration_s=269.6,
    preamble=(Pulse(FREQ_SYNC, 9.0),),
    layout=(
        Pulse(FREQ_BLACK, 1.5),
        Scan(Channel.GREEN, 1.08),
        Pulse(FREQ_BLACK, 1.5),
        Scan(Channel.BLUE, 1.08),
        Pulse(FREQ_SYNC, 9.0),
        Pulse(FREQ_BLACK, 1.5),
        Scan(Channel.RED, 1.08),
    ),
)

# ---------------------------------------------------------------------------
# Martin family
# ---------------------------------------------------------------------------

MARTIN_M1 = SSTVMode(
    mode=Mode.MARTIN_M1,
    name='Martin-M1',
    vis_code=44,
    width=320,
    height=256,
    color_model=ColorModel.RGB,
    nominal_duration_s=114.7,
    layout=(
        Pulse(FREQ_SYNC, 4.862),
        Pulse(FREQ_BLACK, 0.572),
        Scan(Channel.GREEN, 0.4576),
        Pulse(FREQ_BLACK, 0.572),
        Scan(Channel.BLUE, 0.4576),
        Pulse(FREQ_BLACK, 0.572),
        Scan(Channel.RED, 0.4576),
        Pulse(FREQ_BLACK, 0.572),
    ),
)

# ---------------------------------------------------------------------------
# PD (Pasokon) family
# ---------------------------------------------------------------------------

# Y1, R-Y, B-Y, Y2 per table line; chroma shared by the row pair.
PD_120 = SSTVMode(
    mode=Mode.PD_120,
    name='PD-120',
    vis_code=95,
    width=640,
    height=496,
    color_model=ColorModel.YCRCB,
    nominal_duration_s=120.0,
    rows_per_line=2,
    layout=(
        Pulse(FREQ_SYNC, 20.0),
        Pulse(FREQ_BLACK, 2.08),
        Scan(Channel.LUMA, 0.19, rows=(0,)),
        Scan(Channel.CHROMA_RY, 0.19, rows=(0, 1)),
        Scan(Channel.CHROMA_BY, 0.19, rows=(0, 1)),
        Scan(Channel.LUMA, 0.19, rows=(1,)),
    ),
)


# ---------------------------------------------------------------------------
# Mode registry
# ---------------------------------------------------------------------------

MODE_SPECS: dict[Mode, SSTVMode] = {
    m.mode: m for m in [
        ROBOT_36,
        SCOTTIE_DX,
        MARTIN_M1,
        PD_120,
    ]
}

ALL_MODES: dict[int, SSTVMode] = {m.vis_code: m for m in MODE_SPECS.values()}


def _normalize_name(name: str) -> str:
    return ''.join(c for c in name.lower() if c.isalnum())


MODE_BY_NAME: dict[str, SSTVMode] = {}
for _spec in MODE_SPECS.values():
    MODE_BY_NAME[_normalize_name(_spec.name)] = _spec
    MODE_BY_NAME[_normalize_name(_spec.mode.name)] = _spec


def get_mode_spec(mode: Mode) -> SSTVMode:
    """Return the catalog entry for ``mode``.

    Every ``Mode`` member has an entry; a miss is a programming error and
    raises ``KeyError``.
    """
    return MODE_SPECS[mode]


def get_mode_by_vis(vis_code: int) -> SSTVMode | None:
    """Look up an SSTV mode by its VIS code."""
    return ALL_MODES.get(vis_code)


def get_mode_by_name(name: str) -> SSTVMode | None:
    """Look up an SSTV mode by name ('Robot36', 'Robot-36', 'robot_36')."""
    return MODE_BY_NAME.get(_normalize_name(name))


def get_supported_modes() -> list[tuple[Mode, str, tuple[int, int], float]]:
    """List (mode, display name, dimensions, nominal seconds) per mode."""
    return [
        (spec.mode, spec.name, spec.dimensions, spec.nominal_duration_s)
        for spec in MODE_SPECS.values()
    ]
