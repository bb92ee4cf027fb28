"""SSTV protocol constants.

VIS (Vertical Interval Signaling) codes, frequency assignments, header
timing and synthesis defaults shared by every supported mode.
"""

from __future__ import annotations

VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Audio / synthesis
# ---------------------------------------------------------------------------
DEFAULT_SAMPLE_RATE = 6000  # Hz - smallest rate that keeps 2300 Hz below Nyquist
MIN_SAMPLE_RATE = 6000
MAX_SAMPLE_RATE = 192000

CHANNEL_COUNT = 1
BIT_DEPTH = 16
BYTES_PER_SAMPLE = BIT_DEPTH // 8
FULL_SCALE = 32767

# Fraction of full scale used for tones (headroom against clipping)
AMPLITUDE = 0.8

# WAVE RIFF header size, used for file size estimates
WAV_HEADER_BYTES = 44

# ---------------------------------------------------------------------------
# SSTV tone frequencies (Hz)
# ---------------------------------------------------------------------------
FREQ_VIS_BIT_1 = 1100     # VIS logic 1
FREQ_SYNC = 1200           # Horizontal sync pulse
FREQ_VIS_BIT_0 = 1300      # VIS logic 0
FREQ_BREAK = 1200          # Break tone in VIS header (same as sync)
FREQ_LEADER = 1900         # Leader / calibration tone
FREQ_BLACK = 1500          # Black level
FREQ_WHITE = 2300          # White level
FREQ_SILENCE = 0           # No carrier

# Pixel luminance mapping range
FREQ_PIXEL_LOW = 1500      # 0 luminance
FREQ_PIXEL_HIGH = 2300     # 255 luminance

# Hz per intensity step (800 Hz band over 255 steps)
COLOR_FREQ_MULT = 3.1372549

# ---------------------------------------------------------------------------
# Header / trailer timing (milliseconds)
# ---------------------------------------------------------------------------
SILENCE_MS = 200.0
VOX_TONE_MS = 100.0
VIS_LEADER_MS = 300.0
VIS_BREAK_MS = 10.0
VIS_BIT_MS = 30.0
VIS_START_BIT_MS = 30.0
VIS_STOP_BIT_MS = 30.0
VIS_DATA_BITS = 7

# VOX tones that open the transmission and key up voice-operated radios
VOX_SEQUENCE: tuple[tuple[float, float], ...] = tuple(
    (freq, VOX_TONE_MS)
    for freq in (1900, 1500, 1900, 1500, 2300, 1500, 2300, 1500)
)

# Closing tones sent after the last scan line
TRAILER_SEQUENCE: tuple[tuple[float, float], ...] = (
    (1500, 500.0),
    (1900, 100.0),
    (1500, 100.0),
    (1900, 100.0),
    (1500, 100.0),
)

# ---------------------------------------------------------------------------
# Image preprocessing
# ---------------------------------------------------------------------------

# Source rasters larger than this multiple of the target pixel count are
# reported as oversized (they still get processed)
OVERSIZE_FACTOR = 16

# Memory budget assumed by check_memory_requirements (MB)
DEFAULT_AVAILABLE_MEMORY_MB = 100.0
