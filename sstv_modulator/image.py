"""Image preprocessing for SSTV encoding.

Fits an arbitrary raster into a mode's exact resolution without distortion
(uniform scale, Lanczos resampling, centred on a black canvas) and converts
it into the pixel planes the mode transmits.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Union

import numpy as np
from PIL import Image

from .constants import OVERSIZE_FACTOR
from .errors import EmptyImage, UnsupportedImageInput
from .logging import get_logger
from .modes import ColorModel, Mode, SSTVMode

logger = get_logger('sstv_modulator.image')

RasterInput = Union[Image.Image, np.ndarray]

# Pillow modes converted straight to RGB, and modes whose alpha is composited
# over the black canvas
_OPAQUE_PIL_MODES = {'1', 'L', 'P', 'RGB', 'RGBX', 'CMYK', 'YCbCr', 'LAB', 'HSV'}
_ALPHA_PIL_MODES = {'LA', 'La', 'PA', 'RGBA', 'RGBa'}

# Single-channel modes wider than 8 bits, with the value that maps to white.
# Pillow decodes 16-bit grayscale files into the I modes.
_HIGH_DEPTH_PIL_MODES = {
    'I;16': 65535,
    'I;16L': 65535,
    'I;16B': 65535,
    'I;16N': 65535,
    'I': 65535,
    'F': 255,
}

# numpy channel count -> Pillow mode inferred by Image.fromarray
_ARRAY_CHANNELS = {1: 'L', 2: 'LA', 3: 'RGB', 4: 'RGBA'}


@dataclass(frozen=True)
class ProcessingMetadata:
    """How a source raster was fitted into the mode resolution."""
    original_dimensions: tuple[int, int]
    target_dimensions: tuple[int, int]
    mode: Mode
    scale_factor: float
    black_bars: tuple[int, int, int, int]  # left, top, right, bottom
    processing_timestamp: str

    def to_dict(self) -> dict:
        left, top, right, bottom = self.black_bars
        return {
            'sstv_mode': self.mode.value,
            'original_dimensions': {
                'width': self.original_dimensions[0],
                'height': self.original_dimensions[1],
            },
            'target_dimensions': {
                'width': self.target_dimensions[0],
                'height': self.target_dimensions[1],
            },
            'scale_factor': self.scale_factor,
            'black_bars': {
                'left': left,
                'top': top,
                'right': right,
                'bottom': bottom,
            },
            'processing_timestamp': self.processing_timestamp,
        }


@dataclass(frozen=True)
class ProcessedImage:
    """Pixel buffer sized exactly to a mode's resolution.

    Attributes:
        mode: Mode the buffer was prepared for.
        color_model: Layout of ``planes``.
        planes: (height, width, 3) array the encoder reads. uint8 R, G, B
            for RGB modes; float64 Y, R-Y, B-Y for YCrCb modes.
        rgb: (height, width, 3) uint8 letterboxed composite.
        metadata: Scaling and letterbox details.
    """
    mode: Mode
    color_model: ColorModel
    planes: np.ndarray
    rgb: np.ndarray
    metadata: ProcessingMetadata

    @property
    def width(self) -> int:
        return self.planes.shape[1]

    @property
    def height(self) -> int:
        return self.planes.shape[0]

    @property
    def nbytes(self) -> int:
        """Bytes held by this buffer (shared arrays counted once)."""
        if self.planes is self.rgb:
            return self.planes.nbytes
        return self.planes.nbytes + self.rgb.nbytes

    def to_pil(self) -> Image.Image:
        """Return the letterboxed composite as an RGB PIL Image."""
        return Image.fromarray(np.ascontiguousarray(self.rgb))


def rgb_to_ycrcb(rgb: np.ndarray) -> np.ndarray:
    """Convert uint8 RGB to SSTV Y, R-Y, B-Y planes.

    Values are kept as float64; averaged chroma and pixel frequencies are
    computed from the unrounded values.
    """
    r = rgb[..., 0].astype(np.float64)
    g = rgb[..., 1].astype(np.float64)
    b = rgb[..., 2].astype(np.float64)

    y = 16.0 + 0.003906 * (65.738 * r + 129.057 * g + 25.064 * b)
    ry = 128.0 + 0.003906 * (112.439 * r - 94.154 * g - 18.285 * b)
    by = 128.0 + 0.003906 * (-37.945 * r - 74.494 * g + 112.439 * b)

    return np.stack([y, ry, by], axis=-1)


def _rescale_to_uint8(array: np.ndarray, white: float) -> np.ndarray:
    """Map ``0..white`` onto 0-255, rounding and clamping out-of-range values."""
    scaled = np.rint(array.astype(np.float64) * (255.0 / white))
    return np.clip(scaled, 0, 255).astype(np.uint8)


def _array_to_pil(array: np.ndarray) -> Image.Image:
    if array.ndim not in (2, 3):
        raise UnsupportedImageInput(f"expected a 2-D or 3-D array, got {array.ndim}-D",
                                    array.shape)

    height, width = array.shape[:2]
    if width == 0 or height == 0:
        raise EmptyImage(width, height)

    channels = 1 if array.ndim == 2 else array.shape[2]
    if channels not in _ARRAY_CHANNELS:
        raise UnsupportedImageInput(f"unrecognized channel count {channels}", array.shape)

    if array.dtype == np.bool_ or not np.issubdtype(array.dtype, np.number) \
            or np.issubdtype(array.dtype, np.complexfloating):
        raise UnsupportedImageInput(f"unsupported pixel type {array.dtype}", array.shape)
    if array.dtype != np.uint8:
        # Integers span their full type range; floats are read on 0-255
        if np.issubdtype(array.dtype, np.integer):
            array = _rescale_to_uint8(array, np.iinfo(array.dtype).max)
        else:
            array = _rescale_to_uint8(array, 255)

    if array.ndim == 3 and channels == 1:
        array = array[..., 0]
    return Image.fromarray(np.ascontiguousarray(array))


def normalize_input(image: RasterInput) -> Image.Image:
    """Return an RGB or RGBA PIL image for any accepted raster.

    Raises:
        EmptyImage: Source width or height is zero.
        UnsupportedImageInput: Unrecognized type, rank, channel count or mode.
    """
    if isinstance(image, np.ndarray):
        image = _array_to_pil(image)
    elif not isinstance(image, Image.Image):
        raise UnsupportedImageInput(f"unsupported raster type {type(image).__name__}")

    width, height = image.size
    if width == 0 or height == 0:
        raise EmptyImage(width, height)

    if image.mode in _OPAQUE_PIL_MODES:
        if 'transparency' in image.info:
            return image.convert('RGBA')
        return image.convert('RGB')
    if image.mode in _ALPHA_PIL_MODES:
        return image.convert('RGBA')
    if image.mode in _HIGH_DEPTH_PIL_MODES:
        gray = _rescale_to_uint8(np.asarray(image), _HIGH_DEPTH_PIL_MODES[image.mode])
        return Image.fromarray(gray).convert('RGB')
    raise UnsupportedImageInput(f"unrecognized channel layout '{image.mode}'",
                                (height, width))


def letterbox(image: Image.Image, width: int, height: int) -> tuple[Image.Image, float, tuple[int, int, int, int]]:
    """Scale ``image`` uniformly to fit ``width`` x ``height`` and centre it on black.

    Returns:
        Tuple of (RGB canvas, scale factor, (left, top, right, bottom) bars).
    """
    src_width, src_height = image.size
    scale = min(width / src_width, height / src_height)

    scaled_width = min(width, max(1, round(src_width * scale)))
    scaled_height = min(height, max(1, round(src_height * scale)))

    scaled = image.resize((scaled_width, scaled_height), Image.Resampling.LANCZOS)

    canvas = Image.new('RGB', (width, height), (0, 0, 0))
    offset_x = (width - scaled_width) // 2
    offset_y = (height - scaled_height) // 2
    if scaled.mode == 'RGBA':
        canvas.paste(scaled, (offset_x, offset_y), scaled)
    else:
        canvas.paste(scaled, (offset_x, offset_y))

    bars = (
        offset_x,
        offset_y,
        width - offset_x - scaled_width,
        height - offset_y - scaled_height,
    )
    return canvas, scale, bars


def preprocess_image(image: RasterInput, spec: SSTVMode) -> ProcessedImage:
    """Fit ``image`` to ``spec`` and convert it to the mode's pixel planes.

    Args:
        image: PIL Image, or a numpy array shaped (H, W) or (H, W, C) with
            C in 1-4 (gray, gray+alpha, RGB, RGBA). Integer arrays span their
            dtype range (uint16 65535 is white); float arrays are read on 0-255.
        spec: Target mode.

    Raises:
        EmptyImage: Source width or height is zero.
        UnsupportedImageInput: Unrecognized rank, channel count or format.
    """
    source = normalize_input(image)
    src_width, src_height = source.size

    if src_width * src_height > spec.width * spec.height * OVERSIZE_FACTOR:
        logger.warning(f"Source image {src_width}x{src_height} is much larger than "
                       f"{spec.name} ({spec.width}x{spec.height}); consider downscaling first")

    canvas, scale, bars = letterbox(source, spec.width, spec.height)

    rgb = np.array(canvas, dtype=np.uint8)
    rgb.setflags(write=False)

    if spec.color_model == ColorModel.YCRCB:
        planes = rgb_to_ycrcb(rgb)
        planes.setflags(write=False)
    else:
        planes = rgb

    metadata = ProcessingMetadata(
        original_dimensions=(src_width, src_height),
        target_dimensions=(spec.width, spec.height),
        mode=spec.mode,
        scale_factor=scale,
        black_bars=bars,
        processing_timestamp=datetime.now(timezone.utc).strftime('%Y%m%d_%H%M%S'),
    )

    logger.debug(f"Preprocessed {src_width}x{src_height} -> {spec.width}x{spec.height} "
                 f"for {spec.name} (scale={scale:.4f}, bars={bars})")

    return ProcessedImage(
        mode=spec.mode,
        color_model=spec.color_model,
        planes=planes,
        rgb=rgb,
        metadata=metadata,
    )
