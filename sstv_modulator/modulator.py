"""SSTV modulator.

``encode`` is the stateless pipeline (preprocess -> scan-line encode ->
synthesize) driven by an immutable ``ModulatorConfig``. ``Modulator`` wraps
it with a caller-owned cache of the last processed image and sample buffer,
memory reporting and explicit buffer release for batch work.
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass, replace
from typing import Optional, Union

import numpy as np

from .constants import (
    BIT_DEPTH,
    BYTES_PER_SAMPLE,
    CHANNEL_COUNT,
    DEFAULT_AVAILABLE_MEMORY_MB,
    DEFAULT_SAMPLE_RATE,
    WAV_HEADER_BYTES,
)
from .encoder import ScanLineEncoder, transmission_seconds
from .image import ProcessedImage, ProcessingMetadata, RasterInput, preprocess_image
from .logging import get_logger
from .modes import ColorModel, Mode, SSTVMode, get_mode_by_name, get_mode_spec
from .synth import ToneSynthesizer, validate_sample_rate

logger = get_logger('sstv_modulator.modulator')

_BYTES_PER_MB = 1024 * 1024


def _resolve_mode(mode: Union[Mode, str]) -> Mode:
    if isinstance(mode, Mode):
        return mode
    spec = get_mode_by_name(str(mode))
    if spec is None:
        raise ValueError(f"Unknown SSTV mode: {mode!r}")
    return spec.mode


@dataclass(frozen=True)
class ModulatorConfig:
    """Mode and sample rate for one modulation; validated on construction."""
    mode: Mode
    sample_rate: int = DEFAULT_SAMPLE_RATE

    def __post_init__(self):
        object.__setattr__(self, 'mode', _resolve_mode(self.mode))
        object.__setattr__(self, 'sample_rate', validate_sample_rate(self.sample_rate))

    @property
    def spec(self) -> SSTVMode:
        return get_mode_spec(self.mode)

    def with_mode(self, mode: Union[Mode, str]) -> ModulatorConfig:
        return replace(self, mode=mode)

    def with_sample_rate(self, sample_rate: int) -> ModulatorConfig:
        return replace(self, sample_rate=sample_rate)


@dataclass(frozen=True)
class AudioDescriptor:
    """Finished mono 16-bit PCM signal handed to container writers."""
    sample_rate: int
    samples: np.ndarray
    channels: int = CHANNEL_COUNT
    bit_depth: int = BIT_DEPTH

    @property
    def duration_s(self) -> float:
        return len(self.samples) / self.sample_rate

    @property
    def byte_size(self) -> int:
        return len(self.samples) * BYTES_PER_SAMPLE


@dataclass(frozen=True)
class MemoryUsageMB:
    audio_samples_mb: float
    processed_image_mb: float
    total_mb: float


@dataclass(frozen=True)
class MemoryUsage:
    """Byte sizes of the buffers a Modulator currently holds."""
    audio_samples_bytes: int
    processed_image_bytes: int

    @property
    def total_bytes(self) -> int:
        return self.audio_samples_bytes + self.processed_image_bytes

    def to_mb(self) -> MemoryUsageMB:
        return MemoryUsageMB(
            audio_samples_mb=self.audio_samples_bytes / _BYTES_PER_MB,
            processed_image_mb=self.processed_image_bytes / _BYTES_PER_MB,
            total_mb=self.total_bytes / _BYTES_PER_MB,
        )


@dataclass(frozen=True)
class EncodeResult:
    """Output of one ``encode`` call."""
    config: ModulatorConfig
    processed: ProcessedImage
    samples: np.ndarray

    @property
    def metadata(self) -> ProcessingMetadata:
        return self.processed.metadata

    def audio(self) -> AudioDescriptor:
        return AudioDescriptor(sample_rate=self.config.sample_rate, samples=self.samples)


def encode(image: RasterInput, config: ModulatorConfig) -> EncodeResult:
    """Run the full pipeline for one image.

    Args:
        image: Source raster (PIL Image or numpy array).
        config: Mode and sample rate.

    Returns:
        EncodeResult with the processed image and read-only int16 samples.

    Raises:
        EmptyImage, UnsupportedImageInput: Bad source raster.
        EncodingFailure: Mode table produced an invalid tone.
    """
    spec = config.spec

    started = time.perf_counter()
    processed = preprocess_image(image, spec)
    prepared = time.perf_counter()

    encoder = ScanLineEncoder(processed, spec)
    synth = ToneSynthesizer(config.sample_rate)
    samples = synth.render(encoder.iter_blocks())
    samples.setflags(write=False)
    finished = time.perf_counter()

    logger.debug(f"{spec.name}: preprocess {prepared - started:.3f}s, "
                 f"synthesis {finished - prepared:.3f}s, "
                 f"{encoder.segment_count} segments")

    return EncodeResult(config=config, processed=processed, samples=samples)


class Modulator:
    """Holds a configuration and the buffers of the most recent modulation.

    Usage::

        modulator = Modulator(Mode.ROBOT_36, sample_rate=11025)
        samples = modulator.modulate(image)
        write_wav(modulator.get_audio(), 'out.wav')
        modulator.clear_memory()

    Not safe for concurrent use from several threads.
    """

    def __init__(self, mode: Union[Mode, str] = Mode.ROBOT_36,
                 sample_rate: Optional[int] = None):
        if sample_rate is None:
            sample_rate = DEFAULT_SAMPLE_RATE
        self._config = ModulatorConfig(mode=mode, sample_rate=sample_rate)
        self._processed: Optional[ProcessedImage] = None
        self._samples: Optional[np.ndarray] = None

    @classmethod
    def from_config(cls, config: ModulatorConfig) -> Modulator:
        return cls(config.mode, config.sample_rate)

    @property
    def config(self) -> ModulatorConfig:
        return self._config

    @property
    def mode(self) -> Mode:
        return self._config.mode

    @property
    def sample_rate(self) -> int:
        return self._config.sample_rate

    @property
    def spec(self) -> SSTVMode:
        return self._config.spec

    def configure(self, mode: Union[Mode, str, None] = None,
                  sample_rate: Optional[int] = None) -> ModulatorConfig:
        """Switch mode and/or sample rate, dropping buffers from the old config.

        The new configuration is validated before anything is cleared.
        """
        config = self._config
        if mode is not None:
            config = config.with_mode(mode)
        if sample_rate is not None:
            config = config.with_sample_rate(sample_rate)

        self._config = config
        self.clear_memory()
        logger.debug(f"Reconfigured: {config.spec.name} at {config.sample_rate} Hz")
        return config

    def modulate(self, image: RasterInput) -> np.ndarray:
        """Encode ``image`` and replace both held buffers.

        On failure the previously held buffers are left untouched.

        Returns:
            Read-only int16 sample array.
        """
        result = encode(image, self._config)

        self._processed = result.processed
        self._samples = result.samples

        logger.info(f"Modulated {result.metadata.original_dimensions[0]}x"
                    f"{result.metadata.original_dimensions[1]} image as {self.spec.name} "
                    f"at {self.sample_rate} Hz: {len(result.samples)} samples "
                    f"({len(result.samples) / self.sample_rate:.2f}s)")
        return result.samples

    def get_samples(self) -> np.ndarray:
        """Read-only view of the held samples (empty when cleared)."""
        if self._samples is None:
            empty = np.zeros(0, dtype=np.int16)
            empty.setflags(write=False)
            return empty
        return self._samples

    def get_audio(self) -> AudioDescriptor:
        return AudioDescriptor(sample_rate=self.sample_rate, samples=self.get_samples())

    def get_processed_image(self) -> Optional[ProcessedImage]:
        return self._processed

    def get_processing_metadata(self) -> Optional[ProcessingMetadata]:
        if self._processed is None:
            return None
        return self._processed.metadata

    def get_memory_usage(self) -> MemoryUsage:
        """Compute the byte size of the held buffers."""
        audio_bytes = 0 if self._samples is None else self._samples.nbytes
        image_bytes = 0 if self._processed is None else self._processed.nbytes
        return MemoryUsage(audio_samples_bytes=audio_bytes, processed_image_bytes=image_bytes)

    def clear_audio_samples(self) -> None:
        self._samples = None

    def clear_image_memory(self) -> None:
        self._processed = None

    def clear_memory(self) -> None:
        self.clear_audio_samples()
        self.clear_image_memory()

    def should_clear_memory(self, threshold_mb: float) -> bool:
        return self.get_memory_usage().total_bytes > threshold_mb * _BYTES_PER_MB

    def auto_memory_management(self, threshold_mb: float) -> bool:
        """Release all buffers when usage exceeds ``threshold_mb``.

        Returns:
            True if the buffers were released.
        """
        if self.should_clear_memory(threshold_mb):
            logger.debug(f"Memory above {threshold_mb} MB, releasing buffers")
            self.clear_memory()
            return True
        return False


# ---------------------------------------------------------------------------
# Estimates
# ---------------------------------------------------------------------------

def _processed_bytes(spec: SSTVMode) -> int:
    pixels = spec.width * spec.height
    if spec.color_model == ColorModel.YCRCB:
        # uint8 RGB composite plus float64 Y, R-Y, B-Y planes
        return pixels * 3 + pixels * 3 * 8
    return pixels * 3


def estimate_sample_count(mode: Mode, sample_rate: int) -> int:
    """Samples produced for ``mode`` at ``sample_rate`` (within one)."""
    sample_rate = validate_sample_rate(sample_rate)
    return int(math.floor(transmission_seconds(get_mode_spec(mode)) * sample_rate))


def estimate_file_size(mode: Mode, sample_rate: int, bit_depth: int = BIT_DEPTH) -> int:
    """Estimated WAVE file size in bytes for one transmission."""
    return estimate_sample_count(mode, sample_rate) * (bit_depth // 8) + WAV_HEADER_BYTES


def estimate_memory_usage(image_width: int, image_height: int,
                          mode: Mode, sample_rate: int) -> int:
    """Peak bytes needed to modulate a ``image_width`` x ``image_height`` source."""
    spec = get_mode_spec(mode)
    source_bytes = image_width * image_height * 3
    audio_bytes = estimate_sample_count(mode, sample_rate) * BYTES_PER_SAMPLE
    return source_bytes + _processed_bytes(spec) + audio_bytes + 1024


def check_memory_requirements(
    image_width: int,
    image_height: int,
    mode: Mode,
    sample_rate: int,
    available_mb: float = DEFAULT_AVAILABLE_MEMORY_MB,
) -> tuple[bool, float, Optional[tuple[int, int]]]:
    """Check a modulation against a memory budget.

    Returns:
        Tuple of (fits, required MB, suggested source size or None). The
        suggestion scales the source down with a 20% margin, never below
        100 pixels per side.
    """
    required_mb = estimate_memory_usage(image_width, image_height, mode, sample_rate) / _BYTES_PER_MB
    has_enough = required_mb <= available_mb

    suggested = None
    if not has_enough:
        scale = math.sqrt(available_mb / required_mb * 0.8)
        suggested = (max(100, int(image_width * scale)), max(100, int(image_height * scale)))

    return has_enough, required_mb, suggested
