"""SSTV (Slow-Scan Television) modulator package.

Converts a raster image into a phase-continuous 16-bit PCM waveform for the
Robot-36, Scottie-DX, Martin-M1 and PD-120 modes at any sample rate from
6 kHz to 192 kHz.

numpy does the signal work; Pillow handles resampling and image files.
"""

from .constants import DEFAULT_SAMPLE_RATE, MAX_SAMPLE_RATE, MIN_SAMPLE_RATE, VERSION
from .encoder import ScanLineEncoder, ToneBlock, ToneSegment, transmission_seconds
from .errors import (
    EmptyImage,
    EncodingFailure,
    InvalidSampleRate,
    SSTVError,
    UnsupportedImageInput,
)
from .export import (
    batch_process,
    load_image,
    modulate_file,
    resolve_format,
    save_processed_image,
    write_wav,
)
from .image import ProcessedImage, ProcessingMetadata, preprocess_image
from .modes import (
    MODE_SPECS,
    Mode,
    SSTVMode,
    get_mode_by_name,
    get_mode_by_vis,
    get_mode_spec,
    get_supported_modes,
)
from .modulator import (
    AudioDescriptor,
    EncodeResult,
    MemoryUsage,
    Modulator,
    ModulatorConfig,
    check_memory_requirements,
    encode,
    estimate_file_size,
    estimate_memory_usage,
)
from .synth import ToneSynthesizer

__version__ = VERSION

__all__ = [
    'AudioDescriptor',
    'DEFAULT_SAMPLE_RATE',
    'EmptyImage',
    'EncodeResult',
    'EncodingFailure',
    'InvalidSampleRate',
    'MAX_SAMPLE_RATE',
    'MIN_SAMPLE_RATE',
    'MODE_SPECS',
    'MemoryUsage',
    'Mode',
    'Modulator',
    'ModulatorConfig',
    'ProcessedImage',
    'ProcessingMetadata',
    'SSTVError',
    'SSTVMode',
    'ScanLineEncoder',
    'ToneBlock',
    'ToneSegment',
    'ToneSynthesizer',
    'UnsupportedImageInput',
    'batch_process',
    'check_memory_requirements',
    'encode',
    'estimate_file_size',
    'estimate_memory_usage',
    'get_mode_by_name',
    'get_mode_by_vis',
    'get_mode_spec',
    'get_supported_modes',
    'load_image',
    'modulate_file',
    'preprocess_image',
    'resolve_format',
    'save_processed_image',
    'transmission_seconds',
    'write_wav',
]
