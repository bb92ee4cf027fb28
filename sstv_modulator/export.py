"""File boundary for the modulator.

Loading source images, writing the sample buffer as a WAVE file, saving the
processed raster with a JSON metadata sidecar, and batch runs over several
(mode, sample rate) combinations.
"""

from __future__ import annotations

import json
import wave
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Union

from PIL import Image

from .constants import BYTES_PER_SAMPLE, DEFAULT_SAMPLE_RATE, VERSION
from .image import RasterInput, normalize_input
from .logging import get_logger
from .modes import MODE_SPECS, Mode
from .modulator import AudioDescriptor, Modulator

logger = get_logger('sstv_modulator.export')

PathLike = Union[str, Path]

_EXTENSIONS = {'PNG': 'png', 'JPEG': 'jpg', 'BMP': 'bmp'}


@dataclass(frozen=True)
class BatchOutput:
    """Files written for one (mode, sample rate) combination."""
    mode: Mode
    sample_rate: int
    audio_path: Path
    image_path: Optional[Path] = None


def load_image(path: PathLike) -> Image.Image:
    """Decode an image file into an RGB (or RGBA, with transparency) PIL Image.

    16-bit grayscale files are rescaled to 8 bits rather than clipped.
    """
    with Image.open(path) as image:
        image.load()
        return normalize_input(image)


def write_wav(audio: AudioDescriptor, path: PathLike) -> Path:
    """Write a mono 16-bit PCM WAVE file.

    Returns:
        Path of the written file.
    """
    path = Path(path)
    with wave.open(str(path), 'wb') as wav:
        wav.setnchannels(audio.channels)
        wav.setsampwidth(BYTES_PER_SAMPLE)
        wav.setframerate(audio.sample_rate)
        wav.writeframes(audio.samples.astype('<i2').tobytes())

    logger.info(f"Wrote {path} ({len(audio.samples)} samples at {audio.sample_rate} Hz)")
    return path


def processing_info(modulator: Modulator) -> dict:
    """Metadata sidecar contents for the modulator's processed image."""
    metadata = modulator.get_processing_metadata()
    if metadata is None:
        raise ValueError("No processed image held; call modulate() first")

    info = {'version': VERSION}
    info.update(metadata.to_dict())
    info['sample_rate'] = modulator.sample_rate
    info['duration_seconds'] = modulator.spec.nominal_duration_s
    return {'sstv_processing_info': info}


def resolve_format(fmt: Optional[str], path: Optional[Path] = None) -> str:
    """Return the Pillow format name for ``fmt`` or, when None, ``path``'s suffix.

    Accepts format names ('JPEG') and extensions with or without the dot
    ('jpg', '.png').

    Raises:
        ValueError: Pillow has no writer for the format.
    """
    if fmt is None:
        fmt = path.suffix if path is not None else ''
    if not fmt:
        raise ValueError(f"Cannot determine image format for {path}")

    extensions = Image.registered_extensions()
    key = fmt.lower() if fmt.startswith('.') else '.' + fmt.lower()
    if key in extensions:
        return extensions[key]

    name = fmt.lstrip('.').upper()
    if name in Image.SAVE:
        return name
    raise ValueError(f"Unknown image format: {fmt!r}")


def save_processed_image(modulator: Modulator, path: PathLike,
                         fmt: Optional[str] = None, quality: int = 95,
                         metadata: bool = True) -> Path:
    """Save the letterboxed image the modulator last transmitted.

    Args:
        modulator: Modulator holding a processed image.
        path: Output file; its suffix picks the format when ``fmt`` is None.
        fmt: Format name or extension ('PNG', 'JPEG', 'jpg', '.bmp').
        quality: JPEG quality (1-100).
        metadata: Also write a ``.json`` sidecar next to the image.

    Raises:
        ValueError: No processed image is held.
    """
    processed = modulator.get_processed_image()
    if processed is None:
        raise ValueError("No processed image held; call modulate() first")

    path = Path(path)
    fmt = resolve_format(fmt, path)
    image = processed.to_pil()
    if fmt == 'JPEG':
        image.save(path, format=fmt, quality=max(1, min(100, quality)))
    else:
        image.save(path, format=fmt)

    if metadata:
        sidecar = path.with_suffix('.json')
        sidecar.write_text(json.dumps(processing_info(modulator), indent=2))

    logger.info(f"Saved processed image {path}")
    return path


def batch_process(
    image: RasterInput,
    output_dir: PathLike,
    base_name: str,
    modes: Optional[Iterable[Mode]] = None,
    sample_rates: Iterable[int] = (DEFAULT_SAMPLE_RATE,),
    save_images: bool = True,
    image_format: str = 'PNG',
) -> list[BatchOutput]:
    """Modulate one image for every (mode, sample rate) combination.

    Runs sequentially on a single Modulator and releases its buffers after
    each combination, so peak memory is bounded by the largest single run.

    Returns:
        One BatchOutput per combination, in iteration order.
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    modes = list(MODE_SPECS) if modes is None else list(modes)
    sample_rates = list(sample_rates)
    image_format = resolve_format(image_format)
    extension = _EXTENSIONS.get(image_format, image_format.lower())

    modulator = Modulator(modes[0], sample_rates[0]) if modes and sample_rates else None
    outputs: list[BatchOutput] = []

    for mode in modes:
        for index, rate in enumerate(sample_rates):
            modulator.configure(mode=mode, sample_rate=rate)
            modulator.modulate(image)
            name = modulator.mode.value

            audio_path = write_wav(
                modulator.get_audio(), output_dir / f"{base_name}_{name}_{rate}.wav")

            image_path = None
            if save_images and index == 0:
                width, height = modulator.spec.dimensions
                image_path = save_processed_image(
                    modulator,
                    output_dir / f"{base_name}_{name}_{width}x{height}.{extension}",
                    fmt=image_format,
                )

            outputs.append(BatchOutput(modulator.mode, modulator.sample_rate, audio_path, image_path))
            modulator.clear_memory()

    return outputs


def modulate_file(image_path: PathLike, output_path: PathLike,
                  mode: Union[Mode, str] = Mode.ROBOT_36,
                  sample_rate: Optional[int] = None) -> AudioDescriptor:
    """Load an image file, modulate it and write the WAVE file in one step.

    Returns:
        The written audio.
    """
    modulator = Modulator(mode, sample_rate)
    modulator.modulate(load_image(image_path))
    audio = modulator.get_audio()
    write_wav(audio, output_path)
    return audio
