"""Animated GIF export of a composed sheet."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional

from PIL import Image

from .errors import ProcessingError, ValidationError
from .manifest_writer import SpriteSheetDescriptor
from .playback import iter_sheet_frames
from ..utils import file_tools

logger = logging.getLogger(__name__)

TRANSPARENT_INDEX = 255
ALPHA_CUTOFF = 128


def _to_palette(frame: Image.Image) -> Image.Image:
    """Quantize an RGBA frame, reserving one palette slot for transparency."""

    rgba = frame.convert("RGBA")
    alpha = rgba.getchannel("A")
    paletted = rgba.convert("RGB").quantize(colors=TRANSPARENT_INDEX, dither=Image.Dither.NONE)
    palette = (paletted.getpalette() or [])[: TRANSPARENT_INDEX * 3]
    paletted.putpalette(palette + [0] * (768 - len(palette)))
    mask = alpha.point(lambda a: 255 if a <= ALPHA_CUTOFF else 0)
    paletted.paste(TRANSPARENT_INDEX, mask=mask)
    paletted.info["transparency"] = TRANSPARENT_INDEX
    return paletted


def export_gif(
    sheet: Image.Image,
    descriptor: SpriteSheetDescriptor,
    output_path: Path,
    fps: float = 24.0,
    scale: float = 1.0,
    loop: bool = True,
    on_progress: Optional[Callable[[float], None]] = None,
) -> Path:
    """Write the sheet's frames as an animated GIF."""

    if fps <= 0:
        raise ValidationError("GIF fps must be greater than zero")
    if scale <= 0:
        raise ValidationError("GIF scale must be greater than zero")
    if descriptor.frames < 1:
        raise ProcessingError("Descriptor lists no frames to export")

    size = (
        max(1, round(descriptor.frame_width * scale)),
        max(1, round(descriptor.frame_height * scale)),
    )
    frames: list[Image.Image] = []
    for frame in iter_sheet_frames(sheet, descriptor):
        if frame.size != size:
            frame = frame.resize(size, Image.Resampling.BILINEAR)
        frames.append(_to_palette(frame))
        if on_progress:
            on_progress(len(frames) / descriptor.frames * 0.5)

    output_path = output_path.with_suffix(".gif")
    file_tools.ensure_directory(output_path.parent)
    options = {}
    if loop:
        options["loop"] = 0
    frames[0].save(
        output_path,
        format="GIF",
        save_all=True,
        append_images=frames[1:],
        duration=round(1000 / fps),
        disposal=2,
        transparency=TRANSPARENT_INDEX,
        **options,
    )
    if on_progress:
        on_progress(1.0)
    logger.info("Wrote %s-frame GIF to %s", len(frames), output_path)
    return output_path
