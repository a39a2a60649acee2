"""Frame geometry for reading a composed sheet back."""

from __future__ import annotations

from typing import Iterator

from PIL import Image

from .manifest_writer import SpriteSheetDescriptor


def frame_rect(descriptor: SpriteSheetDescriptor, index: int) -> tuple[int, int, int, int]:
    """Return ``(x, y, width, height)`` of a frame's cell."""

    if index < 0 or index >= descriptor.frames:
        raise IndexError(f"Frame {index} outside 0..{descriptor.frames - 1}")
    col = index % descriptor.columns
    row = index // descriptor.columns
    return (
        col * descriptor.frame_width,
        row * descriptor.frame_height,
        descriptor.frame_width,
        descriptor.frame_height,
    )


def iter_sheet_frames(sheet: Image.Image, descriptor: SpriteSheetDescriptor) -> Iterator[Image.Image]:
    """Yield each cell of the sheet in playback order."""

    for index in range(descriptor.frames):
        x, y, w, h = frame_rect(descriptor, index)
        yield sheet.crop((x, y, x + w, y + h))
