"""Validation helpers for user inputs."""

from __future__ import annotations

from pathlib import Path

from ..core.errors import ValidationError

ALLOWED_IMAGE_EXTENSIONS = {".png", ".webp", ".tga", ".bmp"}
MAX_FRAME_CAP = 400
MAX_CELL_SIZE = 4096
MAX_COLUMNS = 64
MAX_SHEET_SIDE = 16384


def validate_frame_count(frame_count: int) -> None:
    """Frame count must be positive and under the memory cap."""

    if frame_count < 1:
        raise ValidationError("Frame count must be greater than zero")
    if frame_count > MAX_FRAME_CAP:
        raise ValidationError(f"Frame count must be at most {MAX_FRAME_CAP}")


def validate_layout(columns: int, cell_width: int, cell_height: int, frame_count: int = 1) -> None:
    """Ensure grid and cell dimensions are usable and the sheet stays a sane size."""

    if columns <= 0:
        raise ValidationError("Columns must be greater than zero")
    if columns > MAX_COLUMNS:
        raise ValidationError(f"Columns must be at most {MAX_COLUMNS}")
    for label, value in (("Cell width", cell_width), ("Cell height", cell_height)):
        if value <= 0:
            raise ValidationError(f"{label} must be greater than zero")
        if value > MAX_CELL_SIZE:
            raise ValidationError(f"{label} must be at most {MAX_CELL_SIZE}px")
    rows = -(-frame_count // columns)
    width, height = columns * cell_width, rows * cell_height
    if max(width, height) > MAX_SHEET_SIDE:
        raise ValidationError(
            f"Sheet of {width}x{height}px exceeds the {MAX_SHEET_SIDE}px limit; use fewer columns or smaller cells"
        )


def validate_frames_dir(path: Path) -> list[Path]:
    """Return the image files of a frames directory, sorted by name."""

    if not path.is_dir():
        raise ValidationError(f"Frames directory not found: {path}")
    frames = sorted(p for p in path.iterdir() if p.is_file() and p.suffix.lower() in ALLOWED_IMAGE_EXTENSIONS)
    if not frames:
        raise ValidationError(f"No frame images found in {path}")
    if len(frames) > MAX_FRAME_CAP:
        raise ValidationError(f"Too many frames ({len(frames)}); limit is {MAX_FRAME_CAP}")
    return frames
