"""Spritesheet composition using Pillow."""

from __future__ import annotations

import math
import logging
from pathlib import Path
from typing import List, Sequence, Tuple

from PIL import Image

from . import ContentBounds, FrameInfo, SheetLayout
from . import bounds_analyzer
from .errors import CompositionError
from ..utils import file_tools
from ..utils.validators import MAX_SHEET_SIDE

logger = logging.getLogger(__name__)

TRANSPARENT = (0, 0, 0, 0)


def _resolve_grid(frame_count: int, columns: int) -> tuple[int, int]:
    """Rows follow from the frame count; columns are always user-declared."""

    if columns <= 0:
        raise CompositionError("Columns must be greater than zero")
    return columns, math.ceil(frame_count / columns)


def cell_origin(index: int, layout: SheetLayout) -> tuple[int, int]:
    col = index % layout.columns
    row = index // layout.columns
    return col * layout.cell_width, row * layout.cell_height


def build_spritesheet(
    frames: Sequence[Image.Image],
    layout: SheetLayout,
) -> Tuple[Image.Image, List[FrameInfo]]:
    """Lay frames into a fixed grid and return the sheet with per-frame placements."""

    if not frames:
        raise CompositionError("No frames provided to pack.")
    if layout.cell_width <= 0 or layout.cell_height <= 0:
        raise CompositionError("Cell dimensions must be greater than zero")

    columns, rows = _resolve_grid(len(frames), layout.columns)
    sheet_width = columns * layout.cell_width
    sheet_height = rows * layout.cell_height
    if max(sheet_width, sheet_height) > MAX_SHEET_SIDE:
        raise CompositionError(f"Sheet of {sheet_width}x{sheet_height}px exceeds the {MAX_SHEET_SIDE}px limit")
    sheet = Image.new("RGBA", (sheet_width, sheet_height), TRANSPARENT)

    infos: list[FrameInfo] = []
    for idx, frame in enumerate(frames):
        x, y = cell_origin(idx, layout)
        if layout.optimize:
            bounds = bounds_analyzer.analyze(frame)
            cell, offset_x, offset_y = _centered_cell(frame, bounds, layout)
        else:
            bounds = None
            cell, offset_x, offset_y = _stretched_cell(frame, layout), 0, 0
        sheet.paste(cell, (x, y))
        infos.append(
            FrameInfo(
                index=idx,
                x=x,
                y=y,
                width=layout.cell_width,
                height=layout.cell_height,
                offset_x=offset_x,
                offset_y=offset_y,
                content=bounds,
            )
        )

    logger.info(
        "Composed %s frames into %sx%s sheet (%sx%s grid, optimized=%s)",
        len(frames),
        sheet_width,
        sheet_height,
        columns,
        rows,
        layout.optimize,
    )
    return sheet, infos


def _stretched_cell(frame: Image.Image, layout: SheetLayout) -> Image.Image:
    """Resample a whole frame to exactly the cell size."""

    img = frame.convert("RGBA")
    size = (layout.cell_width, layout.cell_height)
    if img.size != size:
        img = img.resize(size, Image.Resampling.BILINEAR)
    return img


def _centered_cell(
    frame: Image.Image, bounds: ContentBounds, layout: SheetLayout
) -> tuple[Image.Image, int, int]:
    """Center the content rectangle of a frame in a transparent cell.

    Content wider or taller than the cell is clipped to the cell.
    """

    content = frame.convert("RGBA").crop(bounds.as_box())
    offset_x = (layout.cell_width - bounds.width) // 2
    offset_y = (layout.cell_height - bounds.height) // 2
    cell = Image.new("RGBA", (layout.cell_width, layout.cell_height), TRANSPARENT)
    cell.paste(content, (offset_x, offset_y))
    return cell, offset_x, offset_y


def write_spritesheet(sheet: Image.Image, output_path: Path) -> Path:
    """Persist a composed sheet as PNG."""

    output_path = output_path.with_suffix(".png")
    file_tools.ensure_directory(output_path.parent)
    sheet.save(output_path, format="PNG")
    logger.info("Wrote spritesheet to %s", output_path)
    return output_path
