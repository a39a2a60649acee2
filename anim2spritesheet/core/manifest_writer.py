"""Descriptor building and JSON persistence."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from . import SheetLayout
from .errors import ValidationError
from .spritesheet_builder import _resolve_grid
from ..utils import file_tools

logger = logging.getLogger(__name__)

OPTIMIZATION_NOTE = "Frames are centered within fixed-size cells"
REQUIRED_KEYS = ("frameWidth", "frameHeight", "frames", "columns", "rows")


@dataclass
class SpriteSheetDescriptor:
    """Geometry record consumed by sprite sheet players."""

    frame_width: int
    frame_height: int
    frames: int
    columns: int
    rows: int
    animation_name: str
    optimized: bool
    transparent: bool = True
    timestamp: str = ""
    optimization_info: Optional[dict[str, Any]] = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "frameWidth": self.frame_width,
            "frameHeight": self.frame_height,
            "frames": self.frames,
            "columns": self.columns,
            "rows": self.rows,
            "animationName": self.animation_name,
            "optimized": self.optimized,
            "transparent": self.transparent,
            "timestamp": self.timestamp,
        }
        if self.optimization_info is not None:
            payload["optimizationInfo"] = dict(self.optimization_info)
        return payload

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "SpriteSheetDescriptor":
        missing = [key for key in REQUIRED_KEYS if key not in payload]
        if missing:
            raise ValidationError(f"Descriptor is missing keys: {', '.join(missing)}")
        try:
            return cls(
                frame_width=int(payload["frameWidth"]),
                frame_height=int(payload["frameHeight"]),
                frames=int(payload["frames"]),
                columns=int(payload["columns"]),
                rows=int(payload["rows"]),
                animation_name=str(payload.get("animationName", "animation")),
                optimized=bool(payload.get("optimized", False)),
                transparent=bool(payload.get("transparent", True)),
                timestamp=str(payload.get("timestamp", "")),
                optimization_info=payload.get("optimizationInfo"),
            )
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"Descriptor has invalid values: {exc}") from exc


def build_descriptor(
    frame_count: int,
    layout: SheetLayout,
    animation_name: str,
    now: Optional[datetime] = None,
) -> SpriteSheetDescriptor:
    """Describe the sheet the compositor produces for the same inputs."""

    columns, rows = _resolve_grid(frame_count, layout.columns)
    stamp = (now or datetime.now(timezone.utc)).isoformat()
    info = None
    if layout.optimize:
        info = {"note": OPTIMIZATION_NOTE, "maintainsExactDimensions": True}
    return SpriteSheetDescriptor(
        frame_width=layout.cell_width,
        frame_height=layout.cell_height,
        frames=frame_count,
        columns=columns,
        rows=rows,
        animation_name=file_tools.sanitize_name(animation_name),
        optimized=layout.optimize,
        transparent=True,
        timestamp=stamp,
        optimization_info=info,
    )


def write_descriptor(descriptor: SpriteSheetDescriptor, manifest_path: Path) -> Path:
    """Write the descriptor as indented JSON."""

    manifest_path = manifest_path.with_suffix(".json")
    file_tools.ensure_directory(manifest_path.parent)
    manifest_path.write_text(json.dumps(descriptor.to_dict(), indent=2), encoding="utf-8")
    logger.info("Wrote manifest to %s", manifest_path)
    return manifest_path


def load_descriptor(manifest_path: Path) -> SpriteSheetDescriptor:
    try:
        payload = json.loads(manifest_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValidationError(f"Invalid descriptor JSON in {manifest_path}: {exc}") from exc
    if not isinstance(payload, dict):
        raise ValidationError(f"Descriptor in {manifest_path} must be a JSON object")
    return SpriteSheetDescriptor.from_dict(payload)
