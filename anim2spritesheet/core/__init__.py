"""Core records shared by the capture, composition and export stages."""

__all__ = [
    "CapturedFrame",
    "ContentBounds",
    "SheetLayout",
    "FrameInfo",
    "RecordingStatus",
    "RecordingSession",
    "CaptureSettings",
    "ProcessingOutcome",
    "RETRY_CEILING_FACTOR",
]

import math
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional

from PIL import Image

RETRY_CEILING_FACTOR = 1.5


@dataclass(frozen=True)
class CapturedFrame:
    """A decoded snapshot of the live view."""

    index: int
    image: Image.Image
    captured_at: float = 0.0

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height


@dataclass(frozen=True)
class ContentBounds:
    """Inclusive pixel rectangle holding the visible content of a frame."""

    left: int
    top: int
    right: int
    bottom: int

    @property
    def width(self) -> int:
        return self.right - self.left + 1

    @property
    def height(self) -> int:
        return self.bottom - self.top + 1

    def as_box(self) -> tuple[int, int, int, int]:
        """Return a Pillow crop box (right/bottom exclusive)."""

        return (self.left, self.top, self.right + 1, self.bottom + 1)


@dataclass(frozen=True)
class SheetLayout:
    """User-chosen grid parameters, fixed for one session."""

    columns: int = 4
    cell_width: int = 256
    cell_height: int = 256
    optimize: bool = False

    def rows_for(self, frame_count: int) -> int:
        return math.ceil(frame_count / self.columns)


@dataclass
class FrameInfo:
    """Placement of one frame on the composited sheet."""

    index: int
    x: int
    y: int
    width: int
    height: int
    offset_x: int = 0
    offset_y: int = 0
    content: Optional[ContentBounds] = None


class RecordingStatus(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"
    FINISHING = "finishing"
    ABORTED = "aborted"


@dataclass
class RecordingSession:
    """Mutable state of one recording, owned by the scheduler."""

    target_frame_count: int
    layout: SheetLayout
    animation_name: str = "animation"
    frames: List[CapturedFrame] = field(default_factory=list)
    failed_attempts: int = 0
    status: RecordingStatus = RecordingStatus.IDLE
    cancelled: bool = False
    started_at: float = 0.0

    @property
    def captured_count(self) -> int:
        return len(self.frames)

    @property
    def retry_ceiling(self) -> int:
        return math.ceil(self.target_frame_count * RETRY_CEILING_FACTOR)


@dataclass
class CaptureSettings:
    """User-configurable settings for one export."""

    output_dir: Path
    frame_count: int = 16
    columns: int = 4
    cell_width: int = 256
    cell_height: int = 256
    optimize: bool = False
    generate_manifest: bool = True
    export_gif: bool = False
    gif_fps: float = 24.0
    gif_scale: float = 1.0

    @property
    def layout(self) -> SheetLayout:
        return SheetLayout(
            columns=self.columns,
            cell_width=self.cell_width,
            cell_height=self.cell_height,
            optimize=self.optimize,
        )


@dataclass
class ProcessingOutcome:
    """Result paths produced by an export."""

    spritesheet_path: Path
    manifest_path: Optional[Path] = None
    gif_path: Optional[Path] = None
