"""Host-side glue: run one session, compose files, persist outputs."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional, Sequence

from PIL import Image

from . import CaptureSettings, ProcessingOutcome, SheetLayout
from . import gif_exporter, manifest_writer, spritesheet_builder
from .capture_scheduler import CaptureScheduler, SleepFunc
from .errors import PartialCaptureWarning, ProcessingError
from .manifest_writer import SpriteSheetDescriptor
from .scene import SceneContext
from ..utils import file_tools, image_tools, validators

logger = logging.getLogger(__name__)


@dataclass
class RecordingResult:
    sheet: Image.Image
    descriptor: SpriteSheetDescriptor
    warnings: list[PartialCaptureWarning] = field(default_factory=list)


async def record_spritesheet(
    scene: SceneContext,
    settings: CaptureSettings,
    animation_name: Optional[str] = None,
    on_progress: Optional[Callable[[int, int], None]] = None,
    sleep: SleepFunc = asyncio.sleep,
) -> RecordingResult:
    """Record one session and return the composed sheet.

    Raises RecordingAbortedError or CompositionError when the session fails.
    """

    validators.validate_frame_count(settings.frame_count)
    validators.validate_layout(settings.columns, settings.cell_width, settings.cell_height, settings.frame_count)

    loop = asyncio.get_running_loop()
    done: asyncio.Future = loop.create_future()
    warnings: list[PartialCaptureWarning] = []

    def _on_success(sheet: Image.Image, descriptor: SpriteSheetDescriptor) -> None:
        if not done.done():
            done.set_result(RecordingResult(sheet=sheet, descriptor=descriptor, warnings=warnings))

    def _on_failure(error: ProcessingError) -> None:
        if not done.done():
            done.set_exception(error)

    scheduler = CaptureScheduler(
        scene,
        on_progress=on_progress,
        on_success=_on_success,
        on_failure=_on_failure,
        on_warning=warnings.append,
        sleep=sleep,
    )
    scheduler.start(settings.frame_count, settings.layout, animation_name)
    return await done


def compose_from_files(paths: Sequence[Path], layout: SheetLayout, animation_name: str) -> RecordingResult:
    """Compose pre-captured frame images in the given order."""

    validators.validate_layout(layout.columns, layout.cell_width, layout.cell_height, len(paths))
    frames = image_tools.load_images(list(paths))
    sheet, _infos = spritesheet_builder.build_spritesheet(frames, layout)
    descriptor = manifest_writer.build_descriptor(len(frames), layout, animation_name)
    return RecordingResult(sheet=sheet, descriptor=descriptor)


def save_outputs(result: RecordingResult, settings: CaptureSettings) -> ProcessingOutcome:
    """Write the sheet, its descriptor and the optional GIF to ``settings.output_dir``."""

    name = result.descriptor.animation_name
    output_dir = file_tools.ensure_directory(settings.output_dir)
    sheet_path = spritesheet_builder.write_spritesheet(
        result.sheet, output_dir / file_tools.format_output_filename(name, "spritesheet", ".png")
    )
    manifest_path = None
    if settings.generate_manifest:
        manifest_path = manifest_writer.write_descriptor(
            result.descriptor, output_dir / file_tools.format_output_filename(name, "metadata", ".json")
        )
    gif_path = None
    if settings.export_gif:
        gif_path = gif_exporter.export_gif(
            result.sheet,
            result.descriptor,
            output_dir / file_tools.format_output_filename(name, "", ".gif"),
            fps=settings.gif_fps,
            scale=settings.gif_scale,
        )
    return ProcessingOutcome(spritesheet_path=sheet_path, manifest_path=manifest_path, gif_path=gif_path)
