"""Command-line entry point for animation-to-sprite workflows."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from .core import CaptureSettings, SheetLayout
from .core import gif_exporter, manifest_writer
from .core.demo_scene import ProceduralScene
from .core.errors import ProcessingError, ValidationError
from .core.recorder import compose_from_files, record_spritesheet, save_outputs
from .utils import image_tools, validators

logger = logging.getLogger(__name__)


def _add_layout_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--columns", type=int, default=4, help="Columns in the sheet grid (default: 4)")
    parser.add_argument(
        "--cell-size",
        type=int,
        nargs=2,
        metavar=("WIDTH", "HEIGHT"),
        default=(256, 256),
        help="Exact cell size in pixels (default: 256 256)",
    )
    parser.add_argument(
        "--optimize",
        action="store_true",
        help="Center each frame's content within its cell",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="anim2sprite",
        description="Record a playing animation into a packed sprite sheet and metadata.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    record = sub.add_parser("record", help="Record the built-in procedural character")
    record.add_argument("output_dir", type=Path, help="Directory for the sheet and metadata")
    record.add_argument("--frames", type=int, default=16, help="Frames to capture (default: 16)")
    _add_layout_arguments(record)
    record.add_argument("--animation", default="Walk", help="Animation to record (Idle or Walk)")
    record.add_argument("--gif", action="store_true", help="Also export an animated GIF")
    record.add_argument("--gif-fps", type=float, default=24.0, help="GIF playback rate (default: 24)")
    record.add_argument("--gif-scale", type=float, default=1.0, help="GIF scale factor (default: 1)")
    record.add_argument("--no-manifest", action="store_true", help="Skip the JSON metadata file")
    record.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate arguments and show the plan without recording",
    )

    compose = sub.add_parser("compose", help="Compose pre-captured frame images")
    compose.add_argument("frames_dir", type=Path, help="Directory of frame images, ordered by file name")
    compose.add_argument("output_dir", type=Path, help="Directory for the sheet and metadata")
    _add_layout_arguments(compose)
    compose.add_argument("--name", default="animation", help="Animation name used in outputs")

    gif = sub.add_parser("gif", help="Export an animated GIF from a sheet and its metadata")
    gif.add_argument("spritesheet", type=Path, help="Sprite sheet PNG")
    gif.add_argument("manifest", type=Path, help="Metadata JSON written next to the sheet")
    gif.add_argument("output", type=Path, help="Destination GIF path")
    gif.add_argument("--fps", type=float, default=24.0, help="Playback rate (default: 24)")
    gif.add_argument("--scale", type=float, default=1.0, help="Scale factor (default: 1)")
    gif.add_argument("--no-loop", action="store_true", help="Play once instead of looping")
    return parser


def _settings_from_args(args: argparse.Namespace) -> CaptureSettings:
    width, height = args.cell_size
    validators.validate_layout(args.columns, width, height, getattr(args, "frames", 1))
    return CaptureSettings(
        output_dir=args.output_dir,
        frame_count=getattr(args, "frames", 16),
        columns=args.columns,
        cell_width=width,
        cell_height=height,
        optimize=args.optimize,
        generate_manifest=not getattr(args, "no_manifest", False),
        export_gif=getattr(args, "gif", False),
        gif_fps=getattr(args, "gif_fps", 24.0),
        gif_scale=getattr(args, "gif_scale", 1.0),
    )


def _print_progress(captured: int, target: int) -> None:
    print(f"\rRecording sprite sheet: frame {captured}/{target}", end="", flush=True)
    if captured >= target:
        print()


def _run_record(args: argparse.Namespace) -> int:
    settings = _settings_from_args(args)
    validators.validate_frame_count(settings.frame_count)
    if args.dry_run:
        rows = settings.layout.rows_for(settings.frame_count)
        print(
            f"Would record {settings.frame_count} frames of '{args.animation}' into a "
            f"{settings.columns}x{rows} grid of {settings.cell_width}x{settings.cell_height} cells"
        )
        return 0

    scene = ProceduralScene()
    try:
        scene.play(args.animation)
    except KeyError as exc:
        raise ValidationError(str(exc.args[0])) from exc
    result = asyncio.run(record_spritesheet(scene, settings, on_progress=_print_progress))
    for warning in result.warnings:
        print(f"Warning: {warning}", file=sys.stderr)
    outcome = save_outputs(result, settings)
    print(f"Spritesheet ready at {outcome.spritesheet_path}")
    if outcome.manifest_path:
        print(f"Manifest: {outcome.manifest_path}")
    if outcome.gif_path:
        print(f"GIF: {outcome.gif_path}")
    return 0


def _run_compose(args: argparse.Namespace) -> int:
    settings = _settings_from_args(args)
    paths = validators.validate_frames_dir(args.frames_dir)
    result = compose_from_files(paths, settings.layout, args.name)
    outcome = save_outputs(result, settings)
    print(f"Spritesheet ready at {outcome.spritesheet_path}")
    if outcome.manifest_path:
        print(f"Manifest: {outcome.manifest_path}")
    return 0


def _run_gif(args: argparse.Namespace) -> int:
    descriptor = manifest_writer.load_descriptor(args.manifest)
    sheet = image_tools.load_image(args.spritesheet)
    path = gif_exporter.export_gif(
        sheet, descriptor, args.output, fps=args.fps, scale=args.scale, loop=not args.no_loop
    )
    print(f"GIF: {path}")
    return 0


COMMANDS = {
    "record": _run_record,
    "compose": _run_compose,
    "gif": _run_gif,
}


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        return COMMANDS[args.command](args)
    except ValidationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2
    except (ProcessingError, FileNotFoundError) as exc:
        logger.error("%s failed: %s", args.command, exc)
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
