"""FastAPI surface for anim2sprite processing."""

from __future__ import annotations

import json
import logging
import os
import time
import uuid
from pathlib import Path
from typing import Any, Optional

from fastapi import FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator
from starlette.concurrency import run_in_threadpool

from ..core import CaptureSettings, ProcessingOutcome
from ..core import gif_exporter, manifest_writer
from ..core.demo_scene import ProceduralScene
from ..core.errors import InvalidStateError, ProcessingError, ValidationError
from ..core.recorder import RecordingResult, compose_from_files, record_spritesheet, save_outputs
from ..utils import file_tools, image_tools, validators

logger = logging.getLogger(__name__)

ARTIFACTS_DIR = Path(os.environ.get("A2S_ARTIFACTS_DIR", "artifacts")).resolve()
MAX_UPLOAD_BYTES = 50 * 1024 * 1024  # 50MB guardrail
MAX_FRAME_CAP = validators.MAX_FRAME_CAP
ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.environ.get("A2S_ALLOWED_ORIGINS", "http://localhost:8000").split(",")
    if origin.strip()
]


class SheetRequest(BaseModel):
    """Layout settings for composing a sheet."""

    columns: int = Field(4, ge=1, le=validators.MAX_COLUMNS)
    cell_width: int = Field(256, ge=1, le=validators.MAX_CELL_SIZE)
    cell_height: int = Field(256, ge=1, le=validators.MAX_CELL_SIZE)
    optimize: bool = False
    animation_name: str = "animation"
    generate_manifest: bool = True
    export_gif: bool = False
    gif_fps: float = Field(24.0, gt=0)

    @field_validator("animation_name", mode="before")
    @classmethod
    def _default_name(cls, value):
        if value in (None, ""):
            return "animation"
        return value


class RecordRequest(SheetRequest):
    """Settings for recording the built-in procedural character."""

    frame_count: int = Field(16, ge=1, le=MAX_FRAME_CAP)
    animation_name: str = "Walk"


class GifRequest(BaseModel):
    spritesheet: str
    manifest: str
    fps: float = Field(24.0, gt=0)
    scale: float = Field(1.0, gt=0, le=8)
    loop: bool = True


class SheetResponse(BaseModel):
    spritesheet_url: str
    manifest_url: Optional[str] = None
    gif_url: Optional[str] = None
    descriptor: dict[str, Any]
    width: int
    height: int
    warnings: list[str] = []


def _parse_settings(raw: str, model: type[BaseModel]) -> Any:
    try:
        payload = json.loads(raw) if raw else {}
    except json.JSONDecodeError as exc:
        raise HTTPException(status_code=400, detail=f"Invalid settings JSON: {exc}") from exc
    try:
        return model.model_validate(payload)
    except PydanticValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


def _capture_settings(request: SheetRequest, output_dir: Path, frame_count: int = 16) -> CaptureSettings:
    return CaptureSettings(
        output_dir=output_dir,
        frame_count=frame_count,
        columns=request.columns,
        cell_width=request.cell_width,
        cell_height=request.cell_height,
        optimize=request.optimize,
        generate_manifest=request.generate_manifest,
        export_gif=request.export_gif,
        gif_fps=request.gif_fps,
    )


def create_app(artifacts_dir: Path | None = None) -> FastAPI:
    root = (artifacts_dir or ARTIFACTS_DIR).resolve()
    file_tools.ensure_directory(root)

    app = FastAPI(title="anim2sprite Web", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.mount("/artifacts", StaticFiles(directory=root), name="artifacts")

    def _artifact_url(path: Path | None) -> Optional[str]:
        if path is None:
            return None
        try:
            rel = path.resolve().relative_to(root)
            return f"/artifacts/{rel.as_posix()}"
        except ValueError:
            return f"/artifacts/{path.name}"

    def _resolve_artifact(path_str: str, allowed: set[str]) -> Path:
        """Resolve an artifact URL or relative path inside the artifacts dir."""

        rel = path_str.replace("/artifacts/", "", 1) if path_str.startswith("/artifacts/") else path_str
        try:
            resolved = (root / rel).resolve(strict=True)
        except FileNotFoundError as exc:
            raise HTTPException(status_code=404, detail="Artifact not found") from exc
        if root not in resolved.parents:
            raise HTTPException(status_code=400, detail="Artifact outside allowed directory")
        if resolved.suffix.lower() not in allowed:
            raise HTTPException(status_code=400, detail="Unsupported artifact type")
        return resolved

    def _response(result: RecordingResult, outcome: ProcessingOutcome) -> SheetResponse:
        return SheetResponse(
            spritesheet_url=_artifact_url(outcome.spritesheet_path),
            manifest_url=_artifact_url(outcome.manifest_path),
            gif_url=_artifact_url(outcome.gif_path),
            descriptor=result.descriptor.to_dict(),
            width=result.sheet.width,
            height=result.sheet.height,
            warnings=[str(w) for w in result.warnings],
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/api/compose", response_model=SheetResponse)
    async def compose_sheet(
        request: Request,
        frames: list[UploadFile] = File(...),
        settings: str = Form("{}"),
    ) -> SheetResponse:
        sheet_request: SheetRequest = _parse_settings(settings, SheetRequest)
        _enforce_size_limit(request)
        if len(frames) > MAX_FRAME_CAP:
            raise HTTPException(status_code=400, detail=f"At most {MAX_FRAME_CAP} frames per request")

        job_dir = root / uuid.uuid4().hex
        upload_dir = file_tools.ensure_directory(job_dir / "frames")
        paths = [_write_upload_file(upload, upload_dir, idx) for idx, upload in enumerate(frames)]
        for path in paths:
            try:
                image_tools.verify_image(path)
            except ValidationError as exc:
                raise HTTPException(status_code=400, detail=str(exc)) from exc

        capture = _capture_settings(sheet_request, job_dir)
        try:
            result = await run_in_threadpool(
                compose_from_files, paths, capture.layout, sheet_request.animation_name
            )
            outcome = await run_in_threadpool(save_outputs, result, capture)
        except ValidationError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except ProcessingError as exc:
            raise HTTPException(status_code=500, detail=str(exc)) from exc
        return _response(result, outcome)

    @app.post("/api/record", response_model=SheetResponse)
    async def record_sheet(settings: str = Form("{}")) -> SheetResponse:
        record_request: RecordRequest = _parse_settings(settings, RecordRequest)
        scene = ProceduralScene()
        try:
            scene.play(record_request.animation_name)
        except KeyError as exc:
            raise HTTPException(status_code=400, detail=str(exc.args[0])) from exc

        job_dir = root / uuid.uuid4().hex
        capture = _capture_settings(record_request, job_dir, record_request.frame_count)
        started = time.monotonic()
        try:
            result = await record_spritesheet(scene, capture)
            outcome = await run_in_threadpool(save_outputs, result, capture)
        except (ValidationError, InvalidStateError) as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except ProcessingError as exc:
            logger.exception("Recording failed")
            raise HTTPException(status_code=500, detail=str(exc)) from exc
        logger.info("Recorded %s in %.2fs", outcome.spritesheet_path.name, time.monotonic() - started)
        return _response(result, outcome)

    @app.post("/api/export-gif")
    async def export_gif(payload: GifRequest) -> dict[str, str]:
        sheet_path = _resolve_artifact(payload.spritesheet, {".png"})
        manifest_path = _resolve_artifact(payload.manifest, {".json"})

        def _export() -> Path:
            descriptor = manifest_writer.load_descriptor(manifest_path)
            sheet = image_tools.load_image(sheet_path)
            return gif_exporter.export_gif(
                sheet,
                descriptor,
                sheet_path.with_suffix(".gif"),
                payload.fps,
                payload.scale,
                payload.loop,
            )

        try:
            gif_path = await run_in_threadpool(_export)
        except ValidationError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except ProcessingError as exc:
            logger.exception("GIF export failed")
            raise HTTPException(status_code=500, detail=str(exc)) from exc
        return {"gif_url": _artifact_url(gif_path)}

    return app


def _write_upload_file(file: UploadFile, target_dir: Path, index: int) -> Path:
    """Stream an uploaded frame to disk, keeping upload order in the file name."""

    suffix = Path(file.filename or "frame.png").suffix.lower() or ".png"
    if suffix not in validators.ALLOWED_IMAGE_EXTENSIONS:
        raise HTTPException(status_code=400, detail=f"Unsupported file type: {suffix}")
    target = target_dir / f"frame_{index:04d}{suffix}"
    written = 0
    with target.open("wb") as handle:
        while True:
            chunk = file.file.read(1024 * 1024)
            if not chunk:
                break
            written += len(chunk)
            if written > MAX_UPLOAD_BYTES:
                target.unlink(missing_ok=True)
                raise HTTPException(status_code=413, detail="File too large")
            handle.write(chunk)
    return target


def _enforce_size_limit(request: Request) -> None:
    """Simple guardrail on upload size based on Content-Length."""

    content_length = request.headers.get("content-length")
    if not content_length:
        return
    try:
        size = int(content_length)
    except ValueError:
        return
    if size > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=413, detail="Upload exceeds limit")


if __name__ == "__main__":  # pragma: no cover
    import uvicorn

    uvicorn.run(create_app(), host="0.0.0.0", port=8000)
