"""Timed capture of a live animation into a frame buffer.

The scheduler samples a continuously playing animation ``target`` times over
exactly one cycle. Each capture is awaited before the next one is scheduled,
so there is never more than one snapshot in flight and the capture count can
not drift from the target the way a fixed-rate timer would. Failed captures
are retried after a fixed delay until the session-wide retry ceiling is hit.

Terminal results are delivered through callbacks; nothing here raises into
the event loop once a session has started.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional

from PIL import Image

from . import RecordingSession, RecordingStatus, SheetLayout
from .capture_pipeline import CapturePipeline
from .errors import (
    CaptureFailedError,
    CompositionError,
    InvalidStateError,
    PartialCaptureWarning,
    ProcessingError,
    RecordingAbortedError,
    ValidationError,
)
from .manifest_writer import SpriteSheetDescriptor, build_descriptor
from .scene import AnimationHandle, SceneContext, frame_rate_of, speed_ratio_of
from .spritesheet_builder import build_spritesheet

logger = logging.getLogger(__name__)

SETTLE_DELAY_SECONDS = 0.1
RETRY_DELAY_SECONDS = 0.2
PROGRESS_LOG_INTERVAL = 5

ProgressCallback = Callable[[int, int], None]
SuccessCallback = Callable[[Image.Image, SpriteSheetDescriptor], None]
FailureCallback = Callable[[ProcessingError], None]
WarningCallback = Callable[[PartialCaptureWarning], None]
SleepFunc = Callable[[float], Awaitable[None]]


def capture_interval(animation: AnimationHandle, target_frame_count: int) -> float:
    """Seconds between captures so ``target_frame_count`` samples span one cycle."""

    frames_per_capture = float(animation.frame_span) / target_frame_count
    return (1.0 / frame_rate_of(animation)) * frames_per_capture / speed_ratio_of(animation)


class CaptureScheduler:
    """Owns the recording state machine for one scene."""

    def __init__(
        self,
        scene: SceneContext,
        pipeline: Optional[CapturePipeline] = None,
        *,
        on_progress: Optional[ProgressCallback] = None,
        on_success: Optional[SuccessCallback] = None,
        on_failure: Optional[FailureCallback] = None,
        on_warning: Optional[WarningCallback] = None,
        sleep: SleepFunc = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.scene = scene
        self.pipeline = pipeline or CapturePipeline(scene)
        self.on_progress = on_progress
        self.on_success = on_success
        self.on_failure = on_failure
        self.on_warning = on_warning
        self._sleep = sleep
        self._clock = clock
        self._status = RecordingStatus.IDLE
        self._session: Optional[RecordingSession] = None
        self._task: Optional[asyncio.Task] = None
        self.last_session: Optional[RecordingSession] = None

    @property
    def status(self) -> RecordingStatus:
        return self._status

    @property
    def session(self) -> Optional[RecordingSession]:
        return self._session

    @property
    def is_recording(self) -> bool:
        return self._status in (RecordingStatus.RECORDING, RecordingStatus.FINISHING)

    def start(
        self,
        target_frame_count: int,
        layout: SheetLayout,
        animation_name: Optional[str] = None,
    ) -> asyncio.Task:
        """Begin a session on the running event loop and return its task."""

        if self.is_recording:
            raise InvalidStateError("A recording session is already running")
        animation = self.scene.current_animation
        if animation is None:
            raise InvalidStateError("Play an animation before recording")
        if target_frame_count < 1:
            raise ValidationError("Frame count must be greater than zero")
        loop = asyncio.get_running_loop()

        animation.stop()
        animation.reset()
        animation.start(True)

        session = RecordingSession(
            target_frame_count=target_frame_count,
            layout=layout,
            animation_name=animation_name or getattr(animation, "name", None) or "animation",
            started_at=self._clock(),
        )
        self._session = session
        self.last_session = session
        self._transition(session, RecordingStatus.RECORDING)
        logger.info(
            "Recording %s frames of '%s' at %sx%s (retry ceiling %s)",
            target_frame_count,
            session.animation_name,
            layout.cell_width,
            layout.cell_height,
            session.retry_ceiling,
        )
        self._task = loop.create_task(self._run(session))
        return self._task

    def abort(self, reason: str = "cancelled by user") -> bool:
        """Stop recording and drop the buffer; the animation keeps playing."""

        session = self._session
        if session is None or session.status != RecordingStatus.RECORDING:
            return False
        self._abort(session, reason)
        return True

    def finish_early(self) -> None:
        """Compose whatever has been captured so far."""

        session = self._session
        if session is None or session.status != RecordingStatus.RECORDING:
            raise InvalidStateError("No recording in progress")
        if not session.frames:
            self._abort(session, "no frames captured")
            return
        session.cancelled = True
        self._finish(session)

    async def wait(self) -> None:
        """Wait for the current capture chain to stop."""

        if self._task is not None:
            await self._task

    def _is_current(self, session: RecordingSession) -> bool:
        return self._session is session and not session.cancelled

    async def _run(self, session: RecordingSession) -> None:
        try:
            await self._capture_loop(session)
        except Exception as exc:
            logger.exception("Capture loop crashed")
            if self._session is session:
                self._fail(session, ProcessingError(f"Recording failed unexpectedly: {exc}"))

    async def _capture_loop(self, session: RecordingSession) -> None:
        await self._sleep(SETTLE_DELAY_SECONDS)
        layout = session.layout
        target = session.target_frame_count
        while self._is_current(session):
            animation = self.scene.current_animation
            if animation is None:
                self._abort(session, "animation is no longer available")
                return
            try:
                frame = await self.pipeline.capture_once(
                    layout.cell_width, layout.cell_height, index=session.captured_count
                )
            except CaptureFailedError as exc:
                if not self._is_current(session):
                    return
                session.failed_attempts += 1
                logger.warning("%s; retry %s/%s", exc, session.failed_attempts, session.retry_ceiling)
                if session.failed_attempts >= session.retry_ceiling:
                    self._abort(session, "too many failed captures")
                    return
                await self._sleep(RETRY_DELAY_SECONDS)
                continue

            if not self._is_current(session):
                return
            session.frames.append(frame)
            captured = session.captured_count
            if captured % PROGRESS_LOG_INTERVAL == 0 or captured == target:
                logger.info("Recording sprite sheet: frame %s/%s", captured, target)
            if self.on_progress:
                self.on_progress(captured, target)
            if not self._is_current(session):
                return
            if captured >= target:
                self._finish(session)
                return
            await self._sleep(capture_interval(animation, target))

    def _finish(self, session: RecordingSession) -> None:
        self._transition(session, RecordingStatus.FINISHING)
        frames = [frame.image for frame in session.frames]
        target = session.target_frame_count
        warning = None
        if len(frames) < target:
            warning = PartialCaptureWarning(len(frames), target)
            logger.warning("Warning: %s", warning)

        try:
            sheet, _infos = build_spritesheet(frames, session.layout)
            descriptor = build_descriptor(len(frames), session.layout, session.animation_name)
        except ProcessingError as exc:
            self._fail(session, exc)
            return
        except Exception as exc:
            logger.exception("Sheet composition failed")
            self._fail(session, CompositionError(f"Could not compose sheet: {exc}"))
            return

        session.frames.clear()
        self._release(session, RecordingStatus.IDLE)
        logger.info(
            "Sprite sheet created with %s frames - cell size %sx%spx",
            descriptor.frames,
            descriptor.frame_width,
            descriptor.frame_height,
        )
        if warning is not None and self.on_warning:
            self.on_warning(warning)
        if self.on_success:
            self.on_success(sheet, descriptor)

    def _abort(self, session: RecordingSession, reason: str) -> None:
        captured = session.captured_count
        error = RecordingAbortedError(reason, captured=captured, target=session.target_frame_count)
        logger.warning("Recording aborted after %s/%s frames: %s", captured, session.target_frame_count, reason)
        self._fail(session, error)

    def _fail(self, session: RecordingSession, error: ProcessingError) -> None:
        session.cancelled = True
        session.frames.clear()
        self._transition(session, RecordingStatus.ABORTED)
        self._release(session, RecordingStatus.ABORTED)
        if self.on_failure:
            self.on_failure(error)

    def _release(self, session: RecordingSession, final: RecordingStatus) -> None:
        session.status = final
        if self._session is session:
            self._session = None
        self._status = RecordingStatus.IDLE

    def _transition(self, session: RecordingSession, status: RecordingStatus) -> None:
        logger.debug("Session '%s': %s -> %s", session.animation_name, session.status.value, status.value)
        session.status = status
        self._status = status
