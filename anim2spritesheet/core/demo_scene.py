"""Procedural side-view character used when no external scene is attached."""

from __future__ import annotations

import logging
import math
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from io import BytesIO
from typing import Callable, Iterator, Optional

from PIL import Image, ImageDraw

from .scene import DEFAULT_FRAME_RATE, frame_rate_of, speed_ratio_of

logger = logging.getLogger(__name__)

Keyframes = list[tuple[float, float]]
OPAQUE_CLEAR = (51, 51, 76, 255)
CHARACTER_FILL = (128, 128, 255, 255)
CHARACTER_OUTLINE = (40, 40, 110, 255)


def interpolate(keys: Keyframes, frame: float) -> float:
    """Linear keyframe interpolation; ``keys`` are sorted ``(frame, value)`` pairs."""

    if frame <= keys[0][0]:
        return keys[0][1]
    for (f0, v0), (f1, v1) in zip(keys, keys[1:]):
        if frame <= f1:
            t = (frame - f0) / (f1 - f0) if f1 > f0 else 0.0
            return v0 + (v1 - v0) * t
    return keys[-1][1]


@dataclass
class Pose:
    body_lift: float = 0.0
    leg_swing: float = 0.0
    arm_swing: float = 0.0


@dataclass
class ProceduralAnimation:
    """Looping clip whose position follows a wall clock."""

    name: str
    tracks: dict[str, Keyframes]
    frame_span: float = 30.0
    frame_rate: float = DEFAULT_FRAME_RATE
    speed_ratio: float = 1.0
    clock: Callable[[], float] = time.monotonic
    is_playing: bool = field(default=False, init=False)
    looping: bool = field(default=True, init=False)
    _started_at: float = field(default=0.0, init=False)
    _held_frame: float = field(default=0.0, init=False)

    def _playback_rate(self) -> float:
        return frame_rate_of(self) * speed_ratio_of(self)

    def start(self, loop: bool) -> None:
        self.looping = loop
        self._started_at = self.clock() - self._held_frame / self._playback_rate()
        self.is_playing = True

    def stop(self) -> None:
        self._held_frame = self.current_frame()
        self.is_playing = False

    def reset(self) -> None:
        self._held_frame = 0.0
        self._started_at = self.clock()

    def current_frame(self) -> float:
        if not self.is_playing:
            return self._held_frame
        elapsed = (self.clock() - self._started_at) * self._playback_rate()
        if self.looping:
            return elapsed % self.frame_span
        return min(elapsed, self.frame_span)

    def pose(self) -> Pose:
        frame = self.current_frame()
        values = {name: interpolate(keys, frame) for name, keys in self.tracks.items()}
        return Pose(**values)


def idle_clip(clock: Callable[[], float] = time.monotonic) -> ProceduralAnimation:
    return ProceduralAnimation(
        name="Idle",
        tracks={"body_lift": [(0, 0.0), (15, 0.05), (30, 0.0)]},
        clock=clock,
    )


def walk_clip(clock: Callable[[], float] = time.monotonic) -> ProceduralAnimation:
    leg = math.pi / 10
    arm = math.pi / 4
    return ProceduralAnimation(
        name="Walk",
        tracks={
            "leg_swing": [(0, -leg), (15, leg), (30, -leg)],
            "arm_swing": [(0, arm), (15, -arm), (30, arm)],
        },
        clock=clock,
    )


class ProceduralScene:
    """Minimal scene: one figure, a list of clips, one current animation."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self.animations = [idle_clip(clock), walk_clip(clock)]
        self._current: Optional[ProceduralAnimation] = None
        self.clear_color = OPAQUE_CLEAR

    @property
    def current_animation(self) -> Optional[ProceduralAnimation]:
        return self._current

    def animation_names(self) -> list[str]:
        return [anim.name for anim in self.animations]

    def play(self, name: str) -> ProceduralAnimation:
        """Stop the current clip and loop the named one."""

        for anim in self.animations:
            if anim.name.lower() == name.lower():
                break
        else:
            raise KeyError(f"Unknown animation '{name}' (available: {', '.join(self.animation_names())})")
        if self._current is not None:
            self._current.stop()
        self._current = anim
        anim.start(True)
        logger.info("Playing animation: %s", anim.name)
        return anim

    @contextmanager
    def transparent_background(self) -> Iterator[None]:
        previous = self.clear_color
        self.clear_color = (0, 0, 0, 0)
        try:
            yield
        finally:
            self.clear_color = previous

    async def request_snapshot(self, width: int, height: int) -> bytes:
        image = self.render(width, height)
        buffer = BytesIO()
        image.save(buffer, format="PNG")
        return buffer.getvalue()

    def render(self, width: int, height: int) -> Image.Image:
        """Draw the figure in its current pose."""

        image = Image.new("RGBA", (width, height), self.clear_color)
        pose = self._current.pose() if self._current else Pose()
        draw = ImageDraw.Draw(image)
        unit = height / 5.0
        cx = width / 2.0
        hip_y = height * 0.62 - pose.body_lift * unit
        body_w = 0.5 * unit
        body_top = hip_y - 1.5 * unit

        for offset, direction in ((-0.1, 1), (0.1, -1)):
            self._limb(draw, (cx + offset * unit, hip_y), 1.5 * unit, pose.leg_swing * direction, 0.3 * unit)
        draw.rectangle(
            (cx - body_w / 2, body_top, cx + body_w / 2, hip_y),
            fill=CHARACTER_FILL,
            outline=CHARACTER_OUTLINE,
        )
        head_r = 0.35 * unit
        head_cy = body_top - head_r - 0.05 * unit
        draw.ellipse(
            (cx - head_r, head_cy - head_r, cx + head_r, head_cy + head_r),
            fill=CHARACTER_FILL,
            outline=CHARACTER_OUTLINE,
        )
        for direction in (1, -1):
            self._limb(draw, (cx, body_top + 0.15 * unit), 1.2 * unit, pose.arm_swing * direction, 0.25 * unit)
        return image

    @staticmethod
    def _limb(draw: ImageDraw.ImageDraw, pivot: tuple[float, float], length: float, angle: float, thickness: float) -> None:
        end = (pivot[0] + math.sin(angle) * length, pivot[1] + math.cos(angle) * length)
        draw.line((pivot, end), fill=CHARACTER_FILL, width=max(1, int(thickness)))
