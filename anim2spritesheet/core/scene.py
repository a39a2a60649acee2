"""Interfaces the recorder expects from the host's scene."""

from __future__ import annotations

from typing import ContextManager, Optional, Protocol

DEFAULT_FRAME_RATE = 30.0


class AnimationHandle(Protocol):
    """Narrow view of a playing animation."""

    name: str
    speed_ratio: float
    frame_span: float
    frame_rate: float

    def start(self, loop: bool) -> None: ...

    def stop(self) -> None: ...

    def reset(self) -> None: ...


class SceneContext(Protocol):
    """Scene capabilities used by the capture pipeline and scheduler."""

    @property
    def current_animation(self) -> Optional[AnimationHandle]: ...

    async def request_snapshot(self, width: int, height: int) -> bytes: ...

    def transparent_background(self) -> ContextManager[None]: ...


def frame_rate_of(animation: AnimationHandle) -> float:
    """Nominal frame rate, falling back to 30 fps."""

    rate = getattr(animation, "frame_rate", None)
    return float(rate) if rate else DEFAULT_FRAME_RATE


def speed_ratio_of(animation: AnimationHandle) -> float:
    ratio = getattr(animation, "speed_ratio", None)
    return float(ratio) if ratio else 1.0
