import asyncio
import struct
import zlib
from contextlib import contextmanager
from io import BytesIO

import pytest
from PIL import Image

from anim2spritesheet.core.capture_scheduler import CaptureScheduler


def make_frame(size=(32, 32), box=None, color=(200, 40, 40, 255)) -> Image.Image:
    """Transparent frame with an optional opaque rectangle ``box`` (inclusive)."""

    img = Image.new("RGBA", size, (0, 0, 0, 0))
    if box is not None:
        left, top, right, bottom = box
        img.paste(color, (left, top, right + 1, bottom + 1))
    return img


def encode_png(image: Image.Image) -> bytes:
    buffer = BytesIO()
    image.save(buffer, format="PNG", compress_level=0)
    return buffer.getvalue()


def _png_chunk(kind: bytes, data: bytes) -> bytes:
    return struct.pack(">I", len(data)) + kind + data + struct.pack(">I", zlib.crc32(kind + data))


def oversized_png(width=20000, height=20000) -> bytes:
    """Well-formed PNG header announcing far more pixels than Pillow will open."""

    header = struct.pack(">IIBBBBB", width, height, 8, 6, 0, 0, 0)
    return (
        b"\x89PNG\r\n\x1a\n"
        + _png_chunk(b"IHDR", header)
        + _png_chunk(b"IDAT", zlib.compress(b"\x00" * 256, 0))
        + _png_chunk(b"IEND", b"")
    )


class FakeAnimation:
    def __init__(self, name="Walk Cycle", frame_span=30, frame_rate=30, speed_ratio=1.0):
        self.name = name
        self.frame_span = frame_span
        self.frame_rate = frame_rate
        self.speed_ratio = speed_ratio
        self.calls = []
        self.playing = True

    def start(self, loop):
        self.calls.append(("start", loop))
        self.playing = True

    def stop(self):
        self.calls.append("stop")
        self.playing = False

    def reset(self):
        self.calls.append("reset")


class FakeScene:
    """Scene whose snapshots fail on the call numbers in ``fail_on`` (1-based)."""

    def __init__(self, animation=None, fail_on=None, fail_always=False, frame_factory=None):
        self.current_animation = animation
        self.fail_on = set(fail_on or ())
        self.fail_always = fail_always
        self.frame_factory = frame_factory
        self.snapshot_calls = 0
        self.transparent = False
        self.transparent_during_snapshot = []

    @contextmanager
    def transparent_background(self):
        self.transparent = True
        try:
            yield
        finally:
            self.transparent = False

    async def request_snapshot(self, width, height):
        self.snapshot_calls += 1
        self.transparent_during_snapshot.append(self.transparent)
        if self.fail_always or self.snapshot_calls in self.fail_on:
            return b""
        if self.frame_factory is not None:
            image = self.frame_factory(self.snapshot_calls, width, height)
        else:
            image = make_frame((width, height), box=(width // 4, height // 4, width // 2, height - 1))
        return encode_png(image)


class SessionEvents:
    def __init__(self):
        self.progress = []
        self.success = None
        self.failure = None
        self.warnings = []
        self.delays = []


@pytest.fixture
def fake_animation():
    return FakeAnimation()


@pytest.fixture
def run_session():
    """Run one scheduler session to completion with a no-op sleep."""

    def _run(scene, target, layout, on_progress=None):
        events = SessionEvents()

        async def fake_sleep(delay):
            events.delays.append(delay)
            await asyncio.sleep(0)

        async def _go():
            holder = {}

            def _progress(captured, total):
                events.progress.append((captured, total))
                if on_progress:
                    on_progress(holder["scheduler"], captured, total)

            scheduler = CaptureScheduler(
                scene,
                on_progress=_progress,
                on_success=lambda sheet, descriptor: setattr(events, "success", (sheet, descriptor)),
                on_failure=lambda error: setattr(events, "failure", error),
                on_warning=events.warnings.append,
                sleep=fake_sleep,
            )
            holder["scheduler"] = scheduler
            scheduler.start(target, layout)
            await scheduler.wait()
            return scheduler

        scheduler = asyncio.run(_go())
        return scheduler, events

    return _run
