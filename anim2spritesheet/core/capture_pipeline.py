"""Single snapshot capture against the host scene."""

from __future__ import annotations

import asyncio
import logging
import time
from io import BytesIO

from PIL import Image

from . import CapturedFrame
from .errors import CaptureFailedError
from .scene import SceneContext

logger = logging.getLogger(__name__)

MIN_SNAPSHOT_BYTES = 100


def decode_snapshot(data: bytes) -> Image.Image:
    """Decode encoded image bytes into a fully loaded RGBA image."""

    if not data or len(data) < MIN_SNAPSHOT_BYTES:
        raise CaptureFailedError(f"snapshot payload too small ({len(data or b'')} bytes)")
    try:
        with Image.open(BytesIO(data)) as img:
            img.load()
            return img.convert("RGBA")
    except Exception as exc:
        raise CaptureFailedError(f"could not decode snapshot: {exc}") from exc


class CapturePipeline:
    """Issues one snapshot request and normalizes the result."""

    def __init__(self, scene: SceneContext) -> None:
        self.scene = scene

    async def capture_once(self, width: int, height: int, index: int = 0) -> CapturedFrame:
        """Capture the current view at ``width`` x ``height``.

        Raises CaptureFailedError for empty payloads, snapshot errors and
        decode failures. Retrying is the caller's job.
        """

        started = time.monotonic()
        try:
            with self.scene.transparent_background():
                data = await self.scene.request_snapshot(width, height)
        except CaptureFailedError:
            raise
        except Exception as exc:
            raise CaptureFailedError(f"snapshot request failed: {exc}") from exc

        image = await asyncio.to_thread(decode_snapshot, data)
        logger.debug(
            "Captured frame %s (%sx%s) in %.1fms",
            index,
            image.width,
            image.height,
            (time.monotonic() - started) * 1000,
        )
        return CapturedFrame(index=index, image=image, captured_at=started)
