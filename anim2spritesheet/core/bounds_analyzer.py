"""Content bounds detection on transparent captures."""

from __future__ import annotations

import logging
import math
from typing import Optional

import numpy as np
from PIL import Image

from . import ContentBounds

logger = logging.getLogger(__name__)

ALPHA_THRESHOLD = 10
HORIZONTAL_MARGIN = 0.025
TOP_MARGIN = 0.025
# Sprites are usually foot-anchored, so keep less room below.
BOTTOM_MARGIN = 0.01


def full_frame(width: int, height: int) -> ContentBounds:
    return ContentBounds(left=0, top=0, right=width - 1, bottom=height - 1)


def find_content_box(image: Image.Image, threshold: int = ALPHA_THRESHOLD) -> Optional[ContentBounds]:
    """Return the tight box of pixels whose alpha exceeds ``threshold``, or None."""

    if image.mode != "RGBA":
        image = image.convert("RGBA")
    alpha = np.asarray(image.getchannel("A"))
    mask = alpha > threshold
    rows = np.flatnonzero(mask.any(axis=1))
    if rows.size == 0:
        return None
    cols = np.flatnonzero(mask.any(axis=0))
    return ContentBounds(
        left=int(cols[0]),
        top=int(rows[0]),
        right=int(cols[-1]),
        bottom=int(rows[-1]),
    )


def expand_bounds(box: ContentBounds, width: int, height: int) -> ContentBounds:
    """Grow a tight box by the asymmetric margins, clamped to the frame."""

    margin_x = math.ceil(width * HORIZONTAL_MARGIN)
    margin_top = math.ceil(height * TOP_MARGIN)
    margin_bottom = math.ceil(height * BOTTOM_MARGIN)
    return ContentBounds(
        left=max(0, box.left - margin_x),
        top=max(0, box.top - margin_top),
        right=min(width - 1, box.right + margin_x),
        bottom=min(height - 1, box.bottom + margin_bottom),
    )


def analyze(image: Image.Image) -> ContentBounds:
    """Find the content rectangle of a frame.

    A fully transparent frame yields the full-frame rectangle so callers can
    still place it like any other frame.
    """

    box = find_content_box(image)
    if box is None:
        logger.debug("No content found in %sx%s frame; using full frame", image.width, image.height)
        return full_frame(image.width, image.height)
    return expand_bounds(box, image.width, image.height)
