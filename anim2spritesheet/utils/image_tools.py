"""Image loading and saving helpers."""

from __future__ import annotations

import logging
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from ..core.errors import ValidationError

logger = logging.getLogger(__name__)


def load_image(path: Path) -> Image.Image:
    """Load an image fully into memory as RGBA."""

    if not path.exists():
        raise FileNotFoundError(path)
    try:
        with Image.open(path) as img:
            img.load()
            return img.convert("RGBA")
    except UnidentifiedImageError as exc:
        raise ValidationError(f"Not a readable image: {path}") from exc


def load_images(paths: list[Path]) -> list[Image.Image]:
    images = [load_image(path) for path in paths]
    logger.debug("Loaded %s images", len(images))
    return images


def verify_image(path: Path) -> None:
    """Lightweight check that a file decodes as an image."""

    try:
        with Image.open(path) as img:
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError) as exc:
        raise ValidationError(f"File failed validation: {exc}") from exc
