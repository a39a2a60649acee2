"""Filesystem helpers."""

from __future__ import annotations

import logging
import re
from pathlib import Path

logger = logging.getLogger(__name__)

_UNSAFE_NAME_CHARS = re.compile(r"[^0-9A-Za-z]")


def ensure_directory(path: Path) -> Path:
    """Create a directory if it does not exist."""

    path.mkdir(parents=True, exist_ok=True)
    logger.debug("Ensured directory exists: %s", path)
    return path


def sanitize_name(name: str) -> str:
    """Replace every non-alphanumeric character with an underscore."""

    cleaned = _UNSAFE_NAME_CHARS.sub("_", name or "")
    return cleaned or "animation"


def format_output_filename(animation_name: str, kind: str, suffix: str) -> str:
    """Build ``<name>_<kind><suffix>`` with a filesystem-safe name."""

    if not suffix.startswith("."):
        suffix = "." + suffix
    stem = sanitize_name(animation_name)
    if kind:
        stem = f"{stem}_{kind}"
    return f"{stem}{suffix}"
