"""Entry point for the anim2sprite command."""

from __future__ import annotations

import logging
import sys

from .cli import main


def configure_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(
        level=level,
        format="[%(levelname)s] %(name)s: %(message)s",
    )


def run(argv: list[str] | None = None) -> int:
    """Configure logging and dispatch to the CLI."""

    configure_logging()
    return main(argv)


if __name__ == "__main__":
    sys.exit(run())
