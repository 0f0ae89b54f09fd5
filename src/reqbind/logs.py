from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

NULL_LOGGER = logging.getLogger("reqbind.null")
NULL_LOGGER.addHandler(logging.NullHandler())
NULL_LOGGER.propagate = False


def configure_logging(level: str = "INFO", console: Console | None = None) -> None:
    """Install a single rich handler on the ``reqbind`` logger tree."""
    root = logging.getLogger("reqbind")
    root.setLevel(level.upper())

    for h in list(root.handlers):
        if isinstance(h, RichHandler):
            root.removeHandler(h)

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=False,
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    root.addHandler(handler)
