"""Logging configuration for dotlink."""

from __future__ import annotations

import logging
import os

from rich.console import Console
from rich.logging import RichHandler

DEBUG_ENV = "DOTLINK_DEBUG"


def setup_logging(verbose: bool = False, *, console: Console | None = None) -> None:
    """Install a rich handler on the root logger.

    Records at ``WARNING`` and above are always shown. ``verbose`` lowers the
    threshold to ``INFO`` so each link and removal is reported, and setting
    ``DOTLINK_DEBUG=1`` lowers it further to ``DEBUG``.
    """

    debug = os.environ.get(DEBUG_ENV, "") not in ("", "0")
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_time=debug,
        show_path=debug,
        markup=False,
        rich_tracebacks=True,
    )
    handler.setLevel(level)
    root_logger.addHandler(handler)

    logging.getLogger(__name__).debug("Logging initialized (verbose=%s, debug=%s)", verbose, debug)
