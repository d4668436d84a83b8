from __future__ import annotations

import logging
import os

ENV_DEBUG = "CRAFTCTL_DEBUG"
DEFAULT_DEBUG_LOG = "debug.log"


def setup_logging(verbose: bool, log_file: str | None = None) -> None:
    if not log_file and os.getenv(ENV_DEBUG):
        log_file = DEFAULT_DEBUG_LOG
        verbose = True

    level = logging.DEBUG if verbose else logging.INFO
    if log_file:
        logging.basicConfig(
            filename=log_file,
            level=level,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
    else:
        # The TUI owns the terminal: nothing may write to stderr while it runs.
        root = logging.getLogger()
        root.addHandler(logging.NullHandler())
        root.setLevel(logging.WARNING)

    # quiet httpx unless asked
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.DEBUG if verbose else logging.WARNING)
