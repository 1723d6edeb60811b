from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%dT%H:%M:%S%z"


def configure_logging(level: int = logging.INFO) -> None:
    """Configure console logging for the CLI.

    Safe to call more than once: the handler is installed on the first call,
    later calls only adjust the level.
    """

    logger = logging.getLogger()
    logger.setLevel(level)

    if getattr(logger, "_devimage_configured", False):
        return

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT))
    logger.addHandler(console)

    setattr(logger, "_devimage_configured", True)
