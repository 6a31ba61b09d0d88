"""Logging configuration for the gateway."""

import logging
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: str | int = logging.INFO) -> logging.Logger:
    """Configure the ``lmgateway`` logger; safe to call more than once.

    httpx logs one INFO line per upstream request, so it is held at
    WARNING unless the gateway itself runs at DEBUG.
    """
    logger = logging.getLogger("lmgateway")
    logger.setLevel(level)
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(handler)
    logger.propagate = True

    if logger.getEffectiveLevel() > logging.DEBUG:
        logging.getLogger("httpx").setLevel(logging.WARNING)

    return logger
