"""Logging setup shared by the API server and the client store."""
import logging
import sys

from worktracker.core import config

LOG_FORMAT = "%(asctime)s level=%(levelname)s logger=%(name)s %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Attach a stdout handler to the package root logger once."""
    root = logging.getLogger("worktracker")
    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
    root.setLevel((level or config.LOG_LEVEL).upper())
