import logging
import os
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"


def setup_logging(level: Optional[str] = None) -> None:
    """Configure the root logger once at startup.

    ``level`` falls back to the ``LOGLEVEL`` environment variable, then ``INFO``.
    Calling it again replaces the previous configuration.
    """
    lvl = (level or os.getenv("LOGLEVEL", "INFO")).upper()
    logging.basicConfig(
        level=lvl,
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )
