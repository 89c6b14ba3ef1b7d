"""Logging setup for scripts and applications embedding the repository layer."""

import logging
from typing import Optional

from typedrepo.utils.settings import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: Optional[str] = None) -> int:
    """Configure root logging once and return the numeric level applied.

    Falls back to INFO when the configured level name is unknown.
    """
    name = (level or get_settings().log_level).upper()
    numeric = logging.getLevelName(name)
    if not isinstance(numeric, int):
        numeric = logging.INFO
    logging.basicConfig(level=numeric, format=LOG_FORMAT)
    logging.getLogger("typedrepo").setLevel(numeric)
    return numeric
