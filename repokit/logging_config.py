"""Logging configuration for repokit.

Every module logs through ``logging.getLogger(__name__)``; this helper only
sets up the root handler for applications and scripts that want the
default terse format.
"""

from __future__ import annotations

import logging

from repokit.infrastructure import database

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
DATE_FORMAT = "%H:%M:%S"


def configure_logging(level: int | str | None = None, *, force: bool = False) -> None:
    """Initialise the root logger once.  Pass force=True to reconfigure (tests).

    level defaults to ``database.settings.log_level`` (env ``LOG_LEVEL``).
    """
    if level is None:
        level = database.settings.log_level
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=DATE_FORMAT, force=force)
