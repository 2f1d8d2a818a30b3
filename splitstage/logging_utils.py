"""
Logging helpers for splitstage.

Diagnostics go through the standard logging module and stay on stderr;
reports and review menus are written to the caller's stream instead.
"""

from __future__ import annotations

import logging

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


def level_for_verbosity(verbosity: int) -> int:
    if verbosity <= 0:
        return logging.WARNING
    if verbosity == 1:
        return logging.INFO
    return logging.DEBUG


def configure_logging(verbosity: int) -> None:
    """
    Configure the root logger based on a verbosity count.

    verbosity == 0 -> WARNING
    verbosity == 1 -> INFO
    verbosity >= 2 -> DEBUG
    """

    logging.basicConfig(
        level=level_for_verbosity(verbosity),
        format=LOG_FORMAT,
    )
