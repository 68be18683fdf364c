"""Verbosity-aware logging for the timeline engine and CLI.

Verbosity 1 shows one summary per engine pass (lanes packed, conflicts found,
edges kept). Verbosity 2 adds per-item decisions; 3 adds debug detail.
"""

from __future__ import annotations

import logging
import sys
from typing import Any, TextIO

CHANGES_LEVEL = 25  # Between INFO and WARNING: pass summaries
CHECKS_LEVEL = 15  # Between DEBUG and INFO: row placement, dropped edges

logging.addLevelName(CHANGES_LEVEL, "CHANGES")
logging.addLevelName(CHECKS_LEVEL, "CHECKS")

_LEVELS = {
    0: logging.ERROR,
    1: CHANGES_LEVEL,
    2: CHECKS_LEVEL,
    3: logging.DEBUG,
}


class TourplanLogger(logging.Logger):
    """Logger with changes() and checks() between the standard levels."""

    def changes(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log a pass summary (verbosity 1)."""
        if self.isEnabledFor(CHANGES_LEVEL):
            self._log(CHANGES_LEVEL, msg, args, **kwargs)

    def checks(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log a per-item decision (verbosity 2)."""
        if self.isEnabledFor(CHECKS_LEVEL):
            self._log(CHECKS_LEVEL, msg, args, **kwargs)


def get_logger() -> TourplanLogger:
    """Return the shared "tourplan" logger."""
    logging.setLoggerClass(TourplanLogger)
    logger = logging.getLogger("tourplan")
    assert isinstance(logger, TourplanLogger)
    return logger


def setup_logger(verbosity: int, stream: TextIO | None = None) -> None:
    """Point the logger at a stream with the level for a verbosity of 0-3.

    Calling it again replaces the previous handler. Unknown verbosities fall
    back to errors only.
    """
    logger = get_logger()
    logger.handlers.clear()
    logger.setLevel(_LEVELS.get(verbosity, logging.ERROR))

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.propagate = False


def reset_logger() -> None:
    """Drop handlers and go back to errors only."""
    logger = get_logger()
    logger.handlers.clear()
    logger.setLevel(logging.ERROR)
