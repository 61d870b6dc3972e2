from __future__ import annotations

import logging
from typing import Dict, Optional

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
LOG_DATEFMT = "%H:%M:%S"

# Minimum level for third-party loggers that log every HTTP round trip
QUIET_LOGGERS: Dict[str, int] = {
    "urllib3.connectionpool": logging.WARNING,
}


def _apply_floor(name: str, floor: int) -> None:
    logger = logging.getLogger(name)
    if logger.level < floor:
        logger.setLevel(floor)


def configure_logging(level: Optional[int]) -> None:
    """Set up root logging for the CLI from its -v/-vv verbosity.

    ``None`` means WARNING. Calling it again only changes the root level,
    so handlers installed by an embedding application are kept.
    """
    effective = logging.WARNING if level is None else level
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=effective, format=LOG_FORMAT, datefmt=LOG_DATEFMT)
    else:
        root.setLevel(effective)

    for name, floor in QUIET_LOGGERS.items():
        _apply_floor(name, floor)
