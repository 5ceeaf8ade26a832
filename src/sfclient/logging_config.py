from __future__ import annotations

import logging
import os
from typing import Optional

LOG_LEVEL_ENV = "SFCLIENT_LOG_LEVEL"

_DEFAULT_FMT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_DEFAULT_DATEFMT = "%H:%M:%S"

_logger = logging.getLogger(__name__)


def _level_from_env() -> int:
    """Read SFCLIENT_LOG_LEVEL as a level name (``INFO``) or number (``20``)."""
    raw = os.getenv(LOG_LEVEL_ENV, "").strip()
    if not raw:
        return logging.WARNING
    if raw.isdigit():
        return int(raw)
    level = logging.getLevelName(raw.upper())
    if isinstance(level, int):
        return level
    _logger.warning("Ignoring unknown %s=%r", LOG_LEVEL_ENV, raw)
    return logging.WARNING


def configure_logging(level: Optional[int]) -> int:
    """Configure logging for the CLI and return the level in effect.

    An explicit *level* (from ``-v``/``-vv``) wins over ``SFCLIENT_LOG_LEVEL``.
    Root handlers are only installed once; later calls adjust the level.
    """
    lvl = level if level is not None else _level_from_env()
    root = logging.getLogger()

    if root.handlers:
        root.setLevel(lvl)
    else:
        logging.basicConfig(level=lvl, format=_DEFAULT_FMT, datefmt=_DEFAULT_DATEFMT)

    # Request URLs, SOQL included, are logged by sfclient at DEBUG; urllib3's
    # own connection chatter adds nothing on top, so only keep its errors.
    urllib3_conn_logger = logging.getLogger("urllib3.connection")
    if urllib3_conn_logger.level == logging.NOTSET or urllib3_conn_logger.level < logging.ERROR:
        urllib3_conn_logger.setLevel(logging.ERROR)
    return lvl
