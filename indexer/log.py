from __future__ import annotations

import logging
import os

# ------------------------------------------------------------
# Logging categories (coarse grained, opt-in / opt-out)
#   Set LOG_ALL=0 to disable all unless explicitly enabled.
#   Per-category env vars override: LOG_SCAN, LOG_CACHE, LOG_PIPELINE,
#   LOG_PROGRESS, LOG_RELAY, LOG_SPRITE. Values: 1 enable, 0 disable.
# ------------------------------------------------------------

_LOGGER = logging.getLogger("vidindex")


def log_enabled(cat: str) -> bool:
    base = os.environ.get("LOG_ALL", "1")
    base_on = str(base).lower() not in ("0", "false", "no")
    specific = os.environ.get(f"LOG_{cat.upper()}")
    if specific is not None:
        return str(specific).lower() in ("1", "true", "yes")
    return base_on


def log(cat: str, msg: str, *args, level: int = logging.INFO) -> None:
    """Emit an application log line for a given category.

    Goes through the standard logging pipeline under the ``vidindex.<cat>``
    logger so uvicorn's handlers pick it up.
    """
    if not log_enabled(cat):
        return
    _LOGGER.getChild(cat).log(level, msg, *args)


def debug(cat: str, msg: str, *args) -> None:
    log(cat, msg, *args, level=logging.DEBUG)


def warning(cat: str, msg: str, *args) -> None:
    log(cat, msg, *args, level=logging.WARNING)


def error(cat: str, msg: str, *args) -> None:
    log(cat, msg, *args, level=logging.ERROR)
