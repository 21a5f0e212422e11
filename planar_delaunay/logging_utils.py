"""Logging helpers for planar_delaunay.

Loggers live under the 'planar_delaunay' hierarchy. The process root logger
is never modified; `configure_logging` attaches one stdout handler to the
package logger for command-line use.
"""
from __future__ import annotations

import logging
import sys
from typing import Optional, Union

ROOT_LOGGER_NAME = 'planar_delaunay'
_FORMAT = logging.Formatter('%(levelname)s %(name)s: %(message)s')


def _to_level(level: Union[str, int, None], default: int = logging.INFO) -> int:
    if level is None:
        return default
    if isinstance(level, int):
        return level
    value = getattr(logging, str(level).upper(), None)
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {level!r}")
    return value


def configure_logging(level: Union[str, int] = 'INFO', mute_external: bool = True) -> logging.Logger:
    """Configure the package logger with a single stdout handler.

    Calling it again only updates the level.
    """
    pkg_root = logging.getLogger(ROOT_LOGGER_NAME)
    if not any(not isinstance(h, logging.NullHandler) for h in pkg_root.handlers):
        handler = logging.StreamHandler(stream=sys.stdout)
        handler.setFormatter(_FORMAT)
        pkg_root.addHandler(handler)
    pkg_root.propagate = False
    lvl = _to_level(level)
    pkg_root.setLevel(lvl)
    # matplotlib is very chatty at DEBUG
    if mute_external and lvl <= logging.DEBUG:
        logging.getLogger('matplotlib').setLevel(logging.INFO)
    return pkg_root


def get_logger(name: str, level: Optional[Union[str, int]] = None) -> logging.Logger:
    """Return a logger for `name`, which should be a module's `__name__`.

    Without an explicit level the logger inherits from the package logger.
    """
    log = logging.getLogger(name)
    if level is not None:
        log.setLevel(_to_level(level))
    return log
