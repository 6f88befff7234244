"""Diagnostic log output for container builds.

``enable_tracing`` attaches file handlers to the ``ditestkit`` logger so
errors (and, in debug mode, everything) raised while building or using
a container end up in the configured log directory.
"""

import logging
from pathlib import Path
from typing import Optional

from .utils import PathLike, create_dir

LOGGER_NAME = "ditestkit"
ERROR_LOG = "error.log"
DEBUG_LOG = "debug.log"
LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"

# log dir -> handlers installed for it
_handlers: dict[str, list[logging.Handler]] = {}


def enable_tracing(
    log_dir: PathLike,
    debug: bool = False,
    logger_name: str = LOGGER_NAME,
) -> list[logging.Handler]:
    """Write log records to ``log_dir``. Idempotent per directory.

    Args:
        log_dir: Directory for error.log (and debug.log)
        debug: Also write DEBUG records to debug.log
        logger_name: Logger to attach the handlers to

    Returns:
        Handlers attached for this directory.
    """
    directory = create_dir(log_dir).resolve()
    key = str(directory)
    if key in _handlers:
        return _handlers[key]

    formatter = logging.Formatter(LOG_FORMAT)
    error_handler = logging.FileHandler(directory / ERROR_LOG, encoding="utf-8", delay=True)
    error_handler.setLevel(logging.ERROR)
    handlers: list[logging.Handler] = [error_handler]

    if debug:
        debug_handler = logging.FileHandler(directory / DEBUG_LOG, encoding="utf-8", delay=True)
        debug_handler.setLevel(logging.DEBUG)
        handlers.append(debug_handler)

    target = logging.getLogger(logger_name)
    for handler in handlers:
        handler.setFormatter(formatter)
        target.addHandler(handler)
    if debug and target.getEffectiveLevel() > logging.DEBUG:
        target.setLevel(logging.DEBUG)

    _handlers[key] = handlers
    target.debug(f"Tracing enabled in {directory} (debug={debug})")
    return handlers


def disable_tracing(log_dir: Optional[PathLike] = None, logger_name: str = LOGGER_NAME) -> None:
    """Detach and close tracing handlers for one directory, or all of them."""
    if log_dir is None:
        keys = list(_handlers)
    else:
        keys = [str(Path(log_dir).resolve())]

    target = logging.getLogger(logger_name)
    for key in keys:
        for handler in _handlers.pop(key, []):
            target.removeHandler(handler)
            handler.close()


def is_tracing(log_dir: PathLike) -> bool:
    return str(Path(log_dir).resolve()) in _handlers
