"""Package-wide logging for flowstream.

Every module logs through ``get_logger(__name__)`` so records land under the
``flowstream`` logger, which owns a single stderr handler. stdout is left to
the CLI status lines and JSON output.
"""

import logging
import sys
from typing import Optional

_PACKAGE_LOGGER = "flowstream"

_DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_configured = False


def setup_root_logger(
    level: int = logging.INFO,
    format_string: Optional[str] = None,
    handler: Optional[logging.Handler] = None,
) -> None:
    """Install the package handler once; later calls are no-ops.

    Args:
        level: Initial level of the ``flowstream`` logger.
        format_string: Record format; defaults to timestamp, name and level.
        handler: Replacement for the default stderr handler.
    """
    global _configured

    if _configured:
        return

    package_logger = logging.getLogger(_PACKAGE_LOGGER)
    package_logger.setLevel(level)
    package_logger.handlers.clear()

    if handler is None:
        handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(format_string or _DEFAULT_FORMAT))
    package_logger.addHandler(handler)
    # pytest's caplog listens on the root logger
    package_logger.propagate = True

    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Logger for ``name`` that defers its level to the package logger."""
    setup_root_logger()
    logger = logging.getLogger(name)
    logger.setLevel(logging.NOTSET)
    return logger


def set_global_log_level(level: int) -> None:
    """Set the level of the package logger and its handlers."""
    setup_root_logger()
    package_logger = logging.getLogger(_PACKAGE_LOGGER)
    package_logger.setLevel(level)
    for handler in package_logger.handlers:
        handler.setLevel(level)


def set_verbosity(verbose: bool = False, quiet: bool = False) -> int:
    """Map the CLI ``--verbose``/``--quiet`` switches to a package log level.

    ``verbose`` wins when both are given.

    Returns:
        The level that was applied.
    """
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO
    set_global_log_level(level)
    return level


def reset_logging() -> None:
    """Drop the package handler so the next call reinstalls it (tests)."""
    global _configured
    _configured = False

    package_logger = logging.getLogger(_PACKAGE_LOGGER)
    package_logger.handlers.clear()
    package_logger.setLevel(logging.NOTSET)


setup_root_logger()
