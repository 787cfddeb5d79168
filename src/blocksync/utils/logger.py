"""Minimal logging utilities for blocksync.

Provides a get_logger function that wraps the standard library logging.
The library never installs handlers; hosts configure logging themselves.

Example:
    >>> from blocksync.utils.logger import get_logger
    >>> logger = get_logger(__name__)
    >>> logger.debug("Reconciling %d nodes", 12)
"""

from __future__ import annotations

import logging


def get_logger(name: str) -> logging.Logger:
    """Get a logger for the given name.

    Returns a standard library logger with the "blocksync." prefix.

    Args:
        name: Logger name (typically __name__)

    Returns:
        logging.Logger instance

    Example:
        >>> logger = get_logger("mymodule")
        >>> logger.name
        'blocksync.mymodule'
    """
    if not (name == "blocksync" or name.startswith("blocksync.")):
        name = f"blocksync.{name}"
    return logging.getLogger(name)
