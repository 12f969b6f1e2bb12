"""
Logging configuration for the gateway scanner.

Adds a TRACE level below DEBUG for per-address probe failures, which are far
too noisy for DEBUG on a /24 scan.
"""

import logging

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

LOG_FORMAT = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def verbosity_to_level(verbosity: int) -> int:
    """Map the number of -v flags to a log level."""
    if verbosity <= 0:
        return logging.WARNING
    if verbosity == 1:
        return logging.INFO
    if verbosity == 2:
        return logging.DEBUG
    return TRACE


def setup_logging(verbosity: int = 0) -> int:
    """
    Configure the root logger for command line use.

    Log records go to stderr so stdout only carries the scan result.

    Args:
        verbosity: Number of -v flags given

    Returns:
        The level that was applied
    """
    level = verbosity_to_level(verbosity)
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        force=True
    )
    return level
