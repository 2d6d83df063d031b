"""Logging configuration."""

import logging
import sys


def setup_logging(verbose: bool = False) -> None:
    """
    Configure logging for svnkit.

    Logs go to stderr, not mixed with CLI output (--json).

    Args:
        verbose: If True, log at DEBUG level; otherwise WARNING.
    """
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(name)s: %(levelname)s: %(message)s",
        stream=sys.stderr,
    )


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance.

    Args:
        name: Logger name (e.g., "svnkit.process")

    Returns:
        Logger instance
    """
    if name.startswith("svnkit"):
        return logging.getLogger(name)
    return logging.getLogger(f"svnkit.{name}")
