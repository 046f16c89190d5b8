"""
Logging setup for the checkmate logger hierarchy.

Modules log through logging.getLogger(__name__); the CLI calls
setup_logging once and optionally adds a file handler.
"""

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logging(verbose: bool = False) -> logging.Logger:
    """
    Configure the "checkmate" logger hierarchy once.

    verbose switches to DEBUG, which includes per-candidate diagnostics.
    """
    logger = logging.getLogger("checkmate")
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)

    return logger


def add_file_handler(logger: logging.Logger, log_path: str) -> None:
    """
    Also write the logger's records to a file.

    Args:
        logger: Logger returned by setup_logging
        log_path: File to append to
    """
    handler = logging.FileHandler(log_path)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
