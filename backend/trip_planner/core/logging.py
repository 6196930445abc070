import logging
import sys

from trip_planner.core.config import LOG_LEVEL

_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logger(name: str, level: str | int | None = None) -> logging.Logger:
    """
    Return a logger writing to stdout in the project's format.

    Args:
        name: The name of the logger (usually __name__).
        level: Optional override; defaults to LOG_LEVEL from config.

    Returns:
        logging.Logger: The configured logger.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level or LOG_LEVEL)

    # Check if handlers already exist to avoid duplicates
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        logger.addHandler(handler)

    # Keep propagation so pytest's caplog sees records
    logger.propagate = True
    return logger
