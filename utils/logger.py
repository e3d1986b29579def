"""Logging setup for the spotalerts logger tree."""
import logging

from rich.logging import RichHandler

LOGGER_NAME = "spotalerts"
FILE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(level="INFO", log_file=None):
    """Attach a rich console handler (and a file handler if log_file) once.

    Calling again only adjusts the level, so the CLI's --verbose can raise
    verbosity after the first setup.
    """
    numeric_level = getattr(logging, str(level).upper(), logging.INFO)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(numeric_level)

    if logger.handlers:
        for handler in logger.handlers:
            handler.setLevel(numeric_level)
        return logger

    console = RichHandler(rich_tracebacks=True, markup=False, show_path=False)
    console.setLevel(numeric_level)
    logger.addHandler(console)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        logger.addHandler(file_handler)

    return logger
