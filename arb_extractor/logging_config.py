import logging
import os
import sys
from logging import Handler
from typing import Optional, TextIO

from tqdm import tqdm

LOGGER_NAME = "arb_extractor"


class TqdmLoggingHandler(Handler):
    """
    Console handler used while ``--add-locale`` translates an ARB file.

    Records are printed with ``tqdm.write`` so they land above the per-message
    progress bar instead of splitting it. ``stream`` defaults to stderr at the
    time of each write.
    """

    def __init__(self, stream: Optional[TextIO] = None, level: int = logging.NOTSET):
        super().__init__(level)
        self.stream = stream

    def emit(self, record: logging.LogRecord) -> None:
        try:
            tqdm.write(self.format(record), file=self.stream or sys.stderr)
        except RecursionError:
            raise
        except Exception:
            self.handleError(record)


def setup_logger(log_level_str: str, log_file_path: Optional[str], log_to_console: bool) -> logging.Logger:
    """
    Set up the package logger.

    Every module logs through a child of the ``arb_extractor`` logger, so
    configuring this one logger covers the whole tool.

    Args:
        log_level_str: The logging level as a string (e.g., 'INFO', 'DEBUG').
        log_file_path: Path of an optional log file; None or empty disables file logging.
        log_to_console: Whether to log to the console.

    Returns:
        The configured logger instance.
    """
    logger = logging.getLogger(LOGGER_NAME)

    log_level = getattr(logging, log_level_str.upper(), logging.INFO)
    logger.setLevel(log_level)

    # Reconfiguring must not duplicate output
    if logger.hasHandlers():
        logger.handlers.clear()

    logger.propagate = False

    formatter = logging.Formatter('%(asctime)s - %(levelname)s - %(message)s')

    if log_file_path:
        log_dir = os.path.dirname(log_file_path)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.FileHandler(log_file_path, encoding='utf-8')
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    if log_to_console:
        tqdm_handler = TqdmLoggingHandler()
        tqdm_handler.setFormatter(formatter)
        logger.addHandler(tqdm_handler)

    return logger
