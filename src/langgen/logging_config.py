import logging
from logging import Logger
from logging.handlers import RotatingFileHandler
import os
import sys


def setup_logger(name: str, log_file: str | None = None, level: str = "INFO") -> Logger:
    """
    Set up a logger once. Writes to stderr unless a log file is given directly or via LOG_FILE,
    in which case a rotating file handler is used. Level comes from LOG_LEVEL or the parameter.
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        log_level = os.getenv("LOG_LEVEL", level).upper()
        log_file = log_file or os.getenv("LOG_FILE")
        if log_file:
            handler: logging.Handler = RotatingFileHandler(log_file, maxBytes=2 * 1024 * 1024, backupCount=2)
        else:
            handler = logging.StreamHandler(sys.stderr)
        formatter = logging.Formatter(
            '%(asctime)s | %(levelname)s | %(name)s | %(message)s', datefmt='%Y-%m-%d %H:%M:%S'
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.setLevel(getattr(logging, log_level, logging.INFO))
    return logger
