# pynemo/logs/logger.py

"""
Run loggers that write one log file per calculation.

Example
-------
>>> from pynemo.logs.logger import get_logger
>>> logger = get_logger(run_name="utopia", scenario="base", log_dir="logs")
>>> logger.info("Started scenario calculation.")
"""

import logging
import os
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def get_logger(run_name: str, scenario: str, log_dir: str = "logs",
               level: int = logging.INFO, stream: bool = False) -> logging.Logger:
    """
    Return a logger writing to ``<log_dir>/<run_name>_<scenario>.log``.

    Parameters
    ----------
    run_name : str
        Name of the run; becomes part of the logger name and the file name.
    scenario : str
        Scenario identifier (usually the database file stem).
    log_dir : str
        Directory for the log file. Created if missing.
    level : int
        Logging level for the returned logger.
    stream : bool
        Also echo records to stderr.

    Returns
    -------
    logging.Logger
        Configured logger. Repeated calls return the same logger without
        adding duplicate handlers.
    """
    os.makedirs(log_dir, exist_ok=True)
    logger = logging.getLogger(f"pynemo.{run_name}")
    logger.setLevel(level)

    path = os.path.abspath(os.path.join(log_dir, f"{run_name}_{scenario}.log"))
    if _find_file_handler(logger, path) is None:
        handler = logging.FileHandler(path, encoding="utf-8")
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)

    if stream and not any(type(h) is logging.StreamHandler for h in logger.handlers):
        console = logging.StreamHandler()
        console.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(console)

    return logger


def _find_file_handler(logger: logging.Logger, path: str) -> Optional[logging.FileHandler]:
    for handler in logger.handlers:
        if isinstance(handler, logging.FileHandler) and handler.baseFilename == path:
            return handler
    return None


def configure_package_logging(level: str = "INFO", quiet: bool = False) -> None:
    """Set the level of the ``pynemo`` package logger (WARNING when quiet)."""
    logger = logging.getLogger("pynemo")
    logger.setLevel(logging.WARNING if quiet else getattr(logging, level.upper(), logging.INFO))
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
