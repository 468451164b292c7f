"""
Logging helper shared by the solver, the tuner and the CLI.
"""

import logging


def get_logger(name: str, level: str = "INFO") -> logging.Logger:
    """Create a logger with a uniform format.

    Params:
        name: logger name, usually __name__ of the caller module.
        level: logging level string (e.g., 'DEBUG', 'INFO').

    Returns:
        Configured logging.Logger instance.
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        logger.setLevel(getattr(logging, level.upper(), logging.INFO))
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s | %(levelname)s | %(name)s: %(message)s")
        )
        logger.addHandler(handler)
    return logger


def set_package_level(level: str, package: str = "boxsolver") -> None:
    """Apply a logging level to every logger already created under ``package``."""
    numeric = getattr(logging, level.upper(), logging.INFO)
    logging.getLogger(package).setLevel(numeric)
    for name, logger in logging.Logger.manager.loggerDict.items():
        if name.startswith(package + ".") and isinstance(logger, logging.Logger):
            logger.setLevel(numeric)
