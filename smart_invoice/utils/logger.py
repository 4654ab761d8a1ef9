"""Centralized logging setup for the SmartInvoice service.

Provides one formatting convention for every module, plus a helper to
keep chatty HTTP client libraries out of the application log.
"""

import logging
import sys

_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_NOISY_LOGGERS = ("urllib3", "httpx", "httpcore", "google_genai")


def setup_logging(level: str = "INFO", quiet_libraries: bool = True) -> None:
    """Configure the root logger once per process.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
            Unknown names fall back to INFO.
        quiet_libraries: Raise third-party HTTP loggers to WARNING.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    root = logging.getLogger()

    if root.handlers:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(_LOG_FORMAT, datefmt=_DATE_FORMAT))
    root.addHandler(handler)
    root.setLevel(numeric_level)

    if quiet_libraries:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Return the logger for a module.

    Args:
        name: Logger name, normally the caller's ``__name__``.
    """
    return logging.getLogger(name)
