"""
Logging configuration for Studio Sync.

Handlers live on the ``studio_sync`` package logger only: a colorlog stderr
handler and a rotating ``studio_sync.log`` under LOG_DIR. Module loggers
propagate to it. Level, directory and verbosity are read from LOG_LEVEL,
LOG_DIR and DEBUG_MODE so logging works before the settings are loaded.
"""

import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import Optional

import colorlog


ROOT_LOGGER = "studio_sync"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LOG_COLORS = {
    'DEBUG': 'cyan',
    'INFO': 'green',
    'WARNING': 'yellow',
    'ERROR': 'red',
    'CRITICAL': 'red,bg_white',
}

_configured = False


def _message_format(debug_mode: bool) -> str:
    location = "%(name)s.%(funcName)s:%(lineno)d" if debug_mode else "%(name)s"
    return f"%(asctime)s [%(levelname)8s] {location} - %(message)s"


def _console_handler(debug_mode: bool) -> logging.Handler:
    handler = colorlog.StreamHandler(sys.stderr)
    handler.setFormatter(colorlog.ColoredFormatter(
        "%(log_color)s" + _message_format(debug_mode),
        datefmt=DATE_FORMAT,
        log_colors=LOG_COLORS,
    ))
    return handler


def _file_handler(log_dir: str, debug_mode: bool) -> logging.Handler:
    Path(log_dir).mkdir(parents=True, exist_ok=True)
    handler = logging.handlers.RotatingFileHandler(
        os.path.join(log_dir, f"{ROOT_LOGGER}.log"),
        maxBytes=5 * 1024 * 1024,
        backupCount=5,
        encoding='utf-8'
    )
    handler.setFormatter(logging.Formatter(_message_format(debug_mode), datefmt=DATE_FORMAT))
    return handler


def configure_logging(force: bool = False) -> logging.Logger:
    """
    Attach the console and file handlers to the package logger.

    Runs once per process unless ``force`` is set (e.g. after LOG_LEVEL changed).
    """
    global _configured

    root = logging.getLogger(ROOT_LOGGER)
    if _configured and not force:
        return root

    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    log_dir = os.getenv("LOG_DIR", "./logs")
    debug_mode = os.getenv("DEBUG_MODE", "false").lower() == "true"

    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    root.setLevel(getattr(logging, log_level, logging.INFO))
    root.addHandler(_console_handler(debug_mode))
    root.addHandler(_file_handler(log_dir, debug_mode))
    root.propagate = False

    _configured = True
    return root


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get a logger instance for the given name.

    Args:
        name: Logger name. If None, uses the caller's module name.

    Returns:
        Logger under the ``studio_sync`` hierarchy.
    """
    if name is None:
        name = sys._getframe(1).f_globals.get('__name__', ROOT_LOGGER)

    configure_logging()
    if name != ROOT_LOGGER and not name.startswith(ROOT_LOGGER + "."):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)


def setup_logging() -> None:
    """
    Setup application-wide logging configuration.

    Called once by the API, the Celery worker and the CLI at startup.
    """
    logger = configure_logging(force=True)
    logger.info("Logging system initialized")
    logger.debug(f"Handlers: {[h.__class__.__name__ for h in logger.handlers]}")
