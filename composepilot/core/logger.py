"""Logging setup: rich console output on stderr, optional plain-text log file."""
import logging
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

PACKAGE_LOGGER = "composepilot"

# Log records go to stderr; stdout carries command output only
console = Console(stderr=True)

LOG_DIR = Path.home() / ".local" / "state" / "composepilot"
LOG_FILE = LOG_DIR / "composepilot.log"
FALLBACK_LOG_FILE = Path("/tmp/composepilot.log")

FILE_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"

_file_handler: Optional[logging.FileHandler] = None


def _level(verbose: bool) -> int:
    return logging.DEBUG if verbose else logging.INFO


def _writable_log_path(requested: Optional[str]) -> Path:
    target = Path(requested) if requested else LOG_FILE
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
    except PermissionError:
        target = FALLBACK_LOG_FILE
    return target


def setup_file_logging(log_file: Optional[str] = None, verbose: bool = False) -> Path:
    """Mirror every composepilot log record into a file.

    Args:
        log_file: Target file (defaults to ~/.local/state/composepilot/composepilot.log)
        verbose: Record DEBUG messages as well

    Returns:
        The file actually written to; /tmp/composepilot.log when the
        requested directory cannot be created.

    Calling this again only adjusts the level of the existing handler.
    """
    global _file_handler

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(_level(verbose))

    if _file_handler is not None:
        _file_handler.setLevel(_level(verbose))
        return Path(_file_handler.baseFilename)

    target = _writable_log_path(log_file)
    _file_handler = logging.FileHandler(target)
    _file_handler.setLevel(_level(verbose))
    _file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    package_logger.addHandler(_file_handler)

    package_logger.info(f"Compose Pilot log file: {target}")
    return target


def set_console_level(verbose: bool) -> None:
    """Switch all composepilot loggers between INFO and DEBUG."""
    for name in list(logging.root.manager.loggerDict):
        if name == PACKAGE_LOGGER or name.startswith(PACKAGE_LOGGER + "."):
            logging.getLogger(name).setLevel(_level(verbose))


def get_logger(name: str) -> logging.Logger:
    """Module logger with its own rich console handler.

    Usage:
        logger = get_logger(__name__)
    """
    logger = logging.getLogger(name)

    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        handler = RichHandler(console=console, show_path=False)
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)

    return logger
