import logging
import os
import platform
import sys
from pathlib import Path
from typing import Optional


LOG_FILE_NAME = "ez-term.log"

FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
# The console shares stderr with user-facing "Update failed" lines; keep it short.
CONSOLE_FORMAT = "[%(levelname)s] %(name)s: %(message)s"


def default_log_dir() -> Path:
    if os.name == "nt":
        base = os.getenv("APPDATA") or str(Path.home())
        return Path(base) / "ez-term" / "logs"
    if platform.system() == "Darwin":
        return Path.home() / "Library" / "Application Support" / "ez-term" / "logs"
    return Path.home() / ".local" / "share" / "ez-term" / "logs"


def _file_handler(log_dir: Path, level: int) -> Optional[logging.Handler]:
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_dir / LOG_FILE_NAME, encoding="utf-8")
    except OSError:
        return None
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(FILE_FORMAT))
    return handler


def configure_logging(debug: bool, log_dir: Optional[Path] = None) -> logging.Logger:
    """Route ez's log records for one CLI invocation.

    Normal runs only append warnings and errors to ``ez-term.log``; stdout and
    stderr stay reserved for the command's own output. ``--debug`` adds every
    record, down to DEBUG, on stderr as well as in the log file.
    """
    logger = logging.getLogger()
    logger.handlers.clear()
    level = logging.DEBUG if debug else logging.WARNING
    logger.setLevel(level)

    if debug:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.DEBUG)
        console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
        logger.addHandler(console_handler)

    file_handler = _file_handler(log_dir or default_log_dir(), level)
    if file_handler is not None:
        logger.addHandler(file_handler)
    elif not logger.handlers:
        logger.addHandler(logging.NullHandler())
    return logger
