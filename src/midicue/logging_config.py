# src/midicue/logging_config.py
"""Logging setup for the command line tools.

One console handler on stderr, plus a file handler when a log file is given
or ``MIDICUE_LOG_FILE`` is set. Repeated calls replace the level instead of
stacking handlers.
"""
from __future__ import annotations
import logging
import os
from enum import Enum
from pathlib import Path
from typing import Dict, Optional, Union

_LOG_FILE_ENV = "MIDICUE_LOG_FILE"
_HANDLER_TAG = "_midicue_logging_handler"
_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class LogVerbosity(str, Enum):
    DISABLED = "disabled"
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"
    VERBOSE = "verbose"


_VERBOSITY_LEVELS: Dict[LogVerbosity, int] = {
    LogVerbosity.DISABLED: logging.CRITICAL + 1,
    LogVerbosity.ERROR: logging.ERROR,
    LogVerbosity.WARNING: logging.WARNING,
    LogVerbosity.INFO: logging.INFO,
    LogVerbosity.VERBOSE: logging.DEBUG,
}


def parse_verbosity(value: Union[LogVerbosity, str, None]) -> LogVerbosity:
    if isinstance(value, LogVerbosity):
        return value
    try:
        return LogVerbosity(str(value or "info").lower())
    except ValueError as exc:
        raise ValueError(f"Unsupported log verbosity: {value}") from exc


def configure_logging(
    verbosity: Union[LogVerbosity, str, None] = LogVerbosity.INFO,
    log_file: Optional[Union[str, Path]] = None,
) -> Optional[Path]:
    """Installs the midicue handlers on the ``midicue`` logger and returns the log file path, if any."""
    level = _VERBOSITY_LEVELS[parse_verbosity(verbosity)]
    reset_logging()
    log = logging.getLogger("midicue")
    log.setLevel(level)

    formatter = logging.Formatter(_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(formatter)
    setattr(console, _HANDLER_TAG, True)
    log.addHandler(console)

    path = log_file or os.environ.get(_LOG_FILE_ENV)
    if not path:
        return None
    log_path = Path(path).expanduser()
    log_path.parent.mkdir(parents=True, exist_ok=True)
    fh = logging.FileHandler(log_path, encoding="utf-8")
    fh.setLevel(level)
    fh.setFormatter(formatter)
    setattr(fh, _HANDLER_TAG, True)
    log.addHandler(fh)
    return log_path


def reset_logging() -> None:
    """Removes handlers installed by :func:`configure_logging`."""
    log = logging.getLogger("midicue")
    for handler in list(log.handlers):
        if getattr(handler, _HANDLER_TAG, False):
            log.removeHandler(handler)
            handler.close()
    log.setLevel(logging.NOTSET)
