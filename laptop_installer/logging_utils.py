from __future__ import annotations

import logging
from pathlib import Path
from typing import Tuple

DEFAULT_LOG_PATH = "/var/log/laptop-installer.log"
FALLBACK_LOG_NAME = "laptop-installer.log"

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_DATEFMT = "%Y-%m-%dT%H:%M:%S%z"
_MARKER = "_laptop_installer_log_path"


def _open_log_file(log_path: str) -> Tuple[logging.FileHandler, str]:
    try:
        Path(log_path).parent.mkdir(parents=True, exist_ok=True)
        return logging.FileHandler(log_path), log_path
    except OSError:
        fallback = str(Path.cwd() / FALLBACK_LOG_NAME)
        return logging.FileHandler(fallback), fallback


def configure_logging(
    log_path: str = DEFAULT_LOG_PATH,
    level: int = logging.INFO,
    also_console: bool = True,
) -> str:
    """Send root-logger output to log_path and, optionally, the terminal.

    Safe to call twice; the second call only reports the path chosen by the
    first. When log_path cannot be opened, laptop-installer.log in the
    working directory is used instead, and that path is returned.
    """

    root = logging.getLogger()
    root.setLevel(level)

    existing = getattr(root, _MARKER, None)
    if existing:
        return existing

    formatter = logging.Formatter(fmt=_FORMAT, datefmt=_DATEFMT)
    file_handler, chosen_path = _open_log_file(log_path)
    handlers: list[logging.Handler] = [file_handler]
    if also_console:
        handlers.append(logging.StreamHandler())

    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)
    setattr(root, _MARKER, chosen_path)

    logging.getLogger(__name__).info("Logging to %s (requested %s)", chosen_path, log_path)
    return chosen_path
