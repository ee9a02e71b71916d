"""Logging for the Windows-side bootstrap and the in-distro provisioning flows.

Each command writes its own DEBUG log file (`bootstrap.log`, `setup.log`, ...)
while the console shows only the chosen level. Records carry the subsystem
that emitted them (`wsl`, `provision`, `bootstrap`, `cli`) so one log file
can be read without knowing module names.
"""

from __future__ import annotations

import logging as py_logging
import os
import platform
import sys
from pathlib import Path
from typing import TextIO

ROOT_LOGGER = "wslconverge"
LOG_LEVELS = {
    "DEBUG": py_logging.DEBUG,
    "INFO": py_logging.INFO,
    "WARN": py_logging.WARNING,
    "ERROR": py_logging.ERROR,
}
LOG_DIR = Path("~/.config/wslconverge/logs")
_FALLBACK_LOG_DIR = Path(".wslconverge/logs")
_CONSOLE_FORMAT = "%(levelname)s [%(subsystem)s] %(message)s"
_FILE_FORMAT = "%(asctime)s %(levelname)s [%(subsystem)s] %(name)s:%(lineno)d %(message)s"


class SubsystemFilter(py_logging.Filter):
    """Tag records with the `wslconverge` subpackage that emitted them."""

    def filter(self, record: py_logging.LogRecord) -> bool:
        parts = record.name.split(".")
        record.subsystem = parts[1] if len(parts) > 1 and parts[0] == ROOT_LOGGER else "cli"
        return True


def log_directory(*, system_name: str | None = None) -> Path:
    # The bootstrap runs on Windows, where ~/.config is not a natural home.
    system = system_name or platform.system()
    local_app_data = os.environ.get("LOCALAPPDATA", "").strip()
    if system == "Windows" and local_app_data:
        return Path(local_app_data) / "wslconverge" / "logs"
    try:
        resolved = LOG_DIR.expanduser()
    except RuntimeError:
        return (Path.cwd() / _FALLBACK_LOG_DIR).resolve()
    return resolved if resolved.is_absolute() else resolved.resolve()


def default_log_path(command: str | None = None, *, system_name: str | None = None) -> Path:
    return log_directory(system_name=system_name) / f"{command or ROOT_LOGGER}.log"


def _close_handlers(logger: py_logging.Logger) -> None:
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


def configure_logging(
    level: str = "INFO",
    stream: TextIO | None = None,
    *,
    log_file: str | Path | None = None,
) -> py_logging.Logger:
    console_level = LOG_LEVELS.get(level.upper(), py_logging.INFO)

    logger = py_logging.getLogger(ROOT_LOGGER)
    _close_handlers(logger)
    subsystem = SubsystemFilter()

    console = py_logging.StreamHandler(stream or sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(py_logging.Formatter(_CONSOLE_FORMAT))
    console.addFilter(subsystem)
    logger.addHandler(console)
    logger.setLevel(console_level)

    if log_file:
        log_path = Path(log_file).expanduser()
        if not log_path.is_absolute():
            log_path = log_path.resolve()
        try:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = py_logging.FileHandler(log_path, encoding="utf-8")
        except OSError:
            logger.warning("Cannot open log file %s; logging to console only", log_path)
        else:
            file_handler.setLevel(py_logging.DEBUG)
            file_handler.setFormatter(py_logging.Formatter(_FILE_FORMAT))
            file_handler.addFilter(subsystem)
            logger.addHandler(file_handler)
            logger.setLevel(py_logging.DEBUG)

    logger.propagate = False
    return logger
