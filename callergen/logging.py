"""Logging for callergen runs.

Console output stays short (``[callergen] LEVEL message``). The optional log
file is meant to be attached to bug reports, so each record there also names
the workspace being generated.
"""

from __future__ import annotations

import logging
from pathlib import Path

_LOGGER_NAME = "callergen"
_CONSOLE_FORMAT = "[callergen] %(levelname)s %(message)s"
_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s {workspace}: %(message)s"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a module-scoped logger under the callergen hierarchy."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def _file_formatter(workspace: Path | None) -> logging.Formatter:
    label = f"[{workspace.as_posix()}]" if workspace is not None else "[-]"
    return logging.Formatter(_FILE_FORMAT.format(workspace=label.replace("%", "%%")))


def configure_logging(
    *,
    verbose: bool = False,
    log_file: Path | None = None,
    workspace: Path | None = None,
) -> logging.Logger:
    """Attach the console handler and, when ``log_file`` is given, a file sink tagged with ``workspace``."""
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    # The CLI may run several times in one process; drop earlier handlers.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
    logger.addHandler(console)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(_file_formatter(workspace))
        logger.addHandler(file_handler)

    return logger


__all__ = ["configure_logging", "get_logger"]
