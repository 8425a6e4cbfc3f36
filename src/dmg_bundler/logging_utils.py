"""Console and file logging for bundle runs."""

from __future__ import annotations

import logging
from pathlib import Path


LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
PACKAGE_LOGGER = "dmg_bundler"


def _build_handler(handler: logging.Handler, level: int, formatter: logging.Formatter) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def configure_logging(
    log_file: Path,
    level: int = logging.INFO,
    *,
    file_level: int = logging.DEBUG,
) -> logging.Logger:
    """Route records to stderr at `level` and to `log_file` at `file_level`.

    Handlers installed by an earlier call are replaced, so repeated CLI
    invocations in one process do not duplicate output. Command output captured
    from hdiutil and codesign is logged at DEBUG and therefore only reaches the
    file by default.
    """

    log_file.parent.mkdir(parents=True, exist_ok=True)
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    root_logger = logging.getLogger()
    for stale in list(root_logger.handlers):
        root_logger.removeHandler(stale)
    root_logger.setLevel(min(level, file_level))
    root_logger.addHandler(_build_handler(logging.StreamHandler(), level, formatter))
    root_logger.addHandler(_build_handler(logging.FileHandler(log_file, encoding="utf-8"), file_level, formatter))

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(min(level, file_level))
    return package_logger
