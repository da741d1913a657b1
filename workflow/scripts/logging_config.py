# SPDX-FileCopyrightText: 2025 Koen van Greevenbroek
#
# SPDX-License-Identifier: GPL-3.0-or-later

"""Centralized logging configuration for the pipeline scripts."""

import inspect
import logging
from pathlib import Path
import sys

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}


def setup_script_logging(log_file=None, level=logging.INFO):
    """
    Configure logging for a pipeline stage.

    Args:
        log_file: Path to log file (``snakemake.log[0]`` or the runner's log
            path), or None for console-only
        level: Logging level, either a ``logging`` constant or a name such
            as ``"DEBUG"`` taken from the config

    Returns:
        Configured logger for the calling module
    """
    if isinstance(level, str):
        try:
            level = _LEVELS[level.upper()]
        except KeyError as exc:
            raise ValueError(f"Unknown log level '{level}'") from exc

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(
        logging.Formatter("[%(name)s] %(levelname)s: %(message)s")
    )
    handlers = [console_handler]

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        )
        handlers.append(file_handler)

    logging.basicConfig(level=level, handlers=handlers, force=True)

    frame = inspect.currentframe()
    if frame and frame.f_back:
        caller_module = frame.f_back.f_globals.get("__name__", __name__)
    else:
        caller_module = __name__

    return logging.getLogger(caller_module)
