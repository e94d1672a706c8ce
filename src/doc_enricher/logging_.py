"""Logging utilities.

We use Python's standard `logging` module with a compact structured format.
Module loggers are named `doc_enricher.<area>` (pipeline, handlers.dom, scripting, ...).

- Logs go to: `<log_dir>/<run_name>.log` when a log directory is given
- Always prints to stderr.
"""

from __future__ import annotations
import logging
import os
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"


def setup_logging(log_dir: Optional[str] = None, run_name: str = "doc_enricher", level: str = "INFO") -> None:
    """
    Setup logging configuration.

    Args:
        log_dir: Directory for the log file (console only if None)
        run_name: Log file base name
        level: Root log level name
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, str(level).upper(), logging.INFO))

    fmt = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    # File
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        fh = logging.FileHandler(os.path.join(log_dir, f"{run_name}.log"), encoding="utf-8")
        fh.setFormatter(fmt)
        root.addHandler(fh)

    # Console
    ch = logging.StreamHandler()
    ch.setFormatter(fmt)
    root.addHandler(ch)
