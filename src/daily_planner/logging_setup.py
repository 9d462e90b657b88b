# src/daily_planner/logging_setup.py

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

# Console thresholds for chatty planner loggers; matched by prefix.
# Store and view modules log every query at DEBUG/INFO, which is file material.
CONSOLE_THRESHOLDS: dict[str, int] = {
    "daily_planner.db": logging.WARNING,
    "daily_planner.tasks.task_store": logging.WARNING,
    "daily_planner.tasks.audit_store": logging.WARNING,
    "daily_planner.tasks.views": logging.WARNING,
    "py.warnings": logging.ERROR,
}


class _ConsoleNoiseFilter(logging.Filter):
    """
    Keep the REPL readable: mutations, spawns and purges show up,
    per-query store chatter and third-party logs (ERROR+ only) do not.
    """

    def __init__(self, thresholds: dict[str, int] | None = None) -> None:
        super().__init__()
        self._thresholds = dict(CONSOLE_THRESHOLDS if thresholds is None else thresholds)

    def _threshold(self, name: str) -> int:
        for prefix, level in self._thresholds.items():
            if name == prefix or name.startswith(prefix + "."):
                return level
        if name == "daily_planner" or name.startswith("daily_planner."):
            return logging.NOTSET
        return logging.ERROR

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= self._threshold(record.name)


def setup_logging(
    *,
    log_dir: str | Path = ".local/planner",
    app_name: str = "planner",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
    max_bytes: int = 1_000_000,
    backup_count: int = 3,
) -> Path:
    """
    Console on stderr (filtered, short format) plus a rotating
    `<app_name>.log` with everything at file_level.

    Call once at startup, before the first log line. Returns the log file path.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / f"{app_name}.log"

    root = logging.getLogger()
    root.setLevel(min(console_level, file_level))

    for h in list(root.handlers):
        root.removeHandler(h)
        h.close()

    ch = logging.StreamHandler(sys.stderr)
    ch.setLevel(console_level)
    ch.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    ch.addFilter(_ConsoleNoiseFilter())
    root.addHandler(ch)

    fh = RotatingFileHandler(
        str(log_file),
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    fh.setLevel(file_level)
    fh.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root.addHandler(fh)

    # warnings.warn(...) arrives as 'py.warnings'
    logging.captureWarnings(True)
    return log_file
