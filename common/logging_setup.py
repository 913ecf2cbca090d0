from __future__ import annotations

import logging
import os
import sys
import json
import time
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

LOG_FILE_NAME = "tile_server.log"
LOG_ROTATE_BYTES = 10_000
LOG_KEEP_FILES = 3

# Names accepted on the command line that the logging module does not know.
_LEVEL_ALIASES = {"TRACE": "DEBUG", "WARN": "WARNING"}


def resolve_level(level: Optional[str] = None) -> int:
    """
    Map a level name to a logging constant.
    Precedence: explicit `level` arg, env LOG_LEVEL, default INFO.
    Unknown names fall back to INFO.
    """
    lvl_name = (level or os.environ.get("LOG_LEVEL") or "INFO").upper()
    lvl_name = _LEVEL_ALIASES.get(lvl_name, lvl_name)
    lvl = logging.getLevelName(lvl_name)
    return lvl if isinstance(lvl, int) else logging.INFO


class JsonFormatter(logging.Formatter):
    """
    Minimal JSON log formatter:
      { "t": 169, "lvl": "INFO", "name": "mod", "msg": "text", "extra": {...} }
    """

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload = {
            "t": int(time.time() * 1000),
            "lvl": record.levelname,
            "name": record.name,
            "msg": record.getMessage(),
        }
        # Include extra dict if present
        if hasattr(record, "extra") and isinstance(record.extra, dict):  # type: ignore[attr-defined]
            payload["extra"] = record.extra  # type: ignore[attr-defined]
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


class TextFormatter(logging.Formatter):
    """
    Plain line format used for log files:
      [2020-08-27T07:56:22.348+02:00 INFO  tile_server.server] Serving tile: Tiles/3/2/1.png
    Timestamps are local time with millisecond precision and UTC offset.
    """

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        ts = datetime.fromtimestamp(record.created).astimezone().isoformat(timespec="milliseconds")
        line = f"[{ts} {record.levelname:5} {record.name}] {record.getMessage()}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class TimestampRotatingFileHandler(RotatingFileHandler):
    """
    Size-based rotation where rotated files are named with a timestamp
    (`tile_server_r2024-01-31_10-00-00_123456.log`) instead of `.1`, `.2`.
    Only the newest `backupCount` rotated files are kept.
    """

    def rotated_files(self) -> list[Path]:
        base = Path(self.baseFilename)
        # Timestamps sort lexicographically in chronological order.
        return sorted(base.parent.glob(f"{base.stem}_r*{base.suffix}"))

    def doRollover(self) -> None:
        if self.stream:
            self.stream.close()
            self.stream = None  # type: ignore[assignment]
        base = Path(self.baseFilename)
        stamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S_%f")
        self.rotate(self.baseFilename, str(base.with_name(f"{base.stem}_r{stamp}{base.suffix}")))
        if self.backupCount > 0:
            for old in self.rotated_files()[: -self.backupCount]:
                old.unlink(missing_ok=True)
        if not self.delay:
            self.stream = self._open()


def setup_logging(level: Optional[str] = None, force: bool = False) -> None:
    """
    Configure root logger once with JSON formatting on stdout.
    Level precedence:
      - explicit `level` arg
      - env LOG_LEVEL (e.g., DEBUG/INFO/WARN/ERROR)
      - default INFO
    `force=True` reconfigures even if already set up.
    """
    root = logging.getLogger()
    if getattr(root, "_tiles_configured", False) and not force:  # idempotent
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())

    for old in root.handlers:
        old.close()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(resolve_level(level))
    root._tiles_configured = True  # type: ignore[attr-defined]


def setup_file_logging(level: Optional[str], log_dir: str) -> Path:
    """
    Console logging (as `setup_logging`) plus a rotating text log in `log_dir`.
    Returns the active log file path. Raises OSError if `log_dir` is unusable;
    callers fall back to console-only logging in that case.
    """
    Path(log_dir).mkdir(parents=True, exist_ok=True)
    log_file = Path(log_dir) / LOG_FILE_NAME
    file_handler = TimestampRotatingFileHandler(
        log_file, maxBytes=LOG_ROTATE_BYTES, backupCount=LOG_KEEP_FILES, encoding="utf-8"
    )
    file_handler.setFormatter(TextFormatter())

    setup_logging(level, force=True)
    logging.getLogger().addHandler(file_handler)
    return log_file


def get_logger(name: str) -> logging.Logger:
    """Get a module logger; ensures root is configured."""
    setup_logging()
    return logging.getLogger(name)
