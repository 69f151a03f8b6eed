# backend/searchplus/logging_setup.py
from __future__ import annotations

import logging
import os
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Dict, List, Optional

from .config_loader import base_dir

LOG_FORMAT = "%(asctime)s %(levelname)s [%(process)d] %(name)s: %(message)s"
CONSOLE_FORMAT = "%(levelname)s %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"
DEFAULT_MAX_BYTES = 1_000_000
DEFAULT_KEEP_FILES = 10

# chatty third-party loggers; never louder than these unless the root is quieter
QUIET_LOGGERS: Dict[str, int] = {
    "werkzeug": logging.INFO,
    "sqlalchemy.engine": logging.WARNING,
    "flask_cors": logging.WARNING,
}

# marks handlers installed by start_log so a second call only replaces its own
_OWNED_ATTR = "_searchplus_owned"


class DateSizeRotatingFileHandler(RotatingFileHandler):
    """
    Size-triggered rotation into timestamped files (``<prefix>-YYYYmmdd-HHMMSS-mmm.log``)
    instead of numbered backups. Only the newest ``keep`` files for the prefix survive.
    """

    def __init__(
        self,
        directory: Path,
        prefix: str = "searchplus",
        max_bytes: int = DEFAULT_MAX_BYTES,
        keep: int = DEFAULT_KEEP_FILES,
        encoding: str = "utf-8",
    ):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        self.prefix = prefix
        self.keep = keep
        super().__init__(
            self._new_filename(),
            maxBytes=max_bytes,
            backupCount=0,
            encoding=encoding,
            errors="replace",
        )
        self.prune()

    def _new_filename(self) -> str:
        ts = datetime.now().strftime("%Y%m%d-%H%M%S-%f")[:-3]
        return str(self.directory / f"{self.prefix}-{ts}.log")

    def log_files(self) -> List[Path]:
        """This prefix's log files, oldest first (names sort by timestamp)."""
        return sorted(self.directory.glob(f"{self.prefix}-*.log"))

    def prune(self) -> None:
        if self.keep <= 0:
            return
        current = Path(self.baseFilename)
        stale = [p for p in self.log_files() if p != current]
        for path in stale[: max(0, len(stale) - (self.keep - 1))]:
            try:
                path.unlink()
            except OSError:
                logging.getLogger(__name__).debug("Could not remove old log %s", path, exc_info=True)

    def doRollover(self) -> None:
        if self.stream:
            self.stream.close()
            self.stream = None
        self.baseFilename = os.fspath(self._new_filename())
        self.mode = "a"
        self.stream = self._open()
        self.prune()


def resolve_level(level: Optional[str | int] = None) -> int:
    """
    Accept a level number, a level name ("debug", "WARNING") or a numeric
    string; None reads LOG_LEVEL. Unknown names fall back to INFO.
    """
    if level is None:
        level = os.getenv("LOG_LEVEL", "INFO")
    if isinstance(level, int):
        return level
    text = str(level).strip()
    if text.isdigit():
        return int(text)
    resolved = logging.getLevelName(text.upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def default_log_dir() -> Path:
    """LOG_DIR when set, otherwise var/logs under the base directory."""
    override = os.getenv("LOG_DIR")
    if override:
        return Path(override).expanduser()
    return base_dir() / "var" / "logs"


def _own(handler: logging.Handler) -> logging.Handler:
    setattr(handler, _OWNED_ATTR, True)
    return handler


def owned_handlers(logger: Optional[logging.Logger] = None) -> List[logging.Handler]:
    logger = logger or logging.getLogger()
    return [h for h in logger.handlers if getattr(h, _OWNED_ATTR, False)]


def start_log(
    *,
    app_name: str = "searchplus",
    log_dir: Optional[str | Path] = None,
    level: Optional[str | int] = None,
    to_console: bool = True,
    to_file: bool = True,
    max_bytes: int = DEFAULT_MAX_BYTES,
    keep: int = DEFAULT_KEEP_FILES,
) -> logging.Logger:
    """
    Configure the root logger for an entry point.

    The server logs to timestamped files under ``log_dir`` (see
    ``default_log_dir``) and to stderr. Short-lived tools such as the CLI pass
    ``to_file=False`` so a read-only query leaves nothing on disk. Calling it
    again replaces the handlers it installed before and leaves any others
    (test capture, a host application's) alone. Library modules never call it.
    """
    root = logging.getLogger()
    root.setLevel(resolve_level(level))

    for handler in owned_handlers(root):
        root.removeHandler(handler)
        handler.close()

    target_dir: Optional[Path] = None
    if to_file:
        target_dir = Path(log_dir) if log_dir is not None else default_log_dir()
        file_handler = DateSizeRotatingFileHandler(
            directory=target_dir,
            prefix=app_name,
            max_bytes=max_bytes,
            keep=keep,
        )
        file_handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT))
        root.addHandler(_own(file_handler))

    if to_console:
        console = logging.StreamHandler(sys.stderr)
        console.setFormatter(logging.Formatter(fmt=CONSOLE_FORMAT))
        console.setLevel(root.level)
        root.addHandler(_own(console))

    for name, floor in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(max(floor, root.level))

    root.info(
        "Logging started app=%s dir=%s level=%s",
        app_name,
        target_dir if target_dir is not None else "-",
        logging.getLevelName(root.level),
    )
    return root
