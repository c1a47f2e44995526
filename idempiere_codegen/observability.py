"""
Observability
=============
File logging for the ``idempiere_codegen`` logger tree and the per-command
session log used for offline troubleshooting of AI generation.

Session logging is never fatal: every write failure is logged at debug
level and otherwise ignored.
"""

import getpass
import json
import logging
import os
import platform
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

logger = logging.getLogger("idempiere_codegen.observability")

_FILE_STAMP = "%Y-%m-%d-%H%M%S"
_LINE_STAMP = "%H:%M:%S"
_FULL_STAMP = "%Y-%m-%d %H:%M:%S"

LATEST_LINK = "latest.log"


class JsonFormatter(logging.Formatter):
    """JSON formatter for structured logs."""

    _RESERVED = frozenset((
        "name", "msg", "args", "created", "filename", "funcName",
        "levelname", "levelno", "lineno", "module", "msecs",
        "message", "pathname", "process", "processName",
        "relativeCreated", "thread", "threadName", "exc_info",
        "exc_text", "stack_info", "taskName",
    ))

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now().isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key, value in record.__dict__.items():
            if key not in self._RESERVED:
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_file_logging(
    log_dir: str = "~/.idempiere-cli/logs",
    log_name: str = "idempiere_codegen.log",
    log_level: str = "INFO",
    log_format: str = "text",
    max_bytes: int = 5_000_000,  # 5 MB
    backup_count: int = 3,
) -> Path:
    """Attach a rotating file handler to the ``idempiere_codegen`` logger.

    Calling it again for the same file only updates the level.

    Args:
        log_dir: Directory to store logs (created if it doesn't exist).
        log_name: Name of the log file.
        log_level: Level for the package logger.
        log_format: ``"json"`` or ``"text"``.
        max_bytes: Max size before rotation.
        backup_count: Number of rotated files to keep.

    Returns:
        Path to the log file.
    """
    log_path = Path(log_dir).expanduser()
    log_path.mkdir(parents=True, exist_ok=True)
    log_file = log_path / log_name

    package_logger = logging.getLogger("idempiere_codegen")
    package_logger.setLevel(getattr(logging, log_level))
    for existing in package_logger.handlers:
        if isinstance(existing, RotatingFileHandler) and existing.baseFilename == os.path.abspath(log_file):
            return log_file

    handler = RotatingFileHandler(
        log_file,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    if log_format == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt=_FULL_STAMP,
        ))

    package_logger.addHandler(handler)
    return log_file


def configure_logging(config=None) -> Optional[Path]:
    """Apply the ``logging`` section of ``config`` to the package logger.

    Returns:
        Path to the log file, or None if the directory is not writable.
    """
    if config is None:
        from idempiere_codegen.config import get_config
        config = get_config()
    settings = config.logging
    try:
        return setup_file_logging(
            log_dir=settings.log_dir,
            log_level=settings.log_level,
            log_format=settings.log_format,
        )
    except OSError as e:
        logger.warning("Could not set up file logging in %s: %s", settings.log_dir, e)
        return None


def _format_duration(seconds: float) -> str:
    ms = int(seconds * 1000)
    if ms < 1000:
        return f"{ms}ms"
    if ms < 60_000:
        return f"{ms / 1000:.1f}s"
    minutes, rest = divmod(ms, 60_000)
    return f"{minutes}m{rest // 1000:02d}s"


class SessionLogger:
    """Plain-text transcript of one command, written to ``session-*.log``.

    Entries are timestamped lines; multi-line payloads (prompts, raw
    responses) go through :meth:`log_output`, which indents them between
    start/end markers.  Nothing is written before :meth:`start_session`.

    Args:
        log_dir: Directory holding session logs.  Defaults to the
            configured ``logging.log_dir``.
        out: Stream used for the log-location notice in :meth:`end_session`.
    """

    def __init__(self, log_dir=None, out=None):
        if log_dir is None:
            from idempiere_codegen.config import get_config
            log_dir = get_config().logging.log_dir
        self.log_dir = Path(log_dir).expanduser()
        self._out = out or sys.stdout
        self._session_log_file: Optional[Path] = None
        self._session_start: Optional[datetime] = None

    @property
    def session_log_file(self) -> Optional[Path]:
        return self._session_log_file

    @property
    def active(self) -> bool:
        return self._session_log_file is not None

    def start_session(self, command: str) -> Optional[Path]:
        """Create a new session log and point ``latest.log`` at it."""
        self._session_start = datetime.now()
        name = f"session-{self._session_start.strftime(_FILE_STAMP)}.log"
        header = (
            "=== iDempiere CLI Session ===\n"
            f"Started: {self._session_start.strftime(_FULL_STAMP)}\n"
            f"Command: {command}\n"
            f"Working Dir: {os.getcwd()}\n"
            f"OS: {platform.system()} {platform.release()}, Python {platform.python_version()}\n"
            f"User: {_user_name()}\n\n"
        )
        try:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            path = self.log_dir / name
            path.write_text(header, encoding="utf-8")
        except OSError as e:
            logger.debug("Could not create session log in %s: %s", self.log_dir, e)
            self._session_log_file = None
            return None

        self._session_log_file = path
        self._update_latest_link()
        return path

    def log_output(self, label: str, text: Optional[str]) -> None:
        """Log a multi-line payload framed by start/end markers."""
        lines = [f"[{_now()}] --- {label} output start ---"]
        if text:
            lines.extend(f"    {line}" for line in text.split("\n"))
        lines.append(f"[{_now()}] --- {label} output end ---")
        self._append("\n".join(lines) + "\n")

    def log_info(self, message: str) -> None:
        self._append(f"[{_now()}] {message}\n")

    def log_error(self, message: str) -> None:
        self._append(f"[{_now()}] ERROR: {message}\n")

    def end_session(self, success: bool) -> None:
        """Write the session summary and print where the log lives."""
        if not self.active:
            return
        now = datetime.now()
        status = "completed successfully" if success else "completed with errors"
        self._append(
            f"\n=== Session {status} ===\n"
            f"Ended: {now.strftime(_FULL_STAMP)}\n"
            f"Duration: {_format_duration((now - self._session_start).total_seconds())}\n"
        )
        print(f"\nSession log: {self._session_log_file.resolve()}", file=self._out)

    def clean_old_logs(self, keep: int) -> int:
        """Delete all but the ``keep`` most recent session logs.

        Returns:
            Number of files removed.
        """
        try:
            logs = [
                p for p in self.log_dir.iterdir()
                if p.name.startswith("session-") and p.name.endswith(".log") and not p.is_symlink()
            ]
            logs.sort(key=lambda p: p.stat().st_mtime, reverse=True)
        except OSError as e:
            logger.debug("Could not list session logs in %s: %s", self.log_dir, e)
            return 0

        removed = 0
        for stale in logs[max(keep, 0):]:
            try:
                stale.unlink()
                removed += 1
            except OSError as e:
                logger.debug("Could not remove %s: %s", stale, e)
        return removed

    def _append(self, content: str) -> None:
        if self._session_log_file is None:
            return
        try:
            with open(self._session_log_file, "a", encoding="utf-8") as f:
                f.write(content)
        except OSError as e:
            logger.debug("Could not append to session log: %s", e)

    def _update_latest_link(self) -> None:
        link = self.log_dir / LATEST_LINK
        try:
            if link.is_symlink() or link.exists():
                link.unlink()
            link.symlink_to(self._session_log_file.name)
        except (OSError, NotImplementedError) as e:
            # symlinks are unavailable on some platforms
            logger.debug("Could not update %s: %s", link, e)


def _now() -> str:
    return datetime.now().strftime(_LINE_STAMP)


def _user_name() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return "unknown"
