"""
Logging configuration for musics-client.

This module sets up the logging system with multiple outputs:
    - Console: colored, tqdm-compatible (download progress bars stay intact)
    - log_full_{ts}.log: Complete log of all events (DEBUG and above)
    - log_errors_{ts}.log: Only ERROR and CRITICAL level messages
    - sync_failures_{ts}.log: Server-rejected writes (favorites, downloads,
      selections, guest merges) in a human-readable report

File outputs are only created when a log directory is given; the library
can run with console logging alone.

Usage:
    from musics_client.core.logger import setup_logging, get_logger

    setup_logging(log_dir)          # Call once at startup
    logger = get_logger(__name__)   # Get logger for each module

    logger.info("Fetching catalog")
    log_sync_failure("favorite.add", "u1", "t1", "HTTP 500")
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import TextIO

import colorama
from colorama import Fore, Style
from tqdm import tqdm


FILE_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Initialize colorama for Windows compatibility
colorama.init()


class ColoredConsoleFormatter(logging.Formatter):
    """
    Formatter that colors the level name for console output.

    Colors:
        - DEBUG: Cyan
        - INFO: Green
        - WARNING: Yellow
        - ERROR: Red
        - CRITICAL: Bright Red
    """

    LEVEL_COLORS = {
        logging.DEBUG: Fore.CYAN,
        logging.INFO: Fore.GREEN,
        logging.WARNING: Fore.YELLOW,
        logging.ERROR: Fore.RED,
        logging.CRITICAL: Fore.RED + Style.BRIGHT,
    }

    def __init__(self, use_colors: bool = True) -> None:
        super().__init__()
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        """
        Format the log record as "LEVEL: message".

        Args:
            record: The log record to format.

        Returns:
            Formatted string, with ANSI color codes when enabled.
        """
        if not self.use_colors:
            return f"{record.levelname}: {record.getMessage()}"

        color = self.LEVEL_COLORS.get(record.levelno, Fore.WHITE)
        return f"{color}{record.levelname}{Style.RESET_ALL}: {record.getMessage()}"


class TqdmLoggingHandler(logging.Handler):
    """
    Logging handler that writes to console without breaking tqdm progress bars.

    Audio downloads draw a tqdm bar on stderr. Writing log lines with
    tqdm.write() places them above any active bar instead of tearing it.
    """

    def __init__(self, stream: TextIO = sys.stderr) -> None:
        super().__init__()
        self.stream = stream

    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = self.format(record)
            tqdm.write(msg, file=self.stream)
        except Exception:
            self.handleError(record)


class ErrorOnlyFilter(logging.Filter):
    """
    Filter that only allows ERROR and CRITICAL level records.

    Used by the error log file handler to exclude DEBUG, INFO, and WARNING.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= logging.ERROR


class SyncFailureHandler(logging.Handler):
    """
    Handler that captures rejected server writes for the sync report file.

    Records carrying the 'sync_failed_operation' extra field are written
    to sync_failures_{ts}.log in a simple format:

        favorite.add  owner=u1  music=t42
        HTTP 500: Internal server error

    The handler looks for these extra fields:
        - 'sync_failed_operation': e.g. "favorite.add", "selection.merge"
        - 'sync_failed_owner': user id or device id
        - 'sync_failed_music_id': music id (may be None for merges)
        - 'sync_failed_reason': error message

    Use log_sync_failure() rather than building the extra dict by hand.
    """

    def __init__(self, report_path: Path) -> None:
        super().__init__()
        self.report_path = report_path
        self.report_file: TextIO | None = None

    def open(self) -> None:
        """Open the report file for writing (overwrites existing content)."""
        self.report_file = open(self.report_path, "w", encoding="utf-8")

    def emit(self, record: logging.LogRecord) -> None:
        if not hasattr(record, "sync_failed_operation"):
            return

        if self.report_file is None:
            return

        try:
            operation = getattr(record, "sync_failed_operation", "unknown")
            owner = getattr(record, "sync_failed_owner", "") or "-"
            music_id = getattr(record, "sync_failed_music_id", None) or "-"
            reason = getattr(record, "sync_failed_reason", "")

            self.report_file.write(f"{operation}  owner={owner}  music={music_id}\n")
            self.report_file.write(f"{reason}\n\n")
            self.report_file.flush()
        except Exception:
            self.handleError(record)

    def close(self) -> None:
        """Close the report file handle. Safe to call multiple times."""
        if self.report_file is not None:
            try:
                self.report_file.close()
            except OSError:
                pass
            self.report_file = None
        super().close()


def setup_logging(
    log_dir: Path | None = None,
    level: str = "INFO",
    use_colors: bool = True
) -> None:
    """
    Configure the logging system for the application.

    Call once at startup, after the configuration is loaded.

    Args:
        log_dir: Directory for log files, or None for console output only.
                 Files are created in a 'logs' subdirectory.
        level: Console level name (file handlers always record DEBUG).
        use_colors: Color the console level names.

    Behavior:
        1. Configure root logger level to DEBUG and drop existing handlers
        2. Add the tqdm-compatible console handler at the requested level
        3. When log_dir is given, add full, errors-only and sync-failure
           file handlers with a shared run timestamp
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    for handler in root_logger.handlers[:]:
        handler.close()
    root_logger.handlers.clear()

    console_handler = TqdmLoggingHandler()
    console_handler.setLevel(getattr(logging, level.upper(), logging.INFO))
    console_handler.setFormatter(ColoredConsoleFormatter(use_colors=use_colors))
    root_logger.addHandler(console_handler)

    # urllib3 logs every connection at DEBUG
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    if log_dir is None:
        return

    logs_dir = log_dir / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")

    full_handler = logging.FileHandler(
        logs_dir / f"log_full_{timestamp}.log", mode="w", encoding="utf-8"
    )
    full_handler.setLevel(logging.DEBUG)
    full_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT, FILE_DATE_FORMAT))
    root_logger.addHandler(full_handler)

    error_handler = logging.FileHandler(
        logs_dir / f"log_errors_{timestamp}.log", mode="w", encoding="utf-8"
    )
    error_handler.setLevel(logging.DEBUG)  # Filter handles the level restriction
    error_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT, FILE_DATE_FORMAT))
    error_handler.addFilter(ErrorOnlyFilter())
    root_logger.addHandler(error_handler)

    sync_handler = SyncFailureHandler(logs_dir / f"sync_failures_{timestamp}.log")
    sync_handler.open()
    root_logger.addHandler(sync_handler)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a module.

    Args:
        name: The logger name, typically __name__ of the calling module.

    Returns:
        logging.Logger configured by setup_logging().

    Note:
        Loggers obtained before setup_logging() is called propagate to an
        unconfigured root logger and produce no output.
    """
    return logging.getLogger(name)


def log_sync_failure(
    operation: str,
    owner: str | None,
    music_id: str | None,
    reason: str,
    logger: logging.Logger | None = None
) -> None:
    """
    Log a rejected server write with the fields SyncFailureHandler expects.

    Args:
        operation: Dotted operation name, e.g. "favorite.remove".
        owner: User id or device id the write was scoped to.
        music_id: Music id involved, or None for collection-wide operations.
        reason: Error message from the typed exception.
        logger: Logger to use. Defaults to this module's logger.
    """
    (logger or get_logger(__name__)).warning(
        f"{operation} failed for {music_id or 'all items'}: {reason}",
        extra={
            "sync_failed_operation": operation,
            "sync_failed_owner": owner,
            "sync_failed_music_id": music_id,
            "sync_failed_reason": reason,
        }
    )


def shutdown_logging() -> None:
    """
    Flush and close every handler on the root logger, then remove them.

    Typically called in a finally block at CLI exit.
    """
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        try:
            handler.flush()
            handler.close()
        except OSError:
            pass
        root_logger.removeHandler(handler)
