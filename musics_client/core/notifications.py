"""
User-facing toast notifications.

Stores push short messages with a severity; a view shows active() and
never has to remove anything itself, because toasts expire after their
duration. Every push is mirrored to the log at a matching level.
"""

import itertools
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from musics_client.core.logger import get_logger

logger = get_logger(__name__)


class Severity(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"
    WARNING = "warning"


_LOG_LEVELS = {
    Severity.SUCCESS: logging.INFO,
    Severity.INFO: logging.INFO,
    Severity.WARNING: logging.WARNING,
    Severity.ERROR: logging.ERROR,
}


@dataclass(frozen=True)
class Toast:
    """
    A single notification.

    Attributes:
        id: Monotonically increasing identifier within one queue.
        message: Text shown to the user.
        severity: success / error / info / warning.
        duration: Seconds before auto-dismiss.
        created_at: Queue clock reading at push time.
    """
    id: int
    message: str
    severity: Severity
    duration: float
    created_at: float

    def expired(self, now: float) -> bool:
        return now - self.created_at >= self.duration


class ToastQueue:
    """Ordered queue of toasts with clock-driven auto-dismiss."""

    def __init__(
        self,
        default_duration: float = 5.0,
        clock: Callable[[], float] = time.monotonic
    ) -> None:
        self.default_duration = default_duration
        self._clock = clock
        self._ids = itertools.count(1)
        self._toasts: list[Toast] = []

    def push(
        self,
        message: str,
        severity: Severity = Severity.INFO,
        duration: float | None = None
    ) -> Toast:
        toast = Toast(
            id=next(self._ids),
            message=message,
            severity=Severity(severity),
            duration=self.default_duration if duration is None else duration,
            created_at=self._clock(),
        )
        self._toasts.append(toast)
        logger.log(_LOG_LEVELS[toast.severity], f"[{toast.severity.value}] {message}")
        return toast

    def success(self, message: str) -> Toast:
        return self.push(message, Severity.SUCCESS)

    def error(self, message: str) -> Toast:
        return self.push(message, Severity.ERROR)

    def info(self, message: str) -> Toast:
        return self.push(message, Severity.INFO)

    def dismiss(self, toast_id: int) -> None:
        self._toasts = [t for t in self._toasts if t.id != toast_id]

    def active(self) -> list[Toast]:
        """Drop expired toasts and return the remaining ones, oldest first."""
        now = self._clock()
        self._toasts = [t for t in self._toasts if not t.expired(now)]
        return list(self._toasts)

    def drain(self) -> list[Toast]:
        """Return every queued toast (expired or not) and empty the queue."""
        toasts, self._toasts = self._toasts, []
        return toasts

    def __len__(self) -> int:
        return len(self._toasts)
