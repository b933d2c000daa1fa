"""
User-facing notifications (toasts).

The pipeline never lets a failure escape to the UI layer; it reports
it through a ``Notifier`` instead.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from quickpost.exceptions import QuickPostError
from quickpost.logging_config import get_logger

logger = get_logger(__name__)


class Variant(str, Enum):
    DEFAULT = "default"
    WARNING = "warning"
    DESTRUCTIVE = "destructive"


@dataclass(frozen=True)
class Notification:
    title: str
    description: str = ""
    variant: Variant = Variant.DEFAULT

    @classmethod
    def from_error(cls, error: QuickPostError, description: str | None = None) -> Notification:
        return cls(
            title=error.title,
            description=description or str(error),
            variant=Variant.DESTRUCTIVE,
        )


class Notifier(Protocol):
    def notify(self, notification: Notification) -> None: ...


class LoggingNotifier:
    """Default notifier: writes each toast to the structured log."""

    def notify(self, notification: Notification) -> None:
        log = logger.warning if notification.variant == Variant.DESTRUCTIVE else logger.info
        log(
            "user_notification",
            title=notification.title,
            description=notification.description,
            variant=notification.variant.value,
        )
