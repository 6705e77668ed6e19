import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)


class Severity(str, Enum):
    INFORMATIONAL = "informational"
    DESTRUCTIVE = "destructive"


@dataclass(frozen=True)
class Notification:
    title: str
    description: str
    severity: Severity = Severity.INFORMATIONAL


class Notifier(ABC):
    """Fire-and-forget user-facing messages."""

    def notify(self, title: str, description: str,
               severity: Severity = Severity.INFORMATIONAL) -> None:
        try:
            self._deliver(Notification(title, description, severity))
        except Exception as e:
            logger.error(f"Notification delivery failed: {e}")

    @abstractmethod
    def _deliver(self, notification: Notification) -> None:
        pass


class LoggingNotifier(Notifier):

    def _deliver(self, notification: Notification) -> None:
        level = logging.WARNING if notification.severity is Severity.DESTRUCTIVE else logging.INFO
        logger.log(level, f"{notification.title} {notification.description}")


class ConsoleNotifier(Notifier):

    def _deliver(self, notification: Notification) -> None:
        marker = "!" if notification.severity is Severity.DESTRUCTIVE else "*"
        print(f"[{marker}] {notification.title} {notification.description}")
