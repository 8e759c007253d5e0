"""Non-blocking user notifications (toasts) raised by the engine."""

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Deque, List

logger = logging.getLogger(__name__)


class NotificationLevel(Enum):
    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class Notification:
    level: NotificationLevel
    message: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


NotificationListener = Callable[[Notification], None]


class Notifier:
    """Collects notifications and forwards them to any registered listeners."""

    def __init__(self, history_size: int = 50):
        self._history: Deque[Notification] = deque(maxlen=history_size)
        self._listeners: List[NotificationListener] = []

    def subscribe(self, listener: NotificationListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def notify(self, level: NotificationLevel, message: str) -> Notification:
        notification = Notification(level=level, message=message)
        self._history.append(notification)
        if level is NotificationLevel.ERROR:
            logger.warning(f"Notify [{level.value}]: {message}")
        else:
            logger.info(f"Notify [{level.value}]: {message}")
        for listener in list(self._listeners):
            try:
                listener(notification)
            except Exception:
                logger.exception("Notification listener failed")
        return notification

    def info(self, message: str) -> Notification:
        return self.notify(NotificationLevel.INFO, message)

    def success(self, message: str) -> Notification:
        return self.notify(NotificationLevel.SUCCESS, message)

    def error(self, message: str) -> Notification:
        return self.notify(NotificationLevel.ERROR, message)

    @property
    def history(self) -> List[Notification]:
        return list(self._history)

    def of_level(self, level: NotificationLevel) -> List[Notification]:
        return [n for n in self._history if n.level is level]

    def clear(self) -> None:
        self._history.clear()
