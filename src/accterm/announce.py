"""Announcement channel between the session core and the presentation layer."""

from __future__ import annotations

from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Literal, Protocol

from loguru import logger

AnnouncementKind = Literal["info", "navigation", "output", "keyword", "error"]
DEFAULT_HISTORY_LIMIT = 200


@dataclass(frozen=True)
class Announcement:
    """One plain-text message meant for a screen reader or status line."""

    message: str
    kind: AnnouncementKind = "info"
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))


class AnnouncerProtocol(Protocol):
    """Minimal contract for anything that accepts announcements."""

    def announce(self, message: str, *, kind: AnnouncementKind = "info") -> None: ...


Subscriber = Callable[[Announcement], None]


class AnnouncementChannel:
    """Synchronous fan-out of announcements with a short history."""

    def __init__(self, *, history_limit: int = DEFAULT_HISTORY_LIMIT) -> None:
        self._subscribers: list[Subscriber] = []
        self._history: deque[Announcement] = deque(maxlen=history_limit)

    def subscribe(self, subscriber: Subscriber) -> Callable[[], None]:
        self._subscribers.append(subscriber)

        def _unsubscribe() -> None:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)

        return _unsubscribe

    def announce(self, message: str, *, kind: AnnouncementKind = "info") -> None:
        if not message:
            return
        item = Announcement(message=message, kind=kind)
        self._history.append(item)
        for subscriber in list(self._subscribers):
            try:
                subscriber(item)
            except Exception:
                logger.exception("announcement subscriber failed")

    def history(self) -> list[Announcement]:
        return list(self._history)

    def messages(self) -> list[str]:
        return [item.message for item in self._history]

    def last(self) -> Announcement | None:
        return self._history[-1] if self._history else None
