"""Notification surface: where success toasts and cancel errors end up."""

from typing import Literal, Protocol

from .logger import logger

Level = Literal["info", "success", "error"]


class Notifier(Protocol):
    def info(self, message: str) -> None: ...

    def success(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...


class LogNotifier:
    """Writes notifications to the package log."""

    def info(self, message: str) -> None:
        logger.info(message)

    def success(self, message: str) -> None:
        logger.info(message)

    def error(self, message: str) -> None:
        logger.error(message)


class RecordingNotifier:
    """Keeps every notification for applications that render their own."""

    def __init__(self):
        self.messages: list[tuple[Level, str]] = []

    def info(self, message: str) -> None:
        self.messages.append(("info", message))

    def success(self, message: str) -> None:
        self.messages.append(("success", message))

    def error(self, message: str) -> None:
        self.messages.append(("error", message))

    def of_level(self, level: Level) -> list[str]:
        return [message for lvl, message in self.messages if lvl == level]
