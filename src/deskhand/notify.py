"""Desktop notifications published over a blinker signal."""

from __future__ import annotations

import shutil
import subprocess
import sys
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from blinker import Signal
from loguru import logger

APP_TITLE = "AI Desktop Assistant"


@dataclass(frozen=True)
class Notification:
    title: str
    message: str


class Notifier:
    """Fan out notifications to connected receivers.

    Receiver failures are logged and never reach the caller.
    """

    def __init__(self) -> None:
        self._signal = Signal("deskhand.notification")
        self._signal.connect(_log_notification, weak=False)

    def connect(self, receiver: Callable[[Notification], None]) -> Callable[[], None]:
        def _receiver(sender: Any, *, notification: Notification) -> None:
            receiver(notification)

        self._signal.connect(_receiver, weak=False)
        return lambda: self._signal.disconnect(_receiver)

    def attach_desktop(self) -> Callable[[], None] | None:
        """Connect the platform notifier if one is installed."""
        command = _desktop_command()
        if command is None:
            logger.warning("notify.desktop.unavailable platform={}", sys.platform)
            return None
        return self.connect(lambda notification: _spawn(command(notification)))

    def notify(self, title: str, message: str) -> None:
        notification = Notification(title=title, message=message)
        for receiver in self._signal.receivers_for(self):
            try:
                receiver(self, notification=notification)
            except Exception:
                logger.exception("notify.receiver.error title={}", title)


def _log_notification(sender: Any, *, notification: Notification) -> None:
    logger.info("notify title={!r} message={!r}", notification.title, notification.message)


def _desktop_command() -> Callable[[Notification], list[str]] | None:
    if sys.platform == "darwin" and shutil.which("osascript"):
        return lambda n: [
            "osascript",
            "-e",
            f"display notification {_applescript_quote(n.message)} with title {_applescript_quote(n.title)}",
        ]
    notify_send = shutil.which("notify-send")
    if notify_send:
        return lambda n: [notify_send, n.title, n.message]
    return None


def _applescript_quote(text: str) -> str:
    return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'


def _spawn(command: list[str]) -> None:
    # Fire and forget; the notification daemon owns the process from here.
    subprocess.Popen(command, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)  # noqa: S603
