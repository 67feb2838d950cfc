"""Cancellable repeating tasks on the owner thread's event loop."""
from __future__ import annotations

from typing import Callable

from PySide6 import QtCore

TaskFactory = Callable[[float, Callable[[], None]], "RepeatingTask"]


class RepeatingTask:
    """Interface: call ``callback`` every ``interval`` seconds until stopped."""

    def __init__(self, interval: float, callback: Callable[[], None]):
        self.interval = interval
        self.callback = callback

    def start(self) -> None:
        raise NotImplementedError

    def stop(self) -> None:
        raise NotImplementedError

    @property
    def active(self) -> bool:
        raise NotImplementedError


class QtRepeatingTask(RepeatingTask):
    """``QTimer`` backed task; ticks run on the Qt event loop, one at a time."""

    def __init__(self, interval: float, callback: Callable[[], None]):
        super().__init__(interval, callback)
        self._timer = QtCore.QTimer()
        self._timer.setInterval(int(interval * 1000))
        self._timer.timeout.connect(self.callback)

    def start(self) -> None:
        self._timer.start()

    def stop(self) -> None:
        self._timer.stop()

    @property
    def active(self) -> bool:
        return self._timer.isActive()


__all__ = ["QtRepeatingTask", "RepeatingTask", "TaskFactory"]
