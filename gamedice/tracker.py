"""Play-session tracking by watching for the launched game's processes.

Platforms differ in whether they expose install folders or playtime, so the
only heuristic that works everywhere is: a session is running while some
process executes from inside the game's install folder.

States::

    IDLE -> WAITING_CONFIRM -> TRACKING -> IDLE   (commit)
            WAITING_CONFIRM ------------> IDLE    (give up, nothing recorded)
"""
from __future__ import annotations

import enum
import logging
import os
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, List, Optional

from .discovery import tracked_hours
from .models import Config, GameEntry
from .processes import any_process_under, list_process_paths
from .scheduler import QtRepeatingTask, RepeatingTask, TaskFactory

_LOGGER = logging.getLogger(__name__)

SessionListener = Callable[[str, int], None]


class TrackerState(enum.Enum):
    IDLE = "idle"
    WAITING_CONFIRM = "waiting_confirm"
    TRACKING = "tracking"


@dataclass(frozen=True)
class TrackerSettings:
    tick: timedelta = timedelta(seconds=2)
    confirm_window: timedelta = timedelta(minutes=2)
    stop_after_gone: timedelta = timedelta(seconds=20)
    min_session: timedelta = timedelta(seconds=5)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionTracker:
    def __init__(
        self,
        config: Config,
        save: Callable[[], None],
        set_status: Callable[[str], None],
        task_factory: Optional[TaskFactory] = None,
        list_processes: Optional[Callable[[], Iterable[str]]] = None,
        clock: Optional[Callable[[], datetime]] = None,
        settings: Optional[TrackerSettings] = None,
    ):
        self.config = config
        self._save = save
        self._status = set_status
        self._list_processes = list_processes or list_process_paths
        self._clock = clock or _utcnow
        self.settings = settings or TrackerSettings()
        factory = task_factory or QtRepeatingTask
        self._task: RepeatingTask = factory(self.settings.tick.total_seconds(), self.tick)

        self.session_committed: List[SessionListener] = []

        self._current: Optional[GameEntry] = None
        self._history_id = ""
        self._started: Optional[datetime] = None
        self._last_seen: Optional[datetime] = None
        self._confirmed = False
        self._in_tick = False
        self._generation = 0

    # ----- State -------------------------------------------------------
    @property
    def state(self) -> TrackerState:
        if self._current is None:
            return TrackerState.IDLE
        return TrackerState.TRACKING if self._confirmed else TrackerState.WAITING_CONFIRM

    @property
    def current(self) -> Optional[GameEntry]:
        return self._current

    @property
    def history_id(self) -> str:
        return self._history_id

    def seed_from_config(self, entry: GameEntry) -> None:
        seconds = self.config.tracked_playtime_seconds.get(entry.lookup_key, 0)
        if seconds > 0:
            entry.tracked_playtime_hours = tracked_hours(seconds)

    # ----- Control -----------------------------------------------------
    def start(self, entry: GameEntry, history_id: str) -> None:
        # an overwritten session is dropped; its history entry keeps 0 seconds
        self.stop(commit=False)

        self._current = entry
        self._history_id = history_id
        self._started = self._clock()
        self._last_seen = self._started
        self._confirmed = False
        self._generation += 1
        self._task.start()
        _LOGGER.info("Waiting for %s to start (%s)", entry.name, entry.install_path or "no install path")

    def stop(self, commit: bool = True) -> int:
        """End the current session; returns the seconds recorded."""
        if self._current is None:
            return 0

        entry = self._current
        started = self._started or self._clock()
        history_id = self._history_id

        self._current = None
        self._generation += 1
        self._task.stop()

        if not commit:
            _LOGGER.info("Stopped tracking %s without recording", entry.name)
            return 0

        elapsed = self._clock() - started
        if elapsed < self.settings.min_session:
            _LOGGER.info("Discarding %.1fs session for %s", elapsed.total_seconds(), entry.name)
            return 0
        added = int(round(elapsed.total_seconds()))
        if added <= 0:
            return 0

        key = entry.lookup_key
        total = max(0, self.config.tracked_playtime_seconds.get(key, 0) + added)
        self.config.tracked_playtime_seconds[key] = total
        self._save()

        entry.tracked_playtime_hours = tracked_hours(total)
        _LOGGER.info("Recorded %ss for %s (total %ss)", added, entry.name, total)
        for listener in list(self.session_committed):
            listener(history_id, added)
        return added

    # ----- Polling -----------------------------------------------------
    def _give_up(self, now: datetime, message: str) -> bool:
        if not self._confirmed and self._started and now - self._started > self.settings.confirm_window:
            self._status(message)
            self.stop(commit=False)
            return True
        return False

    def tick(self) -> None:
        if self._in_tick:
            return
        if self._current is None:
            self._task.stop()
            return
        self._in_tick = True
        try:
            self._poll()
        finally:
            self._in_tick = False

    def _poll(self) -> None:
        entry = self._current
        generation = self._generation
        now = self._clock()
        install = entry.install_path or ""

        if not install.strip() or not os.path.isdir(install):
            if self._confirmed:
                seen = False
            else:
                self._give_up(now, "Playtime tracking: install path missing; stopped")
                return
        else:
            seen = any_process_under(install, self._list_processes())

        if generation != self._generation:
            # stopped while the process list was being read
            return

        if seen:
            self._last_seen = now
            if not self._confirmed:
                self._confirmed = True
                self._status(f"Playtime tracking started: {entry.name}")
            return

        if not self._confirmed:
            self._give_up(now, "Playtime tracking: game process not detected; stopped")
            return

        if self._last_seen and now - self._last_seen > self.settings.stop_after_gone:
            self._status(f"Playtime tracked: {entry.name}")
            self.stop(commit=True)


__all__ = ["SessionTracker", "TrackerSettings", "TrackerState"]
