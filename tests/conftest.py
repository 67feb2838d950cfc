from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from gamedice.launching import LaunchTarget
from gamedice.models import ConfigStore, GameEntry
from gamedice.scanners import Scanner
from gamedice.scanners.registry import VIEWS, RegistryReader


class FakeRegistry(RegistryReader):
    """In-memory registry keyed by (hive, view, lowercased path)."""

    def __init__(self) -> None:
        self._keys: Dict[Tuple[str, int, str], Tuple[str, Dict[str, Any]]] = {}

    def add(self, hive: str, path: str, values: Dict[str, Any], view: Optional[int] = None) -> None:
        for v in ([view] if view is not None else list(VIEWS)):
            self._keys[(hive, v, path.lower())] = (path, dict(values))
            parent, _, _ = path.rpartition("\\")
            while parent and (hive, v, parent.lower()) not in self._keys:
                self._keys[(hive, v, parent.lower())] = (parent, {})
                parent, _, _ = parent.rpartition("\\")

    def subkeys(self, hive: str, path: str, view: int = 64) -> List[str]:
        prefix = path.lower() + "\\"
        names = []
        for (h, v, key), (original, _) in self._keys.items():
            if h == hive and v == view and key.startswith(prefix) and "\\" not in key[len(prefix):]:
                names.append(original[len(prefix):])
        return sorted(names)

    def values(self, hive: str, path: str, view: int = 64) -> Dict[str, Any]:
        found = self._keys.get((hive, view, path.lower()))
        return dict(found[1]) if found else {}


class FakeTask:
    def __init__(self, interval: float, callback) -> None:
        self.interval = interval
        self.callback = callback
        self.active = False
        self.starts = 0

    def start(self) -> None:
        self.active = True
        self.starts += 1

    def stop(self) -> None:
        self.active = False


class FakeClock:
    def __init__(self, start: Optional[datetime] = None) -> None:
        self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def registry() -> FakeRegistry:
    return FakeRegistry()


@pytest.fixture
def store(tmp_path) -> ConfigStore:
    return ConfigStore(tmp_path / "config")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


def make_game(platform: str, game_id: str, name: str, **kwargs: Any) -> GameEntry:
    return GameEntry(platform=platform, id=game_id, name=name, **kwargs)


class StaticScanner(Scanner):
    """Scanner that reports a fixed list and resolves to a fake URI."""

    def __init__(self, platform: str, games: List[GameEntry], fail: bool = False):
        super().__init__(RegistryReader())
        self.platform = platform
        self.games = games
        self.fail = fail
        self.calls = 0

    def _scan(self):
        self.calls += 1
        if self.fail:
            raise RuntimeError("boom")
        return [g.clone() for g in self.games]

    def resolve_launch_target(self, game_id: str) -> LaunchTarget:
        return LaunchTarget.uri(f"{self.platform}://{game_id}")
