"""GOG: per-game keys under ``GOG.com\\Games`` in either registry view."""
from __future__ import annotations

import logging
import os
from typing import Iterable, Iterator, Optional, Tuple

from ..launching import LaunchTarget
from ..models import GameEntry
from .base import Scanner, first_string
from .registry import HKCU, HKLM, VIEWS

_LOGGER = logging.getLogger(__name__)

GAMES_PATHS = (r"SOFTWARE\GOG.com\Games", r"SOFTWARE\WOW6432Node\GOG.com\Games")
GALAXY_URI = "goggalaxy://openGameView/{id}"


def _locations() -> Iterator[Tuple[str, int, str]]:
    for hive in (HKLM, HKCU):
        for view in VIEWS:
            for path in GAMES_PATHS:
                yield hive, view, path


def _executable_part(command: str) -> str:
    text = command.strip()
    if text.startswith('"'):
        end = text.find('"', 1)
        return text[1:end] if end > 1 else text.strip('"')
    idx = text.find(" ")
    if idx > 0 and ".exe" in text.lower():
        return text[:idx]
    return text


class GogScanner(Scanner):
    platform = "gog"

    def _scan(self) -> Iterable[GameEntry]:
        for hive, view, path in _locations():
            for game_id, values in self.registry.walk(hive, path, view):
                install_path = first_string(values, "path", "installPath") or ""
                name = first_string(values, "gameName", "Name", "name") or game_id
                yield self.entry(game_id, name, install_path)

    def _read(self, game_id: str, *names: str) -> Optional[str]:
        for name in names:
            for hive, view, path in _locations():
                value = self.registry.read_string(hive, f"{path}\\{game_id}", name, view)
                if value:
                    return value
        return None

    def resolve_launch_target(self, game_id: str) -> LaunchTarget:
        exe = self._read(game_id, "exe", "Exe", "launchCommand")
        if exe:
            command = _executable_part(exe)
            install_path = self._read(game_id, "path", "installPath")
            if install_path and not os.path.isabs(command):
                command = os.path.join(install_path, command)
            return LaunchTarget.process(command, working_dir=install_path)
        return LaunchTarget.uri(GALAXY_URI.format(id=game_id))


__all__ = ["GogScanner"]
