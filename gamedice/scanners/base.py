"""Shared scanner contract and the tolerant lookup helpers every adapter uses."""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional

from ..launching import LaunchTarget
from ..models import GameEntry
from .registry import RegistryReader, default_registry

_LOGGER = logging.getLogger(__name__)


class Scanner:
    """One platform's view of what is installed.

    ``scan`` never raises: subclasses implement ``_scan`` and are free to skip
    records they cannot parse; anything that still escapes is logged and the
    platform contributes nothing.
    """

    platform: str = ""

    def __init__(self, registry: Optional[RegistryReader] = None):
        self.registry = registry or default_registry()

    def scan(self) -> List[GameEntry]:
        try:
            found = list(self._scan())
        except Exception as exc:  # pragma: no cover - defensive
            _LOGGER.exception("%s scan failed: %s", self.platform, exc)
            return []
        games = dedupe(found)
        _LOGGER.info("%s scan found %d games", self.platform, len(games))
        return games

    def _scan(self) -> Iterable[GameEntry]:
        raise NotImplementedError

    def resolve_launch_target(self, game_id: str) -> LaunchTarget:
        raise NotImplementedError

    def entry(self, game_id: str, name: str, install_path: str = "") -> GameEntry:
        return GameEntry(
            platform=self.platform,
            id=game_id,
            name=name,
            install_path=install_path or "",
            supports_playtime=self.platform == "steam",
        )


def dedupe(entries: Iterable[GameEntry]) -> List[GameEntry]:
    """First entry per case-insensitive key.

    The result is also sorted by name then platform so each platform logs and
    lists in a stable order; the library sorts again after merging platforms.
    """
    unique: Dict[str, GameEntry] = {}
    for entry in entries:
        unique.setdefault(entry.lookup_key, entry)
    return sorted(unique.values(), key=lambda g: (g.name.casefold(), g.platform))


def first_string(data: Mapping[str, Any], *names: str) -> Optional[str]:
    """Value of the first listed field that holds a non-blank string."""
    for name in names:
        value = data.get(name)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def first_bool(data: Mapping[str, Any], *names: str, default: bool = True) -> bool:
    for name in names:
        value = data.get(name)
        if isinstance(value, bool):
            return value
    return default


def extract_exe_path(command: str) -> Optional[str]:
    """Executable part of a command line such as an UninstallString."""
    text = command.strip()
    if text.startswith('"'):
        end = text.find('"', 1)
        return text[1:end] if end > 1 else None
    idx = text.lower().find(".exe")
    if idx < 0:
        return None
    return text[: idx + 4]


def path_identity(path: Path) -> str:
    return os.path.normcase(os.path.abspath(str(path))).casefold()


def is_dir(path: Optional[str]) -> bool:
    if not path:
        return False
    try:
        return Path(path).is_dir()
    except OSError:
        return False


def is_file(path: Optional[str]) -> bool:
    if not path:
        return False
    try:
        return Path(path).is_file()
    except OSError:
        return False


def env_dir(name: str, fallback: str) -> Path:
    return Path(os.environ.get(name) or fallback)


def program_files() -> Path:
    return env_dir("ProgramFiles", r"C:\Program Files")


def program_files_x86() -> Path:
    return env_dir("ProgramFiles(x86)", r"C:\Program Files (x86)")


def program_data() -> Path:
    return env_dir("PROGRAMDATA", r"C:\ProgramData")


def local_app_data() -> Path:
    return env_dir("LOCALAPPDATA", str(Path.home() / "AppData" / "Local"))


__all__ = [
    "Scanner",
    "dedupe",
    "env_dir",
    "extract_exe_path",
    "first_bool",
    "first_string",
    "is_dir",
    "is_file",
    "local_app_data",
    "path_identity",
    "program_data",
    "program_files",
    "program_files_x86",
]
