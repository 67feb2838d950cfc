"""Ubisoft Connect installs, named via the launcher's configuration cache."""
from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Dict, Iterable, Optional

from ..launching import LaunchTarget
from ..models import GameEntry
from .base import Scanner, first_string, is_dir, is_file, program_files_x86
from .registry import HKCU, HKLM, VIEW_32, VIEW_64

_LOGGER = logging.getLogger(__name__)

INSTALLS_PATH = r"SOFTWARE\Ubisoft\Launcher\Installs"
URI_TEMPLATE = "uplay://launch/{id}/0"

_LOCATIONS = [(HKLM, VIEW_32), (HKLM, VIEW_64), (HKCU, VIEW_32), (HKCU, VIEW_64)]

_INSTALL_ID_RE = re.compile(r"Installs\\(?P<id>\d+)\\InstallDir", re.IGNORECASE)
_GAMENAME_RE = re.compile(r"\bGAMENAME\s*:\s*\"(?P<n>[^\"]+)\"", re.IGNORECASE)
_ROOT_NAME_RE = re.compile(r"\broot\s*:\s*(?:\r?\n)+\s*name\s*:\s*(?P<t>[A-Za-z0-9_\-]+)", re.IGNORECASE)
_SHORTCUT_RE = re.compile(r"\bshortcut_name\s*:\s*(?P<n>.+)", re.IGNORECASE)


def default_launcher_dir() -> Path:
    return program_files_x86() / "Ubisoft" / "Ubisoft Game Launcher"


def _clean(raw: str) -> str:
    return raw.strip().strip('"').strip()


def extract_name(block: str) -> Optional[str]:
    match = _GAMENAME_RE.search(block)
    if match:
        return match.group("n").strip()

    token_match = _ROOT_NAME_RE.search(block)
    if token_match:
        token = token_match.group("t").strip()
        localized = re.search(
            r"\blocalizations\s*:\s*(?:\r?\n)+\s*default\s*:\s*(?:\r?\n)+(?:\s*"
            + re.escape(token)
            + r"\s*:\s*(?P<n>.+))",
            block,
            re.IGNORECASE,
        )
        if localized:
            name = _clean(localized.group("n"))
            if name:
                return name

    shortcut = _SHORTCUT_RE.search(block)
    if shortcut:
        name = _clean(shortcut.group("n"))
        if name:
            return name
    return None


def parse_configurations(text: str) -> Dict[str, str]:
    """Install id -> title from the launcher's ``configurations`` cache."""
    names: Dict[str, str] = {}
    for block in text.split("version: 2.0"):
        ids = []
        for match in _INSTALL_ID_RE.finditer(block):
            if match.group("id") not in ids:
                ids.append(match.group("id"))
        if not ids:
            continue
        name = extract_name(block)
        if not name:
            continue
        for game_id in ids:
            names.setdefault(game_id, name)
    return names


class UbisoftScanner(Scanner):
    platform = "ubisoft"

    def __init__(self, registry=None, launcher_dir: Optional[Path] = None):
        super().__init__(registry)
        self.launcher_dir = launcher_dir or default_launcher_dir()

    def load_name_map(self) -> Dict[str, str]:
        path = self.launcher_dir / "cache" / "configuration" / "configurations"
        if not is_file(str(path)):
            return {}
        try:
            text = path.read_bytes().decode("utf-8", errors="ignore")
        except OSError as exc:
            _LOGGER.warning("Failed to read Ubisoft configurations %s: %s", path, exc)
            return {}
        return parse_configurations(text)

    def _scan(self) -> Iterable[GameEntry]:
        name_map = self.load_name_map()
        for hive, view in _LOCATIONS:
            for game_id, values in self.registry.walk(hive, INSTALLS_PATH, view):
                install_dir = first_string(values, "InstallDir")
                if not game_id.strip() or not is_dir(install_dir):
                    continue
                name = (
                    first_string(values, "DisplayName")
                    or first_string(values, "InstallName")
                    or name_map.get(game_id)
                    or game_id
                ).strip()
                if name:
                    yield self.entry(game_id, name, install_dir or "")

    def resolve_launch_target(self, game_id: str) -> LaunchTarget:
        return LaunchTarget.uri(URI_TEMPLATE.format(id=game_id))


__all__ = ["UbisoftScanner", "extract_name", "parse_configurations"]
