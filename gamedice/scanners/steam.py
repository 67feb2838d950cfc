"""Steam: app manifests across every library folder."""
from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Sequence

from ..launching import LaunchTarget
from ..models import GameEntry
from .base import Scanner, is_dir, is_file, local_app_data, path_identity, program_files, program_files_x86
from .registry import HKCU, HKLM, RegistryReader
from .vdf import find_key, read_vdf

_LOGGER = logging.getLogger(__name__)

URI_TEMPLATE = "steam://rungameid/{id}"

_REGISTRY_ROOTS = [
    (HKCU, r"Software\Valve\Steam", "SteamPath"),
    (HKLM, r"SOFTWARE\WOW6432Node\Valve\Steam", "InstallPath"),
    (HKLM, r"SOFTWARE\Valve\Steam", "InstallPath"),
]

_STEAM_ID_RE = re.compile(r"^7656\d{13}$")


class SteamScanner(Scanner):
    platform = "steam"

    def __init__(self, roots: Optional[Sequence[Path]] = None, registry: Optional[RegistryReader] = None):
        super().__init__(registry)
        self._roots = list(roots) if roots is not None else None

    # ----- Locations ---------------------------------------------------
    def steam_roots(self) -> List[Path]:
        if self._roots is not None:
            candidates = list(self._roots)
        else:
            candidates = []
            for hive, key, value_name in _REGISTRY_ROOTS:
                value = self.registry.read_string_any_view(hive, key, value_name)
                if value:
                    candidates.append(Path(value))
            candidates.extend(
                [program_files_x86() / "Steam", program_files() / "Steam", local_app_data() / "Steam"]
            )
        roots: List[Path] = []
        seen = set()
        for candidate in candidates:
            ident = path_identity(candidate)
            if ident in seen or not is_dir(str(candidate)):
                continue
            seen.add(ident)
            roots.append(candidate)
        return roots

    @staticmethod
    def library_paths(steam_root: Path) -> List[Path]:
        libraries = [steam_root]
        data = read_vdf(steam_root / "steamapps" / "libraryfolders.vdf")
        folders = find_key(data, "libraryfolders")
        if not isinstance(folders, dict):
            folders = data
        for value in folders.values():
            candidate = None
            if isinstance(value, dict):
                candidate = find_key(value, "path") or find_key(value, "libraryfolderpath")
            elif isinstance(value, str) and ("/" in value or "\\" in value):
                candidate = value
            if isinstance(candidate, str) and is_dir(candidate.strip()):
                libraries.append(Path(candidate.strip()))

        unique: List[Path] = []
        seen = set()
        for library in libraries:
            ident = path_identity(library)
            if ident not in seen:
                seen.add(ident)
                unique.append(library)
        return unique

    def manifests(self) -> Iterator[Path]:
        seen = set()
        for root in self.steam_roots():
            for library in self.library_paths(root):
                steamapps = library / "steamapps"
                if not is_dir(str(steamapps)):
                    continue
                try:
                    found = sorted(steamapps.glob("appmanifest_*.acf"))
                except OSError as exc:
                    _LOGGER.warning("Cannot list %s: %s", steamapps, exc)
                    continue
                for manifest in found:
                    ident = path_identity(manifest)
                    if ident not in seen:
                        seen.add(ident)
                        yield manifest

    # ----- Scanning ----------------------------------------------------
    def parse_manifest(self, manifest: Path) -> Optional[GameEntry]:
        data = read_vdf(manifest)
        node = find_key(data, "AppState")
        if not isinstance(node, dict):
            node = data
        appid = str(find_key(node, "appid") or "").strip()
        name = find_key(node, "name")
        if not isinstance(name, str) or not name.strip():
            user_config = find_key(node, "UserConfig")
            name = find_key(user_config, "name") if isinstance(user_config, dict) else None
        if not appid or not isinstance(name, str) or not name.strip():
            return None
        install_dir = find_key(node, "installdir")
        install_path = ""
        if isinstance(install_dir, str) and install_dir.strip():
            install_path = str(manifest.parent / "common" / install_dir.strip())
        return self.entry(appid, name.strip(), install_path)

    def _scan(self) -> Iterable[GameEntry]:
        for manifest in self.manifests():
            entry = self.parse_manifest(manifest)
            if entry is None:
                _LOGGER.debug("Skipping incomplete Steam manifest %s", manifest)
                continue
            yield entry

    def resolve_launch_target(self, game_id: str) -> LaunchTarget:
        return LaunchTarget.uri(URI_TEMPLATE.format(id=game_id))

    # ----- Local account -----------------------------------------------
    def detect_steam_id64(self) -> Optional[str]:
        for root in self.steam_roots():
            steam_id = steam_id_from_login_users(root / "config" / "loginusers.vdf")
            if steam_id:
                return steam_id
        return None


def _as_int(value: object, default: int) -> int:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return default


def steam_id_from_login_users(path: Path) -> Optional[str]:
    """SteamID64 of the most recent login, else the newest by timestamp."""
    if not is_file(str(path)):
        return None
    users = find_key(read_vdf(path), "users")
    if not isinstance(users, dict):
        return None

    best: Optional[tuple] = None
    best_id: Optional[str] = None
    for steam_id, body in users.items():
        if not _STEAM_ID_RE.match(steam_id) or not isinstance(body, dict):
            continue
        most_recent = _as_int(find_key(body, "MostRecent"), 0) == 1
        timestamp = _as_int(find_key(body, "Timestamp"), -1)
        rank = (most_recent, timestamp)
        if best is None or rank > best:
            best = rank
            best_id = steam_id
    return best_id


__all__ = ["SteamScanner", "URI_TEMPLATE", "steam_id_from_login_users"]
