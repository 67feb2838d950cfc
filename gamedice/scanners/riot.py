"""Riot Games: VALORANT and League of Legends.

Riot titles do not share a manifest format, so install folders come from
Uninstall entries, the Riot Games root folder, or title-specific keys, in
that order.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable, List, Optional

from ..errors import LaunchError
from ..launching import LaunchTarget
from ..models import GameEntry
from .base import Scanner, extract_exe_path, first_string, is_dir, is_file, program_files
from .registry import HKCU, HKLM, UNINSTALL_PATH, VIEWS

_LOGGER = logging.getLogger(__name__)

PATCHLINE_LIVE = "live"
CLIENT_SERVICES_EXE = "RiotClientServices.exe"

_PRODUCTS = {
    "valorant": "valorant",
    "league_of_legends": "league_of_legends",
    "riot_client": "Riot_Client",
}

_CLIENT_PATH_KEYS = [
    (HKLM, r"SOFTWARE\Riot Games\Riot Client"),
    (HKLM, r"SOFTWARE\WOW6432Node\Riot Games\Riot Client"),
    (HKCU, r"SOFTWARE\Riot Games\Riot Client"),
    (HKCU, r"SOFTWARE\WOW6432Node\Riot Games\Riot Client"),
]


class RiotScanner(Scanner):
    platform = "riot"

    def __init__(self, registry=None, default_root: Optional[Path] = None):
        super().__init__(registry)
        self.default_root = default_root or (program_files() / "Riot Games")

    # ----- Registry lookups --------------------------------------------
    def find_uninstall_dir(self, display_name: str) -> Optional[str]:
        """Install folder of the Uninstall entry whose DisplayName matches."""
        wanted = display_name.casefold()
        for hive in (HKLM, HKCU):
            for view in VIEWS:
                for _, values in self.registry.walk(hive, UNINSTALL_PATH, view):
                    name = first_string(values, "DisplayName")
                    if not name or name.casefold() != wanted:
                        continue
                    location = first_string(values, "InstallLocation")
                    if is_dir(location):
                        return location
                    uninstall = first_string(values, "UninstallString")
                    exe = extract_exe_path(uninstall) if uninstall else None
                    if exe:
                        folder = os.path.dirname(exe)
                        if is_dir(folder):
                            return folder
        return None

    def riot_games_root(self) -> Optional[str]:
        client_dir = self.find_uninstall_dir("Riot Client")
        if client_dir:
            parent = str(Path(client_dir).parent)
            return parent if is_dir(parent) else client_dir
        if is_dir(str(self.default_root)):
            return str(self.default_root)
        return None

    def client_services_exe(self) -> Optional[str]:
        for hive in (HKCU, HKLM):
            for view in VIEWS:
                for _, values in self.registry.walk(hive, UNINSTALL_PATH, view):
                    name = first_string(values, "DisplayName")
                    if not name or not name.casefold().startswith("riot client"):
                        continue
                    uninstall = first_string(values, "UninstallString")
                    exe = extract_exe_path(uninstall) if uninstall else None
                    if is_file(exe):
                        return exe
                    location = first_string(values, "InstallLocation")
                    if location:
                        candidate = os.path.join(location, CLIENT_SERVICES_EXE)
                        if is_file(candidate):
                            return candidate
        for hive, key in _CLIENT_PATH_KEYS:
            path = self.registry.read_string_any_view(hive, key, "Path")
            if is_file(path):
                return path
        return None

    # ----- Scanning ----------------------------------------------------
    def _valorant_dirs(self) -> List[str]:
        dirs: List[str] = []
        uninstall_dir = self.find_uninstall_dir("VALORANT")
        if uninstall_dir:
            return [uninstall_dir]
        root = self.riot_games_root()
        if root:
            candidate = str(Path(root) / "VALORANT" / PATCHLINE_LIVE)
            if is_dir(candidate):
                dirs.append(candidate)
        from_key = self.registry.read_string_any_view(
            HKLM, r"SOFTWARE\Riot Games\VALORANT", "InstallPath"
        ) or self.registry.read_string_any_view(HKLM, r"SOFTWARE\WOW6432Node\Riot Games\VALORANT", "InstallPath")
        if is_dir(from_key):
            dirs.append(from_key)
        return dirs

    def _league_dirs(self) -> List[str]:
        dirs: List[str] = []
        uninstall_dir = self.find_uninstall_dir("League of Legends")
        if uninstall_dir:
            dirs.append(uninstall_dir)
        root = self.riot_games_root()
        if root:
            candidate = str(Path(root) / "League of Legends")
            if is_dir(candidate):
                dirs.append(candidate)
        return dirs

    def _scan(self) -> Iterable[GameEntry]:
        for install_dir in self._valorant_dirs():
            yield self.entry("valorant", "VALORANT", install_dir)
        for install_dir in self._league_dirs():
            yield self.entry("league_of_legends", "League of Legends", install_dir)

    def resolve_launch_target(self, game_id: str) -> LaunchTarget:
        if not game_id or not game_id.strip():
            raise LaunchError("Riot game id is empty")
        exe = self.client_services_exe()
        if not exe:
            raise LaunchError("Riot Client (RiotClientServices.exe) not found")
        product = _PRODUCTS.get(game_id, game_id)
        patchline = "" if game_id == "riot_client" else PATCHLINE_LIVE
        return LaunchTarget.process(
            exe, [f"--launch-product={product}", f"--launch-patchline={patchline}"]
        )


__all__ = ["RiotScanner"]
