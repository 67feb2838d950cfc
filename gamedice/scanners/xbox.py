"""Xbox / PC Game Pass titles from the GamingServices GameConfig registry."""
from __future__ import annotations

import logging
import subprocess
from typing import Callable, Iterable, Optional

from ..errors import LaunchError
from ..launching import LaunchTarget
from ..models import GameEntry
from .base import Scanner, first_string
from .registry import HKLM, VIEW_64

_LOGGER = logging.getLogger(__name__)

GAME_CONFIG_PATH = r"SOFTWARE\Microsoft\GamingServices\GameConfig"
POWERSHELL_TIMEOUT = 8

_NON_GAME_MARKERS = (
    "DLC",
    "Content Pack",
    "Launch Tracker",
    "Game Pass Launch Tracker",
    "Stub",
    "Early Access",
)


def looks_like_non_game(name: str) -> bool:
    text = name.strip().casefold()
    if not text:
        return True
    return any(marker.casefold() in text for marker in _NON_GAME_MARKERS)


def family_suffix(key_name: str) -> Optional[str]:
    """``Name_1.0.0.0_x64__8wekyb3d8bbwe`` -> ``8wekyb3d8bbwe``."""
    idx = key_name.find("__")
    if idx < 0:
        return None
    return key_name[idx + 2:] or None


def package_name_from_key(key_name: str) -> Optional[str]:
    idx = key_name.find("_")
    if idx <= 0:
        return None
    return key_name[:idx]


def _escape_ps(text: str) -> str:
    return text.replace("'", "''")


def _escape_like(text: str) -> str:
    for ch in "[]*?":
        text = text.replace(ch, "`" + ch)
    return text


def run_powershell(script: str) -> str:
    try:
        completed = subprocess.run(
            ["powershell", "-NoProfile", "-ExecutionPolicy", "Bypass", "-Command", script],
            capture_output=True,
            text=True,
            encoding="utf-8",
            timeout=POWERSHELL_TIMEOUT,
            check=False,
        )
    except (OSError, subprocess.SubprocessError) as exc:
        _LOGGER.error("Failed to invoke PowerShell: %s", exc)
        return ""
    if completed.returncode != 0:
        _LOGGER.error("PowerShell exited with %s: %s", completed.returncode, completed.stderr.strip())
        return ""
    return completed.stdout


class XboxScanner(Scanner):
    platform = "xbox"

    def __init__(self, registry=None, powershell: Optional[Callable[[str], str]] = None):
        super().__init__(registry)
        self.powershell = powershell or run_powershell

    def _display_name(self, key_path: str, values) -> Optional[str]:
        for sub, value_name in (("ShellVisuals", "DefaultDisplayName"), ("ShellVisuals", "OverrideDisplayName")):
            name = self.registry.read_string(HKLM, f"{key_path}\\{sub}", value_name, VIEW_64)
            if name and name.strip():
                return name.strip()
        return first_string(values, "Name")

    def _has_executable(self, key_path: str) -> bool:
        for _, values in self.registry.walk(HKLM, f"{key_path}\\Executable", VIEW_64):
            name = first_string(values, "Name")
            if name and name.lower().endswith(".exe"):
                return True
        return False

    def _scan(self) -> Iterable[GameEntry]:
        for key_name, values in self.registry.walk(HKLM, GAME_CONFIG_PATH, VIEW_64):
            key_path = f"{GAME_CONFIG_PATH}\\{key_name}"
            display_name = self._display_name(key_path, values)
            if not display_name or looks_like_non_game(display_name):
                continue
            if not self._has_executable(key_path):
                continue
            package = first_string(values, "Name") or package_name_from_key(key_name)
            suffix = family_suffix(key_name)
            if not package or not suffix:
                continue
            # install folders under WindowsApps are usually unreadable
            yield self.entry(f"{package}_{suffix}", display_name, "")

    def resolve_launch_target(self, game_id: str) -> LaunchTarget:
        if not game_id or not game_id.strip():
            raise LaunchError("Xbox package family name is empty")
        script = (
            f"$pfn = '{_escape_ps(game_id)}'; "
            f"$app = Get-StartApps | Where-Object {{ $_.AppID -like '*{_escape_ps(_escape_like(game_id))}*' }} "
            "| Select-Object -First 1; "
            "if($null -ne $app) { $app.AppID }"
        )
        app_id = self.powershell(script).strip()
        if not app_id:
            raise LaunchError(f"No Start menu app found for {game_id}")
        return LaunchTarget.process("explorer.exe", [f"shell:AppsFolder\\{app_id}"])


__all__ = ["XboxScanner", "family_suffix", "looks_like_non_game", "package_name_from_key"]
