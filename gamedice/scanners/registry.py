"""Read-only Windows registry access as a fallible key/value lookup.

Scanners only ever ask two questions: which subkeys live under a path, and
which values a key holds. Off Windows (and on any error) the answer is empty.
"""
from __future__ import annotations

import logging
import sys
from typing import Any, Dict, Iterator, List, Optional, Tuple

_LOGGER = logging.getLogger(__name__)

HKLM = "HKEY_LOCAL_MACHINE"
HKCU = "HKEY_CURRENT_USER"

VIEW_64 = 64
VIEW_32 = 32
VIEWS = (VIEW_64, VIEW_32)

UNINSTALL_PATH = r"SOFTWARE\Microsoft\Windows\CurrentVersion\Uninstall"


class RegistryReader:
    """Registry that holds nothing; the fallback off Windows."""

    def subkeys(self, hive: str, path: str, view: int = VIEW_64) -> List[str]:
        return []

    def values(self, hive: str, path: str, view: int = VIEW_64) -> Dict[str, Any]:
        return {}

    def read_string(self, hive: str, path: str, name: str, view: int = VIEW_64) -> Optional[str]:
        values = self.values(hive, path, view)
        value = values.get(name)
        if value is None:
            wanted = name.casefold()
            for key, candidate in values.items():
                if key.casefold() == wanted:
                    value = candidate
                    break
        if isinstance(value, str) and value.strip():
            return value
        return None

    def read_string_any_view(self, hive: str, path: str, name: str) -> Optional[str]:
        for view in VIEWS:
            value = self.read_string(hive, path, name, view)
            if value:
                return value
        return None

    def walk(self, hive: str, path: str, view: int = VIEW_64) -> Iterator[Tuple[str, Dict[str, Any]]]:
        """Yield ``(subkey_name, values)`` for each direct child of ``path``."""
        for name in self.subkeys(hive, path, view):
            yield name, self.values(hive, f"{path}\\{name}", view)


class WindowsRegistry(RegistryReader):
    def _open(self, hive: str, path: str, view: int):
        import winreg  # type: ignore

        flag = winreg.KEY_WOW64_64KEY if view == VIEW_64 else winreg.KEY_WOW64_32KEY
        return winreg.OpenKey(getattr(winreg, hive), path, 0, winreg.KEY_READ | flag)

    def subkeys(self, hive: str, path: str, view: int = VIEW_64) -> List[str]:
        import winreg  # type: ignore

        names: List[str] = []
        try:
            with self._open(hive, path, view) as key:
                index = 0
                while True:
                    try:
                        names.append(winreg.EnumKey(key, index))
                    except OSError:
                        break
                    index += 1
        except OSError:
            return []
        return names

    def values(self, hive: str, path: str, view: int = VIEW_64) -> Dict[str, Any]:
        import winreg  # type: ignore

        result: Dict[str, Any] = {}
        try:
            with self._open(hive, path, view) as key:
                index = 0
                while True:
                    try:
                        name, data, _ = winreg.EnumValue(key, index)
                    except OSError:
                        break
                    result[name] = data
                    index += 1
        except OSError:
            return {}
        return result


def default_registry() -> RegistryReader:
    if sys.platform.startswith("win"):
        return WindowsRegistry()
    return RegistryReader()


__all__ = [
    "HKCU",
    "HKLM",
    "RegistryReader",
    "UNINSTALL_PATH",
    "VIEWS",
    "VIEW_32",
    "VIEW_64",
    "WindowsRegistry",
    "default_registry",
]
