"""Epic Games Launcher: JSON ``.item`` manifests under ProgramData."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Iterable, List, Optional

from ..launching import LaunchTarget
from ..models import GameEntry
from .base import Scanner, first_bool, first_string, is_dir, program_data

_LOGGER = logging.getLogger(__name__)

URI_TEMPLATE = "com.epicgames.launcher://apps/{id}?action=launch&silent=true"
MANIFEST_PATTERNS = ("*.item", "*.json", "*.manifest")


def default_manifest_dir() -> Path:
    return program_data() / "Epic" / "EpicGamesLauncher" / "Data" / "Manifests"


class EpicScanner(Scanner):
    platform = "epic"

    def __init__(self, manifest_dir: Optional[Path] = None, registry=None):
        super().__init__(registry)
        self.manifest_dir = manifest_dir or default_manifest_dir()

    def manifest_paths(self) -> List[Path]:
        if not is_dir(str(self.manifest_dir)):
            return []
        paths: List[Path] = []
        for pattern in MANIFEST_PATTERNS:
            try:
                paths.extend(sorted(self.manifest_dir.glob(pattern)))
            except OSError as exc:
                _LOGGER.warning("Cannot list %s: %s", self.manifest_dir, exc)
        return paths

    def parse_manifest(self, path: Path) -> Optional[GameEntry]:
        try:
            data = json.loads(path.read_text(encoding="utf-8", errors="ignore"))
        except (OSError, json.JSONDecodeError) as exc:
            _LOGGER.error("Failed to parse Epic manifest %s: %s", path, exc)
            return None
        if not isinstance(data, dict):
            return None
        if not first_bool(data, "bIsInstalled", default=True):
            return None
        app_name = first_string(data, "AppName", "CatalogItemId")
        display_name = first_string(data, "DisplayName", "AppTitle")
        if not (app_name and display_name):
            return None
        install_location = first_string(data, "InstallLocation", "InstallFolder") or ""
        return self.entry(app_name, display_name, install_location)

    def _scan(self) -> Iterable[GameEntry]:
        for path in self.manifest_paths():
            entry = self.parse_manifest(path)
            if entry is not None:
                yield entry

    def resolve_launch_target(self, game_id: str) -> LaunchTarget:
        return LaunchTarget.uri(URI_TEMPLATE.format(id=game_id))


__all__ = ["EpicScanner", "URI_TEMPLATE", "default_manifest_dir"]
