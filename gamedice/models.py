"""Data models and persistence for the random launcher."""
from __future__ import annotations

import logging
import os
import sys
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from . import protect

_LOGGER = logging.getLogger(__name__)

APP_TITLE = "Random Game Launcher"
APP_DIR_NAME = "RandomGameLauncher"
SETTINGS_FILE = "config.json"

Platform = Literal["steam", "epic", "gog", "riot", "amazon", "xbox", "ubisoft"]
PLATFORMS = ("steam", "epic", "gog", "riot", "amazon", "xbox", "ubisoft")


def key_of(platform: str, game_id: str) -> str:
    """Canonical lookup form of a ``platform:id`` key."""
    return f"{platform}:{game_id}".casefold()


def fold_key(key: str) -> str:
    return key.casefold()


class GameEntry(BaseModel):
    """Library item produced by a scanner; rebuilt on every scan."""

    model_config = ConfigDict(validate_assignment=True)

    platform: Platform
    id: str
    name: str
    install_path: str = ""
    supports_playtime: bool = False

    included: bool = True
    favorite: bool = False
    playtime_hours: Optional[float] = None
    tracked_playtime_hours: Optional[float] = None
    tags: List[str] = Field(default_factory=list)
    auto_tags: List[str] = Field(default_factory=list)

    @property
    def key(self) -> str:
        return f"{self.platform}:{self.id}"

    @property
    def lookup_key(self) -> str:
        return key_of(self.platform, self.id)

    @property
    def display_playtime_hours(self) -> Optional[float]:
        if self.playtime_hours is not None:
            return self.playtime_hours
        return self.tracked_playtime_hours

    def clone(self, **updates: Any) -> "GameEntry":
        return self.model_copy(update=updates)


class LaunchHistoryEntry(BaseModel):
    """One launch attempt. Only ``session_seconds`` changes after creation."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    game_key: str = ""
    name: str = ""
    platform: str = ""
    launched: bool = False
    error: str = ""
    filter_tags_csv: str = ""
    match_all_tags: bool = False
    session_seconds: int = 0


def _fold_keys(value: Any) -> Any:
    if not isinstance(value, dict):
        return value
    folded: Dict[str, Any] = {}
    for key, item in value.items():
        folded.setdefault(str(key).casefold(), item)
    return folded


class Config(BaseModel):
    """Durable state: everything that is not re-derived by scanning."""

    model_config = ConfigDict(validate_assignment=True)

    excluded: List[str] = Field(default_factory=list)
    favorites: List[str] = Field(default_factory=list)

    favorites_only: bool = False
    use_playtime_weighting: bool = False
    filter_tags: List[str] = Field(default_factory=list)
    match_all_tags: bool = False

    include_steam: bool = True
    include_epic: bool = True
    include_gog: bool = True
    include_riot: bool = True
    include_amazon: bool = True
    include_xbox: bool = True
    include_ubisoft: bool = True

    start_minimized_to_tray: bool = False
    minimize_to_tray: bool = True
    last_tab_index: int = 0

    steam_id64: str = ""
    steam_api_key_protected: str = ""

    window_left: Optional[float] = None
    window_top: Optional[float] = None
    window_width: float = 980
    window_height: float = 650
    window_state: str = "Normal"

    theme: str = "System"
    backdrop: str = "Mica"

    tracked_playtime_seconds: Dict[str, int] = Field(default_factory=dict)
    tags_by_game_key: Dict[str, List[str]] = Field(default_factory=dict)
    auto_tags_by_game_key: Dict[str, List[str]] = Field(default_factory=dict)
    steam_playtime_hours_by_game_key: Dict[str, float] = Field(default_factory=dict)

    launch_history: List[LaunchHistoryEntry] = Field(default_factory=list)

    @field_validator(
        "tracked_playtime_seconds",
        "tags_by_game_key",
        "auto_tags_by_game_key",
        "steam_playtime_hours_by_game_key",
        mode="before",
    )
    @classmethod
    def _casefold_map_keys(cls, value: Any) -> Any:
        return _fold_keys(value)

    @field_validator("excluded", "favorites", mode="before")
    @classmethod
    def _casefold_key_sets(cls, value: Any) -> Any:
        if value is None:
            return []
        seen: List[str] = []
        for item in value:
            folded = str(item).casefold()
            if folded not in seen:
                seen.append(folded)
        return seen

    def platform_enabled(self, platform: str) -> bool:
        return bool(getattr(self, f"include_{platform}", False))

    def enabled_platforms(self) -> List[str]:
        return [p for p in PLATFORMS if self.platform_enabled(p)]


def default_config_dir() -> Path:
    if sys.platform.startswith("win"):
        base = os.environ.get("APPDATA") or str(Path.home() / "AppData" / "Roaming")
        return Path(base) / APP_DIR_NAME
    base = os.environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return Path(base) / APP_DIR_NAME


class ConfigStore:
    """Load, persist and mutate the launcher config."""

    def __init__(self, base_dir: Optional[Path] = None):
        self.base_dir = base_dir or default_config_dir()
        self.settings_path = self.base_dir / SETTINGS_FILE
        self.config = self.load()

    # ----- Persistence -------------------------------------------------
    def load(self) -> Config:
        """Read the config file; a missing or unreadable file yields defaults."""
        if self.settings_path.exists():
            try:
                data = self.settings_path.read_text(encoding="utf-8")
                return Config.model_validate_json(data)
            except (OSError, ValueError, ValidationError) as exc:
                _LOGGER.warning("Ignoring unreadable config %s: %s", self.settings_path, exc)
        return Config()

    def reload(self) -> Config:
        self.config = self.load()
        return self.config

    def save(self) -> None:
        self.base_dir.mkdir(parents=True, exist_ok=True)
        payload = self.config.model_dump_json(indent=2)
        self.settings_path.write_text(payload, encoding="utf-8")

    # ----- Secrets -----------------------------------------------------
    @staticmethod
    def protect(secret: str) -> str:
        return protect.protect(secret)

    @staticmethod
    def unprotect(token: str) -> str:
        return protect.unprotect(token)

    def set_steam_api_key(self, api_key: str) -> None:
        self.config.steam_api_key_protected = self.protect(api_key)
        self.save()

    def steam_api_key(self) -> str:
        return self.unprotect(self.config.steam_api_key_protected)


__all__ = [
    "APP_TITLE",
    "PLATFORMS",
    "Config",
    "ConfigStore",
    "GameEntry",
    "LaunchHistoryEntry",
    "Platform",
    "default_config_dir",
    "fold_key",
    "key_of",
]
