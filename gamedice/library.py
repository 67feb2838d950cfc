"""Owner-thread controller: library state, launching, tracking and persistence.

Every mutation of the config or of the game list goes through this class and
happens on the thread that owns it. Background work (scanning threads, HTTP
coroutines) only hands results back; they are applied here.
"""
from __future__ import annotations

import logging
import random
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from . import history, steam_api
from .discovery import build_library
from .errors import LaunchError, SteamApiError
from .launching import LaunchTarget, launch
from .models import ConfigStore, GameEntry, LaunchHistoryEntry, fold_key, key_of
from .picker import pick
from .scanners import Scanner, SteamScanner, default_scanners
from .tags import GameFilter, known_tags, normalize_tags, set_auto_tags, set_tags
from .tracker import SessionTracker, TrackerState

_LOGGER = logging.getLogger(__name__)

GameListener = Callable[[GameEntry], None]
StatusListener = Callable[[str], None]
LibraryListener = Callable[[List[GameEntry]], None]


def _toggle(keys: List[str], key: str, present: bool) -> None:
    if present and key not in keys:
        keys.append(key)
    elif not present and key in keys:
        keys.remove(key)


class LibraryService:
    def __init__(
        self,
        store: ConfigStore,
        scanners: Optional[Mapping[str, Scanner]] = None,
        tracker: Optional[SessionTracker] = None,
        launcher: Callable[[LaunchTarget], None] = launch,
        rng: Optional[random.Random] = None,
        parallel_scan: bool = True,
    ):
        self.store = store
        self.scanners: Dict[str, Scanner] = dict(scanners) if scanners is not None else default_scanners()
        self._launch = launcher
        self._rng = rng
        self.parallel_scan = parallel_scan

        self.games: List[GameEntry] = []
        self.status_text = "Ready"

        self.status_changed: List[StatusListener] = []
        self.game_changed: List[GameListener] = []
        self.library_changed: List[LibraryListener] = []
        self.session_committed: List[Callable[[str, int], None]] = []

        self.tracker = tracker or SessionTracker(store.config, store.save, self.set_status)
        self.tracker.session_committed.append(self._on_session_committed)

    @property
    def config(self):
        return self.store.config

    # ----- Notifications -----------------------------------------------
    def set_status(self, text: str) -> None:
        self.status_text = text
        _LOGGER.info("Status: %s", text)
        for listener in list(self.status_changed):
            listener(text)

    def _game_changed(self, entry: GameEntry) -> None:
        for listener in list(self.game_changed):
            listener(entry)

    # ----- Library -----------------------------------------------------
    def refresh_library(self) -> List[GameEntry]:
        self.set_status("Scanning installed games...")
        self.games = build_library(self.scanners, self.config, parallel=self.parallel_scan)
        self.store.save()
        for listener in list(self.library_changed):
            listener(self.games)
        self.set_status(f"Loaded {len(self.games)} games")
        return self.games

    def by_key(self, key: str) -> Optional[GameEntry]:
        wanted = fold_key(key)
        for game in self.games:
            if game.lookup_key == wanted:
                return game
        return None

    def known_tags(self) -> List[str]:
        return known_tags(self.games)

    def set_platform_enabled(self, platform: str, enabled: bool) -> List[GameEntry]:
        if platform not in self.scanners:
            raise ValueError(f"Unknown platform: {platform}")
        setattr(self.config, f"include_{platform}", enabled)
        self.store.save()
        return self.refresh_library()

    # ----- Per-game state ----------------------------------------------
    def set_favorite(self, entry: GameEntry, favorite: bool) -> GameEntry:
        _toggle(self.config.favorites, entry.lookup_key, favorite)
        entry.favorite = favorite
        self.store.save()
        self._game_changed(entry)
        return entry

    def set_included(self, entry: GameEntry, included: bool) -> GameEntry:
        _toggle(self.config.excluded, entry.lookup_key, not included)
        entry.included = included
        self.store.save()
        self._game_changed(entry)
        return entry

    def set_tags(self, entry: GameEntry, tags: Sequence[str]) -> GameEntry:
        set_tags(self.config, entry, normalize_tags(tags))
        self.store.save()
        self._game_changed(entry)
        return entry

    # ----- Filters and picking -----------------------------------------
    def set_filter(self, tags: Iterable[str], match_all: bool) -> None:
        self.config.filter_tags = normalize_tags(list(tags))
        self.config.match_all_tags = match_all
        self.store.save()

    def current_filter(self, search_text: str = "") -> GameFilter:
        return GameFilter.from_config(self.config, search_text)

    def pick_random(self, game_filter: Optional[GameFilter] = None) -> Optional[GameEntry]:
        game_filter = game_filter or self.current_filter()
        pool = game_filter.pick_pool(self.games)
        return pick(pool, self.config.use_playtime_weighting, self._rng)

    def launch_random(self, game_filter: Optional[GameFilter] = None) -> Optional[LaunchHistoryEntry]:
        game_filter = game_filter or self.current_filter()
        chosen = self.pick_random(game_filter)
        if chosen is None:
            self.set_status("No games available (check Included/Favorites/Tag filters)")
            return None
        return self.launch(chosen, game_filter)

    def launch(self, entry: GameEntry, game_filter: Optional[GameFilter] = None) -> LaunchHistoryEntry:
        game_filter = game_filter or GameFilter()
        self.set_status(f"Launching: {entry.name} ({entry.platform})")
        error = ""
        try:
            scanner = self.scanners.get(entry.platform)
            if scanner is None:
                raise LaunchError(f"No scanner for platform {entry.platform}")
            target = scanner.resolve_launch_target(entry.id)
            self._launch(target)
        except LaunchError as exc:
            error = str(exc) or exc.__class__.__name__

        record = history.add_launch(
            self.config,
            entry,
            normalize_tags(game_filter.tags),
            game_filter.match_all,
            launched=not error,
            error=error,
        )
        self.store.save()
        if error:
            self.set_status(error)
        else:
            self.tracker.start(entry, record.id)
        return record

    # ----- Tracking ----------------------------------------------------
    def _on_session_committed(self, history_id: str, seconds: int) -> None:
        history.update_session(self.config, history_id, seconds)
        self.store.save()
        record = history.find(self.config, history_id)
        entry = self.by_key(record.game_key) if record else None
        for listener in list(self.session_committed):
            listener(history_id, seconds)
        if entry is not None:
            self._game_changed(entry)

    def shutdown(self) -> None:
        """Record a confirmed session in progress, then flush the config."""
        if self.tracker.state is TrackerState.TRACKING:
            self.tracker.stop(commit=True)
        else:
            self.tracker.stop(commit=False)
        self.store.save()

    # ----- History -----------------------------------------------------
    def history_stats_text(self) -> str:
        return history.format_stats(history.compute_stats(self.config))

    def clear_history(self) -> int:
        removed = history.clear(self.config)
        if removed:
            self.store.save()
        return removed

    # ----- Steam account -----------------------------------------------
    def save_api_key(self, api_key: str) -> None:
        self.store.set_steam_api_key(api_key)
        self.set_status("API key saved")

    def set_steam_id(self, steam_id64: str) -> None:
        self.config.steam_id64 = steam_id64.strip()
        self.store.save()

    def detect_steam_id(self) -> Optional[str]:
        scanner = self.scanners.get("steam")
        if not isinstance(scanner, SteamScanner):
            return None
        steam_id = scanner.detect_steam_id64()
        if steam_id:
            self.set_steam_id(steam_id)
            self.set_status(f"Detected SteamID64 {steam_id}")
        return steam_id

    async def fetch_playtime(self) -> bool:
        api_key = self.store.steam_api_key()
        steam_id = self.config.steam_id64
        if not api_key.strip() or not steam_id.strip():
            self.set_status("Enter SteamID64 and API key, then Save")
            return False

        self.set_status("Fetching Steam playtime...")
        try:
            hours = await steam_api.fetch_playtime_hours(api_key, steam_id)
        except SteamApiError as exc:
            self.set_status(str(exc))
            return False

        for appid, value in hours.items():
            self.config.steam_playtime_hours_by_game_key[key_of("steam", appid)] = value
        self.store.save()
        for game in self.games:
            if game.platform == "steam" and game.id in hours:
                game.playtime_hours = hours[game.id]
                self._game_changed(game)
        self.set_status("Steam playtime updated")
        return True

    async def import_store_tags(self, **kwargs) -> int:
        """Fill auto tags for Steam games from the store. Returns games tagged."""
        steam_games = [g for g in self.games if g.platform == "steam"]
        if not steam_games:
            self.set_status("No Steam games to tag")
            return 0

        total = len(steam_games)
        self.set_status(f"Importing Steam tags... 0/{total}")

        def progress(done: int, count: int) -> None:
            self.set_status(f"Importing Steam tags... {done}/{count}")

        found = await steam_api.import_store_tags([g.id for g in steam_games], progress=progress, **kwargs)
        tagged = 0
        for game in steam_games:
            tags = found.get(game.id)
            if not tags:
                continue
            set_auto_tags(self.config, game, tags)
            tagged += 1
            self._game_changed(game)
        self.store.save()
        self.set_status(f"Imported tags for {tagged} of {total} games")
        return tagged


__all__ = ["LibraryService"]
