"""Merge scanner output into one deduplicated, ordered library."""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Iterable, List, Mapping, Sequence

from .models import Config, GameEntry
from .scanners import Scanner
from .tags import get_auto_tags, get_tags

_LOGGER = logging.getLogger(__name__)

MAX_SCAN_WORKERS = 4


def aggregate(per_platform: Iterable[Sequence[GameEntry]]) -> List[GameEntry]:
    """First entry per case-insensitive key, ordered by name then platform."""
    unique: Dict[str, GameEntry] = {}
    for entries in per_platform:
        for entry in entries:
            unique.setdefault(entry.lookup_key, entry)
    return sorted(unique.values(), key=lambda g: (g.name.casefold(), g.platform))


def tracked_hours(seconds: int) -> float:
    return round(seconds / 3600.0, 1)


def apply_config(entries: List[GameEntry], config: Config) -> List[GameEntry]:
    """Join durable per-key state onto freshly scanned entries."""
    excluded = set(config.excluded)
    favorites = set(config.favorites)
    for entry in entries:
        key = entry.lookup_key
        entry.included = key not in excluded
        entry.favorite = key in favorites
        entry.tags = get_tags(config, entry)
        entry.auto_tags = get_auto_tags(config, entry)
        if entry.platform == "steam" and key in config.steam_playtime_hours_by_game_key:
            entry.playtime_hours = config.steam_playtime_hours_by_game_key[key]
        seconds = config.tracked_playtime_seconds.get(key, 0)
        entry.tracked_playtime_hours = tracked_hours(seconds) if seconds > 0 else None
    return entries


def _safe_scan(scanner: Scanner) -> List[GameEntry]:
    try:
        return scanner.scan()
    except Exception as exc:  # pragma: no cover - defensive
        _LOGGER.exception("Scanner %s raised: %s", scanner.platform, exc)
        return []


def scan_all(scanners: Sequence[Scanner], parallel: bool = True) -> List[List[GameEntry]]:
    """Run every scanner; results come back in scanner order."""
    if not scanners:
        return []
    if not parallel or len(scanners) == 1:
        return [_safe_scan(s) for s in scanners]
    with ThreadPoolExecutor(max_workers=min(MAX_SCAN_WORKERS, len(scanners))) as pool:
        return list(pool.map(_safe_scan, scanners))


def enabled_scanners(scanners: Mapping[str, Scanner], config: Config) -> List[Scanner]:
    return [scanners[p] for p in config.enabled_platforms() if p in scanners]


def build_library(scanners: Mapping[str, Scanner], config: Config, parallel: bool = True) -> List[GameEntry]:
    games = aggregate(scan_all(enabled_scanners(scanners, config), parallel=parallel))
    apply_config(games, config)
    return games


__all__ = [
    "aggregate",
    "apply_config",
    "build_library",
    "enabled_scanners",
    "scan_all",
    "tracked_hours",
]
