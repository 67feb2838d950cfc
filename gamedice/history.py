"""Bounded launch-history ledger and the statistics derived from it."""
from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Sequence, Tuple

from .models import Config, GameEntry, LaunchHistoryEntry

_LOGGER = logging.getLogger(__name__)

MAX_ENTRIES = 1000
TOP_GAMES = 10


def add_launch(
    config: Config,
    game: GameEntry,
    filter_tags: Optional[Sequence[str]],
    match_all: bool,
    launched: bool,
    error: Optional[str],
) -> LaunchHistoryEntry:
    entry = LaunchHistoryEntry(
        game_key=game.key,
        name=game.name,
        platform=game.platform,
        launched=launched,
        error=error or "",
        filter_tags_csv=",".join(filter_tags or []),
        match_all_tags=match_all,
        session_seconds=0,
    )
    config.launch_history.append(entry)
    trim(config)
    return entry


def trim(config: Config, max_entries: int = MAX_ENTRIES) -> int:
    """Drop the oldest entries beyond ``max_entries``; returns how many went."""
    overflow = len(config.launch_history) - max_entries
    if overflow <= 0:
        return 0
    del config.launch_history[:overflow]
    return overflow


def find(config: Config, history_id: str) -> Optional[LaunchHistoryEntry]:
    for entry in config.launch_history:
        if entry.id == history_id:
            return entry
    return None


def update_session(config: Config, history_id: str, seconds: int) -> bool:
    """Record a session length; never lowers an existing value."""
    entry = find(config, history_id)
    if entry is None:
        _LOGGER.debug("No history entry %s for session update", history_id)
        return False
    entry.session_seconds = max(entry.session_seconds, int(seconds))
    return True


def clear(config: Config) -> int:
    count = len(config.launch_history)
    config.launch_history.clear()
    return count


def format_local(timestamp: datetime) -> str:
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    try:
        return timestamp.astimezone().strftime("%Y-%m-%d %H:%M")
    except (OverflowError, OSError, ValueError):
        return timestamp.strftime("%Y-%m-%d %H:%M:%SZ")


@dataclass
class HistoryStats:
    total: int = 0
    successful: int = 0
    last_7_days: int = 0
    by_platform: List[Tuple[str, int]] = field(default_factory=list)
    top_games: List[Tuple[str, int]] = field(default_factory=list)
    tracked_hours: float = 0.0


def _aware(ts: datetime) -> datetime:
    return ts if ts.tzinfo is not None else ts.replace(tzinfo=timezone.utc)


def compute_stats(config: Config, now: Optional[datetime] = None) -> HistoryStats:
    now = now or datetime.now(timezone.utc)
    entries = config.launch_history
    since = _aware(now) - timedelta(days=7)

    platform_counts = Counter(e.platform for e in entries)
    by_platform = sorted(platform_counts.items(), key=lambda item: -item[1])

    counts: Counter = Counter()
    latest: Dict[str, LaunchHistoryEntry] = {}
    for e in entries:
        counts[e.game_key] += 1
        current = latest.get(e.game_key)
        if current is None or _aware(e.timestamp) >= _aware(current.timestamp):
            latest[e.game_key] = e
    ranked = sorted(counts.items(), key=lambda item: (-item[1], latest[item[0]].name.lower()))
    top_games = [(latest[key].name, count) for key, count in ranked[:TOP_GAMES]]

    tracked = sum(config.tracked_playtime_seconds.values())
    return HistoryStats(
        total=len(entries),
        successful=sum(1 for e in entries if e.launched),
        last_7_days=sum(1 for e in entries if _aware(e.timestamp) >= since),
        by_platform=by_platform,
        top_games=top_games,
        tracked_hours=round(tracked / 3600.0, 1),
    )


def format_stats(stats: HistoryStats) -> str:
    lines = [
        f"Total launches: {stats.total}",
        f"Successful launches: {stats.successful}",
        f"Last 7 days: {stats.last_7_days}",
        "",
        "By platform:",
    ]
    lines.extend(f"- {platform}: {count}" for platform, count in stats.by_platform)
    lines.append("")
    lines.append("Top games (by random picks):")
    lines.extend(f"- {name}: {count}" for name, count in stats.top_games)
    lines.append("")
    lines.append(f"Tracked playtime (launched via this app): {stats.tracked_hours} hrs")
    return "\n".join(lines).rstrip()


__all__ = [
    "HistoryStats",
    "MAX_ENTRIES",
    "add_launch",
    "clear",
    "compute_stats",
    "find",
    "format_local",
    "format_stats",
    "trim",
    "update_session",
]
